"""ChatStream - streaming chat sessions over a persisted thread workspace."""

__version__ = "1.0.0"
