"""Core module - logging setup and the chat error taxonomy."""

from .errors import (
    ChatError,
    ValidationError,
    SessionBusyError,
    TransportError,
    UpstreamError,
    StreamProtocolError,
    EmptyResponseError,
    Cancelled,
    user_message,
)

__all__ = [
    'ChatError', 'ValidationError', 'SessionBusyError', 'TransportError',
    'UpstreamError', 'StreamProtocolError', 'EmptyResponseError', 'Cancelled',
    'user_message',
]
