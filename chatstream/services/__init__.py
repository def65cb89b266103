"""Services module - client for the streaming chat endpoint."""

from .chat_service import ChatServiceClient

__all__ = ['ChatServiceClient']
