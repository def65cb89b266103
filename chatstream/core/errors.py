"""
Chat Errors - Failure taxonomy for a streaming exchange.
"""

from typing import Optional

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."


class ChatError(Exception):
    """Base class for every error raised by the chat session layer."""


class ValidationError(ChatError):
    """The prompt was empty after trimming; nothing was sent."""


class SessionBusyError(ChatError):
    """An exchange is already in flight for the target thread."""


class TransportError(ChatError):
    """The request was rejected or the network failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(TransportError):
    """The service sent an explicit error payload inside the stream."""


class StreamProtocolError(ChatError):
    """A single frame could not be parsed. Skipped, never fatal."""


class EmptyResponseError(ChatError):
    """The stream finished without any usable text."""


class Cancelled(ChatError):
    """
    Raised when a cancellation handle wins a race against pending I/O.

    Not a failure: callers treat it as a normal, user-requested exit.
    """


def user_message(error: BaseException) -> str:
    """
    Turn an exception into a notice fit to show the user.

    Blank messages and raw markup (e.g. an HTML error page from a proxy)
    collapse to a generic message.
    """
    raw = str(error).strip()
    if not raw or raw.startswith("<"):
        return GENERIC_FAILURE_MESSAGE
    return raw
