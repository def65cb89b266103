"""Models module."""

from .chat import (
    DEFAULT_THREAD_TITLE, ChatMessage, ChatThread, ThreadCollection,
    create_thread, create_id, now_ms,
)
from .events import DeltaEvent, DoneEvent, ErrorEvent, StreamEvent

__all__ = [
    'DEFAULT_THREAD_TITLE', 'ChatMessage', 'ChatThread', 'ThreadCollection',
    'create_thread', 'create_id', 'now_ms',
    'DeltaEvent', 'DoneEvent', 'ErrorEvent', 'StreamEvent',
]
