"""
Thread Transforms - Pure ChatThread -> ChatThread functions.
These are the only updates the session controller hands to the thread store.
"""

import re
from typing import Callable, Collection

from ..models.chat import DEFAULT_THREAD_TITLE, ChatMessage, ChatThread, now_ms

ELLIPSIS = "..."

_WHITESPACE = re.compile(r"\s+")


def make_title(text: str, max_length: int = 48, fallback: str = DEFAULT_THREAD_TITLE) -> str:
    """
    Derive a thread title from the first user message.

    Whitespace runs collapse to one space; text longer than ``max_length``
    is cut and ends with an ellipsis so the result stays within the bound.
    """
    collapsed = _WHITESPACE.sub(" ", text).strip()
    if not collapsed:
        return fallback
    if len(collapsed) <= max_length:
        return collapsed
    return collapsed[:max(max_length - len(ELLIPSIS), 0)].rstrip() + ELLIPSIS


def append_exchange(
    user_message: ChatMessage,
    assistant_message: ChatMessage,
    title_max_length: int = 48,
    default_title: str = DEFAULT_THREAD_TITLE,
) -> Callable[[ChatThread], ChatThread]:
    """Append the user message and the assistant placeholder, deriving the title if still unset."""

    def transform(thread: ChatThread) -> ChatThread:
        title = thread.title
        if not thread.messages or not title or title == default_title:
            title = make_title(user_message.text, title_max_length, default_title)
        return thread.model_copy(update={
            "title": title,
            "messages": [*thread.messages, user_message, assistant_message],
            "updated_at": now_ms(),
        })

    return transform


def replace_message_text(message_id: str, text: str) -> Callable[[ChatThread], ChatThread]:
    """Rewrite the text of one message in place; every other message is untouched."""

    def transform(thread: ChatThread) -> ChatThread:
        messages = [
            message.model_copy(update={"text": text}) if message.id == message_id else message
            for message in thread.messages
        ]
        return thread.model_copy(update={"messages": messages, "updated_at": now_ms()})

    return transform


def remove_messages(
    message_ids: Collection[str],
    default_title: str = DEFAULT_THREAD_TITLE,
    reset_title_when_empty: bool = False,
) -> Callable[[ChatThread], ChatThread]:
    """Drop the given messages; optionally restore the default title if nothing is left."""

    def transform(thread: ChatThread) -> ChatThread:
        messages = [m for m in thread.messages if m.id not in message_ids]
        update = {"messages": messages, "updated_at": now_ms()}
        if reset_title_when_empty and not messages:
            update["title"] = default_title
        return thread.model_copy(update=update)

    return transform
