"""
Chat Models - Messages, threads and the persisted thread collection.

Field aliases are camelCase so the persisted blob keeps the
``{threads, activeThreadId}`` shape with ``createdAt``/``updatedAt`` keys.
Timestamps are epoch milliseconds.
"""

import time
import uuid
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_THREAD_TITLE = "New conversation"

Role = Literal["user", "model"]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def create_id() -> str:
    return str(uuid.uuid4())


class ChatMessage(BaseModel):
    """A single message. ``id`` is stable while the text is rewritten during streaming."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=create_id)
    role: Role
    text: str = ""
    created_at: int = Field(default_factory=now_ms, alias="createdAt")

    @classmethod
    def create(cls, role: Role, text: str) -> "ChatMessage":
        return cls(role=role, text=text)


class ChatThread(BaseModel):
    """A conversation: title plus chronologically ordered messages."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=create_id)
    title: str = DEFAULT_THREAD_TITLE
    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    updated_at: int = Field(default_factory=now_ms, alias="updatedAt")
    messages: List[ChatMessage] = Field(default_factory=list)


def create_thread(title: str = DEFAULT_THREAD_TITLE) -> ChatThread:
    """Create an empty thread with a fresh id and current timestamps."""
    timestamp = now_ms()
    return ChatThread(title=title, created_at=timestamp, updated_at=timestamp)


class ThreadCollection(BaseModel):
    """
    All threads plus the active thread id.

    ``active_thread_id`` always names a member of ``threads``; an empty
    collection is never produced, a fresh thread is synthesized instead.
    """
    model_config = ConfigDict(populate_by_name=True)

    threads: List[ChatThread]
    active_thread_id: str = Field(alias="activeThreadId")

    @classmethod
    def fresh(cls, title: str = DEFAULT_THREAD_TITLE) -> "ThreadCollection":
        thread = create_thread(title)
        return cls(threads=[thread], active_thread_id=thread.id)

    @classmethod
    def from_persisted(cls, raw: Any, title: str = DEFAULT_THREAD_TITLE) -> "ThreadCollection":
        """
        Build a collection from decoded JSON.

        Missing, empty or non-list thread values fall back to a fresh collection; an
        active id that no longer resolves falls back to the first thread.
        Raises pydantic.ValidationError on malformed thread records.
        """
        if not isinstance(raw, dict) or not isinstance(raw.get("threads"), list) or not raw["threads"]:
            return cls.fresh(title)

        threads = [ChatThread.model_validate(item) for item in raw["threads"]]
        active_id = raw.get("activeThreadId")
        if not any(thread.id == active_id for thread in threads):
            active_id = threads[0].id
        return cls(threads=threads, active_thread_id=active_id)

    def get(self, thread_id: str) -> Optional[ChatThread]:
        for thread in self.threads:
            if thread.id == thread_id:
                return thread
        return None

    @property
    def active_thread(self) -> ChatThread:
        return self.get(self.active_thread_id) or self.threads[0]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
