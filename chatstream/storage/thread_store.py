"""
Thread Store - Owns the persisted collection of conversation threads.

Every mutation replaces the in-memory collection in one step, notifies
subscribers, then rewrites the blob (save-on-mutate). The session controller
only ever mutates through ``update_thread``.
"""

import asyncio
import json
import logging
from typing import Any, Callable, List, Optional

import pydantic

from ..models.chat import (
    DEFAULT_THREAD_TITLE,
    ChatThread,
    ThreadCollection,
    create_thread,
    now_ms,
)
from ..config import settings
from .interface import BlobStorage
from .local_storage import LocalStorage

logger = logging.getLogger(__name__)

ThreadTransform = Callable[[ChatThread], ChatThread]
Listener = Callable[[ThreadCollection], None]


class ThreadStore:
    """
    Durable thread collection with an active thread.

    Build with ``await ThreadStore.open(storage, key)`` to restore saved state.
    """

    def __init__(
        self,
        storage: BlobStorage,
        key: str,
        collection: Optional[ThreadCollection] = None,
        default_title: str = DEFAULT_THREAD_TITLE,
    ):
        self.storage = storage
        self.key = key
        self.default_title = default_title
        self._collection = collection or ThreadCollection.fresh(default_title)
        self._listeners: List[Listener] = []
        self._save_lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        storage: BlobStorage,
        key: str,
        default_title: str = DEFAULT_THREAD_TITLE,
    ) -> "ThreadStore":
        """
        Restore the collection saved under ``key``.
        Absent, undecodable or corrupt state falls back to a fresh single-thread collection.
        """
        collection = None
        try:
            raw = await storage.get(key)
            if raw:
                collection = ThreadCollection.from_persisted(json.loads(raw), default_title)
        except (OSError, ValueError, pydantic.ValidationError) as e:
            logger.warning(f"Unable to restore conversations, starting fresh: {e}")

        store = cls(storage, key, collection, default_title)
        logger.info(
            f"Thread store ready",
            extra={"extra_fields": {
                "key": key,
                "threads": len(store.threads),
                "restored": collection is not None,
            }}
        )
        return store

    @classmethod
    async def from_settings(cls, config: Any = settings) -> "ThreadStore":
        """Open the file-backed store configured by STORAGE_PATH and STORAGE_KEY."""
        return await cls.open(
            LocalStorage(config.storage_path),
            config.storage_key,
            default_title=config.default_thread_title,
        )

    # Read side

    @property
    def collection(self) -> ThreadCollection:
        return self._collection

    @property
    def threads(self) -> List[ChatThread]:
        return list(self._collection.threads)

    @property
    def active_thread_id(self) -> str:
        return self._collection.active_thread_id

    @property
    def active_thread(self) -> ChatThread:
        return self._collection.active_thread

    def get_thread(self, thread_id: str) -> Optional[ChatThread]:
        return self._collection.get(thread_id)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for post-mutation callbacks. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Mutations

    async def create_new_thread(self) -> ChatThread:
        """Insert a fresh thread at the front and make it active."""
        thread = create_thread(self.default_title)
        await self._commit(ThreadCollection(
            threads=[thread, *self._collection.threads],
            active_thread_id=thread.id,
        ))
        return thread

    async def select_thread(self, thread_id: str) -> None:
        if thread_id == self._collection.active_thread_id:
            return
        if self._collection.get(thread_id) is None:
            logger.warning(f"Ignoring selection of unknown thread {thread_id}")
            return
        await self._commit(self._collection.model_copy(update={"active_thread_id": thread_id}))

    async def delete_thread(self, thread_id: str) -> None:
        """
        Remove a thread. An emptied collection gets a replacement thread;
        deleting the active thread activates the first remaining one.
        """
        remaining = [t for t in self._collection.threads if t.id != thread_id]
        if not remaining:
            await self._commit(ThreadCollection.fresh(self.default_title))
            return

        active_id = self._collection.active_thread_id
        if active_id == thread_id:
            active_id = remaining[0].id
        await self._commit(ThreadCollection(threads=remaining, active_thread_id=active_id))

    async def clear_thread(self, thread_id: str) -> None:
        """Reset title and messages of a thread while keeping its identity."""
        timestamp = now_ms()
        threads = [
            thread.model_copy(update={
                "title": self.default_title,
                "messages": [],
                "created_at": timestamp,
                "updated_at": timestamp,
            }) if thread.id == thread_id else thread
            for thread in self._collection.threads
        ]
        await self._commit(self._collection.model_copy(update={"threads": threads}))

    async def update_thread(self, thread_id: str, transform: ThreadTransform) -> None:
        """
        Apply a pure ``transform`` to one thread, then order threads by
        ``updated_at`` descending. Unknown ids are a no-op.
        """
        if self._collection.get(thread_id) is None:
            return

        threads = [
            transform(thread) if thread.id == thread_id else thread
            for thread in self._collection.threads
        ]
        threads.sort(key=lambda thread: thread.updated_at, reverse=True)
        await self._commit(self._collection.model_copy(update={"threads": threads}))

    async def _commit(self, collection: ThreadCollection) -> None:
        self._collection = collection
        for listener in list(self._listeners):
            listener(collection)

        snapshot = collection.to_json()
        async with self._save_lock:
            try:
                await self.storage.set(self.key, snapshot)
            except OSError as e:
                logger.error(f"Failed to persist conversations: {e}", exc_info=True)
