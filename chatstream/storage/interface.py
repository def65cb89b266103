"""
Storage Interface - Abstract key-value blob store.
Local files today; any backend with get/set semantics can slot in.
"""

from abc import ABC, abstractmethod
from typing import Optional


class BlobStorage(ABC):
    """
    Contract for persisting opaque text blobs under string keys.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Load the blob stored under ``key``.

        Args:
            key: Namespaced key (e.g., "llm-powered-chat-platform::threads")

        Returns:
            Optional[str]: Blob content, or None if nothing is stored
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Store ``value`` under ``key``, replacing any previous blob.

        Args:
            key: Namespaced key
            value: Serialized content
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove the blob under ``key``.

        Returns:
            bool: True if something was removed
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether a blob is stored under ``key``."""
        pass
