"""In-process blob storage, for tests and throwaway sessions."""

from typing import Dict, Optional

from .interface import BlobStorage


class MemoryStorage(BlobStorage):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.blobs: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    async def set(self, key: str, value: str) -> None:
        self.blobs[key] = value

    async def delete(self, key: str) -> bool:
        return self.blobs.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self.blobs
