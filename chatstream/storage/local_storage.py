"""
Local Filesystem Storage Implementation.
Each key is one file in a base directory.
"""

import logging
import re
import aiofiles
from pathlib import Path
from typing import Optional

from .interface import BlobStorage

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalStorage(BlobStorage):
    """
    Local filesystem blob storage.
    Keys are mapped to ``<base_dir>/<sanitized key>.json``.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Directory holding one file per key
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        """Map a key to a file inside the base directory."""
        filename = _UNSAFE_CHARS.sub("_", key).strip("._")
        if not filename:
            raise ValueError(f"Invalid storage key: {key!r}")

        full_path = (self.base_dir / f"{filename}.json").resolve()
        if full_path.parent != self.base_dir:
            raise ValueError(f"Invalid storage key: {key!r} - path traversal detected")
        return full_path

    async def get(self, key: str) -> Optional[str]:
        full_path = self._get_full_path(key)
        if not full_path.exists():
            return None
        async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
            return await f.read()

    async def set(self, key: str, value: str) -> None:
        full_path = self._get_full_path(key)
        tmp_path = full_path.with_suffix(full_path.suffix + '.tmp')
        async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
            await f.write(value)
        tmp_path.replace(full_path)
        logger.debug(f"Stored {len(value)} chars under {key}")

    async def delete(self, key: str) -> bool:
        full_path = self._get_full_path(key)
        if full_path.exists():
            full_path.unlink()
            return True
        return False

    async def exists(self, key: str) -> bool:
        return self._get_full_path(key).exists()
