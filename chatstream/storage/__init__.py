"""Storage module - blob storage backends and the thread store."""

from .interface import BlobStorage
from .local_storage import LocalStorage
from .memory_storage import MemoryStorage
from .thread_store import ThreadStore

__all__ = ['BlobStorage', 'LocalStorage', 'MemoryStorage', 'ThreadStore']
