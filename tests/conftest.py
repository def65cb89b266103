"""
Shared test fixtures and configuration.
"""

import pytest
import os

# Set test environment variables before importing chatstream modules
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")
os.environ.setdefault("STORAGE_PATH", "/tmp/chatstream_test_data")

from chatstream.storage.memory_storage import MemoryStorage
from chatstream.storage.thread_store import ThreadStore

from helpers import TEST_KEY


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return ThreadStore(storage, TEST_KEY)
