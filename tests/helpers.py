"""Helpers for faking the streaming chat endpoint."""

import asyncio
import json
from typing import Any, Iterable, List, Optional

import httpx

from chatstream.services.chat_service import ChatServiceClient
from chatstream.session.controller import SessionController
from chatstream.storage.memory_storage import MemoryStorage
from chatstream.storage.thread_store import ThreadStore

TEST_KEY = "test::threads"
TEST_URL = "http://chat.test/gemini"


def frame(payload: Any) -> bytes:
    """Encode one SSE data frame."""
    return f"data: {json.dumps(payload)}\n\n".encode("utf-8")


def sse_transport(
    chunks: Iterable[bytes],
    status_code: int = 200,
    requests: Optional[List[dict]] = None,
    hang: bool = False,
) -> httpx.MockTransport:
    """
    Mock transport answering every POST with ``chunks`` as a streamed body.
    With ``hang=True`` the body stalls after the last chunk until cancelled.
    """
    chunks = list(chunks)

    async def body():
        for chunk in chunks:
            yield chunk
        if hang:
            await asyncio.Event().wait()

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(json.loads(request.content))
        return httpx.Response(
            status_code,
            content=body(),
            headers={"content-type": "text/event-stream"},
        )

    return httpx.MockTransport(handler)


def build_controller(transport: httpx.AsyncBaseTransport, store: Optional[ThreadStore] = None,
                     api_url: str = TEST_URL, **kwargs) -> SessionController:
    store = store or ThreadStore(MemoryStorage(), TEST_KEY)
    client = ChatServiceClient(api_url=api_url, transport=transport)
    return SessionController(store, client, **kwargs)


async def wait_until(predicate, attempts: int = 200) -> None:
    """Yield to the loop until ``predicate()`` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")
