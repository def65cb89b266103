"""
Unit tests for the chat service client and endpoint resolution.
"""

import httpx
import pytest

from chatstream.config import Settings, resolve_api_url
from chatstream.core.errors import Cancelled, TransportError
from chatstream.services.chat_service import ChatServiceClient
from chatstream.stream.cancellation import CancellationHandle

from helpers import TEST_URL, frame, sse_transport


class TestResolveApiUrl:
    """Tests for endpoint URL normalisation."""

    def test_default(self):
        assert resolve_api_url(None) == "http://localhost:8000/gemini"
        assert resolve_api_url("   ") == "http://localhost:8000/gemini"

    def test_appends_path(self):
        assert resolve_api_url("https://relay.example.com//") == "https://relay.example.com/gemini"

    def test_keeps_full_url(self):
        assert resolve_api_url(" https://relay.example.com/gemini ") == "https://relay.example.com/gemini"


class TestChatServiceClient:
    """Tests for ChatServiceClient streaming requests."""

    def test_from_settings(self):
        config = Settings(chat_api_url="https://relay.example.com", connect_timeout=5.0)
        client = ChatServiceClient.from_settings(config)
        assert client.api_url == "https://relay.example.com/gemini"
        assert client.timeout.connect == 5.0
        assert client.timeout.read is None

    @pytest.mark.asyncio
    async def test_posts_encoded_body_and_yields_bytes(self):
        requests = []
        client = ChatServiceClient(api_url=TEST_URL, transport=sse_transport(
            [frame({"delta": "a"})], requests=requests
        ))
        async with client.open_stream([], "hello") as body:
            chunks = [chunk async for chunk in body]

        assert b"".join(chunks) == frame({"delta": "a"})
        assert requests == [{"history": [], "message": "hello"}]

    @pytest.mark.asyncio
    async def test_status_error_uses_json_detail(self):
        client = ChatServiceClient(api_url=TEST_URL, transport=httpx.MockTransport(
            lambda request: httpx.Response(503, json={"detail": "LLM provider is not configured"})
        ))
        with pytest.raises(TransportError) as exc_info:
            async with client.open_stream([], "hello"):
                pass
        assert str(exc_info.value) == "LLM provider is not configured"
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_status_error_with_empty_body(self):
        client = ChatServiceClient(api_url=TEST_URL, transport=httpx.MockTransport(
            lambda request: httpx.Response(500)
        ))
        with pytest.raises(TransportError, match="Request failed with status 500"):
            async with client.open_stream([], "hello"):
                pass

    @pytest.mark.asyncio
    async def test_network_error_becomes_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out")

        client = ChatServiceClient(api_url=TEST_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError, match="timed out"):
            async with client.open_stream([], "hello"):
                pass

    @pytest.mark.asyncio
    async def test_cancelled_handle_skips_request(self):
        requests = []
        client = ChatServiceClient(api_url=TEST_URL, transport=sse_transport([], requests=requests))
        handle = CancellationHandle()
        handle.cancel()
        with pytest.raises(Cancelled):
            async with client.open_stream([], "hello", handle):
                pass
        assert requests == []
