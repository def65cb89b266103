"""
Tests for the relay endpoint, and the session controller talking to it end to end.
"""

from typing import List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from chatstream.api.relay import get_llm_provider
from chatstream.llm.base import LLMProvider
from chatstream.main import app
from chatstream.session.controller import SessionState
from chatstream.stream.codec import decode_frame, split_frames
from chatstream.models.events import DeltaEvent, DoneEvent, ErrorEvent

from helpers import build_controller


class FakeProvider(LLMProvider):
    """Provider that replays fixed fragments, optionally failing part way."""

    def __init__(self, fragments: List[str], fail_with: Optional[Exception] = None):
        super().__init__(api_key="test", model="fake")
        self.fragments = fragments
        self.fail_with = fail_with
        self.calls = []

    async def chat_completion_stream(self, messages, temperature=None, max_tokens=None, **kwargs):
        self.calls.append(messages)
        for fragment in self.fragments:
            yield fragment
        if self.fail_with is not None:
            raise self.fail_with


@pytest.fixture
def use_provider():
    def install(provider):
        app.dependency_overrides[get_llm_provider] = lambda: provider
        return provider
    yield install
    app.dependency_overrides.clear()


def events_of(text: str):
    frames, rest = split_frames(text)
    return [decode_frame(f) for f in frames]


class TestRelayEndpoint:
    """Tests for the /gemini relay endpoint."""

    def test_streams_deltas_then_done(self, use_provider):
        provider = use_provider(FakeProvider(["Hi", " there", "!"]))
        client = TestClient(app)
        response = client.post("/gemini", json={
            "history": [
                {"role": "user", "parts": [{"text": "earlier"}]},
                {"role": "model", "parts": [{"text": "reply"}]},
            ],
            "message": "hello",
        })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert events_of(response.text) == [
            DeltaEvent("Hi"), DeltaEvent(" there"), DeltaEvent("!"), DoneEvent("Hi there!"),
        ]
        roles = [m.role for m in provider.calls[0]]
        assert roles == ["user", "assistant", "user"]
        assert provider.calls[0][-1].content == "hello"

    def test_provider_failure_emits_error_frame(self, use_provider):
        use_provider(FakeProvider(["Hi"], fail_with=RuntimeError("quota exceeded")))
        response = TestClient(app).post("/gemini", json={"message": "hello"})
        assert events_of(response.text) == [DeltaEvent("Hi"), ErrorEvent("quota exceeded")]

    def test_missing_provider_returns_503(self, use_provider):
        use_provider(None)
        response = TestClient(app).post("/gemini", json={"message": "hello"})
        assert response.status_code == 503
        assert response.json()["detail"] == "LLM provider is not configured"

    def test_blank_message_returns_400(self, use_provider):
        use_provider(FakeProvider([]))
        response = TestClient(app).post("/gemini", json={"message": "  "})
        assert response.status_code == 400

    def test_health(self):
        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestControllerAgainstRelay:
    """Tests for the controller talking to the relay app."""

    @pytest.mark.asyncio
    async def test_full_exchange(self, use_provider):
        use_provider(FakeProvider(["Hi", " there"]))
        controller = build_controller(
            httpx.ASGITransport(app=app), api_url="http://relay.test"
        )
        outcome = await controller.ask("hello")

        assert outcome == SessionState.COMPLETED
        assert [(m.role, m.text) for m in controller.thread.messages] == [
            ("user", "hello"), ("model", "Hi there"),
        ]

    @pytest.mark.asyncio
    async def test_relay_error_rolls_back(self, use_provider):
        use_provider(FakeProvider([], fail_with=RuntimeError("model overloaded")))
        controller = build_controller(
            httpx.ASGITransport(app=app), api_url="http://relay.test"
        )
        outcome = await controller.ask("hello")

        assert outcome == SessionState.FAILED
        assert controller.thread.messages == []
        assert controller.error == "model overloaded"
        assert controller.composer.text == "hello"

    @pytest.mark.asyncio
    async def test_unconfigured_relay_surfaces_detail(self, use_provider):
        use_provider(None)
        controller = build_controller(
            httpx.ASGITransport(app=app), api_url="http://relay.test"
        )
        assert await controller.ask("hello") == SessionState.FAILED
        assert controller.error == "LLM provider is not configured"
