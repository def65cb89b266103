"""
Relay API endpoint - Streams a model answer in the chat wire format.

Each provider fragment becomes ``data: {"delta": ...}``; the stream ends with
``data: {"done": true, "text": <full text>}``, or ``data: {"error": ...}`` if
the provider fails part way.
"""

import logging
from typing import AsyncIterator, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..config import settings
from ..llm.base import LLMMessage, LLMProvider
from ..llm.factory import create_provider_from_settings
from ..stream.codec import encode_frame

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


class HistoryPart(BaseModel):
    text: str


class HistoryEntry(BaseModel):
    role: Literal["user", "model"]
    parts: List[HistoryPart] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts)


class RelayRequest(BaseModel):
    """Body of one exchange: prior history plus the new message."""
    history: List[HistoryEntry] = Field(default_factory=list)
    message: str


def get_llm_provider() -> Optional[LLMProvider]:
    """Get configured LLM provider or None."""
    return create_provider_from_settings(settings)


def build_messages(request: RelayRequest) -> List[LLMMessage]:
    messages = [LLMMessage.from_chat(entry.role, entry.text) for entry in request.history]
    messages.append(LLMMessage.from_chat("user", request.message))
    return messages


async def relay_events(provider: LLMProvider, messages: List[LLMMessage]) -> AsyncIterator[str]:
    """Yield wire frames for one provider stream."""
    full_text = ""
    try:
        async for delta in provider.chat_completion_stream(
            messages, max_tokens=settings.llm_max_output_tokens
        ):
            if not delta:
                continue
            full_text += delta
            yield encode_frame({"delta": delta})
    except Exception as e:
        logger.error(f"Relay stream failed: {str(e)}", exc_info=True)
        yield encode_frame({"error": str(e) or "Generation failed"})
        return

    yield encode_frame({"done": True, "text": full_text})


@router.post("/gemini")
async def stream_answer(
    request: RelayRequest,
    provider: Optional[LLMProvider] = Depends(get_llm_provider),
):
    """
    Stream an answer for ``request.message`` given ``request.history``.

    Returns:
        StreamingResponse with ``text/event-stream`` frames
    """
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LLM provider is not configured"
        )
    if not request.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message must not be empty"
        )

    logger.info(
        f"Relaying message: {request.message[:100]}",
        extra={"extra_fields": {"history_length": len(request.history)}}
    )

    return StreamingResponse(
        relay_events(provider, build_messages(request)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )
