"""
ASGI middleware that logs relay requests and their streamed responses.

Pure ASGI (not BaseHTTPMiddleware) so event-stream bodies pass through
unbuffered. Chat request bodies are summarised (history length, message
preview) rather than logged whole; event-stream responses are summarised by
frame count and size.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_LENGTH = 100


def summarize_request_body(data: bytes) -> Optional[Dict[str, Any]]:
    """
    Describe a request body for the log without copying the conversation.

    Chat bodies become ``{history_length, message}``; other JSON objects are
    logged with credentials masked; anything else is truncated text.
    """
    if not data:
        return None
    text = data.decode("utf-8", errors="replace")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return {"raw": truncate_large_data(text, max_length=500)}

    if isinstance(payload, dict) and "message" in payload:
        history = payload.get("history")
        return {
            "history_length": len(history) if isinstance(history, list) else 0,
            "message": truncate_large_data(str(payload["message"]), max_length=MESSAGE_PREVIEW_LENGTH),
        }
    return {"json": truncate_large_data(json.dumps(filter_sensitive_data(payload), ensure_ascii=False), 2000)}


@dataclass
class _ResponseStats:
    status_code: int = 0
    content_type: str = ""
    body_bytes: int = 0
    frames: int = 0
    request_chunks: List[bytes] = field(default_factory=list)

    @property
    def streaming(self) -> bool:
        return self.content_type.startswith("text/event-stream")


class RequestLoggingMiddleware:
    """Logs one start and one completion record per HTTP request."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        self.app = app
        self.exclude_paths = exclude_paths or ["/health"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        client = scope.get("client")
        request_id = id(scope)
        stats = _ResponseStats()

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                stats.request_chunks.append(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                stats.status_code = message.get("status", 0)
                for key, value in message.get("headers", []):
                    if key.lower() == b"content-type":
                        stats.content_type = value.decode("latin-1")
            elif message["type"] == "http.response.body":
                body = message.get("body", b"")
                stats.body_bytes += len(body)
                if stats.streaming:
                    stats.frames += body.count(b"data:")
            await send(message)

        logger.info(
            f"Request started: {method} {path}",
            extra={"extra_fields": {
                "request_id": request_id,
                "client": client[0] if client else None,
            }}
        )

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            logger.error(
                f"Request failed: {method} {path} - {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "request_id": request_id,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        fields: Dict[str, Any] = {
            "request_id": request_id,
            "status_code": stats.status_code,
            "duration_ms": round(duration_ms, 2),
            "response_bytes": stats.body_bytes,
            "request": summarize_request_body(b"".join(stats.request_chunks)),
        }
        if stats.streaming:
            fields["frames"] = stats.frames

        if stats.status_code >= 500:
            level = logging.ERROR
        elif stats.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            f"Request completed: {method} {path} - {stats.status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": fields}
        )
