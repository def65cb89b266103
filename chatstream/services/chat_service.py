"""
Chat Service Client - Opens the streaming POST for one exchange.
Speaks the relay's ``{history, message}`` request and returns the raw SSE body.
"""

import httpx
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, Optional

from ..config import settings, resolve_api_url
from ..core.errors import TransportError
from ..stream.cancellation import CancellationHandle
from ..stream.codec import encode_request

logger = logging.getLogger(__name__)


def _extract_error_reason(body: str) -> str:
    """Pull a readable reason out of an error body; JSON bodies yield their detail/message/error."""
    text = body.strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(payload, dict):
        for key in ("detail", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return text


class ChatServiceClient:
    """
    Thin httpx wrapper around the streaming chat endpoint.
    httpx failures never escape: they surface as TransportError.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        connect_timeout: float = 10.0,
        request_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = resolve_api_url(api_url)
        self.timeout = httpx.Timeout(request_timeout, connect=connect_timeout)
        self._transport = transport

    @classmethod
    def from_settings(cls, config: Any = settings, **kwargs) -> "ChatServiceClient":
        return cls(
            api_url=config.chat_api_url,
            connect_timeout=config.connect_timeout,
            request_timeout=config.request_timeout,
            **kwargs,
        )

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

    @asynccontextmanager
    async def open_stream(
        self,
        history: Iterable[Any],
        message: str,
        cancellation: Optional[CancellationHandle] = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        POST the exchange and yield the response body as raw byte chunks.

        Args:
            history: Prior messages (pre-exchange), oldest first
            message: The new user message
            cancellation: Handle that aborts the pending request

        Yields:
            Async iterator of byte chunks, valid until the context exits

        Raises:
            TransportError: network failure or non-success status
            Cancelled: the handle fired before response headers arrived
        """
        cancellation = cancellation or CancellationHandle()
        payload = encode_request(history, message)
        start_time = time.time()

        logger.debug(
            f"Chat stream starting: url={self.api_url}, history={len(payload['history'])} messages"
        )

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            request = client.build_request(
                "POST", self.api_url, json=payload, headers=self._get_headers()
            )
            try:
                response = await cancellation.run(client.send(request, stream=True))
            except httpx.HTTPError as e:
                logger.error(
                    f"Chat request failed: {str(e)}",
                    exc_info=True,
                    extra={"extra_fields": {
                        "url": self.api_url,
                        "duration_ms": round((time.time() - start_time) * 1000, 2),
                        "error": str(e),
                    }}
                )
                raise TransportError(str(e) or type(e).__name__) from e

            try:
                if not response.is_success:
                    await self._raise_for_status(response)

                yield response.aiter_bytes()
            except httpx.HTTPError as e:
                logger.error(f"Chat stream interrupted: {str(e)}", exc_info=True)
                raise TransportError(str(e) or type(e).__name__) from e
            finally:
                await response.aclose()
                logger.debug(
                    f"Chat stream closed",
                    extra={"extra_fields": {
                        "url": self.api_url,
                        "status_code": response.status_code,
                        "duration_ms": round((time.time() - start_time) * 1000, 2),
                    }}
                )

    async def _raise_for_status(self, response: httpx.Response) -> None:
        try:
            body = (await response.aread()).decode("utf-8", errors="replace")
        except httpx.HTTPError:
            body = ""
        message = _extract_error_reason(body) or f"Request failed with status {response.status_code}"
        logger.warning(
            f"Chat request rejected: status={response.status_code}",
            extra={"extra_fields": {"status_code": response.status_code}}
        )
        raise TransportError(message, status_code=response.status_code)
