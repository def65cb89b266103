"""
Stream Reader - Turns a chunked response body into ordered stream events.
"""

import codecs
import logging
from typing import AsyncIterator, Optional

from ..core.errors import Cancelled
from ..models.events import StreamEvent
from .cancellation import CancellationHandle
from .codec import decode_frame, split_frames

logger = logging.getLogger(__name__)


def _normalize(buffer: str) -> str:
    # CRLF framing is folded to LF; a lone trailing "\r" waits for the next chunk.
    return buffer.replace("\r\n", "\n")


async def consume(
    body: AsyncIterator[bytes],
    cancellation: Optional[CancellationHandle] = None,
) -> AsyncIterator[StreamEvent]:
    """
    Yield events decoded from ``body`` in arrival order.

    Chunk boundaries never line up with frames, so decoded text is kept in a
    buffer and only complete frames are handed to the codec. At end of stream
    the leftover buffer is decoded once more. When ``cancellation`` is
    signalled the generator simply stops: cancellation is not an error.

    Args:
        body: Async iterator of raw byte chunks
        cancellation: Optional handle checked at every read

    Yields:
        StreamEvent instances; single use, not restartable
    """
    cancellation = cancellation or CancellationHandle()
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    chunks = body.__aiter__()

    while True:
        try:
            chunk = await cancellation.run(anext(chunks, None))
        except Cancelled:
            logger.debug("Stream read cancelled")
            return

        if chunk is None:
            buffer = _normalize(buffer + decoder.decode(b"", final=True))
            break

        buffer = _normalize(buffer + decoder.decode(chunk))
        frames, buffer = split_frames(buffer)
        for frame in frames:
            event = decode_frame(frame)
            if event is None:
                continue
            if cancellation.cancelled:
                return
            yield event

    frames, buffer = split_frames(buffer)
    frames.append(buffer)
    for frame in frames:
        event = decode_frame(frame)
        if event is not None and not cancellation.cancelled:
            yield event
