"""
Wire Codec - Request bodies out, typed stream events in.

The response is ``text/event-stream``: each frame is a block of text ended by
a blank line whose first line is ``data: <json>``.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.errors import StreamProtocolError
from ..core.logging_config import truncate_large_data
from ..models.events import DeltaEvent, DoneEvent, ErrorEvent, StreamEvent

logger = logging.getLogger(__name__)

FRAME_DELIMITER = "\n\n"
DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def encode_request(history: Iterable[Any], message: str) -> Dict[str, Any]:
    """
    Build the POST body for one exchange.

    Args:
        history: Prior messages in order; ChatMessage objects or mappings with role/text
        message: The new user message

    Returns:
        ``{"history": [{"role", "parts": [{"text"}]}, ...], "message": message}``
    """
    entries: List[Dict[str, Any]] = []
    for item in history:
        if isinstance(item, Mapping):
            role, text = item["role"], item["text"]
        else:
            role, text = item.role, item.text
        entries.append({"role": role, "parts": [{"text": text}]})
    return {"history": entries, "message": message}


def encode_frame(payload: Mapping[str, Any]) -> str:
    """Serialize one payload as a ``data:`` frame (relay side of the wire)."""
    return f"{DATA_PREFIX} {json.dumps(payload, ensure_ascii=False)}{FRAME_DELIMITER}"


def split_frames(buffer: str) -> Tuple[List[str], str]:
    """
    Cut every complete frame off the front of ``buffer``.

    Returns:
        (complete frames without their delimiter, leftover partial frame)
    """
    frames: List[str] = []
    boundary = buffer.find(FRAME_DELIMITER)
    while boundary != -1:
        frames.append(buffer[:boundary])
        buffer = buffer[boundary + len(FRAME_DELIMITER):]
        boundary = buffer.find(FRAME_DELIMITER)
    return frames, buffer


def parse_payload(data: str) -> Dict[str, Any]:
    """
    Parse the JSON payload of a data line.

    Raises:
        StreamProtocolError: payload is not a JSON object
    """
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise StreamProtocolError(f"Unable to parse SSE payload: {e}") from e
    if not isinstance(payload, dict):
        raise StreamProtocolError(f"SSE payload is not an object: {type(payload).__name__}")
    return payload


def decode_frame(raw: str) -> Optional[StreamEvent]:
    """
    Decode one frame into an event, or None when the frame carries nothing.

    Non-data frames, empty payloads and the ``[DONE]`` sentinel yield None.
    Malformed payloads are logged and yield None so one bad frame never ends
    the stream. Unknown payload fields are ignored.
    """
    frame = raw.strip()
    if not frame.startswith(DATA_PREFIX):
        return None

    first_line = frame.split("\n", 1)[0]
    data = first_line[len(DATA_PREFIX):].strip()
    if not data or data == DONE_SENTINEL:
        return None

    try:
        payload = parse_payload(data)
    except StreamProtocolError as e:
        logger.warning(
            f"Skipping malformed frame: {e}",
            extra={"extra_fields": {"frame": truncate_large_data(data, max_length=500)}}
        )
        return None

    error = payload.get("error")
    if error:
        return ErrorEvent(message=str(error))

    text = payload.get("text")
    if payload.get("done") and isinstance(text, str):
        return DoneEvent(text=text)

    delta = payload.get("delta")
    if isinstance(delta, str) and delta:
        return DeltaEvent(text=delta)

    return None
