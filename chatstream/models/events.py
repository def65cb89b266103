"""
Stream Events - Typed view of the frames decoded from the event stream.
Transient: consumed by the session controller and discarded.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class DeltaEvent:
    """An incremental text fragment."""
    text: str


@dataclass(frozen=True)
class DoneEvent:
    """Terminal frame carrying the authoritative full text."""
    text: str


@dataclass(frozen=True)
class ErrorEvent:
    """Explicit failure reported by the service."""
    message: str


StreamEvent = Union[DeltaEvent, DoneEvent, ErrorEvent]
