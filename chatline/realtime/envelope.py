"""
Event envelope for realtime frames.

Every frame is a JSON object:
- event_type: str
- data: dict payload
Outbound frames also carry:
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: int (monotonic per gateway)
"""

from __future__ import annotations

import itertools
import json
import uuid
from typing import Any

from ..utils.time_utils import utc_now_z


class UUIDEncoder(json.JSONEncoder):
    """JSON encoder that handles UUID objects."""

    def default(self, o: Any) -> Any:
        if isinstance(o, uuid.UUID):
            return str(o)
        return super().default(o)


class EnvelopeError(ValueError):
    """An inbound frame is not a well-formed envelope."""


class SequenceCounter:
    """Monotonic sequence numbers for outbound events."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def next(self) -> int:
        return next(self._counter)


def build_event(
    event_type: str,
    data: dict[str, Any] | None = None,
    *,
    sequence_number: int | None = None,
) -> dict[str, Any]:
    """
    Create a normalized outbound event envelope.

    Args:
        event_type: Name of the event (e.g. "userOnline")
        data: Event payload
        sequence_number: Sequence number assigned by the sender
    """
    event: dict[str, Any] = {
        "event_type": event_type,
        "timestamp": utc_now_z(),
        "data": data or {},
    }
    if sequence_number is not None:
        event["sequence_number"] = sequence_number
    return event


def dump_event(event: dict[str, Any]) -> str:
    return json.dumps(event, cls=UUIDEncoder, separators=(",", ":"))


def parse_inbound(raw: str) -> tuple[str, dict[str, Any]]:
    """
    Parse an inbound frame into (event_type, data).

    Raises:
        EnvelopeError: The frame is not JSON, not an object, or lacks a
            string event_type or an object data
    """
    try:
        frame = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise EnvelopeError("frame is not valid JSON") from e

    if not isinstance(frame, dict):
        raise EnvelopeError("frame must be a JSON object")

    event_type = frame.get("event_type")
    if not isinstance(event_type, str) or not event_type:
        raise EnvelopeError("frame is missing event_type")

    data = frame.get("data", {})
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise EnvelopeError("frame data must be an object")

    return event_type, data
