"""
Envelope codec.

Turns raw frame text into one of the envelope models and back. The shape is
picked from which discriminating members are present:

- ``id`` and ``method``: a command (never expected inbound)
- ``id`` alone: a response carrying ``result`` or ``error``
- ``method`` alone: an event
"""

from __future__ import annotations

import json
from typing import Any, Union

from pydantic import ValidationError

from cdpwire.exceptions import MalformedMessage
from cdpwire.models import (
    CommandEnvelope,
    Envelope,
    EventEnvelope,
    ResponseEnvelope,
)


def _message_id(data: dict[str, Any], raw: Union[str, bytes]) -> int:
    message_id = data["id"]
    # bool is an int subclass
    if isinstance(message_id, bool) or not isinstance(message_id, int) or message_id < 0:
        raise MalformedMessage(f"invalid id {message_id!r}", raw)
    return message_id


def decode(raw: Union[str, bytes]) -> Envelope:
    """Decode one inbound frame.

    Raises:
        MalformedMessage: If the frame is not a JSON object or matches no
            envelope shape. When the frame has a usable ``id`` the error
            carries it as ``message_id``.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessage(f"invalid JSON ({e})", raw) from e

    if not isinstance(data, dict):
        raise MalformedMessage("top-level value is not an object", raw)

    has_id = "id" in data
    has_method = "method" in data

    if not has_id and not has_method:
        raise MalformedMessage("neither 'id' nor 'method' present", raw)

    message_id = _message_id(data, raw) if has_id else None

    try:
        if has_id and has_method:
            return CommandEnvelope.model_validate(data)
        if has_id:
            if "result" in data and "error" in data:
                raise MalformedMessage(
                    "response carries both 'result' and 'error'",
                    raw,
                    message_id=message_id,
                )
            return ResponseEnvelope.model_validate(data)
        return EventEnvelope.model_validate(data)
    except ValidationError as e:
        raise MalformedMessage(
            f"{e.error_count()} invalid field(s)",
            raw,
            message_id=message_id,
        ) from e


def encode(envelope: CommandEnvelope) -> str:
    """Encode an outbound command envelope as compact JSON text."""
    return json.dumps(envelope.to_wire(), separators=(",", ":"))


def truncate(text: Union[str, bytes], limit: int) -> str:
    """Shorten a frame for log output."""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if limit <= 0 or len(text) <= limit:
        return text
    return f"{text[:limit]}... ({len(text)} chars)"


__all__ = ["decode", "encode", "truncate"]
