"""
Wire envelope models for cdpwire.

These are the three top-level frame shapes of the Chrome DevTools Protocol:
commands we send, responses correlated to them by id, and events pushed by
the browser. All of them are immutable once built.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class CommandMode(str, Enum):
    """How a command interacts with per-connection prepare hooks.

    - DEFAULT: run pending prepare hooks before sending
    - ONE_SHOT: send as-is; used by the hooks themselves
    """

    DEFAULT = "default"
    ONE_SHOT = "one_shot"


class _Envelope(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class CommandEnvelope(_Envelope):
    """Outbound command: ``{id, method, params?, sessionId?}``."""

    id: StrictInt = Field(..., ge=0)
    method: str = Field(..., min_length=1)
    params: Optional[dict[str, Any]] = None
    session_id: Optional[str] = Field(None, alias="sessionId")

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready dict, omitting absent optional fields."""
        message: dict[str, Any] = {"id": self.id, "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        if self.session_id is not None:
            message["sessionId"] = self.session_id
        return message


class ResponseError(_Envelope):
    """The ``error`` member of a failed response."""

    code: int = -1
    message: str = "Unknown error"
    data: Optional[Any] = None


class ResponseEnvelope(_Envelope):
    """Inbound reply to a command: ``{id, result}`` or ``{id, error}``."""

    id: StrictInt = Field(..., ge=0)
    result: Optional[dict[str, Any]] = None
    error: Optional[ResponseError] = None
    session_id: Optional[str] = Field(None, alias="sessionId")

    @property
    def is_error(self) -> bool:
        return self.error is not None


class EventEnvelope(_Envelope):
    """Inbound notification: ``{method, params?, sessionId?}``."""

    method: str = Field(..., min_length=1)
    params: Optional[dict[str, Any]] = None
    session_id: Optional[str] = Field(None, alias="sessionId")

    @property
    def domain(self) -> str:
        """Domain part of the method, e.g. ``Debugger`` for ``Debugger.paused``."""
        return self.method.split(".", 1)[0]

    @property
    def name(self) -> str:
        """Event part of the method, e.g. ``paused`` for ``Debugger.paused``."""
        return self.method.split(".", 1)[-1]


Envelope = CommandEnvelope | ResponseEnvelope | EventEnvelope


__all__ = [
    "CommandMode",
    "CommandEnvelope",
    "ResponseError",
    "ResponseEnvelope",
    "EventEnvelope",
    "Envelope",
]
