"""
Base classes for typed protocol domains.

A domain is a thin facade over a client's ``call_command`` and event bus:
commands turn a pydantic params model into a generic payload and decode the
generic result back, and events are ``TypedEventStream`` views filtered by
exact method name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from cdpwire.events.stream import TypedEventStream
from cdpwire.exceptions import EmptyResultError
from cdpwire.models import CommandMode

if TYPE_CHECKING:
    from cdpwire.interfaces import BaseCDPClient

M = TypeVar("M", bound=BaseModel)
F = TypeVar("F", bound=Callable[..., Any])


class CDPModel(BaseModel):
    """Protocol record: camelCase on the wire, snake_case in Python.

    Unknown members sent by newer browsers are kept rather than rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_params(self) -> dict[str, Any]:
        """Dump with wire names, leaving out unset optional members."""
        return self.model_dump(by_alias=True, exclude_none=True)


class CDPParams(CDPModel):
    """Command parameters. Unknown names are rejected to catch typos."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


def experimental(func: F) -> F:
    """Mark a command as experimental in the protocol. Metadata only."""
    func.__cdp_experimental__ = True  # type: ignore[attr-defined]
    return func


def deprecated(func: F) -> F:
    """Mark a command as deprecated in the protocol. Metadata only."""
    func.__cdp_deprecated__ = True  # type: ignore[attr-defined]
    return func


class Domain:
    """Base for a typed domain bound to one client.

    Instances are created through ``client.domain(DomainClass)``, which caches
    one instance per class for the client's lifetime.
    """

    name: ClassVar[str] = ""

    def __init__(self, client: "BaseCDPClient") -> None:
        self._client = client

    @property
    def client(self) -> "BaseCDPClient":
        return self._client

    def _method(self, command: str) -> str:
        return f"{self.name}.{command}"

    async def _call(
        self,
        command: str,
        params: Optional[BaseModel] = None,
        returns: Optional[type[M]] = None,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> Optional[M]:
        method = self._method(command)
        payload = None
        if params is not None:
            payload = (
                params.to_params()
                if isinstance(params, CDPModel)
                else params.model_dump(by_alias=True, exclude_none=True)
            )

        result = await self._client.call_command(method, payload, mode=mode)

        if returns is None:
            return None
        if result is None:
            raise EmptyResultError(method, session_id=self._client.session_id)
        return returns.model_validate(result)

    def _event(
        self,
        event: str,
        model: type[M],
        *,
        parameterless: bool = False,
    ) -> TypedEventStream[M]:
        return TypedEventStream(
            self._client,
            self._method(event),
            model.model_validate,
            parameterless=parameterless,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(client={self._client!r})"


__all__ = [
    "CDPModel",
    "CDPParams",
    "Domain",
    "experimental",
    "deprecated",
]
