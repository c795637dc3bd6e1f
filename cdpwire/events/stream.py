"""
Typed views over the event bus.

A ``TypedEventStream`` binds one event method to a decode function. It holds
no subscription of its own: each ``async for`` (or explicit ``subscribe()``)
attaches a fresh one, so a stream can be iterated any number of times.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from cdpwire.events.bus import Subscription
from cdpwire.models import EventEnvelope

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventSource(Protocol):
    """Anything that can attach a subscription for one event method."""

    def subscribe(self, method: Optional[str] = None) -> Subscription: ...


class TypedSubscription(Generic[T]):
    """A subscription that yields decoded event records."""

    def __init__(
        self,
        subscription: Subscription,
        decode: Callable[[dict[str, Any]], T],
        *,
        parameterless: bool = False,
    ) -> None:
        self._subscription = subscription
        self._decode = decode
        self._parameterless = parameterless

    @property
    def subscription(self) -> Subscription:
        """The raw subscription underneath."""
        return self._subscription

    @property
    def closed(self) -> bool:
        return self._subscription.closed

    def _convert(self, envelope: EventEnvelope) -> Optional[T]:
        params = envelope.params
        if params is None:
            if not self._parameterless:
                return None
            params = {}
        try:
            return self._decode(params)
        except Exception as e:
            logger.warning(f"Dropping undecodable {envelope.method} event: {e}")
            return None

    async def get(self, timeout: Optional[float] = None) -> T:
        """Wait for the next decodable event."""
        while True:
            value = self._convert(await self._subscription.get(timeout))
            if value is not None:
                return value

    def close(self) -> None:
        self._subscription.close()

    def __aiter__(self) -> "TypedSubscription[T]":
        return self

    async def __anext__(self) -> T:
        async for envelope in self._subscription:
            value = self._convert(envelope)
            if value is not None:
                return value
        raise StopAsyncIteration

    async def __aenter__(self) -> "TypedSubscription[T]":
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.close()


class TypedEventStream(Generic[T]):
    """Lazy, restartable stream of one decoded event type.

    Example:
        paused = client.debugger.paused   # nothing attached yet
        sub = paused.subscribe()          # attached now
        await client.debugger.enable()
        event = await sub.get()
    """

    def __init__(
        self,
        source: EventSource,
        method: str,
        decode: Callable[[dict[str, Any]], T],
        *,
        parameterless: bool = False,
    ) -> None:
        self._source = source
        self.method = method
        self._decode = decode
        self.parameterless = parameterless

    def subscribe(self) -> TypedSubscription[T]:
        """Attach a new subscription immediately."""
        return TypedSubscription(
            self._source.subscribe(self.method),
            self._decode,
            parameterless=self.parameterless,
        )

    def __aiter__(self) -> TypedSubscription[T]:
        return self.subscribe()

    async def first(self, timeout: Optional[float] = None) -> T:
        """Wait for the next event of this type."""
        async with self.subscribe() as sub:
            return await sub.get(timeout)

    def __repr__(self) -> str:
        return f"TypedEventStream({self.method!r})"


__all__ = ["EventSource", "TypedSubscription", "TypedEventStream"]
