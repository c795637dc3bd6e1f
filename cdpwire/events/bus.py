"""
Async Event Bus for cdpwire.

Fans inbound protocol events out to any number of independent subscribers.
Every subscriber owns its own queue, so publishing never waits on a slow
consumer and never blocks the connection's inbound loop.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Awaitable, Callable, Optional, Union

from cdpwire.exceptions import SubscriptionClosed
from cdpwire.models import EventEnvelope

logger = logging.getLogger(__name__)

# Type aliases for clarity
EventHandler = Callable[[EventEnvelope], Union[None, Awaitable[None]]]
EventPredicate = Callable[[EventEnvelope], bool]


class _AnySession:
    """Sentinel: match events from every session, root included."""

    _instance: Optional["_AnySession"] = None

    def __new__(cls) -> "_AnySession":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANY_SESSION"


ANY_SESSION: Any = _AnySession()

_CLOSED = object()


class Subscription:
    """A live registration on the bus.

    Iterate it with ``async for`` or pull with ``get()``. Iteration ends once
    the subscription or its bus is closed and the events already queued have
    been drained.

    Example:
        async with bus.subscribe("Debugger.paused") as paused:
            async for event in paused:
                print(event.params["reason"])
    """

    def __init__(
        self,
        bus: "EventBus",
        method: Optional[str],
        *,
        session_id: Any = ANY_SESSION,
        maxsize: int = 0,
    ) -> None:
        self._bus = bus
        self._method = method
        self._session_id = session_id
        self._maxsize = maxsize
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self.dropped = 0

    @property
    def method(self) -> Optional[str]:
        """Event method this subscription listens to, None for all."""
        return self._method

    @property
    def session_id(self) -> Any:
        return self._session_id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of delivered events not yet consumed."""
        size = self._queue.qsize()
        return size - 1 if self._closed and size else size

    def matches(self, envelope: EventEnvelope) -> bool:
        """Check whether ``envelope`` belongs to this subscription."""
        if self._method is not None and envelope.method != self._method:
            return False
        if self._session_id is ANY_SESSION:
            return True
        return envelope.session_id == self._session_id

    def _deliver(self, envelope: EventEnvelope) -> bool:
        if self._closed:
            return False
        if self._maxsize and self._queue.qsize() >= self._maxsize:
            self._queue.get_nowait()
            self.dropped += 1
            logger.warning(
                f"Subscriber for {self._method or '*'} is full, "
                f"dropped oldest event ({self.dropped} total)"
            )
        self._queue.put_nowait(envelope)
        return True

    def _finish(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def _unwrap(self, item: Any) -> EventEnvelope:
        if item is _CLOSED:
            # Keep the marker so every later read also ends.
            self._queue.put_nowait(_CLOSED)
            raise SubscriptionClosed()
        return item

    async def get(self, timeout: Optional[float] = None) -> EventEnvelope:
        """Wait for the next event.

        Raises:
            SubscriptionClosed: If the subscription ended.
            TimeoutError: If ``timeout`` elapsed first.
        """
        item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        return self._unwrap(item)

    def get_nowait(self) -> EventEnvelope:
        """Return an already delivered event.

        Raises:
            asyncio.QueueEmpty: If nothing is queued.
            SubscriptionClosed: If the subscription ended.
        """
        return self._unwrap(self._queue.get_nowait())

    def close(self) -> None:
        """Detach from the bus. Events already queued stay readable."""
        self._bus.unsubscribe(self)
        self._finish()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> EventEnvelope:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration from None

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Subscription(method={self._method!r}, "
            f"session_id={self._session_id!r}, closed={self._closed})"
        )


class EventBus:
    """Per-method fan-out point for inbound events.

    Subscriptions are held weakly: one that its owner drops is detached
    automatically. Publishing is synchronous and non-blocking; it preserves
    the order of ``publish`` calls for every subscriber.

    Example:
        bus = EventBus()
        sub = bus.subscribe("Runtime.consoleAPICalled")
        bus.publish(EventEnvelope(method="Runtime.consoleAPICalled", params={}))
        event = await sub.get()
    """

    def __init__(self, *, default_maxsize: int = 0) -> None:
        self._default_maxsize = default_maxsize
        # method (None = every method) -> id(sub) -> weak ref
        self._subscriptions: dict[Optional[str], dict[int, weakref.ref[Subscription]]] = {}
        self._handler_tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(
        self,
        method: Optional[str] = None,
        *,
        session_id: Any = ANY_SESSION,
        maxsize: Optional[int] = None,
    ) -> Subscription:
        """Attach a new subscriber.

        Args:
            method: Exact event method (e.g. ``"Debugger.paused"``), or None
                for every event.
            session_id: ``ANY_SESSION`` for all sessions, None for the root
                session only, or a session id.
            maxsize: Queue bound; 0 means unbounded. Defaults to the bus
                setting.

        Returns:
            The subscription. On a closed bus it is returned already closed.
        """
        sub = Subscription(
            self,
            method,
            session_id=session_id,
            maxsize=self._default_maxsize if maxsize is None else maxsize,
        )
        if self._closed:
            sub._finish()
            return sub

        key = id(sub)
        bucket = self._subscriptions.setdefault(method, {})

        def _drop(_ref: Any, bucket: dict[int, Any] = bucket, key: int = key) -> None:
            bucket.pop(key, None)

        bucket[key] = weakref.ref(sub, _drop)
        return sub

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Detach a subscriber. Returns True if it was attached."""
        bucket = self._subscriptions.get(subscription.method)
        if not bucket:
            return False
        return bucket.pop(id(subscription), None) is not None

    def _live(self, method: Optional[str]) -> list[Subscription]:
        bucket = self._subscriptions.get(method)
        if not bucket:
            return []
        subs = []
        for ref in list(bucket.values()):
            sub = ref()
            if sub is not None:
                subs.append(sub)
        return subs

    def publish(self, envelope: EventEnvelope) -> int:
        """Deliver ``envelope`` to every matching subscriber.

        Returns:
            Number of subscribers the event was queued for.
        """
        if self._closed:
            logger.debug(f"Bus closed, not publishing {envelope.method}")
            return 0

        delivered = 0
        for sub in self._live(envelope.method) + self._live(None):
            if sub.matches(envelope) and sub._deliver(envelope):
                delivered += 1
        return delivered

    def subscriber_count(self, method: Optional[str] = None) -> int:
        """Number of live subscribers for ``method`` (None: wildcard ones)."""
        return len(self._live(method))

    def on(
        self,
        method: Optional[str],
        handler: EventHandler,
        *,
        session_id: Any = ANY_SESSION,
    ) -> asyncio.Task[None]:
        """Run ``handler`` for each matching event in a background task.

        The subscription is attached before this returns, so no event
        published afterwards is missed. Handler exceptions are logged and do
        not stop the task.

        Returns:
            The task; pass it to ``off`` to stop handling.
        """
        sub = self.subscribe(method, session_id=session_id)
        task = asyncio.create_task(self._run_handler(sub, handler))
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)
        return task

    def off(self, task: asyncio.Task[None]) -> None:
        """Stop a handler task started by ``on``."""
        if not task.done():
            task.cancel()

    async def _run_handler(self, sub: Subscription, handler: EventHandler) -> None:
        try:
            async for envelope in sub:
                try:
                    result = handler(envelope)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    logger.exception(f"Error in event handler for {envelope.method}: {e}")
        finally:
            sub.close()

    async def wait_for(
        self,
        method: str,
        *,
        predicate: Optional[EventPredicate] = None,
        timeout: Optional[float] = None,
        session_id: Any = ANY_SESSION,
    ) -> EventEnvelope:
        """Wait for the next matching event.

        Only events published after this coroutine starts are seen.

        Raises:
            TimeoutError: If ``timeout`` elapsed first.
            SubscriptionClosed: If the bus closed first.
        """
        async with self.subscribe(method, session_id=session_id) as sub:
            async with asyncio.timeout(timeout):
                while True:
                    envelope = await sub.get()
                    if predicate is None or predicate(envelope):
                        return envelope

    def close(self) -> None:
        """Complete every subscription and refuse new ones."""
        if self._closed:
            return
        self._closed = True

        count = 0
        for method in list(self._subscriptions):
            for sub in self._live(method):
                sub._finish()
                count += 1
        self._subscriptions.clear()
        logger.debug(f"Event bus closed, completed {count} subscription(s)")


__all__ = [
    "ANY_SESSION",
    "EventHandler",
    "EventPredicate",
    "Subscription",
    "EventBus",
]
