"""
Event system for cdpwire.

This module provides the fan-out layer between the connection's inbound loop
and any number of event consumers:
- EventBus: per-method fan-out with independent per-subscriber queues
- Subscription: one attached consumer (async iterator)
- TypedEventStream: lazy, restartable decoded view of one event method

Example:
    ```python
    from cdpwire.events import EventBus

    bus = EventBus()

    # Pull style
    async with bus.subscribe("Debugger.paused") as paused:
        event = await paused.get(timeout=5)

    # Callback style
    task = bus.on("Runtime.consoleAPICalled", lambda e: print(e.params))
    ...
    bus.off(task)
    ```
"""

from .bus import (
    ANY_SESSION,
    EventBus,
    EventHandler,
    EventPredicate,
    Subscription,
)
from .stream import (
    EventSource,
    TypedEventStream,
    TypedSubscription,
)

__all__ = [
    "ANY_SESSION",
    "EventBus",
    "EventHandler",
    "EventPredicate",
    "Subscription",
    "EventSource",
    "TypedEventStream",
    "TypedSubscription",
]
