"""
Pending-call table.

Maps the id of every in-flight command to the future its caller awaits.
Entries are popped before they are resolved, so each one completes exactly
once regardless of duplicate or late responses.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass
class PendingCall:
    """One command awaiting its response."""

    id: int
    method: str
    future: asyncio.Future[Any]
    session_id: Optional[str] = None
    created_at: float = field(default_factory=time.monotonic)

    @property
    def age(self) -> float:
        """Seconds since the command was registered."""
        return time.monotonic() - self.created_at


class PendingCallTable:
    """Single-resolution completion slots keyed by command id.

    All access happens on the event loop that owns the connection, which
    serializes ``register`` from callers against ``resolve`` from the inbound
    loop.
    """

    def __init__(self) -> None:
        self._calls: dict[int, PendingCall] = {}

    def __len__(self) -> int:
        return len(self._calls)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._calls

    def ids(self) -> list[int]:
        """Ids of all outstanding calls."""
        return list(self._calls)

    def get(self, message_id: int) -> Optional[PendingCall]:
        return self._calls.get(message_id)

    def __iter__(self) -> Iterator[PendingCall]:
        return iter(list(self._calls.values()))

    def register(
        self,
        message_id: int,
        method: str,
        session_id: Optional[str] = None,
    ) -> asyncio.Future[Any]:
        """Create the completion handle for a new outbound command.

        Raises:
            ValueError: If ``message_id`` is already in flight.
        """
        if message_id in self._calls:
            raise ValueError(f"Command id {message_id} is already pending")

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        self._calls[message_id] = PendingCall(
            id=message_id,
            method=method,
            future=future,
            session_id=session_id,
        )
        return future

    def resolve(
        self,
        message_id: int,
        result: Any = None,
        error: Optional[BaseException] = None,
    ) -> bool:
        """Complete the call with ``result``, or fail it with ``error``.

        Returns:
            True if a live entry was resolved, False if the id is unknown,
            was already resolved, or its caller stopped waiting.
        """
        call = self._calls.pop(message_id, None)
        if call is None:
            logger.debug(f"Dropping response for unknown id {message_id}")
            return False

        if call.future.done():
            logger.debug(
                f"Dropping late response for {call.method} (id={message_id})"
            )
            return False

        if error is not None:
            call.future.set_exception(error)
        else:
            call.future.set_result(result)
        return True

    def discard(self, message_id: int) -> bool:
        """Forget a call without resolving it."""
        return self._calls.pop(message_id, None) is not None

    def fail_all(self, error: BaseException) -> int:
        """Fail every outstanding call with ``error`` and clear the table.

        Returns:
            Number of calls that were failed.
        """
        calls = list(self._calls.values())
        self._calls.clear()

        failed = 0
        for call in calls:
            if not call.future.done():
                call.future.set_exception(error)
                failed += 1
        if failed:
            logger.debug(f"Failed {failed} pending call(s): {error}")
        return failed

    def fail_session(self, session_id: str, error: BaseException) -> int:
        """Fail only the calls addressed to ``session_id``."""
        ids = [c.id for c in self._calls.values() if c.session_id == session_id]
        failed = 0
        for message_id in ids:
            if self.resolve(message_id, error=error):
                failed += 1
        return failed


__all__ = ["PendingCall", "PendingCallTable"]
