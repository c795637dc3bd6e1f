"""
CDP session management.

A session is a flattened attachment to one target, multiplexed over the
browser connection. It exposes the same client surface as the connection;
commands carry its ``sessionId`` and subscriptions only see its events.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from cdpwire.cdp.router import SessionTarget
from cdpwire.events.bus import EventHandler, EventPredicate, Subscription
from cdpwire.exceptions import CDPError, UnknownSession
from cdpwire.interfaces import BaseCDPClient
from cdpwire.models import CommandMode, EventEnvelope

if TYPE_CHECKING:
    from cdpwire.cdp.connection import CDPConnection
    from cdpwire.domains.target import TargetInfo

logger = logging.getLogger(__name__)


class CDPSession(BaseCDPClient):
    """A CDP session attached to a specific target.

    Example:
        session = await connection.attach(target_id)
        result = await session.runtime.evaluate("document.title")
        await session.detach()
    """

    def __init__(
        self,
        connection: "CDPConnection",
        session_id: str,
        target_id: Optional[str] = None,
    ) -> None:
        """Initialize CDP session.

        Args:
            connection: Parent connection.
            session_id: Session ID from ``Target.attachToTarget``.
            target_id: Target this session is attached to.
        """
        super().__init__()
        self._connection = connection
        self.session_id = session_id
        self._target_id = target_id
        self._detached = False

    @property
    def connection(self) -> "CDPConnection":
        return self._connection

    @property
    def target_info(self) -> Optional[SessionTarget]:
        """The router's entry for this session, if still attached."""
        return self._connection.router.get(self.session_id)

    @property
    def target_id(self) -> Optional[str]:
        info = self.target_info
        return info.target_id if info is not None else self._target_id

    @property
    def is_attached(self) -> bool:
        if self._detached or self._connection.closed:
            return False
        if not self._connection.options.track_sessions:
            return True
        return self.session_id in self._connection.router

    async def call_command(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        session_id: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> Optional[dict[str, Any]]:
        """Send a command to this session's target.

        Raises:
            UnknownSession: If the session was detached.
        """
        if self._detached:
            raise UnknownSession(self.session_id, method=method)
        return await self._connection.call_command(
            method,
            params,
            session_id if session_id is not None else self.session_id,
            timeout=timeout,
            mode=mode,
        )

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[dict[str, Any]]:
        return await self.call_command(method, params, timeout=timeout)

    @property
    def events(self) -> Subscription:
        """A new subscription to every event from this session."""
        return self.subscribe()

    def subscribe(self, method: Optional[str] = None) -> Subscription:
        return self._connection.subscribe(method, session_id=self.session_id)

    def on(self, method: Optional[str], handler: EventHandler) -> asyncio.Task[None]:
        return self._connection.on(method, handler, session_id=self.session_id)

    def off(self, task: asyncio.Task[None]) -> None:
        self._connection.off(task)

    async def wait_for(
        self,
        method: str,
        *,
        predicate: Optional[EventPredicate] = None,
        timeout: Optional[float] = None,
    ) -> EventEnvelope:
        return await self._connection.wait_for(
            method, predicate=predicate, timeout=timeout, session_id=self.session_id
        )

    async def detach(self) -> None:
        """Detach from the target.

        Further commands on this session fail with ``UnknownSession``.
        """
        if self._detached:
            return
        self._detached = True

        try:
            await self._connection.target.detach_from_target(self.session_id)
        except CDPError as e:
            logger.warning(f"Failed to detach session {self.session_id}: {e}")

        self._connection.forget_session(self.session_id)
        logger.debug(f"Detached session {self.session_id}")

    async def __aenter__(self) -> "CDPSession":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.detach()

    def __repr__(self) -> str:
        return (
            f"CDPSession(session_id={self.session_id!r}, "
            f"target_id={self.target_id!r}, attached={self.is_attached})"
        )


class TargetManager:
    """Manages CDP targets and sessions.

    Provides utilities for discovering targets and keeping track of the
    sessions opened through it.
    """

    def __init__(self, connection: "CDPConnection") -> None:
        self._connection = connection
        self._sessions: dict[str, CDPSession] = {}

    @property
    def sessions(self) -> list[CDPSession]:
        """Sessions opened through this manager that are still attached."""
        return [s for s in self._sessions.values() if s.is_attached]

    async def get_targets(self, target_type: Optional[str] = None) -> list["TargetInfo"]:
        """Get available targets, optionally only those of ``target_type``."""
        targets = await self._connection.target.get_targets()
        if target_type is None:
            return targets
        return [t for t in targets if t.type == target_type]

    async def attach(self, target_id: str) -> CDPSession:
        """Attach to a target, reusing a live session if there is one."""
        session = self._sessions.get(target_id)
        if session is not None and session.is_attached:
            return session

        session = await self._connection.attach(target_id)
        self._sessions[target_id] = session
        return session

    async def create_page(self, url: str = "about:blank") -> CDPSession:
        """Create a new page and return its session."""
        target_id = await self._connection.target.create_target(url)
        return await self.attach(target_id)

    async def close_target(self, target_id: str) -> bool:
        """Detach from a target and close it.

        Returns:
            Whether the browser reported the target closed.
        """
        session = self._sessions.pop(target_id, None)
        if session is not None:
            await session.detach()
        return await self._connection.target.close_target(target_id)

    async def enable_auto_attach(self, *, wait_for_debugger_on_start: bool = False) -> None:
        """Enable automatic attachment to new targets."""
        await self._connection.target.set_auto_attach(
            True,
            wait_for_debugger_on_start,
            flatten=self._connection.options.flatten,
        )

    async def detach_all(self) -> None:
        """Detach every session opened through this manager."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.detach()


__all__ = ["CDPSession", "TargetManager"]
