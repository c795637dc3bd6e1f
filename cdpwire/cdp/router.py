"""
Session router.

Keeps track of which flattened sessions are attached over the connection so
commands can be checked against a live session before they hit the wire.
The table is fed by Target domain events; it never sends anything itself.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from cdpwire.exceptions import UnknownSession
from cdpwire.models import EventEnvelope

logger = logging.getLogger(__name__)


@dataclass
class SessionTarget:
    """A target reachable through an attached session."""

    session_id: str
    target_id: str
    target_type: str = ""
    url: str = ""
    title: str = ""
    parent_session_id: Optional[str] = None
    attached_at: float = field(default_factory=time.time)

    @classmethod
    def from_target_info(
        cls,
        session_id: str,
        target_info: dict[str, Any],
        parent_session_id: Optional[str] = None,
    ) -> "SessionTarget":
        """Build from a ``Target.TargetInfo`` payload."""
        return cls(
            session_id=session_id,
            target_id=target_info.get("targetId", ""),
            target_type=target_info.get("type", ""),
            url=target_info.get("url", ""),
            title=target_info.get("title", ""),
            parent_session_id=parent_session_id,
        )

    def update(self, target_info: dict[str, Any]) -> None:
        self.target_type = target_info.get("type", self.target_type)
        self.url = target_info.get("url", self.url)
        self.title = target_info.get("title", self.title)


class SessionRouter:
    """Lookup table from session id to attached target.

    Example:
        router = SessionRouter()
        router.attach("S1", {"targetId": "T1", "type": "page"})
        router.resolve_target("S1").target_id   # "T1"
        router.resolve_target(None)              # None: root session
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionTarget] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> Optional[SessionTarget]:
        return self._sessions.get(session_id)

    def sessions(self) -> list[SessionTarget]:
        return list(self._sessions.values())

    def resolve_target(self, session_id: Optional[str]) -> Optional[SessionTarget]:
        """Find the target a command should be addressed to.

        Returns:
            None for the root session, otherwise the attached target.

        Raises:
            UnknownSession: If ``session_id`` is not attached.
        """
        if session_id is None:
            return None
        target = self._sessions.get(session_id)
        if target is None:
            raise UnknownSession(session_id)
        return target

    def attach(
        self,
        session_id: str,
        target_info: Optional[dict[str, Any]] = None,
        parent_session_id: Optional[str] = None,
    ) -> SessionTarget:
        """Record an attached session."""
        target = SessionTarget.from_target_info(
            session_id, target_info or {}, parent_session_id
        )
        self._sessions[session_id] = target
        logger.debug(
            f"Session {session_id} attached to {target.target_type or 'target'} "
            f"{target.target_id}"
        )
        return target

    def detach(self, session_id: str) -> list[str]:
        """Remove a session and every session nested under it.

        Returns:
            The ids that were removed, the given one first.
        """
        if session_id not in self._sessions:
            return []

        removed = [session_id]
        del self._sessions[session_id]

        children = [
            s.session_id
            for s in self._sessions.values()
            if s.parent_session_id == session_id
        ]
        for child in children:
            removed.extend(self.detach(child))

        logger.debug(f"Session {session_id} detached")
        return removed

    def clear(self) -> None:
        self._sessions.clear()

    def _sessions_for_target(self, target_id: str) -> list[str]:
        return [s.session_id for s in self._sessions.values() if s.target_id == target_id]

    def observe(self, envelope: EventEnvelope) -> list[str]:
        """Update the table from a Target domain event.

        Returns:
            Session ids that this event detached.
        """
        method = envelope.method
        if not method.startswith("Target."):
            return []
        params = envelope.params or {}

        if method == "Target.attachedToTarget":
            session_id = params.get("sessionId")
            if session_id:
                self.attach(session_id, params.get("targetInfo"), envelope.session_id)
            return []

        if method == "Target.detachedFromTarget":
            session_id = params.get("sessionId")
            return self.detach(session_id) if session_id else []

        if method == "Target.targetInfoChanged":
            info = params.get("targetInfo") or {}
            for session_id in self._sessions_for_target(info.get("targetId", "")):
                self._sessions[session_id].update(info)
            return []

        if method == "Target.targetDestroyed":
            target_id = params.get("targetId", "")
            removed: list[str] = []
            for session_id in self._sessions_for_target(target_id):
                removed.extend(self.detach(session_id))
            return removed

        return []


__all__ = ["SessionTarget", "SessionRouter"]
