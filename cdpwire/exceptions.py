"""
Exception hierarchy for cdpwire.

Every failure surfaced to a caller of ``call_command`` or to an event
subscriber is a ``CDPError`` subclass, so callers can tell a remote
"node not found" apart from a dropped connection or a local timeout.
"""

from __future__ import annotations

from typing import Any, Optional


class CDPError(Exception):
    """Base exception for all cdpwire errors."""

    def __init__(
        self,
        message: str,
        *,
        method: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.method = method
        self.session_id = session_id

    def __str__(self) -> str:
        parts = [self.message]
        if self.method:
            parts.append(f"method={self.method}")
        if self.session_id:
            parts.append(f"session_id={self.session_id}")
        return " | ".join(parts)


class MalformedMessage(CDPError):
    """Inbound frame could not be decoded as any known envelope."""

    def __init__(
        self,
        reason: str,
        raw: Any = None,
        *,
        message_id: Optional[int] = None,
    ) -> None:
        super().__init__(f"Malformed CDP message: {reason}")
        self.reason = reason
        self.raw = raw
        self.message_id = message_id


class ProtocolError(CDPError):
    """The remote end reported a command failure.

    ``code`` and ``message`` are carried verbatim from the response's
    ``error`` object. Typical codes are JSON-RPC values such as ``-32601``
    (method not found), ``-32602`` (invalid params) and ``-32000`` (generic
    command failure).
    """

    def __init__(
        self,
        code: int,
        message: str,
        data: Optional[Any] = None,
        *,
        method: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        super().__init__(message, method=method, session_id=session_id)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        prefix = f"Error while calling {self.method}: " if self.method else ""
        return f"{prefix}{self.message} (code: {self.code})"


class EmptyResultError(ProtocolError):
    """A command that returns data was answered with no ``result``."""

    CODE = -32603

    def __init__(self, method: str, *, session_id: Optional[str] = None) -> None:
        super().__init__(
            self.CODE,
            "Response carried no result",
            method=method,
            session_id=session_id,
        )


class InvalidCommand(CDPError):
    """The command could not be encoded for the wire."""


class TransportError(CDPError):
    """Local read or write failure on the underlying channel."""


class ConnectionClosed(CDPError):
    """The connection is closed; no further commands can be sent."""

    def __init__(self, reason: str = "Connection closed", **kwargs: Any) -> None:
        super().__init__(reason, **kwargs)
        self.reason = reason


class SubscriptionClosed(ConnectionClosed):
    """The event subscription was closed, by its owner or by the bus."""

    def __init__(self, reason: str = "Subscription closed", **kwargs: Any) -> None:
        super().__init__(reason, **kwargs)


class UnknownSession(CDPError):
    """A command addressed a session that is not attached."""

    def __init__(self, session_id: str, *, method: Optional[str] = None) -> None:
        super().__init__(
            f"Unknown or detached session: {session_id}",
            method=method,
            session_id=session_id,
        )


class CommandTimeout(CDPError, TimeoutError):
    """No response arrived within the command timeout."""

    def __init__(
        self,
        method: str,
        timeout: float,
        *,
        session_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Timed out after {timeout}s waiting for response",
            method=method,
            session_id=session_id,
        )
        self.timeout = timeout


__all__ = [
    "CDPError",
    "MalformedMessage",
    "ProtocolError",
    "EmptyResultError",
    "InvalidCommand",
    "TransportError",
    "ConnectionClosed",
    "SubscriptionClosed",
    "UnknownSession",
    "CommandTimeout",
]
