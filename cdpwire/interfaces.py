"""
Abstract base interfaces for cdpwire.

This module defines the abstract base classes the connection, its sessions and
its transports follow. A client is anything that can send commands and hand
out event subscriptions; the typed domains only ever talk to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional, TypeVar

from cdpwire.models import CommandMode

if TYPE_CHECKING:
    from cdpwire.domains import Browser, Debugger, Domain, Runtime, Target
    from cdpwire.events.bus import Subscription

D = TypeVar("D", bound="Domain")


class BaseTransport(ABC):
    """Abstract text-frame channel to the browser.

    Implementations deliver whole frames in order. ``recv`` raises
    ``ConnectionClosed`` once the channel has ended.
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether frames can still be sent."""
        ...

    @abstractmethod
    async def send(self, text: str) -> None:
        """Write one text frame."""
        ...

    @abstractmethod
    async def recv(self) -> str:
        """Read the next text frame."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        ...


class BaseCDPClient(ABC):
    """Abstract command-and-event client.

    Both the root connection and attached sessions implement this. Each
    instance owns its own domain registry.
    """

    session_id: Optional[str] = None

    def __init__(self) -> None:
        self._domains: dict[type, Any] = {}

    @abstractmethod
    async def call_command(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        session_id: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> Optional[dict[str, Any]]:
        """Send a command and wait for its result."""
        ...

    @abstractmethod
    def subscribe(self, method: Optional[str] = None) -> "Subscription":
        """Attach an event subscription; None subscribes to every event."""
        ...

    def domain(self, domain_cls: type[D]) -> D:
        """Get or create this client's instance of ``domain_cls``."""
        instance = self._domains.get(domain_cls)
        if instance is None:
            instance = domain_cls(self)
            self._domains[domain_cls] = instance
        return instance

    @property
    def runtime(self) -> "Runtime":
        from cdpwire.domains.runtime import Runtime

        return self.domain(Runtime)

    @property
    def debugger(self) -> "Debugger":
        from cdpwire.domains.debugger import Debugger

        return self.domain(Debugger)

    @property
    def target(self) -> "Target":
        from cdpwire.domains.target import Target

        return self.domain(Target)

    @property
    def browser(self) -> "Browser":
        from cdpwire.domains.browser import Browser

        return self.domain(Browser)


__all__ = ["BaseTransport", "BaseCDPClient"]
