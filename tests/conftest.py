"""
Shared fixtures for cdpwire tests.

``FakeTransport`` stands in for the browser end of the WebSocket: tests feed
inbound frames into it and read the commands the connection wrote.
"""

import asyncio
import json
from typing import Any, Optional, Union

import pytest

from cdpwire.cdp.connection import CDPConnection
from cdpwire.config.options import ConnectionOptions
from cdpwire.events.bus import EventBus, Subscription
from cdpwire.exceptions import ConnectionClosed
from cdpwire.interfaces import BaseCDPClient, BaseTransport
from cdpwire.models import CommandMode


class FakeTransport(BaseTransport):
    """In-memory transport with scriptable replies."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail_writes: Optional[BaseException] = None
        self.close_calls = 0
        self._inbound: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._outbound: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._replies: dict[str, dict[str, Any]] = {}
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def feed(self, message: Union[dict[str, Any], str]) -> None:
        """Queue one inbound frame."""
        if not isinstance(message, str):
            message = json.dumps(message)
        self._inbound.put_nowait(message)

    def end(self) -> None:
        """Simulate the remote end closing the socket."""
        self._inbound.put_nowait(None)

    def auto_reply(
        self,
        method: str,
        result: Optional[dict[str, Any]] = None,
        error: Optional[dict[str, Any]] = None,
    ) -> None:
        """Answer every future ``method`` command with ``result`` or ``error``."""
        self._replies[method] = {"error": error} if error is not None else {"result": result}

    async def next_command(self, timeout: float = 1.0) -> dict[str, Any]:
        """Wait for the next command the connection writes."""
        return await asyncio.wait_for(self._outbound.get(), timeout)

    async def send(self, text: str) -> None:
        if self.fail_writes is not None:
            raise self.fail_writes
        if not self._open:
            raise ConnectionClosed("Transport closed")

        message = json.loads(text)
        self.sent.append(message)
        self._outbound.put_nowait(message)

        reply = self._replies.get(message["method"])
        if reply is not None:
            self.feed({"id": message["id"], **reply})

    async def recv(self) -> str:
        frame = await self._inbound.get()
        if frame is None:
            self._open = False
            raise ConnectionClosed("Remote closed")
        return frame

    async def close(self) -> None:
        self.close_calls += 1
        if self._open:
            self._open = False
            self._inbound.put_nowait(None)


class StubClient(BaseCDPClient):
    """Client that records commands and returns canned results."""

    def __init__(
        self,
        results: Optional[dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.session_id = session_id
        self.bus = EventBus()
        self.calls: list[tuple[str, Optional[dict[str, Any]], CommandMode]] = []
        self.results = results or {}

    async def call_command(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        session_id: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> Optional[dict[str, Any]]:
        self.calls.append((method, params, mode))
        return self.results.get(method)

    def subscribe(self, method: Optional[str] = None) -> Subscription:
        return self.bus.subscribe(method)


def target_info(target_id: str = "T1", type: str = "page") -> dict[str, Any]:
    """Build a ``Target.TargetInfo`` payload."""
    return {
        "targetId": target_id,
        "type": type,
        "title": "",
        "url": "about:blank",
        "attached": True,
    }


def attached_event(
    session_id: str,
    target_id: str = "T1",
    parent_session_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build a ``Target.attachedToTarget`` frame."""
    event: dict[str, Any] = {
        "method": "Target.attachedToTarget",
        "params": {
            "sessionId": session_id,
            "targetInfo": target_info(target_id),
            "waitingForDebugger": False,
        },
    }
    if parent_session_id is not None:
        event["sessionId"] = parent_session_id
    return event


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def options() -> ConnectionOptions:
    return ConnectionOptions(command_timeout=2.0)


@pytest.fixture
async def connection(transport: FakeTransport, options: ConnectionOptions):
    conn = CDPConnection(transport, options=options)
    conn.start()
    yield conn
    await conn.close()


@pytest.fixture
def stub_client() -> StubClient:
    return StubClient()


async def attach_session(
    connection: CDPConnection,
    transport: FakeTransport,
    session_id: str = "S1",
    target_id: str = "T1",
) -> None:
    """Feed an attachedToTarget event and wait until it was routed."""
    async with connection.subscribe("Target.attachedToTarget") as sub:
        transport.feed(attached_event(session_id, target_id))
        await sub.get(timeout=1.0)
