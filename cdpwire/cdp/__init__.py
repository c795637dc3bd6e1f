"""
Chrome DevTools Protocol (CDP) dispatch module for cdpwire.

This module provides the transport-level core of the client:
- CDPConnection: command/response correlation and event fan-out
- CDPSession: a flattened session attached to one target
- TargetManager: discovers targets and tracks the sessions it opens
- SessionRouter: table of attached sessions fed by Target events
- WebSocketTransport: the ``websockets`` channel underneath

Example usage:
    ```python
    from cdpwire.cdp import CDPConnection, TargetManager

    connection = await CDPConnection.open("ws://localhost:9222/devtools/browser/xxx")
    async with connection:
        result = await connection.send("Browser.getVersion")
        print(result["product"])

        manager = TargetManager(connection)
        session = await manager.create_page("https://example.com")
        await session.runtime.enable()
        evaluated = await session.runtime.evaluate("document.title")
        print(evaluated.result.value)
        await manager.detach_all()
    ```
"""

from cdpwire.cdp.codec import decode, encode, truncate
from cdpwire.cdp.connection import CDPConnection, ConnectionState, PrepareHook
from cdpwire.cdp.pending import PendingCall, PendingCallTable
from cdpwire.cdp.router import SessionRouter, SessionTarget
from cdpwire.cdp.session import CDPSession, TargetManager
from cdpwire.cdp.transport import WebSocketTransport

__all__ = [
    # Codec
    "decode",
    "encode",
    "truncate",
    # Connection
    "CDPConnection",
    "ConnectionState",
    "PrepareHook",
    # Pending calls
    "PendingCall",
    "PendingCallTable",
    # Sessions
    "CDPSession",
    "SessionRouter",
    "SessionTarget",
    "TargetManager",
    # Transport
    "WebSocketTransport",
]
