"""
cdpwire: asyncio client core for the Chrome DevTools Protocol.

Multiplexes concurrent commands and event subscriptions for the root
browser session and any number of attached target sessions over a single
WebSocket, with typed pydantic models for the protocol domains.

Basic usage:
    from cdpwire import CDPConnection

    connection = await CDPConnection.open(ws_url)
    async with connection:
        version = await connection.browser.get_version()
        print(version.product)

Events:
    async with connection.debugger.paused.subscribe() as paused:
        await connection.debugger.enable()
        event = await paused.get(timeout=10)
        print(event.reason, event.call_frames[0].function_name)

Raw commands:
    result = await connection.call_command(
        "Runtime.evaluate", {"expression": "1 + 1", "returnByValue": True}
    )
"""

__version__ = "0.1.0"
__license__ = "MIT"

from cdpwire.cdp import (
    CDPConnection,
    CDPSession,
    ConnectionState,
    SessionRouter,
    TargetManager,
    WebSocketTransport,
)
from cdpwire.config import CDPWireConfig, ConnectionOptions, TransportOptions, load_config
from cdpwire.events import ANY_SESSION, EventBus, Subscription, TypedEventStream
from cdpwire.exceptions import (
    CDPError,
    CommandTimeout,
    ConnectionClosed,
    EmptyResultError,
    InvalidCommand,
    MalformedMessage,
    ProtocolError,
    SubscriptionClosed,
    TransportError,
    UnknownSession,
)
from cdpwire.interfaces import BaseCDPClient, BaseTransport
from cdpwire.models import (
    CommandEnvelope,
    CommandMode,
    EventEnvelope,
    ResponseEnvelope,
    ResponseError,
)

__all__ = [
    # Version
    "__version__",
    # Connection
    "CDPConnection",
    "CDPSession",
    "ConnectionState",
    "SessionRouter",
    "TargetManager",
    "WebSocketTransport",
    # Interfaces
    "BaseCDPClient",
    "BaseTransport",
    # Config
    "CDPWireConfig",
    "ConnectionOptions",
    "TransportOptions",
    "load_config",
    # Events
    "ANY_SESSION",
    "EventBus",
    "Subscription",
    "TypedEventStream",
    # Models
    "CommandEnvelope",
    "CommandMode",
    "EventEnvelope",
    "ResponseEnvelope",
    "ResponseError",
    # Exceptions
    "CDPError",
    "CommandTimeout",
    "ConnectionClosed",
    "EmptyResultError",
    "InvalidCommand",
    "MalformedMessage",
    "ProtocolError",
    "SubscriptionClosed",
    "TransportError",
    "UnknownSession",
]
