"""
Typed protocol domains.

Each domain wraps a client (a connection or a session) and exposes its
commands as coroutines and its events as ``TypedEventStream`` attributes:

    runtime = client.domain(Runtime)
    result = await runtime.evaluate("1 + 1")
    async for event in runtime.console_api_called:
        ...
"""

from cdpwire.domains.base import (
    CDPModel,
    CDPParams,
    Domain,
    deprecated,
    experimental,
)
from cdpwire.domains.browser import Browser, GetVersionResult
from cdpwire.domains.debugger import CallFrame, Debugger, Location, PausedEvent
from cdpwire.domains.runtime import (
    EvaluateResult,
    ExceptionDetails,
    RemoteObject,
    Runtime,
)
from cdpwire.domains.target import (
    AttachedToTargetEvent,
    DetachedFromTargetEvent,
    Target,
    TargetInfo,
)

__all__ = [
    # Base
    "CDPModel",
    "CDPParams",
    "Domain",
    "experimental",
    "deprecated",
    # Runtime
    "Runtime",
    "RemoteObject",
    "ExceptionDetails",
    "EvaluateResult",
    # Debugger
    "Debugger",
    "Location",
    "CallFrame",
    "PausedEvent",
    # Target
    "Target",
    "TargetInfo",
    "AttachedToTargetEvent",
    "DetachedFromTargetEvent",
    # Browser
    "Browser",
    "GetVersionResult",
]
