"""
CDP dispatch core.

Multiplexes concurrent commands and event subscriptions over one transport.
A single inbound task reads frames, resolves pending calls by id and fans
events out through the bus; any number of tasks may call ``call_command``
concurrently. Everything runs on the event loop that started the connection.
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from cdpwire.cdp import codec
from cdpwire.cdp.pending import PendingCallTable
from cdpwire.cdp.router import SessionRouter
from cdpwire.cdp.session import CDPSession
from cdpwire.cdp.transport import WebSocketTransport
from cdpwire.config.defaults import DEFAULT_IDLE_TIME
from cdpwire.config.options import CDPWireConfig, ConnectionOptions
from cdpwire.events.bus import ANY_SESSION, EventBus, EventHandler, EventPredicate, Subscription
from cdpwire.exceptions import (
    CDPError,
    CommandTimeout,
    ConnectionClosed,
    InvalidCommand,
    MalformedMessage,
    ProtocolError,
    TransportError,
    UnknownSession,
)
from cdpwire.interfaces import BaseCDPClient, BaseTransport
from cdpwire.models import CommandEnvelope, CommandMode, EventEnvelope, ResponseEnvelope

logger = logging.getLogger(__name__)

PrepareHook = Callable[["CDPConnection"], Awaitable[None]]


class ConnectionState(str, Enum):
    """Lifecycle of a connection. ``CLOSED`` is terminal."""

    IDLE = "idle"
    CONNECTED = "connected"
    CLOSING = "closing"
    CLOSED = "closed"


class CDPConnection(BaseCDPClient):
    """Command and event multiplexer over one DevTools transport.

    Example:
        async with await CDPConnection.open(ws_url) as conn:
            result = await conn.call_command(
                "Runtime.evaluate", {"expression": "1 + 1"}
            )
            print(result["result"]["value"])

            async for event in conn.debugger.paused:
                ...
    """

    def __init__(
        self,
        transport: BaseTransport,
        *,
        options: Optional[ConnectionOptions] = None,
        router: Optional[SessionRouter] = None,
    ) -> None:
        """Initialize the connection.

        Args:
            transport: Open transport to the browser.
            options: Dispatch options.
            router: Session table, shared if given.
        """
        super().__init__()
        self._transport = transport
        self._options = options or ConnectionOptions()
        self._router = router if router is not None else SessionRouter()
        self._pending = PendingCallTable()
        self._bus = EventBus(default_maxsize=self._options.event_buffer_size)

        self._state = ConnectionState.IDLE
        self._close_reason: Optional[str] = None
        self._closed_event = asyncio.Event()
        self._receive_task: Optional[asyncio.Task[None]] = None
        self._teardown_task: Optional[asyncio.Task[None]] = None
        self._write_lock = asyncio.Lock()
        self._message_id = 0
        self._last_event_at = time.monotonic()

        self._prepare_hooks: list[PrepareHook] = []
        self._hooks_run = 0
        self._prepare_lock = asyncio.Lock()
        self._preparing: Optional[asyncio.Task[Any]] = None

        self._sessions: weakref.WeakValueDictionary[str, CDPSession] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    async def open(
        cls,
        ws_url: str,
        *,
        config: Optional[CDPWireConfig] = None,
    ) -> "CDPConnection":
        """Connect to a DevTools WebSocket URL and start dispatching.

        Raises:
            TransportError: If the WebSocket cannot be opened.
        """
        config = config or CDPWireConfig()
        transport = await WebSocketTransport.connect(ws_url, config.transport)
        connection = cls(transport, options=config.connection)
        connection.start()
        return connection

    @property
    def transport(self) -> BaseTransport:
        return self._transport

    @property
    def options(self) -> ConnectionOptions:
        return self._options

    @property
    def router(self) -> SessionRouter:
        return self._router

    @property
    def pending(self) -> PendingCallTable:
        return self._pending

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def closed(self) -> bool:
        """True once teardown has begun."""
        return self._state in (ConnectionState.CLOSING, ConnectionState.CLOSED)

    @property
    def close_reason(self) -> Optional[str]:
        return self._close_reason

    def start(self) -> None:
        """Spawn the inbound-processing task.

        Raises:
            ConnectionClosed: If the connection was already closed.
        """
        if self._state is ConnectionState.CONNECTED:
            return
        if self.closed:
            raise ConnectionClosed(self._close_reason or "Connection closed")

        self._receive_task = asyncio.create_task(
            self._receive_loop(), name="cdpwire-receive"
        )
        self._state = ConnectionState.CONNECTED
        logger.debug("CDP dispatcher started")

    # Commands

    def _next_id(self) -> int:
        self._message_id += 1
        return self._message_id

    def add_prepare_hook(self, hook: PrepareHook) -> None:
        """Register a coroutine to run before the first default-mode command.

        Each hook runs once per connection. Hooks receive the connection and
        must send their own commands with ``CommandMode.ONE_SHOT``.
        """
        self._prepare_hooks.append(hook)

    async def _prepare(self) -> None:
        if asyncio.current_task() is self._preparing:
            return
        async with self._prepare_lock:
            self._preparing = asyncio.current_task()
            try:
                while self._hooks_run < len(self._prepare_hooks):
                    hook = self._prepare_hooks[self._hooks_run]
                    await hook(self)
                    self._hooks_run += 1
            finally:
                self._preparing = None

    async def call_command(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        session_id: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> Optional[dict[str, Any]]:
        """Send a command and wait for its result.

        Args:
            method: Fully qualified method, e.g. ``"Page.navigate"``.
            params: Command parameters.
            session_id: Attached session to address; None for the root.
            timeout: Seconds to wait; defaults to ``options.command_timeout``.
            mode: ``ONE_SHOT`` skips the prepare hooks.

        Returns:
            The response ``result`` object, or None if it carried none.

        Raises:
            ConnectionClosed: If the connection is closing or closed.
            UnknownSession: If ``session_id`` is not attached.
            ProtocolError: If the browser answered with an error.
            CommandTimeout: If no response arrived in time.
            TransportError: If the frame could not be written.
        """
        if self.closed:
            raise ConnectionClosed(
                self._close_reason or "Connection closed",
                method=method,
                session_id=session_id,
            )
        if self._state is ConnectionState.IDLE:
            self.start()

        if (
            session_id is not None
            and self._options.track_sessions
            and session_id not in self._router
        ):
            raise UnknownSession(session_id, method=method)

        if mode is CommandMode.DEFAULT and self._hooks_run < len(self._prepare_hooks):
            await self._prepare()
            if self.closed:
                raise ConnectionClosed(
                    self._close_reason or "Connection closed",
                    method=method,
                    session_id=session_id,
                )

        message_id = self._next_id()
        try:
            envelope = CommandEnvelope(
                id=message_id, method=method, params=params, session_id=session_id
            )
            text = codec.encode(envelope)
        except (TypeError, ValueError) as e:
            # pydantic's ValidationError is a ValueError
            raise InvalidCommand(
                f"Cannot encode command: {e}", method=method, session_id=session_id
            ) from e
        future = self._pending.register(message_id, method, session_id)

        sent = False
        try:
            async with self._write_lock:
                # teardown may have failed this call while it waited for the lock
                if not (future.done() or self.closed):
                    if logger.isEnabledFor(logging.DEBUG):
                        logger.debug(
                            f"WS > CDP: {codec.truncate(text, self._options.debug_string_limit)}"
                        )
                    await self._transport.send(text)
                    sent = True
        except asyncio.CancelledError:
            self._pending.discard(message_id)
            raise
        except (CDPError, OSError) as e:
            self._pending.discard(message_id)
            if future.done() or self.closed:
                raise self._unsent_error(future, method, session_id) from e
            if not self._transport.is_open:
                self._schedule_teardown(f"Transport closed: {e}")
            raise TransportError(
                f"Failed to send command: {e}",
                method=method,
                session_id=session_id,
            ) from e

        if not sent:
            self._pending.discard(message_id)
            raise self._unsent_error(future, method, session_id)

        if timeout is None:
            timeout = self._options.command_timeout
        try:
            return await asyncio.wait_for(future, timeout)
        except TimeoutError:
            self._pending.discard(message_id)
            raise CommandTimeout(method, timeout, session_id=session_id) from None
        except asyncio.CancelledError:
            self._pending.discard(message_id)
            raise

    def _unsent_error(
        self,
        future: asyncio.Future[Any],
        method: str,
        session_id: Optional[str],
    ) -> BaseException:
        """The error for a call that never reached the wire.

        Reads the exception teardown stored on ``future`` so it is retrieved.
        """
        if future.done() and not future.cancelled():
            error = future.exception()
            if error is not None:
                return error
        return ConnectionClosed(
            self._close_reason or "Connection closed",
            method=method,
            session_id=session_id,
        )

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        session_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[dict[str, Any]]:
        """Send a CDP command and wait for response. See ``call_command``."""
        return await self.call_command(method, params, session_id, timeout=timeout)

    # Events

    @property
    def events(self) -> Subscription:
        """A new subscription to every inbound event, from every session."""
        return self._bus.subscribe()

    def subscribe(
        self,
        method: Optional[str] = None,
        *,
        session_id: Any = ANY_SESSION,
    ) -> Subscription:
        return self._bus.subscribe(method, session_id=session_id)

    def on(
        self,
        method: Optional[str],
        handler: EventHandler,
        *,
        session_id: Any = ANY_SESSION,
    ) -> asyncio.Task[None]:
        """Run ``handler`` for each matching event. See ``EventBus.on``."""
        return self._bus.on(method, handler, session_id=session_id)

    def off(self, task: asyncio.Task[None]) -> None:
        self._bus.off(task)

    async def wait_for(
        self,
        method: str,
        *,
        predicate: Optional[EventPredicate] = None,
        timeout: Optional[float] = None,
        session_id: Any = ANY_SESSION,
    ) -> EventEnvelope:
        return await self._bus.wait_for(
            method, predicate=predicate, timeout=timeout, session_id=session_id
        )

    async def wait_idle(
        self,
        idle_time: float = DEFAULT_IDLE_TIME,
        timeout: Optional[float] = None,
    ) -> None:
        """Wait until no event has arrived for ``idle_time`` seconds.

        Useful after ``enable`` calls that replay state as a burst of events.

        Raises:
            TimeoutError: If events kept arriving for ``timeout`` seconds.
        """
        async with asyncio.timeout(timeout):
            while not self.closed:
                remaining = self._last_event_at + idle_time - time.monotonic()
                if remaining <= 0:
                    return
                await asyncio.sleep(remaining)

    # Inbound

    async def _receive_loop(self) -> None:
        """Read frames until the transport ends, then tear down."""
        reason = "Connection closed by remote"
        try:
            while True:
                try:
                    raw = await self._transport.recv()
                except MalformedMessage as e:
                    logger.warning(f"Dropping unreadable frame: {e}")
                    continue
                try:
                    self._dispatch(raw)
                except Exception as e:
                    logger.exception(f"Error handling CDP message: {e}")
        except ConnectionClosed as e:
            reason = e.reason
            logger.debug(f"CDP transport closed: {reason}")
        except TransportError as e:
            reason = str(e)
            logger.warning(f"CDP receive loop stopped: {reason}")
        except Exception as e:
            reason = f"Receive loop failed: {e}"
            logger.exception(f"CDP receive loop error: {e}")

        await self._teardown(reason)

    def _dispatch(self, raw: str) -> None:
        limit = self._options.debug_string_limit
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"WS < CDP: {codec.truncate(raw, limit)}")

        try:
            envelope = codec.decode(raw)
        except MalformedMessage as e:
            logger.warning(f"{e}: {codec.truncate(raw, limit)}")
            if e.message_id is not None:
                call = self._pending.get(e.message_id)
                if call is not None:
                    e.method = call.method
                    e.session_id = call.session_id
                self._pending.resolve(e.message_id, error=e)
            return

        if isinstance(envelope, ResponseEnvelope):
            self._handle_response(envelope)
        elif isinstance(envelope, EventEnvelope):
            self._handle_event(envelope)
        else:
            logger.warning(
                f"Dropping inbound command {envelope.method} (id={envelope.id})"
            )

    def _handle_response(self, envelope: ResponseEnvelope) -> None:
        if envelope.error is None:
            self._pending.resolve(envelope.id, envelope.result)
            return

        call = self._pending.get(envelope.id)
        error = ProtocolError(
            envelope.error.code,
            envelope.error.message,
            envelope.error.data,
            method=call.method if call else None,
            session_id=call.session_id if call else envelope.session_id,
        )
        self._pending.resolve(envelope.id, error=error)

    def _handle_event(self, envelope: EventEnvelope) -> None:
        self._last_event_at = time.monotonic()
        for session_id in self._router.observe(envelope):
            self._fail_session(session_id)
        self._bus.publish(envelope)

    def _fail_session(self, session_id: str) -> None:
        failed = self._pending.fail_session(session_id, UnknownSession(session_id))
        if failed:
            logger.debug(f"Failed {failed} call(s) on detached session {session_id}")

    def forget_session(self, session_id: str) -> list[str]:
        """Drop a session (and those nested under it) from the router.

        Calls still pending on the removed sessions fail with
        ``UnknownSession``.
        """
        removed = self._router.detach(session_id)
        for sid in removed:
            self._fail_session(sid)
        return removed

    # Sessions

    def session(self, session_id: str, target_id: Optional[str] = None) -> CDPSession:
        """Get the facade for an attached session."""
        session = self._sessions.get(session_id)
        if session is None:
            session = CDPSession(self, session_id, target_id)
            self._sessions[session_id] = session
        return session

    async def attach(
        self, target_id: str, *, flatten: Optional[bool] = None
    ) -> CDPSession:
        """Attach to a target and return its session.

        Args:
            target_id: Target to attach to.
            flatten: Flat session mode; defaults to ``options.flatten``.
        """
        flatten = self._options.flatten if flatten is None else flatten
        session_id = await self.target.attach_to_target(target_id, flatten=flatten)
        # attachedToTarget normally arrives first; cover the case it did not
        if session_id not in self._router:
            self._router.attach(session_id, {"targetId": target_id})
        return self.session(session_id, target_id)

    # Teardown

    def _schedule_teardown(self, reason: str) -> None:
        if not self.closed and self._teardown_task is None:
            self._teardown_task = asyncio.get_running_loop().create_task(
                self._teardown(reason), name="cdpwire-teardown"
            )

    async def _teardown(self, reason: str) -> None:
        if self.closed:
            await self._closed_event.wait()
            return

        self._state = ConnectionState.CLOSING
        self._close_reason = reason
        logger.debug(f"Closing CDP connection: {reason}")

        task = self._receive_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._pending.fail_all(ConnectionClosed(reason))
        self._bus.close()
        self._router.clear()

        try:
            await self._transport.close()
        except (CDPError, OSError) as e:
            logger.debug(f"Error closing transport: {e}")

        self._state = ConnectionState.CLOSED
        self._closed_event.set()
        logger.debug("CDP connection closed")

    async def close(self, reason: str = "Connection closed by client") -> None:
        """Close the connection. Safe to call more than once.

        Outstanding calls fail with ``ConnectionClosed`` and every event
        subscription completes.
        """
        await self._teardown(reason)

    async def wait_closed(self) -> None:
        """Wait until the connection is fully closed."""
        await self._closed_event.wait()

    async def __aenter__(self) -> "CDPConnection":
        self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return (
            f"CDPConnection(state={self._state.value}, pending={len(self._pending)}, "
            f"sessions={len(self._router)})"
        )


__all__ = ["ConnectionState", "CDPConnection", "PrepareHook"]
