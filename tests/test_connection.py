"""
Tests for the CDP dispatch core.

Drives a CDPConnection over the in-memory FakeTransport from conftest.
"""

import asyncio

import pytest

from cdpwire.cdp.connection import CDPConnection, ConnectionState
from cdpwire.config.options import ConnectionOptions
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
from cdpwire.models import CommandMode

from conftest import FakeTransport, attach_session


class GatedTransport(FakeTransport):
    """FakeTransport whose writes block until ``gate`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    async def send(self, text: str) -> None:
        self.entered.set()
        await self.gate.wait()
        await super().send(text)


class TestCallCommand:
    """Tests for command/response correlation."""

    @pytest.mark.asyncio
    async def test_evaluate_result(self, connection, transport):
        """Test a result response reaches the caller decoded."""
        task = asyncio.create_task(
            connection.call_command("Runtime.evaluate", {"expression": "1+1"})
        )
        command = await transport.next_command()
        assert command == {
            "id": command["id"],
            "method": "Runtime.evaluate",
            "params": {"expression": "1+1"},
        }

        transport.feed(
            {"id": command["id"], "result": {"result": {"type": "number", "value": 2}}}
        )
        result = await task
        assert result["result"]["value"] == 2

    @pytest.mark.asyncio
    async def test_evaluate_error(self, connection, transport):
        """Test an error response raises ProtocolError with the exact code and message."""
        task = asyncio.create_task(
            connection.call_command("Runtime.evaluate", {"expression": "1+"})
        )
        command = await transport.next_command()
        transport.feed(
            {
                "id": command["id"],
                "error": {"code": -32000, "message": "Uncaught SyntaxError"},
            }
        )

        with pytest.raises(ProtocolError) as exc_info:
            await task
        assert exc_info.value.code == -32000
        assert exc_info.value.message == "Uncaught SyntaxError"
        assert exc_info.value.method == "Runtime.evaluate"

    @pytest.mark.asyncio
    async def test_result_absent(self, connection, transport):
        """Test a response without result returns None."""
        task = asyncio.create_task(connection.call_command("Page.enable"))
        command = await transport.next_command()
        assert "params" not in command
        transport.feed({"id": command["id"]})
        assert await task is None

    @pytest.mark.asyncio
    async def test_send_alias(self, connection, transport):
        """Test send behaves like call_command."""
        transport.auto_reply("Browser.getVersion", {"product": "Chrome/120"})
        result = await connection.send("Browser.getVersion")
        assert result == {"product": "Chrome/120"}

    @pytest.mark.asyncio
    async def test_ids_unique_under_concurrency(self, connection, transport):
        """Test concurrent calls get pairwise distinct ids."""
        tasks = [
            asyncio.create_task(connection.call_command("X.y", {"n": i}))
            for i in range(50)
        ]
        commands = [await transport.next_command() for _ in range(50)]
        ids = [c["id"] for c in commands]
        assert len(set(ids)) == 50

        for c in commands:
            transport.feed({"id": c["id"], "result": {"n": c["params"]["n"]}})
        results = await asyncio.gather(*tasks)
        assert [r["n"] for r in results] == list(range(50))

    @pytest.mark.asyncio
    async def test_out_of_order_responses(self, connection, transport):
        """Test each caller gets its own result when responses arrive reversed."""
        task_a = asyncio.create_task(connection.call_command("A.a"))
        task_b = asyncio.create_task(connection.call_command("B.b"))
        cmd_a = await transport.next_command()
        cmd_b = await transport.next_command()

        transport.feed({"id": cmd_b["id"], "result": {"who": "B"}})
        transport.feed({"id": cmd_a["id"], "result": {"who": "A"}})

        assert (await task_a)["who"] == "A"
        assert (await task_b)["who"] == "B"

    @pytest.mark.asyncio
    async def test_duplicate_response_ignored(self, connection, transport):
        """Test a second response with the same id does not change the result."""
        task = asyncio.create_task(connection.call_command("X.y"))
        command = await transport.next_command()
        transport.feed({"id": command["id"], "result": {"v": 1}})
        transport.feed({"id": command["id"], "result": {"v": 2}})
        assert await task == {"v": 1}

        transport.auto_reply("X.z", {"ok": True})
        assert await connection.call_command("X.z") == {"ok": True}
        assert len(connection.pending) == 0

    @pytest.mark.asyncio
    async def test_unencodable_params(self, connection, transport):
        """Test params that cannot be serialized raise InvalidCommand before sending."""
        with pytest.raises(InvalidCommand) as exc_info:
            await connection.call_command("X.y", {"a": {1, 2}})
        assert isinstance(exc_info.value, CDPError)
        assert exc_info.value.method == "X.y"
        assert len(connection.pending) == 0
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_params_must_be_object(self, connection, transport):
        """Test non-object params raise InvalidCommand."""
        with pytest.raises(InvalidCommand):
            await connection.call_command("X.y", ["x"])
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_unknown_response_id(self, connection, transport):
        """Test a response for an id never issued leaves other calls alone."""
        task = asyncio.create_task(connection.call_command("X.y"))
        command = await transport.next_command()

        transport.feed({"id": 999, "result": {"stray": True}})
        transport.feed({"id": command["id"], "result": {"mine": True}})
        assert await task == {"mine": True}
        assert connection.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_lazy_start(self, transport):
        """Test the first command starts an idle connection."""
        conn = CDPConnection(transport)
        assert conn.state is ConnectionState.IDLE

        transport.auto_reply("X.y", {})
        await conn.call_command("X.y")
        assert conn.state is ConnectionState.CONNECTED
        await conn.close()


class TestTimeoutsAndCancellation:
    """Tests for callers that stop waiting."""

    @pytest.mark.asyncio
    async def test_timeout(self, connection, transport):
        """Test a missing response raises CommandTimeout and frees the slot."""
        with pytest.raises(CommandTimeout) as exc_info:
            await connection.call_command("X.y", timeout=0.05)
        assert isinstance(exc_info.value, TimeoutError)
        assert exc_info.value.method == "X.y"
        assert exc_info.value.timeout == 0.05
        assert len(connection.pending) == 0

    @pytest.mark.asyncio
    async def test_late_response_after_timeout(self, connection, transport):
        """Test a response arriving after the timeout is dropped."""
        with pytest.raises(CommandTimeout):
            await connection.call_command("X.y", timeout=0.05)
        late_id = transport.sent[-1]["id"]
        transport.feed({"id": late_id, "result": {}})

        transport.auto_reply("X.z", {"ok": True})
        assert await connection.call_command("X.z") == {"ok": True}

    @pytest.mark.asyncio
    async def test_default_timeout_from_options(self, transport):
        """Test command_timeout applies when no timeout is passed."""
        conn = CDPConnection(transport, options=ConnectionOptions(command_timeout=0.05))
        with pytest.raises(CommandTimeout):
            await conn.call_command("X.y")
        await conn.close()

    @pytest.mark.asyncio
    async def test_cancellation(self, connection, transport):
        """Test a cancelled caller leaves no pending entry behind."""
        task = asyncio.create_task(connection.call_command("X.y"))
        command = await transport.next_command()
        assert command["id"] in connection.pending

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(connection.pending) == 0

        transport.feed({"id": command["id"], "result": {}})
        transport.auto_reply("X.z", {"ok": True})
        assert await connection.call_command("X.z") == {"ok": True}


class TestTransportFailures:
    """Tests for write failures and malformed input."""

    @pytest.mark.asyncio
    async def test_write_failure(self, connection, transport):
        """Test a failed write raises TransportError and keeps the connection."""
        transport.fail_writes = TransportError("write failed")
        with pytest.raises(TransportError) as exc_info:
            await connection.call_command("X.y")
        assert exc_info.value.method == "X.y"
        assert len(connection.pending) == 0
        assert connection.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_write_on_closed_transport_tears_down(self, connection, transport):
        """Test a write to a transport that reports itself closed closes the connection."""
        transport._open = False
        with pytest.raises(TransportError):
            await connection.call_command("X.y")
        await asyncio.wait_for(connection.wait_closed(), 1.0)
        assert connection.state is ConnectionState.CLOSED
        assert connection._teardown_task is not None
        assert connection._teardown_task.done()

    @pytest.mark.asyncio
    async def test_malformed_frame_dropped(self, connection, transport):
        """Test garbage frames are dropped without closing the connection."""
        task = asyncio.create_task(connection.call_command("X.y"))
        command = await transport.next_command()

        transport.feed("not json at all")
        transport.feed("[]")
        transport.feed({"neither": "id nor method"})
        transport.feed({"id": command["id"], "result": {"ok": True}})

        assert await task == {"ok": True}
        assert connection.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_malformed_response_fails_its_call(self, connection, transport):
        """Test a response carrying both result and error fails that call only."""
        task = asyncio.create_task(connection.call_command("X.y"))
        other = asyncio.create_task(connection.call_command("X.z"))
        command = await transport.next_command()
        other_command = await transport.next_command()

        transport.feed(
            {"id": command["id"], "result": {}, "error": {"code": 1, "message": "x"}}
        )
        transport.feed({"id": other_command["id"], "result": {"ok": True}})

        with pytest.raises(MalformedMessage) as exc_info:
            await task
        assert exc_info.value.message_id == command["id"]
        assert exc_info.value.method == "X.y"
        assert await other == {"ok": True}

    @pytest.mark.asyncio
    async def test_inbound_command_dropped(self, connection, transport):
        """Test a command frame from the browser is ignored."""
        events = connection.subscribe()
        transport.feed({"id": 1, "method": "Page.enable"})
        transport.feed({"method": "X.done", "params": {}})
        assert (await events.get(timeout=1.0)).method == "X.done"


class TestEvents:
    """Tests for event delivery through the connection."""

    @pytest.mark.asyncio
    async def test_event_before_enable_response(self, connection, transport):
        """Test an event sent before a response is delivered before the call returns."""
        paused = connection.subscribe("Debugger.paused")
        task = asyncio.create_task(connection.call_command("Debugger.enable"))
        command = await transport.next_command()

        transport.feed(
            {"method": "Debugger.paused", "params": {"reason": "other", "callFrames": []}}
        )
        transport.feed({"id": command["id"], "result": {"debuggerId": "D1"}})
        await task

        event = paused.get_nowait()
        assert event.params["reason"] == "other"

    @pytest.mark.asyncio
    async def test_two_subscribers(self, connection, transport):
        """Test every subscriber sees every event in wire order."""
        first = connection.subscribe("Network.requestWillBeSent")
        second = connection.subscribe("Network.requestWillBeSent")
        for i in range(3):
            transport.feed({"method": "Network.requestWillBeSent", "params": {"n": i}})

        assert [(await first.get(timeout=1.0)).params["n"] for _ in range(3)] == [0, 1, 2]
        assert [(await second.get(timeout=1.0)).params["n"] for _ in range(3)] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_events_stream(self, connection, transport):
        """Test the events property yields every event from every session."""
        events = connection.events
        transport.feed({"method": "A.b", "params": {}})
        transport.feed({"method": "C.d", "params": {}, "sessionId": "S9"})

        assert (await events.get(timeout=1.0)).method == "A.b"
        event = await events.get(timeout=1.0)
        assert event.method == "C.d"
        assert event.session_id == "S9"

    @pytest.mark.asyncio
    async def test_on_handler(self, connection, transport):
        """Test callback handlers receive events."""
        seen = asyncio.Queue()
        task = connection.on("Page.loadEventFired", seen.put_nowait)
        transport.feed({"method": "Page.loadEventFired", "params": {"timestamp": 1.0}})

        event = await asyncio.wait_for(seen.get(), 1.0)
        assert event.params["timestamp"] == 1.0
        connection.off(task)

    @pytest.mark.asyncio
    async def test_wait_for(self, connection, transport):
        """Test wait_for returns the first matching event."""
        waiter = asyncio.create_task(
            connection.wait_for(
                "Page.frameNavigated",
                predicate=lambda e: e.params["url"] == "b",
                timeout=1.0,
            )
        )
        await asyncio.sleep(0)
        transport.feed({"method": "Page.frameNavigated", "params": {"url": "a"}})
        transport.feed({"method": "Page.frameNavigated", "params": {"url": "b"}})
        assert (await waiter).params["url"] == "b"

    @pytest.mark.asyncio
    async def test_wait_idle(self, connection, transport):
        """Test wait_idle returns once events stop arriving."""
        sub = connection.subscribe("X.y")
        transport.feed({"method": "X.y", "params": {}})
        await sub.get(timeout=1.0)
        await connection.wait_idle(idle_time=0.02, timeout=1.0)

    @pytest.mark.asyncio
    async def test_wait_idle_timeout(self, connection, transport):
        """Test wait_idle gives up if events keep arriving."""

        async def chatter():
            while True:
                transport.feed({"method": "X.y", "params": {}})
                await asyncio.sleep(0.005)

        feeder = asyncio.create_task(chatter())
        try:
            with pytest.raises(TimeoutError):
                await connection.wait_idle(idle_time=0.2, timeout=0.05)
        finally:
            feeder.cancel()


class TestSessionRouting:
    """Tests for session-addressed commands."""

    @pytest.mark.asyncio
    async def test_unknown_session_rejected(self, connection, transport):
        """Test a command to an unattached session fails without touching the wire."""
        with pytest.raises(UnknownSession) as exc_info:
            await connection.call_command("Page.enable", session_id="nope")
        assert exc_info.value.session_id == "nope"
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_attached_session_addressed(self, connection, transport):
        """Test a command to an attached session carries its sessionId."""
        await attach_session(connection, transport, "S1", "T1")
        transport.auto_reply("Page.enable", {})
        await connection.call_command("Page.enable", session_id="S1")
        assert transport.sent[-1]["sessionId"] == "S1"

    @pytest.mark.asyncio
    async def test_untracked_sessions(self, transport):
        """Test track_sessions=False skips the router check."""
        conn = CDPConnection(transport, options=ConnectionOptions(track_sessions=False))
        transport.auto_reply("Page.enable", {})
        await conn.call_command("Page.enable", session_id="anything")
        assert transport.sent[-1]["sessionId"] == "anything"
        await conn.close()

    @pytest.mark.asyncio
    async def test_detach_fails_pending_calls(self, connection, transport):
        """Test calls pending on a session fail once it detaches."""
        await attach_session(connection, transport, "S1", "T1")
        on_session = asyncio.create_task(
            connection.call_command("Runtime.evaluate", session_id="S1")
        )
        on_root = asyncio.create_task(connection.call_command("Browser.getVersion"))
        await transport.next_command()
        root_command = await transport.next_command()

        transport.feed(
            {"method": "Target.detachedFromTarget", "params": {"sessionId": "S1"}}
        )
        with pytest.raises(UnknownSession):
            await on_session
        assert not on_root.done()

        transport.feed({"id": root_command["id"], "result": {}})
        assert await on_root == {}
        with pytest.raises(UnknownSession):
            await connection.call_command("Runtime.evaluate", session_id="S1")


class TestPrepareHooks:
    """Tests for per-connection prepare hooks."""

    @pytest.mark.asyncio
    async def test_hook_runs_once_before_default_commands(self, connection, transport):
        """Test hooks run once, before the first default-mode command."""
        calls = []

        async def hook(conn):
            calls.append("hook")
            await conn.call_command("Runtime.enable", mode=CommandMode.ONE_SHOT)

        connection.add_prepare_hook(hook)
        transport.auto_reply("Runtime.enable", {})
        transport.auto_reply("X.y", {})

        await connection.call_command("X.y")
        await connection.call_command("X.y")

        assert calls == ["hook"]
        assert [c["method"] for c in transport.sent] == ["Runtime.enable", "X.y", "X.y"]

    @pytest.mark.asyncio
    async def test_one_shot_skips_hooks(self, connection, transport):
        """Test ONE_SHOT commands do not trigger the hooks."""
        calls = []

        async def hook(conn):
            calls.append("hook")

        connection.add_prepare_hook(hook)
        transport.auto_reply("X.y", {})
        await connection.call_command("X.y", mode=CommandMode.ONE_SHOT)
        assert calls == []

        await connection.call_command("X.y")
        assert calls == ["hook"]

    @pytest.mark.asyncio
    async def test_hook_default_mode_does_not_deadlock(self, connection, transport):
        """Test a hook issuing a default-mode command does not re-enter itself."""

        async def hook(conn):
            await conn.call_command("Runtime.enable")

        connection.add_prepare_hook(hook)
        transport.auto_reply("Runtime.enable", {})
        transport.auto_reply("X.y", {})
        await asyncio.wait_for(connection.call_command("X.y"), 1.0)
        assert [c["method"] for c in transport.sent] == ["Runtime.enable", "X.y"]

    @pytest.mark.asyncio
    async def test_failing_hook_is_retried(self, connection, transport):
        """Test a hook that raised runs again on the next command."""
        attempts = []

        async def hook(conn):
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("not yet")

        connection.add_prepare_hook(hook)
        transport.auto_reply("X.y", {})
        with pytest.raises(RuntimeError):
            await connection.call_command("X.y")
        await connection.call_command("X.y")
        assert len(attempts) == 2


class TestTeardown:
    """Tests for closing the connection."""

    @pytest.mark.asyncio
    async def test_remote_close_fails_pending_and_ends_subscribers(self, connection, transport):
        """Test transport closure fails every pending call and completes every stream."""
        tasks = [asyncio.create_task(connection.call_command("X.y")) for _ in range(3)]
        subs = [connection.subscribe("A.b"), connection.subscribe()]
        for _ in range(3):
            await transport.next_command()

        transport.end()

        for task in tasks:
            with pytest.raises(ConnectionClosed):
                await asyncio.wait_for(task, 1.0)
        for sub in subs:
            assert [e async for e in sub] == []

        await asyncio.wait_for(connection.wait_closed(), 1.0)
        assert connection.state is ConnectionState.CLOSED
        assert connection.close_reason == "Remote closed"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, connection, transport):
        """Test close can be called repeatedly."""
        await connection.close()
        await connection.close()
        assert connection.closed
        assert transport.close_calls == 1

    @pytest.mark.asyncio
    async def test_call_after_close(self, connection, transport):
        """Test commands on a closed connection fail without touching the wire."""
        await connection.close()
        with pytest.raises(ConnectionClosed):
            await connection.call_command("X.y")
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_cannot_restart(self, connection):
        """Test a closed connection cannot be started again."""
        await connection.close()
        with pytest.raises(ConnectionClosed):
            connection.start()

    @pytest.mark.asyncio
    async def test_close_with_pending_call(self, connection, transport):
        """Test a local close fails in-flight calls with the close reason."""
        task = asyncio.create_task(connection.call_command("X.y"))
        await transport.next_command()
        await connection.close("shutting down")

        with pytest.raises(ConnectionClosed) as exc_info:
            await task
        assert exc_info.value.reason == "shutting down"

    @pytest.mark.asyncio
    async def test_close_during_write(self):
        """Test calls mid-write or queued on the write lock fail with the close reason."""
        transport = GatedTransport()
        conn = CDPConnection(transport)
        conn.start()

        first = asyncio.create_task(conn.call_command("X.first"))
        await asyncio.wait_for(transport.entered.wait(), 1.0)
        second = asyncio.create_task(conn.call_command("X.second"))
        for _ in range(5):
            await asyncio.sleep(0)
        assert len(conn.pending) == 2

        await conn.close("bye")
        transport.gate.set()

        for task in (first, second):
            with pytest.raises(ConnectionClosed) as exc_info:
                await asyncio.wait_for(task, 1.0)
            assert exc_info.value.reason == "bye"
        assert transport.sent == []
        assert len(conn.pending) == 0

    @pytest.mark.asyncio
    async def test_close_idle_connection(self):
        """Test closing a connection that never started."""
        transport = FakeTransport()
        conn = CDPConnection(transport)
        await conn.close()
        assert conn.state is ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_context_manager(self, transport):
        """Test async with starts and closes the connection."""
        async with CDPConnection(transport) as conn:
            assert conn.state is ConnectionState.CONNECTED
        assert conn.state is ConnectionState.CLOSED
