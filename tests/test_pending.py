"""
Tests for the pending-call table.
"""

import asyncio

import pytest

from cdpwire.cdp.pending import PendingCallTable
from cdpwire.exceptions import ConnectionClosed, UnknownSession


class TestPendingCallTable:
    """Tests for PendingCallTable."""

    @pytest.mark.asyncio
    async def test_register_and_resolve(self):
        """Test a registered call resolves with its result."""
        table = PendingCallTable()
        future = table.register(1, "Runtime.evaluate")
        assert 1 in table
        assert len(table) == 1

        assert table.resolve(1, {"value": 2}) is True
        assert await future == {"value": 2}
        assert 1 not in table

    @pytest.mark.asyncio
    async def test_resolve_with_error(self):
        """Test a call can be failed with an exception."""
        table = PendingCallTable()
        future = table.register(1, "X.y")
        table.resolve(1, error=ConnectionClosed())
        with pytest.raises(ConnectionClosed):
            await future

    @pytest.mark.asyncio
    async def test_resolve_exactly_once(self):
        """Test a second resolve for the same id is a no-op."""
        table = PendingCallTable()
        future = table.register(1, "X.y")
        assert table.resolve(1, {"first": True}) is True
        assert table.resolve(1, {"second": True}) is False
        assert future.result() == {"first": True}

    @pytest.mark.asyncio
    async def test_resolve_unknown_id(self):
        """Test resolving an id that was never registered is dropped."""
        table = PendingCallTable()
        future = table.register(1, "X.y")
        assert table.resolve(999, {}) is False
        assert not future.done()
        assert len(table) == 1

    @pytest.mark.asyncio
    async def test_resolve_after_cancel(self):
        """Test a response for a cancelled caller is dropped."""
        table = PendingCallTable()
        future = table.register(1, "X.y")
        future.cancel()
        assert table.resolve(1, {}) is False
        assert 1 not in table

    @pytest.mark.asyncio
    async def test_duplicate_register(self):
        """Test an id cannot be registered twice while in flight."""
        table = PendingCallTable()
        table.register(1, "X.y")
        with pytest.raises(ValueError):
            table.register(1, "X.z")

    @pytest.mark.asyncio
    async def test_discard(self):
        """Test discard forgets the call without completing it."""
        table = PendingCallTable()
        future = table.register(1, "X.y")
        assert table.discard(1) is True
        assert table.discard(1) is False
        assert not future.done()

    @pytest.mark.asyncio
    async def test_fail_all(self):
        """Test fail_all fails every call and empties the table."""
        table = PendingCallTable()
        futures = [table.register(i, "X.y") for i in range(1, 4)]
        assert table.fail_all(ConnectionClosed("gone")) == 3
        assert len(table) == 0
        for future in futures:
            with pytest.raises(ConnectionClosed):
                await future

    @pytest.mark.asyncio
    async def test_fail_session(self):
        """Test fail_session only touches calls for that session."""
        table = PendingCallTable()
        root = table.register(1, "X.y")
        s1 = table.register(2, "X.y", session_id="S1")
        s2 = table.register(3, "X.y", session_id="S2")

        assert table.fail_session("S1", UnknownSession("S1")) == 1
        with pytest.raises(UnknownSession):
            await s1
        assert not root.done()
        assert not s2.done()
        assert table.ids() == [1, 3]

    @pytest.mark.asyncio
    async def test_pending_call_metadata(self):
        """Test the stored entry keeps method, session and age."""
        table = PendingCallTable()
        table.register(1, "Page.navigate", session_id="S1")
        call = table.get(1)
        assert call.method == "Page.navigate"
        assert call.session_id == "S1"
        await asyncio.sleep(0)
        assert call.age >= 0
        assert [c.id for c in table] == [1]
