"""Tests for transport/target.py module.

Runs the transport against a real child process (fake_server.py) speaking
newline-delimited JSON-RPC.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

import pytest

from mcp_cache.core.errors import (
    ConnectionClosedError,
    ErrorCode,
    RemoteError,
    RequestTimeoutError,
    SpawnError,
)
from mcp_cache.transport.target import TargetTransport

FAKE_SERVER = Path(__file__).parent / "fake_server.py"


def make_transport(**kwargs: Any) -> TargetTransport:
    return TargetTransport(sys.executable, ["-u", str(FAKE_SERVER)], **kwargs)


class TestLifecycle:
    """Spawning and stopping the child."""

    @pytest.mark.asyncio
    async def test_given_missing_executable_when_start_then_spawn_error(
        self, tmp_path: Path
    ) -> None:
        """A command that cannot be executed raises SpawnError."""
        # Given
        transport = TargetTransport(str(tmp_path / "does-not-exist"))

        # When / Then
        with pytest.raises(SpawnError) as exc_info:
            await transport.start()
        assert exc_info.value.code == ErrorCode.SPAWN_FAILED
        assert not transport.is_running

    @pytest.mark.asyncio
    async def test_start_then_stop(self) -> None:
        """Started transport reports running and stops cleanly."""
        transport = make_transport()
        await transport.start()
        try:
            assert transport.is_running
            assert transport.pid is not None
        finally:
            await transport.stop()
        assert not transport.is_running

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self) -> None:
        """Stopping twice, or stopping an unstarted transport, is harmless."""
        await make_transport().stop()

        transport = make_transport()
        await transport.start()
        await transport.stop()
        await transport.stop()

    @pytest.mark.asyncio
    async def test_send_before_start_raises_connection_closed(self) -> None:
        """Requests on an unstarted transport fail immediately."""
        with pytest.raises(ConnectionClosedError):
            await make_transport().send_request("echo")

    @pytest.mark.asyncio
    async def test_send_after_stop_raises_connection_closed(self) -> None:
        """Requests after stop fail immediately."""
        transport = make_transport()
        await transport.start()
        await transport.stop()

        with pytest.raises(ConnectionClosedError):
            await transport.send_request("echo")


class TestRequests:
    """Request/response correlation."""

    @pytest.mark.asyncio
    async def test_given_request_when_answered_then_result_returned(self) -> None:
        """The result member of the correlated response is returned."""
        # Given
        transport = make_transport()
        await transport.start()

        try:
            # When
            result = await transport.send_request("echo", {"value": 42})

            # Then
            assert result == {"value": 42}
            assert transport.pending_count == 0
        finally:
            await transport.stop()

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_correlated_by_id(self) -> None:
        """Each caller receives the response matching its own request."""
        transport = make_transport()
        await transport.start()
        try:
            results = await asyncio.gather(
                *(transport.send_request("echo", {"n": n}) for n in range(10))
            )
            assert results == [{"n": n} for n in range(10)]
        finally:
            await transport.stop()

    @pytest.mark.asyncio
    async def test_given_error_response_when_request_then_remote_error(self) -> None:
        """A JSON-RPC error surfaces as RemoteError carrying the remote fields."""
        transport = make_transport()
        await transport.start()
        try:
            with pytest.raises(RemoteError) as exc_info:
                await transport.send_request("fail")
        finally:
            await transport.stop()

        error = exc_info.value
        assert error.message == "boom"
        assert error.remote_code == -32000
        assert error.details["data"] == {"hint": "x"}

    @pytest.mark.asyncio
    async def test_given_no_answer_when_deadline_passes_then_timeout(self) -> None:
        """An unanswered request raises RequestTimeoutError and is cleared."""
        # Given
        transport = make_transport(request_timeout=0.2)
        await transport.start()

        try:
            # When / Then
            with pytest.raises(RequestTimeoutError) as exc_info:
                await transport.send_request("hang")
            assert exc_info.value.message == "Request timeout: hang"
            assert exc_info.value.retryable is True
            assert transport.pending_count == 0

            # The transport stays usable after a timeout
            assert await transport.send_request("echo", {"a": 1}) == {"a": 1}
        finally:
            await transport.stop()

    @pytest.mark.asyncio
    async def test_response_split_across_reads_is_reassembled(self) -> None:
        """A message written in two pieces is parsed once complete."""
        transport = make_transport()
        await transport.start()
        try:
            result = await transport.send_request("split", {"text": "x" * 1000})
            assert result == {"text": "x" * 1000}
        finally:
            await transport.stop()

    @pytest.mark.asyncio
    async def test_malformed_lines_are_ignored(self) -> None:
        """Invalid JSON and non-object lines do not disturb the connection."""
        transport = make_transport()
        await transport.start()
        try:
            assert await transport.send_request("garbage") == {"ok": True}
            assert await transport.send_request("echo", {"b": 2}) == {"b": 2}
        finally:
            await transport.stop()

    @pytest.mark.asyncio
    async def test_stderr_output_does_not_interfere(self) -> None:
        """Child stderr is drained separately from the protocol stream."""
        transport = make_transport(debug=True)
        await transport.start()
        try:
            assert await transport.send_request("stderr") == {"ok": True}
        finally:
            await transport.stop()


class TestChildMessages:
    """Notifications and requests initiated by the child."""

    @pytest.mark.asyncio
    async def test_notifications_reach_every_listener(self) -> None:
        """Sync and async listeners both receive the notification."""
        transport = make_transport()
        seen_sync: list[dict[str, Any]] = []
        seen_async: list[dict[str, Any]] = []

        async def async_listener(message: dict[str, Any]) -> None:
            seen_async.append(message)

        transport.on_notification(seen_sync.append)
        transport.on_notification(async_listener)
        await transport.start()
        try:
            await transport.send_request("notify", {"progress": 50})
        finally:
            await transport.stop()

        assert [m["method"] for m in seen_sync] == ["notifications/progress"]
        assert seen_async[0]["params"] == {"progress": 50}

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_dispatch(self) -> None:
        """An exception in one listener is logged and later listeners still run."""
        transport = make_transport()
        seen: list[dict[str, Any]] = []

        def broken(_message: dict[str, Any]) -> None:
            raise RuntimeError("listener bug")

        transport.on_notification(broken)
        transport.on_notification(seen.append)
        await transport.start()
        try:
            assert await transport.send_request("notify", {}) == {"ok": True}
        finally:
            await transport.stop()

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_ping_from_child_is_answered(self) -> None:
        """A ping request from the child receives an empty result."""
        transport = make_transport()
        await transport.start()
        try:
            answer = await transport.send_request("ask", {"method": "ping"})
        finally:
            await transport.stop()

        assert answer == {"jsonrpc": "2.0", "id": "srv-1", "result": {}}

    @pytest.mark.asyncio
    async def test_unknown_request_from_child_gets_method_not_found(self) -> None:
        """Other child requests are rejected with -32601."""
        transport = make_transport()
        await transport.start()
        try:
            answer = await transport.send_request("ask", {"method": "sampling/createMessage"})
        finally:
            await transport.stop()

        assert answer["error"]["code"] == -32601


class TestChildExit:
    """Behaviour when the child process goes away."""

    @pytest.mark.asyncio
    async def test_given_child_exits_when_request_pending_then_connection_closed(self) -> None:
        """Pending requests fail with ConnectionClosedError when the child exits."""
        # Given
        transport = make_transport(request_timeout=10.0)
        await transport.start()

        try:
            # When / Then
            with pytest.raises(ConnectionClosedError) as exc_info:
                await transport.send_request("exit")
            assert exc_info.value.code == ErrorCode.CONNECTION_CLOSED
            assert exc_info.value.details["exit_code"] == 3

            # Later requests fail fast
            with pytest.raises(ConnectionClosedError):
                await transport.send_request("echo")
            assert not transport.is_running
        finally:
            await transport.stop()
