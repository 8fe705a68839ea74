"""JSON-RPC transport to a wrapped MCP server running as a child process.

One transport owns one child for its whole lifetime:

- requests are correlated to responses by a monotonically increasing id
- each request waits at most ``request_timeout`` seconds
- inbound notifications are fanned out to registered listeners in order
- when the child exits every pending request fails with ConnectionClosedError
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import os
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from mcp_cache.config.constants import READ_CHUNK_BYTES, REQUEST_TIMEOUT_SEC, STOP_GRACE_SEC
from mcp_cache.core.errors import (
    ConnectionClosedError,
    InternalError,
    RemoteError,
    RequestTimeoutError,
    SpawnError,
)
from mcp_cache.transport.framing import LineBuffer, encode_message

log = structlog.get_logger(__name__)

NotificationHandler = Callable[[dict[str, Any]], Awaitable[None] | None]

METHOD_NOT_FOUND = -32601


@dataclass(frozen=True)
class PendingRequest:
    """In-flight request awaiting its correlated response."""

    method: str
    future: asyncio.Future[Any]


class TargetTransport:
    """Subprocess JSON-RPC connection to the wrapped server."""

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        request_timeout: float = REQUEST_TIMEOUT_SEC,
        debug: bool = False,
        env: dict[str, str] | None = None,
    ) -> None:
        self.command = command
        self.args = list(args)
        self.request_timeout = request_timeout
        self.debug = debug
        self._env = {**os.environ, **env} if env is not None else None

        self._process: asyncio.subprocess.Process | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._pending: dict[int, PendingRequest] = {}
        self._listeners: list[NotificationHandler] = []
        self._next_id = 0
        self._closed_reason: str | None = None
        self._exit_code: int | None = None

    @property
    def is_running(self) -> bool:
        return (
            self._process is not None
            and self._process.returncode is None
            and self._closed_reason is None
        )

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Spawn the child and start the reader tasks.

        Raises:
            SpawnError: The executable could not be launched.
        """
        if self._process is not None:
            raise InternalError.unexpected("transport already started", command=self.command)

        try:
            self._process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
            )
        except OSError as e:
            raise SpawnError.launch_failed(self.command, str(e)) from e

        log.info("target_started", command=self.command, args=self.args, pid=self._process.pid)

        reader = asyncio.create_task(self._read_stdout())
        self._tasks = [
            reader,
            asyncio.create_task(self._drain_stderr()),
            asyncio.create_task(self._watch_exit(reader)),
        ]

    async def stop(self) -> None:
        """Terminate the child, cancel background tasks, fail pending requests."""
        process = self._process
        if process is None:
            return

        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            try:
                async with asyncio.timeout(STOP_GRACE_SEC):
                    await process.wait()
            except TimeoutError:
                log.warning("target_kill", pid=process.pid)
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        self._fail_pending("transport stopped", process.returncode)
        log.info("target_stopped", pid=process.pid, exit_code=process.returncode)

    # =========================================================================
    # Outbound
    # =========================================================================

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send a request and wait for its result.

        Raises:
            RemoteError: The response carried an ``error`` member.
            RequestTimeoutError: No response within ``request_timeout``.
            ConnectionClosedError: The child exited or the transport was stopped.
        """
        self._ensure_open()

        self._next_id += 1
        request_id = self._next_id
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = PendingRequest(method=method, future=future)

        try:
            await self._write(
                {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or {}}
            )
            async with asyncio.timeout(self.request_timeout):
                return await future
        except TimeoutError as e:
            log.warning("request_timeout", method=method, request_id=request_id)
            raise RequestTimeoutError.after(method, request_id, self.request_timeout) from e
        finally:
            self._pending.pop(request_id, None)

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Fire-and-forget message without an id."""
        self._ensure_open()
        await self._write({"jsonrpc": "2.0", "method": method, "params": params or {}})

    def on_notification(self, handler: NotificationHandler) -> None:
        """Register a listener for inbound notifications (sync or async)."""
        self._listeners.append(handler)

    def _ensure_open(self) -> None:
        if self._process is None:
            raise ConnectionClosedError.closed("transport not started")
        if self._closed_reason is not None:
            raise ConnectionClosedError.closed(self._closed_reason, self._exit_code)

    async def _write(self, message: dict[str, Any]) -> None:
        assert self._process is not None and self._process.stdin is not None
        try:
            self._process.stdin.write(encode_message(message))
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ConnectionClosedError.closed(f"write failed: {e}", self._exit_code) from e

    # =========================================================================
    # Inbound
    # =========================================================================

    async def _read_stdout(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        stdout = self._process.stdout
        buffer = LineBuffer()
        while True:
            data = await stdout.read(READ_CHUNK_BYTES)
            if not data:
                break
            for line in buffer.feed(data):
                await self._handle_line(line)

        if buffer.pending:
            log.warning("unterminated_message_discarded", size=buffer.pending)

    async def _handle_line(self, line: bytes) -> None:
        try:
            message = json.loads(line)
        except ValueError:
            log.warning("invalid_message_discarded", preview=line[:200].decode("utf-8", "replace"))
            return
        if not isinstance(message, dict):
            log.warning("non_object_message_discarded", kind=type(message).__name__)
            return

        if "id" in message and "method" in message:
            await self._answer_request(message)
        elif "id" in message:
            self._resolve(message)
        elif "method" in message:
            await self._dispatch_notification(message)
        else:
            log.debug("unroutable_message_discarded", keys=sorted(message))

    def _resolve(self, message: dict[str, Any]) -> None:
        request_id = message["id"]
        pending = self._pending.pop(request_id, None) if isinstance(request_id, int) else None
        if pending is None or pending.future.done():
            log.debug("late_response_dropped", request_id=request_id)
            return

        if "error" in message:
            error = RemoteError.from_response(pending.method, message["error"])
            pending.future.set_exception(error)
        else:
            pending.future.set_result(message.get("result"))

    async def _dispatch_notification(self, message: dict[str, Any]) -> None:
        for handler in list(self._listeners):
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                log.exception("notification_handler_failed", method=message.get("method"))

    async def _answer_request(self, message: dict[str, Any]) -> None:
        method = message["method"]
        reply: dict[str, Any] = {"jsonrpc": "2.0", "id": message["id"]}
        if method == "ping":
            reply["result"] = {}
        else:
            log.debug("target_request_rejected", method=method)
            reply["error"] = {"code": METHOD_NOT_FOUND, "message": f"Method not found: {method}"}
        try:
            await self._write(reply)
        except ConnectionClosedError:
            log.debug("target_request_reply_failed", method=method)

    async def _drain_stderr(self) -> None:
        assert self._process is not None and self._process.stderr is not None
        stderr = self._process.stderr
        while line := await stderr.readline():
            if self.debug:
                log.debug("target_stderr", line=line.decode("utf-8", "replace").rstrip())

    async def _watch_exit(self, reader: asyncio.Task[None]) -> None:
        assert self._process is not None
        # Let the reader deliver everything the child wrote before it exited.
        await asyncio.wait([reader])
        exit_code = await self._process.wait()
        if exit_code == 0:
            log.info("target_exited", exit_code=exit_code)
        else:
            log.warning("target_exited", exit_code=exit_code)
        self._fail_pending("target process exited", exit_code)

    def _fail_pending(self, reason: str, exit_code: int | None) -> None:
        if self._closed_reason is None:
            self._closed_reason = reason
            self._exit_code = exit_code

        pending = list(self._pending.values())
        self._pending.clear()
        for entry in pending:
            if not entry.future.done():
                entry.future.set_exception(ConnectionClosedError.closed(reason, exit_code))
        if pending:
            log.warning("pending_requests_failed", count=len(pending), reason=reason)
