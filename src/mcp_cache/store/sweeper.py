"""Periodic expiry sweep for the response store."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from mcp_cache.config.constants import CLEANUP_INTERVAL_SEC

if TYPE_CHECKING:
    from mcp_cache.store.cache import ResponseStore

logger = structlog.get_logger(__name__)


@dataclass
class CleanupSweeper:
    """Runs ResponseStore.cleanup every ``interval`` seconds.

    The sweep is advisory: reads already enforce expiry lazily, so a failed
    sweep is logged and the loop carries on. The task is cancelled by stop()
    and holds no reference that would keep the process alive.
    """

    store: ResponseStore
    interval: float = CLEANUP_INTERVAL_SEC

    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _runs: int = field(default=0, init=False)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def runs(self) -> int:
        """Completed sweeps, failed ones included."""
        return self._runs

    def start(self) -> None:
        """Start the sweep loop. No-op if already running."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="mcp-cache-sweeper")
        logger.debug("sweeper_started", interval=self.interval)

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.debug("sweeper_stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                removed = await self.store.cleanup()
            except Exception:
                logger.exception("sweep_failed")
            else:
                logger.debug("sweep_tick", removed=removed)
            finally:
                self._runs += 1
