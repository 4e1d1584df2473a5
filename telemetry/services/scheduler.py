"""Periodic maintenance for the aggregator.

Runs ``Aggregator.cleanup`` every ``interval_seconds``.  The event loop only
sleeps between ticks; each cleanup pass runs on the default executor.
A failing tick is logged and swallowed here so the loop (and the server)
keeps going; the next tick simply tries again.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from telemetry.services.aggregator import Aggregator, CleanupReport

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """Owns the background task that prunes stale users and sessions."""

    def __init__(self, aggregator: "Aggregator", interval_seconds: float = 60 * 60) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._aggregator = aggregator
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None
        self.ticks = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> "CleanupReport | None":
        """Run a single cleanup pass.  Returns ``None`` if it failed."""
        self.ticks += 1
        try:
            report = self._aggregator.cleanup()
        except Exception:
            self.failures += 1
            logger.exception("Cleanup failed (tick %d); retrying next interval", self.ticks)
            return None

        logger.info(
            "Cleaned up old data: %d user(s), %d session(s) removed",
            report.users_removed, report.sessions_removed,
        )
        return report

    async def run(self) -> None:
        # cleanup() blocks on the aggregator lock; keep it off the event loop
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self._interval)
            await loop.run_in_executor(None, self.run_once)

    def start(self) -> None:
        """Schedule the loop on the running event loop (idempotent)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run())
        logger.info("Maintenance scheduler started: every %.0f s", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Maintenance scheduler stopped")
