# ==============================================================================
# Tests for MaintenanceScheduler — services/scheduler.py
# ==============================================================================
"""
Tests for the periodic cleanup trigger.

Tests cover:
- A tick runs Aggregator.cleanup and reports removals
- A failing tick is logged, counted and does not raise
- The loop keeps ticking after a failure
- Cleanup runs on the executor, not the event loop thread
- start()/stop() manage the background task
- The application lifespan starts and stops the scheduler
"""

import asyncio
import logging
import threading
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from telemetry.config import Settings
from telemetry.main import create_app
from telemetry.services.aggregator import CleanupReport
from telemetry.services.scheduler import MaintenanceScheduler


# ==============================================================================
# run_once
# ==============================================================================


class TestRunOnce:
    """Tests for a single maintenance tick."""

    def test_runs_cleanup(self, aggregator, clock):
        aggregator.heartbeat("u1", "s1")
        clock.advance(25 * 60 * 60)
        report = MaintenanceScheduler(aggregator).run_once()
        assert report == CleanupReport(users_removed=1, sessions_removed=1)

    def test_failure_is_isolated(self, caplog):
        broken = MagicMock()
        broken.cleanup.side_effect = RuntimeError("boom")
        scheduler = MaintenanceScheduler(broken)

        with caplog.at_level(logging.ERROR):
            assert scheduler.run_once() is None

        assert scheduler.failures == 1
        assert "Cleanup failed" in caplog.text

    def test_next_tick_runs_after_failure(self):
        flaky = MagicMock()
        flaky.cleanup.side_effect = [RuntimeError("boom"), CleanupReport(0, 0)]
        scheduler = MaintenanceScheduler(flaky)

        assert scheduler.run_once() is None
        assert scheduler.run_once() == CleanupReport(0, 0)
        assert scheduler.ticks == 2
        assert scheduler.failures == 1

    def test_invalid_interval_raises(self, aggregator):
        with pytest.raises(ValueError, match="interval_seconds must be positive"):
            MaintenanceScheduler(aggregator, interval_seconds=0)


# ==============================================================================
# Background loop
# ==============================================================================


class TestLoop:
    """Tests for start()/stop() on a live event loop."""

    def test_loop_survives_failures(self):
        flaky = MagicMock()
        flaky.cleanup.side_effect = RuntimeError("boom")
        scheduler = MaintenanceScheduler(flaky, interval_seconds=0.01)

        async def scenario():
            scheduler.start()
            assert scheduler.running
            await asyncio.sleep(0.1)
            assert scheduler.running
            await scheduler.stop()

        asyncio.run(scenario())
        assert scheduler.ticks >= 2
        assert scheduler.failures == scheduler.ticks
        assert not scheduler.running

    def test_cleanup_runs_off_the_event_loop(self):
        """Ticks run on the executor so a held aggregator lock cannot stall the loop."""
        cleanup_threads = []

        def cleanup():
            cleanup_threads.append(threading.get_ident())
            return CleanupReport(0, 0)

        target = MagicMock()
        target.cleanup.side_effect = cleanup
        scheduler = MaintenanceScheduler(target, interval_seconds=0.01)

        async def scenario():
            scheduler.start()
            await asyncio.sleep(0.1)
            await scheduler.stop()
            return threading.get_ident()

        loop_thread = asyncio.run(scenario())
        assert cleanup_threads
        assert loop_thread not in cleanup_threads

    def test_start_is_idempotent(self, aggregator):
        scheduler = MaintenanceScheduler(aggregator, interval_seconds=60)

        async def scenario():
            scheduler.start()
            task = scheduler._task
            scheduler.start()
            assert scheduler._task is task
            await scheduler.stop()

        asyncio.run(scenario())

    def test_stop_without_start(self, aggregator):
        asyncio.run(MaintenanceScheduler(aggregator).stop())


class TestLifespan:
    """The app starts the scheduler on startup and stops it on shutdown."""

    def test_enabled(self, aggregator):
        app = create_app(settings=Settings(cleanup_enabled=True), aggregator=aggregator)
        with TestClient(app):
            assert app.state.scheduler.running
        assert not app.state.scheduler.running

    def test_disabled(self, settings, aggregator):
        app = create_app(settings=settings, aggregator=aggregator)
        with TestClient(app):
            assert not app.state.scheduler.running
