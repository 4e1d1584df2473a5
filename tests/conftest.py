# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- A controllable clock pinned to local noon (no accidental day rollover)
- An Aggregator bound to that clock
- A TestClient over an app built around that aggregator, with the
  maintenance scheduler disabled and a rate limit too high to trip
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from telemetry.config import Settings
from telemetry.main import create_app
from telemetry.services.aggregator import Aggregator, day_key


class FakeClock:
    """Callable returning epoch seconds; advanced explicitly by tests."""

    def __init__(self, start: float) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def today_key(self) -> str:
        return day_key(datetime.fromtimestamp(self.now).date())


@pytest.fixture()
def clock():
    return FakeClock(datetime(2026, 3, 10, 12, 0, 0).timestamp())


@pytest.fixture()
def aggregator(clock):
    return Aggregator(clock=clock)


@pytest.fixture()
def settings():
    return Settings(
        cleanup_enabled=False,
        rate_limit_max_requests=10_000,
        frontend_url="*",
    )


@pytest.fixture()
def client(settings, aggregator):
    app = create_app(settings=settings, aggregator=aggregator)
    with TestClient(app) as test_client:
        yield test_client
