# ==============================================================================
# Tests for Sliding Window Rate Limiter
# ==============================================================================
"""
Unit tests for the SlidingWindowRateLimiter.

Tests cover:
- Hits within the limit are allowed with a decreasing remaining count
- The hit over the limit is rejected with a retry hint
- Hits leaving the window free capacity again
- Keys are independent
- Idle keys are pruned
- Invalid construction arguments raise ValueError
"""

import pytest

from telemetry.services.rate_limiter import SlidingWindowRateLimiter


class ManualClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def manual_clock():
    return ManualClock()


# ==============================================================================
# Construction
# ==============================================================================


class TestConstruction:
    """Tests for SlidingWindowRateLimiter initialization."""

    def test_invalid_max_requests_raises(self):
        with pytest.raises(ValueError, match="max_requests must be positive"):
            SlidingWindowRateLimiter(max_requests=0, window_seconds=60)

    def test_invalid_window_raises(self):
        with pytest.raises(ValueError, match="window_seconds must be positive"):
            SlidingWindowRateLimiter(max_requests=10, window_seconds=-1)


# ==============================================================================
# Hits
# ==============================================================================


class TestHit:
    """Tests for the hit() method."""

    def test_allows_up_to_limit(self, manual_clock):
        limiter = SlidingWindowRateLimiter(max_requests=3, window_seconds=60, clock=manual_clock)
        remaining = [limiter.hit("1.2.3.4").remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

    def test_rejects_over_limit(self, manual_clock):
        limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60, clock=manual_clock)
        limiter.hit("ip")
        manual_clock.now += 10
        limiter.hit("ip")

        decision = limiter.hit("ip")
        assert not decision.allowed
        assert decision.remaining == 0
        # Oldest hit leaves the window 50 s from now
        assert decision.retry_after == 50

    def test_window_slides(self, manual_clock):
        limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60, clock=manual_clock)
        limiter.hit("ip")
        manual_clock.now += 30
        limiter.hit("ip")
        assert not limiter.hit("ip").allowed

        manual_clock.now += 30
        assert limiter.hit("ip").allowed
        assert not limiter.hit("ip").allowed

    def test_rejected_hits_do_not_extend_window(self, manual_clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60, clock=manual_clock)
        limiter.hit("ip")
        for _ in range(5):
            manual_clock.now += 10
            assert not limiter.hit("ip").allowed
        manual_clock.now += 10
        assert limiter.hit("ip").allowed

    def test_keys_are_independent(self, manual_clock):
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60, clock=manual_clock)
        assert limiter.hit("a").allowed
        assert limiter.hit("b").allowed
        assert not limiter.hit("a").allowed


# ==============================================================================
# Pruning
# ==============================================================================


class TestPrune:
    """Tests for prune()."""

    def test_idle_keys_dropped(self, manual_clock):
        limiter = SlidingWindowRateLimiter(max_requests=5, window_seconds=60, clock=manual_clock)
        limiter.hit("old")
        manual_clock.now += 45
        limiter.hit("recent")
        manual_clock.now += 30

        assert limiter.prune() == 1
        assert len(limiter) == 1
