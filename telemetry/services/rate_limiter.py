"""
Sliding-window request limiter keyed by client address.

Each key may make at most ``max_requests`` hits within any trailing
``window_seconds``.  Hits are kept as monotonic timestamps in a deque per
key; expired hits are dropped lazily on every check, and keys whose deque
empties are forgotten so idle clients do not accumulate.

Usage::

    limiter = SlidingWindowRateLimiter(max_requests=100, window_seconds=900)
    decision = limiter.hit(client_ip)
    if not decision.allowed:
        reject(retry_after=decision.retry_after)
"""
from __future__ import annotations

import math
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    # Seconds until the oldest counted hit leaves the window
    reset_after: int

    @property
    def retry_after(self) -> int:
        return self.reset_after


class SlidingWindowRateLimiter:
    """Thread-safe sliding-window limiter.

    Args:
        max_requests: Hits allowed per key inside one window.
        window_seconds: Window length.
        clock: Monotonic time source (seconds); overridable for tests.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {max_requests}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def hit(self, key: str) -> RateLimitDecision:
        """Record a hit for *key* if it fits in the window."""
        now = self._clock()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            self._expire(hits, now)

            if len(hits) >= self.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_after=self._reset_after(hits, now),
                )

            hits.append(now)
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - len(hits),
                reset_after=self._reset_after(hits, now),
            )

    def prune(self) -> int:
        """Forget keys with no hits left in the window.  Returns keys dropped."""
        now = self._clock()
        with self._lock:
            idle = []
            for key, hits in self._hits.items():
                self._expire(hits, now)
                if not hits:
                    idle.append(key)
            for key in idle:
                del self._hits[key]
        return len(idle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _expire(self, hits: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _reset_after(self, hits: deque[float], now: float) -> int:
        if not hits:
            return 0
        return max(0, math.ceil(hits[0] + self.window_seconds - now))
