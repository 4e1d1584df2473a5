"""In-memory analytics aggregation.

Turns the stream of session starts, heartbeats and entry counts reported by
clients into rolling counters: active users, all-time totals, and per-day
entry counts with unique-user sets.

Everything lives in process memory and is lost on restart.  A single
``Aggregator`` instance is created by the application factory and shared by
every request handler plus the maintenance scheduler, so all access goes
through one coarse lock.

Horizons (defaults)
───────────────────
• active user          last seen within 30 min  (evicted by ``snapshot``)
• user retention       last seen within 1 h     (evicted by ``cleanup``)
• session retention    started within 24 h      (evicted by ``cleanup``)
• reporting window     7 calendar days          (no pruning of day rows)
"""
from __future__ import annotations

import secrets
import string
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

# Day bucket key, e.g. "Mon Jan 02 2006"
DAY_KEY_FORMAT = "%a %b %d %Y"

_ID_ALPHABET = string.digits + string.ascii_lowercase


class InvalidArgument(ValueError):
    """A required identifier was missing or empty."""


@dataclass
class UserRecord:
    last_seen_at: int           # epoch ms
    current_session_id: str     # soft reference, may dangle after cleanup


@dataclass
class SessionRecord:
    user_id: str
    started_at: int             # epoch ms


@dataclass
class DayStats:
    entry_count: int = 0
    unique_users: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class SessionInit:
    user_id: str
    session_id: str
    timestamp: int


@dataclass(frozen=True)
class EntryResult:
    total_entries: int
    timestamp: int


@dataclass(frozen=True)
class DayView:
    entries: int
    unique_users: int


@dataclass(frozen=True)
class DailyView:
    date: str
    entries: int
    unique_users: int


@dataclass(frozen=True)
class AnalyticsView:
    total_entries: int
    total_users: int
    active_users: int
    today: DayView
    recent_stats: list[DailyView]
    timestamp: str              # ISO-8601, UTC


@dataclass(frozen=True)
class CleanupReport:
    users_removed: int
    sessions_removed: int


def _random_token(length: int) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def day_key(day: date) -> str:
    return day.strftime(DAY_KEY_FORMAT)


class Aggregator:
    """Thread-safe store of telemetry counters and per-user/session state.

    ``clock`` returns epoch seconds and defaults to ``time.time``; tests pass
    a controllable clock to move across horizons and day boundaries.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        active_window_seconds: int = 30 * 60,
        user_retention_seconds: int = 60 * 60,
        session_retention_seconds: int = 24 * 60 * 60,
        recent_days: int = 7,
    ) -> None:
        self._clock = clock
        self._active_window_ms = active_window_seconds * 1000
        self._user_retention_ms = user_retention_seconds * 1000
        self._session_retention_ms = session_retention_seconds * 1000
        self._recent_days = recent_days

        self._lock = threading.Lock()

        self.total_entries: int = 0
        self.total_users: int = 0
        self._users: dict[str, UserRecord] = {}
        self._sessions: dict[str, SessionRecord] = {}
        self._days: dict[str, DayStats] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def _local_day(now_ms: int) -> date:
        return datetime.fromtimestamp(now_ms / 1000).date()

    def _touch_day(self, now_ms: int, user_id: str, entry_count: int = 0) -> None:
        """Create today's bucket if needed and record *user_id* in it. Caller holds lock."""
        key = day_key(self._local_day(now_ms))
        stats = self._days.get(key)
        if stats is None:
            stats = self._days[key] = DayStats()
        stats.entry_count += entry_count
        stats.unique_users.add(user_id)

    def _day_view(self, key: str) -> DayView:
        stats = self._days.get(key)
        if stats is None:
            return DayView(entries=0, unique_users=0)
        return DayView(entries=stats.entry_count, unique_users=len(stats.unique_users))

    def _count_active(self, now_ms: int) -> int:
        """Count users inside the active window and evict the rest. Caller holds lock."""
        cutoff = now_ms - self._active_window_ms
        stale = [uid for uid, rec in self._users.items() if rec.last_seen_at <= cutoff]
        for uid in stale:
            del self._users[uid]
        return len(self._users)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def init_session(self, existing_user_id: str | None = None) -> SessionInit:
        """Start a session, reusing *existing_user_id* only while it is still tracked."""
        with self._lock:
            now = self._now_ms()
            user_id = existing_user_id
            if not user_id or user_id not in self._users:
                user_id = f"user_{_random_token(9)}_{now}"
                self.total_users += 1

            session_id = f"session_{_random_token(12)}_{now}"

            self._users[user_id] = UserRecord(last_seen_at=now, current_session_id=session_id)
            self._sessions[session_id] = SessionRecord(user_id=user_id, started_at=now)
            self._touch_day(now, user_id)

        return SessionInit(user_id=user_id, session_id=session_id, timestamp=now)

    def heartbeat(self, user_id: str | None, session_id: str | None) -> int:
        """Refresh liveness for a user/session pair.  Never counts a new user."""
        if not user_id or not session_id:
            raise InvalidArgument("userId and sessionId required")

        with self._lock:
            now = self._now_ms()
            user = self._users.get(user_id)
            if user is not None:
                user.last_seen_at = now
            else:
                self._users[user_id] = UserRecord(last_seen_at=now, current_session_id=session_id)

            if session_id not in self._sessions:
                self._sessions[session_id] = SessionRecord(user_id=user_id, started_at=now)

        return now

    def track_entry(
        self,
        user_id: str | None,
        session_id: str | None = None,
        entry_count: int = 1,
        entry_type: str = "log",
        metadata: dict[str, Any] | None = None,
    ) -> EntryResult:
        """Add *entry_count* (any sign) to the global and daily counters.

        ``session_id``, ``entry_type`` and ``metadata`` do not affect the
        counters; they are accepted so callers can log them.
        """
        if not user_id:
            raise InvalidArgument("userId required")

        with self._lock:
            now = self._now_ms()
            self.total_entries += entry_count

            user = self._users.get(user_id)
            if user is not None:
                user.last_seen_at = now

            self._touch_day(now, user_id, entry_count)
            total = self.total_entries

        return EntryResult(total_entries=total, timestamp=now)

    def active_user_count(self) -> int:
        """Users seen within the active window.  Evicts everyone older."""
        with self._lock:
            return self._count_active(self._now_ms())

    def snapshot(self) -> AnalyticsView:
        """Return the dashboard view.

        Reads never create day rows; the only mutation is the eviction of
        users that fell out of the active window.
        """
        with self._lock:
            now = self._now_ms()
            active = self._count_active(now)

            today = self._local_day(now)
            recent = []
            for offset in range(self._recent_days - 1, -1, -1):
                key = day_key(today - timedelta(days=offset))
                view = self._day_view(key)
                recent.append(DailyView(date=key, entries=view.entries, unique_users=view.unique_users))

            return AnalyticsView(
                total_entries=self.total_entries,
                total_users=self.total_users,
                active_users=active,
                today=self._day_view(day_key(today)),
                recent_stats=recent,
                timestamp=datetime.fromtimestamp(now / 1000, tz=timezone.utc).isoformat(
                    timespec="milliseconds"
                ),
            )

    def cleanup(self) -> CleanupReport:
        """Drop users idle past the retention horizon and sessions past theirs."""
        with self._lock:
            now = self._now_ms()
            user_cutoff = now - self._user_retention_ms
            session_cutoff = now - self._session_retention_ms

            stale_users = [uid for uid, rec in self._users.items() if rec.last_seen_at < user_cutoff]
            for uid in stale_users:
                del self._users[uid]

            stale_sessions = [
                sid for sid, rec in self._sessions.items() if rec.started_at < session_cutoff
            ]
            for sid in stale_sessions:
                del self._sessions[sid]

        return CleanupReport(users_removed=len(stale_users), sessions_removed=len(stale_sessions))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    # Getters return copies; live records are only touched under the lock
    def get_user(self, user_id: str) -> UserRecord | None:
        with self._lock:
            rec = self._users.get(user_id)
            return replace(rec) if rec is not None else None

    def get_session(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            rec = self._sessions.get(session_id)
            return replace(rec) if rec is not None else None

    def get_day(self, key: str) -> DayStats | None:
        with self._lock:
            stats = self._days.get(key)
            if stats is None:
                return None
            return DayStats(entry_count=stats.entry_count, unique_users=set(stats.unique_users))

    def tracked_counts(self) -> dict[str, int]:
        """Sizes of the internal maps."""
        with self._lock:
            return {
                "users": len(self._users),
                "sessions": len(self._sessions),
                "days": len(self._days),
            }
