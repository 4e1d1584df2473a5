from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── request bodies ───────────────────────────────────────────────────────────
class InitSessionRequest(CamelModel):
    # Any JSON value; only a string can match a tracked user
    user_id: Any = None

    @property
    def existing_user_id(self) -> str | None:
        return self.user_id if isinstance(self.user_id, str) else None


class HeartbeatRequest(CamelModel):
    user_id: str | None = None
    session_id: str | None = None


class TrackEntryRequest(CamelModel):
    user_id: str | None = None
    session_id: str | None = None
    entry_count: int = 1
    entry_type: str = "log"
    metadata: dict[str, Any] = Field(default_factory=dict)


# ── responses ────────────────────────────────────────────────────────────────
class ErrorResponse(CamelModel):
    success: bool = False
    error: str


class HealthResponse(CamelModel):
    status: str = "OK"
    timestamp: str
    uptime: float           # seconds


class InitSessionResponse(CamelModel):
    success: bool = True
    user_id: str
    session_id: str
    timestamp: int          # epoch ms


class HeartbeatResponse(CamelModel):
    success: bool = True
    timestamp: int


class TrackEntryResponse(CamelModel):
    success: bool = True
    total_entries: int
    timestamp: int


# ── analytics dashboard ──────────────────────────────────────────────────────
class TodayStats(CamelModel):
    entries: int
    unique_users: int


class DailyStats(CamelModel):
    date: str               # e.g. "Mon Jan 02 2006"
    entries: int
    unique_users: int


class AnalyticsData(CamelModel):
    total_entries: int
    total_users: int
    active_users: int
    today: TodayStats
    recent_stats: list[DailyStats]
    timestamp: str


class AnalyticsResponse(CamelModel):
    success: bool = True
    data: AnalyticsData
