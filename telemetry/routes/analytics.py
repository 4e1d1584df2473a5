"""
Reporting endpoints.

  GET /health          — liveness probe with process uptime
  GET /api/analytics   — aggregate counters plus the trailing 7-day series
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from telemetry.dependencies import get_aggregator, get_uptime_seconds
from telemetry.schemas.response import (
    AnalyticsData,
    AnalyticsResponse,
    DailyStats,
    ErrorResponse,
    HealthResponse,
    TodayStats,
)
from telemetry.services.aggregator import Aggregator, AnalyticsView

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analytics"], responses={500: {"model": ErrorResponse}})


def _build_analytics_data(view: AnalyticsView) -> AnalyticsData:
    return AnalyticsData(
        total_entries=view.total_entries,
        total_users=view.total_users,
        active_users=view.active_users,
        today=TodayStats(entries=view.today.entries, unique_users=view.today.unique_users),
        recent_stats=[
            DailyStats(date=d.date, entries=d.entries, unique_users=d.unique_users)
            for d in view.recent_stats
        ],
        timestamp=view.timestamp,
    )


@router.get("/health", response_model=HealthResponse)
def health(uptime: float = Depends(get_uptime_seconds)) -> HealthResponse:
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        uptime=round(uptime, 3),
    )


@router.get("/api/analytics", response_model=AnalyticsResponse)
def get_analytics(aggregator: Aggregator = Depends(get_aggregator)) -> AnalyticsResponse:
    """Return totals, active users, today's stats and the last 7 days."""
    try:
        view = aggregator.snapshot()
    except Exception as exc:
        logger.error("Error fetching analytics: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch analytics")

    return AnalyticsResponse(data=_build_analytics_data(view))
