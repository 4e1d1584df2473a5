"""
Client ingestion endpoints.

  POST /api/init-session   — start a session, minting a user id if needed
  POST /api/heartbeat      — liveness ping for a user/session pair
  POST /api/track-entry    — report a number of usage entries

Missing identifiers are rejected with 400; any other failure is logged and
answered with a route-specific 500 message.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from telemetry.dependencies import get_aggregator
from telemetry.schemas.response import (
    ErrorResponse,
    HeartbeatRequest,
    HeartbeatResponse,
    InitSessionRequest,
    InitSessionResponse,
    TrackEntryRequest,
    TrackEntryResponse,
)
from telemetry.services.aggregator import Aggregator, InvalidArgument

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["ingestion"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.post("/init-session", response_model=InitSessionResponse)
def init_session(
    body: InitSessionRequest | None = None,
    aggregator: Aggregator = Depends(get_aggregator),
) -> InitSessionResponse:
    """Start a new session.  An unknown or expired ``userId`` gets a fresh id."""
    existing_user_id = body.existing_user_id if body else None
    try:
        result = aggregator.init_session(existing_user_id)
    except Exception as exc:
        logger.error("Error initializing session: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to initialize session")

    logger.info("New session initialized: %s (%s)", result.user_id, result.session_id)
    return InitSessionResponse(
        user_id=result.user_id,
        session_id=result.session_id,
        timestamp=result.timestamp,
    )


@router.post("/heartbeat", response_model=HeartbeatResponse)
def heartbeat(
    body: HeartbeatRequest | None = None,
    aggregator: Aggregator = Depends(get_aggregator),
) -> HeartbeatResponse:
    if body is None:
        body = HeartbeatRequest()
    try:
        timestamp = aggregator.heartbeat(body.user_id, body.session_id)
    except InvalidArgument as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.error("Error updating heartbeat: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update activity")

    return HeartbeatResponse(timestamp=timestamp)


@router.post("/track-entry", response_model=TrackEntryResponse)
def track_entry(
    body: TrackEntryRequest | None = None,
    aggregator: Aggregator = Depends(get_aggregator),
) -> TrackEntryResponse:
    """Add ``entryCount`` entries (default 1, any sign) to the counters."""
    if body is None:
        body = TrackEntryRequest()
    try:
        result = aggregator.track_entry(
            body.user_id,
            session_id=body.session_id,
            entry_count=body.entry_count,
            entry_type=body.entry_type,
            metadata=body.metadata,
        )
    except InvalidArgument as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.error("Error tracking entry: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to track entry")

    logger.info(
        "Entry tracked: %s added %d entries (type: %s)",
        body.user_id, body.entry_count, body.entry_type,
    )
    return TrackEntryResponse(total_entries=result.total_entries, timestamp=result.timestamp)
