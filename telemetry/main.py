import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from telemetry.config import Settings, get_settings
from telemetry.middleware import (
    BodySizeLimitMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from telemetry.routes.analytics import router as analytics_router
from telemetry.routes.dashboard import router as dashboard_router
from telemetry.routes.sessions import router as sessions_router
from telemetry.schemas.response import ErrorResponse
from telemetry.services.aggregator import Aggregator
from telemetry.services.rate_limiter import SlidingWindowRateLimiter
from telemetry.services.scheduler import MaintenanceScheduler

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request: " + "; ".join(parts)


def _install_exception_handlers(application: FastAPI) -> None:
    @application.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Unknown paths and unsupported methods both read as a missing endpoint
        if exc.status_code in (404, 405):
            return _error(404, "Endpoint not found")
        return _error(exc.status_code, str(exc.detail))

    @application.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, _describe_validation_error(exc))

    @application.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return _error(500, "Something went wrong!")


def create_app(
    settings: Settings | None = None,
    aggregator: Aggregator | None = None,
    limiter: SlidingWindowRateLimiter | None = None,
) -> FastAPI:
    if settings is None:
        settings = get_settings()
    if aggregator is None:
        aggregator = Aggregator(
            active_window_seconds=settings.active_window_seconds,
            user_retention_seconds=settings.user_retention_seconds,
            session_retention_seconds=settings.session_retention_seconds,
            recent_days=settings.recent_days,
        )
    if limiter is None:
        limiter = SlidingWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    scheduler = MaintenanceScheduler(aggregator, interval_seconds=settings.cleanup_interval_seconds)

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        if settings.cleanup_enabled:
            scheduler.start()
        yield
        await scheduler.stop()

    application = FastAPI(
        title="Telemetry Analytics API",
        version="0.1.0",
        description="Session, heartbeat and usage-entry ingestion with an aggregate dashboard.",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.aggregator = aggregator
    application.state.scheduler = scheduler
    application.state.limiter = limiter
    application.state.started_at = time.monotonic()

    # Last added runs first
    application.add_middleware(RateLimitMiddleware, limiter=limiter)
    application.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    application.add_middleware(GZipMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    application.add_middleware(SecurityHeadersMiddleware)

    _install_exception_handlers(application)

    application.include_router(analytics_router)
    application.include_router(sessions_router)
    application.include_router(dashboard_router)

    return application


app = create_app()
