"""
Transport-level middleware: security headers, per-client rate limiting and
request body size limits.  None of these touch the aggregator.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from telemetry.schemas.response import ErrorResponse
from telemetry.services.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; "
        "script-src 'self' 'unsafe-inline'; base-uri 'self'; "
        "frame-ancestors 'self'; object-src 'none'"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
}

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."

# Drop idle rate-limit keys every N requests
_PRUNE_EVERY = 1000


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects clients that exceed the limiter's window with 429."""

    def __init__(self, app: ASGIApp, limiter: SlidingWindowRateLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter
        self._seen = 0

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client = request.client.host if request.client else "unknown"
        decision = self.limiter.hit(client)

        self._seen += 1
        if self._seen % _PRUNE_EVERY == 0:
            self.limiter.prune()

        headers = {
            "RateLimit-Limit": str(decision.limit),
            "RateLimit-Remaining": str(decision.remaining),
            "RateLimit-Reset": str(decision.reset_after),
        }
        if not decision.allowed:
            logger.warning("Rate limit exceeded for %s", client)
            headers["Retry-After"] = str(decision.retry_after)
            return PlainTextResponse(RATE_LIMIT_MESSAGE, status_code=429, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose declared Content-Length exceeds ``max_bytes``."""

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                size = int(declared)
            except ValueError:
                return JSONResponse(
                    ErrorResponse(error="Invalid Content-Length header.").model_dump(),
                    status_code=400,
                )
            if size > self.max_bytes:
                return JSONResponse(
                    ErrorResponse(error=f"Request body exceeds {self.max_bytes} bytes.").model_dump(),
                    status_code=413,
                )
        return await call_next(request)
