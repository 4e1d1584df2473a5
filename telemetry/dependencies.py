"""FastAPI dependencies resolving the per-application singletons.

The aggregator and start time live on ``app.state`` (set by ``create_app``)
so each application instance, including those built in tests, gets its own.
"""
import time

from fastapi import Request

from telemetry.services.aggregator import Aggregator


def get_aggregator(request: Request) -> Aggregator:
    return request.app.state.aggregator


def get_uptime_seconds(request: Request) -> float:
    return time.monotonic() - request.app.state.started_at
