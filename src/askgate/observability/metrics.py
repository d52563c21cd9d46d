from __future__ import annotations

"""Prometheus metrics for the askgate API.

Request latency per method/path/status, plus a counter of upstream failures
per leg (identity, completion, storage).
"""

import logging
import time
from typing import Callable, Awaitable

from prometheus_client import Counter, Histogram
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_LATENCY = Histogram(
    "askgate_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

UPSTREAM_FAILURES = Counter(
    "askgate_upstream_failures_total",
    "Failed calls to external systems",
    labelnames=("leg",),
)


def sanitize_path(path: str) -> str:
    """Collapse ``/messages/<id>`` style paths to their first segment."""
    if not path:
        return "/"
    segs = path.split("?")[0].split("/")
    if len(segs) > 1:
        return "/" + segs[1]
    return path


def record_upstream_failure(leg: str) -> None:
    UPSTREAM_FAILURES.labels(leg=leg).inc()


def metrics_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.url.path.startswith("/metrics"):
            return await call_next(request)
        start = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            elapsed = time.perf_counter() - start
            try:
                REQUEST_LATENCY.labels(
                    method=request.method,
                    path=sanitize_path(request.url.path),
                    status=status,
                ).observe(elapsed)
            except Exception:
                # metrics must never fail the request
                logger.debug("Failed to record request latency", exc_info=True)

    return middleware
