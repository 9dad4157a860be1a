# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP middleware: request ID propagation, access logging and Prometheus
request metrics.
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from oncall_engine.core.logging import get_logger
from oncall_engine.metrics.prometheus import HTTP_ERRORS, REQUEST_COUNT, REQUEST_LATENCY

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

UNTRACKED_PATHS: frozenset[str] = frozenset(
    {"/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc"}
)


def route_label(path: str) -> str:
    """
    Collapse entity ids in a path so metric labels stay bounded,
    e.g. ``/api/v1/rotations/12/members/7`` -> ``/api/v1/rotations/{id}/members/{id}``.
    """
    segments = [s for s in path.split("/") if s]
    if not segments:
        return "/"
    return "/" + "/".join("{id}" if s.isdigit() else s for s in segments)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count, time and log API requests by method, route and status."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        path = request.url.path
        if path in UNTRACKED_PATHS:
            return response

        route = route_label(path)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=route, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=route).observe(elapsed)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=route, status=status).inc()

        logger.info(
            "%s %s -> %s",
            request.method, route, status,
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "duration_ms": round(elapsed * 1000, 2),
            },
        )
        return response
