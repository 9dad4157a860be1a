# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints for liveness, readiness and metrics.
Pure HTTP layer, no business logic.
"""

from datetime import datetime, timezone
from zoneinfo import available_timezones

from fastapi import APIRouter
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from oncall_engine.core.config import settings
from oncall_engine.core.dependencies import get_schedule_repo, get_override_repo

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check():
    """Liveness check for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "schedules_count": get_schedule_repo().count(),
        "overrides_count": get_override_repo().count(),
    }


@router.get("/health/ready")
def readiness_check():
    """Readiness check: the tz database must load for resolution to work."""
    zones = len(available_timezones())
    return {
        "status": "ready" if zones else "degraded",
        "service": settings.SERVICE_NAME,
        "timezones_loaded": zones,
        "schedules_loaded": get_schedule_repo().count() > 0,
    }


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
