# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: On-call resolution, active override, history and stats endpoints.
Thin HTTP layer, delegates all logic to OnCallResolver / ScheduleService.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AwareDatetime

from oncall_engine.core.dependencies import (
    get_history_repo,
    get_oncall_resolver,
    get_override_resolver,
    get_schedule_service,
)
from oncall_engine.core.exceptions import InvalidTimeZone
from oncall_engine.models.domain import OnCallResult, Override
from oncall_engine.repositories.history_repository import HistoryRepository
from oncall_engine.schemas.oncall import OnCallResponse, ResolveRequest
from oncall_engine.services.oncall_resolver import OnCallResolver
from oncall_engine.services.override_resolver import OverrideResolver
from oncall_engine.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["On-Call"])


# ── On-Call Resolution ──

@router.get("/schedules/{schedule_id}/oncall", response_model=OnCallResponse)
def get_current_oncall(
    schedule_id: int,
    at: Optional[AwareDatetime] = Query(default=None, description="Defaults to now"),
    resolver: OnCallResolver = Depends(get_oncall_resolver),
):
    """Who is on call for a schedule; on_call is null when unstaffed."""
    at = at or datetime.now(timezone.utc)
    try:
        result = resolver.resolve_on_call(schedule_id, at)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTimeZone as e:
        raise HTTPException(status_code=500, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"schedule_id": schedule_id, "at": at.isoformat(), "on_call": result}


@router.post("/oncall/resolve", response_model=list[OnCallResult])
def resolve_multiple(
    payload: ResolveRequest,
    resolver: OnCallResolver = Depends(get_oncall_resolver),
):
    """Resolve several schedules at once; unstaffed ones are omitted."""
    try:
        return resolver.resolve_multiple_schedules(payload.schedule_ids, payload.at)
    except InvalidTimeZone as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/schedules/{schedule_id}/overrides/active", response_model=Optional[Override])
def get_active_override(
    schedule_id: int,
    at: Optional[AwareDatetime] = Query(default=None, description="Defaults to now"),
    resolver: OverrideResolver = Depends(get_override_resolver),
    service: ScheduleService = Depends(get_schedule_service),
):
    """The override in force at ``at``, or null."""
    try:
        service.get_schedule(schedule_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return resolver.active_override(schedule_id, at or datetime.now(timezone.utc))


# ── History ──

@router.get("/oncall/history")
def get_oncall_history(
    schedule_id: Optional[int] = None,
    event_type: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, description="Max results"),
    history_repo: HistoryRepository = Depends(get_history_repo),
):
    """Audit log for schedule management events."""
    return history_repo.get_all(schedule_id=schedule_id, event_type=event_type, limit=limit)


# ── Stats ──

@router.get("/oncall/stats")
def get_oncall_stats(service: ScheduleService = Depends(get_schedule_service)):
    """Aggregated operational statistics."""
    return service.get_stats()
