# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Users, schedules, rotations and overrides CRUD endpoints.
Thin HTTP layer, delegates all logic to ScheduleService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AwareDatetime

from oncall_engine.core.dependencies import get_schedule_service
from oncall_engine.models.domain import Override, Rotation, Schedule, User
from oncall_engine.schemas.oncall import (
    MemberAddRequest,
    MembersReplaceRequest,
    OverrideCreateRequest,
    OverrideUpdateRequest,
    RotationCreateRequest,
    RotationUpdateRequest,
    ScheduleCreateRequest,
    ScheduleDetailResponse,
    ScheduleUpdateRequest,
    UserCreateRequest,
)
from oncall_engine.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["Schedules"])


# ── Users ──

@router.post("/users", status_code=201, response_model=User)
def create_user(
    payload: UserCreateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Register a user who can be put on call."""
    try:
        return service.create_user(
            name=payload.name, email=payload.email, user_id=payload.id
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/users", response_model=list[User])
def list_users(service: ScheduleService = Depends(get_schedule_service)):
    return service.list_users()


@router.get("/users/{user_id}", response_model=User)
def get_user(user_id: int, service: ScheduleService = Depends(get_schedule_service)):
    try:
        return service.get_user(user_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Schedules ──

@router.post("/schedules", status_code=201, response_model=Schedule)
def create_schedule(
    payload: ScheduleCreateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create an on-call schedule for a team."""
    try:
        return service.create_schedule(
            name=payload.name,
            team_id=payload.team_id,
            timezone_name=payload.timezone,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/schedules", response_model=list[Schedule])
def list_schedules(
    team_id: Optional[int] = Query(default=None, ge=1),
    service: ScheduleService = Depends(get_schedule_service),
):
    """List schedules, optionally for one team."""
    return service.list_schedules(team_id=team_id)


@router.get("/schedules/{schedule_id}", response_model=ScheduleDetailResponse)
def get_schedule(
    schedule_id: int,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Get a schedule with its rotations and overrides."""
    try:
        return service.get_schedule_detail(schedule_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/schedules/{schedule_id}", response_model=Schedule)
def update_schedule(
    schedule_id: int,
    payload: ScheduleUpdateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.update_schedule(
            schedule_id, name=payload.name, timezone_name=payload.timezone
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: int,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Delete a schedule, its rotations and its overrides."""
    try:
        return service.delete_schedule(schedule_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Rotations ──

@router.post(
    "/schedules/{schedule_id}/rotations", status_code=201, response_model=Rotation
)
def create_rotation(
    schedule_id: int,
    payload: RotationCreateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Add a rotation; members are user ids in rotation order."""
    try:
        return service.create_rotation(
            schedule_id,
            rotation_type=payload.rotation_type,
            members=payload.members,
            effective_from=payload.effective_from,
            handoff_time=payload.handoff_time,
            handoff_day=payload.handoff_day,
            effective_until=payload.effective_until,
            name=payload.name,
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/rotations/{rotation_id}", response_model=Rotation)
def get_rotation(
    rotation_id: int,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.get_rotation(rotation_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/rotations/{rotation_id}", response_model=Rotation)
def update_rotation(
    rotation_id: int,
    payload: RotationUpdateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Update rotation details (does not touch members)."""
    try:
        return service.update_rotation(
            rotation_id, **payload.model_dump(exclude_unset=True)
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/rotations/{rotation_id}")
def delete_rotation(
    rotation_id: int,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.delete_rotation(rotation_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/rotations/{rotation_id}/members", response_model=Rotation)
def replace_members(
    rotation_id: int,
    payload: MembersReplaceRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Replace the whole member order."""
    try:
        return service.replace_members(rotation_id, payload.user_ids)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/rotations/{rotation_id}/members", response_model=Rotation)
def add_member(
    rotation_id: int,
    payload: MemberAddRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Append a member to the end of the rotation."""
    try:
        return service.add_member(rotation_id, payload.user_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/rotations/{rotation_id}/members/{user_id}", response_model=Rotation)
def remove_member(
    rotation_id: int,
    user_id: int,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.remove_member(rotation_id, user_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Overrides ──

@router.post(
    "/schedules/{schedule_id}/overrides", status_code=201, response_model=Override
)
def create_override(
    schedule_id: int,
    payload: OverrideCreateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Put a specific user on call for a bounded window."""
    try:
        return service.create_override(
            schedule_id,
            user_id=payload.user_id,
            start_time=payload.start_time,
            end_time=payload.end_time,
            reason=payload.reason,
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/schedules/{schedule_id}/overrides", response_model=list[Override])
def list_overrides(
    schedule_id: int,
    include_past: bool = False,
    from_time: Optional[AwareDatetime] = Query(default=None, alias="from"),
    to_time: Optional[AwareDatetime] = Query(default=None, alias="to"),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Current and future overrides unless include_past is set."""
    try:
        return service.list_overrides(
            schedule_id,
            include_past=include_past,
            from_time=from_time,
            to_time=to_time,
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/schedules/{schedule_id}/overrides/past")
def delete_past_overrides(
    schedule_id: int,
    before: Optional[AwareDatetime] = None,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.delete_past_overrides(schedule_id, before=before)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/overrides/{override_id}", response_model=Override)
def get_override(
    override_id: int,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.get_override(override_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/overrides/{override_id}", response_model=Override)
def update_override(
    override_id: int,
    payload: OverrideUpdateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.update_override(
            override_id, **payload.model_dump(exclude_unset=True)
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/overrides/{override_id}")
def delete_override(
    override_id: int,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.delete_override(override_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
