# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from typing import Optional

from pydantic import AwareDatetime, BaseModel, Field

from oncall_engine.models.domain import OnCallResult, Override, Rotation, RotationType

HANDOFF_TIME_REGEX = r"^([01]\d|2[0-3]):([0-5]\d)$"


# ── User Schemas ──

class UserCreateRequest(BaseModel):
    id: Optional[int] = Field(default=None, ge=1, description="Platform user id, assigned if omitted")
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)


# ── Schedule Schemas ──

class ScheduleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Schedule name")
    team_id: int = Field(..., ge=1, description="Team that owns the schedule")
    timezone: Optional[str] = Field(
        default=None, max_length=100, description="IANA time zone, e.g. America/New_York"
    )


class ScheduleUpdateRequest(BaseModel):
    """Partial update model for PATCH /api/v1/schedules/{id}."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    timezone: Optional[str] = Field(default=None, max_length=100)


class ScheduleDetailResponse(BaseModel):
    id: int
    name: str
    team_id: int
    timezone: str
    created_at: AwareDatetime
    updated_at: AwareDatetime
    rotations: list[Rotation]
    overrides: list[Override]


# ── Rotation Schemas ──

class RotationCreateRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    rotation_type: RotationType
    handoff_time: Optional[str] = Field(
        default=None, pattern=HANDOFF_TIME_REGEX, description="HH:MM, 24h"
    )
    handoff_day: Optional[int] = Field(
        default=None, ge=0, le=6, description="0=Sunday .. 6=Saturday, weekly only"
    )
    effective_from: AwareDatetime
    effective_until: Optional[AwareDatetime] = None
    members: list[int] = Field(
        ..., min_length=1, description="User IDs in rotation order"
    )


class RotationUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    handoff_time: Optional[str] = Field(default=None, pattern=HANDOFF_TIME_REGEX)
    handoff_day: Optional[int] = Field(default=None, ge=0, le=6)
    effective_from: Optional[AwareDatetime] = None
    effective_until: Optional[AwareDatetime] = None


class MembersReplaceRequest(BaseModel):
    user_ids: list[int] = Field(..., min_length=1)


class MemberAddRequest(BaseModel):
    user_id: int


# ── Override Schemas ──

class OverrideCreateRequest(BaseModel):
    user_id: int
    start_time: AwareDatetime
    end_time: AwareDatetime
    reason: Optional[str] = Field(default=None, max_length=5000)


class OverrideUpdateRequest(BaseModel):
    user_id: Optional[int] = None
    start_time: Optional[AwareDatetime] = None
    end_time: Optional[AwareDatetime] = None
    reason: Optional[str] = Field(default=None, max_length=5000)


# ── On-Call Schemas ──

class OnCallResponse(BaseModel):
    schedule_id: int
    at: str
    on_call: Optional[OnCallResult] = None


class ResolveRequest(BaseModel):
    schedule_ids: list[int] = Field(..., min_length=1, max_length=500)
    at: Optional[AwareDatetime] = None
