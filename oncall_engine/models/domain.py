# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AwareDatetime, BaseModel, Field


class RotationType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    # Placeholder for recurrence rules; resolved with daily cadence.
    CUSTOM = "custom"


class OnCallSource(str, Enum):
    OVERRIDE = "override"
    ROTATION = "rotation"


class User(BaseModel):
    """A person who can be put on call."""
    id: int
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)


class Schedule(BaseModel):
    id: int
    name: str
    team_id: int
    timezone: str = "UTC"
    created_at: AwareDatetime
    updated_at: AwareDatetime


class Member(BaseModel):
    """One slot of a rotation; position is the 0-based rank."""
    rotation_id: int
    user_id: int
    position: int = Field(..., ge=0)


class Rotation(BaseModel):
    id: int
    schedule_id: int
    name: Optional[str] = None
    rotation_type: RotationType
    handoff_time: str = "09:00"
    handoff_day: Optional[int] = Field(default=None, ge=0, le=6)
    effective_from: AwareDatetime
    effective_until: Optional[AwareDatetime] = None
    members: list[Member] = Field(default_factory=list)
    created_at: AwareDatetime

    def is_active(self, at: datetime) -> bool:
        """True when ``at`` lies in the closed effective window."""
        if at < self.effective_from:
            return False
        return self.effective_until is None or at <= self.effective_until


class Override(BaseModel):
    id: int
    schedule_id: int
    user_id: int
    start_time: AwareDatetime
    end_time: AwareDatetime
    reason: Optional[str] = None
    created_at: AwareDatetime

    def covers(self, at: datetime) -> bool:
        return self.start_time <= at <= self.end_time


class UserSummary(BaseModel):
    id: int
    name: str
    email: str


class OnCallResult(BaseModel):
    """Who is on call for a schedule, and why. Never persisted."""
    schedule_id: int
    schedule_name: str
    user_id: int
    user: UserSummary
    source: OnCallSource
    rotation_id: Optional[int] = None
    rotation_name: Optional[str] = None
    override_id: Optional[int] = None
    override_reason: Optional[str] = None
