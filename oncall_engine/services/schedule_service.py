# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule management, business logic for CRUD operations.
Coordinates repository writes with metrics, history, and validation.
Malformed rotations and overrides are rejected here so the resolver can
assume validated input.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from oncall_engine.core.config import settings
from oncall_engine.core.exceptions import (
    MemberNotFound,
    OverrideNotFound,
    RotationNotFound,
    ScheduleNotFound,
    UserNotFound,
)
from oncall_engine.core.logging import get_logger
from oncall_engine.metrics.prometheus import (
    ACTIVE_SCHEDULES,
    OVERRIDES_TOTAL,
    SCHEDULES_CREATED,
)
from oncall_engine.models.domain import Override, Rotation, RotationType, Schedule, User
from oncall_engine.repositories.history_repository import HistoryRepository
from oncall_engine.repositories.override_repository import OverrideRepository
from oncall_engine.repositories.schedule_repository import ScheduleRepository
from oncall_engine.services.rotation import parse_handoff_time
from oncall_engine.services.timezone import TimeZoneConverter

logger = get_logger(__name__)

_UNSET: Any = object()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _require_aware(value: Optional[datetime], field: str) -> None:
    if value is not None and (value.tzinfo is None or value.utcoffset() is None):
        raise ValueError(f"{field} must be timezone-aware")


def _validate_window(
    effective_from: datetime, effective_until: Optional[datetime]
) -> None:
    _require_aware(effective_from, "effective_from")
    _require_aware(effective_until, "effective_until")
    if effective_until is not None and effective_until <= effective_from:
        raise ValueError("effective_until must be after effective_from")


def _validate_handoff(rotation_type: RotationType, handoff_day: Optional[int]) -> None:
    if rotation_type == RotationType.WEEKLY and handoff_day is None:
        raise ValueError("Weekly rotations require handoff_day (0-6)")
    if handoff_day is not None and not 0 <= handoff_day <= 6:
        raise ValueError("handoff_day must be between 0 (Sunday) and 6 (Saturday)")


class ScheduleService:
    """Business logic for on-call schedule management."""

    def __init__(
        self,
        schedule_repo: ScheduleRepository,
        override_repo: OverrideRepository,
        history_repo: HistoryRepository,
        converter: Optional[TimeZoneConverter] = None,
    ) -> None:
        self._schedules = schedule_repo
        self._overrides = override_repo
        self._history = history_repo
        self._tz = converter or TimeZoneConverter()

    # ── Users ──

    def create_user(self, name: str, email: str, user_id: Optional[int] = None) -> User:
        if user_id is not None and self._schedules.get_user(user_id) is not None:
            raise ValueError(f"User with ID {user_id} already exists")
        user = self._schedules.add_user(name=name, email=email, user_id=user_id)
        logger.info("User created: id=%d, email=%s", user.id, email)
        return user

    def get_user(self, user_id: int) -> User:
        user = self._schedules.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    def list_users(self) -> list[User]:
        return self._schedules.get_all_users()

    # ── Schedules ──

    def create_schedule(
        self, name: str, team_id: int, timezone_name: Optional[str] = None
    ) -> Schedule:
        """Create a schedule. Raises InvalidTimeZone for an unknown zone."""
        tz_name = self._tz.validate(timezone_name or settings.DEFAULT_TIMEZONE)
        now = _now()
        schedule = self._schedules.add_schedule(
            name=name,
            team_id=team_id,
            timezone=tz_name,
            created_at=now,
            updated_at=now,
        )
        SCHEDULES_CREATED.inc()
        ACTIVE_SCHEDULES.set(self._schedules.count())
        self._history.record_event(
            "schedule_created",
            schedule.id,
            {"name": name, "team_id": team_id, "timezone": tz_name},
        )
        logger.info("Schedule created: id=%d, name=%s, tz=%s", schedule.id, name, tz_name)
        return schedule

    def get_schedule(self, schedule_id: int) -> Schedule:
        schedule = self._schedules.get_schedule(schedule_id)
        if schedule is None:
            raise ScheduleNotFound(schedule_id)
        return schedule

    def get_schedule_detail(self, schedule_id: int) -> dict[str, Any]:
        """Schedule with its rotations (members in order) and overrides."""
        schedule = self.get_schedule(schedule_id)
        return {
            **schedule.model_dump(),
            "rotations": self._schedules.get_rotations(schedule_id),
            "overrides": self._overrides.get_by_schedule(schedule_id),
        }

    def list_schedules(self, team_id: Optional[int] = None) -> list[Schedule]:
        return self._schedules.get_all(team_id=team_id)

    def update_schedule(
        self,
        schedule_id: int,
        name: Optional[str] = None,
        timezone_name: Optional[str] = None,
    ) -> Schedule:
        schedule = self.get_schedule(schedule_id)
        changes: dict[str, Any] = {}
        if name is not None and name != schedule.name:
            changes["name"] = {"old": schedule.name, "new": name}
            schedule.name = name
        if timezone_name is not None and timezone_name != schedule.timezone:
            self._tz.validate(timezone_name)
            changes["timezone"] = {"old": schedule.timezone, "new": timezone_name}
            schedule.timezone = timezone_name
        schedule.updated_at = _now()
        self._schedules.save_schedule(schedule)
        if changes:
            self._history.record_event("schedule_updated", schedule_id, changes)
            logger.info("Schedule updated: id=%d, changes=%s", schedule_id, list(changes))
        return schedule

    def delete_schedule(self, schedule_id: int) -> dict[str, Any]:
        """Delete a schedule with its rotations and overrides."""
        with self._schedules.lock, self._overrides.lock:
            if self._schedules.delete_schedule(schedule_id) is None:
                raise ScheduleNotFound(schedule_id)
            removed_overrides = self._overrides.delete_by_schedule(schedule_id)
        ACTIVE_SCHEDULES.set(self._schedules.count())
        OVERRIDES_TOTAL.set(self._overrides.count())
        self._history.record_event(
            "schedule_deleted", schedule_id, {"overrides_removed": removed_overrides}
        )
        logger.info("Schedule deleted: id=%d", schedule_id)
        return {"success": True}

    # ── Rotations ──

    def create_rotation(
        self,
        schedule_id: int,
        rotation_type: RotationType,
        members: list[int],
        effective_from: datetime,
        handoff_time: Optional[str] = None,
        handoff_day: Optional[int] = None,
        effective_until: Optional[datetime] = None,
        name: Optional[str] = None,
    ) -> Rotation:
        """Create a rotation; ``members`` are user ids in rotation order."""
        self.get_schedule(schedule_id)
        rotation_type = RotationType(rotation_type)
        handoff_time = handoff_time or settings.DEFAULT_HANDOFF_TIME
        parse_handoff_time(handoff_time)
        _validate_handoff(rotation_type, handoff_day)
        _validate_window(effective_from, effective_until)
        self._require_members(members)

        rotation = self._schedules.add_rotation(
            members,
            schedule_id=schedule_id,
            name=name,
            rotation_type=rotation_type,
            handoff_time=handoff_time,
            handoff_day=handoff_day,
            effective_from=effective_from,
            effective_until=effective_until,
            created_at=_now(),
        )
        active = [
            r.id
            for r in self._schedules.get_rotations(schedule_id)
            if r.id != rotation.id and self._windows_overlap(r, rotation)
        ]
        if active:
            logger.warning(
                "Rotation %d overlaps rotations %s on schedule %d; "
                "the earliest effective one is used",
                rotation.id, active, schedule_id,
            )
        self._history.record_event(
            "rotation_created",
            schedule_id,
            {
                "rotation_id": rotation.id,
                "rotation_type": rotation_type.value,
                "members_count": len(members),
            },
        )
        logger.info(
            "Rotation created: id=%d, schedule=%d, type=%s, members=%d",
            rotation.id, schedule_id, rotation_type.value, len(members),
        )
        return rotation

    def get_rotation(self, rotation_id: int) -> Rotation:
        rotation = self._schedules.get_rotation(rotation_id)
        if rotation is None:
            raise RotationNotFound(rotation_id)
        return rotation

    def update_rotation(
        self,
        rotation_id: int,
        name: Any = _UNSET,
        handoff_time: Optional[str] = None,
        handoff_day: Any = _UNSET,
        effective_from: Optional[datetime] = None,
        effective_until: Any = _UNSET,
    ) -> Rotation:
        """Update rotation details; members are managed separately."""
        rotation = self.get_rotation(rotation_id)
        if name is not _UNSET:
            rotation.name = name
        if handoff_time is not None:
            parse_handoff_time(handoff_time)
            rotation.handoff_time = handoff_time
        if handoff_day is not _UNSET:
            rotation.handoff_day = handoff_day
        if effective_from is not None:
            rotation.effective_from = effective_from
        if effective_until is not _UNSET:
            rotation.effective_until = effective_until
        _validate_handoff(rotation.rotation_type, rotation.handoff_day)
        _validate_window(rotation.effective_from, rotation.effective_until)

        self._schedules.save_rotation(rotation)
        self._history.record_event(
            "rotation_updated", rotation.schedule_id, {"rotation_id": rotation_id}
        )
        logger.info("Rotation updated: id=%d", rotation_id)
        return rotation

    def delete_rotation(self, rotation_id: int) -> dict[str, Any]:
        rotation = self._schedules.delete_rotation(rotation_id)
        if rotation is None:
            raise RotationNotFound(rotation_id)
        self._history.record_event(
            "rotation_deleted", rotation.schedule_id, {"rotation_id": rotation_id}
        )
        logger.info("Rotation deleted: id=%d", rotation_id)
        return {"success": True}

    def replace_members(self, rotation_id: int, user_ids: list[int]) -> Rotation:
        """Set the full member order in one step."""
        self._require_members(user_ids)
        with self._schedules.lock:
            rotation = self._schedules.set_members(rotation_id, user_ids)
        if rotation is None:
            raise RotationNotFound(rotation_id)
        self._record_members(rotation, "replaced")
        return rotation

    def add_member(self, rotation_id: int, user_id: int) -> Rotation:
        """Append a user to the end of the rotation."""
        self.get_user(user_id)
        with self._schedules.lock:
            rotation = self.get_rotation(rotation_id)
            user_ids = [m.user_id for m in rotation.members] + [user_id]
            rotation = self._schedules.set_members(rotation_id, user_ids)
        self._record_members(rotation, "added", user_id)
        return rotation

    def remove_member(self, rotation_id: int, user_id: int) -> Rotation:
        """Remove a user; the remaining members close ranks."""
        with self._schedules.lock:
            rotation = self.get_rotation(rotation_id)
            user_ids = [m.user_id for m in rotation.members]
            if user_id not in user_ids:
                raise MemberNotFound(rotation_id, user_id)
            user_ids.remove(user_id)
            rotation = self._schedules.set_members(rotation_id, user_ids)
        if not rotation.members:
            logger.warning("Rotation %d now has no members", rotation_id)
        self._record_members(rotation, "removed", user_id)
        return rotation

    # ── Overrides ──

    def create_override(
        self,
        schedule_id: int,
        user_id: int,
        start_time: datetime,
        end_time: datetime,
        reason: Optional[str] = None,
    ) -> Override:
        """Create an override (e.g. vacation coverage). Overlaps are allowed."""
        self.get_schedule(schedule_id)
        self.get_user(user_id)
        self._validate_range(start_time, end_time)

        overlapping = self._overrides.find_overlapping(schedule_id, start_time, end_time)
        if overlapping:
            logger.warning(
                "Override overlaps with %d existing override(s) on schedule %d; "
                "the newest wins",
                len(overlapping), schedule_id,
            )
        override = self._overrides.add(
            schedule_id=schedule_id,
            user_id=user_id,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
            created_at=_now(),
        )
        OVERRIDES_TOTAL.set(self._overrides.count())
        self._history.record_event(
            "override_created",
            schedule_id,
            {
                "override_id": override.id,
                "user_id": user_id,
                "start_time": start_time.isoformat(),
                "end_time": end_time.isoformat(),
                "reason": reason,
            },
        )
        logger.info(
            "Override created: schedule=%d, user=%d, %s -> %s",
            schedule_id, user_id, start_time.isoformat(), end_time.isoformat(),
        )
        return override

    def get_override(self, override_id: int) -> Override:
        override = self._overrides.get(override_id)
        if override is None:
            raise OverrideNotFound(override_id)
        return override

    def list_overrides(
        self,
        schedule_id: int,
        include_past: bool = False,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
    ) -> list[Override]:
        """Current and future overrides by default, ordered by start time."""
        self.get_schedule(schedule_id)
        overrides = self._overrides.get_by_schedule(schedule_id)
        if not include_past:
            cutoff = from_time or _now()
            overrides = [o for o in overrides if o.end_time >= cutoff]
        if from_time is not None:
            overrides = [o for o in overrides if o.start_time >= from_time]
        if to_time is not None:
            overrides = [o for o in overrides if o.end_time <= to_time]
        return overrides

    def update_override(
        self,
        override_id: int,
        user_id: Optional[int] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        reason: Any = _UNSET,
    ) -> Override:
        override = self.get_override(override_id)
        if user_id is not None:
            self.get_user(user_id)
            override.user_id = user_id
        if start_time is not None:
            override.start_time = start_time
        if end_time is not None:
            override.end_time = end_time
        if reason is not _UNSET:
            override.reason = reason
        self._validate_range(override.start_time, override.end_time)

        self._overrides.save(override)
        self._history.record_event(
            "override_updated", override.schedule_id, {"override_id": override_id}
        )
        logger.info("Override updated: id=%d", override_id)
        return override

    def delete_override(self, override_id: int) -> dict[str, Any]:
        override = self._overrides.delete(override_id)
        if override is None:
            raise OverrideNotFound(override_id)
        OVERRIDES_TOTAL.set(self._overrides.count())
        self._history.record_event(
            "override_deleted", override.schedule_id, {"override_id": override_id}
        )
        logger.info("Override deleted: id=%d", override_id)
        return {"success": True}

    def delete_past_overrides(
        self, schedule_id: int, before: Optional[datetime] = None
    ) -> dict[str, int]:
        """Purge overrides that ended at or before ``before`` (default: now)."""
        self.get_schedule(schedule_id)
        deleted = self._overrides.delete_by_schedule(
            schedule_id, ended_before=before or _now()
        )
        OVERRIDES_TOTAL.set(self._overrides.count())
        logger.info("Deleted %d past override(s) for schedule %d", deleted, schedule_id)
        return {"deleted": deleted}

    # ── Seed ──

    def seed_defaults(self) -> None:
        """Create demo users and schedules so the service is usable immediately."""
        users = [
            self.create_user(name, email)
            for name, email in [
                ("Alice Martin", "alice@company.com"),
                ("Bob Dupont", "bob@company.com"),
                ("Carol Chen", "carol@company.com"),
                ("David Kumar", "david@company.com"),
                ("Eve Johnson", "eve@company.com"),
            ]
        ]
        start = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)

        platform = self.create_schedule("Platform Primary", team_id=1, timezone_name="UTC")
        self.create_rotation(
            platform.id,
            RotationType.WEEKLY,
            [u.id for u in users[:3]],
            effective_from=start,
            handoff_time="09:00",
            handoff_day=1,
            name="Platform weekly",
        )
        backend = self.create_schedule(
            "Backend Primary", team_id=2, timezone_name="America/New_York"
        )
        self.create_rotation(
            backend.id,
            RotationType.DAILY,
            [u.id for u in users[3:]],
            effective_from=start - timedelta(hours=5),
            handoff_time="09:00",
            name="Backend daily",
        )
        logger.info("Seeded %d default on-call schedules", self._schedules.count())

    # ── Stats helpers ──

    def get_stats(self) -> dict[str, Any]:
        """Aggregated operational statistics."""
        rotation_types: dict[str, int] = {}
        for schedule in self._schedules.get_all():
            for r in self._schedules.get_rotations(schedule.id):
                rt = r.rotation_type.value
                rotation_types[rt] = rotation_types.get(rt, 0) + 1
        return {
            "total_schedules": self._schedules.count(),
            "total_rotations": self._schedules.rotation_count(),
            "total_members": self._schedules.member_count(),
            "total_overrides": self._overrides.count(),
            "total_history_events": self._history.count(),
            "rotation_types": rotation_types,
            "event_types": self._history.count_by_type(),
        }

    # ── Internal ──

    def _require_members(self, user_ids: list[int]) -> None:
        if not user_ids:
            raise ValueError("Rotation must have at least one member")
        for uid in user_ids:
            self.get_user(uid)

    @staticmethod
    def _validate_range(start_time: datetime, end_time: datetime) -> None:
        _require_aware(start_time, "start_time")
        _require_aware(end_time, "end_time")
        if end_time <= start_time:
            raise ValueError("End time must be after start time")

    @staticmethod
    def _windows_overlap(a: Rotation, b: Rotation) -> bool:
        a_ends_after_b_starts = a.effective_until is None or a.effective_until >= b.effective_from
        b_ends_after_a_starts = b.effective_until is None or b.effective_until >= a.effective_from
        return a_ends_after_b_starts and b_ends_after_a_starts

    def _record_members(
        self, rotation: Rotation, action: str, user_id: Optional[int] = None
    ) -> None:
        details: dict[str, Any] = {
            "rotation_id": rotation.id,
            "action": action,
            "members": [m.user_id for m in rotation.members],
        }
        if user_id is not None:
            details["user_id"] = user_id
        self._history.record_event(
            "rotation_members_updated", rotation.schedule_id, details
        )
        logger.info(
            "Rotation %d members %s: %s",
            rotation.id, action, details["members"],
        )
