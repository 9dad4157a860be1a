# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: On-call resolution.
Business logic for determining who is on call for a schedule at an instant.

Decision order per schedule:
    active override ─► first active rotation ─► None (unstaffed)

All state is read in one critical section (``ScheduleSnapshot``) and the
computation runs on that copy only, so a membership change landing mid-way
cannot produce a half-updated answer.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from oncall_engine.core.config import settings
from oncall_engine.core.exceptions import InvalidTimeZone, ScheduleNotFound, UserNotFound
from oncall_engine.core.logging import get_logger
from oncall_engine.metrics.prometheus import (
    INVALID_TIMEZONE_ERRORS,
    RESOLUTION_LATENCY,
    RESOLUTIONS_TOTAL,
)
from oncall_engine.models.domain import (
    OnCallResult,
    OnCallSource,
    Override,
    Rotation,
    Schedule,
    User,
    UserSummary,
)
from oncall_engine.repositories.override_repository import OverrideRepository
from oncall_engine.repositories.schedule_repository import ScheduleRepository
from oncall_engine.services.override_resolver import pick_override
from oncall_engine.services.rotation import RotationEngine

logger = get_logger(__name__)


class ScheduleSnapshot(NamedTuple):
    schedule: Schedule
    overrides: list[Override]
    rotations: list[Rotation]
    users: dict[int, User]


class OnCallResolver:
    """Resolves the on-call user for one or many schedules."""

    def __init__(
        self,
        schedule_repo: ScheduleRepository,
        override_repo: OverrideRepository,
        rotation_engine: Optional[RotationEngine] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self._schedules = schedule_repo
        self._overrides = override_repo
        self._engine = rotation_engine or RotationEngine()
        self._max_workers = max_workers or settings.RESOLUTION_MAX_WORKERS

    # ── Public API ──

    def resolve_on_call(
        self, schedule_id: int, at: Optional[datetime] = None
    ) -> Optional[OnCallResult]:
        """
        Who is on call for ``schedule_id`` at ``at`` (default: now).
        Returns None when nobody is. Raises ScheduleNotFound for an unknown
        schedule and InvalidTimeZone when the schedule zone is unknown.
        """
        at = self._instant(at)
        started = time.perf_counter()
        try:
            snapshot = self.snapshot(schedule_id, at)
            if snapshot is None:
                raise ScheduleNotFound(schedule_id)
            result = self._resolve(snapshot, at)
        except InvalidTimeZone as exc:
            INVALID_TIMEZONE_ERRORS.inc()
            logger.error(
                "Cannot resolve schedule %s: unknown time zone '%s'",
                schedule_id, exc.timezone,
                extra={"schedule_id": schedule_id, "timezone": exc.timezone, "at": at},
            )
            raise
        finally:
            RESOLUTION_LATENCY.observe(time.perf_counter() - started)

        source = result.source.value if result else "unstaffed"
        RESOLUTIONS_TOTAL.labels(source=source).inc()
        if result is None:
            logger.warning(
                "No on-call user found for schedule %s at %s",
                schedule_id, at.isoformat(),
                extra={"schedule_id": schedule_id, "at": at, "source": source},
            )
        else:
            logger.debug(
                "Schedule %s resolved to user %s",
                schedule_id, result.user_id,
                extra={
                    "schedule_id": schedule_id,
                    "user_id": result.user_id,
                    "rotation_id": result.rotation_id,
                    "override_id": result.override_id,
                    "source": source,
                    "at": at,
                },
            )
        return result

    def resolve_multiple_schedules(
        self, schedule_ids: list[int], at: Optional[datetime] = None
    ) -> list[OnCallResult]:
        """
        Resolve each schedule independently and concurrently. Unstaffed and
        unknown schedules are dropped; remaining results keep input order.
        """
        if not schedule_ids:
            return []
        at = self._instant(at)
        workers = min(self._max_workers, len(schedule_ids))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda sid: self._resolve_or_skip(sid, at), schedule_ids))
        return [r for r in results if r is not None]

    def snapshot(self, schedule_id: int, at: datetime) -> Optional[ScheduleSnapshot]:
        """Point-in-time copy of everything resolution reads, or None."""
        with self._schedules.lock, self._overrides.lock:
            schedule = self._schedules.get_schedule(schedule_id)
            if schedule is None:
                return None
            overrides = self._overrides.get_active_overrides(schedule_id, at)
            rotations = self._schedules.get_active_rotations(schedule_id, at)
            user_ids = [o.user_id for o in overrides] + [
                m.user_id for r in rotations for m in r.members
            ]
            users = self._schedules.get_users(user_ids)
        return ScheduleSnapshot(schedule, overrides, rotations, users)

    # ── Internal ──

    def _resolve_or_skip(self, schedule_id: int, at: datetime) -> Optional[OnCallResult]:
        try:
            return self.resolve_on_call(schedule_id, at)
        except ScheduleNotFound:
            logger.warning("Skipping unknown schedule %s", schedule_id)
            return None

    def _resolve(self, snapshot: ScheduleSnapshot, at: datetime) -> Optional[OnCallResult]:
        schedule = snapshot.schedule
        logger.debug(
            "Resolving on-call for schedule %s at %s", schedule.id, at.isoformat(),
            extra={"schedule_id": schedule.id, "timezone": schedule.timezone},
        )

        override = pick_override(snapshot.overrides, at)
        if override is not None:
            return OnCallResult(
                schedule_id=schedule.id,
                schedule_name=schedule.name,
                user_id=override.user_id,
                user=self._summary(snapshot.users, override.user_id),
                source=OnCallSource.OVERRIDE,
                override_id=override.id,
                override_reason=override.reason,
            )

        if not snapshot.rotations:
            return None
        if len(snapshot.rotations) > 1:
            logger.warning(
                "Schedule %s has %d active rotations; using rotation %s",
                schedule.id, len(snapshot.rotations), snapshot.rotations[0].id,
            )
        rotation = snapshot.rotations[0]

        index = self._engine.on_call_index(
            rotation, len(rotation.members), at, schedule.timezone
        )
        if index is None:
            logger.warning(
                "Rotation %s has no members", rotation.id,
                extra={"schedule_id": schedule.id, "rotation_id": rotation.id},
            )
            return None

        member = rotation.members[index]
        return OnCallResult(
            schedule_id=schedule.id,
            schedule_name=schedule.name,
            user_id=member.user_id,
            user=self._summary(snapshot.users, member.user_id),
            source=OnCallSource.ROTATION,
            rotation_id=rotation.id,
            rotation_name=rotation.name,
        )

    @staticmethod
    def _summary(users: dict[int, User], user_id: int) -> UserSummary:
        user = users.get(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return UserSummary(id=user.id, name=user.name, email=user.email)

    @staticmethod
    def _instant(at: Optional[datetime]) -> datetime:
        if at is None:
            return datetime.now(timezone.utc)
        if at.tzinfo is None or at.utcoffset() is None:
            raise ValueError("'at' must be timezone-aware")
        return at
