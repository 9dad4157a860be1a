# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation logic: pure computation, no side effects.

The on-call index is the number of whole handoff periods between the
rotation's first handoff and the handoff that opened the current period,
taken modulo the member count. Both handoffs are located on the schedule's
civil calendar, and the distance between them is measured in calendar days,
so a DST day of 23 or 25 hours still counts as one period. Whether an
instant has reached its day's handoff is decided on absolute instants, so a
handoff inside a repeated hour happens once, at its first occurrence.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

from oncall_engine.core.logging import get_logger
from oncall_engine.models.domain import Rotation, RotationType
from oncall_engine.services.timezone import CivilTime, TimeZoneConverter

logger = get_logger(__name__)

HANDOFF_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DAYS_PER_WEEK = 7


def parse_handoff_time(handoff_time: str) -> tuple[int, int]:
    """Split ``HH:MM`` into (hour, minute). Raises ValueError if malformed."""
    match = HANDOFF_TIME_PATTERN.match(handoff_time or "")
    if match is None:
        raise ValueError("Handoff time must be in HH:MM format (00:00 - 23:59)")
    return int(match.group(1)), int(match.group(2))


class RotationEngine:
    """Computes which member of a rotation holds the pager at an instant."""

    def __init__(self, converter: Optional[TimeZoneConverter] = None) -> None:
        self._tz = converter or TimeZoneConverter()

    def on_call_index(
        self,
        rotation: Rotation,
        members_count: int,
        at: datetime,
        timezone: str = "UTC",
    ) -> Optional[int]:
        """
        Index in ``[0, members_count)`` of the member on call at ``at``.
        Returns None when the rotation has no members.
        Raises ValueError if ``at`` precedes ``effective_from`` and
        InvalidTimeZone if ``timezone`` is unknown.
        """
        if members_count <= 0:
            return None
        if at < rotation.effective_from:
            raise ValueError(
                f"Rotation {rotation.id} is not effective until "
                f"{rotation.effective_from.isoformat()}"
            )

        hour, minute = parse_handoff_time(rotation.handoff_time)
        first = rotation.effective_from

        if rotation.rotation_type == RotationType.WEEKLY:
            handoff_day = rotation.handoff_day or 0
            periods = (
                self._weekly_anchor(at, timezone, handoff_day, hour, minute, backwards=True)
                - self._weekly_anchor(first, timezone, handoff_day, hour, minute, backwards=False)
            ).days // DAYS_PER_WEEK
        else:
            if rotation.rotation_type == RotationType.CUSTOM:
                logger.debug(
                    "Rotation %s is custom; using daily cadence", rotation.id
                )
            periods = (
                self._daily_anchor(at, timezone, hour, minute, backwards=True)
                - self._daily_anchor(first, timezone, hour, minute, backwards=False)
            ).days

        return periods % members_count

    # ── Internal ──

    def _crosses_handoff(
        self, instant: datetime, civil: CivilTime, timezone: str,
        hour: int, minute: int, backwards: bool,
    ) -> bool:
        """
        Whether ``instant`` lies on the wrong side of its own day's handoff:
        before it when looking backwards, after it when looking forwards.
        Compared as instants so a repeated or skipped wall-clock hour is
        crossed exactly once.
        """
        handoff_at = self._tz.first_instant_at(civil.date, hour, minute, timezone)
        return instant < handoff_at if backwards else instant > handoff_at

    def _daily_anchor(
        self, instant: datetime, timezone: str, hour: int, minute: int, backwards: bool
    ) -> date:
        """
        Civil date of the handoff at or before ``instant`` (backwards) or at
        or after it (forwards).
        """
        civil = self._tz.to_civil(instant, timezone)
        if not self._crosses_handoff(instant, civil, timezone, hour, minute, backwards):
            return civil.date
        step = timedelta(days=-1 if backwards else 1)
        return civil.date + step

    def _weekly_anchor(
        self, instant: datetime, timezone: str,
        handoff_day: int, hour: int, minute: int, backwards: bool,
    ) -> date:
        civil = self._tz.to_civil(instant, timezone)
        if backwards:
            days_back = (civil.day_of_week - handoff_day) % DAYS_PER_WEEK
            if days_back == 0 and self._crosses_handoff(
                instant, civil, timezone, hour, minute, backwards=True
            ):
                days_back = DAYS_PER_WEEK
            return civil.date - timedelta(days=days_back)

        days_forward = (handoff_day - civil.day_of_week) % DAYS_PER_WEEK
        if days_forward == 0 and self._crosses_handoff(
            instant, civil, timezone, hour, minute, backwards=False
        ):
            days_forward = DAYS_PER_WEEK
        return civil.date + timedelta(days=days_forward)
