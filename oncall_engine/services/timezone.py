# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Time zone conversion: pure computation, no side effects.

Every piece of rotation math that needs wall-clock time goes through
``TimeZoneConverter``. Zones come from the IANA database (``zoneinfo``,
with the ``tzdata`` package as fallback where the OS ships none), so DST
transitions and non-integer UTC offsets are handled by the database rather
than by offset arithmetic.
"""

from datetime import date, datetime, time, timezone as dt_timezone
from typing import NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from oncall_engine.core.exceptions import InvalidTimeZone

UTC = dt_timezone.utc


class CivilTime(NamedTuple):
    """An instant as read off a wall clock in some zone."""
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    microsecond: int
    day_of_week: int  # 0=Sunday .. 6=Saturday

    @property
    def date(self) -> date:
        return date(self.year, self.month, self.day)


class TimeZoneConverter:
    """Projects absolute instants into a named zone's civil calendar."""

    def zone(self, name: str) -> ZoneInfo:
        """Look up an IANA zone. Raises InvalidTimeZone, never defaults."""
        if not isinstance(name, str) or not name:
            raise InvalidTimeZone(str(name))
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
            raise InvalidTimeZone(name) from exc

    def validate(self, name: str) -> str:
        self.zone(name)
        return name

    def to_civil(self, instant: datetime, timezone: str) -> CivilTime:
        if instant.tzinfo is None or instant.utcoffset() is None:
            raise ValueError("instant must be timezone-aware")
        local = instant.astimezone(self.zone(timezone))
        return CivilTime(
            year=local.year,
            month=local.month,
            day=local.day,
            hour=local.hour,
            minute=local.minute,
            second=local.second,
            microsecond=local.microsecond,
            day_of_week=(local.weekday() + 1) % 7,
        )

    def first_instant_at(
        self, day: date, hour: int, minute: int, timezone: str
    ) -> datetime:
        """
        Earliest instant on ``day`` at which the wall clock in ``timezone``
        reads ``hour:minute`` or later, in UTC.

        A time repeated by a backward transition resolves to its first
        occurrence. A time skipped by a forward transition resolves to the
        transition itself.
        """
        zone = self.zone(timezone)
        wall = datetime.combine(day, time(hour, minute))
        first = wall.replace(tzinfo=zone, fold=0).astimezone(UTC)
        if first.astimezone(zone).replace(tzinfo=None) == wall:
            return first

        # Inside a gap: the two folds land on either side of the jump.
        low, high = sorted(
            int(wall.replace(tzinfo=zone, fold=f).timestamp()) for f in (0, 1)
        )
        while high - low > 1:
            mid = (low + high) // 2
            if datetime.fromtimestamp(mid, zone).replace(tzinfo=None) >= wall:
                high = mid
            else:
                low = mid
        return datetime.fromtimestamp(high, UTC)

