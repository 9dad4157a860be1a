# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the time zone converter and the rotation engine.
Pure computation, no HTTP, no repositories.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from oncall_engine.core.exceptions import InvalidTimeZone
from oncall_engine.models.domain import Rotation, RotationType
from oncall_engine.services.rotation import RotationEngine, parse_handoff_time
from oncall_engine.services.timezone import TimeZoneConverter

UTC = timezone.utc
engine = RotationEngine()
converter = TimeZoneConverter()


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


def make_rotation(
    rotation_type=RotationType.DAILY,
    effective_from=None,
    handoff_time="09:00",
    handoff_day=None,
) -> Rotation:
    effective_from = effective_from or utc(2025, 1, 1, 9, 0)
    return Rotation(
        id=1,
        schedule_id=1,
        rotation_type=rotation_type,
        handoff_time=handoff_time,
        handoff_day=handoff_day,
        effective_from=effective_from,
        created_at=effective_from,
    )


# ============================================
# TimeZoneConverter
# ============================================
class TestTimeZoneConverter:
    def test_utc_projection(self):
        civil = converter.to_civil(utc(2025, 1, 1, 10, 30), "UTC")
        assert (civil.year, civil.month, civil.day) == (2025, 1, 1)
        assert (civil.hour, civil.minute) == (10, 30)

    def test_day_of_week_starts_on_sunday(self):
        assert converter.to_civil(utc(2025, 1, 5, 12), "UTC").day_of_week == 0
        assert converter.to_civil(utc(2025, 1, 6, 12), "UTC").day_of_week == 1
        assert converter.to_civil(utc(2025, 1, 11, 12), "UTC").day_of_week == 6

    def test_summer_and_winter_offsets(self):
        winter = converter.to_civil(utc(2025, 1, 15, 12), "America/New_York")
        summer = converter.to_civil(utc(2025, 7, 15, 12), "America/New_York")
        assert winter.hour == 7
        assert summer.hour == 8

    def test_half_hour_offset(self):
        civil = converter.to_civil(utc(2025, 1, 1, 3, 30), "Asia/Kolkata")
        assert (civil.hour, civil.minute) == (9, 0)

    def test_projection_crosses_date_line(self):
        civil = converter.to_civil(utc(2025, 1, 1, 20), "Pacific/Auckland")
        assert civil.day == 2
        assert civil.day_of_week == 4  # Thursday

    def test_unknown_zone_raises(self):
        with pytest.raises(InvalidTimeZone) as exc:
            converter.to_civil(utc(2025, 1, 1), "Mars/Olympus_Mons")
        assert exc.value.timezone == "Mars/Olympus_Mons"

    def test_empty_zone_raises(self):
        with pytest.raises(InvalidTimeZone):
            converter.zone("")

    def test_invalid_zone_is_a_value_error(self):
        with pytest.raises(ValueError):
            converter.validate("Not/AZone")

    def test_naive_instant_rejected(self):
        with pytest.raises(ValueError):
            converter.to_civil(datetime(2025, 1, 1, 9), "UTC")

    def test_first_instant_at_plain_day(self):
        at = converter.first_instant_at(date(2025, 1, 2), 9, 0, "America/New_York")
        assert at == utc(2025, 1, 2, 14, 0)

    def test_first_instant_at_repeated_time_takes_first_pass(self):
        at = converter.first_instant_at(date(2025, 11, 2), 1, 30, "America/New_York")
        assert at == utc(2025, 11, 2, 5, 30)

    def test_first_instant_at_skipped_time_takes_transition(self):
        at = converter.first_instant_at(date(2025, 3, 9), 2, 30, "America/New_York")
        assert at == utc(2025, 3, 9, 7, 0)

    def test_first_instant_at_unknown_zone(self):
        with pytest.raises(InvalidTimeZone):
            converter.first_instant_at(date(2025, 1, 2), 9, 0, "Nowhere/Land")

    def test_civil_date_property(self):
        civil = converter.to_civil(utc(2025, 3, 4, 5, 6, 7), "UTC")
        assert civil.date.isoformat() == "2025-03-04"
        assert (civil.hour, civil.minute, civil.second) == (5, 6, 7)


# ============================================
# Handoff time parsing
# ============================================
class TestHandoffTime:
    @pytest.mark.parametrize("value,expected", [
        ("00:00", (0, 0)),
        ("09:00", (9, 0)),
        ("23:59", (23, 59)),
    ])
    def test_valid(self, value, expected):
        assert parse_handoff_time(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "9:00", "09:60", "0900", "", None])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_handoff_time(value)


# ============================================
# Daily rotations
# ============================================
class TestDailyRotation:
    def test_first_period_is_first_member(self):
        assert engine.on_call_index(make_rotation(), 3, utc(2025, 1, 1, 10)) == 0

    def test_next_day_after_handoff(self):
        assert engine.on_call_index(make_rotation(), 3, utc(2025, 1, 2, 10)) == 1

    def test_before_handoff_uses_previous_period(self):
        assert engine.on_call_index(make_rotation(), 3, utc(2025, 1, 4, 8, 30)) == 2

    def test_exactly_at_handoff_moves_on(self):
        rotation = make_rotation()
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 2, 8, 59, 59)) == 0
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 2, 9, 0)) == 1

    def test_wraps_around(self):
        assert engine.on_call_index(make_rotation(), 3, utc(2025, 1, 4, 10)) == 0

    def test_single_member_always_on_call(self):
        rotation = make_rotation()
        for day in range(1, 20):
            assert engine.on_call_index(rotation, 1, utc(2025, 1, day, 12)) == 0

    def test_effective_from_after_handoff_starts_next_day(self):
        rotation = make_rotation(effective_from=utc(2025, 1, 1, 10, 0))
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 2, 9, 0)) == 0
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 3, 9, 0)) == 1

    def test_lead_in_before_first_handoff_is_last_member(self):
        rotation = make_rotation(effective_from=utc(2025, 1, 1, 10, 0))
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 1, 11, 0)) == 2

    def test_effective_from_before_handoff_starts_same_day(self):
        rotation = make_rotation(effective_from=utc(2025, 1, 1, 6, 0))
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 1, 9, 0)) == 0
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 2, 9, 0)) == 1

    def test_advancing_one_day_increments_index(self):
        rotation = make_rotation(effective_from=utc(2025, 1, 1, 13, 17))
        members = 4
        for start in (utc(2025, 1, 1, 13, 17), utc(2025, 1, 3, 2, 0), utc(2025, 2, 10, 9, 0)):
            first = engine.on_call_index(rotation, members, start)
            for k in range(1, 60):
                at = start + timedelta(days=k)
                assert engine.on_call_index(rotation, members, at) == (first + k) % members

    def test_result_within_bounds(self):
        rotation = make_rotation()
        at = utc(2025, 1, 1, 9)
        for _ in range(200):
            assert 0 <= engine.on_call_index(rotation, 7, at) < 7
            at += timedelta(hours=5)

    def test_custom_behaves_like_daily(self):
        daily = make_rotation()
        custom = make_rotation(rotation_type=RotationType.CUSTOM)
        at = utc(2025, 1, 1, 9)
        for _ in range(50):
            assert engine.on_call_index(custom, 3, at) == engine.on_call_index(daily, 3, at)
            at += timedelta(hours=7)


# ============================================
# Weekly rotations
# ============================================
class TestWeeklyRotation:
    def weekly(self, **kwargs) -> Rotation:
        kwargs.setdefault("effective_from", utc(2025, 1, 6, 9, 0))
        kwargs.setdefault("handoff_day", 1)
        return make_rotation(rotation_type=RotationType.WEEKLY, **kwargs)

    def test_first_week_is_first_member(self):
        assert engine.on_call_index(self.weekly(), 2, utc(2025, 1, 10, 12)) == 0

    def test_following_monday_after_handoff(self):
        assert engine.on_call_index(self.weekly(), 2, utc(2025, 1, 13, 10)) == 1

    def test_monday_before_handoff_still_previous_week(self):
        assert engine.on_call_index(self.weekly(), 2, utc(2025, 1, 13, 8, 59)) == 0

    def test_sunday_handoff_day(self):
        rotation = self.weekly(effective_from=utc(2025, 1, 5, 9, 0), handoff_day=0)
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 11, 23)) == 0
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 12, 9)) == 1
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 19, 9)) == 2

    def test_mid_week_start_waits_for_first_handoff(self):
        rotation = self.weekly(effective_from=utc(2025, 1, 8, 9, 0))
        assert engine.on_call_index(rotation, 2, utc(2025, 1, 13, 10)) == 0
        assert engine.on_call_index(rotation, 2, utc(2025, 1, 20, 10)) == 1

    def test_advancing_one_week_increments_index(self):
        rotation = self.weekly()
        start = utc(2025, 1, 8, 15, 45)
        first = engine.on_call_index(rotation, 3, start)
        for k in range(1, 30):
            at = start + timedelta(weeks=k)
            assert engine.on_call_index(rotation, 3, at) == (first + k) % 3

    def test_days_within_a_week_share_member(self):
        rotation = self.weekly()
        indexes = {
            engine.on_call_index(rotation, 4, utc(2025, 1, 13, 9) + timedelta(hours=h))
            for h in range(0, 7 * 24)
        }
        assert indexes == {1}


# ============================================
# Time zones and DST
# ============================================
class TestZonedRotation:
    def test_handoff_is_local_wall_clock(self):
        # 09:00 in New York is 14:00 UTC in winter
        rotation = make_rotation(effective_from=utc(2025, 1, 1, 14, 0))
        zone = "America/New_York"
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 2, 13, 59), zone) == 0
        assert engine.on_call_index(rotation, 3, utc(2025, 1, 2, 14, 0), zone) == 1

    def test_spring_forward_day_counts_as_one_period(self):
        # 2025-03-09 is 23 hours long in New York
        rotation = make_rotation(effective_from=utc(2025, 3, 1, 14, 0))
        zone = "America/New_York"
        assert engine.on_call_index(rotation, 3, utc(2025, 3, 9, 12, 30), zone) == 1
        assert engine.on_call_index(rotation, 3, utc(2025, 3, 9, 13, 30), zone) == 2

    def test_fall_back_day_counts_as_one_period(self):
        # 2025-11-02 is 25 hours long in New York
        rotation = make_rotation(effective_from=utc(2025, 10, 30, 13, 0))
        zone = "America/New_York"
        assert engine.on_call_index(rotation, 5, utc(2025, 11, 3, 13, 30), zone) == 3
        assert engine.on_call_index(rotation, 5, utc(2025, 11, 3, 14, 0), zone) == 4

    def test_handoff_inside_repeated_hour_happens_once(self):
        # 01:30 occurs twice in New York on 2025-11-02: 05:30Z (EDT), 06:30Z (EST)
        rotation = make_rotation(effective_from=utc(2025, 10, 30, 5, 30), handoff_time="01:30")
        zone = "America/New_York"
        instants = [utc(2025, 11, 2, 5, 29), utc(2025, 11, 2, 5, 30),
                    utc(2025, 11, 2, 6, 10), utc(2025, 11, 2, 6, 30)]
        assert [engine.on_call_index(rotation, 5, at, zone) for at in instants] == [2, 3, 3, 3]
        # next day's handoff is back to a single 01:30 EST
        assert engine.on_call_index(rotation, 5, utc(2025, 11, 3, 6, 29), zone) == 3
        assert engine.on_call_index(rotation, 5, utc(2025, 11, 3, 6, 30), zone) == 4

    def test_weekly_handoff_inside_repeated_hour(self):
        # Sunday 01:30 handoff; 2025-11-02 is the fall-back Sunday
        rotation = make_rotation(
            rotation_type=RotationType.WEEKLY,
            effective_from=utc(2025, 10, 26, 5, 30),
            handoff_time="01:30",
            handoff_day=0,
        )
        zone = "America/New_York"
        instants = [utc(2025, 11, 2, 5, 29), utc(2025, 11, 2, 5, 30),
                    utc(2025, 11, 2, 6, 10), utc(2025, 11, 2, 6, 30)]
        assert [engine.on_call_index(rotation, 2, at, zone) for at in instants] == [0, 1, 1, 1]

    def test_index_never_steps_back_across_fall_back(self):
        rotation = make_rotation(effective_from=utc(2025, 10, 30, 5, 30), handoff_time="01:30")
        zone = "America/New_York"
        at = utc(2025, 10, 31, 0, 0)
        previous = engine.on_call_index(rotation, 7, at, zone)
        while at < utc(2025, 11, 5):
            at += timedelta(minutes=10)
            current = engine.on_call_index(rotation, 7, at, zone)
            assert current in (previous, (previous + 1) % 7)
            previous = current

    def test_handoff_inside_skipped_hour_fires_at_transition(self):
        # 02:30 does not exist in New York on 2025-03-09; clocks jump at 07:00Z
        rotation = make_rotation(effective_from=utc(2025, 3, 1, 7, 30), handoff_time="02:30")
        zone = "America/New_York"
        assert engine.on_call_index(rotation, 3, utc(2025, 3, 9, 6, 59), zone) == 1
        assert engine.on_call_index(rotation, 3, utc(2025, 3, 9, 7, 0), zone) == 2
        # 02:30 EDT on the following day
        assert engine.on_call_index(rotation, 3, utc(2025, 3, 10, 6, 29), zone) == 2
        assert engine.on_call_index(rotation, 3, utc(2025, 3, 10, 6, 30), zone) == 0

    def test_half_hour_zone(self):
        rotation = make_rotation(effective_from=utc(2025, 1, 1, 3, 30))
        zone = "Asia/Kolkata"
        assert engine.on_call_index(rotation, 2, utc(2025, 1, 2, 3, 29), zone) == 0
        assert engine.on_call_index(rotation, 2, utc(2025, 1, 2, 3, 30), zone) == 1

    def test_weekly_handoff_day_in_local_zone(self):
        # Monday 09:00 in Auckland is Sunday 20:00 UTC
        rotation = make_rotation(
            rotation_type=RotationType.WEEKLY,
            effective_from=utc(2025, 1, 5, 20, 0),
            handoff_day=1,
        )
        zone = "Pacific/Auckland"
        assert engine.on_call_index(rotation, 2, utc(2025, 1, 12, 19, 59), zone) == 0
        assert engine.on_call_index(rotation, 2, utc(2025, 1, 12, 20, 0), zone) == 1

    def test_unknown_zone_surfaces(self):
        with pytest.raises(InvalidTimeZone):
            engine.on_call_index(make_rotation(), 3, utc(2025, 1, 2), "Nowhere/Land")


# ============================================
# Edge cases
# ============================================
class TestEdgeCases:
    def test_no_members_returns_none(self):
        assert engine.on_call_index(make_rotation(), 0, utc(2025, 1, 2)) is None

    def test_no_members_checked_before_zone(self):
        assert engine.on_call_index(make_rotation(), 0, utc(2025, 1, 2), "Bad/Zone") is None

    def test_before_effective_from_rejected(self):
        with pytest.raises(ValueError):
            engine.on_call_index(make_rotation(), 3, utc(2024, 12, 31, 23))

    def test_engine_uses_injected_converter(self):
        class RecordingConverter(TimeZoneConverter):
            def __init__(self):
                self.zones = []

            def to_civil(self, instant, timezone):
                self.zones.append(timezone)
                return super().to_civil(instant, timezone)

        recording = RecordingConverter()
        RotationEngine(recording).on_call_index(make_rotation(), 3, utc(2025, 1, 2), "Europe/Paris")
        assert recording.zones == ["Europe/Paris", "Europe/Paris"]
