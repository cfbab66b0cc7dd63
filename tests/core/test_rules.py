"""Unit tests for notification eligibility rules.

Pure function tests - fast, no mocks needed.
"""

from datetime import datetime, timezone

import pytest

from quake_notify.core.earthquake import Event
from quake_notify.core.geo import GeoPoint
from quake_notify.core.preferences import NotificationProfile, QuietHours
from quake_notify.core.rules import (
    EligibilityRule,
    evaluate_profile,
    evaluate_user,
    format_match_summary,
    is_quiet_time,
    sunday_based_weekday,
    to_local_time,
)


# A Wednesday, away from any quiet hours used below
NOON = datetime(2024, 1, 3, 12, 0)
LATE_EVENING = datetime(2024, 1, 3, 23, 0)

HOME = GeoPoint(latitude=35.0, longitude=139.0)


def make_event(magnitude=5.0, latitude=35.0, longitude=139.0):
    return Event(
        id="ev1",
        magnitude=magnitude,
        place="Near Home",
        time=1_704_283_200_000,
        latitude=latitude,
        longitude=longitude,
        depth_km=10.0,
        source="USGS",
    )


def night_quiet_hours(day: int) -> QuietHours:
    return QuietHours(enabled=True, start=(22, 0), end=(6, 0), days=frozenset({day}))


class TestIsQuietTime:
    """Tests for is_quiet_time()."""

    def test_disabled_is_never_quiet(self):
        quiet = QuietHours(enabled=False, start=(0, 0), end=(23, 59))
        assert is_quiet_time(quiet, NOON) is False

    def test_same_day_window(self):
        quiet = QuietHours(enabled=True, start=(9, 0), end=(17, 0))
        assert is_quiet_time(quiet, datetime(2024, 1, 3, 9, 0)) is True
        assert is_quiet_time(quiet, datetime(2024, 1, 3, 16, 59)) is True
        assert is_quiet_time(quiet, datetime(2024, 1, 3, 17, 0)) is False
        assert is_quiet_time(quiet, datetime(2024, 1, 3, 8, 59)) is False

    def test_midnight_spanning_window(self):
        """22:00-06:00 is quiet at 23:30 and not quiet at 12:00."""
        day = sunday_based_weekday(datetime(2024, 1, 3))
        quiet = night_quiet_hours(day)
        assert is_quiet_time(quiet, datetime(2024, 1, 3, 23, 30)) is True
        assert is_quiet_time(quiet, datetime(2024, 1, 3, 12, 0)) is False

    def test_midnight_spanning_window_after_midnight(self):
        quiet = QuietHours(enabled=True, start=(22, 0), end=(6, 0))
        assert is_quiet_time(quiet, datetime(2024, 1, 3, 5, 59)) is True
        assert is_quiet_time(quiet, datetime(2024, 1, 3, 6, 0)) is False

    def test_day_not_selected(self):
        """Window does not apply on days outside quiet_hours_days."""
        wednesday = datetime(2024, 1, 3, 23, 30)
        quiet = night_quiet_hours(day=0)  # Sunday only
        assert is_quiet_time(quiet, wednesday) is False

    def test_equal_start_and_end_spans_whole_day(self):
        quiet = QuietHours(enabled=True, start=(8, 0), end=(8, 0))
        assert is_quiet_time(quiet, NOON) is True


class TestWeekdayAndTimezone:
    """Tests for sunday_based_weekday() and to_local_time()."""

    def test_sunday_is_zero(self):
        assert sunday_based_weekday(datetime(2024, 1, 7)) == 0

    def test_saturday_is_six(self):
        assert sunday_based_weekday(datetime(2024, 1, 6)) == 6

    def test_naive_time_unchanged(self):
        assert to_local_time(NOON, "Asia/Tokyo") == NOON

    def test_converts_to_profile_zone(self):
        instant = datetime(2024, 1, 3, 14, 0, tzinfo=timezone.utc)
        local = to_local_time(instant, "Asia/Tokyo")
        assert (local.hour, local.minute) == (23, 0)

    def test_unknown_zone_uses_default(self):
        instant = datetime(2024, 1, 3, 14, 0, tzinfo=timezone.utc)
        local = to_local_time(instant, "Not/AZone", default_timezone="UTC")
        assert local.hour == 14


class TestEvaluateProfile:
    """Tests for evaluate_profile() precedence."""

    def test_magnitude_gate(self):
        """minMagnitude 4.0, event 3.9, no override -> not eligible."""
        profile = NotificationProfile(min_magnitude=4.0, global_override_magnitude=0)
        result = evaluate_profile(make_event(magnitude=3.9), profile, NOON)
        assert result.eligible is False
        assert result.rule == EligibilityRule.BELOW_MIN_MAGNITUDE

    def test_magnitude_at_threshold(self):
        profile = NotificationProfile(min_magnitude=4.0)
        result = evaluate_profile(make_event(magnitude=4.0), profile, NOON)
        assert result.eligible is True
        assert result.rule == EligibilityRule.STANDARD

    def test_global_override_bypasses_radius(self):
        """Override 7.0, radius 10 km, event 5000 km away at M7.5 -> eligible."""
        profile = NotificationProfile(
            global_override_magnitude=7.0,
            radius_km=10,
            location=GeoPoint(latitude=0.0, longitude=0.0),
        )
        event = make_event(magnitude=7.5, latitude=0.0, longitude=45.0)

        result = evaluate_profile(event, profile, NOON)

        assert result.distance_km == pytest.approx(5004, rel=0.01)
        assert result.eligible is True
        assert result.rule == EligibilityRule.GLOBAL_OVERRIDE

    def test_global_override_bypasses_magnitude_gate(self):
        profile = NotificationProfile(min_magnitude=8.0, global_override_magnitude=6.0)
        result = evaluate_profile(make_event(magnitude=6.5), profile, NOON)
        assert result.eligible is True
        assert result.rule == EligibilityRule.GLOBAL_OVERRIDE

    def test_global_override_bypasses_quiet_hours(self):
        profile = NotificationProfile(
            global_override_magnitude=6.0,
            quiet_hours=QuietHours(enabled=True, start=(0, 0), end=(0, 0)),
        )
        result = evaluate_profile(make_event(magnitude=6.0), profile, NOON)
        assert result.rule == EligibilityRule.GLOBAL_OVERRIDE

    def test_global_override_zero_is_disabled(self):
        profile = NotificationProfile(min_magnitude=4.0, global_override_magnitude=0)
        result = evaluate_profile(make_event(magnitude=3.0), profile, NOON)
        assert result.eligible is False

    def test_always_notify_radius(self):
        """Always-notify radius wins over the standard radius and quiet hours."""
        profile = NotificationProfile(
            radius_km=5,
            always_notify_radius_enabled=True,
            always_notify_radius_km=50,
            location=HOME,
            quiet_hours=QuietHours(enabled=True, start=(0, 0), end=(0, 0)),
        )
        event = make_event(latitude=35.18)  # ~20 km north

        result = evaluate_profile(event, profile, NOON)

        assert result.eligible is True
        assert result.rule == EligibilityRule.ALWAYS_NOTIFY_RADIUS

    def test_always_notify_radius_does_not_bypass_magnitude_gate(self):
        profile = NotificationProfile(
            min_magnitude=5.0,
            always_notify_radius_enabled=True,
            always_notify_radius_km=50,
            location=HOME,
        )
        result = evaluate_profile(make_event(magnitude=4.0), profile, NOON)
        assert result.rule == EligibilityRule.BELOW_MIN_MAGNITUDE

    def test_always_notify_radius_needs_location(self):
        profile = NotificationProfile(
            always_notify_radius_enabled=True,
            always_notify_radius_km=50,
            quiet_hours=QuietHours(enabled=True, start=(0, 0), end=(0, 0)),
        )
        result = evaluate_profile(make_event(), profile, NOON)
        assert result.eligible is False
        assert result.rule == EligibilityRule.QUIET_HOURS

    def test_always_notify_radius_disabled(self):
        profile = NotificationProfile(
            radius_km=5,
            always_notify_radius_enabled=False,
            always_notify_radius_km=50,
            location=HOME,
        )
        result = evaluate_profile(make_event(latitude=35.18), profile, NOON)
        assert result.rule == EligibilityRule.OUTSIDE_RADIUS

    def test_outside_standard_radius(self):
        profile = NotificationProfile(radius_km=100, location=HOME)
        result = evaluate_profile(make_event(latitude=37.0), profile, NOON)
        assert result.eligible is False
        assert result.rule == EligibilityRule.OUTSIDE_RADIUS

    def test_inside_standard_radius(self):
        profile = NotificationProfile(radius_km=100, location=HOME)
        result = evaluate_profile(make_event(latitude=35.5), profile, NOON)
        assert result.eligible is True

    def test_zero_radius_is_worldwide(self):
        profile = NotificationProfile(radius_km=0, location=HOME)
        result = evaluate_profile(make_event(latitude=-35.0, longitude=-40.0), profile, NOON)
        assert result.eligible is True

    def test_radius_without_location_does_not_filter(self):
        profile = NotificationProfile(radius_km=10)
        result = evaluate_profile(make_event(latitude=-35.0), profile, NOON)
        assert result.eligible is True

    def test_quiet_hours_emergency_within_radius(self):
        """Quiet at 23:00, M6.0 >= 5.0, 20 km <= 50 km -> eligible."""
        day = sunday_based_weekday(LATE_EVENING)
        profile = NotificationProfile(
            location=HOME,
            quiet_hours=night_quiet_hours(day),
            emergency_magnitude=5.0,
            emergency_radius_km=50,
        )
        event = make_event(magnitude=6.0, latitude=35.18)

        result = evaluate_profile(event, profile, LATE_EVENING)

        assert result.distance_km == pytest.approx(20, rel=0.02)
        assert result.eligible is True
        assert result.rule == EligibilityRule.EMERGENCY

    def test_quiet_hours_emergency_outside_radius(self):
        """Same setup at 200 km > 50 km -> not eligible."""
        day = sunday_based_weekday(LATE_EVENING)
        profile = NotificationProfile(
            location=HOME,
            quiet_hours=night_quiet_hours(day),
            emergency_magnitude=5.0,
            emergency_radius_km=50,
        )
        event = make_event(magnitude=6.0, latitude=36.8)

        result = evaluate_profile(event, profile, LATE_EVENING)

        assert result.distance_km == pytest.approx(200, rel=0.02)
        assert result.eligible is False
        assert result.rule == EligibilityRule.QUIET_HOURS

    def test_quiet_hours_below_emergency_magnitude(self):
        day = sunday_based_weekday(LATE_EVENING)
        profile = NotificationProfile(
            location=HOME,
            quiet_hours=night_quiet_hours(day),
            emergency_magnitude=6.5,
            emergency_radius_km=50,
        )
        result = evaluate_profile(make_event(magnitude=6.0), profile, LATE_EVENING)
        assert result.eligible is False

    def test_quiet_hours_emergency_needs_location(self):
        day = sunday_based_weekday(LATE_EVENING)
        profile = NotificationProfile(
            quiet_hours=night_quiet_hours(day),
            emergency_magnitude=1.0,
            emergency_radius_km=50000,
        )
        result = evaluate_profile(make_event(magnitude=6.0), profile, LATE_EVENING)
        assert result.eligible is False

    def test_outside_quiet_hours_is_standard(self):
        day = sunday_based_weekday(NOON)
        profile = NotificationProfile(quiet_hours=night_quiet_hours(day))
        result = evaluate_profile(make_event(), profile, NOON)
        assert result.rule == EligibilityRule.STANDARD

    def test_quiet_hours_use_profile_timezone(self):
        """14:00 UTC is 23:00 in Tokyo, inside a 22:00-06:00 window."""
        instant = datetime(2024, 1, 3, 14, 0, tzinfo=timezone.utc)
        profile = NotificationProfile(
            quiet_hours=QuietHours(enabled=True, start=(22, 0), end=(6, 0)),
            timezone="Asia/Tokyo",
        )
        result = evaluate_profile(make_event(), profile, instant)
        assert result.rule == EligibilityRule.QUIET_HOURS

    def test_disabled_profile(self):
        profile = NotificationProfile(notifications_enabled=False, global_override_magnitude=1.0)
        result = evaluate_profile(make_event(magnitude=9.0), profile, NOON)
        assert result.eligible is False
        assert result.rule == EligibilityRule.DISABLED

    def test_reports_direction(self):
        profile = NotificationProfile(location=HOME)
        result = evaluate_profile(make_event(latitude=35.18), profile, NOON)
        assert result.direction == "N"


class TestFormatMatchSummary:
    """Tests for format_match_summary()."""

    def test_single_profile(self):
        assert format_match_summary(["Home"]) == 'Matches your "Home" filter.'

    def test_two_profiles(self):
        assert format_match_summary(["Home", "Work"]) == "Matches your filters: Home, Work."

    def test_empty(self):
        assert format_match_summary([]) == ""


class TestEvaluateUser:
    """Tests for evaluate_user() multi-profile union."""

    def test_union_names_only_matching(self):
        """[Home(matches), Work(does not)] -> matched ["Home"]."""
        home = NotificationProfile(name="Home", min_magnitude=3.0)
        work = NotificationProfile(name="Work", min_magnitude=7.0)

        decision = evaluate_user(make_event(magnitude=5.0), "u1", (home, work), NOON)

        assert decision is not None
        assert decision.user_id == "u1"
        assert decision.matched_profile_names == ["Home"]
        assert decision.reason_summary == 'Matches your "Home" filter.'
        assert len(decision.evaluations) == 2

    def test_all_profiles_evaluated_in_order(self):
        work = NotificationProfile(name="Work", min_magnitude=3.0)
        home = NotificationProfile(name="Home", min_magnitude=3.0)

        decision = evaluate_user(make_event(), "u1", (work, home), NOON)

        assert decision.matched_profile_names == ["Work", "Home"]
        assert decision.reason_summary == "Matches your filters: Work, Home."

    def test_no_match_returns_none(self):
        profile = NotificationProfile(min_magnitude=9.0)
        assert evaluate_user(make_event(), "u1", (profile,), NOON) is None

    def test_matched_property(self):
        home = NotificationProfile(name="Home", location=HOME)
        work = NotificationProfile(name="Work", min_magnitude=9.0)
        decision = evaluate_user(make_event(), "u1", (home, work), NOON)
        assert [e.profile_name for e in decision.matched] == ["Home"]
