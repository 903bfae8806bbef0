"""Tests for checkout_window mapper (pure functions, no I/O)."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.mappers.checkout_window import (
    check_in_display,
    classify,
    day_bounds,
    days_remaining,
    effective_check_in,
    format_duration,
    format_overdue,
    is_near_mark,
    local_day,
    seventy_five_percent_mark,
    stay_completion,
    tier_for_hours,
)
from app.schemas.monitoring import TIER_RANK, UrgencyTier

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


# --- classify: tiers ---


@pytest.mark.parametrize(
    ("until", "expected"),
    [
        (timedelta(minutes=30), UrgencyTier.critical),
        (timedelta(hours=2), UrgencyTier.critical),
        (timedelta(hours=2, minutes=59), UrgencyTier.critical),
        (timedelta(hours=3), UrgencyTier.high),
        (timedelta(hours=6), UrgencyTier.high),
        (timedelta(hours=7), UrgencyTier.medium),
        (timedelta(hours=12), UrgencyTier.medium),
        (timedelta(hours=13), UrgencyTier.low),
        (timedelta(days=5), UrgencyTier.low),
    ],
)
def test_classify_tiers(until, expected):
    assert classify(NOW, NOW + until).tier == expected


def test_exactly_two_hours_is_critical():
    """Boundary is inclusive."""
    window = classify(NOW, NOW + timedelta(hours=2))
    assert window.tier == UrgencyTier.critical
    assert window.hours_until == 2
    assert window.overdue is False


def test_tier_never_decreases_as_checkout_approaches():
    checkout = NOW + timedelta(hours=48)
    previous = -1
    now = NOW
    while now < checkout + timedelta(hours=3):
        rank = TIER_RANK[classify(now, checkout).tier]
        assert rank >= previous
        previous = rank
        now += timedelta(minutes=7)


def test_tier_for_hours_negative_is_critical():
    assert tier_for_hours(-5) == UrgencyTier.critical


# --- classify: overdue ---


def test_overdue_by_125_minutes():
    window = classify(NOW + timedelta(minutes=125), NOW)
    assert window.overdue is True
    assert window.display == "2h 5m overdue"
    assert window.hours_until == -2
    assert window.tier == UrgencyTier.critical


def test_overdue_under_an_hour():
    window = classify(NOW + timedelta(minutes=40), NOW)
    assert window.overdue is True
    assert window.display == "40m overdue"
    assert window.hours_until == 0


def test_format_overdue_ignores_sign():
    assert format_overdue(timedelta(minutes=-125)) == "2h 5m overdue"


# --- format_duration ---


def test_format_duration_minutes():
    assert format_duration(timedelta(minutes=45)) == "45 minutes"
    assert format_duration(timedelta(minutes=1, seconds=30)) == "1 minute"


def test_format_duration_hours_and_minutes():
    assert format_duration(timedelta(hours=3, minutes=20)) == "3h 20m"
    assert format_duration(timedelta(hours=1)) == "1h 0m"


def test_format_duration_days():
    assert format_duration(timedelta(hours=50, minutes=10)) == "2d 2h"


def test_format_duration_no_months_unit():
    assert format_duration(timedelta(days=45)) == "45d 0h"


def test_classify_display_remaining():
    assert classify(NOW, NOW + timedelta(hours=3, minutes=20)).display == "3h 20m"


# --- stay progress ---


def test_seventy_five_percent_mark():
    check_in = NOW
    check_out = NOW + timedelta(hours=96)
    assert seventy_five_percent_mark(check_in, check_out) == NOW + timedelta(hours=72)


def test_is_near_mark_within_window():
    mark = NOW + timedelta(hours=72)
    assert is_near_mark(NOW + timedelta(hours=71), mark)
    assert is_near_mark(NOW + timedelta(hours=73, minutes=59), mark)


def test_is_near_mark_outside_window():
    mark = NOW + timedelta(hours=72)
    assert not is_near_mark(NOW + timedelta(hours=69), mark)
    assert not is_near_mark(NOW + timedelta(hours=75), mark)


def test_is_near_mark_edges_are_exclusive():
    mark = NOW + timedelta(hours=72)
    assert not is_near_mark(NOW + timedelta(hours=70), mark)
    assert not is_near_mark(NOW + timedelta(hours=74), mark)


def test_stay_completion():
    check_out = NOW + timedelta(hours=96)
    assert stay_completion(NOW + timedelta(hours=72), NOW, check_out) == pytest.approx(75.0)


def test_stay_completion_empty_stay():
    assert stay_completion(NOW, NOW, NOW) == 0.0


def test_days_remaining_rounds_up():
    assert days_remaining(NOW, NOW + timedelta(hours=25)) == 2
    assert days_remaining(NOW, NOW + timedelta(hours=24)) == 1


def test_days_remaining_never_negative():
    assert days_remaining(NOW, NOW - timedelta(hours=5)) == 0


# --- local day helpers ---


def test_local_day_uses_timezone():
    late_evening_new_york = datetime(2026, 3, 2, 3, 0, tzinfo=timezone.utc)
    assert local_day(late_evening_new_york, ZoneInfo("America/New_York")) == date(2026, 3, 1)
    assert local_day(late_evening_new_york, ZoneInfo("UTC")) == date(2026, 3, 2)


def test_day_bounds_in_utc():
    now = datetime(2026, 3, 2, 3, 0, tzinfo=timezone.utc)
    start, end = day_bounds(now, ZoneInfo("America/New_York"))
    assert start == datetime(2026, 3, 1, 5, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc)
    assert start <= now < end


def test_effective_check_in_midnight_becomes_afternoon():
    tz = ZoneInfo("UTC")
    midnight = datetime(2026, 3, 2, 0, 0, tzinfo=timezone.utc)
    assert effective_check_in(midnight, tz) == datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


def test_effective_check_in_keeps_explicit_time():
    tz = ZoneInfo("UTC")
    explicit = datetime(2026, 3, 2, 12, 30, tzinfo=timezone.utc)
    assert effective_check_in(explicit, tz) == explicit


def test_check_in_display():
    assert check_in_display(NOW, NOW + timedelta(hours=2, minutes=10)) == "in 2h 10m"
    assert check_in_display(NOW, NOW + timedelta(minutes=5)) == "in 5m"
    assert check_in_display(NOW, NOW - timedelta(minutes=45)) == "arrived 45m ago"
