"""Pure functions for checkout urgency and stay progress.

No I/O, no clock reads: every function takes ``now`` explicitly.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.schemas.monitoring import CheckoutWindow, UrgencyTier

CRITICAL_HOURS = 2
HIGH_HOURS = 6
MEDIUM_HOURS = 12

STAY_MARK_RATIO = 0.75
STAY_MARK_WINDOW = timedelta(hours=2)

# Check-ins stored at local midnight mean "arrives at standard check-in time".
DEFAULT_CHECK_IN_TIME = time(15, 0)


def _truncate(value: float) -> int:
    """Truncate toward zero, so -0.5h counts as 0h like a whole-unit difference."""
    return int(math.trunc(value))


def hours_between(later: datetime, earlier: datetime) -> int:
    return _truncate((later - earlier).total_seconds() / 3600)


def minutes_between(later: datetime, earlier: datetime) -> int:
    return _truncate((later - earlier).total_seconds() / 60)


def tier_for_hours(hours_until: int) -> UrgencyTier:
    """Boundaries are inclusive: exactly 2h away is already critical."""
    if hours_until <= CRITICAL_HOURS:
        return UrgencyTier.critical
    if hours_until <= HIGH_HOURS:
        return UrgencyTier.high
    if hours_until <= MEDIUM_HOURS:
        return UrgencyTier.medium
    return UrgencyTier.low


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def format_duration(delta: timedelta) -> str:
    """Canonical remaining-time text.

    Under an hour → "N minutes", under a day → "Hh Mm", otherwise "Dd Hh".
    """
    total_minutes = int(abs(delta).total_seconds() // 60)
    if total_minutes < 60:
        return _plural(total_minutes, "minute")
    if total_minutes < 24 * 60:
        return f"{total_minutes // 60}h {total_minutes % 60}m"
    days, rest = divmod(total_minutes, 24 * 60)
    return f"{days}d {rest // 60}h"


def format_overdue(delta: timedelta) -> str:
    """'2h 5m overdue', or '40m overdue' when under an hour."""
    total_minutes = int(abs(delta).total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m overdue"
    return f"{minutes}m overdue"


def classify(now: datetime, checkout: datetime) -> CheckoutWindow:
    hours_until = hours_between(checkout, now)
    minutes_until = minutes_between(checkout, now)
    delta = checkout - now
    overdue = delta < timedelta(0)
    return CheckoutWindow(
        tier=tier_for_hours(hours_until),
        overdue=overdue,
        hours_until=hours_until,
        minutes_until=minutes_until,
        display=format_overdue(delta) if overdue else format_duration(delta),
    )


def seventy_five_percent_mark(check_in: datetime, check_out: datetime) -> datetime:
    return check_in + (check_out - check_in) * STAY_MARK_RATIO


def is_near_mark(
    now: datetime, mark: datetime, window: timedelta = STAY_MARK_WINDOW
) -> bool:
    """True when *mark* lies strictly inside (now - window, now + window)."""
    return now - window < mark < now + window


def stay_completion(now: datetime, check_in: datetime, check_out: datetime) -> float:
    """Percentage of the stay elapsed at *now*, 0 for empty stays."""
    total = (check_out - check_in).total_seconds()
    if total <= 0:
        return 0.0
    return (now - check_in).total_seconds() / total * 100


def days_remaining(now: datetime, check_out: datetime) -> int:
    remaining = (check_out - now).total_seconds() / 86400
    return max(0, math.ceil(remaining))


def local_day(now: datetime, tz: ZoneInfo) -> date:
    return now.astimezone(tz).date()


def day_bounds(now: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """[start, end) of the local calendar day containing *now*, in UTC."""
    day = local_day(now, tz)
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def effective_check_in(check_in: datetime, tz: ZoneInfo) -> datetime:
    local = check_in.astimezone(tz)
    if local.hour == 0 and local.minute == 0:
        local = datetime.combine(local.date(), DEFAULT_CHECK_IN_TIME, tzinfo=tz)
    return local.astimezone(timezone.utc)


def check_in_display(now: datetime, check_in: datetime) -> str:
    """'in 2h 10m' before arrival, 'arrived 45m ago' after."""
    delta = check_in - now
    total_minutes = int(abs(delta).total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    text = f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"
    if delta > timedelta(0):
        return f"in {text}"
    return f"arrived {text} ago"
