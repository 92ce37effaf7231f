"""Recurrence rule evaluation and summaries.

Pure, synchronous functions. Dates are local calendar dates; day of week
numbering is Sunday = 0 ... Saturday = 6.
"""

import calendar
from datetime import date, timedelta
from typing import Optional

from medtrack.data.models import (
    EveryNWeeks,
    Medication,
    MonthlyByDate,
    MonthlyByWeekday,
    Recurrence,
    Weekly,
)
from medtrack.utils import local_date, today


NEXT_DUE_HORIZON_DAYS = 60

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
WEEK_ORDINALS = ["", "First", "Second", "Third", "Fourth", "Last"]

WEEKDAYS = frozenset({1, 2, 3, 4, 5})
WEEKEND = frozenset({0, 6})
ALL_DAYS = frozenset(range(7))


def day_of_week(day: date) -> int:
    """Get day of week with Sunday = 0."""
    return (day.weekday() + 1) % 7


def week_monday(day: date) -> date:
    """Get the Monday of the week containing a date."""
    return day - timedelta(days=day.weekday())


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def ordinal(n: int) -> str:
    """Format a number with its English ordinal suffix.

    Examples:
        >>> ordinal(1), ordinal(2), ordinal(11), ordinal(23)
        ('1st', '2nd', '11th', '23rd')
    """
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _weeks_between(anchor: date, day: date) -> int:
    return (week_monday(day) - week_monday(anchor)).days // 7


def matches(rule: Recurrence, day: date, created_at: Optional[int] = None) -> bool:
    """Check whether a recurrence rule fires on a date.

    Args:
        rule: Recurrence rule
        day: Local date to check
        created_at: Medication creation time (epoch ms), used as the cycle
            anchor when an EveryNWeeks rule has none

    Returns:
        True if the rule fires on the date
    """
    dow = day_of_week(day)

    if isinstance(rule, Weekly):
        return not rule.days or dow in rule.days

    if isinstance(rule, EveryNWeeks):
        if dow not in rule.days:
            return False
        anchor_ms = rule.anchor if rule.anchor is not None else created_at
        anchor = local_date(anchor_ms) if anchor_ms else today()
        return _weeks_between(anchor, day) % max(rule.n, 1) == 0

    if isinstance(rule, MonthlyByDate):
        # A +/-1 day window around the target absorbs month-edge drift
        effective = min(rule.day_of_month, days_in_month(day))
        return abs(day.day - effective) <= 1

    if isinstance(rule, MonthlyByWeekday):
        if dow != rule.dow:
            return False
        if rule.week == -1:
            return (day + timedelta(days=7)).month != day.month
        return (day.day - 1) // 7 + 1 == rule.week

    # Daily and anything unrecognized
    return True


def is_due(medication: Medication, day: date) -> bool:
    """Check whether a medication is scheduled on a date.

    Medications without a recurrence fall back to the legacy days list
    (see Medication.effective_recurrence).

    Args:
        medication: Medication to check
        day: Local date

    Returns:
        True if the medication is due on the date
    """
    return matches(medication.effective_recurrence(), day, medication.created_at)


def next_due_date(
    medication: Medication,
    start: date,
    horizon_days: int = NEXT_DUE_HORIZON_DAYS,
) -> Optional[date]:
    """Find the first date after start on which a medication is due.

    Args:
        medication: Medication to check
        start: Date to search from (exclusive)
        horizon_days: Maximum number of days to scan

    Returns:
        First due date, or None if none falls within the horizon
    """
    for offset in range(1, horizon_days + 1):
        candidate = start + timedelta(days=offset)
        if is_due(medication, candidate):
            return candidate
    return None


def _day_list(days: frozenset) -> str:
    return ", ".join(DAY_NAMES[d] for d in sorted(days) if 0 <= d <= 6)


def _weekly_text(days: frozenset) -> str:
    if not days or days >= ALL_DAYS:
        return "daily"
    if days == WEEKDAYS:
        return "weekdays"
    if days == WEEKEND:
        return "weekends"
    return f"· {_day_list(days)}"


def describe_rule(rule: Recurrence, dose_count: int = 1) -> str:
    """Render a recurrence rule as a short label, e.g. "2× weekdays".

    Args:
        rule: Recurrence rule
        dose_count: Number of doses per due day

    Returns:
        Short human-readable label
    """
    prefix = f"{max(dose_count, 1)}×"

    if isinstance(rule, Weekly):
        return f"{prefix} {_weekly_text(rule.days)}"

    if isinstance(rule, EveryNWeeks):
        day_list = _day_list(rule.days) or "—"
        return f"{prefix} every {rule.n}wks · {day_list}"

    if isinstance(rule, MonthlyByDate):
        return f"{prefix} monthly · {ordinal(rule.day_of_month)}"

    if isinstance(rule, MonthlyByWeekday):
        if rule.week == -1:
            week = "Last"
        elif 0 < rule.week < len(WEEK_ORDINALS):
            week = WEEK_ORDINALS[rule.week]
        else:
            week = f"{rule.week}."
        day_name = DAY_NAMES[rule.dow] if 0 <= rule.dow <= 6 else str(rule.dow)
        return f"{prefix} monthly · {week} {day_name}"

    return f"{prefix} daily"


def describe(medication: Medication) -> str:
    """Render a medication's schedule as a short label.

    Examples: "1× daily", "2× weekdays", "1× every 2wks · Mon, Thu",
    "1× monthly · 15th", "1× monthly · Last Fri", "As needed".
    """
    if medication.is_as_needed:
        return "As needed"
    return describe_rule(medication.effective_recurrence(), len(medication.times) or 1)


__all__ = [
    "day_of_week",
    "describe",
    "describe_rule",
    "is_due",
    "matches",
    "next_due_date",
    "NEXT_DUE_HORIZON_DAYS",
    "ordinal",
]
