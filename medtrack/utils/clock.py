"""Local clock helpers.

All scheduling runs on the device's local clock. Timestamps are stored as
epoch milliseconds and mapped to local calendar dates on read.
"""

from datetime import date, datetime
import time as _time


def now_ms() -> int:
    """Get the current time as epoch milliseconds."""
    return int(_time.time() * 1000)


def local_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to a naive local datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000)


def local_date(timestamp_ms: int) -> date:
    """Get the local calendar date of an epoch milliseconds timestamp."""
    return local_datetime(timestamp_ms).date()


def today() -> date:
    """Get today's local date, derived from the same clock as now_ms()."""
    return local_date(now_ms())


def format_time(hhmm: str) -> str:
    """Format a 24h "HH:MM" string as 12h time.

    Examples:
        >>> format_time("08:05")
        '8:05 AM'
        >>> format_time("00:30")
        '12:30 AM'
    """
    hours, minutes = map(int, hhmm.split(":"))
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {period}"
