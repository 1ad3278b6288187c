"""Time utilities (UTC)."""

from datetime import datetime, time, timezone, date


def now_utc_naive() -> datetime:
    """
    Current time in UTC, returned as naive datetime for DB storage.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """Last representable instant of a calendar day (inclusive upper bound)."""
    return datetime.combine(day, time.max)
