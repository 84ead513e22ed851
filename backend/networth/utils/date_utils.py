# backend/networth/utils/date_utils.py
"""
Date utility functions shared by the sync engines and valuation series.

Price history is keyed by ISO calendar dates (YYYY-MM-DD). These helpers
keep parsing and iteration consistent across modules.

Usage:
    from networth.utils.date_utils import iter_calendar_days, parse_iso_date

    for day in iter_calendar_days(start, end):
        ...
"""

from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Current timezone-aware UTC timestamp. Default clock for engines and caches."""
    return datetime.now(timezone.utc)


def parse_iso_date(value: str | date) -> date:
    """
    Parse a YYYY-MM-DD string (or pass a date through).

    Datetimes are truncated to their date component.

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip()[:10])


def iter_calendar_days(start_date: date, end_date: date) -> Iterator[date]:
    """
    Yield every calendar day from start_date to end_date, inclusive.

    Yields nothing when start_date is after end_date.

    Example:
        >>> list(iter_calendar_days(date(2024, 1, 30), date(2024, 2, 1)))
        [date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1)]
    """
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def calendar_days_between(start_date: date, end_date: date) -> int:
    """Whole calendar days from start_date to end_date (0 if end is earlier)."""
    return max(0, (end_date - start_date).days)


def timestamp_to_date(timestamp: int | float) -> date:
    """Convert a UNIX timestamp (seconds) to its UTC calendar date."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date()


def date_to_timestamp(d: date) -> int:
    """UNIX timestamp (seconds) of midnight UTC on the given date."""
    return int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp())
