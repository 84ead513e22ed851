# tests/utils/test_date_utils.py
"""
Tests for date and decimal parsing helpers.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from networth.utils.date_utils import (
    calendar_days_between,
    date_to_timestamp,
    iter_calendar_days,
    parse_iso_date,
    timestamp_to_date,
)
from networth.utils.decimal_utils import to_decimal


class TestParseIsoDate:

    def test_parses_iso_string(self):
        """Should parse YYYY-MM-DD."""
        assert parse_iso_date("2024-02-29") == date(2024, 2, 29)

    def test_truncates_datetime_string(self):
        """Should keep only the date part of an ISO timestamp."""
        assert parse_iso_date("2024-03-01T12:30:00+00:00") == date(2024, 3, 1)

    def test_passes_dates_through(self):
        """Should return date objects unchanged and truncate datetimes."""
        assert parse_iso_date(date(2024, 1, 5)) == date(2024, 1, 5)
        assert parse_iso_date(datetime(2024, 1, 5, 23, 59)) == date(2024, 1, 5)

    def test_rejects_invalid_date(self):
        """Should raise ValueError for impossible dates."""
        with pytest.raises(ValueError):
            parse_iso_date("2023-02-29")


class TestCalendarDays:

    def test_iterates_inclusive_range(self):
        """Should yield every day including both ends."""
        days = list(iter_calendar_days(date(2024, 1, 30), date(2024, 2, 2)))
        assert days == [date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1), date(2024, 2, 2)]

    def test_single_day_range(self):
        assert list(iter_calendar_days(date(2024, 1, 1), date(2024, 1, 1))) == [date(2024, 1, 1)]

    def test_inverted_range_is_empty(self):
        """Should yield nothing when start is after end."""
        assert list(iter_calendar_days(date(2024, 1, 2), date(2024, 1, 1))) == []

    def test_days_between(self):
        assert calendar_days_between(date(2024, 1, 1), date(2024, 4, 10)) == 100
        assert calendar_days_between(date(2024, 1, 10), date(2024, 1, 1)) == 0


class TestTimestamps:

    def test_midnight_utc_round_trip(self):
        """Should map a date to midnight UTC and back."""
        ts = date_to_timestamp(date(2024, 6, 14))
        assert ts == int(datetime(2024, 6, 14, tzinfo=timezone.utc).timestamp())
        assert timestamp_to_date(ts) == date(2024, 6, 14)

    def test_late_evening_stays_on_same_utc_day(self):
        ts = date_to_timestamp(date(2024, 6, 15)) - 1
        assert timestamp_to_date(ts) == date(2024, 6, 14)


class TestToDecimal:

    @pytest.mark.parametrize("raw,expected", [
        ("185.64", Decimal("185.64")),
        (0.1, Decimal("0.1")),
        (42, Decimal("42")),
        (" 7.5 ", Decimal("7.5")),
        (Decimal("3.14"), Decimal("3.14")),
    ])
    def test_parses_numbers(self, raw, expected):
        """Should parse strings, ints and floats without binary noise."""
        assert to_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, True, "abc", "", "NaN", "Infinity", float("inf")])
    def test_rejects_invalid_values(self, raw):
        """Should return None for missing, boolean, invalid or non-finite values."""
        assert to_decimal(raw) is None
