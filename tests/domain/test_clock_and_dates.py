"""
Tests for the injectable clock and calendar-day helpers.

Verifies:
- DeterministicClock is stable until advanced
- today() is the calendar day of now()
- Day keys compare calendar days, never timestamps
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from fieldsales_kernel.domain.clock import DeterministicClock, SystemClock
from fieldsales_kernel.domain.dates import (
    archive_key,
    day_key,
    falls_on,
    next_day,
    parse_day,
)


class TestDeterministicClock:

    def test_default_time(self):
        clock = DeterministicClock()
        assert clock.today() == date(2024, 5, 1)

    def test_date_is_taken_at_nine_utc(self):
        clock = DeterministicClock(date(2024, 6, 3))
        assert clock.now() == datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)

    def test_repeated_calls_are_stable(self):
        clock = DeterministicClock(date(2024, 6, 3))
        assert clock.now() == clock.now()

    def test_advance_days_returns_new_day(self):
        clock = DeterministicClock(date(2024, 6, 3))
        assert clock.advance_days() == date(2024, 6, 4)
        assert clock.advance_days(3) == date(2024, 6, 7)

    def test_advance_seconds_crosses_midnight(self):
        clock = DeterministicClock(datetime(2024, 6, 3, 23, 59, 30, tzinfo=timezone.utc))
        clock.advance(60)
        assert clock.today() == date(2024, 6, 4)

    def test_set_time_naive_datetime_is_utc(self):
        clock = DeterministicClock()
        clock.set_time(datetime(2024, 7, 1, 12, 0))
        assert clock.now().tzinfo is timezone.utc
        assert clock.today() == date(2024, 7, 1)


class TestSystemClock:

    def test_now_is_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None

    def test_today_matches_now(self):
        clock = SystemClock()
        assert clock.today() in (clock.now().date(), clock.now().date() - timedelta(days=1))


class TestDayKeys:

    def test_day_key_format(self):
        assert day_key(date(2024, 5, 1)) == "2024-05-01"

    def test_day_key_accepts_datetime(self):
        assert day_key(datetime(2024, 5, 1, 23, 30)) == "2024-05-01"

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-05-01", date(2024, 5, 1)),
            ("2024-05-01T23:30:00.000Z", date(2024, 5, 1)),
            (date(2024, 5, 1), date(2024, 5, 1)),
            (datetime(2024, 5, 1, 8, 0), date(2024, 5, 1)),
            (None, None),
            ("", None),
        ],
    )
    def test_parse_day(self, value, expected):
        assert parse_day(value) == expected

    def test_parse_day_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_day("not-a-day")

    def test_falls_on_uses_calendar_prefix(self):
        assert falls_on("2024-05-01T23:59:59", date(2024, 5, 1))
        assert not falls_on("2024-05-02T00:00:01", date(2024, 5, 1))
        assert not falls_on(None, date(2024, 5, 1))

    def test_next_day_crosses_month(self):
        assert next_day(date(2024, 4, 30)) == date(2024, 5, 1)

    def test_archive_key(self):
        assert archive_key("routeAssignments", date(2024, 5, 1)) == "routeAssignments_2024-05-01"
        assert archive_key("mapAssignments", "2024-05-01") == "mapAssignments_2024-05-01"
