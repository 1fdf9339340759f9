"""
Calendar-day keys.

Every day comparison in the kernel goes through these helpers so that
attendance, booking and archive dates are compared as ``yyyy-MM-dd`` calendar
days and never as timestamps (a 23:30 completion in one zone must not land
on the next day in another).
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

DAY_KEY_FORMAT = "%Y-%m-%d"


def day_key(day: date) -> str:
    """Format a day as ``yyyy-MM-dd``."""
    if isinstance(day, datetime):
        day = day.date()
    return day.strftime(DAY_KEY_FORMAT)


def parse_day(value: str | date | None) -> date | None:
    """
    Parse a stored day value.

    Accepts ``yyyy-MM-dd`` strings, full ISO timestamps (only the calendar
    part is used) and ``date`` objects.  Empty values yield ``None``.

    Raises:
        ValueError: if the string does not start with a valid ISO date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def falls_on(timestamp: str | None, day: date) -> bool:
    """True when an ISO timestamp string starts with the given day's key."""
    if not timestamp:
        return False
    return timestamp.startswith(day_key(day))


def next_day(day: date) -> date:
    return day + timedelta(days=1)


def archive_key(prefix: str, day: date | str) -> str:
    """Date-suffixed archive key, e.g. ``routeAssignments_2024-05-01``."""
    suffix = day if isinstance(day, str) else day_key(day)
    return f"{prefix}_{suffix}"
