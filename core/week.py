"""Week anchoring helpers. Weeks start on Sunday; ``day_of_week`` 0 is Sunday."""
from __future__ import annotations

from datetime import date, timedelta
from typing import List

DAYS_OF_WEEK = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


def sunday_index(d: date) -> int:
    """Weekday index with Sunday as 0 (``date.weekday()`` uses Monday as 0)."""
    return (d.weekday() + 1) % 7


def week_start(d: date) -> date:
    return d - timedelta(days=sunday_index(d))


def week_start_iso(d: date) -> str:
    return week_start(d).isoformat()


def anchor_date(start: date, day_of_week: int) -> date:
    """Date of the anchor occurrence for ``(week_start, day_of_week)``."""
    return start + timedelta(days=day_of_week)


def next_week_start(start: date) -> date:
    return week_start(start) + timedelta(days=7)


def previous_week_start(start: date) -> date:
    return week_start(start) - timedelta(days=7)


def week_days(start: date) -> List[date]:
    first = week_start(start)
    return [first + timedelta(days=i) for i in range(7)]


__all__ = [
    "DAYS_OF_WEEK",
    "anchor_date",
    "next_week_start",
    "previous_week_start",
    "sunday_index",
    "week_days",
    "week_start",
    "week_start_iso",
]
