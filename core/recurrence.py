"""Recurrence rules: decide whether a task is due on a given date."""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional, Protocol

from core.week import anchor_date, sunday_index, week_start, week_start_iso


class RecurrenceType(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    @classmethod
    def normalize(cls, value: "RecurrenceType | str | None") -> "RecurrenceType | None":
        """Map stored values to a member. Empty means ``NONE``; unknown values give ``None``."""
        if isinstance(value, RecurrenceType):
            return value
        if not value:
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class SupportsRecurrence(Protocol):
    week_start: str
    day_of_week: int
    recurrence_type: Optional[str]


def _as_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def week_of_month(d: date) -> int:
    """Zero-based Nth-weekday slot of the month (days 1-7 -> 0, 8-14 -> 1, ...)."""
    return (d.day - 1) // 7


def is_recurring(task: SupportsRecurrence) -> bool:
    return RecurrenceType.normalize(task.recurrence_type) not in (RecurrenceType.NONE, None)


def occurs_on(task: SupportsRecurrence, d: date) -> bool:
    """Return True if ``task`` is due on ``d``.

    ``task.week_start`` must already be a valid ISO date; bad input is rejected
    when the task is written, not here.
    """

    rec = RecurrenceType.normalize(task.recurrence_type)
    anchor = _as_date(task.week_start)
    weekday_matches = sunday_index(d) == task.day_of_week

    if rec is RecurrenceType.NONE:
        return week_start_iso(d) == anchor.isoformat() and weekday_matches

    if d < anchor:
        return False

    if rec is RecurrenceType.DAILY:
        return True
    if rec is RecurrenceType.WEEKLY:
        return weekday_matches
    if rec is RecurrenceType.BIWEEKLY:
        if not weekday_matches:
            return False
        weeks = (week_start(d) - week_start(anchor)).days // 7
        return weeks >= 0 and weeks % 2 == 0
    if rec is RecurrenceType.MONTHLY:
        if not weekday_matches:
            return False
        first = anchor_date(anchor, task.day_of_week)
        return week_of_month(first) == week_of_month(d)
    return False


__all__ = [
    "RecurrenceType",
    "SupportsRecurrence",
    "is_recurring",
    "occurs_on",
    "week_of_month",
]
