"""Expand tasks into dated occurrences for calendars, dashboards and reminders."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import AbstractSet, Any, Iterable, List, Optional, Sequence, Set, Tuple

from core.recurrence import occurs_on
from core.week import DAYS_OF_WEEK, anchor_date, sunday_index


CompletionKey = Tuple[str, date]


@dataclass(frozen=True)
class Occurrence:
    """A task due on a date. Virtual: identified by ``(task_id, date)`` only."""

    task: Any = field(compare=False)
    task_id: str
    date: date
    completed: bool = False

    @property
    def day_of_week(self) -> int:
        return sunday_index(self.date)

    @property
    def task_time(self) -> Optional[str]:
        return self.task.task_time

    @property
    def title(self) -> str:
        return self.task.title

    @property
    def key(self) -> CompletionKey:
        return (self.task_id, self.date)


def _anchor_of(task) -> date:
    return anchor_date(date.fromisoformat(task.week_start), task.day_of_week)


def _overrides(tasks: Sequence[Any]) -> Set[CompletionKey]:
    """``(parent_id, date)`` pairs already replaced by an exception row."""
    result: Set[CompletionKey] = set()
    for task in tasks:
        parent_id = getattr(task, "parent_task_id", None)
        if parent_id:
            result.add((parent_id, _anchor_of(task)))
    return result


def _sort_key(indexed: Tuple[int, "Occurrence"]):
    position, occ = indexed
    time_value = occ.task_time
    return (time_value is None, time_value or "", position)


def _date_range(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def expand(
    tasks: Sequence[Any],
    start: date,
    end: date,
    *,
    completions: AbstractSet[CompletionKey] = frozenset(),
) -> List[Occurrence]:
    """Occurrences of ``tasks`` on every date in ``[start, end]``.

    Dates ascend. Within a date, timed tasks come first ordered by ``task_time``;
    the rest keep input order. A series occurrence replaced by an exception row
    for the same date is dropped, and cancelled exception rows never show up.
    """

    if start > end:
        return []

    tasks = list(tasks)
    replaced = _overrides(tasks)
    result: List[Occurrence] = []
    for day in _date_range(start, end):
        day_items: List[Tuple[int, Occurrence]] = []
        for position, task in enumerate(tasks):
            if getattr(task, "cancelled", False):
                continue
            if (task.id, day) in replaced:
                continue
            if not occurs_on(task, day):
                continue
            done = bool(task.completed) or (task.id, day) in completions
            day_items.append((position, Occurrence(task=task, task_id=task.id, date=day, completed=done)))
        day_items.sort(key=_sort_key)
        result.extend(occ for _, occ in day_items)
    return result


def for_date(
    tasks: Sequence[Any],
    day: date,
    *,
    completions: AbstractSet[CompletionKey] = frozenset(),
) -> List[Occurrence]:
    return expand(tasks, day, day, completions=completions)


def day_label(day: date, today: date) -> str:
    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    return DAYS_OF_WEEK[sunday_index(day)]


def upcoming(
    tasks: Sequence[Any],
    today: date,
    days: int = 3,
    *,
    include_today: bool = False,
    completions: AbstractSet[CompletionKey] = frozenset(),
) -> List[Tuple[date, str, List[Occurrence]]]:
    """Open occurrences for the next ``days`` days, grouped by date with a label.

    Days without open occurrences are left out.
    """

    if days <= 0:
        return []
    first = today if include_today else today + timedelta(days=1)
    last = first + timedelta(days=days - 1)
    grouped: dict[date, List[Occurrence]] = {}
    for occ in expand(tasks, first, last, completions=completions):
        if occ.completed:
            continue
        grouped.setdefault(occ.date, []).append(occ)
    return [(day, day_label(day, today), grouped[day]) for day in sorted(grouped)]


__all__ = ["Occurrence", "day_label", "expand", "for_date", "upcoming"]
