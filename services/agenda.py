"""Calendar, dashboard and history views built on the occurrence expander.

Every view is a date range handed to :func:`core.occurrences.expand`; nothing
here decides on its own whether a task is due.
"""
from __future__ import annotations

import calendar as _calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import AbstractSet, Any, Callable, Dict, List, Optional, Sequence, Tuple

from core.errors import InvalidTaskError
from core.occurrences import CompletionKey, Occurrence, expand, for_date, upcoming
from core.week import week_start
from services.tasks import TaskService


VIEW_MODES = ("daily", "weekly", "biweekly", "monthly")


def calendar_days(anchor: date, mode: str = "weekly") -> List[date]:
    """Dates shown by a calendar in ``mode`` around ``anchor``."""

    if mode not in VIEW_MODES:
        raise InvalidTaskError(f"Unknown calendar view: {mode!r}")
    if mode == "daily":
        return [anchor]
    if mode in ("weekly", "biweekly"):
        first = week_start(anchor)
        length = 7 if mode == "weekly" else 14
        return [first + timedelta(days=i) for i in range(length)]
    _, last_day = _calendar.monthrange(anchor.year, anchor.month)
    first = anchor.replace(day=1)
    return [first + timedelta(days=i) for i in range(last_day)]


def shift_anchor(anchor: date, mode: str, steps: int) -> date:
    """Move a calendar anchor by ``steps`` pages of ``mode``."""

    if mode == "daily":
        return anchor + timedelta(days=steps)
    if mode == "weekly":
        return anchor + timedelta(weeks=steps)
    if mode == "biweekly":
        return anchor + timedelta(weeks=2 * steps)
    if mode == "monthly":
        month_index = anchor.year * 12 + (anchor.month - 1) + steps
        year, month = divmod(month_index, 12)
        last_day = _calendar.monthrange(year, month + 1)[1]
        return date(year, month + 1, min(anchor.day, last_day))
    raise InvalidTaskError(f"Unknown calendar view: {mode!r}")


def group_by_date(occurrences: Sequence[Occurrence], days: Sequence[date]) -> Dict[date, List[Occurrence]]:
    grouped: Dict[date, List[Occurrence]] = {d: [] for d in days}
    for occ in occurrences:
        grouped.setdefault(occ.date, []).append(occ)
    return grouped


def calendar_view(
    tasks: Sequence[Any],
    anchor: date,
    mode: str = "weekly",
    *,
    completions: AbstractSet[CompletionKey] = frozenset(),
) -> Dict[date, List[Occurrence]]:
    days = calendar_days(anchor, mode)
    return group_by_date(expand(tasks, days[0], days[-1], completions=completions), days)


@dataclass
class Progress:
    completed: int = 0
    total: int = 0

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(self.completed * 100 / self.total)


@dataclass
class Dashboard:
    today: date
    today_occurrences: List[Occurrence]
    week_progress: Progress
    upcoming: List[Tuple[date, str, List[Occurrence]]]


def progress_of(occurrences: Sequence[Occurrence]) -> Progress:
    return Progress(completed=sum(1 for o in occurrences if o.completed), total=len(occurrences))


def dashboard_view(
    tasks: Sequence[Any],
    today: date,
    *,
    upcoming_days: int = 3,
    completions: AbstractSet[CompletionKey] = frozenset(),
) -> Dashboard:
    first = week_start(today)
    week = expand(tasks, first, first + timedelta(days=6), completions=completions)
    return Dashboard(
        today=today,
        today_occurrences=[o for o in week if o.date == today],
        week_progress=progress_of(week),
        upcoming=upcoming(tasks, today, upcoming_days, completions=completions),
    )


@dataclass
class HistoryWeek:
    week_start: date
    occurrences: List[Occurrence] = field(default_factory=list)

    @property
    def progress(self) -> Progress:
        return progress_of(self.occurrences)


def history_view(
    tasks: Sequence[Any],
    before: date,
    *,
    weeks: int = 12,
    completions: AbstractSet[CompletionKey] = frozenset(),
) -> List[HistoryWeek]:
    """Up to ``weeks`` past weeks before ``before``'s week, newest first, empty weeks dropped."""

    if weeks <= 0 or not tasks:
        return []
    current = week_start(before)
    earliest = min(date.fromisoformat(t.week_start) for t in tasks)
    first = max(earliest, current - timedelta(weeks=weeks))
    last = current - timedelta(days=1)
    if first > last:
        return []
    by_week: Dict[date, HistoryWeek] = {}
    for occ in expand(tasks, first, last, completions=completions):
        start = week_start(occ.date)
        by_week.setdefault(start, HistoryWeek(week_start=start)).occurrences.append(occ)
    return [by_week[start] for start in sorted(by_week, reverse=True)]


@dataclass
class DaySummary:
    day: date
    occurrences: List[Occurrence]

    @property
    def progress(self) -> Progress:
        return progress_of(self.occurrences)


def day_summary(
    tasks: Sequence[Any],
    day: date,
    *,
    completions: AbstractSet[CompletionKey] = frozenset(),
) -> DaySummary:
    return DaySummary(day=day, occurrences=for_date(tasks, day, completions=completions))


def week_summary(
    tasks: Sequence[Any],
    any_day: date,
    *,
    completions: AbstractSet[CompletionKey] = frozenset(),
) -> List[DaySummary]:
    """Per-day summaries for the week containing ``any_day``; days with nothing due are dropped."""

    first = week_start(any_day)
    grouped = group_by_date(
        expand(tasks, first, first + timedelta(days=6), completions=completions),
        [first + timedelta(days=i) for i in range(7)],
    )
    return [DaySummary(day=d, occurrences=occ) for d, occ in grouped.items() if occ]


class AgendaService:
    """Loads a family's tasks and completions, then hands them to the views above."""

    def __init__(self, tasks: Optional[TaskService] = None, *, today: Callable[[], date] = date.today):
        self.tasks = tasks or TaskService()
        self._today = today

    def _load(self, family_id: str, start: date, end: date):
        rows = self.tasks.list_for_family(family_id)
        return rows, self.tasks.completions([t.id for t in rows], start, end)

    def calendar(self, family_id: str, anchor: date, mode: str = "weekly") -> Dict[date, List[Occurrence]]:
        days = calendar_days(anchor, mode)
        rows, done = self._load(family_id, days[0], days[-1])
        return calendar_view(rows, anchor, mode, completions=done)

    def dashboard(self, family_id: str, *, upcoming_days: int = 3) -> Dashboard:
        today = self._today()
        first = week_start(today)
        end = max(first + timedelta(days=6), today + timedelta(days=upcoming_days))
        rows, done = self._load(family_id, first, end)
        return dashboard_view(rows, today, upcoming_days=upcoming_days, completions=done)

    def history(self, family_id: str, *, weeks: int = 12) -> List[HistoryWeek]:
        today = self._today()
        current = week_start(today)
        rows, done = self._load(family_id, current - timedelta(weeks=weeks), current)
        return history_view(rows, today, weeks=weeks, completions=done)

    def today(self, family_id: str) -> DaySummary:
        day = self._today()
        rows, done = self._load(family_id, day, day)
        return day_summary(rows, day, completions=done)

    def tomorrow(self, family_id: str) -> DaySummary:
        day = self._today() + timedelta(days=1)
        rows, done = self._load(family_id, day, day)
        return day_summary(rows, day, completions=done)

    def week(self, family_id: str) -> List[DaySummary]:
        first = week_start(self._today())
        rows, done = self._load(family_id, first, first + timedelta(days=6))
        return week_summary(rows, first, completions=done)


__all__ = [
    "AgendaService",
    "Dashboard",
    "DaySummary",
    "HistoryWeek",
    "Progress",
    "VIEW_MODES",
    "calendar_days",
    "calendar_view",
    "dashboard_view",
    "day_summary",
    "history_view",
    "shift_anchor",
    "week_summary",
]
