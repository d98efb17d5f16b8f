# planner/services/tasks.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Iterable, List, Mapping, Optional, Set

from sqlmodel import Session, select
from sqlalchemy import and_, or_

from core import edit_scope
from core.errors import InvalidTaskError, TaskNotFoundError
from core.occurrences import CompletionKey
from core.recurrence import RecurrenceType, is_recurring
from core.week import sunday_index, week_start_iso
from models.task import OccurrenceCompletion, Task
from storage.db import get_session
from utils.datetime_utils import utc_now


logger = logging.getLogger("planner.tasks")

SCOPE_SERIES = "series"
SCOPE_OCCURRENCE = "occurrence"


class TaskService:
    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    # ---------- CRUD ----------
    def add(
        self,
        *,
        family_id: str,
        title: str,
        on_date: Optional[date] = None,
        week_start: Optional[str] = None,
        day_of_week: Optional[int] = None,
        recurrence_type: str = RecurrenceType.NONE.value,
        task_time: Optional[str] = None,
        notes: Optional[str] = None,
        category_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
        helper_id: Optional[str] = None,
    ) -> Task:
        """Create an anchor row. Pass either ``on_date`` or ``week_start`` + ``day_of_week``."""

        if not family_id:
            raise InvalidTaskError("family_id is required")
        if on_date is not None:
            week_start = week_start_iso(on_date)
            day_of_week = sunday_index(on_date)
        if week_start is None or day_of_week is None:
            raise InvalidTaskError("Either on_date or week_start and day_of_week are required")

        fields = edit_scope.clean_fields(
            {
                "title": title,
                "notes": notes,
                "task_time": task_time,
                "category_id": category_id,
                "assigned_to": assigned_to,
                "helper_id": helper_id,
                "day_of_week": day_of_week,
                "week_start": week_start,
                "recurrence_type": recurrence_type,
            }
        )
        with self._session_factory() as s:
            t = Task(family_id=family_id, **fields)
            s.add(t)
            s.commit()
            s.refresh(t)
        logger.debug("Task created id=%s recurrence=%s", t.id, t.recurrence_type)
        return t

    def get(self, task_id: str) -> Optional[Task]:
        with self._session_factory() as s:
            return s.get(Task, task_id)

    def require(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_for_family(self, family_id: str) -> List[Task]:
        """All rows of a family in creation order (the expander's stable order)."""
        with self._session_factory() as s:
            stmt = (
                select(Task)
                .where(Task.family_id == family_id)
                .order_by(Task.created_at.asc(), Task.id.asc())
            )
            return list(s.exec(stmt))

    def list_reminder_candidates(self, family_id: str) -> List[Task]:
        """Open timed rows plus every exception row, so overlays still apply."""
        with self._session_factory() as s:
            stmt = (
                select(Task)
                .where(
                    and_(
                        Task.family_id == family_id,
                        or_(
                            and_(Task.completed == False, Task.task_time != None),  # noqa: E711,E712
                            Task.parent_task_id != None,  # noqa: E711
                        ),
                    )
                )
                .order_by(Task.created_at.asc(), Task.id.asc())
            )
            return list(s.exec(stmt))

    def update(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        """Direct update of a one-off row. Recurring rows must go through :meth:`edit`."""

        cleaned = edit_scope.clean_fields(fields)
        with self._session_factory() as s:
            t = s.get(Task, task_id)
            if not t:
                raise TaskNotFoundError(task_id)
            if is_recurring(t):
                raise InvalidTaskError(f"Task {task_id} is recurring; edit it with a scope")
            for key, value in cleaned.items():
                setattr(t, key, value)
            if cleaned.get("assigned_to"):
                t.helper_id = None
            elif cleaned.get("helper_id"):
                t.assigned_to = None
            t.updated_at = utc_now()
            s.add(t)
            s.commit()
            s.refresh(t)
        return t

    def edit(
        self,
        task_id: str,
        fields: Mapping[str, Any],
        *,
        scope: str = SCOPE_SERIES,
        occurrence_date: Optional[date] = None,
    ) -> Task:
        """Edit a task; for recurring rows ``scope`` picks one occurrence or the series.

        Returns the row that was written: the new exception row for
        ``scope="occurrence"``, the mutated anchor otherwise.
        """

        original = self.require(task_id)
        if not is_recurring(original):
            return self.update(task_id, fields)

        if scope == SCOPE_OCCURRENCE:
            if occurrence_date is None:
                raise InvalidTaskError("occurrence_date is required to edit a single occurrence")
            child = edit_scope.apply_to_occurrence_only(original, occurrence_date, fields)
            with self._session_factory() as s:
                s.add(child)
                s.commit()
                s.refresh(child)
            logger.info("Task %s forked for %s as %s", task_id, occurrence_date, child.id)
            return child

        if scope != SCOPE_SERIES:
            raise InvalidTaskError(f"Unknown edit scope: {scope!r}")
        with self._session_factory() as s:
            anchor = s.get(Task, task_id)
            if not anchor:
                raise TaskNotFoundError(task_id)
            edit_scope.apply_to_whole_series(anchor, fields)
            s.add(anchor)
            s.commit()
            s.refresh(anchor)
        return anchor

    def delete(
        self,
        task_id: str,
        *,
        scope: str = SCOPE_SERIES,
        occurrence_date: Optional[date] = None,
    ) -> Optional[Task]:
        """Delete a task, one occurrence of a series, or a series with its exceptions.

        Returns the tombstone row when a single occurrence was deleted.
        """

        original = self.require(task_id)
        if is_recurring(original) and scope == SCOPE_OCCURRENCE:
            if occurrence_date is None:
                raise InvalidTaskError("occurrence_date is required to delete a single occurrence")
            tombstone = edit_scope.delete_occurrence_only(original, occurrence_date)
            with self._session_factory() as s:
                s.add(tombstone)
                s.commit()
                s.refresh(tombstone)
            logger.info("Task %s cancelled on %s", task_id, occurrence_date)
            return tombstone

        with self._session_factory() as s:
            ids = [task_id]
            children = s.exec(select(Task).where(Task.parent_task_id == task_id))
            ids.extend(child.id for child in children)
            for row_id in ids:
                for done in s.exec(select(OccurrenceCompletion).where(OccurrenceCompletion.task_id == row_id)):
                    s.delete(done)
                row = s.get(Task, row_id)
                if row:
                    s.delete(row)
            s.commit()
        logger.info("Task %s deleted with %d exception row(s)", task_id, len(ids) - 1)
        return None

    # ---------- Completion ----------
    def set_completed(self, task_id: str, done: bool, *, occurrence_date: Optional[date] = None) -> Task:
        """Mark a task (or, for recurring rows, one occurrence) done or not done."""

        with self._session_factory() as s:
            t = s.get(Task, task_id)
            if not t:
                raise TaskNotFoundError(task_id)
            if is_recurring(t) and occurrence_date is not None:
                key = (task_id, occurrence_date.isoformat())
                existing = s.get(OccurrenceCompletion, key)
                if done and existing is None:
                    s.add(OccurrenceCompletion(task_id=task_id, occurrence_date=key[1]))
                elif not done and existing is not None:
                    s.delete(existing)
            else:
                t.completed = done
            t.updated_at = utc_now()
            s.add(t)
            s.commit()
            s.refresh(t)
        return t

    def completions(self, task_ids: Iterable[str], start: date, end: date) -> Set[CompletionKey]:
        ids = list(task_ids)
        if not ids:
            return set()
        with self._session_factory() as s:
            stmt = select(OccurrenceCompletion).where(
                and_(
                    OccurrenceCompletion.task_id.in_(ids),
                    OccurrenceCompletion.occurrence_date >= start.isoformat(),
                    OccurrenceCompletion.occurrence_date <= end.isoformat(),
                )
            )
            return {(row.task_id, date.fromisoformat(row.occurrence_date)) for row in s.exec(stmt)}


__all__ = ["TaskService", "SCOPE_SERIES", "SCOPE_OCCURRENCE"]
