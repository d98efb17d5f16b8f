"""Shape the write for edits and deletes on recurring tasks.

Editing a single occurrence forks a one-off exception row that points back to
the series; editing the series mutates the anchor row. Nothing here touches the
database: callers persist the returned rows.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Mapping

from core.errors import InvalidTaskError
from core.recurrence import RecurrenceType, is_recurring, occurs_on
from core.week import sunday_index, week_start_iso
from models.task import Task
from utils.datetime_utils import parse_iso_date, parse_task_time, utc_now


# Fields an occurrence override may carry over from the edit form.
OCCURRENCE_FIELDS = (
    "title",
    "notes",
    "task_time",
    "category_id",
    "assigned_to",
    "helper_id",
    "completed",
)

SERIES_FIELDS = OCCURRENCE_FIELDS + ("day_of_week", "week_start", "recurrence_type")


def clean_fields(fields: Mapping[str, Any], allowed=SERIES_FIELDS) -> Dict[str, Any]:
    """Validate and normalize editable fields; unknown keys raise."""

    unknown = set(fields) - set(allowed)
    if unknown:
        raise InvalidTaskError(f"Unsupported fields: {', '.join(sorted(unknown))}")

    cleaned: Dict[str, Any] = dict(fields)
    if "title" in cleaned:
        title = (cleaned["title"] or "").strip()
        if not title:
            raise InvalidTaskError("Title cannot be empty")
        cleaned["title"] = title
    if "notes" in cleaned:
        cleaned["notes"] = cleaned["notes"] or None
    if "completed" in cleaned and not isinstance(cleaned["completed"], bool):
        raise InvalidTaskError(f"completed must be a bool, got {cleaned['completed']!r}")
    if "task_time" in cleaned:
        cleaned["task_time"] = parse_task_time(cleaned["task_time"])
    if "day_of_week" in cleaned:
        day = cleaned["day_of_week"]
        if not isinstance(day, int) or isinstance(day, bool) or not 0 <= day <= 6:
            raise InvalidTaskError(f"day_of_week must be 0..6, got {day!r}")
    if "week_start" in cleaned:
        start = parse_iso_date(cleaned["week_start"])
        if sunday_index(start) != 0:
            raise InvalidTaskError(f"week_start must be a Sunday, got {start.isoformat()}")
        cleaned["week_start"] = start.isoformat()
    if "recurrence_type" in cleaned:
        rec = RecurrenceType.normalize(cleaned["recurrence_type"])
        if rec is None:
            raise InvalidTaskError(f"Unknown recurrence type: {cleaned['recurrence_type']!r}")
        cleaned["recurrence_type"] = rec.value
    if cleaned.get("assigned_to") and cleaned.get("helper_id"):
        raise InvalidTaskError("A task is assigned to a member or a helper, not both")
    return cleaned


def _require_recurring(task: Task) -> None:
    if not is_recurring(task):
        raise InvalidTaskError(f"Task {task.id} is not recurring")


def _require_occurrence(task: Task, occurrence_date: date) -> None:
    _require_recurring(task)
    if not occurs_on(task, occurrence_date):
        raise InvalidTaskError(f"Task {task.id} does not occur on {occurrence_date.isoformat()}")


def apply_to_occurrence_only(original: Task, occurrence_date: date, new_fields: Mapping[str, Any]) -> Task:
    """New one-off row replacing ``original`` on ``occurrence_date``. ``original`` is untouched."""

    _require_occurrence(original, occurrence_date)
    fields = clean_fields(new_fields, OCCURRENCE_FIELDS)
    values = {name: getattr(original, name) for name in OCCURRENCE_FIELDS}
    values["completed"] = False
    values.update(fields)
    if values.get("assigned_to") and values.get("helper_id"):
        # the form switched assignee kind; keep whichever was set explicitly
        if "assigned_to" in fields:
            values["helper_id"] = None
        else:
            values["assigned_to"] = None
    return Task(
        family_id=original.family_id,
        week_start=week_start_iso(occurrence_date),
        day_of_week=sunday_index(occurrence_date),
        recurrence_type=RecurrenceType.NONE.value,
        parent_task_id=original.id,
        **values,
    )


def apply_to_whole_series(original: Task, new_fields: Mapping[str, Any]) -> Task:
    """Mutate the anchor row in place; every computed occurrence follows."""

    _require_recurring(original)
    fields = clean_fields(new_fields, SERIES_FIELDS)
    for name, value in fields.items():
        setattr(original, name, value)
    if fields.get("assigned_to"):
        original.helper_id = None
    elif fields.get("helper_id"):
        original.assigned_to = None
    original.updated_at = utc_now()
    return original


def delete_occurrence_only(original: Task, occurrence_date: date) -> Task:
    """Cancelled exception row that hides ``original`` on ``occurrence_date``."""

    _require_occurrence(original, occurrence_date)
    return Task(
        family_id=original.family_id,
        title=original.title,
        task_time=original.task_time,
        category_id=original.category_id,
        week_start=week_start_iso(occurrence_date),
        day_of_week=sunday_index(occurrence_date),
        recurrence_type=RecurrenceType.NONE.value,
        parent_task_id=original.id,
        cancelled=True,
    )


__all__ = [
    "OCCURRENCE_FIELDS",
    "SERIES_FIELDS",
    "apply_to_occurrence_only",
    "apply_to_whole_series",
    "clean_fields",
    "delete_occurrence_only",
]
