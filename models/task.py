# planner/models/task.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now


def _new_id() -> str:
    return str(uuid.uuid4())


class Task(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    family_id: str = Field(index=True)
    title: str
    notes: Optional[str] = None
    task_time: Optional[str] = None       # "HH:MM", 24h
    category_id: Optional[str] = None
    assigned_to: Optional[str] = None     # member id
    helper_id: Optional[str] = None       # non-account assignee
    day_of_week: int = 0                  # 0 = Sunday
    week_start: str = Field(index=True)   # ISO date of the anchor week's Sunday
    recurrence_type: str = "none"         # none / daily / weekly / biweekly / monthly
    completed: bool = False
    cancelled: bool = False
    parent_task_id: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class OccurrenceCompletion(SQLModel, table=True):
    __tablename__ = "occurrence_completion"

    task_id: str = Field(primary_key=True, foreign_key="task.id")
    occurrence_date: str = Field(primary_key=True)
    completed_at: datetime = Field(default_factory=utc_now)


__all__ = ["Task", "OccurrenceCompletion"]
