# planner/models/family.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now


def _new_id() -> str:
    return str(uuid.uuid4())


class Member(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    family_id: str = Field(index=True)
    display_name: str
    chat_address: Optional[str] = None    # e.g. "+972500000000"
    created_at: datetime = Field(default_factory=utc_now)


class Category(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    family_id: str = Field(index=True)
    name: str
    color: str = "#6B7280"
    icon: str = "📌"


class Helper(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    family_id: str = Field(index=True)
    name: str


__all__ = ["Member", "Category", "Helper"]
