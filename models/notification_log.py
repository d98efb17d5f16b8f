"""Append-only notification log and reminder claim tables."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now


NOTIFICATION_STATUSES = ("sent", "delivered", "failed")


class NotificationLogEntry(SQLModel, table=True):
    __tablename__ = "notification_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    task_id: str = Field(index=True)
    notification_type: str = Field(index=True)
    sent_at: datetime = Field(default_factory=utc_now, index=True)
    status: str = "sent"
    transport_message_id: Optional[str] = None


class ReminderClaim(SQLModel, table=True):
    __tablename__ = "reminder_claim"
    __table_args__ = (
        UniqueConstraint("user_id", "task_id", "notification_type", "bucket", name="ux_reminder_claim"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str
    task_id: str
    notification_type: str
    bucket: int
    claimed_at: datetime = Field(default_factory=utc_now)


__all__ = ["NOTIFICATION_STATUSES", "NotificationLogEntry", "ReminderClaim"]
