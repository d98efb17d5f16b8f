from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from models.notification_log import NOTIFICATION_STATUSES, NotificationLogEntry, ReminderClaim
from storage.db import get_session
from utils.datetime_utils import ensure_utc, utc_now


logger = logging.getLogger("planner.notifications")


def claim_bucket(now: datetime, within_minutes: int) -> int:
    """Index of the ``within_minutes``-long window containing ``now``."""
    minutes = int(ensure_utc(now).timestamp() // 60)
    return minutes // max(within_minutes, 1)


class NotificationDedupGuard:
    """At-most-once-per-window reminder delivery over an append-only log.

    ``already_sent`` followed by ``record`` is a read-then-write; two overlapping
    ticks can both pass the read. ``claim`` closes that gap with a unique index.
    """

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    def already_sent(
        self,
        user_id: str,
        task_id: str,
        kind: str,
        within_minutes: int = 60,
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        cutoff = ensure_utc(now or utc_now()) - timedelta(minutes=within_minutes)
        with self._session_factory() as session:
            stmt = (
                select(NotificationLogEntry.id)
                .where(NotificationLogEntry.user_id == user_id)
                .where(NotificationLogEntry.task_id == task_id)
                .where(NotificationLogEntry.notification_type == kind)
                .where(NotificationLogEntry.sent_at >= cutoff)
                .limit(1)
            )
            return session.exec(stmt).first() is not None

    def record(self, entry: NotificationLogEntry) -> NotificationLogEntry:
        if entry.status not in NOTIFICATION_STATUSES:
            raise ValueError(f"Unsupported notification status: {entry.status}")
        if entry.id is not None:
            raise ValueError("Notification log entries are append-only")
        with self._session_factory() as session:
            session.add(entry)
            session.commit()
            session.refresh(entry)
        logger.debug(
            "Logged %s %s for user=%s task=%s",
            entry.notification_type,
            entry.status,
            entry.user_id,
            entry.task_id,
        )
        return entry

    def claim(
        self,
        user_id: str,
        task_id: str,
        kind: str,
        within_minutes: int = 60,
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        """Insert a claim for the current window; False if another tick holds it."""

        record = ReminderClaim(
            user_id=user_id,
            task_id=task_id,
            notification_type=kind,
            bucket=claim_bucket(now or utc_now(), within_minutes),
        )
        with self._session_factory() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.info("Reminder already claimed user=%s task=%s bucket=%s", user_id, task_id, record.bucket)
                return False
        return True

    def entries_for(self, user_id: str, task_id: str, kind: Optional[str] = None) -> List[NotificationLogEntry]:
        with self._session_factory() as session:
            stmt = (
                select(NotificationLogEntry)
                .where(NotificationLogEntry.user_id == user_id)
                .where(NotificationLogEntry.task_id == task_id)
            )
            if kind is not None:
                stmt = stmt.where(NotificationLogEntry.notification_type == kind)
            stmt = stmt.order_by(NotificationLogEntry.sent_at.asc(), NotificationLogEntry.id.asc())
            return list(session.exec(stmt))


__all__ = ["NotificationDedupGuard", "claim_bucket"]
