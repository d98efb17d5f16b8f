from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from core.occurrences import Occurrence, for_date
from core.settings import LOG_PATH, REMINDERS, ReminderSettings
from models.family import Category, Member
from models.notification_log import NotificationLogEntry
from services.family import FamilyDirectory
from services.notification_log import NotificationDedupGuard
from services.tasks import TaskService
from services.whatsapp import ChatTransport, WhatsAppTransport
from utils.datetime_utils import ensure_utc, hhmm, local_now, utc_now


DEFAULT_ICON = "📌"


def _ensure_logger(log_path: Optional[Path] = None) -> logging.Logger:
    logger = logging.getLogger("planner.reminders")
    if not logger.handlers and log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


@dataclass
class TickSummary:
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        payload = {
            "message": "Notification job completed",
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.errors:
            payload["errors"] = list(self.errors)
        return payload


def reminder_window(now_local: datetime, minutes: int) -> Tuple[str, str]:
    """``[start, end)`` as ``HH:MM`` strings; clipped to the end of the day."""
    end = now_local + timedelta(minutes=minutes)
    end_text = hhmm(end) if end.date() == now_local.date() else "24:00"
    return hhmm(now_local), end_text


def in_window(task_time: Optional[str], window: Tuple[str, str]) -> bool:
    if not task_time:
        return False
    start, end = window
    return start <= task_time < end


def is_for_member(occ: Occurrence, member: Member) -> bool:
    assigned = occ.task.assigned_to
    return assigned is None or assigned == "" or assigned == member.id


def format_reminder(occ: Occurrence, category: Optional[Category]) -> str:
    icon = (category.icon if category else None) or DEFAULT_ICON
    lines = ["⏰ *Task reminder*", "", f"{icon} {occ.title}"]
    if occ.task_time:
        lines.append(f"🕐 {occ.task_time}")
    lines.extend(["", f"Reply `done {occ.title[:20]}` to mark it as completed."])
    return "\n".join(lines)


class ReminderScheduler:
    """One pass over reachable members: find due occurrences, dedup, send, log."""

    def __init__(
        self,
        tasks: TaskService,
        directory: FamilyDirectory,
        guard: NotificationDedupGuard,
        transport: Optional[ChatTransport] = None,
        *,
        settings: Optional[ReminderSettings] = None,
        log_path: Optional[Path] = LOG_PATH,
    ) -> None:
        self.tasks = tasks
        self.directory = directory
        self.guard = guard
        self.transport = transport or WhatsAppTransport()
        self.settings = settings or REMINDERS
        self.logger = _ensure_logger(log_path)

    def due_for_member(
        self,
        member: Member,
        today: date,
        window: Tuple[str, str],
        family_tasks: Optional[list] = None,
    ) -> List[Occurrence]:
        tasks = family_tasks if family_tasks is not None else self.tasks.list_reminder_candidates(member.family_id)
        if not tasks:
            return []
        done = self.tasks.completions([t.id for t in tasks], today, today)
        return [
            occ
            for occ in for_date(tasks, today, completions=done)
            if not occ.completed and in_window(occ.task_time, window) and is_for_member(occ, member)
        ]

    def run_tick(self, now: Optional[datetime] = None) -> TickSummary:
        now_utc = ensure_utc(now) if now is not None else utc_now()
        summary = TickSummary(timestamp=now_utc)
        now_local = local_now(self.settings.timezone, now=now_utc)
        today = now_local.date()
        window = reminder_window(now_local, self.settings.window_minutes)
        kind = self.settings.notification_type
        self.logger.info("Running notification job at %s, checking until %s", window[0], window[1])

        members = self.directory.reachable_members()
        if not members:
            self.logger.info("No members with a chat address")
            return summary

        family_cache: Dict[str, Tuple[list, Dict[str, Category]]] = {}
        for member in members:
            try:
                if member.family_id not in family_cache:
                    family_cache[member.family_id] = (
                        self.tasks.list_reminder_candidates(member.family_id),
                        self.directory.categories(member.family_id),
                    )
                family_tasks, categories = family_cache[member.family_id]
                due = self.due_for_member(member, today, window, family_tasks)
            except Exception as exc:
                self.logger.exception("Loading tasks for member %s failed", member.id)
                summary.errors.append(f"Member {member.id}: {exc}")
                continue

            for occ in due:
                try:
                    self._deliver(member, occ, categories.get(occ.task.category_id or ""), kind, now_utc, summary)
                except Exception as exc:
                    self.logger.exception("Reminder for task %s aborted", occ.task_id)
                    summary.errors.append(f"Task {occ.task_id}: {exc}")

        self.logger.info(
            "Notification job done: sent=%s skipped=%s failed=%s",
            summary.sent,
            summary.skipped,
            summary.failed,
        )
        return summary

    def _deliver(
        self,
        member: Member,
        occ: Occurrence,
        category: Optional[Category],
        kind: str,
        now_utc: datetime,
        summary: TickSummary,
    ) -> None:
        dedup = self.settings.dedup_minutes
        if self.guard.already_sent(member.id, occ.task_id, kind, dedup, now=now_utc):
            self.logger.info("Skipping duplicate notification for task %s", occ.task_id)
            summary.skipped += 1
            return
        if self.settings.atomic_claims and not self.guard.claim(member.id, occ.task_id, kind, dedup, now=now_utc):
            summary.skipped += 1
            return

        try:
            message_id = self.transport.send(member.chat_address, format_reminder(occ, category))
        except Exception as exc:
            self.logger.error("Reminder for task %s to member %s failed: %s", occ.task_id, member.id, exc)
            summary.failed += 1
            summary.errors.append(f"Task {occ.task_id}: {exc}")
            self._record(member, occ, kind, now_utc, "failed", None, summary)
            return

        summary.sent += 1
        self._record(member, occ, kind, now_utc, "sent", message_id, summary)

    def _record(
        self,
        member: Member,
        occ: Occurrence,
        kind: str,
        now_utc: datetime,
        status: str,
        message_id: Optional[str],
        summary: TickSummary,
    ) -> None:
        entry = NotificationLogEntry(
            user_id=member.id,
            task_id=occ.task_id,
            notification_type=kind,
            sent_at=now_utc,
            status=status,
            transport_message_id=message_id,
        )
        try:
            self.guard.record(entry)
        except Exception as exc:
            self.logger.exception("Could not log %s reminder for task %s", status, occ.task_id)
            summary.errors.append(f"Task {occ.task_id}: log write failed: {exc}")


__all__ = [
    "ReminderScheduler",
    "TickSummary",
    "format_reminder",
    "in_window",
    "is_for_member",
    "reminder_window",
]
