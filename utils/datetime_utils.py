"""Utilities for UTC timestamps and boundary parsing of dates and times."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.errors import InvalidTaskError

logger = logging.getLogger("planner.datetime")

UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def local_now(tz_name: str = "UTC", *, now: Optional[datetime] = None) -> datetime:
    """Return ``now`` (default: current time) converted to ``tz_name``."""

    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", tz_name)
        tz = UTC
    base = ensure_utc(now) if now is not None else utc_now()
    return base.astimezone(tz)


def parse_iso_date(value: str | date | None) -> date:
    """Parse a ``YYYY-MM-DD`` string. Raises :class:`InvalidTaskError` on bad input."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not str(value).strip():
        raise InvalidTaskError("Date is required")
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidTaskError(f"Invalid date: {value!r}") from exc


def parse_task_time(value: str | time | None) -> Optional[str]:
    """Normalize ``HH:MM`` (or ``H:MM``) to zero-padded ``HH:MM``; ``None`` stays ``None``."""

    if value is None:
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M")
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = datetime.strptime(text, "%H:%M")
    except ValueError as exc:
        raise InvalidTaskError(f"Invalid task time: {value!r}") from exc
    return parsed.strftime("%H:%M")


def hhmm(dt: datetime) -> str:
    return dt.strftime("%H:%M")


__all__ = [
    "UTC",
    "ensure_utc",
    "hhmm",
    "local_now",
    "parse_iso_date",
    "parse_task_time",
    "utc_now",
]
