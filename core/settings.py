"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(env or os.environ)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    override = environ.get("PLANNER_DATA_DIR")
    if override:
        return Path(override).expanduser()

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


def _env_int(name: str, default: int, env: Optional[Mapping[str, str]] = None) -> int:
    raw = (env if env is not None else os.environ).get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool, env: Optional[Mapping[str, str]] = None) -> bool:
    raw = (env if env is not None else os.environ).get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


APP_NAME = "HouseholdPlanner"


DATA_DIR = get_default_data_dir(APP_NAME)
LOG_DIR = DATA_DIR / "logs"

DB_PATH = DATA_DIR / "planner.db"
LOG_PATH = LOG_DIR / "reminders.log"


@dataclass(frozen=True)
class ReminderSettings:
    window_minutes: int = 15
    dedup_minutes: int = 60
    notification_type: str = "reminder"
    timezone: str = "UTC"
    atomic_claims: bool = True


@dataclass(frozen=True)
class TwilioSettings:
    account_sid: Optional[str] = None
    auth_token: Optional[str] = None
    whatsapp_number: str = "whatsapp:+14155238886"
    api_base_url: str = "https://api.twilio.com/2010-04-01"
    timeout_sec: float = 15.0

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)


@dataclass(frozen=True)
class ServerSettings:
    host: str = "127.0.0.1"
    port: int = 8000
    cron_secret: Optional[str] = None
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


def load_reminder_settings(env: Optional[Mapping[str, str]] = None) -> ReminderSettings:
    environ = env if env is not None else os.environ
    return ReminderSettings(
        window_minutes=_env_int("PLANNER_REMINDER_WINDOW_MIN", 15, environ),
        dedup_minutes=_env_int("PLANNER_DEDUP_WINDOW_MIN", 60, environ),
        timezone=environ.get("PLANNER_TIMEZONE") or "UTC",
        atomic_claims=_env_bool("PLANNER_ATOMIC_CLAIMS", True, environ),
    )


def load_twilio_settings(env: Optional[Mapping[str, str]] = None) -> TwilioSettings:
    environ = env if env is not None else os.environ
    return TwilioSettings(
        account_sid=environ.get("TWILIO_ACCOUNT_SID") or None,
        auth_token=environ.get("TWILIO_AUTH_TOKEN") or None,
        whatsapp_number=environ.get("TWILIO_WHATSAPP_NUMBER") or "whatsapp:+14155238886",
    )


def load_server_settings(env: Optional[Mapping[str, str]] = None) -> ServerSettings:
    environ = env if env is not None else os.environ
    return ServerSettings(
        host=environ.get("PLANNER_HOST") or "127.0.0.1",
        port=_env_int("PLANNER_PORT", 8000, environ),
        cron_secret=environ.get("CRON_SECRET") or None,
        environment=environ.get("PLANNER_ENV") or "development",
    )


REMINDERS = load_reminder_settings()
TWILIO = load_twilio_settings()
SERVER = load_server_settings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "LOG_DIR",
    "DB_PATH",
    "LOG_PATH",
    "REMINDERS",
    "TWILIO",
    "SERVER",
    "ReminderSettings",
    "TwilioSettings",
    "ServerSettings",
    "get_default_data_dir",
    "load_reminder_settings",
    "load_twilio_settings",
    "load_server_settings",
]
