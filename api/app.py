"""HTTP trigger for the reminder tick, meant to be called by a cron job."""

from __future__ import annotations

import hmac
import logging
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.settings import APP_NAME, SERVER, ServerSettings
from services.family import FamilyDirectory
from services.notification_log import NotificationDedupGuard
from services.reminders import ReminderScheduler
from services.tasks import TaskService
from utils.datetime_utils import utc_now

logger = logging.getLogger("planner.api")

NOTIFY_PATH = "/api/whatsapp/notify"


def verify_cron_secret(authorization: Optional[str], settings: ServerSettings) -> bool:
    """Bearer check; with no secret configured only non-production callers pass."""
    if not settings.cron_secret:
        return not settings.is_production
    expected = f"Bearer {settings.cron_secret}"
    return hmac.compare_digest((authorization or "").encode(), expected.encode())


def default_scheduler() -> ReminderScheduler:
    return ReminderScheduler(TaskService(), FamilyDirectory(), NotificationDedupGuard())


def create_app(
    scheduler_factory: Callable[[], ReminderScheduler] = default_scheduler,
    *,
    settings: Optional[ServerSettings] = None,
) -> FastAPI:
    server = settings or SERVER
    app = FastAPI(title=APP_NAME, version="0.1.0")

    def notify(request: Request):
        if not verify_cron_secret(request.headers.get("authorization"), server):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        try:
            summary = scheduler_factory().run_tick()
        except Exception as exc:
            logger.exception("Notification job error")
            return JSONResponse(
                {"error": "Internal server error", "details": str(exc)},
                status_code=500,
            )
        return summary.to_dict()

    # POST is the manual-trigger alias of the cron GET.
    app.add_api_route(NOTIFY_PATH, notify, methods=["GET", "POST"])

    @app.get("/health")
    def health():
        return {"status": "ok", "timestamp": utc_now().isoformat()}

    return app


def run_app(
    app: FastAPI,
    *,
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: str = "info",
) -> None:
    """Run the app through uvicorn."""
    uvicorn.run(app, host=host or SERVER.host, port=port or SERVER.port, log_level=log_level)


__all__ = ["NOTIFY_PATH", "create_app", "default_scheduler", "run_app", "verify_cron_secret"]
