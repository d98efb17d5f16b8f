# planner/storage/db.py
from __future__ import annotations

from typing import Optional

from sqlmodel import SQLModel, create_engine, Session

from core.settings import DB_PATH

# Ensure SQLModel metadata is populated
import models.task  # noqa: F401
import models.family  # noqa: F401
import models.notification_log  # noqa: F401
from storage import migrations


_engine = None


def get_engine():
    """Return (and lazily create) the application engine."""

    global _engine
    if _engine is None:
        DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(f"sqlite:///{DB_PATH.as_posix()}", echo=False)
    return _engine


def init_db(engine: Optional[object] = None) -> None:
    actual = engine or get_engine()
    SQLModel.metadata.create_all(actual)
    migrations.run_all(actual)


def get_session() -> Session:
    return Session(get_engine())


__all__ = ["get_engine", "init_db", "get_session"]
