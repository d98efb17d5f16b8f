"""Ad-hoc database migrations for the household planner."""

from __future__ import annotations

from sqlalchemy import text


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_task_columns(conn) -> None:
    # Columns added after the first schema: recurrence and exception rows.
    columns = {
        "recurrence_type": "TEXT NOT NULL DEFAULT 'none'",
        "parent_task_id": "TEXT",
        "cancelled": "BOOLEAN NOT NULL DEFAULT 0",
        "helper_id": "TEXT",
        "task_time": "TEXT",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, "task", name):
            conn.execute(text(f"ALTER TABLE task ADD COLUMN {name} {ddl_type}"))

    # Legacy rows stored recurrence as a boolean flag only.
    if _column_exists(conn, "task", "is_recurring"):
        conn.execute(
            text(
                """
                UPDATE task
                SET recurrence_type = 'weekly'
                WHERE is_recurring = 1 AND (recurrence_type IS NULL OR recurrence_type = 'none')
                """
            )
        )


def ensure_task_indexes(conn) -> None:
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_task_family_week ON task (family_id, week_start)"))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_task_parent ON task (parent_task_id)"))


def ensure_notification_log_indexes(conn) -> None:
    conn.execute(
        text(
            """
            CREATE INDEX IF NOT EXISTS ix_notification_log_lookup
            ON notification_log (user_id, task_id, notification_type, sent_at)
            """
        )
    )
    conn.execute(
        text(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS ux_reminder_claim_bucket
            ON reminder_claim (user_id, task_id, notification_type, bucket)
            """
        )
    )


def run_all(engine) -> None:
    with engine.begin() as conn:
        ensure_task_columns(conn)
        ensure_task_indexes(conn)
        ensure_notification_log_indexes(conn)


__all__ = ["run_all"]
