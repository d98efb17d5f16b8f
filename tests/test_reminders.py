from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import make_task
from core.occurrences import for_date
from core.settings import ReminderSettings
from services.family import FamilyDirectory
from services.notification_log import NotificationDedupGuard
from services.reminders import ReminderScheduler, TickSummary, format_reminder, in_window, reminder_window
from services.tasks import SCOPE_OCCURRENCE, TaskService
from services.whatsapp import RecordingTransport


NOW = datetime(2025, 1, 8, 9, 0, tzinfo=timezone.utc)  # Wednesday
WED = date(2025, 1, 8)
ALICE = "+972500000001"
BOB = "+972500000002"


@pytest.fixture
def tasks(session_factory, family):
    return TaskService(session_factory)


def _scheduler(session_factory, transport=None, **overrides):
    settings = ReminderSettings(**{"timezone": "UTC", **overrides})
    return ReminderScheduler(
        TaskService(session_factory),
        FamilyDirectory(session_factory),
        NotificationDedupGuard(session_factory),
        transport or RecordingTransport(),
        settings=settings,
        log_path=None,
    )


def test_reminder_window():
    assert reminder_window(NOW, 15) == ("09:00", "09:15")
    late = datetime(2025, 1, 8, 23, 50, tzinfo=timezone.utc)
    assert reminder_window(late, 15) == ("23:50", "24:00")
    assert in_window("09:00", ("09:00", "09:15"))
    assert not in_window("09:15", ("09:00", "09:15"))
    assert not in_window(None, ("09:00", "09:15"))


def test_window_follows_configured_timezone(session_factory, tasks):
    tasks.add(family_id="fam-1", title="Pick up kids", on_date=WED, task_time="11:05")
    scheduler = _scheduler(session_factory, timezone="Asia/Jerusalem")
    assert scheduler.run_tick(NOW).sent == 2  # 09:00 UTC is 11:00 in Jerusalem


def test_tick_sends_only_tasks_in_window(session_factory, tasks):
    tasks.add(family_id="fam-1", title="Feed cat", on_date=WED, task_time="09:10")
    tasks.add(family_id="fam-1", title="Call mom", on_date=WED, task_time="09:20")
    tasks.add(family_id="fam-1", title="No time", on_date=WED)
    transport = RecordingTransport()

    summary = _scheduler(session_factory, transport).run_tick(NOW)

    assert (summary.sent, summary.skipped, summary.failed) == (2, 0, 0)
    assert sorted(address for address, _ in transport.sent) == [ALICE, BOB]
    assert all("Feed cat" in text for _, text in transport.sent)


def test_tick_respects_assignment(session_factory, tasks, family):
    tasks.add(family_id="fam-1", title="Bob's chore", on_date=WED, task_time="09:05", assigned_to=family["bob"])
    transport = RecordingTransport()
    summary = _scheduler(session_factory, transport).run_tick(NOW)
    assert summary.sent == 1
    assert [address for address, _ in transport.sent] == [BOB]


def test_second_tick_skips_duplicates(session_factory, tasks):
    tasks.add(family_id="fam-1", title="Feed cat", on_date=WED, task_time="09:10")
    transport = RecordingTransport()
    scheduler = _scheduler(session_factory, transport)

    first = scheduler.run_tick(NOW)
    second = scheduler.run_tick(NOW + timedelta(minutes=1))

    assert first.sent == 2
    assert (second.sent, second.skipped) == (0, 2)
    assert len(transport.sent) == 2


def test_duplicate_claim_without_log_row_is_skipped(session_factory, tasks):
    task = tasks.add(family_id="fam-1", title="Feed cat", on_date=WED, task_time="09:10")
    guard = NotificationDedupGuard(session_factory)
    assert guard.claim("u-alice", task.id, "reminder", 60, now=NOW)

    summary = _scheduler(session_factory).run_tick(NOW)
    assert (summary.sent, summary.skipped) == (1, 1)


def test_failure_for_one_member_does_not_stop_the_tick(session_factory, tasks):
    task = tasks.add(family_id="fam-1", title="Feed cat", on_date=WED, task_time="09:10")
    transport = RecordingTransport(fail_for=(ALICE,))

    summary = _scheduler(session_factory, transport).run_tick(NOW)

    assert (summary.sent, summary.failed) == (1, 1)
    assert summary.errors and task.id in summary.errors[0]
    assert [address for address, _ in transport.sent] == [BOB]

    guard = NotificationDedupGuard(session_factory)
    failed = guard.entries_for("u-alice", task.id)
    assert [e.status for e in failed] == ["failed"]
    sent = guard.entries_for("u-bob", task.id)
    assert sent[0].transport_message_id.startswith("SM")


def test_completed_occurrences_are_not_reminded(session_factory, tasks):
    one_off = tasks.add(family_id="fam-1", title="Done already", on_date=WED, task_time="09:05")
    series = tasks.add(family_id="fam-1", title="Bins", on_date=WED, task_time="09:05", recurrence_type="weekly")
    tasks.set_completed(one_off.id, True)
    tasks.set_completed(series.id, True, occurrence_date=WED)

    summary = _scheduler(session_factory).run_tick(NOW)
    assert summary.sent == 0


def test_exception_row_reminds_at_its_own_time(session_factory, tasks):
    series = tasks.add(family_id="fam-1", title="Bins", on_date=WED, task_time="07:00", recurrence_type="daily")
    tasks.edit(series.id, {"task_time": "09:10"}, scope=SCOPE_OCCURRENCE, occurrence_date=WED)
    transport = RecordingTransport()

    summary = _scheduler(session_factory, transport).run_tick(NOW)
    assert summary.sent == 2
    assert all("09:10" in text for _, text in transport.sent)


def test_no_reachable_members(session_factory):
    summary = _scheduler(session_factory).run_tick(NOW)
    assert (summary.sent, summary.skipped, summary.failed) == (0, 0, 0)


def test_summary_payload():
    payload = TickSummary(sent=1, timestamp=NOW).to_dict()
    assert payload["message"] == "Notification job completed"
    assert payload["timestamp"] == NOW.isoformat()
    assert "errors" not in payload
    assert TickSummary(errors=["x"]).to_dict()["errors"] == ["x"]


def test_format_reminder_uses_category_icon(session_factory, tasks, family):
    tasks.add(
        family_id="fam-1",
        title="Start dinner",
        on_date=WED,
        task_time="09:05",
        category_id=family["category"],
    )
    transport = RecordingTransport()
    _scheduler(session_factory, transport).run_tick(NOW)
    text = transport.sent[0][1]
    assert text.startswith("⏰ *Task reminder*")
    assert "🍳 Start dinner" in text
    assert "🕐 09:05" in text
    assert "Reply `done Start dinner`" in text


def test_format_reminder_default_icon():
    occ = for_date([make_task(title="A very long task title indeed", task_time="10:00")], WED)[0]
    text = format_reminder(occ, None)
    assert "📌 A very long task title indeed" in text
    assert "Reply `done A very long task tit`" in text


def test_helper_assigned_task_reaches_every_member(session_factory, tasks):
    tasks.add(family_id="fam-1", title="Nanny pickup", on_date=WED, task_time="09:05", helper_id="h-1")
    assert _scheduler(session_factory).run_tick(NOW).sent == 2
