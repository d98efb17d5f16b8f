from datetime import date

from conftest import make_task
from core.occurrences import day_label, expand, for_date, upcoming


WED = date(2025, 1, 8)


def test_expand_empty_when_range_inverted():
    tasks = [make_task(recurrence_type="daily")]
    assert expand(tasks, date(2025, 1, 10), date(2025, 1, 9)) == []


def test_expand_dates_ascending():
    tasks = [make_task("a", recurrence_type="daily"), make_task("b", recurrence_type="weekly")]
    result = expand(tasks, date(2025, 1, 5), date(2025, 1, 11))
    assert [o.date for o in result] == sorted(o.date for o in result)
    assert [(o.task_id, o.date) for o in result if o.task_id == "b"] == [("b", WED)]
    assert len([o for o in result if o.task_id == "a"]) == 7


def test_timed_first_then_by_time_then_input_order():
    tasks = [
        make_task("untimed-1", recurrence_type="weekly"),
        make_task("late", recurrence_type="weekly", task_time="18:30"),
        make_task("untimed-2", recurrence_type="weekly"),
        make_task("early", recurrence_type="weekly", task_time="07:05"),
        make_task("early-2", recurrence_type="weekly", task_time="07:05"),
    ]
    ids = [o.task_id for o in for_date(tasks, WED)]
    assert ids == ["early", "early-2", "late", "untimed-1", "untimed-2"]


def test_expand_is_deterministic():
    tasks = [
        make_task("x", recurrence_type="daily", task_time="10:00"),
        make_task("y", recurrence_type="daily"),
        make_task("z", recurrence_type="daily", task_time="09:00"),
    ]
    first = expand(tasks, WED, WED)
    second = expand(tasks, WED, WED)
    assert [(o.task_id, o.date) for o in first] == [(o.task_id, o.date) for o in second]
    assert first == second


def test_occurrence_fields():
    occ = for_date([make_task("a", recurrence_type="weekly", task_time="08:00", title="Trash")], WED)[0]
    assert occ.key == ("a", WED)
    assert occ.day_of_week == 3
    assert occ.title == "Trash"
    assert occ.task_time == "08:00"
    assert not occ.completed


def test_exception_replaces_series_occurrence_that_day():
    series = make_task("series", recurrence_type="weekly", task_time="08:00")
    override = make_task(
        "override",
        week_start="2025-01-19",
        day_of_week=3,
        task_time="11:00",
        parent_task_id="series",
    )
    result = expand([series, override], date(2025, 1, 5), date(2025, 1, 31))
    pairs = [(o.task_id, o.date.isoformat()) for o in result]
    assert pairs == [
        ("series", "2025-01-08"),
        ("series", "2025-01-15"),
        ("override", "2025-01-22"),
        ("series", "2025-01-29"),
    ]


def test_override_moved_to_another_day_still_suppresses_only_its_own_date():
    series = make_task("series", recurrence_type="weekly")
    # Override anchored on Thursday: the Wednesday occurrence is untouched.
    override = make_task("override", week_start="2025-01-12", day_of_week=4, parent_task_id="series")
    result = expand([series, override], date(2025, 1, 12), date(2025, 1, 18))
    assert [(o.task_id, o.date) for o in result] == [
        ("series", date(2025, 1, 15)),
        ("override", date(2025, 1, 16)),
    ]


def test_cancelled_exception_hides_occurrence():
    series = make_task("series", recurrence_type="weekly")
    tombstone = make_task("gone", week_start="2025-01-12", parent_task_id="series", cancelled=True)
    result = expand([series, tombstone], date(2025, 1, 5), date(2025, 1, 25))
    assert [o.date for o in result] == [date(2025, 1, 8), date(2025, 1, 22)]


def test_completions_mark_single_occurrence():
    series = make_task("s", recurrence_type="weekly")
    result = expand([series], date(2025, 1, 5), date(2025, 1, 18), completions={("s", WED)})
    assert [(o.date, o.completed) for o in result] == [(WED, True), (date(2025, 1, 15), False)]


def test_row_flag_completes_every_occurrence():
    series = make_task("s", recurrence_type="weekly", completed=True)
    assert all(o.completed for o in expand([series], date(2025, 1, 5), date(2025, 2, 5)))


def test_day_label():
    today = date(2025, 1, 8)
    assert day_label(today, today) == "Today"
    assert day_label(date(2025, 1, 9), today) == "Tomorrow"
    assert day_label(date(2025, 1, 10), today) == "Friday"


def test_upcoming_groups_and_drops_completed():
    today = date(2025, 1, 8)  # Wednesday
    tasks = [
        make_task("thu", week_start="2025-01-05", day_of_week=4),
        make_task("fri-done", week_start="2025-01-05", day_of_week=5, completed=True),
        make_task("sat", week_start="2025-01-05", day_of_week=6, task_time="09:00"),
        make_task("wed", week_start="2025-01-05", day_of_week=3),
    ]
    result = upcoming(tasks, today, 3)
    assert [(d, label, [o.task_id for o in occ]) for d, label, occ in result] == [
        (date(2025, 1, 9), "Tomorrow", ["thu"]),
        (date(2025, 1, 11), "Saturday", ["sat"]),
    ]


def test_upcoming_include_today():
    today = date(2025, 1, 8)
    result = upcoming([make_task("wed")], today, 1, include_today=True)
    assert [(d, label) for d, label, _ in result] == [(today, "Today")]
    assert upcoming([make_task("wed")], today, 0) == []
