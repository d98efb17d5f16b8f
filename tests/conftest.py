from datetime import date, timedelta
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from sqlmodel import Session, create_engine
from sqlalchemy.pool import StaticPool

from models.family import Category, Member
from models.task import Task
from storage.db import init_db


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    return eng


@pytest.fixture
def session_factory(engine):
    return lambda: Session(engine)


@pytest.fixture
def family(session_factory):
    """A family with two reachable members, one without a chat address, and a category."""
    with session_factory() as s:
        alice = Member(id="u-alice", family_id="fam-1", display_name="Alice", chat_address="+972500000001")
        bob = Member(id="u-bob", family_id="fam-1", display_name="Bob", chat_address="+972500000002")
        carol = Member(id="u-carol", family_id="fam-1", display_name="Carol", chat_address=None)
        kitchen = Category(id="cat-kitchen", family_id="fam-1", name="Cooking", icon="🍳")
        for row in (alice, bob, carol, kitchen):
            s.add(row)
        s.commit()
    return {"family_id": "fam-1", "alice": "u-alice", "bob": "u-bob", "carol": "u-carol", "category": "cat-kitchen"}


def make_task(
    task_id: str = "t1",
    *,
    week_start: str = "2025-01-05",
    day_of_week: int = 3,
    recurrence_type: str = "none",
    task_time=None,
    completed: bool = False,
    **extra,
) -> Task:
    return Task(
        id=task_id,
        family_id=extra.pop("family_id", "fam-1"),
        title=extra.pop("title", f"Task {task_id}"),
        week_start=week_start,
        day_of_week=day_of_week,
        recurrence_type=recurrence_type,
        task_time=task_time,
        completed=completed,
        **extra,
    )


def days(start: date, count: int):
    return [start + timedelta(days=i) for i in range(count)]
