# Rev 0.1.0

"""Pytest fixtures for taskplanner (Rev 0.1.0)"""
from __future__ import annotations
import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from taskplanner.models.entities import NewTask, TaskList
from taskplanner.repositories.db import Database
from taskplanner.repositories.sqlite_label_repository import SQLiteLabelRepository
from taskplanner.repositories.sqlite_list_repository import SQLiteListRepository
from taskplanner.repositories.sqlite_subtask_repository import SQLiteSubtaskRepository
from taskplanner.repositories.sqlite_task_history_repository import SQLiteTaskHistoryRepository
from taskplanner.repositories.sqlite_task_repository import SQLiteTaskRepository

BASE_INSTANT = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TickingClock:
    """Deterministic clock: every reading is 1 ms after the previous one."""

    def __init__(self, start: datetime = BASE_INSTANT):
        self._ticks = itertools.count()
        self.start = start
        self.last = ""

    def __call__(self) -> str:
        self.last = iso(self.start + timedelta(milliseconds=next(self._ticks)))
        return self.last


class SequentialIds:
    def __init__(self):
        self._n = itertools.count(1)

    def __call__(self) -> str:
        return f"id-{next(self._n):04d}"


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def db(tmp_path: Path):
    db = Database(tmp_path / "test.db")
    try:
        db.run_migrations()
        yield db
    finally:
        db.close()


@pytest.fixture()
def deps(clock):
    return dict(clock=clock, id_factory=SequentialIds())


@pytest.fixture()
def lists(db, deps) -> SQLiteListRepository:
    return SQLiteListRepository(db, **deps)


@pytest.fixture()
def tasks(db, deps) -> SQLiteTaskRepository:
    return SQLiteTaskRepository(db, **deps)


@pytest.fixture()
def history(db, deps) -> SQLiteTaskHistoryRepository:
    return SQLiteTaskHistoryRepository(db, **deps)


@pytest.fixture()
def labels(db, deps) -> SQLiteLabelRepository:
    return SQLiteLabelRepository(db, **deps)


@pytest.fixture()
def subtasks(db, deps) -> SQLiteSubtaskRepository:
    return SQLiteSubtaskRepository(db, **deps)


@pytest.fixture()
def inbox(lists) -> TaskList:
    return lists.ensure_default()


@pytest.fixture()
def make_task(tasks, inbox):
    """Create a task in the Inbox and return it; keyword args go to NewTask."""
    def _make(name: str = "Task", **kw):
        kw.setdefault("list_id", inbox.id)
        res = tasks.create(NewTask(name=name, **kw))
        assert res.ok, res
        return res.value
    return _make
