# tests/test_task_history_repository.py
from __future__ import annotations

import sqlite3

import pytest

from taskplanner.services.change_audit import decode_value
from taskplanner.services.errors import AppendOnlyError


@pytest.fixture()
def edited(tasks, make_task):
    """A task renamed twice and completed once."""
    task = make_task("Original")
    tasks.update(task.id, {"name": "Second"})
    tasks.update(task.id, {"name": "Third", "priority": "high"})
    tasks.mark_complete(task.id)
    return task


def test_find_by_task_id_is_newest_first(history, edited):
    entries = history.find_by_task_id(edited.id)
    assert [e.field_name for e in entries] == ["completed", "priority", "name", "name"]
    assert entries[0].changed_at >= entries[-1].changed_at
    assert decode_value(entries[-1].old_value) == "Original"


def test_find_by_task_id_paging(history, edited):
    assert len(history.find_by_task_id(edited.id, limit=2)) == 2
    assert [e.field_name for e in history.find_by_task_id(edited.id, limit=2, offset=2)] == ["name", "name"]


def test_field_queries(history, edited):
    names = history.find_by_task_id_and_field(edited.id, "name")
    assert [decode_value(e.new_value) for e in names] == ["Third", "Second"]

    last = history.get_last_change(edited.id, "name")
    assert decode_value(last.old_value) == "Second"
    assert history.get_last_change(edited.id, "deadline") is None


def test_counts_and_summary(history, edited):
    assert history.count_by_task_id(edited.id) == 4
    assert history.get_change_summary(edited.id) == {"name": 2, "completed": 1, "priority": 1}
    assert history.count_by_task_id("missing") == 0


def test_details_carry_task_name(history, edited):
    rows = history.find_by_task_id_with_details(edited.id)
    assert len(rows) == 4
    assert {r["task_name"] for r in rows} == {"Third"}


def test_recent_and_date_range(history, tasks, make_task, edited):
    other = make_task("Other")
    tasks.update(other.id, {"description": "new"})
    recent = history.find_recent(limit=2)
    assert recent[0].task_id == other.id
    assert len(recent) == 2

    everything = history.find_by_date_range("2024-01-01T00:00:00.000Z", "2024-12-31T23:59:59.999Z")
    assert len(everything) == 5
    assert history.find_by_date_range("2023-01-01T00:00:00.000Z", "2023-12-31T23:59:59.999Z") == []


def test_history_rows_are_append_only(db, edited):
    with pytest.raises(sqlite3.IntegrityError, match="append-only"):
        db.execute("UPDATE task_history SET new_value = '\"tampered\"' WHERE task_id = ?", (edited.id,))


def test_history_has_no_row_delete(history, edited):
    entry = history.find_by_task_id(edited.id)[0]
    with pytest.raises(AppendOnlyError):
        history.delete(entry.id)
    assert history.count_by_task_id(edited.id) == 4


def test_delete_by_task_id_clears_one_timeline(history, tasks, make_task, edited):
    other = make_task("Other")
    tasks.update(other.id, {"name": "Other v2"})
    assert history.delete_by_task_id(edited.id) == 4
    assert history.count_by_task_id(edited.id) == 0
    assert history.count_by_task_id(other.id) == 1
    assert tasks.find_by_id(edited.id) is not None
    assert history.delete_by_task_id("missing") == 0


def test_delete_older_than(history, edited, clock):
    cutoff = clock()
    assert history.delete_older_than(cutoff) == 4
    assert history.count_by_task_id(edited.id) == 0
