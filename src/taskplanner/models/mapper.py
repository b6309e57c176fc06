# Rev 0.1.0
"""Row <-> entity conversion. SQLite stores booleans as 0/1 and enums as text."""
from __future__ import annotations
import sqlite3
from typing import Any, Dict, Mapping, Union

from .entities import Label, ListWithTaskCount, Priority, Subtask, Task, TaskHistory, TaskList

Row = Union[sqlite3.Row, Mapping[str, Any]]

TASK_COLUMNS = (
    "id",
    "list_id",
    "name",
    "description",
    "date",
    "deadline",
    "estimate_minutes",
    "actual_minutes",
    "priority",
    "recurring_rule",
    "completed",
    "completed_at",
    "deleted_at",
    "created_at",
    "updated_at",
)


def to_db_value(value: Any) -> Any:
    """Python value -> SQLite parameter."""
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, Priority):
        return value.value
    return value


def task_from_row(row: Row) -> Task:
    return Task(
        id=row["id"],
        list_id=row["list_id"],
        name=row["name"],
        description=row["description"],
        date=row["date"],
        deadline=row["deadline"],
        estimate_minutes=row["estimate_minutes"],
        actual_minutes=row["actual_minutes"],
        priority=Priority(row["priority"]),
        recurring_rule=row["recurring_rule"],
        completed=bool(row["completed"]),
        completed_at=row["completed_at"],
        deleted_at=row["deleted_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def task_to_row(task: Task) -> Dict[str, Any]:
    return {col: to_db_value(getattr(task, col)) for col in TASK_COLUMNS}


def history_from_row(row: Row) -> TaskHistory:
    return TaskHistory(
        id=row["id"],
        task_id=row["task_id"],
        field_name=row["field_name"],
        old_value=row["old_value"],
        new_value=row["new_value"],
        changed_at=row["changed_at"],
    )


def list_from_row(row: Row) -> TaskList:
    return TaskList(
        id=row["id"],
        name=row["name"],
        color=row["color"],
        emoji=row["emoji"],
        is_default=bool(row["is_default"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def list_with_counts_from_row(row: Row) -> ListWithTaskCount:
    return ListWithTaskCount(
        id=row["id"],
        name=row["name"],
        color=row["color"],
        emoji=row["emoji"],
        is_default=bool(row["is_default"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        task_count=int(row["task_count"] or 0),
        completed_count=int(row["completed_count"] or 0),
    )


def label_from_row(row: Row) -> Label:
    return Label(
        id=row["id"],
        name=row["name"],
        color=row["color"],
        icon=row["icon"],
        created_at=row["created_at"],
    )


def subtask_from_row(row: Row) -> Subtask:
    return Subtask(
        id=row["id"],
        task_id=row["task_id"],
        name=row["name"],
        completed=bool(row["completed"]),
        order=row["order"],
        created_at=row["created_at"],
    )
