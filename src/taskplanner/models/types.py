# taskplanner type definitions
# Rev 0.1.0

from __future__ import annotations
from enum import Enum


class Table(str, Enum):
    """Every table a repository may address. Table names in SQL text come only from here."""

    LISTS = "lists"
    TASKS = "tasks"
    LABELS = "labels"
    TASK_LABELS = "task_labels"
    SUBTASKS = "subtasks"
    REMINDERS = "reminders"
    ATTACHMENTS = "attachments"
    TASK_HISTORY = "task_history"


# Tables whose rows hang off tasks.id with ON DELETE CASCADE
TASK_DEPENDENT_TABLES = (
    Table.TASK_LABELS,
    Table.SUBTASKS,
    Table.REMINDERS,
    Table.ATTACHMENTS,
    Table.TASK_HISTORY,
)
