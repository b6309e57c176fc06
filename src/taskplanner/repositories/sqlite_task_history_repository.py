# Rev 0.1.0
from __future__ import annotations

from typing import Any, Dict, List, Optional

from taskplanner.models.entities import TaskHistory
from taskplanner.models.mapper import history_from_row
from taskplanner.models.types import Table
from taskplanner.repositories.base import SQLiteRepository
from taskplanner.services.errors import AppendOnlyError
from taskplanner.utils.logging_setup import get_logger

log = get_logger("history")


class SQLiteTaskHistoryRepository(SQLiteRepository):
    """
    Read side of the task_history timeline.

    Schema expectation (0001):

      task_history(
        id TEXT PRIMARY KEY,
        task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        field_name TEXT NOT NULL,
        old_value TEXT NULL,   -- canonical JSON, NULL = no value
        new_value TEXT NULL,
        changed_at TEXT NOT NULL
      )

    Rows are appended only by the change-audit engine during a task update;
    there is no create or update here.
    """

    table = Table.TASK_HISTORY
    columns = frozenset({"id", "task_id", "field_name", "changed_at"})

    # -------------------------
    # Queries
    # -------------------------
    def find_by_task_id(self, task_id: str, *, limit: int = 200, offset: int = 0) -> List[TaskHistory]:
        rows = self._fetch_all(
            """
            SELECT * FROM task_history
            WHERE task_id = ?
            ORDER BY changed_at DESC, rowid DESC
            LIMIT ? OFFSET ?
            """,
            (task_id, limit, offset),
        )
        return [history_from_row(r) for r in rows]

    def find_by_task_id_and_field(self, task_id: str, field_name: str) -> List[TaskHistory]:
        rows = self._fetch_all(
            """
            SELECT * FROM task_history
            WHERE task_id = ? AND field_name = ?
            ORDER BY changed_at DESC, rowid DESC
            """,
            (task_id, field_name),
        )
        return [history_from_row(r) for r in rows]

    def get_last_change(self, task_id: str, field_name: str) -> Optional[TaskHistory]:
        row = self._fetch_one(
            """
            SELECT * FROM task_history
            WHERE task_id = ? AND field_name = ?
            ORDER BY changed_at DESC, rowid DESC
            LIMIT 1
            """,
            (task_id, field_name),
        )
        return history_from_row(row) if row else None

    def find_recent(self, limit: int = 50) -> List[TaskHistory]:
        rows = self._fetch_all(
            "SELECT * FROM task_history ORDER BY changed_at DESC, rowid DESC LIMIT ?",
            (limit,),
        )
        return [history_from_row(r) for r in rows]

    def find_by_date_range(self, date_from: str, date_to: str) -> List[TaskHistory]:
        rows = self._fetch_all(
            """
            SELECT * FROM task_history
            WHERE changed_at >= ? AND changed_at <= ?
            ORDER BY changed_at DESC, rowid DESC
            """,
            (date_from, date_to),
        )
        return [history_from_row(r) for r in rows]

    def find_by_task_id_with_details(self, task_id: str) -> List[Dict[str, Any]]:
        """History rows decorated with the task name, newest first."""
        rows = self._fetch_all(
            """
            SELECT th.*, t.name AS task_name
            FROM task_history th
            JOIN tasks t ON t.id = th.task_id
            WHERE th.task_id = ?
            ORDER BY th.changed_at DESC, th.rowid DESC
            """,
            (task_id,),
        )
        return [dict(r) for r in rows]

    def count_by_task_id(self, task_id: str) -> int:
        return self.count_by("task_id", task_id)

    def get_change_summary(self, task_id: str) -> Dict[str, int]:
        rows = self._fetch_all(
            """
            SELECT field_name, COUNT(*) AS change_count
            FROM task_history
            WHERE task_id = ?
            GROUP BY field_name
            ORDER BY change_count DESC, field_name ASC
            """,
            (task_id,),
        )
        return {r["field_name"]: int(r["change_count"]) for r in rows}

    # -------------------------
    # Maintenance
    # -------------------------
    def delete_older_than(self, instant: str) -> int:
        with self._db.transaction() as con:
            removed = con.execute("DELETE FROM task_history WHERE changed_at < ?", (instant,)).rowcount
        log.info("Removed %d history row(s) older than %s", removed, instant)
        return removed

    def delete_by_task_id(self, task_id: str) -> int:
        """Drop a task's whole timeline; the task row itself is left alone."""
        with self._db.transaction() as con:
            removed = con.execute("DELETE FROM task_history WHERE task_id = ?", (task_id,)).rowcount
        log.info("Removed %d history row(s) of task %s", removed, task_id)
        return removed

    def delete(self, row_id: str) -> bool:
        raise AppendOnlyError(
            f"history row {row_id} cannot be removed on its own; use delete_by_task_id() or delete_older_than()"
        )
