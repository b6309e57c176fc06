# Rev 0.1.0
from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional

from taskplanner.models.entities import Label
from taskplanner.models.mapper import label_from_row
from taskplanner.models.types import Table
from taskplanner.repositories.base import SQLiteRepository
from taskplanner.utils.logging_setup import get_logger

log = get_logger("labels")


class SQLiteLabelRepository(SQLiteRepository):
    """
    Labels plus the task_labels association that the labelId task filter reads.
    """

    table = Table.LABELS
    columns = frozenset({"id", "name"})

    # -------------------------
    # Labels
    # -------------------------
    def create(self, name: str, *, color: str = "#8b5cf6", icon: Optional[str] = None) -> Label:
        label_id = self._generate_id()
        self._db.execute(
            "INSERT INTO labels(id, name, color, icon, created_at) VALUES (?, ?, ?, ?, ?)",
            (label_id, name, color, icon, self._timestamp()),
        )
        return self.find_by_id(label_id)

    def find_by_id(self, label_id: str) -> Optional[Label]:
        row = self._row_by_id(label_id)
        return label_from_row(row) if row else None

    def find_by_name(self, name: str) -> Optional[Label]:
        rows = self._rows_by("name", name)
        return label_from_row(rows[0]) if rows else None

    def get_task_count(self, label_id: str) -> int:
        row = self._fetch_one("SELECT COUNT(*) AS c FROM task_labels WHERE label_id = ?", (label_id,))
        return int(row["c"]) if row else 0

    # -------------------------
    # Task association
    # -------------------------
    def find_by_task_id(self, task_id: str) -> List[Label]:
        rows = self._fetch_all(
            """
            SELECT l.* FROM labels l
            JOIN task_labels tl ON tl.label_id = l.id
            WHERE tl.task_id = ?
            ORDER BY l.name
            """,
            (task_id,),
        )
        return [label_from_row(r) for r in rows]

    def add_to_task(self, task_id: str, label_id: str) -> bool:
        """False when either side does not exist; re-adding an existing pair is a no-op True."""
        try:
            self._db.execute(
                "INSERT OR IGNORE INTO task_labels(task_id, label_id) VALUES (?, ?)",
                (task_id, label_id),
            )
        except sqlite3.IntegrityError as exc:
            if not self._is_foreign_key_error(exc):
                raise
            log.warning("label %s / task %s: missing reference", label_id, task_id)
            return False
        return True

    def remove_from_task(self, task_id: str, label_id: str) -> bool:
        cur = self._db.execute(
            "DELETE FROM task_labels WHERE task_id = ? AND label_id = ?",
            (task_id, label_id),
        )
        return cur.rowcount > 0

    def set_task_labels(self, task_id: str, label_ids: Iterable[str]) -> bool:
        """Replace the task's labels. False (and nothing changed) when the task or any label is missing."""
        try:
            with self._db.transaction() as con:
                con.execute("DELETE FROM task_labels WHERE task_id = ?", (task_id,))
                con.executemany(
                    "INSERT OR IGNORE INTO task_labels(task_id, label_id) VALUES (?, ?)",
                    [(task_id, label_id) for label_id in label_ids],
                )
        except sqlite3.IntegrityError as exc:
            if not self._is_foreign_key_error(exc):
                raise
            log.warning("labels of task %s left unchanged: missing reference", task_id)
            return False
        return True
