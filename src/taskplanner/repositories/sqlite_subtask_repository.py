# Rev 0.1.0
from __future__ import annotations
from typing import List, Optional

from taskplanner.models.entities import Subtask
from taskplanner.models.mapper import subtask_from_row
from taskplanner.models.types import Table
from taskplanner.repositories.base import SQLiteRepository


class SQLiteSubtaskRepository(SQLiteRepository):
    """
    Subtask CRUD. Rows cascade away with their task.
    """

    table = Table.SUBTASKS
    columns = frozenset({"id", "task_id"})

    # --------------- CRUD ---------------
    def create(self, *, task_id: str, name: str, order: Optional[int] = None) -> Subtask:
        sub_id = self._generate_id()
        with self._db.transaction() as con:
            if order is None:
                row = con.execute(
                    'SELECT COALESCE(MAX("order"), -1) + 1 AS next FROM subtasks WHERE task_id = ?',
                    (task_id,),
                ).fetchone()
                order = int(row["next"])
            con.execute(
                'INSERT INTO subtasks(id, task_id, name, completed, "order", created_at) VALUES (?, ?, ?, 0, ?, ?)',
                (sub_id, task_id, name, order, self._timestamp()),
            )
        return self.find_by_id(sub_id)

    def find_by_id(self, subtask_id: str) -> Optional[Subtask]:
        row = self._row_by_id(subtask_id)
        return subtask_from_row(row) if row else None

    def find_by_task_id(self, task_id: str) -> List[Subtask]:
        rows = self._fetch_all(
            'SELECT * FROM subtasks WHERE task_id = ? ORDER BY "order" ASC, created_at ASC',
            (task_id,),
        )
        return [subtask_from_row(r) for r in rows]

    def toggle_complete(self, subtask_id: str) -> Optional[Subtask]:
        self._db.execute(
            "UPDATE subtasks SET completed = 1 - completed WHERE id = ?",
            (subtask_id,),
        )
        return self.find_by_id(subtask_id)

    def count_by_task_id(self, task_id: str) -> int:
        return self.count_by("task_id", task_id)
