# Rev 0.1.0
# taskplanner – SQLiteListRepository (Rev 0.1.0)
from __future__ import annotations
from typing import List, Optional

from taskplanner.models.entities import ListWithTaskCount, TaskList
from taskplanner.models.mapper import list_from_row, list_with_counts_from_row
from taskplanner.models.types import Table
from taskplanner.repositories.base import SQLiteRepository
from taskplanner.utils.logging_setup import get_logger

log = get_logger("lists")

DEFAULT_LIST_NAME = "Inbox"
DEFAULT_COLOR = "#6366f1"


class SQLiteListRepository(SQLiteRepository):
    """
    Lists are the foreign-key target of tasks.
    Deleting a list cascades to its tasks (and their dependents).
    """

    table = Table.LISTS
    columns = frozenset({"id", "name", "is_default"})

    # ---------- public API ----------

    def create(
        self,
        name: str,
        *,
        color: str = DEFAULT_COLOR,
        emoji: Optional[str] = None,
        is_default: bool = False,
    ) -> TaskList:
        list_id = self._generate_id()
        ts = self._timestamp()
        self._db.execute(
            """
            INSERT INTO lists(id, name, color, emoji, is_default, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (list_id, name, color, emoji, 1 if is_default else 0, ts, ts),
        )
        log.info("Created list %s (%s)", list_id, name)
        return self.find_by_id(list_id)

    def find_by_id(self, list_id: str) -> Optional[TaskList]:
        row = self._row_by_id(list_id)
        return list_from_row(row) if row else None

    def find_default(self) -> Optional[TaskList]:
        rows = self._rows_by("is_default", 1)
        return list_from_row(rows[0]) if rows else None

    def ensure_default(self) -> TaskList:
        """Create the Inbox list on first start."""
        existing = self.find_default()
        if existing is not None:
            return existing
        return self.create(DEFAULT_LIST_NAME, emoji="📥", is_default=True)

    def find_all_with_task_counts(self) -> List[ListWithTaskCount]:
        rows = self._fetch_all(
            """
            SELECT l.*,
                   COUNT(t.id) AS task_count,
                   SUM(CASE WHEN t.completed = 1 THEN 1 ELSE 0 END) AS completed_count
            FROM lists l
            LEFT JOIN tasks t ON t.list_id = l.id AND t.deleted_at IS NULL
            GROUP BY l.id
            ORDER BY l.is_default DESC, l.name ASC
            """
        )
        return [list_with_counts_from_row(r) for r in rows]

    def update(
        self,
        list_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[str] = None,
        emoji: Optional[str] = None,
    ) -> Optional[TaskList]:
        sets, params = [], []
        if name is not None:
            sets.append("name = ?")
            params.append(name)
        if color is not None:
            sets.append("color = ?")
            params.append(color)
        if emoji is not None:
            sets.append("emoji = ?")
            params.append(emoji)
        if sets:
            sets.append("updated_at = ?")
            params.append(self._timestamp())
            self._db.execute(f"UPDATE lists SET {', '.join(sets)} WHERE id = ?", (*params, list_id))
        return self.find_by_id(list_id)

    def set_as_default(self, list_id: str) -> Optional[TaskList]:
        if not self.exists(list_id):
            return None
        with self._db.transaction() as con:
            con.execute("UPDATE lists SET is_default = 0 WHERE is_default = 1")
            con.execute(
                "UPDATE lists SET is_default = 1, updated_at = ? WHERE id = ?",
                (self._timestamp(), list_id),
            )
        return self.find_by_id(list_id)

    def has_tasks(self, list_id: str) -> bool:
        row = self._fetch_one("SELECT 1 FROM tasks WHERE list_id = ? LIMIT 1", (list_id,))
        return row is not None
