# Rev 0.1.0
from __future__ import annotations

import sqlite3
from typing import Any, ClassVar, FrozenSet, List, Optional, Sequence

from taskplanner.models.types import Table
from taskplanner.repositories.db import Database
from taskplanner.utils.clock import Clock, IdFactory, new_id, utc_now_iso


class SQLiteRepository:
    """
    Plumbing shared by the table repositories.

    Subclasses pin `table` to a member of Table and list the columns that may
    appear in generic lookups; identifiers in SQL text come only from those two.
    """

    table: ClassVar[Table]
    columns: ClassVar[FrozenSet[str]] = frozenset({"id"})
    id_column: ClassVar[str] = "id"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table = cls.__dict__.get("table")
        if table is not None and not isinstance(table, Table):
            raise TypeError(f"{cls.__name__}.table must be a Table member, got {table!r}")

    def __init__(self, db: Database, *, clock: Clock = utc_now_iso, id_factory: IdFactory = new_id):
        self._db = db
        self._clock = clock
        self._id_factory = id_factory

    # -------------------------
    # Helpers
    # -------------------------
    def _timestamp(self) -> str:
        return self._clock()

    def _generate_id(self) -> str:
        return self._id_factory()

    def _column(self, column: str) -> str:
        if column not in self.columns:
            raise ValueError(f"{self.table.value}: unknown column {column!r}")
        return column

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        return self._db.fetch_one(sql, params)

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        return self._db.fetch_all(sql, params)

    @staticmethod
    def _is_foreign_key_error(exc: sqlite3.IntegrityError) -> bool:
        return "FOREIGN KEY" in str(exc).upper()

    # -------------------------
    # Generic queries
    # -------------------------
    def _row_by_id(self, row_id: str) -> Optional[sqlite3.Row]:
        return self._fetch_one(
            f"SELECT * FROM {self.table.value} WHERE {self.id_column} = ?",
            (row_id,),
        )

    def _rows_by(self, column: str, value: Any) -> List[sqlite3.Row]:
        return self._fetch_all(
            f"SELECT * FROM {self.table.value} WHERE {self._column(column)} = ?",
            (value,),
        )

    def exists(self, row_id: str) -> bool:
        row = self._fetch_one(
            f"SELECT 1 FROM {self.table.value} WHERE {self.id_column} = ? LIMIT 1",
            (row_id,),
        )
        return row is not None

    def count(self) -> int:
        row = self._fetch_one(f"SELECT COUNT(*) AS c FROM {self.table.value}")
        return int(row["c"]) if row else 0

    def count_by(self, column: str, value: Any) -> int:
        row = self._fetch_one(
            f"SELECT COUNT(*) AS c FROM {self.table.value} WHERE {self._column(column)} = ?",
            (value,),
        )
        return int(row["c"]) if row else 0

    def delete(self, row_id: str) -> bool:
        with self._db.transaction() as con:
            cur = con.execute(
                f"DELETE FROM {self.table.value} WHERE {self.id_column} = ?",
                (row_id,),
            )
            return cur.rowcount > 0
