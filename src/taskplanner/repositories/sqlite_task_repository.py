# Rev 0.1.0
from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Mapping, Optional

from taskplanner.models.entities import NewTask, Page, Priority, Task, TaskWithRelations
from taskplanner.models.mapper import (
    TASK_COLUMNS,
    label_from_row,
    list_from_row,
    subtask_from_row,
    task_from_row,
    task_to_row,
)
from taskplanner.models.results import Outcome
from taskplanner.models.types import Table
from taskplanner.repositories.base import SQLiteRepository
from taskplanner.repositories.db import Database
from taskplanner.repositories.task_filters import TaskFilters, TaskOrder, TaskQuery, compose
from taskplanner.services.change_audit import DELETED_AT, UPDATABLE_FIELDS, ChangeAuditor
from taskplanner.utils.clock import Clock, IdFactory, new_id, utc_now_iso
from taskplanner.utils.logging_setup import get_logger

log = get_logger("tasks")


class SQLiteTaskRepository(SQLiteRepository):
    """
    Task CRUD + filtered listing + audited updates.

    Every mutation of an existing task goes through _apply(), which loads the
    pre-image, diffs it against the change-set, updates the row and appends
    the task_history rows in one transaction. create() writes no history and
    delete() is a hard delete that cascades to dependent rows.
    """

    table = Table.TASKS
    columns = frozenset(TASK_COLUMNS)

    def __init__(
        self,
        db: Database,
        *,
        clock: Clock = utc_now_iso,
        id_factory: IdFactory = new_id,
        auditor: Optional[ChangeAuditor] = None,
    ):
        super().__init__(db, clock=clock, id_factory=id_factory)
        self._audit = auditor or ChangeAuditor(id_factory=id_factory)

    # -------------------------
    # CRUD
    # -------------------------
    def create(self, data: NewTask) -> Outcome[Task]:
        ts = self._timestamp()
        task = Task(
            id=self._generate_id(),
            list_id=data.list_id,
            name=data.name,
            description=data.description,
            date=data.date,
            deadline=data.deadline,
            estimate_minutes=data.estimate_minutes,
            actual_minutes=data.actual_minutes,
            priority=Priority(data.priority),
            recurring_rule=data.recurring_rule,
            created_at=ts,
            updated_at=ts,
        )
        row = task_to_row(task)
        try:
            self._db.execute(
                f"INSERT INTO tasks({', '.join(row)}) VALUES ({', '.join(['?'] * len(row))})",
                tuple(row.values()),
            )
        except sqlite3.IntegrityError as exc:
            if not self._is_foreign_key_error(exc):
                log.exception("create of task in list %s failed", data.list_id)
                raise
            log.warning("create rejected: list %s does not exist", data.list_id)
            return Outcome.invalid_reference(f"list {data.list_id} does not exist")

        log.info("Created task %s in list %s", task.id, task.list_id)
        return Outcome.success(self._load(task.id, include_deleted=True))

    def update(self, task_id: str, changes: Mapping[str, Any]) -> Outcome[Task]:
        """
        Apply a partial change-set. Keys must be updatable Task fields; values
        are compared with the stored ones and only real differences are recorded.
        """
        normalized = self._audit.normalize(changes, allowed=UPDATABLE_FIELDS)
        return self._apply(task_id, normalized)

    def delete(self, task_id: str) -> bool:
        removed = super().delete(task_id)
        if removed:
            log.info("Deleted task %s (cascade)", task_id)
        return removed

    def mark_complete(self, task_id: str) -> Outcome[Task]:
        return self.update(task_id, {"completed": True})

    def mark_incomplete(self, task_id: str) -> Outcome[Task]:
        return self.update(task_id, {"completed": False})

    def move_to_list(self, task_id: str, list_id: str) -> Outcome[Task]:
        return self.update(task_id, {"list_id": list_id})

    # -------------------------
    # Soft delete
    # -------------------------
    def soft_delete(self, task_id: str) -> Outcome[Task]:
        return self._apply(task_id, {DELETED_AT: self._timestamp()})

    def restore(self, task_id: str) -> Outcome[Task]:
        return self._apply(task_id, {DELETED_AT: None}, include_deleted=True)

    def find_deleted(self, list_id: Optional[str] = None) -> List[Task]:
        return self._run(
            compose(TaskFilters(list_id=list_id, deleted_only=True), now=self._timestamp(), order=TaskOrder.DELETED_RECENT)
        )

    def purge_deleted(self, older_than: Optional[str] = None) -> int:
        """Hard-delete soft-deleted tasks, optionally only those deleted before `older_than`."""
        sql, params = "DELETE FROM tasks WHERE deleted_at IS NOT NULL", ()
        if older_than is not None:
            sql, params = sql + " AND deleted_at < ?", (older_than,)
        with self._db.transaction() as con:
            removed = con.execute(sql, params).rowcount
        log.info("Purged %d soft-deleted task(s)", removed)
        return removed

    # -------------------------
    # Reads
    # -------------------------
    def find_by_id(self, task_id: str, *, include_deleted: bool = False) -> Optional[Task]:
        return self._load(task_id, include_deleted=include_deleted)

    def find_with_filters(self, filters: Optional[TaskFilters] = None) -> List[Task]:
        return self._run(compose(filters or TaskFilters(), now=self._timestamp()))

    def find_with_filters_paginated(self, filters: Optional[TaskFilters], page: int = 1, limit: int = 50) -> Page:
        page, limit = max(1, page), max(1, limit)
        query = compose(filters or TaskFilters(), now=self._timestamp())
        count_sql, count_params = query.count()
        sql, params = query.select_page(limit, (page - 1) * limit)
        # total and items from one snapshot
        with self._db.transaction():
            row = self._fetch_one(count_sql, count_params)
            total = int(row["c"]) if row else 0
            items = [task_from_row(r) for r in self._fetch_all(sql, params)]
        return Page(items=items, page=page, limit=limit, total=total)

    def find_overdue(self) -> List[Task]:
        return self._run(compose(TaskFilters(overdue=True), now=self._timestamp(), order=TaskOrder.DEADLINE))

    def find_by_list(self, list_id: str) -> List[Task]:
        return self.find_with_filters(TaskFilters(list_id=list_id))

    def find_by_date(self, day: str) -> List[Task]:
        """Tasks scheduled on the calendar day of `day` (YYYY-MM-DD or a full timestamp)."""
        day = day[:10]
        return self.find_with_filters(TaskFilters(date_from=day, date_to=day))

    def count_by_list(self, list_id: str) -> int:
        return self._count(TaskFilters(list_id=list_id))

    def completed_count_by_list(self, list_id: str) -> int:
        return self._count(TaskFilters(list_id=list_id, completed=True))

    def find_with_relations(self, task_id: str) -> Optional[TaskWithRelations]:
        task = self._load(task_id)
        if task is None:
            return None
        list_row = self._fetch_one("SELECT * FROM lists WHERE id = ?", (task.list_id,))
        subtasks = self._fetch_all('SELECT * FROM subtasks WHERE task_id = ? ORDER BY "order" ASC', (task_id,))
        labels = self._fetch_all(
            """
            SELECT l.* FROM labels l
            JOIN task_labels tl ON tl.label_id = l.id
            WHERE tl.task_id = ?
            ORDER BY l.name
            """,
            (task_id,),
        )
        reminders = self._fetch_all("SELECT * FROM reminders WHERE task_id = ? ORDER BY remind_at ASC", (task_id,))
        attachments = self._fetch_all("SELECT * FROM attachments WHERE task_id = ? ORDER BY created_at DESC", (task_id,))
        return TaskWithRelations(
            **vars(task),
            task_list=list_from_row(list_row) if list_row else None,
            subtasks=[subtask_from_row(r) for r in subtasks],
            labels=[label_from_row(r) for r in labels],
            reminders=[{**dict(r), "sent": bool(r["sent"])} for r in reminders],
            attachments=[dict(r) for r in attachments],
        )

    # -------------------------
    # Internals
    # -------------------------
    def _load(self, task_id: str, *, include_deleted: bool = False) -> Optional[Task]:
        sql = "SELECT * FROM tasks WHERE id = ?"
        if not include_deleted:
            sql += " AND deleted_at IS NULL"
        row = self._fetch_one(sql, (task_id,))
        return task_from_row(row) if row else None

    def _run(self, query: TaskQuery) -> List[Task]:
        sql, params = query.select()
        log.debug("task query: %s %s", sql, params)
        return [task_from_row(r) for r in self._fetch_all(sql, params)]

    def _count(self, filters: TaskFilters) -> int:
        sql, params = compose(filters, now=self._timestamp()).count()
        row = self._fetch_one(sql, params)
        return int(row["c"]) if row else 0

    def _apply(self, task_id: str, changes: Dict[str, Any], *, include_deleted: bool = False) -> Outcome[Task]:
        """Diff, row UPDATE and history INSERTs as one transaction."""
        if not changes:
            current = self._load(task_id, include_deleted=include_deleted)
            return Outcome.success(current) if current else Outcome.not_found(f"task {task_id}")

        try:
            with self._db.transaction() as con:
                before = self._load(task_id, include_deleted=include_deleted)
                if before is None:
                    return Outcome.not_found(f"task {task_id}")

                now = self._timestamp()
                diffs = self._audit.diff(before, changes)
                cols = self._audit.assignments(diffs, now)
                cols["updated_at"] = now
                sets = ", ".join(f"{self._column(col)} = ?" for col in cols)
                con.execute(f"UPDATE tasks SET {sets} WHERE id = ?", (*cols.values(), task_id))
                self._audit.write(con, task_id, diffs, now)
                after = self._load(task_id, include_deleted=True)
        except sqlite3.IntegrityError as exc:
            if not self._is_foreign_key_error(exc):
                log.exception("update of task %s failed", task_id)
                raise
            log.warning("update of task %s rejected: %s", task_id, exc)
            return Outcome.invalid_reference(f"change-set for task {task_id} references a missing row")

        log.info("Updated task %s (%d field change(s))", task_id, len(diffs))
        return Outcome.success(after)
