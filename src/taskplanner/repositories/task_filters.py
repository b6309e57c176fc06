# Rev 0.1.0

"""Task filter composition (Rev 0.1.0)

Criteria are optional and AND-ed together. Each supplied criterion adds one
Predicate: a fixed SQL fragment plus the values bound to its placeholders.
Criterion values never reach the SQL text.

Ordering contract for list views: scheduled date ascending with undated
tasks last, then newest created first (rowid breaks exact ties).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from taskplanner.models.entities import Priority
from taskplanner.models.types import Table

_DATE_ONLY = re.compile(r"\d{4}-\d{2}-\d{2}")
_END_OF_DAY = "T23:59:59.999Z"

LIKE_ESCAPE = "\\"

# Fixed fragments; placeholders only
LIVE = "deleted_at IS NULL"
DELETED = "deleted_at IS NOT NULL"
IN_LIST = "list_id = ?"
DATE_FROM = "date >= ?"
DATE_TO = "date <= ?"
COMPLETED = "completed = ?"
PRIORITY = "priority = ?"
OVERDUE = "deadline IS NOT NULL AND deadline < ? AND completed = 0"
# casefold() is registered on the connection by Database
SEARCH = "casefold(name) LIKE ? ESCAPE '\\' OR casefold(description) LIKE ? ESCAPE '\\'"
HAS_LABEL = "id IN (SELECT task_id FROM task_labels WHERE label_id = ?)"


class TaskOrder(Enum):
    SCHEDULE = "date IS NULL, date ASC, created_at DESC, rowid DESC"
    DEADLINE = "deadline ASC, created_at DESC, rowid DESC"
    DELETED_RECENT = "deleted_at DESC, rowid DESC"


def escape_like(term: str) -> str:
    """Make %, _ and the escape character itself match literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def inclusive_upper_bound(value: str) -> str:
    """A bare YYYY-MM-DD upper bound covers the whole day."""
    return value + _END_OF_DAY if _DATE_ONLY.fullmatch(value) else value


def _parse_bool(raw: Optional[str]) -> Optional[bool]:
    if raw is None:
        return None
    return raw.strip().lower() == "true"


@dataclass(frozen=True)
class TaskFilters:
    list_id: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    overdue: bool = False
    search: Optional[str] = None
    label_id: Optional[str] = None
    include_deleted: bool = False
    deleted_only: bool = False

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "TaskFilters":
        """Build filters from the query-string names used by the HTTP layer (listId, dateFrom, ...)."""
        priority = params.get("priority")
        return cls(
            list_id=params.get("listId") or None,
            date_from=params.get("dateFrom") or None,
            date_to=params.get("dateTo") or None,
            completed=_parse_bool(params.get("completed")),
            priority=Priority(priority) if priority in {p.value for p in Priority} else None,
            overdue=_parse_bool(params.get("overdue")) is True,
            search=params.get("search") or None,
            label_id=params.get("labelId") or None,
        )


def parse_pagination(params: Mapping[str, str], *, default_limit: int = 50, max_limit: int = 100) -> Tuple[int, int]:
    def _int(raw: Optional[str], fallback: int) -> int:
        try:
            return int(raw) if raw is not None else fallback
        except ValueError:
            return fallback

    page = max(1, _int(params.get("page"), 1))
    limit = min(max_limit, max(1, _int(params.get("limit"), default_limit)))
    return page, limit


@dataclass(frozen=True)
class Predicate:
    sql: str
    params: Tuple[Any, ...] = ()


@dataclass
class PredicateBuilder:
    predicates: List[Predicate] = field(default_factory=list)

    def add(self, sql: str, *params: Any) -> "PredicateBuilder":
        if sql.count("?") != len(params):
            raise ValueError(f"placeholder/value mismatch in {sql!r}")
        self.predicates.append(Predicate(sql, tuple(params)))
        return self

    def where(self) -> str:
        if not self.predicates:
            return ""
        return " WHERE " + " AND ".join(f"({p.sql})" for p in self.predicates)

    def params(self) -> Tuple[Any, ...]:
        return tuple(v for p in self.predicates for v in p.params)


@dataclass(frozen=True)
class TaskQuery:
    where: str
    params: Tuple[Any, ...]
    order: TaskOrder = TaskOrder.SCHEDULE

    def select(self) -> Tuple[str, Tuple[Any, ...]]:
        return (
            f"SELECT * FROM {Table.TASKS.value}{self.where} ORDER BY {self.order.value}",
            self.params,
        )

    def select_page(self, limit: int, offset: int) -> Tuple[str, Tuple[Any, ...]]:
        sql, params = self.select()
        return f"{sql} LIMIT ? OFFSET ?", (*params, limit, offset)

    def count(self) -> Tuple[str, Tuple[Any, ...]]:
        return f"SELECT COUNT(*) AS c FROM {Table.TASKS.value}{self.where}", self.params


def compose(filters: TaskFilters, *, now: str, order: TaskOrder = TaskOrder.SCHEDULE) -> TaskQuery:
    b = PredicateBuilder()

    if filters.deleted_only:
        b.add(DELETED)
    elif not filters.include_deleted:
        b.add(LIVE)

    if filters.list_id:
        b.add(IN_LIST, filters.list_id)
    if filters.date_from:
        b.add(DATE_FROM, filters.date_from)
    if filters.date_to:
        b.add(DATE_TO, inclusive_upper_bound(filters.date_to))
    if filters.completed is not None:
        b.add(COMPLETED, 1 if filters.completed else 0)
    if filters.priority is not None:
        b.add(PRIORITY, Priority(filters.priority).value)
    if filters.overdue:
        b.add(OVERDUE, now)
    if filters.search:
        pattern = f"%{escape_like(filters.search.casefold())}%"
        b.add(SEARCH, pattern, pattern)
    if filters.label_id:
        b.add(HAS_LABEL, filters.label_id)

    return TaskQuery(where=b.where(), params=b.params(), order=order)
