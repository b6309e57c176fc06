# Rev 0.1.0

"""Change-audit engine (Rev 0.1.0)

Turns a task pre-image plus a partial change-set into field-level diffs and
appends them to task_history inside the caller's transaction.

- Only fields present in the change-set are compared, by value.
- Tracked fields are declared once in TRACKED_FIELDS; each carries its own
  normalizer so a newly tracked column is a one-line declaration.
- `completed` is recorded under its own name with boolean old/new values;
  the completed_at column it drives is never diffed on its own.
- Values are stored as canonical JSON text. SQL NULL means "no value", so
  None and the string "null" ('"null"') stay distinguishable.
"""
from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from taskplanner.models.entities import Priority, Task, TaskHistory
from taskplanner.models.mapper import to_db_value
from taskplanner.services.errors import InvariantViolation
from taskplanner.utils.clock import IdFactory, new_id
from taskplanner.utils.logging_setup import get_logger

log = get_logger("audit")

COMPLETED = "completed"
COMPLETED_AT = "completed_at"
DELETED_AT = "deleted_at"


# -------------------------
# Value codec
# -------------------------
def encode_value(value: Any) -> Optional[str]:
    """Canonical text for a history column; None stays SQL NULL."""
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def decode_value(text: Optional[str]) -> Any:
    if text is None:
        return None
    return json.loads(text)


# -------------------------
# Normalizers
# -------------------------
def _as_is(value: Any) -> Any:
    return value


def _optional_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    raise ValueError(f"expected text or None, got {type(value).__name__}")


def _required_text(value: Any) -> str:
    if isinstance(value, str) and value:
        return value
    raise ValueError("expected non-empty text")


def _optional_minutes(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise ValueError(f"expected whole minutes, got {value!r}")
    return int(value)


def _priority(value: Any) -> Priority:
    return value if isinstance(value, Priority) else Priority(value)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    raise ValueError(f"expected a boolean, got {value!r}")


@dataclass(frozen=True)
class TrackedField:
    name: str
    normalize: Callable[[Any], Any] = _as_is


TRACKED_FIELDS: Tuple[TrackedField, ...] = (
    TrackedField("name", _required_text),
    TrackedField("description", _optional_text),
    TrackedField("list_id", _required_text),
    TrackedField("date", _optional_text),
    TrackedField("deadline", _optional_text),
    TrackedField("estimate_minutes", _optional_minutes),
    TrackedField("actual_minutes", _optional_minutes),
    TrackedField("priority", _priority),
    TrackedField("recurring_rule", _optional_text),
    TrackedField(COMPLETED, _flag),
    TrackedField(DELETED_AT, _optional_text),
)

# deleted_at is only written by soft_delete()/restore()
UPDATABLE_FIELDS = frozenset(f.name for f in TRACKED_FIELDS) - {DELETED_AT}


@dataclass(frozen=True)
class FieldChange:
    field_name: str
    old: Any
    new: Any

    @property
    def old_value(self) -> Optional[str]:
        return encode_value(self.old)

    @property
    def new_value(self) -> Optional[str]:
        return encode_value(self.new)


class ChangeAuditor:
    def __init__(
        self,
        fields: Iterable[TrackedField] = TRACKED_FIELDS,
        *,
        id_factory: IdFactory = new_id,
    ) -> None:
        self._fields: Dict[str, TrackedField] = {f.name: f for f in fields}
        self._id_factory = id_factory

    @property
    def tracked(self) -> frozenset:
        return frozenset(self._fields)

    def normalize(self, changes: Mapping[str, Any], *, allowed: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Validate keys against the tracked set and coerce values to entity types."""
        allowed_set = frozenset(allowed) if allowed is not None else self.tracked
        unknown = sorted(set(changes) - allowed_set)
        if unknown:
            raise ValueError(f"fields not accepted in a task change-set: {', '.join(unknown)}")
        return {name: self._fields[name].normalize(value) for name, value in changes.items()}

    def diff(self, before: Task, changes: Mapping[str, Any]) -> List[FieldChange]:
        diffs = [
            FieldChange(name, getattr(before, name), new)
            for name, new in changes.items()
            if getattr(before, name) != new
        ]
        self.verify(diffs, changes)
        return diffs

    def verify(self, diffs: Iterable[FieldChange], changes: Mapping[str, Any]) -> None:
        for d in diffs:
            if d.field_name not in changes:
                raise InvariantViolation(f"diff for {d.field_name!r} which is not in the change-set")
            if d.field_name not in self._fields:
                raise InvariantViolation(f"diff for untracked field {d.field_name!r}")
            if d.old == d.new:
                raise InvariantViolation(f"diff for {d.field_name!r} without a value change")

    def assignments(self, diffs: Iterable[FieldChange], now: str) -> Dict[str, Any]:
        """Column -> parameter for the row UPDATE, including the completed_at the completion flag drives."""
        cols: Dict[str, Any] = {}
        for d in diffs:
            cols[d.field_name] = to_db_value(d.new)
            if d.field_name == COMPLETED:
                cols[COMPLETED_AT] = now if d.new else None
        if COMPLETED_AT in cols and (cols[COMPLETED] == 1) != (cols[COMPLETED_AT] is not None):
            raise InvariantViolation("completed/completed_at pair out of step")
        return cols

    def write(
        self,
        con: sqlite3.Connection,
        task_id: str,
        diffs: Iterable[FieldChange],
        changed_at: str,
    ) -> List[TaskHistory]:
        """Append one history row per diff. Must run inside the transaction that updated the row."""
        entries = [
            TaskHistory(
                id=self._id_factory(),
                task_id=task_id,
                field_name=d.field_name,
                old_value=d.old_value,
                new_value=d.new_value,
                changed_at=changed_at,
            )
            for d in diffs
        ]
        if not con.in_transaction:
            raise InvariantViolation("history written outside a transaction")
        con.executemany(
            """
            INSERT INTO task_history(id, task_id, field_name, old_value, new_value, changed_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [(e.id, e.task_id, e.field_name, e.old_value, e.new_value, e.changed_at) for e in entries],
        )
        log.debug("task %s: %d history row(s) %s", task_id, len(entries), [e.field_name for e in entries])
        return entries
