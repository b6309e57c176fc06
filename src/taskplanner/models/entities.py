# Rev 0.1.0
"""Lightweight entities aligned with schema 0001 (text ids, ISO-8601 UTC timestamps)"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


@dataclass
class TaskList:
    id: str
    name: str
    color: str = "#6366f1"
    emoji: Optional[str] = None
    is_default: bool = False
    created_at: str = ""
    updated_at: str = ""


@dataclass
class ListWithTaskCount(TaskList):
    task_count: int = 0
    completed_count: int = 0


@dataclass
class Label:
    id: str
    name: str
    color: str = "#8b5cf6"
    icon: Optional[str] = None
    created_at: str = ""


@dataclass
class Subtask:
    id: str
    task_id: str
    name: str
    completed: bool = False
    order: int = 0
    created_at: str = ""


@dataclass
class NewTask:
    """Caller-supplied fields for create(); id, completion and timestamps are assigned by the repository."""
    list_id: str
    name: str
    description: Optional[str] = None
    date: Optional[str] = None
    deadline: Optional[str] = None
    estimate_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    priority: Priority = Priority.NONE
    recurring_rule: Optional[str] = None


@dataclass
class Task:
    id: str
    list_id: str
    name: str
    description: Optional[str] = None
    date: Optional[str] = None
    deadline: Optional[str] = None
    estimate_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    priority: Priority = Priority.NONE
    recurring_rule: Optional[str] = None
    completed: bool = False
    completed_at: Optional[str] = None
    deleted_at: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass
class TaskHistory:
    """One field-level change. old_value/new_value hold the canonical JSON text (or None)."""
    id: str
    task_id: str
    field_name: str
    old_value: Optional[str]
    new_value: Optional[str]
    changed_at: str


@dataclass
class TaskWithRelations(Task):
    task_list: Optional[TaskList] = None
    subtasks: List[Subtask] = field(default_factory=list)
    labels: List[Label] = field(default_factory=list)
    reminders: List[Dict[str, Any]] = field(default_factory=list)
    attachments: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class Page:
    items: List[Task]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1
