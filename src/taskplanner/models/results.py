# Rev 0.1.0
"""Value-typed outcomes returned by repository writes.

Expected conditions (missing row, dangling foreign key) are reported here
instead of being raised; store failures still propagate as sqlite3 errors.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class Reason(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_REFERENCE = "invalid_reference"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    ok: bool
    value: Optional[T] = None
    reason: Optional[Reason] = None
    detail: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def not_found(cls, detail: Optional[str] = None) -> "Outcome[T]":
        return cls(ok=False, reason=Reason.NOT_FOUND, detail=detail)

    @classmethod
    def invalid_reference(cls, detail: Optional[str] = None) -> "Outcome[T]":
        return cls(ok=False, reason=Reason.INVALID_REFERENCE, detail=detail)

    @property
    def is_not_found(self) -> bool:
        return self.reason is Reason.NOT_FOUND

    @property
    def is_invalid_reference(self) -> bool:
        return self.reason is Reason.INVALID_REFERENCE
