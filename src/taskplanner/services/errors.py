# Rev 0.1.0
"""Errors that signal bugs rather than expected outcomes."""
from __future__ import annotations


class InvariantViolation(AssertionError):
    """Raised when the audit engine would record something the change-set does not justify."""


class AppendOnlyError(Exception):
    """Raised when a caller tries to remove or rewrite a single audit record."""
