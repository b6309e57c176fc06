# Rev 0.1.0
"""Clock and identity collaborators injected into the repositories."""
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], str]
IdFactory = Callable[[], str]


def utc_now_iso() -> str:
    """UTC instant as ISO-8601 with milliseconds and a Z suffix (sorts lexically)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_id() -> str:
    return str(uuid.uuid4())
