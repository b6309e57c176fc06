# taskplanner application context
# Rev 0.1.0

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .repositories.db import Database
from .repositories.sqlite_label_repository import SQLiteLabelRepository
from .repositories.sqlite_list_repository import SQLiteListRepository
from .repositories.sqlite_subtask_repository import SQLiteSubtaskRepository
from .repositories.sqlite_task_history_repository import SQLiteTaskHistoryRepository
from .repositories.sqlite_task_repository import SQLiteTaskRepository
from .utils.clock import Clock, IdFactory, new_id, utc_now_iso
from .utils.config import database_path, load_settings
from .utils.logging_setup import get_logger


@dataclass
class AppContext:
    """Owns the store handle for the life of the process and the repositories built on it."""
    db_path: Path
    db: Database
    settings: Dict[str, Any]
    lists: SQLiteListRepository
    labels: SQLiteLabelRepository
    subtasks: SQLiteSubtaskRepository
    tasks: SQLiteTaskRepository
    history: SQLiteTaskHistoryRepository

    @classmethod
    def create(
        cls,
        db_path: Optional[Path | str] = None,
        *,
        settings: Optional[Dict[str, Any]] = None,
        clock: Clock = utc_now_iso,
        id_factory: IdFactory = new_id,
    ) -> "AppContext":
        """Open the DB, run migrations, seed the Inbox list and build repositories."""
        log = get_logger("AppContext")
        settings = settings or load_settings()
        path = Path(db_path) if db_path is not None else database_path(settings)
        db = Database(path, busy_timeout_ms=settings["database"]["busy_timeout_ms"])
        applied = db.run_migrations()
        if applied:
            log.info("Applied migrations: %s", ", ".join(applied))

        deps = dict(clock=clock, id_factory=id_factory)
        lists = SQLiteListRepository(db, **deps)
        lists.ensure_default()
        ctx = cls(
            db_path=path,
            db=db,
            settings=settings,
            lists=lists,
            labels=SQLiteLabelRepository(db, **deps),
            subtasks=SQLiteSubtaskRepository(db, **deps),
            tasks=SQLiteTaskRepository(db, **deps),
            history=SQLiteTaskHistoryRepository(db, **deps),
        )
        log.info("AppContext initialized with DB=%s", path)
        return ctx

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
