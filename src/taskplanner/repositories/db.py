# Rev 0.1.0

"""SQLite connection, transactions & migration runner (Rev 0.1.0)
- One connection per process, opened by the entry point and injected into repositories
- WAL mode, foreign_keys=ON, busy_timeout
- casefold() SQL function for Unicode caseless search
- All statements go through a re-entrant lock so a transaction is never interleaved
- transaction(): BEGIN IMMEDIATE ... COMMIT/ROLLBACK, nested calls become SAVEPOINTs
- Applies SQL files in taskplanner/migrations in lexical order
- Tracks applied files in schema_migrations(filename, sha256, applied_at_utc)
"""
from __future__ import annotations
import hashlib
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from taskplanner.utils.logging_setup import get_logger
from taskplanner.utils.paths import MIGRATIONS_DIR

log = get_logger("db")

MEMORY = ":memory:"


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def casefold(value: Any) -> Any:
    """SQL casefold(): Unicode caseless form of text; other values pass through."""
    return value.casefold() if isinstance(value, str) else value


class Database:
    def __init__(self, path: Path | str, *, busy_timeout_ms: int = 5000) -> None:
        self.path = str(path)
        if self.path != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._savepoint_depth = 0
        self.conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.create_function("casefold", 1, casefold, deterministic=True)
        self.conn.execute("PRAGMA foreign_keys=ON;")
        self.conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)};")
        if self.path != MEMORY:
            self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            " filename TEXT PRIMARY KEY,"
            " sha256 TEXT NOT NULL,"
            " applied_at_utc TEXT NOT NULL)"
        )
        log.info("SQLite open %s", self.path)

    def close(self) -> None:
        with self._lock:
            self.conn.close()
        log.info("SQLite closed %s", self.path)

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # -------------------------
    # Statements
    # -------------------------
    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            return self.conn.execute(sql, tuple(params))

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, tuple(params)).fetchone()

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, tuple(params)).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a unit of work atomically; any exception rolls the whole unit back and re-raises."""
        with self._lock:
            con = self.conn
            if con.in_transaction:
                self._savepoint_depth += 1
                name = f"sp_{self._savepoint_depth}"
                con.execute(f"SAVEPOINT {name}")
                try:
                    yield con
                except BaseException:
                    con.execute(f"ROLLBACK TO {name}")
                    con.execute(f"RELEASE {name}")
                    raise
                else:
                    con.execute(f"RELEASE {name}")
                finally:
                    self._savepoint_depth -= 1
                return

            con.execute("BEGIN IMMEDIATE")
            try:
                yield con
            except BaseException:
                con.execute("ROLLBACK")
                log.debug("transaction rolled back")
                raise
            else:
                con.execute("COMMIT")

    # -------------------------
    # Migrations
    # -------------------------
    def applied(self) -> dict[str, str]:
        rows = self.fetch_all("SELECT filename, sha256 FROM schema_migrations")
        return {r["filename"]: r["sha256"] for r in rows}

    def apply_sql(self, sql: str) -> None:
        # executescript commits any open transaction first, so wrap the script itself
        with self._lock:
            try:
                self.conn.executescript(f"BEGIN;\n{sql}\nCOMMIT;")
            except sqlite3.Error:
                if self.conn.in_transaction:
                    self.conn.execute("ROLLBACK")
                raise

    def run_migrations(self, migrations_dir: Path = MIGRATIONS_DIR, *, strict: bool = False) -> list[str]:
        applied = self.applied()
        applied_now: list[str] = []
        for p in sorted(Path(migrations_dir).glob("*.sql")):
            sql = p.read_text(encoding="utf-8")
            digest = sha256_text(sql)
            if p.name in applied:
                if applied[p.name] != digest:
                    msg = f"Hash changed for already applied migration {p.name}"
                    if strict:
                        raise RuntimeError(msg)
                    log.warning(msg)
                continue
            log.info("Applying migration %s", p.name)
            self.apply_sql(sql)
            self.execute(
                "INSERT INTO schema_migrations(filename, sha256, applied_at_utc) VALUES(?, ?, ?)",
                (p.name, digest, datetime.now(timezone.utc).isoformat(timespec="seconds")),
            )
            applied_now.append(p.name)
        return applied_now
