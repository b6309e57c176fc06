# File: src/taskplanner/tools/migrate.py
# Usage examples:
#   python -m taskplanner.tools.migrate up
#   python -m taskplanner.tools.migrate status
#   python -m taskplanner.tools.migrate rebuild
#   python -m taskplanner.tools.migrate up --db /path/to/taskplanner.db
#
# Notes:
# - DB path defaults to env TASKPLANNER_DB or the settings file
# - Applies taskplanner/migrations/*.sql in lexicographic order
# - Records applied migrations (name + sha256) in schema_migrations

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from taskplanner.models.types import Table
from taskplanner.repositories.db import Database
from taskplanner.repositories.sqlite_list_repository import SQLiteListRepository
from taskplanner.utils.config import database_path, load_settings
from taskplanner.utils.logging_setup import setup_logging
from taskplanner.utils.paths import MIGRATIONS_DIR

REQUIRED_INDEXES = [
    "idx_tasks_list_id",
    "idx_tasks_date",
    "idx_tasks_deadline",
    "idx_task_history_task_id",
    "idx_task_labels_label_id",
]


def list_migration_files(migrations_dir: Path) -> list[Path]:
    return sorted(Path(migrations_dir).glob("*.sql"))


def cmd_status(db_path: Path, migrations_dir: Path) -> int:
    with Database(db_path) as db:
        applied = db.applied()
        print(f"DB: {db_path}")
        print(f"Migrations dir: {migrations_dir}")
        print(f"Applied count: {len(applied)}")
        for name in sorted(applied):
            print(f"  ✔ {name}")
        pending = [p.name for p in list_migration_files(migrations_dir) if p.name not in applied]
        print(f"Pending count: {len(pending)}")
        for name in pending:
            print(f"  ⧗ {name}")
    return 0


def cmd_up(db_path: Path, migrations_dir: Path, strict: bool) -> int:
    with Database(db_path) as db:
        applied = db.run_migrations(migrations_dir, strict=strict)
        SQLiteListRepository(db).ensure_default()
    if applied:
        print("✓ Applied: " + ", ".join(applied))
    else:
        print("✓ No changes. Database already up to date.")
    return 0


def cmd_rebuild(db_path: Path, migrations_dir: Path) -> int:
    if db_path.exists():
        print(f"⟲ Rebuilding: removing existing DB {db_path}")
        db_path.unlink()
        for suffix in ("-wal", "-shm"):
            side = db_path.with_name(db_path.name + suffix)
            if side.exists():
                side.unlink()
    return cmd_up(db_path, migrations_dir, strict=True)


def cmd_verify(db_path: Path) -> int:
    with Database(db_path) as db:
        names = {
            r["name"]
            for r in db.fetch_all("SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'")
        }
        missing = [t.value for t in Table if t.value not in names]
        if missing:
            print("❌ Missing tables:", ", ".join(missing))
            return 2

        indexes = {r["name"] for r in db.fetch_all("SELECT name FROM sqlite_master WHERE type='index'")}
        idx_missing = [i for i in REQUIRED_INDEXES if i not in indexes]
        if idx_missing:
            print("❌ Missing indexes:", ", ".join(idx_missing))
            return 3

        mode = db.fetch_one("PRAGMA journal_mode;")[0]
        if str(mode).lower() != "wal":
            print(f"❌ journal_mode is not WAL (got {mode})")
            return 4

    print("✓ Verification passed.")
    return 0


def parse_args(argv: list[str], settings: dict) -> argparse.Namespace:
    default_db = database_path(settings)
    p = argparse.ArgumentParser(prog="taskplanner-migrate", description="SQLite migration runner for taskplanner")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--db", type=Path, default=default_db, help=f"Path to SQLite DB (default: {default_db})")
        sp.add_argument("--migrations-dir", type=Path, default=MIGRATIONS_DIR, help="Migrations directory")

    s_up = sub.add_parser("up", help="Run pending migrations and seed the Inbox list")
    add_common(s_up)
    s_up.add_argument("--strict", action="store_true", help="Fail if an applied migration was edited")

    add_common(sub.add_parser("rebuild", help="Drop and recreate DB from migrations"))
    add_common(sub.add_parser("status", help="Show applied and pending migrations"))

    s_verify = sub.add_parser("verify", help="Lightweight structural verification")
    s_verify.add_argument("--db", type=Path, default=default_db, help=f"Path to SQLite DB (default: {default_db})")

    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    settings = load_settings()
    ns = parse_args(sys.argv[1:] if argv is None else argv, settings)
    setup_logging(level_name=settings["logging"]["level"])
    if ns.cmd == "status":
        return cmd_status(ns.db, ns.migrations_dir)
    if ns.cmd == "up":
        return cmd_up(ns.db, ns.migrations_dir, ns.strict)
    if ns.cmd == "rebuild":
        return cmd_rebuild(ns.db, ns.migrations_dir)
    if ns.cmd == "verify":
        return cmd_verify(ns.db)
    raise SystemExit(1)


if __name__ == "__main__":
    raise SystemExit(main())
