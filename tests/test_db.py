# tests/test_db.py
from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from taskplanner.models.types import Table
from taskplanner.repositories.db import Database, sha256_text


def test_migrations_create_every_table(db):
    names = {r["name"] for r in db.fetch_all("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {t.value for t in Table} <= names
    assert set(db.applied()) == {"0001_initial_schema.sql", "0002_indexes.sql"}


def test_migrations_are_idempotent(db):
    assert db.run_migrations() == []


def test_pragmas(db):
    assert db.fetch_one("PRAGMA foreign_keys")[0] == 1
    assert str(db.fetch_one("PRAGMA journal_mode")[0]).lower() == "wal"


def test_casefold_sql_function(db):
    assert db.fetch_one("SELECT casefold('ÉCLAIR Straße')")[0] == "éclair strasse"
    assert db.fetch_one("SELECT casefold(NULL)")[0] is None


def test_changed_migration_is_rejected_in_strict_mode(tmp_path: Path):
    mig = tmp_path / "migrations"
    mig.mkdir()
    (mig / "0001_t.sql").write_text("CREATE TABLE t (x INTEGER);", encoding="utf-8")
    with Database(tmp_path / "m.db") as db:
        assert db.run_migrations(mig) == ["0001_t.sql"]
        assert db.applied()["0001_t.sql"] == sha256_text("CREATE TABLE t (x INTEGER);")
        (mig / "0001_t.sql").write_text("CREATE TABLE t (x TEXT);", encoding="utf-8")
        assert db.run_migrations(mig) == []
        with pytest.raises(RuntimeError):
            db.run_migrations(mig, strict=True)


def test_failed_migration_is_not_recorded(tmp_path: Path):
    mig = tmp_path / "migrations"
    mig.mkdir()
    (mig / "0001_bad.sql").write_text("CREATE TABLE ok (x INTEGER);\nNOT SQL;", encoding="utf-8")
    with Database(tmp_path / "m.db") as db:
        with pytest.raises(sqlite3.Error):
            db.run_migrations(mig)
        assert db.applied() == {}
        assert db.fetch_one("SELECT name FROM sqlite_master WHERE name = 'ok'") is None


def test_transaction_rolls_back_on_error(db, inbox):
    with pytest.raises(RuntimeError):
        with db.transaction() as con:
            con.execute("UPDATE lists SET name = 'changed' WHERE id = ?", (inbox.id,))
            raise RuntimeError("boom")
    assert db.fetch_one("SELECT name FROM lists WHERE id = ?", (inbox.id,))["name"] == inbox.name
    assert not db.conn.in_transaction


def test_nested_transaction_rolls_back_inner_only(db, inbox):
    with db.transaction() as con:
        con.execute("UPDATE lists SET color = '#000000' WHERE id = ?", (inbox.id,))
        with pytest.raises(RuntimeError):
            with db.transaction() as inner:
                inner.execute("UPDATE lists SET name = 'inner' WHERE id = ?", (inbox.id,))
                raise RuntimeError("inner")
    row = db.fetch_one("SELECT name, color FROM lists WHERE id = ?", (inbox.id,))
    assert (row["name"], row["color"]) == (inbox.name, "#000000")


def test_in_memory_database():
    with Database(":memory:") as db:
        assert db.run_migrations()
        assert db.fetch_one("SELECT COUNT(*) AS c FROM tasks")["c"] == 0
