# tests/test_app_context.py
from __future__ import annotations

from pathlib import Path

import pytest

from taskplanner.app_context import AppContext
from taskplanner.models.entities import NewTask
from taskplanner.tools import migrate
from taskplanner.utils.config import load_settings


@pytest.fixture()
def settings(tmp_path: Path):
    return load_settings(tmp_path / "settings.json")


def test_create_wires_repositories_and_seeds_inbox(tmp_path: Path, settings):
    with AppContext.create(tmp_path / "app.db", settings=settings) as ctx:
        inbox = ctx.lists.find_default()
        assert inbox is not None and inbox.name == "Inbox"
        res = ctx.tasks.create(NewTask(list_id=inbox.id, name="First"))
        assert res.ok
        ctx.tasks.update(res.value.id, {"name": "First!"})
        assert ctx.history.count_by_task_id(res.value.id) == 1

    # reopening keeps a single default list
    with AppContext.create(tmp_path / "app.db", settings=settings) as ctx:
        assert len([l for l in ctx.lists.find_all_with_task_counts() if l.is_default]) == 1
        counts = ctx.lists.find_all_with_task_counts()[0]
        assert (counts.task_count, counts.completed_count) == (1, 0)


def test_migrate_cli_up_status_verify(tmp_path: Path, monkeypatch, capsys):
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    db_path = tmp_path / "cli.db"

    assert migrate.main(["up", "--db", str(db_path)]) == 0
    assert "Applied" in capsys.readouterr().out

    assert migrate.main(["status", "--db", str(db_path)]) == 0
    assert "Pending count: 0" in capsys.readouterr().out

    assert migrate.main(["verify", "--db", str(db_path)]) == 0
    assert migrate.main(["up", "--db", str(db_path)]) == 0
    assert "already up to date" in capsys.readouterr().out


def test_migrate_cli_rebuild(tmp_path: Path, monkeypatch, capsys):
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    db_path = tmp_path / "cli.db"
    assert migrate.main(["up", "--db", str(db_path)]) == 0
    assert migrate.main(["rebuild", "--db", str(db_path)]) == 0
    assert "Rebuilding" in capsys.readouterr().out
