# tests/test_config.py
from __future__ import annotations

import json
from pathlib import Path

from taskplanner.utils import config


def test_defaults_when_file_missing(tmp_path: Path):
    s = config.load_settings(tmp_path / "nope.json")
    assert s["database"]["busy_timeout_ms"] == 5000
    assert s["logging"] == {"level": "INFO"}


def test_file_values_merge_over_defaults(tmp_path: Path):
    p = tmp_path / "settings.json"
    p.write_text(json.dumps({"database": {"busy_timeout_ms": 100}, "extra": True}), encoding="utf-8")
    s = config.load_settings(p)
    assert s["database"]["busy_timeout_ms"] == 100
    assert s["database"]["path"]
    assert s["extra"] is True


def test_unreadable_file_falls_back_to_defaults(tmp_path: Path, caplog):
    p = tmp_path / "settings.json"
    p.write_text("{not json", encoding="utf-8")
    s = config.load_settings(p)
    assert s["logging"]["level"] == "INFO"
    assert "Ignoring unreadable settings file" in caplog.text


def test_save_then_load(tmp_path: Path):
    p = tmp_path / "settings.json"
    s = config.load_settings(p)
    s["logging"]["level"] = "DEBUG"
    config.save_settings(s, p)
    assert config.load_settings(p)["logging"]["level"] == "DEBUG"


def test_env_overrides_database_path(tmp_path: Path, monkeypatch):
    s = config.load_settings(tmp_path / "nope.json")
    monkeypatch.delenv("TASKPLANNER_DB", raising=False)
    assert config.database_path(s) == Path(s["database"]["path"])
    monkeypatch.setenv("TASKPLANNER_DB", str(tmp_path / "elsewhere.db"))
    assert config.database_path(s) == tmp_path / "elsewhere.db"
