# tests/test_logging_setup.py
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from taskplanner.utils.logging_setup import get_logger, setup_logging


@pytest.fixture()
def clean_root(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.delenv("TASKPLANNER_LOG_LEVEL", raising=False)
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = [h for h in saved_handlers if not getattr(h, "_taskplanner_handler", False)]
    yield root
    for h in root.handlers:
        if h not in saved_handlers:
            h.close()
    root.handlers, root.level = saved_handlers, saved_level


def test_repeated_setup_does_not_stack_handlers(clean_root, tmp_path: Path):
    before = len(clean_root.handlers)
    first = setup_logging(level_name="INFO")
    assert len(clean_root.handlers) == before + 2
    assert first == tmp_path / "state" / "taskplanner" / "logs" / "taskplanner.log"

    second = setup_logging(level_name="DEBUG")
    assert second == first
    assert len(clean_root.handlers) == before + 2
    ours = [h for h in clean_root.handlers if getattr(h, "_taskplanner_handler", False)]
    assert {h.level for h in ours} == {logging.DEBUG}
    assert sum(isinstance(h, RotatingFileHandler) for h in ours) == 1


def test_records_reach_the_log_file(clean_root):
    logfile = setup_logging(level_name="INFO")
    get_logger("tests").info("hello from tests")
    for h in clean_root.handlers:
        h.flush()
    assert "taskplanner.tests | hello from tests" in logfile.read_text(encoding="utf-8")
