# Rev 0.1.0

# taskplanner – logging setup (Rev 0.1.0)
from __future__ import annotations
import logging, os, sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

APP_NAME = "taskplanner"
_HANDLER_TAG = "_taskplanner_handler"


def _state_dir(app: str = APP_NAME) -> Path:
    base = os.environ.get("XDG_STATE_HOME", os.path.expanduser("~/.local/state"))
    d = Path(base) / app / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{APP_NAME}.{name}")


def setup_logging(app_name: str = APP_NAME, level_name: Optional[str] = None) -> Path:
    # Level via env (DEBUG/INFO/WARNING/ERROR), default INFO
    level_name = (os.environ.get("TASKPLANNER_LOG_LEVEL") or level_name or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    log_dir = _state_dir(app_name)
    logfile = log_dir / f"{app_name}.log"

    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    root = logging.getLogger()
    root.setLevel(level)

    # Already installed: only the level may change
    ours = [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]
    if ours:
        for h in ours:
            h.setLevel(level)
        return next(Path(h.baseFilename) for h in ours if isinstance(h, RotatingFileHandler))

    # File: rotate at 5MB, keep 7 backups
    fh = RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=7, encoding="utf-8")
    fh.setFormatter(logging.Formatter(fmt, datefmt))
    fh.setLevel(level)

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(logging.Formatter(fmt, datefmt))
    ch.setLevel(level)

    for h in (fh, ch):
        setattr(h, _HANDLER_TAG, True)
        root.addHandler(h)

    # Uncaught exceptions → log as ERROR
    def _excepthook(exctype, value, tb):
        logging.getLogger("unhandled").exception("Uncaught exception", exc_info=(exctype, value, tb))
        sys.__excepthook__(exctype, value, tb)
    sys.excepthook = _excepthook

    get_logger("logging").info("Logging initialized at %s; file: %s", level_name, logfile)
    return logfile
