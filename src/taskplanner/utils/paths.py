# Rev 0.1.0

"""Paths and XDG helpers (Rev 0.1.0)
- Follows the XDG Base Directory layout
- Data and config live under XDG dirs (logs: see logging_setup)
- Default DB lives under the XDG data dir as taskplanner.db
- SQL migrations ship inside the package (taskplanner/migrations)
"""
from __future__ import annotations
import os
from pathlib import Path


APP_NAME = "taskplanner"


XDG_DATA_HOME = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
XDG_CONFIG_HOME = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


DATA_DIR = XDG_DATA_HOME / APP_NAME
CONFIG_DIR = XDG_CONFIG_HOME / APP_NAME


# Package-relative locations
PACKAGE_ROOT = Path(__file__).resolve().parents[1]
MIGRATIONS_DIR = (PACKAGE_ROOT / "migrations").resolve()


DB_PATH = DATA_DIR / "taskplanner.db"


def config_dir() -> Path:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR
