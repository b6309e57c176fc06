# src/taskplanner/utils/config.py
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional
from .logging_setup import get_logger
from .paths import DB_PATH, config_dir

_DEFAULTS: Dict[str, Any] = {
    "database": {
        "path": str(DB_PATH),
        "busy_timeout_ms": 5000,
    },
    "logging": {
        "level": "INFO",
    },
}


def settings_file() -> Path:
    return config_dir() / "settings.json"


def _merge(defaults: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
    out = {k: (dict(v) if isinstance(v, dict) else v) for k, v in defaults.items()}
    for key, value in loaded.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = {**out[key], **value}
        else:
            out[key] = value
    return out


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    path = path or settings_file()
    if path.exists():
        try:
            return _merge(_DEFAULTS, json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError):
            get_logger("config").warning("Ignoring unreadable settings file %s", path)
    return _merge(_DEFAULTS, {})


def save_settings(data: Dict[str, Any], path: Optional[Path] = None) -> None:
    path = path or settings_file()
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def database_path(settings: Dict[str, Any]) -> Path:
    """TASKPLANNER_DB wins over the settings file."""
    return Path(os.environ.get("TASKPLANNER_DB", settings["database"]["path"])).expanduser()
