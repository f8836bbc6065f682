"""
Palm_Task.utils.app_paths

Where the engine keeps its files when no directory is configured.

Lookup order for the data root:
  1) PALMTASK_HOME
  2) LOCALAPPDATA / APPDATA (Windows) or XDG_DATA_HOME (Linux)
  3) ~/.local/share

The installed package directory is never written to.
"""

from __future__ import annotations

import os
from pathlib import Path

APP_DIR_NAME = "Palm_Task"


def app_data_root() -> Path:
    override = os.environ.get("PALMTASK_HOME", "").strip()
    if override:
        return Path(override).expanduser()

    base = (
        os.environ.get("LOCALAPPDATA")
        or os.environ.get("APPDATA")
        or os.environ.get("XDG_DATA_HOME")
        or str(Path.home() / ".local" / "share")
    )
    return Path(base).expanduser() / APP_DIR_NAME


def default_db_dir() -> Path:
    return app_data_root() / "db"


def default_config_file() -> Path:
    return app_data_root() / "sync_config.json"
