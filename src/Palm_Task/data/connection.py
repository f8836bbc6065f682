"""
Palm_Task.data.connection

Opens the offline store. One short-lived connection per repository call;
a reader that overlaps a sync's write transaction waits on the lock
instead of failing with "database is locked".
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from Palm_Task.utils.app_paths import default_db_dir

DB_FILENAME = "Palm_Task.db"

# seconds a connection waits for another writer's lock
BUSY_TIMEOUT_SECONDS = 30.0


def get_db_path(base_dir: Optional[Path] = None) -> Path:
    """
    <base_dir>/Palm_Task.db, creating base_dir if needed.
    Without base_dir the per-user data directory is used (see app_paths).
    """
    db_dir = Path(base_dir) if base_dir is not None else default_db_dir()
    db_dir.mkdir(parents=True, exist_ok=True)
    return db_dir / DB_FILENAME


def get_connection(base_dir: Optional[Path] = None) -> sqlite3.Connection:
    conn = sqlite3.connect(get_db_path(base_dir), timeout=BUSY_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    return conn
