"""
Palm_Task.data.repositories.sync_meta_repo

Single-row bookkeeping for the sync engine (table sync_meta, id = 1).
Only a successful sync writes here; failed attempts leave the store alone.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from Palm_Task.data.connection import get_connection
from Palm_Task.data.schema import create_tables
from Palm_Task.domain.errors import PersistenceError

logger = logging.getLogger(__name__)

SYNC_META = "sync_meta"


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def get_last_synced_at(base_dir: Optional[Path] = None) -> Optional[str]:
    """
    ISO timestamp (UTC) of the last successful sync, or None on a fresh install.
    """
    try:
        with closing(get_connection(base_dir)) as conn:
            create_tables(conn)
            row = conn.execute(
                "SELECT last_synced_at FROM sync_meta WHERE id = 1"
            ).fetchone()
    except sqlite3.Error as exc:
        raise PersistenceError(f"Could not read the sync marker: {exc}", collection=SYNC_META) from exc
    return row["last_synced_at"] if row else None


def mark_sync_success(base_dir: Optional[Path] = None, when: Optional[str] = None) -> str:
    """
    Record a successful sync and return the timestamp stored.
    Raises PersistenceError if the marker cannot be written.
    """
    ts = when or _now_utc_iso()
    try:
        with closing(get_connection(base_dir)) as conn:
            create_tables(conn)
            with conn:
                conn.execute(
                    """
                    INSERT INTO sync_meta (id, last_synced_at) VALUES (1, ?)
                    ON CONFLICT(id) DO UPDATE SET last_synced_at = excluded.last_synced_at
                    """,
                    (ts,),
                )
    except sqlite3.Error as exc:
        logger.error("Writing the sync marker failed: %s", exc)
        raise PersistenceError(f"Could not record the sync: {exc}", collection=SYNC_META) from exc
    return ts
