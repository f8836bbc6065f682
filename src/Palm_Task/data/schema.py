"""
Palm_Task.data.schema

SQLite schema for the offline store: one table per feed collection plus
sync_meta.

SCHEMA_VERSION is kept in PRAGMA user_version. Bump it whenever a
collection's key or columns change; opening an older database then creates
whatever tables are missing and leaves existing ones alone.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# 5: consultants collection
SCHEMA_VERSION = 5

COLLECTION_TASKS = "tasks"
COLLECTION_NON_BUYERS = "non_buyers"
COLLECTION_SKU_MAP = "sku_map"
COLLECTION_PRODUCT_IMAGES = "product_images"
COLLECTION_CONSULTANTS = "consultants"

COLLECTIONS = (
    COLLECTION_TASKS,
    COLLECTION_NON_BUYERS,
    COLLECTION_SKU_MAP,
    COLLECTION_PRODUCT_IMAGES,
    COLLECTION_CONSULTANTS,
)

# `position` keeps feed row order so reads come back the way the sheet lists them.
_TABLES = {
    COLLECTION_TASKS: """
        CREATE TABLE IF NOT EXISTS tasks (
            id              TEXT PRIMARY KEY,
            sector_code     TEXT NOT NULL DEFAULT '',
            pdv_code        TEXT NOT NULL DEFAULT '',
            pdv_name        TEXT NOT NULL DEFAULT '',
            due_label       TEXT NOT NULL DEFAULT '',
            cluster         TEXT NOT NULL DEFAULT '',
            category        TEXT NOT NULL DEFAULT '',
            subject         TEXT NOT NULL DEFAULT '',
            operation       TEXT NOT NULL DEFAULT '',
            coins           INTEGER NOT NULL DEFAULT 0,
            hash_id         TEXT NOT NULL DEFAULT '',
            flag_score      TEXT NOT NULL DEFAULT '',
            description     TEXT NOT NULL DEFAULT '',
            bought_count    INTEGER NOT NULL DEFAULT 0,
            mix_total       INTEGER NOT NULL DEFAULT 0,
            missing_count   INTEGER NOT NULL DEFAULT 0,
            position        INTEGER NOT NULL DEFAULT 0
        );
    """,
    COLLECTION_NON_BUYERS: """
        CREATE TABLE IF NOT EXISTS non_buyers (
            pdv_code        TEXT PRIMARY KEY,
            sector          TEXT NOT NULL DEFAULT '',
            fantasy_name    TEXT NOT NULL DEFAULT '',
            last_visit      TEXT NOT NULL DEFAULT '',
            normalized_code TEXT NOT NULL DEFAULT '',
            position        INTEGER NOT NULL DEFAULT 0
        );
    """,
    COLLECTION_SKU_MAP: """
        CREATE TABLE IF NOT EXISTS sku_map (
            hash_id         TEXT PRIMARY KEY,
            skus            TEXT NOT NULL DEFAULT '[]',   -- JSON list of names
            position        INTEGER NOT NULL DEFAULT 0
        );
    """,
    COLLECTION_PRODUCT_IMAGES: """
        CREATE TABLE IF NOT EXISTS product_images (
            id              TEXT PRIMARY KEY,
            name            TEXT NOT NULL,
            image_url       TEXT NOT NULL,
            normalized_name TEXT NOT NULL DEFAULT '',
            position        INTEGER NOT NULL DEFAULT 0
        );
    """,
    COLLECTION_CONSULTANTS: """
        CREATE TABLE IF NOT EXISTS consultants (
            id              TEXT PRIMARY KEY,
            sector          TEXT NOT NULL,
            name            TEXT NOT NULL DEFAULT '',
            password        TEXT NOT NULL DEFAULT '',
            avatar_url      TEXT NOT NULL DEFAULT '',
            avatar_data_uri TEXT,                          -- data: URI, sync only
            position        INTEGER NOT NULL DEFAULT 0
        );
    """,
}

_SYNC_META_TABLE = """
    CREATE TABLE IF NOT EXISTS sync_meta (
        id               INTEGER PRIMARY KEY CHECK (id = 1),
        last_synced_at   TEXT,     -- ISO datetime of the last successful sync
        created_at       TEXT NOT NULL DEFAULT (datetime('now'))
    );
"""


def get_schema_version(conn: sqlite3.Connection) -> int:
    return int(conn.execute("PRAGMA user_version;").fetchone()[0])


def create_tables(conn: sqlite3.Connection) -> None:
    """
    Create any missing tables and stamp SCHEMA_VERSION.

    Safe to call on every startup: existing tables and their rows are
    never dropped or altered.
    """
    current = get_schema_version(conn)
    cur = conn.cursor()

    for ddl in _TABLES.values():
        cur.execute(ddl)
    cur.execute(_SYNC_META_TABLE)
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_tasks_sector ON tasks(sector_code);"
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_non_buyers_sector ON non_buyers(sector);"
    )

    if current < SCHEMA_VERSION:
        logger.info("Upgrading local store schema %d -> %d", current, SCHEMA_VERSION)
        # PRAGMA does not take parameters
        cur.execute(f"PRAGMA user_version = {int(SCHEMA_VERSION)};")

    conn.commit()


def initialize_database(base_dir: Optional[Path] = None) -> None:
    """
    Convenience helper: open a connection, create tables, close it.

    Call this once at startup from the CLI or whatever hosts the engine.
    """
    from .connection import get_connection  # local import to avoid cycles

    with closing(get_connection(base_dir)) as conn:
        create_tables(conn)
