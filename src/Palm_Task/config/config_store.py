"""
Palm_Task.config.config_store

Sync configuration for Palm Task.

Responsibilities:
- Persist the feed endpoints to a JSON file (local only)
- Let environment variables override the file for deployments
- Build the five feed URLs the sync engine downloads

The published spreadsheet has one base URL; every feed except the task
list is selected with a `gid` query parameter.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from Palm_Task.utils.app_paths import default_config_file


# ---------------------------------------------------------------------------
# Paths & constants
# ---------------------------------------------------------------------------

DEFAULT_BASE_URL = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vT8fNDpYBDVzD5I6fU1PHKTyIL13-Rebtkk03TknNutnS-6O49QI2nzm8OHsXtKtE1Kuyw3ULlzXXXJ/pub"
)

FEED_TASKS = "tasks"
FEED_NON_BUYERS = "non_buyers"
FEED_SKU_MAP = "sku_map"
FEED_PRODUCT_IMAGES = "product_images"
FEED_CONSULTANTS = "consultants"

FEED_NAMES = (
    FEED_TASKS,
    FEED_NON_BUYERS,
    FEED_SKU_MAP,
    FEED_PRODUCT_IMAGES,
    FEED_CONSULTANTS,
)


def _default_gids() -> Dict[str, str]:
    # tasks is the first sheet and is published without a gid
    return {
        FEED_NON_BUYERS: "1974384197",
        FEED_SKU_MAP: "52566647",
        FEED_PRODUCT_IMAGES: "746952367",
        FEED_CONSULTANTS: "1774643875",
    }


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class SyncConfig:
    """
    Top-level config structure.

    Stored as JSON at <data root>/sync_config.json (see app_paths)
    """
    base_url: str = DEFAULT_BASE_URL
    gids: Dict[str, str] = field(default_factory=_default_gids)

    # seconds, passed to requests; the engine itself has no timeout
    http_timeout: float = 30.0

    # empty -> probe base_url
    reachability_url: str = ""

    # empty -> <data root>/db
    db_dir: str = ""


# ---------------------------------------------------------------------------
# Internal helpers for JSON I/O
# ---------------------------------------------------------------------------


def _read_raw_config(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            return data
        return {}
    except (OSError, ValueError):
        # If config is corrupted, start fresh
        return {}


def _write_raw_config(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)


def _from_raw_config(raw: Dict[str, Any]) -> SyncConfig:
    """
    Convert dict -> SyncConfig, applying defaults if keys are missing.
    """
    gids = _default_gids()
    gids.update({str(k): str(v) for k, v in (raw.get("gids") or {}).items()})

    try:
        timeout = float(raw.get("http_timeout", 30.0) or 30.0)
    except (TypeError, ValueError):
        timeout = 30.0

    return SyncConfig(
        base_url=raw.get("base_url", "") or DEFAULT_BASE_URL,
        gids=gids,
        http_timeout=timeout,
        reachability_url=raw.get("reachability_url", "") or "",
        db_dir=raw.get("db_dir", "") or "",
    )


def _apply_env_overrides(cfg: SyncConfig) -> SyncConfig:
    base_url = os.environ.get("PALMTASK_BASE_URL", "").strip()
    if base_url:
        cfg.base_url = base_url

    db_dir = os.environ.get("PALMTASK_DB_DIR", "").strip()
    if db_dir:
        cfg.db_dir = db_dir

    timeout = os.environ.get("PALMTASK_HTTP_TIMEOUT", "").strip()
    if timeout:
        try:
            cfg.http_timeout = float(timeout)
        except ValueError:
            raise ValueError(f"Invalid PALMTASK_HTTP_TIMEOUT: {timeout!r}")
    return cfg


# ---------------------------------------------------------------------------
# Public config API
# ---------------------------------------------------------------------------


def load_config(path: Optional[Path] = None) -> SyncConfig:
    """
    Load config from JSON (defaults for anything missing), then apply
    PALMTASK_* environment overrides.
    """
    raw = _read_raw_config(Path(path) if path else default_config_file())
    return _apply_env_overrides(_from_raw_config(raw))


def save_config(cfg: SyncConfig, path: Optional[Path] = None) -> None:
    """
    Persist the entire config to disk.
    """
    _write_raw_config(Path(path) if path else default_config_file(), asdict(cfg))


def feed_url(cfg: SyncConfig, feed: str) -> str:
    """
    CSV export URL for one feed.
    """
    if feed not in FEED_NAMES:
        raise ValueError(f"Unknown feed: {feed!r}")

    params: Dict[str, str] = {}
    gid = cfg.gids.get(feed, "")
    if feed != FEED_TASKS and gid:
        params["gid"] = gid
        params["single"] = "true"
    params["output"] = "csv"

    return requests.Request("GET", cfg.base_url, params=params).prepare().url


def feed_urls(cfg: SyncConfig) -> Dict[str, str]:
    return {name: feed_url(cfg, name) for name in FEED_NAMES}


def get_db_dir(cfg: Optional[SyncConfig] = None) -> Optional[Path]:
    cfg = cfg or load_config()
    return Path(cfg.db_dir) if cfg.db_dir else None
