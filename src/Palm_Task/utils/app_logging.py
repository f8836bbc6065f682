"""
Palm_Task.utils.app_logging

One-time logging setup for the CLI (or any host app).
Library modules only call logging.getLogger(__name__).
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Console handler on the Palm_Task logger, plus a rotating file
    (1MB x 5 backups) when log_file is given. Safe to call twice.
    """
    logger = logging.getLogger("Palm_Task")
    logger.setLevel(level)
    if getattr(logger, "_app_configured", False):
        return logger

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    logger._app_configured = True  # type: ignore[attr-defined]
    return logger
