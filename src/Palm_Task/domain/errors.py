"""
Palm_Task.domain.errors

Failures that reach the caller of the sync engine.

Row-level problems in a feed never raise: the decoders default missing
fields and drop rows without their required keys.
"""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base class for everything the sync engine reports to its caller."""


class NetworkUnavailable(SyncError):
    """A sync was requested while the feed host is unreachable."""


class UpstreamError(SyncError):
    """A feed could not be fetched or read; the sync was aborted."""

    def __init__(self, message: str, feed: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.feed = feed
        self.status_code = status_code


class PersistenceError(SyncError):
    """Writing or reading a local collection failed."""

    def __init__(self, message: str, collection: Optional[str] = None) -> None:
        super().__init__(message)
        self.collection = collection


class AssetFetchFailed(SyncError):
    """One consultant avatar could not be inlined. Logged, never surfaced."""
