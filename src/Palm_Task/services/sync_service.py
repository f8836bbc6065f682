"""
Palm_Task.services.sync_service

The two entry points the app uses:

- load_cached()   read the local store, reconcile, build the image index.
                  Never touches the network; a fresh install gives empty lists.
- synchronize()   download all feeds, decode, inline consultant avatars and
                  replace every collection in the store.

Sync stages:
  1) reachability check            -> NetworkUnavailable
  2) fetch all feeds concurrently  -> UpstreamError if the task feed fails
  3) read all bodies concurrently
  4) decode every feed in memory
  5) inline remote avatars (failures are logged and skipped)
  6) replace_all per collection    -> PersistenceError
  7) stamp last_synced_at          -> PersistenceError

Nothing is written before stage 6, so a failure in 1-5 leaves the store
exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from Palm_Task.config.config_store import (
    FEED_CONSULTANTS,
    FEED_NAMES,
    FEED_NON_BUYERS,
    FEED_PRODUCT_IMAGES,
    FEED_SKU_MAP,
    FEED_TASKS,
    SyncConfig,
    get_db_dir,
    load_config,
)
from Palm_Task.data.repositories.collections_repo import CollectionStore
from Palm_Task.data.repositories.sync_meta_repo import get_last_synced_at, mark_sync_success
from Palm_Task.data.schema import (
    COLLECTION_CONSULTANTS,
    COLLECTION_NON_BUYERS,
    COLLECTION_PRODUCT_IMAGES,
    COLLECTION_SKU_MAP,
    COLLECTION_TASKS,
)
from Palm_Task.domain.errors import NetworkUnavailable, PersistenceError, SyncError, UpstreamError
from Palm_Task.domain.models import Consultant, NonBuyer, ProductImage, Task, TaskSkuMap
from Palm_Task.services.feed_decoders import (
    parse_consultants_csv,
    parse_non_buyers_csv,
    parse_product_images_csv,
    parse_sku_map_csv,
    parse_tasks_csv,
)
from Palm_Task.services.image_lookup_service import ImageResolver
from Palm_Task.services.reconciliation_service import reconcile

logger = logging.getLogger(__name__)


# feed -> (collection, text decoder)
_FEEDS: Dict[str, tuple] = {
    FEED_TASKS: (COLLECTION_TASKS, parse_tasks_csv),
    FEED_NON_BUYERS: (COLLECTION_NON_BUYERS, parse_non_buyers_csv),
    FEED_SKU_MAP: (COLLECTION_SKU_MAP, parse_sku_map_csv),
    FEED_PRODUCT_IMAGES: (COLLECTION_PRODUCT_IMAGES, parse_product_images_csv),
    FEED_CONSULTANTS: (COLLECTION_CONSULTANTS, parse_consultants_csv),
}

PRIMARY_FEED = FEED_TASKS


@dataclass
class CachedData:
    """Everything the screens need, reconciled and indexed."""
    tasks: List[Task] = field(default_factory=list)
    non_buyers: List[NonBuyer] = field(default_factory=list)
    sku_map: List[TaskSkuMap] = field(default_factory=list)
    images: List[ProductImage] = field(default_factory=list)
    consultants: List[Consultant] = field(default_factory=list)
    resolver: ImageResolver = field(default_factory=lambda: ImageResolver([]))
    last_synced_at: Optional[str] = None

    @property
    def image_index(self) -> Dict[str, str]:
        return self.resolver.index

    def resolve_image(self, sku_name: str) -> Optional[str]:
        return self.resolver.resolve(sku_name)


@dataclass
class SyncOutcome:
    ok: bool
    error: Optional[SyncError] = None
    synced_at: Optional[str] = None
    counts: Dict[str, int] = field(default_factory=dict)
    skipped_feeds: List[str] = field(default_factory=list)
    avatars_inlined: int = 0
    data: Optional[CachedData] = None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def _is_remote(url: str) -> bool:
    return url.lower().startswith(("http://", "https://"))


def _close_quietly(resp: Any) -> None:
    close = getattr(resp, "close", None)
    if callable(close):
        close()


class SyncService:
    """
    Offline-first data access for one client.

    client must provide is_reachable(), fetch_feeds(), read_bodies(responses)
    and fetch_avatars(urls) (see SheetsClient). It is only created when a
    sync actually runs, so load_cached() works with no network stack at all.

    Only one synchronize() should run at a time; callers guard that.
    """

    def __init__(
        self,
        client: Any = None,
        store: Optional[CollectionStore] = None,
        base_dir: Optional[Path] = None,
        config: Optional[SyncConfig] = None,
        client_factory: Optional[Callable[[SyncConfig], Any]] = None,
    ) -> None:
        self.config = config or load_config()
        self.base_dir = base_dir if base_dir is not None else get_db_dir(self.config)
        self.store = store or CollectionStore(self.base_dir)
        self._client = client
        self._client_factory = client_factory

    @property
    def client(self) -> Any:
        if self._client is None:
            if self._client_factory is not None:
                self._client = self._client_factory(self.config)
            else:
                from Palm_Task.integrations.sheets_client import SheetsClient
                self._client = SheetsClient(self.config)
        return self._client

    # ---------- Cold start ----------

    def load_cached(self) -> CachedData:
        tasks = self.store.read_all(COLLECTION_TASKS)
        non_buyers = self.store.read_all(COLLECTION_NON_BUYERS)
        sku_map = self.store.read_all(COLLECTION_SKU_MAP)
        images = self.store.read_all(COLLECTION_PRODUCT_IMAGES)
        consultants = self.store.read_all(COLLECTION_CONSULTANTS)

        return CachedData(
            tasks=reconcile(tasks, non_buyers, sku_map),
            non_buyers=non_buyers,
            sku_map=sku_map,
            images=images,
            consultants=consultants,
            resolver=ImageResolver(images),
            last_synced_at=self.last_synced_at(),
        )

    def last_synced_at(self) -> Optional[str]:
        return get_last_synced_at(self.base_dir)

    # ---------- Remote sync ----------

    def synchronize(self) -> SyncOutcome:
        try:
            decoded, skipped = self._download_and_decode()
        except SyncError as exc:
            logger.warning("Sync aborted, local data unchanged: %s", exc)
            return SyncOutcome(ok=False, error=exc)

        consultants = decoded.get(FEED_CONSULTANTS)
        inlined = 0
        if consultants is not None:
            decoded[FEED_CONSULTANTS], inlined = self._inline_avatars(consultants)

        counts, error = self._persist(decoded)
        if error is not None:
            return SyncOutcome(ok=False, error=error, counts=counts, skipped_feeds=skipped,
                               avatars_inlined=inlined)

        # 7) marker, then hand back what the store now holds
        try:
            synced_at = mark_sync_success(self.base_dir)
            data = self.load_cached()
        except PersistenceError as exc:
            logger.error("Sync data written but not confirmed: %s", exc)
            return SyncOutcome(ok=False, error=exc, counts=counts, skipped_feeds=skipped,
                               avatars_inlined=inlined)

        logger.info("Sync complete at %s: %s", synced_at, counts)
        return SyncOutcome(
            ok=True,
            synced_at=synced_at,
            counts=counts,
            skipped_feeds=skipped,
            avatars_inlined=inlined,
            data=data,
        )

    def _download_and_decode(self):
        client = self.client

        # 1) connectivity
        if not client.is_reachable():
            raise NetworkUnavailable("You need to be online to download the data.")

        # 2) all feeds at once
        logger.info("Fetching %d feeds", len(FEED_NAMES))
        fetched = client.fetch_feeds()

        primary = fetched.get(PRIMARY_FEED)
        if primary is None or isinstance(primary, Exception) or not primary.ok:
            for resp in fetched.values():
                if not isinstance(resp, Exception):
                    _close_quietly(resp)
            if isinstance(primary, Exception):
                raise UpstreamError(f"Task feed request failed: {primary}", feed=PRIMARY_FEED) from primary
            status = getattr(primary, "status_code", None)
            raise UpstreamError(f"Task feed returned HTTP {status}", feed=PRIMARY_FEED, status_code=status)

        failed = {name: r for name, r in fetched.items() if isinstance(r, Exception)}
        if failed:
            for resp in fetched.values():
                if not isinstance(resp, Exception):
                    _close_quietly(resp)
            name, exc = next(iter(failed.items()))
            raise UpstreamError(f"Feed {name} request failed: {exc}", feed=name) from exc

        # a secondary feed answering with an error page keeps its cached collection
        skipped: List[str] = []
        usable: Dict[str, Any] = {}
        for name in FEED_NAMES:
            resp = fetched.get(name)
            if resp is None:
                skipped.append(name)
            elif not resp.ok:
                logger.warning("Feed %s returned HTTP %s; keeping cached copy", name, resp.status_code)
                _close_quietly(resp)
                skipped.append(name)
            else:
                usable[name] = resp

        # 3) bodies
        bodies = client.read_bodies(usable)
        for name, body in bodies.items():
            if isinstance(body, Exception):
                raise UpstreamError(f"Could not read feed {name}: {body}", feed=name) from body

        # 4) decode everything before anything is written
        decoded: Dict[str, Optional[Sequence[Any]]] = {}
        for name in FEED_NAMES:
            if name in skipped:
                decoded[name] = None
                continue
            _, decoder = _FEEDS[name]
            try:
                decoded[name] = decoder(bodies[name])
            except Exception as exc:
                logger.exception("Decoding feed %s failed", name)
                raise UpstreamError(f"Could not decode feed {name}: {exc}", feed=name) from exc

        return decoded, skipped

    def _inline_avatars(self, consultants: Sequence[Consultant]):
        """
        5) Embed remote avatars so the profile screens work offline.
        A failed download just leaves that consultant without one.
        """
        urls = {i: c.avatar_url for i, c in enumerate(consultants) if c.avatar_url and _is_remote(c.avatar_url)}
        if not urls:
            return list(consultants), 0

        results = self.client.fetch_avatars(urls)
        out: List[Consultant] = []
        inlined = 0
        for i, c in enumerate(consultants):
            res = results.get(i)
            if res is None:
                out.append(c)
            elif isinstance(res, Exception):
                logger.warning("Could not cache avatar for %s: %s", c.name or c.id, res)
                out.append(c)
            else:
                out.append(replace(c, avatar_data_uri=res))
                inlined += 1
        return out, inlined

    def _persist(self, decoded: Dict[str, Optional[Sequence[Any]]]):
        """
        6) One transaction per collection. A failing collection does not stop
        or undo the others; the first error is reported.
        """
        counts: Dict[str, int] = {}
        first_error: Optional[PersistenceError] = None

        for name in FEED_NAMES:
            records = decoded.get(name)
            if records is None:
                continue
            collection, _ = _FEEDS[name]
            try:
                counts[collection] = self.store.replace_all(collection, records)
            except PersistenceError as exc:
                if first_error is None:
                    first_error = exc

        return counts, first_error
