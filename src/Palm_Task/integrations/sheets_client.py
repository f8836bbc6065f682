"""
Palm_Task.integrations.sheets_client

HTTP access to the published spreadsheet CSV feeds.

Each batch (all feed requests, all body reads, all avatar downloads) runs
on a small thread pool and is fully joined before the call returns.
Nothing here retries; the caller decides what a failure means.
"""

from __future__ import annotations

import base64
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Mapping, Optional, TypeVar, Union

import requests

from Palm_Task.config.config_store import SyncConfig, feed_urls, load_config
from Palm_Task.domain.errors import AssetFetchFailed

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

DEFAULT_IMAGE_MIME = "image/jpeg"

FetchResult = Union[requests.Response, Exception]


def run_batch(jobs: Mapping[K, Callable[[], V]], max_workers: int = 5) -> Dict[K, Union[V, Exception]]:
    """
    Run independent callables concurrently and join them all.

    Each key maps to the callable's result or the exception it raised;
    one failure does not cancel the others.
    """
    if not jobs:
        return {}

    results: Dict[K, Union[V, Exception]] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(jobs)))) as pool:
        futures = {key: pool.submit(fn) for key, fn in jobs.items()}
        for key, fut in futures.items():
            try:
                results[key] = fut.result()
            except Exception as exc:  # collected for the caller, not swallowed
                results[key] = exc
    return results


class SheetsClient:
    """
    Fetches the five CSV feeds and consultant avatars.

    config defaults to load_config(). Every thread that talks to the host
    (the caller and each pool worker) gets its own session from
    session_factory, since requests.Session is not thread-safe.
    """

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ) -> None:
        self.config = config or load_config()
        self._session_factory = session_factory or requests.Session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()
        self.timeout = self.config.http_timeout
        self.urls: Dict[str, str] = feed_urls(self.config)

    @property
    def session(self) -> requests.Session:
        """The calling thread's session, created on first use."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    # ---------- Connectivity ----------

    def is_reachable(self) -> bool:
        """
        Cheap probe of the feed host. Any transport error counts as offline;
        an HTTP error status still means the network is up.
        """
        url = self.config.reachability_url or self.config.base_url
        try:
            self.session.head(url, timeout=min(self.timeout, 5.0), allow_redirects=True)
        except requests.RequestException as exc:
            logger.info("Feed host unreachable (%s): %s", url, exc)
            return False
        return True

    # ---------- Feeds ----------

    def _get(self, url: str) -> requests.Response:
        # stream=True: headers now, body in read_bodies()
        return self.session.get(url, timeout=self.timeout, stream=True)

    def fetch_feeds(self) -> Dict[str, FetchResult]:
        """
        Issue all feed requests at once. Values are responses (any status)
        or the exception raised for that feed.
        """
        jobs = {name: (lambda u=url: self._get(u)) for name, url in self.urls.items()}
        return run_batch(jobs)

    def read_bodies(self, responses: Mapping[str, requests.Response]) -> Dict[str, Union[str, Exception]]:
        """
        Read every response body as text, concurrently.
        """
        def _read(resp: requests.Response) -> str:
            # Sheets exports are UTF-8 but rarely declare a charset
            if not resp.encoding or resp.encoding.lower() == "iso-8859-1":
                resp.encoding = "utf-8"
            try:
                return resp.text
            finally:
                resp.close()

        jobs = {name: (lambda r=resp: _read(r)) for name, resp in responses.items()}
        return run_batch(jobs)

    # ---------- Avatars ----------

    def fetch_avatar(self, url: str) -> str:
        """
        Download an image and return it as a data: URI.
        Raises AssetFetchFailed on any transport or HTTP error.
        """
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise AssetFetchFailed(f"Could not fetch avatar {url}: {exc}") from exc

        if not resp.content:
            raise AssetFetchFailed(f"Empty avatar body from {url}")

        mime = (resp.headers.get("Content-Type") or DEFAULT_IMAGE_MIME).split(";")[0].strip()
        encoded = base64.b64encode(resp.content).decode("ascii")
        return f"data:{mime};base64,{encoded}"

    def fetch_avatars(self, urls: Mapping[K, str]) -> Dict[K, Union[str, Exception]]:
        """
        fetch_avatar() for many URLs at once; failures come back as values.
        """
        jobs = {key: (lambda u=url: self.fetch_avatar(u)) for key, url in urls.items()}
        return run_batch(jobs, max_workers=4)

    def close(self) -> None:
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for s in sessions:
            s.close()
