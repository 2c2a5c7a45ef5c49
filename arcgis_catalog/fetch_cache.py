"""
Short-lived memoizing JSON fetcher for ArcGIS REST descriptors.

Every call issues ``GET <url>?f=json``. Results are kept per literal URL string
for ``ttl`` seconds; failures are never stored. Callers receive a deep copy,
so mutating a result never alters the cached value.
"""

import copy
import logging
import threading
import time
from typing import Any, Callable, Dict, Tuple

from .http_utils import HttpClient

log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
JSON_PARAMS = {"f": "json"}


class FetchCache:
    """Memoize ``client.get_json(url, params={"f": "json"})`` for a bounded time."""

    def __init__(
        self,
        client: HttpClient,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._url_locks: Dict[str, threading.Lock] = {}

    def _lookup(self, url: str) -> Tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return False, None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[url]
                return False, None
            return True, value

    def _url_lock(self, url: str) -> threading.Lock:
        with self._lock:
            return self._url_locks.setdefault(url, threading.Lock())

    def _purge_expired(self) -> None:
        # caller holds self._lock
        now = self._clock()
        for url in [u for u, (expires_at, _) in self._entries.items() if now >= expires_at]:
            del self._entries[url]

    def fetch(self, url: str) -> Any:
        """Return the parsed JSON for ``url``; each call gets its own copy."""
        hit, value = self._lookup(url)
        if hit:
            log.debug("[CACHE] hit %s", url)
            return copy.deepcopy(value)

        # One in-flight request per URL; late arrivals reuse its result.
        url_lock = self._url_lock(url)
        with url_lock:
            try:
                hit, value = self._lookup(url)
                if hit:
                    log.debug("[CACHE] hit %s (after wait)", url)
                    return copy.deepcopy(value)

                log.debug("[CACHE] miss %s", url)
                value = self.client.get_json(url, params=dict(JSON_PARAMS))
                with self._lock:
                    self._purge_expired()
                    self._entries[url] = (self._clock() + self.ttl, value)
                return copy.deepcopy(value)
            finally:
                with self._lock:
                    if self._url_locks.get(url) is url_lock:
                        del self._url_locks[url]

    def invalidate(self, url: str) -> None:
        with self._lock:
            self._entries.pop(url, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._url_locks.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)

    def __contains__(self, url: str) -> bool:
        return self._lookup(url)[0]
