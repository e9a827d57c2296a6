# search_cache.py: short-lived in-memory cache in front of the index search
from __future__ import annotations
import json
import logging
import threading
import time
from typing import Any, Callable

from models import CacheEntry

log = logging.getLogger(__name__)


def cache_key(query: str) -> str:
    return f"search:{query.strip().lower()}"


class SearchCache:
    """
    TTL cache keyed by the normalized query.

    Entries are JSON snapshots, so a caller mutating a returned payload never
    changes what the next reader sees. Expiry is checked on read and by an
    optional background sweeper thread. Flask serves requests on threads, so
    every access to the map holds the lock.
    """

    def __init__(self, ttl: float, sweep_interval: float | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    def get(self, query: str) -> Any | None:
        key = cache_key(query)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            snapshot = entry.data
        try:
            return json.loads(snapshot)
        except (TypeError, ValueError):
            log.warning("Dropping undecodable cache entry %s", key)
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
            return None

    def set(self, query: str, payload: Any, ttl: float | None = None) -> None:
        key = cache_key(query)
        now = self._clock()
        entry = CacheEntry(
            key=key,
            data=json.dumps(payload, ensure_ascii=False),
            created_at=now,
            expires_at=now + (self.ttl if ttl is None else ttl),
        )
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, query: str | None = None) -> None:
        """Drop one query's entry, or everything when no query is given."""
        with self._lock:
            if query is None:
                n = len(self._entries)
                self._entries.clear()
                log.info("Cleared search cache (%d entries)", n)
            else:
                self._entries.pop(cache_key(query), None)

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for k in expired:
                del self._entries[k]
        if expired:
            log.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    def stats(self) -> dict:
        self.sweep()
        with self._lock:
            keys = list(self._entries.keys())
        return {"size": len(keys), "keys": keys}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ---------- background sweep ----------
    def start_sweeper(self) -> None:
        if not self.sweep_interval or (self._sweeper and self._sweeper.is_alive()):
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="search-cache-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            self.sweep()
