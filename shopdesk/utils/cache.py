"""In-memory TTL cache for AI insight bundles.

Entries expire lazily: an expired entry is dropped the next time it is
read, there is no background sweep. ``get_or_generate`` additionally keeps
at most one generation in flight per key, so concurrent misses for the
same shop share one result instead of each calling the model.

Usage:
    cache = InsightsCache()
    bundle = cache.get_or_generate("insights:abc", lambda: (build(), 120))
"""
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from shopdesk.utils.logger import log


@dataclass(frozen=True)
class CacheEntry:
    key: str
    data: Any
    expires_at: float  # epoch seconds


class InsightsCache:
    """Thread-safe TTL cache with per-key in-flight generation tracking."""

    def __init__(self, max_entries: int = 0, clock: Callable[[], float] = time.time):
        # max_entries <= 0 means unbounded
        self._store: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self._clock = clock

    def _get_locked(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._store[key]
            return None
        self._store.move_to_end(key)
        return entry.data

    def get_cached(self, key: str) -> Optional[Any]:
        """Return the stored data if still fresh, else drop the entry and return None."""
        with self._lock:
            return self._get_locked(key)

    def set_cache(self, key: str, data: Any, ttl_minutes: float) -> None:
        """Store or replace the entry for key, expiring ttl_minutes from now."""
        entry = CacheEntry(key=key, data=data, expires_at=self._clock() + ttl_minutes * 60)
        with self._lock:
            self._store[key] = entry
            self._store.move_to_end(key)
            if self._max_entries > 0:
                while len(self._store) > self._max_entries:
                    evicted, _ = self._store.popitem(last=False)
                    log.debug(f"Evicted least recently used cache entry {evicted}")

    def get_or_generate(self, key: str, generate: Callable[[], Tuple[Any, float]]) -> Any:
        """Return the fresh entry for key, or run generate() once and cache its result.

        generate returns (data, ttl_minutes). If another thread is already
        generating this key, wait for its result (or its exception) instead.
        A failed generation caches nothing.
        """
        with self._lock:
            data = self._get_locked(key)
            if data is not None:
                return data
            pending = self._in_flight.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                self._in_flight[key] = pending

        if not owner:
            log.debug(f"Waiting on in-flight generation for {key}")
            return pending.result()

        try:
            data, ttl_minutes = generate()
            self.set_cache(key, data, ttl_minutes)
        except BaseException as exc:
            pending.set_exception(exc)
            raise
        else:
            pending.set_result(data)
            return data
        finally:
            with self._lock:
                self._in_flight.pop(key, None)

    def invalidate(self, prefix: str) -> int:
        """Remove all keys starting with prefix. Returns count removed."""
        with self._lock:
            keys = [k for k in self._store if k.startswith(prefix)]
            for k in keys:
                del self._store[k]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: str) -> bool:
        # Raw membership, ignores expiry; lets callers check lazy eviction
        with self._lock:
            return key in self._store
