"""In-memory LRU response cache with sliding TTL.

One ``ResponseCache`` is built at startup and shared by every request. It is
bounded by entry count and by the total serialized size of the stored values;
inserting past either bound evicts least-recently-used entries. Reads extend
an entry's freshness; an entry idle for longer than its TTL reads as absent
and is purged. Entries stored with ``sliding=False`` instead expire a fixed
time after insertion.

All operations take a lock, so concurrent requests racing on the same key
leave the cache consistent (last writer wins). Cache operations never raise
for unserialisable values: the value is not stored and a warning is
logged.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Any

import structlog
from pydantic_core import PydanticSerializationError, to_json

from markview.models.cache import CacheEntry, CacheStats

if TYPE_CHECKING:
    from collections.abc import Callable

log = structlog.get_logger()

DEFAULT_MAX_ENTRIES = 500
DEFAULT_MAX_BYTES = 100 * 1024 * 1024
DEFAULT_TTL_SECONDS = 10 * 60.0


class CacheKeys:
    """Deterministic cache keys derived from request identity."""

    RATE_LIMIT = "ratelimit"

    @staticmethod
    def repository(owner: str, repo: str) -> str:
        return f"repo:{owner}/{repo}"

    @staticmethod
    def file_tree(owner: str, repo: str, ref: str | None = None) -> str:
        return f"tree:{owner}/{repo}:{ref or 'default'}"

    @staticmethod
    def file_content(owner: str, repo: str, path: str, ref: str | None = None) -> str:
        return f"content:{owner}/{repo}:{ref or 'default'}:{path}"

    @staticmethod
    def rate_limit() -> str:
        return CacheKeys.RATE_LIMIT


def serialized_size(value: Any) -> int:
    """Byte length of ``value`` serialized as JSON."""
    return len(to_json(value))


class ResponseCache:
    """Process-wide bounded LRU cache implementing CacheProtocol."""

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_bytes: int = DEFAULT_MAX_BYTES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if max_bytes < 1:
            raise ValueError("max_bytes must be >= 1")
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._total_size = 0
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` on miss or expiry.

        A hit marks the entry most-recently-used and restarts its TTL.
        """
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self._misses += 1
                return None
            entry.accessed_at = self._clock()
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        """Whether a live entry exists. Does not touch recency or TTL."""
        with self._lock:
            return self._live_entry(key) is not None

    def keys(self) -> list[str]:
        """Live keys, least-recently-used first."""
        with self._lock:
            now = self._clock()
            return [key for key, entry in self._entries.items() if not entry.expired(now)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                calculated_size=self._total_size,
                max=self.max_entries,
                max_size=self.max_bytes,
                hits=self._hits,
                misses=self._misses,
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(
        self, key: str, value: Any, *, ttl: float | None = None, sliding: bool = True
    ) -> bool:
        """Store ``value`` under ``key``. Returns False if it was not stored.

        With ``sliding=False`` the entry expires ``ttl`` seconds after this call
        no matter how often it is read.
        """
        try:
            size = serialized_size(value)
        except (PydanticSerializationError, TypeError, ValueError):
            log.warning("cache_value_not_serializable", key=key, exc_info=True)
            return False

        if size > self.max_bytes:
            log.warning("cache_value_too_large", key=key, size=size, max_size=self.max_bytes)
            with self._lock:
                self._remove(key)
            return False

        with self._lock:
            self._remove(key)
            now = self._clock()
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                size=size,
                ttl=self.ttl_seconds if ttl is None else ttl,
                inserted_at=now,
                accessed_at=now,
                sliding=sliding,
            )
            self._total_size += size
            self._evict()
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total_size = 0

    def invalidate_repository(self, owner: str, repo: str) -> int:
        """Delete every entry whose key mentions ``owner/repo``.

        Linear scan over all keys; meant for rare manual invalidation.
        """
        needle = f"{owner}/{repo}"
        with self._lock:
            doomed = [key for key in self._entries if needle in key]
            for key in doomed:
                self._remove(key)
        log.info("cache_repository_invalidated", repository=needle, deleted=len(doomed))
        return len(doomed)

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        with self._lock:
            now = self._clock()
            doomed = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in doomed:
                self._remove(key)
        if doomed:
            log.debug("cache_purged", deleted=len(doomed))
        return len(doomed)

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            self._remove(key)
            return None
        return entry

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._total_size -= entry.size
        return True

    def _evict(self) -> None:
        while self._entries and (
            len(self._entries) > self.max_entries or self._total_size > self.max_bytes
        ):
            key, entry = self._entries.popitem(last=False)
            self._total_size -= entry.size
            log.debug("cache_evicted", key=key, size=entry.size)
