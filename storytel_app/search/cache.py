"""
Result cache for the search aggregator.

One entry per (formatted query, author, locale). An entry lives for a fixed
number of seconds from the moment it was written; reads never extend it.
When the cache is full, stale entries are swept first and only then is the
least recently read entry dropped.

    cache = SearchCache(ttl=600, max_size=1000)
    cache.set("Dune", "Frank Herbert", "en", result)
    cache.get("Dune", "Frank Herbert", "en")   # -> result, same object
"""

import time
import hashlib
import threading
from typing import Any, Callable, Dict, NamedTuple, Optional
from collections import OrderedDict

from ..metadata.models import SearchResult

DEFAULT_TTL = 600
DEFAULT_MAX_SIZE = 1000


class _Entry(NamedTuple):
    result: SearchResult
    stored_at: float


def cache_key(query: str, author: str, locale: str) -> str:
    return hashlib.md5(f"{query}-{author}-{locale}".encode('utf-8')).hexdigest()


class SearchCache:
    """TTL + LRU cache of SearchResult objects, safe to share between threads."""

    def __init__(self, ttl: int = DEFAULT_TTL, max_size: int = DEFAULT_MAX_SIZE,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _is_stale(self, entry: _Entry, now: float) -> bool:
        return now - entry.stored_at >= self.ttl

    def _sweep(self, now: float) -> int:
        # Caller holds the lock
        stale = [key for key, entry in self._entries.items() if self._is_stale(entry, now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def get(self, query: str, author: str, locale: str) -> Optional[SearchResult]:
        """The stored result, or None when absent or stale."""
        key = cache_key(query, author, locale)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_stale(entry, self._clock()):
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.result

    def set(self, query: str, author: str, locale: str, data: SearchResult):
        key = cache_key(query, author, locale)

        with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._sweep(now)
                if len(self._entries) >= self.max_size:
                    self._entries.popitem(last=False)

            self._entries[key] = _Entry(data, now)
            self._entries.move_to_end(key)

    def evict_expired(self) -> int:
        """Drop every stale entry now; returns how many went."""
        with self._lock:
            return self._sweep(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, Any]:
        """Size, limits and hit counters (hit_rate is a percentage)."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                'size': len(self._entries),
                'max_size': self.max_size,
                'ttl': self.ttl,
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': round(self._hits / lookups * 100, 2) if lookups else 0.0,
            }
