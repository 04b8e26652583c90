"""
Bounded, process-wide cache of resolved lookup values.

Keys are bucket-qualified lookup keys (``employees/1``), so one cache is shared
by every instance of every type. Values are cached as fetched; a store answer
of "no such entity" is kept as the ``ABSENT`` marker so it is never re-fetched.

Eviction is least-recently-used: a ``get`` hit refreshes the entry, and when a
``put`` pushes the cache past capacity the oldest unaccessed entry goes first.
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Hashable

logger = logging.getLogger(__name__)


class _Sentinel:
    """Named singleton marker."""

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False


MISS = _Sentinel('MISS')  # "not yet fetched"
ABSENT = _Sentinel('ABSENT')  # "fetched, and the store had nothing"


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    evictions: int
    size: int
    capacity: int


class LookupCache:
    """
    Thread-safe LRU cache with a fixed capacity.

    A disabled cache always reports ``MISS`` and ignores ``put``, which turns
    every resolution into a fresh store call.

    Example:
        cache = LookupCache(capacity=2)
        cache.put('employees/1', 'Rajini')
        cache.get('employees/1')   # 'Rajini'
        cache.get('employees/2')   # MISS
    """

    def __init__(self, capacity: int = 1000, enabled: bool = True):
        """
        Initialize the cache.

        Args:
            capacity: Maximum number of entries kept
            enabled: When False the cache stores nothing
        """
        if capacity <= 0:
            raise ValueError(f"Cache capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.enabled = enabled
        self._entries: 'OrderedDict[Hashable, Any]' = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: Hashable) -> Any:
        """
        Return the cached value for ``key``.

        Returns:
            The cached value, ``ABSENT`` for a cached empty answer, or ``MISS``
        """
        if not self.enabled:
            return MISS
        with self._lock:
            try:
                value = self._entries[key]
            except KeyError:
                self._misses += 1
                return MISS
            self._entries.move_to_end(key)
            self._hits += 1
            return value

    def put(self, key: Hashable, value: Any) -> None:
        """
        Store ``value`` under ``key``; ``None`` is stored as ``ABSENT``.

        Concurrent misses on the same key may both fetch and both put; the
        last write wins.
        """
        if not self.enabled:
            return
        if value is None:
            value = ABSENT
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted %s from lookup cache", evicted_key)

    def __contains__(self, key: Hashable) -> bool:
        if not self.enabled:
            return False
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = self._evictions = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._entries),
                capacity=self.capacity,
            )

    def snapshot(self) -> Dict[Hashable, Any]:
        """Copy of the entries, least recently used first."""
        with self._lock:
            return dict(self._entries)
