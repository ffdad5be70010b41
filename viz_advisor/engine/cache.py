"""
Analysis result cache keyed by dataset shape.

The key is the row count plus the set of column names (and, so that
different settings never share entries, a fingerprint of the analysis
options). When the cache grows past its bound the oldest 20% of entries,
by insertion time, are evicted.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Hashable, Mapping, Optional, Sequence, Tuple

from viz_advisor.core.constants import CACHE_EVICTION_FRACTION, DEFAULT_CACHE_MAX_ENTRIES

logger = logging.getLogger(__name__)

CacheKey = Tuple[int, FrozenSet[str], Hashable]


def cache_key(records: Sequence[Mapping], fingerprint: Hashable = None) -> CacheKey:
    """Key derived from row count and column name set."""
    columns = frozenset(records[0].keys()) if records else frozenset()
    return (len(records), columns, fingerprint)


@dataclass
class CacheEntry:
    value: Any
    timestamp: float = field(default_factory=time.monotonic)


class AnalysisCache:
    """
    Bounded, thread-safe cache of analysis artifacts.

    Example:
        >>> cache = AnalysisCache(max_entries=50)
        >>> key = cache_key(records)
        >>> cache.put(key, artifacts)
        >>> cache.get(key) is artifacts
        True
    """

    def __init__(self, max_entries: int = DEFAULT_CACHE_MAX_ENTRIES, eviction_fraction: float = CACHE_EVICTION_FRACTION):
        self.max_entries = max_entries
        self.eviction_fraction = eviction_fraction
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def put(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value)
            if len(self._entries) > self.max_entries:
                self._evict()

    def _evict(self) -> None:
        count = max(1, math.floor(len(self._entries) * self.eviction_fraction))
        oldest = sorted(self._entries.items(), key=lambda item: item[1].timestamp)[:count]
        for key, _ in oldest:
            del self._entries[key]
        logger.debug(f"Evicted {count} cache entries ({len(self._entries)} remain)")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
