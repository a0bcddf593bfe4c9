"""
In-memory LRU cache mapping platform ids to resource keys.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Mapping

from catalogsync.core.ports.reference_cache import ReferenceCachePort

from .backend import CacheEntry, CacheStats


DEFAULT_MAX_SIZE = 10_000


class ReferenceIdToKeyCache(ReferenceCachePort):
    """
    Bounded, thread-safe id-to-key cache with least-recently-used eviction.

    One instance is created per sync session and handed to the components
    that need it; there is no process-wide instance. Eviction is silent: an
    evicted id simply reads as a miss.

    Example:
        >>> cache = ReferenceIdToKeyCache(max_size=2)
        >>> cache.add("id-1", "shoes")
        >>> cache.get("id-1")
        'shoes'
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._stats = CacheStats()
        self.logger = logging.getLogger("ReferenceIdToKeyCache")

    def add(self, resource_id: str, key: str) -> None:
        with self._lock:
            if resource_id in self._entries:
                self._entries.move_to_end(resource_id)
            self._entries[resource_id] = CacheEntry(value=key)
            self._stats.record_set()
            self._evict_overflow()

    def add_all(self, mapping: Mapping[str, str]) -> None:
        with self._lock:
            for resource_id, key in mapping.items():
                self.add(resource_id, key)

    def remove(self, resource_id: str) -> None:
        with self._lock:
            if self._entries.pop(resource_id, None) is not None:
                self._stats.record_delete()

    def get(self, resource_id: str) -> str | None:
        with self._lock:
            entry = self._entries.get(resource_id)
            if entry is None:
                self._stats.record_miss()
                return None
            self._entries.move_to_end(resource_id)
            entry.record_hit()
            self._stats.record_hit()
            return entry.value

    def contains_key(self, resource_id: str) -> bool:
        with self._lock:
            return resource_id in self._entries

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(**{k: v for k, v in vars(self._stats).items()})

    def _evict_overflow(self) -> None:
        # Caller holds the lock.
        while len(self._entries) > self.max_size:
            evicted_id, _ = self._entries.popitem(last=False)
            self._stats.record_eviction()
            self.logger.debug(f"Evicted id {evicted_id} from reference cache")

    def __len__(self) -> int:
        return self.size

    def __contains__(self, resource_id: object) -> bool:
        return isinstance(resource_id, str) and self.contains_key(resource_id)
