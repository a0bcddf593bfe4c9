"""
Cache Module - Reference id-to-key caching.

- ReferenceIdToKeyCache: bounded in-memory LRU cache, safe for concurrent use
- CacheStats / CacheEntry: bookkeeping

Example:
    >>> from catalogsync.adapters.cache import ReferenceIdToKeyCache
    >>>
    >>> cache = ReferenceIdToKeyCache(max_size=1000)
    >>> cache.add("0b6c...", "summer-collection")
    >>> cache.contains_key("0b6c...")
    True
"""

from .backend import CacheEntry, CacheStats
from .memory import DEFAULT_MAX_SIZE, ReferenceIdToKeyCache


__all__ = [
    "DEFAULT_MAX_SIZE",
    "CacheEntry",
    "CacheStats",
    "ReferenceIdToKeyCache",
]
