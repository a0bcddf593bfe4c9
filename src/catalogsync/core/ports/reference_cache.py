"""
Reference Cache Port - Abstract interface for the id-to-key cache.

Diffs are computed against human-assigned keys, so platform-generated ids
found in references are translated through this cache. A miss means "not
yet known" and callers fall back to fetching the key from the platform.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping


class ReferenceCachePort(ABC):
    """
    Abstract id-to-key cache.

    Implementations must be safe for concurrent use without external locking.
    """

    @abstractmethod
    def add(self, resource_id: str, key: str) -> None:
        """Map an id to a key, replacing any previous mapping."""
        ...

    @abstractmethod
    def add_all(self, mapping: Mapping[str, str]) -> None:
        """Add several id-to-key mappings."""
        ...

    @abstractmethod
    def remove(self, resource_id: str) -> None:
        """Forget an id. Unknown ids are ignored."""
        ...

    @abstractmethod
    def get(self, resource_id: str) -> str | None:
        """Return the cached key for an id, or None on a miss."""
        ...

    @abstractmethod
    def contains_key(self, resource_id: str) -> bool:
        """Check whether an id is currently cached."""
        ...

    @abstractmethod
    def clear(self) -> int:
        """Drop every entry and return how many were dropped."""
        ...
