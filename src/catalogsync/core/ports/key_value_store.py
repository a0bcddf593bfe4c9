"""
Key-Value Store Port - Abstract interface for the platform's key-value
container API (custom objects).

Entries are addressed by a (container, key) pair. The platform constrains
key length and characters, which is why callers hash natural keys before
storing them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .resource_client import PagedResult


@dataclass(frozen=True)
class StoredEntry:
    """One entry in a key-value container."""

    container: str
    key: str
    value: Any
    version: int = 1
    last_modified_at: datetime | None = None


class KeyValueStorePort(ABC):
    """Abstract interface for a remote key-value store."""

    @abstractmethod
    async def get(self, container: str, key: str) -> StoredEntry | None:
        """Fetch one entry, or None if it does not exist."""
        ...

    @abstractmethod
    async def query(
        self,
        container: str,
        *,
        keys: list[str] | None = None,
        modified_before: datetime | None = None,
        limit: int = 500,
        offset: int = 0,
    ) -> PagedResult[StoredEntry]:
        """
        Fetch one page of entries of a container.

        Args:
            container: Container name
            keys: Restrict to these keys (None for no restriction)
            modified_before: Restrict to entries last modified before this instant
            limit: Page size
            offset: Number of results to skip
        """
        ...

    @abstractmethod
    async def upsert(self, container: str, key: str, value: Any) -> StoredEntry:
        """Create or overwrite an entry."""
        ...

    @abstractmethod
    async def delete(self, container: str, key: str) -> StoredEntry:
        """
        Delete an entry.

        Raises:
            ResourceNotFoundError: If the entry does not exist
        """
        ...
