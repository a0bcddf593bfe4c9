"""
In-memory key-value store for tests and offline runs.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from catalogsync.core.exceptions import ResourceNotFoundError
from catalogsync.core.ports import KeyValueStorePort, PagedResult, StoredEntry


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryKeyValueStore(KeyValueStorePort):
    """
    Dict-backed KeyValueStorePort.

    Entries are kept per (container, key), versioned on every upsert and
    returned in key order so paging is stable.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._entries: dict[tuple[str, str], StoredEntry] = {}
        self._clock = clock or _utcnow

    def put_entry(self, entry: StoredEntry) -> None:
        """Store an entry as-is, keeping its version and timestamp."""
        self._entries[(entry.container, entry.key)] = entry

    def entries(self, container: str | None = None) -> list[StoredEntry]:
        return [
            entry
            for (entry_container, _), entry in sorted(self._entries.items())
            if container is None or entry_container == container
        ]

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, container: str, key: str) -> StoredEntry | None:
        return self._entries.get((container, key))

    async def query(
        self,
        container: str,
        *,
        keys: list[str] | None = None,
        modified_before: datetime | None = None,
        limit: int = 500,
        offset: int = 0,
    ) -> PagedResult[StoredEntry]:
        wanted = set(keys) if keys is not None else None
        matching = [
            entry
            for entry in self.entries(container)
            if (wanted is None or entry.key in wanted)
            and (
                modified_before is None
                or (entry.last_modified_at is not None and entry.last_modified_at < modified_before)
            )
        ]
        return PagedResult(
            results=matching[offset : offset + limit],
            offset=offset,
            total=len(matching),
        )

    async def upsert(self, container: str, key: str, value: Any) -> StoredEntry:
        existing = self._entries.get((container, key))
        entry = StoredEntry(
            container=container,
            key=key,
            value=copy.deepcopy(value),
            version=existing.version + 1 if existing else 1,
            last_modified_at=self._clock(),
        )
        self._entries[(container, key)] = entry
        return entry

    async def delete(self, container: str, key: str) -> StoredEntry:
        try:
            return self._entries.pop((container, key))
        except KeyError:
            raise ResourceNotFoundError(
                f"No entry '{key}' in container '{container}'", resource_key=key, status_code=404
            ) from None
