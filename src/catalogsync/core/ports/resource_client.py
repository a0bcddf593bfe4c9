"""
Resource Client Port - Abstract interface for the platform's resource API.

Implementations:
- HttpResourceClient: REST API over aiohttp
- InMemoryResourceClient: dict-backed double for tests and offline runs

Every method is a coroutine. Failures are raised as PlatformError
subclasses: ResourceNotFoundError, ConcurrentModificationError, ServerError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from catalogsync.core.domain import Resource, ResourceDraft, UpdateAction


T = TypeVar("T")


@dataclass
class PagedResult(Generic[T]):
    """One page of a paged query."""

    results: list[T] = field(default_factory=list)
    offset: int = 0
    total: int | None = None

    @property
    def count(self) -> int:
        return len(self.results)

    def has_next(self, limit: int) -> bool:
        """Check whether another page may follow this one."""
        if self.total is not None:
            return self.offset + self.count < self.total
        return self.count >= limit


class ResourceClientPort(ABC):
    """
    Abstract interface for one kind of platform resource (categories,
    products, discounts, ...).
    """

    @property
    @abstractmethod
    def resource_type(self) -> str:
        """Platform type id of the resources this client serves (e.g. 'category')."""
        ...

    @abstractmethod
    async def query(
        self,
        predicate: str | None = None,
        *,
        limit: int = 500,
        offset: int = 0,
    ) -> PagedResult[Resource]:
        """
        Fetch one page of resources matching a predicate.

        Args:
            predicate: Platform query predicate, None for all resources
            limit: Page size
            offset: Number of results to skip

        Returns:
            One page of resources
        """
        ...

    @abstractmethod
    async def fetch_by_keys(self, keys: Sequence[str]) -> list[Resource]:
        """Fetch every resource whose key is in ``keys``."""
        ...

    @abstractmethod
    async def fetch_by_ids(self, ids: Sequence[str]) -> list[Resource]:
        """Fetch every resource whose id is in ``ids``."""
        ...

    @abstractmethod
    async def create(self, draft: ResourceDraft) -> Resource:
        """Create a resource from a draft."""
        ...

    @abstractmethod
    async def update(self, resource: Resource, actions: Sequence[UpdateAction]) -> Resource:
        """
        Apply ordered update actions to a resource at its current version.

        Raises:
            ConcurrentModificationError: If ``resource.version`` is stale
        """
        ...

    @abstractmethod
    async def delete(self, resource: Resource) -> Resource:
        """Delete a resource at its current version."""
        ...


def build_in_predicate(field_name: str, values: Sequence[str]) -> str:
    """
    Build a platform query predicate matching any of the given values.

    >>> build_in_predicate("key", ["a", "b"])
    'key in ("a", "b")'
    """
    quoted = ", ".join('"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"' for value in values)
    return f"{field_name} in ({quoted})"
