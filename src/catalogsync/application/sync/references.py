"""
Reference Resolver - turns id-based references into key-based ones.

Remote resources reference each other by platform id, while drafts
reference each other by key. Diffs are computed on keys, so before a
resource is compared with its draft, its references are resolved through
the id-to-key cache, fetching unknown ids from the platform.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from catalogsync.core.domain import Reference, Resource, is_blank
from catalogsync.core.ports import ReferenceCachePort, ResourceClientPort

from .batch import BatchExecutor, chunk


class ReferenceResolver:
    """
    Resolves references of one resource kind through a shared cache.

    Example:
        >>> resolver = ReferenceResolver(cache, category_client)
        >>> parent = await resolver.resolve(Reference("category", id="4f1a..."))
        >>> parent.key
        'womens-shoes'
    """

    def __init__(
        self,
        cache: ReferenceCachePort,
        client: ResourceClientPort,
        *,
        executor: BatchExecutor | None = None,
        chunk_size: int = 30,
    ) -> None:
        self.cache = cache
        self.client = client
        self.executor = executor or BatchExecutor()
        self.chunk_size = chunk_size
        self.logger = logging.getLogger("ReferenceResolver")

    def remember(self, resources: Iterable[Resource]) -> None:
        """Cache the id-to-key mapping of resources that carry a key."""
        self.cache.add_all(
            {resource.id: resource.key for resource in resources if not is_blank(resource.key)}
        )

    async def populate(self, ids: Iterable[str]) -> None:
        """Fetch every id not yet cached and cache its key."""
        unknown = sorted({i for i in ids if not is_blank(i) and not self.cache.contains_key(i)})
        if not unknown:
            return

        self.logger.debug(f"Fetching keys of {len(unknown)} {self.client.resource_type}(s)")
        for id_chunk in chunk(unknown, self.chunk_size):
            resources = await self.executor.submit(
                lambda id_chunk=id_chunk: self.client.fetch_by_ids(id_chunk),
                description=f"fetch of {self.client.resource_type} ids",
            )
            self.remember(resources)

    async def resolve(self, reference: Reference) -> Reference:
        """
        Return the reference with its key filled in.

        References that already carry a key, or whose id cannot be found,
        are returned unchanged.
        """
        if reference.key is not None or reference.id is None:
            return reference
        if not self.cache.contains_key(reference.id):
            await self.populate([reference.id])
        key = self.cache.get(reference.id)
        if key is None:
            self.logger.debug(f"No key known for {reference.type_id} '{reference.id}'")
            return reference
        return Reference(type_id=reference.type_id, id=reference.id, key=key)

    async def resolve_all(self, references: Sequence[Reference]) -> list[Reference]:
        """Resolve several references with one round of fetches."""
        await self.populate(ref.id for ref in references if ref.key is None and ref.id)
        resolved = []
        for reference in references:
            key = self.cache.get(reference.id) if reference.key is None and reference.id else None
            if key is None:
                resolved.append(reference)
            else:
                resolved.append(Reference(type_id=reference.type_id, id=reference.id, key=key))
        return resolved
