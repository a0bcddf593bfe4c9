"""
Resource Sync Orchestrator - drives a sync run for one resource kind.

Flow per batch of drafts:
    1. fetch the existing resources with the drafts' keys
    2. park drafts whose referenced resources do not exist yet in the
       deferred store
    3. create missing resources, diff and update existing ones
    4. once a referenced resource exists, pick the waiting drafts back up

What "diff" means for a resource kind is supplied by a ResourceSyncAdapter.
Per-draft failures are reported through the error callback and counted;
they never abort the rest of the run.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from catalogsync.core.domain import Resource, ResourceDraft, UpdateAction, is_blank
from catalogsync.core.exceptions import (
    CatalogSyncError,
    ConcurrentModificationError,
    DuplicateKeyError,
    InvalidDraftError,
    ResourceNotFoundError,
)
from catalogsync.core.ports import (
    DeferredConfig,
    KeyValueStorePort,
    ReferenceCachePort,
    ResourceClientPort,
)

from .batch import BatchExecutor, RetryPolicy, chunk
from .deferred import DeferredDraftStore
from .options import SyncOptions
from .references import ReferenceResolver
from .statistics import SyncStatistics


class ResourceSyncAdapter(ABC):
    """
    Capability implemented once per resource kind.

    It knows which other resources a draft references and how to turn an
    existing resource plus a draft into update actions.
    """

    resource_label: str = "resource"

    def referenced_keys(self, draft: ResourceDraft) -> set[str]:
        """Keys of same-kind resources that must exist before the draft is applied."""
        return set()

    async def prepare_resource(self, resource: Resource, resolver: ReferenceResolver) -> Resource:
        """Resolve id-based references of an existing resource into keys."""
        return resource

    @abstractmethod
    def build_actions(
        self,
        old_resource: Resource,
        new_draft: ResourceDraft,
        options: SyncOptions,
    ) -> list[UpdateAction]:
        """Compute the ordered update actions for one resource."""
        ...


class ResourceSync:
    """
    Synchronizes drafts of one resource kind into the target project.

    Example:
        >>> sync = ResourceSync(
        ...     client=category_client,
        ...     adapter=CategorySyncAdapter(),
        ...     cache=ReferenceIdToKeyCache(),
        ...     kv_store=key_value_store,
        ... )
        >>> stats = await sync.sync(drafts)
        >>> print(stats.report_message)
    """

    def __init__(
        self,
        client: ResourceClientPort,
        adapter: ResourceSyncAdapter,
        cache: ReferenceCachePort,
        *,
        kv_store: KeyValueStorePort | None = None,
        options: SyncOptions | None = None,
        deferred_config: DeferredConfig | None = None,
        executor: BatchExecutor | None = None,
    ) -> None:
        """
        Args:
            client: Client of the target project for this resource kind
            adapter: Diff capability for this resource kind
            cache: Id-to-key cache owned by the caller for the session
            kv_store: Key-value store for deferred drafts. Without one,
                drafts with missing references fail instead of waiting.
            options: Callbacks and batch/retry settings
            deferred_config: Container naming and paging of deferred drafts
            executor: Shared executor (built from options if omitted)
        """
        self.client = client
        self.adapter = adapter
        self.options = options or SyncOptions()
        self.executor = executor or BatchExecutor(
            self.options.batch, RetryPolicy(self.options.retry)
        )
        self.resolver = ReferenceResolver(
            cache, client, executor=self.executor, chunk_size=self.options.batch_size
        )
        self.deferred_store = (
            DeferredDraftStore.for_resource_type(
                kv_store, client.resource_type, deferred_config, self.options, self.executor
            )
            if kv_store is not None
            else None
        )
        self.statistics = SyncStatistics(resource_label=adapter.resource_label)
        self.logger = logging.getLogger("ResourceSync")

        self._known_keys: set[str] = set()
        # missing reference key -> keys of drafts waiting for it
        self._waiting: dict[str, set[str]] = {}
        self._deferred_keys: set[str] = set()

    @property
    def label(self) -> str:
        return self.adapter.resource_label

    @property
    def plural_label(self) -> str:
        return self.statistics.plural_label

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def sync(self, drafts: Sequence[ResourceDraft]) -> SyncStatistics:
        """
        Sync a list of drafts.

        Returns:
            Statistics of this sync instance (cumulative across calls)
        """
        self.statistics.increment_processed(len(drafts))
        valid = self._validate(drafts)

        for batch in chunk(valid, self.options.batch_size):
            await self._sync_batch(batch)

        self.statistics.finish()
        self.logger.info(self.statistics.report_message)
        return self.statistics

    async def sync_deferred(self, keys: Iterable[str]) -> SyncStatistics:
        """
        Retry drafts parked by an earlier run.

        Drafts whose references still do not exist are parked again.
        """
        if self.deferred_store is None:
            return self.statistics

        try:
            records = await self.deferred_store.fetch(keys)
        except CatalogSyncError as e:
            self.options.apply_error_callback(
                f"Failed to fetch deferred {self.label} drafts. Reason: {e}", e
            )
            return self.statistics

        drafts = [record.draft for record in records]
        self.statistics.increment_processed(len(drafts))
        for batch in chunk(sorted(drafts, key=lambda d: d.key or ""), self.options.batch_size):
            await self._sync_batch(batch, from_deferred=True)

        self.statistics.finish()
        return self.statistics

    # -------------------------------------------------------------------------
    # Batch processing
    # -------------------------------------------------------------------------

    def _validate(self, drafts: Sequence[ResourceDraft]) -> list[ResourceDraft]:
        valid: list[ResourceDraft] = []
        seen: set[str] = set()
        for draft in drafts:
            if draft.key is None or is_blank(draft.key):
                self.options.apply_error_callback(
                    f"Failed to process {self.label} draft without key.",
                    InvalidDraftError(f"{self.label} draft has no key"),
                    None,
                    draft,
                )
                self.statistics.increment_failed()
                continue
            if draft.key in seen:
                self.options.apply_error_callback(
                    f"Failed to process {self.label} draft with key '{draft.key}': "
                    "the key occurs more than once in the input.",
                    DuplicateKeyError(f"Duplicate {self.label} key", duplicate_key=draft.key),
                    None,
                    draft,
                )
                self.statistics.increment_failed()
                continue
            seen.add(draft.key)
            valid.append(draft)
        return valid

    async def _sync_batch(self, batch: list[ResourceDraft], from_deferred: bool = False) -> None:
        keys = [draft.key for draft in batch if draft.key]
        try:
            existing = await self.executor.submit(
                lambda: self.client.fetch_by_keys(keys),
                description=f"fetch of {self.plural_label}",
            )
            self._remember(existing)
            missing_by_key = await self._find_missing_references(batch)
        except CatalogSyncError as e:
            for draft in batch:
                self.options.apply_error_callback(
                    f"Failed to fetch existing {self.plural_label} for key '{draft.key}'. Reason: {e}",
                    e,
                    None,
                    draft,
                )
            self.statistics.increment_failed(len(batch))
            return

        existing_by_key = {resource.key: resource for resource in existing}
        ready: list[ResourceDraft] = []
        for draft in batch:
            missing = missing_by_key.get(draft.key or "")
            if missing:
                await self._defer(draft, missing)
            else:
                ready.append(draft)

        await asyncio.gather(
            *(
                self._sync_draft(draft, existing_by_key.get(draft.key), from_deferred)
                for draft in ready
            )
        )
        await self._resolve_waiting()

    async def _find_missing_references(
        self, batch: list[ResourceDraft]
    ) -> dict[str, set[str]]:
        references = {
            draft.key or "": self.adapter.referenced_keys(draft) - {draft.key} for draft in batch
        }
        unknown = sorted(set().union(*references.values()) - self._known_keys)
        if unknown:
            found = await self.executor.submit(
                lambda: self.client.fetch_by_keys(unknown),
                description=f"fetch of referenced {self.plural_label}",
            )
            self._remember(found)
        return {
            key: refs - self._known_keys
            for key, refs in references.items()
            if refs - self._known_keys
        }

    async def _sync_draft(
        self,
        draft: ResourceDraft,
        old_resource: Resource | None,
        from_deferred: bool,
    ) -> None:
        try:
            if old_resource is None:
                await self._create(draft)
            else:
                await self._update(old_resource, draft)
        except CatalogSyncError as e:
            self.options.apply_error_callback(
                f"Failed to sync {self.label} with key '{draft.key}'. Reason: {e}",
                e,
                old_resource,
                draft,
            )
            self.statistics.increment_failed()
            return

        if from_deferred and self.deferred_store is not None and draft.key:
            await self.deferred_store.delete(draft.key)

    async def _create(self, draft: ResourceDraft) -> None:
        prepared = self.options.apply_before_create_callback(draft)
        if prepared is None:
            self.logger.debug(f"Creation of {self.label} '{draft.key}' skipped by callback")
            return

        created = await self.executor.submit(
            lambda: self.client.create(prepared),
            description=f"create of {self.label} '{draft.key}'",
        )
        self._remember([created])
        self.statistics.increment_created()
        self.logger.debug(f"Created {self.label} '{created.key}'")

    async def _update(self, old_resource: Resource, draft: ResourceDraft) -> None:
        old_resource, actions = await self._diff(old_resource, draft)
        if not actions:
            return

        try:
            updated = await self._send_update(old_resource, actions, draft)
        except ConcurrentModificationError as e:
            self.logger.info(
                f"Version conflict on {self.label} '{draft.key}' "
                f"(version {old_resource.version}): re-fetching and re-diffing"
            )
            fresh = await self.executor.submit(
                lambda: self.client.fetch_by_keys([draft.key or ""]),
                description=f"re-fetch of {self.label} '{draft.key}'",
            )
            if not fresh:
                raise ResourceNotFoundError(
                    f"{self.label} '{draft.key}' disappeared during update",
                    resource_key=draft.key,
                    cause=e,
                ) from e
            old_resource, actions = await self._diff(fresh[0], draft)
            if not actions:
                return
            updated = await self._send_update(old_resource, actions, draft)

        self._remember([updated])
        self.statistics.increment_updated()

    async def _diff(
        self, old_resource: Resource, draft: ResourceDraft
    ) -> tuple[Resource, list[UpdateAction]]:
        prepared = await self.adapter.prepare_resource(old_resource, self.resolver)
        actions = self.adapter.build_actions(prepared, draft, self.options)
        return prepared, self.options.apply_before_update_callback(actions, draft, prepared)

    async def _send_update(
        self,
        old_resource: Resource,
        actions: list[UpdateAction],
        draft: ResourceDraft,
    ) -> Resource:
        self.logger.debug(f"Updating {self.label} '{draft.key}' with {len(actions)} action(s)")
        return await self.executor.submit(
            lambda: self.client.update(old_resource, actions),
            description=f"update of {self.label} '{draft.key}'",
        )

    # -------------------------------------------------------------------------
    # Deferred drafts
    # -------------------------------------------------------------------------

    async def _defer(self, draft: ResourceDraft, missing: set[str]) -> None:
        key = draft.key or ""
        if self.deferred_store is None:
            self.options.apply_error_callback(
                f"Failed to sync {self.label} with key '{key}': referenced "
                f"{self.label}(s) {sorted(missing)} do not exist.",
                None,
                None,
                draft,
            )
            self.statistics.increment_failed()
            return

        record = await self.deferred_store.save(draft, missing)
        if record is None:
            self.statistics.increment_failed()
            return

        for missing_key in missing:
            self._waiting.setdefault(missing_key, set()).add(key)
        if key not in self._deferred_keys:
            self._deferred_keys.add(key)
            self.statistics.increment_deferred()
        self.logger.debug(f"Deferred {self.label} '{key}' until {sorted(missing)} exist")

    async def _resolve_waiting(self) -> None:
        """Re-sync waiting drafts whose references all exist now."""
        if self.deferred_store is None:
            return

        candidates: set[str] = set()
        for missing_key in [k for k in self._waiting if k in self._known_keys]:
            candidates |= self._waiting.pop(missing_key)
        if not candidates:
            return

        try:
            records = await self.deferred_store.fetch(candidates)
        except CatalogSyncError as e:
            self.options.apply_error_callback(
                f"Failed to fetch deferred {self.label} drafts {sorted(candidates)}. Reason: {e}",
                e,
            )
            return

        resolvable = sorted(
            (
                record.draft
                for record in records
                if not (record.missing_reference_keys - self._known_keys)
            ),
            key=lambda d: d.key or "",
        )
        for draft in resolvable:
            self._deferred_keys.discard(draft.key or "")
        self.statistics.decrement_deferred(len(resolvable))

        for batch in chunk(resolvable, self.options.batch_size):
            await self._sync_batch(batch, from_deferred=True)

    def _remember(self, resources: Iterable[Resource]) -> None:
        resources = list(resources)
        self.resolver.remember(resources)
        self._known_keys.update(r.key for r in resources if r.key)
