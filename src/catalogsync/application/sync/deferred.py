"""
Deferred-Resolution Store - persists drafts whose references do not exist
yet, so they can be applied once the referenced resources appear.

Records live in a remote key-value container, one container per resource
kind. Each record is stored under the SHA-1 hex digest of the draft's
natural key: the platform constrains key length and characters, and
re-saving the same draft must overwrite rather than duplicate.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from catalogsync.core.domain import (
    CleanupStatistics,
    DeferredRecord,
    ResourceDraft,
    hash_key,
    is_blank,
)
from catalogsync.core.exceptions import (
    CatalogSyncError,
    InvalidDraftError,
    ResourceNotFoundError,
)
from catalogsync.core.ports import DeferredConfig, KeyValueStorePort, StoredEntry

from .batch import BatchExecutor, chunk
from .options import SyncOptions


class DeferredDraftStore:
    """
    Save, fetch and delete deferred drafts of one resource kind.

    Remote calls go through a BatchExecutor, so they share its concurrency
    cap and retry policy.
    """

    def __init__(
        self,
        kv_store: KeyValueStorePort,
        container: str,
        options: SyncOptions | None = None,
        *,
        executor: BatchExecutor | None = None,
        page_size: int = 250,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.kv_store = kv_store
        self.container = container
        self.options = options or SyncOptions()
        self.executor = executor or BatchExecutor(self.options.batch, None)
        self.page_size = page_size
        self.logger = logging.getLogger("DeferredDraftStore")

    @classmethod
    def for_resource_type(
        cls,
        kv_store: KeyValueStorePort,
        resource_type: str,
        config: DeferredConfig | None = None,
        options: SyncOptions | None = None,
        executor: BatchExecutor | None = None,
    ) -> DeferredDraftStore:
        """Create the store backing one resource kind (e.g. 'category')."""
        config = config or DeferredConfig()
        return cls(
            kv_store,
            config.container_for(resource_type),
            options,
            executor=executor,
            page_size=config.page_size,
        )

    # -------------------------------------------------------------------------
    # Save / Fetch / Delete
    # -------------------------------------------------------------------------

    async def save(
        self,
        draft: ResourceDraft,
        missing_keys: Iterable[str],
    ) -> DeferredRecord | None:
        """
        Persist a draft with the keys of the resources it is waiting for.

        Returns:
            The stored record, or None if the draft has no key or the
            remote call failed (both reported through the error callback)
        """
        if is_blank(draft.key):
            error = InvalidDraftError("Draft has no key")
            self.options.apply_error_callback(
                "Failed to persist a draft with missing references: "
                "the draft has no key.",
                error,
                None,
                draft,
            )
            return None

        record = DeferredRecord(draft=draft, missing_reference_keys=frozenset(missing_keys))
        hashed_key = record.hashed_key
        try:
            entry = await self.executor.submit(
                lambda: self.kv_store.upsert(self.container, hashed_key, record.to_value()),
                description=f"save of deferred draft '{draft.key}'",
            )
        except CatalogSyncError as e:
            self.options.apply_error_callback(
                f"Failed to persist draft with key '{draft.key}' "
                f"(hash: '{hashed_key}'). Reason: {e}",
                e,
                None,
                draft,
            )
            return None

        self.logger.debug(
            f"Deferred draft '{draft.key}' waiting for {len(record.missing_reference_keys)} "
            f"reference(s)"
        )
        return self._to_record(entry)

    async def fetch(self, keys: Iterable[str]) -> set[DeferredRecord]:
        """
        Fetch the deferred records of the given natural keys.

        Keys are hashed, chunked by page size and queried page by page. An
        empty key set returns immediately without a remote call.

        Raises:
            CatalogSyncError: If a query fails after retries
        """
        hashed_keys = sorted({hash_key(key) for key in keys if not is_blank(key)})
        if not hashed_keys:
            return set()

        records: set[DeferredRecord] = set()
        for key_chunk in chunk(hashed_keys, self.page_size):
            async for entry in self._iter_entries(keys=key_chunk):
                records.add(self._to_record(entry))
        return records

    async def fetch_all(self) -> set[DeferredRecord]:
        """Fetch every record in the container."""
        return {self._to_record(entry) async for entry in self._iter_entries()}

    async def delete(self, key: str) -> DeferredRecord | None:
        """
        Delete the record of a natural key.

        A record that does not exist counts as deleted. Any other failure is
        reported through the error callback.

        Returns:
            The removed record, or None if there was none or deletion failed
        """
        hashed_key = hash_key(key)
        try:
            entry = await self.executor.submit(
                lambda: self.kv_store.delete(self.container, hashed_key),
                description=f"delete of deferred draft '{key}'",
            )
        except ResourceNotFoundError:
            self.logger.debug(f"Deferred draft '{key}' was already gone")
            return None
        except CatalogSyncError as e:
            self.options.apply_error_callback(
                f"Failed to delete deferred draft with key '{key}' "
                f"(hash: '{hashed_key}'). Reason: {e}",
                e,
            )
            return None
        return self._to_record(entry)

    # -------------------------------------------------------------------------
    # Cleanup
    # -------------------------------------------------------------------------

    async def cleanup(self, max_age_days: int) -> CleanupStatistics:
        """
        Delete every record not modified within the last ``max_age_days``.

        Stale keys are collected page by page first, then deleted in chunks.
        One failed deletion never stops the sweep; it is counted and the rest
        continue. A negative age selects every record.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=max_age_days)
        stale_keys = [entry.key async for entry in self._iter_entries(modified_before=cutoff)]
        self.logger.info(
            f"Found {len(stale_keys)} deferred draft(s) in '{self.container}' "
            f"older than {max_age_days} day(s)"
        )

        stats = CleanupStatistics()
        for key_chunk in chunk(stale_keys, self.options.batch_size):
            outcomes = await asyncio.gather(
                *(self._delete_stale(key) for key in key_chunk)
            )
            for deleted in outcomes:
                if deleted is True:
                    stats.deleted_count += 1
                elif deleted is False:
                    stats.failed_count += 1

        self.logger.info(stats.report_message)
        return stats

    async def _delete_stale(self, hashed_key: str) -> bool | None:
        """True if deleted, None if already gone, False if deletion failed."""
        try:
            await self.executor.submit(
                lambda: self.kv_store.delete(self.container, hashed_key),
                description=f"cleanup of '{self.container}/{hashed_key}'",
            )
        except ResourceNotFoundError:
            return None
        except CatalogSyncError as e:
            self.options.apply_error_callback(
                f"Failed to delete stale deferred draft '{hashed_key}' "
                f"from '{self.container}'. Reason: {e}",
                e,
            )
            return False
        return True

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _iter_entries(
        self,
        *,
        keys: list[str] | None = None,
        modified_before: datetime | None = None,
    ) -> AsyncIterator[StoredEntry]:
        offset = 0
        while True:
            page = await self.executor.submit(
                lambda: self.kv_store.query(
                    self.container,
                    keys=keys,
                    modified_before=modified_before,
                    limit=self.page_size,
                    offset=offset,
                ),
                description=f"query of '{self.container}'",
            )
            for entry in page.results:
                yield entry
            if page.count == 0 or not page.has_next(self.page_size):
                return
            offset += page.count

    @staticmethod
    def _to_record(entry: StoredEntry) -> DeferredRecord:
        return DeferredRecord.from_value(entry.value, entry.last_modified_at)


class DeferredRecordCleaner:
    """
    Sweeps stale deferred drafts from the containers of several resource
    kinds and reports one combined CleanupStatistics.
    """

    def __init__(
        self,
        kv_store: KeyValueStorePort,
        resource_types: Iterable[str],
        config: DeferredConfig | None = None,
        *,
        error_callback: Callable[[str, BaseException | None], Any] | None = None,
        executor: BatchExecutor | None = None,
    ) -> None:
        self.kv_store = kv_store
        self.resource_types = list(resource_types)
        self.config = config or DeferredConfig()
        self.error_callback = error_callback
        self.executor = executor
        self.logger = logging.getLogger("DeferredRecordCleaner")

    def _options(self) -> SyncOptions:
        if self.error_callback is None:
            return SyncOptions()
        callback = self.error_callback
        return SyncOptions(
            error_callback=lambda message, exception, *_: callback(message, exception)
        )

    async def cleanup(self, max_age_days: int | None = None) -> CleanupStatistics:
        """
        Clean every configured container.

        Args:
            max_age_days: Age threshold, defaults to the configured retention
        """
        if max_age_days is None:
            max_age_days = self.config.retention_days

        options = self._options()
        total = CleanupStatistics()
        for resource_type in self.resource_types:
            store = DeferredDraftStore.for_resource_type(
                self.kv_store, resource_type, self.config, options, self.executor
            )
            total = total.merge(await store.cleanup(max_age_days))

        self.logger.info(f"Cleanup of {len(self.resource_types)} container(s): {total.report_message}")
        return total
