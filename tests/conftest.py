"""
Shared pytest fixtures for the catalogsync test suite.

Fixture Categories:
- Domain: sample drafts, resources, assets
- Adapters: in-memory client, key-value store, cache
- Options: sync options recording callback invocations
- Execution: executors that never really sleep
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from catalogsync.adapters.cache import ReferenceIdToKeyCache
from catalogsync.adapters.memory import InMemoryKeyValueStore, InMemoryResourceClient
from catalogsync.application.sync import BatchExecutor, RetryPolicy, SyncOptions
from catalogsync.core.domain import Asset, AssetDraft, CustomFieldSet, Resource, ResourceDraft
from catalogsync.core.ports import BatchConfig, RetryConfig


# =============================================================================
# Callback recording
# =============================================================================


class CallbackRecorder:
    """Collects error and warning callback invocations."""

    def __init__(self) -> None:
        self.errors: list[tuple[str, BaseException | None]] = []
        self.warnings: list[tuple[str, BaseException | None]] = []

    def on_error(
        self,
        message: str,
        exception: BaseException | None,
        old_resource: Any,
        new_draft: Any,
        actions: Any,
    ) -> None:
        self.errors.append((message, exception))

    def on_warning(
        self,
        message: str,
        exception: BaseException | None,
        old_resource: Any,
        new_draft: Any,
    ) -> None:
        self.warnings.append((message, exception))

    @property
    def error_messages(self) -> list[str]:
        return [message for message, _ in self.errors]

    @property
    def warning_messages(self) -> list[str]:
        return [message for message, _ in self.warnings]


async def no_sleep(delay: float) -> None:
    """Stand-in for asyncio.sleep that returns immediately."""
    return None


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()


@pytest.fixture
def sync_options(recorder: CallbackRecorder) -> SyncOptions:
    """SyncOptions wired to the recorder, small batches, fast retries."""
    return SyncOptions(
        error_callback=recorder.on_error,
        warning_callback=recorder.on_warning,
        batch=BatchConfig(batch_size=2, max_parallel_requests=4),
        retry=RetryConfig(max_retries=2, initial_delay=0.001, timeout=0.01),
    )


@pytest.fixture
def executor(sync_options: SyncOptions) -> BatchExecutor:
    """Executor whose retries do not sleep."""
    return BatchExecutor(sync_options.batch, RetryPolicy(sync_options.retry, sleep=no_sleep))


# =============================================================================
# Adapters
# =============================================================================


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def category_client() -> InMemoryResourceClient:
    return InMemoryResourceClient(resource_type="category")


@pytest.fixture
def cache() -> ReferenceIdToKeyCache:
    return ReferenceIdToKeyCache(max_size=100)


# =============================================================================
# Domain samples
# =============================================================================


@pytest.fixture
def custom_fields() -> CustomFieldSet:
    return CustomFieldSet(
        type_id="type-1",
        fields={"color": "red", "size": 42, "meta": {"a": 1, "b": [1, 2]}},
    )


def _make_asset(key: str | None, asset_id: str | None = None, **kwargs: Any) -> Asset:
    """Existing asset with a predictable id."""
    return Asset(
        id=asset_id or f"id-{key}",
        key=key,
        name=kwargs.pop("name", {"en": f"Asset {key}"}),
        sources=kwargs.pop("sources", ({"uri": f"https://cdn.example.com/{key}.png"},)),
        **kwargs,
    )


def _make_asset_draft(key: str | None, **kwargs: Any) -> AssetDraft:
    return AssetDraft(
        key=key,
        name=kwargs.pop("name", {"en": f"Asset {key}"}),
        sources=kwargs.pop("sources", ({"uri": f"https://cdn.example.com/{key}.png"},)),
        **kwargs,
    )


def _make_category_draft(key: str | None, **kwargs: Any) -> ResourceDraft:
    extra = kwargs.pop("extra", {"slug": {"en": f"slug-{key}"}})
    return ResourceDraft(
        key=key,
        name=kwargs.pop("name", {"en": f"Category {key}"}),
        extra=extra,
        **kwargs,
    )


@pytest.fixture
def sample_resource() -> Resource:
    return Resource(
        id="res-1",
        version=3,
        key="shoes",
        name={"en": "Shoes"},
        custom=CustomFieldSet(type_id="type-1", fields={"color": "red"}),
        assets=(_make_asset("a"), _make_asset("b")),
        last_modified_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        extra={"slug": {"en": "shoes"}},
    )


@pytest.fixture
def make_asset():
    """Factory for existing assets (id defaults to 'id-<key>')."""
    return _make_asset


@pytest.fixture
def make_asset_draft():
    return _make_asset_draft


@pytest.fixture
def make_category_draft():
    return _make_category_draft
