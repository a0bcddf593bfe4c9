"""
Sync Module - diff engines, reconcilers and the services that apply their
update actions to the target project.
"""

from .assets import AssetActionFactory, build_asset_actions
from .batch import (
    BatchExecutor,
    RetryContext,
    RetryPolicy,
    calculate_retry_delay,
    chunk,
)
from .categories import CategorySyncAdapter
from .collections import ItemActionFactory, OrderedCollectionReconciler
from .common import build_update_action, build_update_actions
from .custom_fields import (
    AssetCustomActionBuilder,
    CustomActionBuilder,
    ResourceCustomActionBuilder,
    build_custom_update_actions,
    build_set_custom_fields_actions,
)
from .deferred import DeferredDraftStore, DeferredRecordCleaner
from .enum_values import (
    LocalizedEnumValueActionFactory,
    PlainEnumValueActionFactory,
    build_enum_value_actions,
)
from .options import SyncOptions
from .orchestrator import ResourceSync, ResourceSyncAdapter
from .references import ReferenceResolver
from .statistics import SyncStatistics


__all__ = [
    # Diff engines
    "AssetActionFactory",
    "AssetCustomActionBuilder",
    "CustomActionBuilder",
    "ItemActionFactory",
    "LocalizedEnumValueActionFactory",
    "OrderedCollectionReconciler",
    "PlainEnumValueActionFactory",
    "ResourceCustomActionBuilder",
    "build_asset_actions",
    "build_custom_update_actions",
    "build_enum_value_actions",
    "build_set_custom_fields_actions",
    "build_update_action",
    "build_update_actions",
    # Batch execution
    "BatchExecutor",
    "RetryContext",
    "RetryPolicy",
    "calculate_retry_delay",
    "chunk",
    # Deferred drafts
    "DeferredDraftStore",
    "DeferredRecordCleaner",
    # Orchestration
    "CategorySyncAdapter",
    "ReferenceResolver",
    "ResourceSync",
    "ResourceSyncAdapter",
    "SyncOptions",
    "SyncStatistics",
]
