"""
Asset list reconciliation.

Assets are matched by key and reordered by platform id. A category's assets
are addressed by asset key alone; a product variant's assets also carry the
variant id.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from catalogsync.core.domain import (
    AddAsset,
    Asset,
    AssetDraft,
    ChangeAssetName,
    ChangeAssetOrder,
    RemoveAsset,
    SetAssetDescription,
    SetAssetSources,
    SetAssetTags,
    UpdateAction,
)

from .collections import ItemActionFactory, OrderedCollectionReconciler
from .common import build_update_action, build_update_actions
from .custom_fields import AssetCustomActionBuilder, build_custom_update_actions
from .options import SyncOptions


class AssetActionFactory(ItemActionFactory[Asset, AssetDraft]):
    """Builds asset actions for one resource (or one product variant)."""

    item_label = "asset"

    def __init__(
        self,
        variant_id: int | None = None,
        options: SyncOptions | None = None,
        resource_label: str = "resource",
    ) -> None:
        self.variant_id = variant_id
        self.options = options or SyncOptions()
        self.resource_label = resource_label

    def order_id_of(self, item: Asset) -> str:
        return item.id

    def build_remove_action(self, item: Asset) -> UpdateAction:
        return RemoveAsset(asset_key=item.key or "", variant_id=self.variant_id)

    def build_item_actions(self, old_item: Asset, new_draft: AssetDraft) -> list[UpdateAction]:
        key = old_item.key or ""
        variant_id = self.variant_id

        actions = build_update_actions(
            build_update_action(
                old_item.name,
                new_draft.name,
                lambda: ChangeAssetName(asset_key=key, variant_id=variant_id, name=new_draft.name),
            ),
            build_update_action(
                old_item.description,
                new_draft.description,
                lambda: SetAssetDescription(
                    asset_key=key, variant_id=variant_id, description=new_draft.description
                ),
            ),
            build_update_action(
                list(old_item.sources),
                list(new_draft.sources),
                lambda: SetAssetSources(
                    asset_key=key, variant_id=variant_id, sources=tuple(new_draft.sources)
                ),
            ),
            build_update_action(
                list(old_item.tags) if old_item.tags is not None else None,
                list(new_draft.tags) if new_draft.tags is not None else None,
                lambda: SetAssetTags(asset_key=key, variant_id=variant_id, tags=new_draft.tags),
            ),
        )
        actions.extend(
            build_custom_update_actions(
                old_item.custom,
                new_draft.custom,
                AssetCustomActionBuilder(key, variant_id),
                options=self.options,
                resource_label=f"asset '{key}' of {self.resource_label}",
            )
        )
        return actions

    def build_change_order_action(self, order: list[str]) -> UpdateAction:
        return ChangeAssetOrder(asset_order=tuple(order), variant_id=self.variant_id)

    def build_add_action(self, new_draft: AssetDraft, position: int) -> UpdateAction:
        return AddAsset(asset=new_draft, position=position, variant_id=self.variant_id)


def build_asset_actions(
    old_assets: Sequence[Asset],
    new_assets: Sequence[AssetDraft] | None,
    *,
    options: SyncOptions | None = None,
    variant_id: int | None = None,
    resource_label: str = "resource",
    old_resource: Any = None,
    new_draft: Any = None,
) -> list[UpdateAction]:
    """Reconcile the asset list of one resource."""
    factory = AssetActionFactory(variant_id, options, resource_label)
    return OrderedCollectionReconciler(factory).build_actions(
        old_assets,
        new_assets,
        container=resource_label,
        options=options,
        old_resource=old_resource,
        new_draft=new_draft,
    )
