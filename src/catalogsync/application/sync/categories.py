"""
Category sync - the ResourceSyncAdapter for categories.

Categories form a tree through their parent reference, so a category draft
cannot be applied until its parent exists in the target project.
"""

from __future__ import annotations

import dataclasses

from catalogsync.core.domain import (
    ChangeName,
    ChangeOrderHint,
    ChangeParent,
    ChangeSlug,
    Resource,
    ResourceDraft,
    SetDescription,
    UpdateAction,
)

from .assets import build_asset_actions
from .common import build_update_action, build_update_actions
from .custom_fields import ResourceCustomActionBuilder, build_custom_update_actions
from .options import SyncOptions
from .orchestrator import ResourceSyncAdapter
from .references import ReferenceResolver


class CategorySyncAdapter(ResourceSyncAdapter):
    """
    Diffs categories: name, slug, description, order hint, parent, custom
    fields and assets, in that order.
    """

    resource_label = "category"

    def referenced_keys(self, draft: ResourceDraft) -> set[str]:
        if draft.parent is not None and draft.parent.key:
            return {draft.parent.key}
        return set()

    async def prepare_resource(self, resource: Resource, resolver: ReferenceResolver) -> Resource:
        if resource.parent is None or resource.parent.key is not None:
            return resource
        return dataclasses.replace(resource, parent=await resolver.resolve(resource.parent))

    def build_actions(
        self,
        old_resource: Resource,
        new_draft: ResourceDraft,
        options: SyncOptions,
    ) -> list[UpdateAction]:
        label = f"category '{new_draft.key}'"

        actions = build_update_actions(
            self._build_change_name_action(old_resource, new_draft),
            build_update_action(
                old_resource.extra.get("slug"),
                new_draft.extra.get("slug"),
                lambda: ChangeSlug(slug=new_draft.extra.get("slug")),
            ),
            build_update_action(
                old_resource.description,
                new_draft.description,
                lambda: SetDescription(description=new_draft.description),
            ),
            build_update_action(
                old_resource.extra.get("orderHint"),
                new_draft.extra.get("orderHint"),
                lambda: ChangeOrderHint(order_hint=new_draft.extra.get("orderHint")),
            ),
            self._build_change_parent_action(old_resource, new_draft, options),
        )
        actions.extend(
            build_custom_update_actions(
                old_resource.custom,
                new_draft.custom,
                ResourceCustomActionBuilder(),
                options=options,
                resource_label=label,
                old_resource=old_resource,
                new_draft=new_draft,
            )
        )
        actions.extend(
            build_asset_actions(
                old_resource.assets,
                new_draft.assets,
                options=options,
                resource_label=label,
                old_resource=old_resource,
                new_draft=new_draft,
            )
        )
        return actions

    @staticmethod
    def _build_change_name_action(
        old_resource: Resource, new_draft: ResourceDraft
    ) -> UpdateAction | None:
        # Name is required on categories; a draft without one leaves it alone.
        if new_draft.name is None:
            return None
        return build_update_action(
            old_resource.name, new_draft.name, lambda: ChangeName(name=new_draft.name)
        )

    @staticmethod
    def _build_change_parent_action(
        old_resource: Resource,
        new_draft: ResourceDraft,
        options: SyncOptions,
    ) -> UpdateAction | None:
        old_key = old_resource.parent.key if old_resource.parent else None
        new_key = new_draft.parent.key if new_draft.parent else None
        if old_key == new_key:
            return None
        if new_draft.parent is None:
            options.apply_warning_callback(
                f"Cannot unset 'parent' field of category with key '{new_draft.key}'.",
                None,
                old_resource,
                new_draft,
            )
            return None
        return ChangeParent(parent=new_draft.parent)
