"""
Custom Field Diff Engine - minimal update actions between two custom field
sets.

The algorithm is shared by every resource kind; what differs is only which
action types get emitted (``setCustomField`` on a category versus
``setAssetCustomField`` on one of its assets). That difference lives behind
the CustomActionBuilder capability, implemented once per kind.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from catalogsync.core.domain import (
    CustomFieldSet,
    SetAssetCustomField,
    SetAssetCustomType,
    SetCustomField,
    SetCustomType,
    UpdateAction,
    is_blank,
    json_equals,
)
from catalogsync.core.exceptions import BlankTypeIdError, BuildUpdateActionError

from .options import SyncOptions


logger = logging.getLogger("CustomFieldDiff")


class CustomActionBuilder(ABC):
    """Builds the custom-field actions of one resource kind."""

    @abstractmethod
    def build_remove_custom_type_action(self) -> UpdateAction:
        """Remove the custom type together with all its fields."""
        ...

    @abstractmethod
    def build_set_custom_type_action(
        self,
        type_id: str,
        fields: Mapping[str, Any] | None,
    ) -> UpdateAction:
        """Set the custom type and replace every field."""
        ...

    @abstractmethod
    def build_set_custom_field_action(self, name: str, value: Any) -> UpdateAction:
        """Set one field. ``value=None`` unsets it."""
        ...


class ResourceCustomActionBuilder(CustomActionBuilder):
    """Custom-field actions addressed to the resource itself."""

    def build_remove_custom_type_action(self) -> UpdateAction:
        return SetCustomType()

    def build_set_custom_type_action(
        self,
        type_id: str,
        fields: Mapping[str, Any] | None,
    ) -> UpdateAction:
        return SetCustomType(type_id=type_id, fields=dict(fields) if fields is not None else None)

    def build_set_custom_field_action(self, name: str, value: Any) -> UpdateAction:
        return SetCustomField(name=name, value=value)


class AssetCustomActionBuilder(CustomActionBuilder):
    """Custom-field actions addressed to one asset of a resource."""

    def __init__(self, asset_key: str, variant_id: int | None = None) -> None:
        self.asset_key = asset_key
        self.variant_id = variant_id

    def build_remove_custom_type_action(self) -> UpdateAction:
        return SetAssetCustomType(asset_key=self.asset_key, variant_id=self.variant_id)

    def build_set_custom_type_action(
        self,
        type_id: str,
        fields: Mapping[str, Any] | None,
    ) -> UpdateAction:
        return SetAssetCustomType(
            asset_key=self.asset_key,
            variant_id=self.variant_id,
            type_id=type_id,
            fields=dict(fields) if fields is not None else None,
        )

    def build_set_custom_field_action(self, name: str, value: Any) -> UpdateAction:
        return SetAssetCustomField(
            asset_key=self.asset_key,
            variant_id=self.variant_id,
            name=name,
            value=value,
        )


def build_custom_update_actions(
    old_custom: CustomFieldSet | None,
    new_custom: CustomFieldSet | None,
    builder: CustomActionBuilder,
    *,
    options: SyncOptions | None = None,
    resource_label: str = "resource",
    old_resource: Any = None,
    new_draft: Any = None,
) -> list[UpdateAction]:
    """
    Compare an existing custom field set against the desired one.

    Rules, in order of precedence:

    1. Both absent: no action.
    2. Only the new set exists: one set-type action carrying the new type
       and all its fields. A blank new type id is an error.
    3. Only the old set exists: one remove-type action.
    4. Same type id: one set-field action per added, changed or removed
       field. A blank shared type id is an error. If the new set carries
       no field map at all, the type is re-set without fields.
    5. Different type ids: one set-type action replacing everything.

    Errors are reported through ``options.apply_error_callback`` and yield
    an empty list, never a partial one.

    Args:
        old_custom: Custom fields of the existing resource
        new_custom: Custom fields of the draft
        builder: Action builder for the resource kind
        options: Sync options carrying the error callback
        resource_label: Human-readable name of the resource, used in messages
        old_resource: Passed through to the error callback
        new_draft: Passed through to the error callback

    Returns:
        List of update actions (empty if nothing changed or on error)
    """
    try:
        return _build_custom_update_actions(old_custom, new_custom, builder)
    except BuildUpdateActionError as e:
        message = (
            f"Failed to build custom fields update actions on the {resource_label}. "
            f"Reason: {e.message}"
        )
        (options or SyncOptions()).apply_error_callback(message, e, old_resource, new_draft)
        return []


def _build_custom_update_actions(
    old_custom: CustomFieldSet | None,
    new_custom: CustomFieldSet | None,
    builder: CustomActionBuilder,
) -> list[UpdateAction]:
    if old_custom is None:
        if new_custom is None:
            return []
        if is_blank(new_custom.type_id):
            raise BlankTypeIdError("New resource's custom type id is blank (empty/null).")
        return [builder.build_set_custom_type_action(new_custom.type_id, new_custom.fields)]

    if new_custom is None:
        return [builder.build_remove_custom_type_action()]

    if old_custom.type_id != new_custom.type_id:
        if is_blank(new_custom.type_id):
            raise BlankTypeIdError("New resource's custom type id is blank (empty/null).")
        return [builder.build_set_custom_type_action(new_custom.type_id, new_custom.fields)]

    if is_blank(old_custom.type_id):
        raise BlankTypeIdError("Custom type ids are not set for both the old and new resource.")

    if new_custom.fields is None:
        return [builder.build_set_custom_type_action(new_custom.type_id, None)]

    return build_set_custom_fields_actions(old_custom.fields or {}, new_custom.fields, builder)


def build_set_custom_fields_actions(
    old_fields: Mapping[str, Any],
    new_fields: Mapping[str, Any],
    builder: CustomActionBuilder,
) -> list[UpdateAction]:
    """
    Per-field comparison of two field maps sharing one custom type.

    A null value is the same as an absent field. Values are compared
    structurally, so key order and number formatting do not matter.
    """
    actions: list[UpdateAction] = []

    for name, new_value in new_fields.items():
        if new_value is None:
            continue
        if not json_equals(new_value, old_fields.get(name)):
            actions.append(builder.build_set_custom_field_action(name, new_value))

    for name, old_value in old_fields.items():
        if old_value is not None and new_fields.get(name) is None:
            actions.append(builder.build_set_custom_field_action(name, None))

    if actions:
        logger.debug(f"Computed {len(actions)} custom field action(s)")
    return actions
