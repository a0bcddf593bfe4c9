"""
Enum value list reconciliation for plain and localized enum field definitions.

Enum values are matched and reordered by key; only the label can change.
The platform appends added values, so the change-order action comes after
the additions and carries every draft key.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from catalogsync.core.domain import (
    AddEnumValue,
    AddLocalizedEnumValue,
    ChangeEnumValueLabel,
    ChangeEnumValueOrder,
    ChangeLocalizedEnumValueLabel,
    ChangeLocalizedEnumValueOrder,
    EnumValue,
    RemoveEnumValues,
    UpdateAction,
)

from .collections import ItemActionFactory, OrderedCollectionReconciler
from .common import build_update_action, build_update_actions
from .options import SyncOptions


class PlainEnumValueActionFactory(ItemActionFactory[EnumValue, EnumValue]):
    """Actions for the values of a plain (string-labelled) enum field."""

    item_label = "enum value"
    reorder_after_additions = True

    add_action = AddEnumValue
    change_label_action = ChangeEnumValueLabel
    change_order_action = ChangeEnumValueOrder

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name

    def order_id_of(self, item: EnumValue) -> str:
        return item.key

    def build_remove_action(self, item: EnumValue) -> UpdateAction:
        return RemoveEnumValues(field_name=self.field_name, keys=(item.key,))

    def build_remove_actions(self, items: Sequence[EnumValue]) -> list[UpdateAction]:
        if not items:
            return []
        return [RemoveEnumValues(field_name=self.field_name, keys=tuple(i.key for i in items))]

    def build_item_actions(self, old_item: EnumValue, new_draft: EnumValue) -> list[UpdateAction]:
        return build_update_actions(
            build_update_action(
                old_item.label,
                new_draft.label,
                lambda: self.change_label_action(field_name=self.field_name, value=new_draft),
            )
        )

    def build_change_order_action(self, order: list[str]) -> UpdateAction:
        return self.change_order_action(field_name=self.field_name, keys=tuple(order))

    def build_add_action(self, new_draft: EnumValue, position: int) -> UpdateAction:
        return self.add_action(field_name=self.field_name, value=new_draft)


class LocalizedEnumValueActionFactory(PlainEnumValueActionFactory):
    """Actions for the values of a localized enum field."""

    item_label = "localized enum value"

    add_action = AddLocalizedEnumValue
    change_label_action = ChangeLocalizedEnumValueLabel
    change_order_action = ChangeLocalizedEnumValueOrder


def build_enum_value_actions(
    field_name: str,
    old_values: Sequence[EnumValue],
    new_values: Sequence[EnumValue] | None,
    *,
    localized: bool = False,
    options: SyncOptions | None = None,
    old_resource: Any = None,
    new_draft: Any = None,
) -> list[UpdateAction]:
    """Reconcile the values of one enum field definition."""
    factory: PlainEnumValueActionFactory
    if localized:
        factory = LocalizedEnumValueActionFactory(field_name)
    else:
        factory = PlainEnumValueActionFactory(field_name)
    return OrderedCollectionReconciler(factory).build_actions(
        old_values,
        new_values,
        container=f"field definition '{field_name}'",
        options=options,
        old_resource=old_resource,
        new_draft=new_draft,
    )
