"""
Update actions - atomic, ordered instructions that move a remote resource
toward its desired state.

Each action is a frozen dataclass tagged with the platform's action name and
serialized with ``to_dict()``. Actions are produced by the diff engines and
consumed by the batch controller; the order of actions in one diff result
matters.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from .entities import AssetDraft, EnumValue, LocalizedString, Reference


@dataclass(frozen=True)
class UpdateAction:
    """Base class for every update action."""

    action: ClassVar[str] = ""

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action}


def _type_ref(type_id: str) -> dict[str, str]:
    return {"typeId": "type", "id": type_id}


# =============================================================================
# Resource-level actions
# =============================================================================


@dataclass(frozen=True)
class SetCustomType(UpdateAction):
    """Set (or, with ``type_id=None``, remove) the custom type and all fields."""

    action: ClassVar[str] = "setCustomType"

    type_id: str | None = None
    fields: Mapping[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.type_id is not None:
            data["type"] = _type_ref(self.type_id)
            if self.fields is not None:
                data["fields"] = dict(self.fields)
        return data


@dataclass(frozen=True)
class SetCustomField(UpdateAction):
    """Set one custom field; ``value=None`` unsets it."""

    action: ClassVar[str] = "setCustomField"

    name: str = ""
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["name"] = self.name
        if self.value is not None:
            data["value"] = self.value
        return data


@dataclass(frozen=True)
class ChangeName(UpdateAction):
    action: ClassVar[str] = "changeName"

    name: LocalizedString | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "name": dict(self.name) if self.name else None}


@dataclass(frozen=True)
class SetDescription(UpdateAction):
    action: ClassVar[str] = "setDescription"

    description: LocalizedString | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.description is not None:
            data["description"] = dict(self.description)
        return data


@dataclass(frozen=True)
class ChangeParent(UpdateAction):
    action: ClassVar[str] = "changeParent"

    parent: Reference | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.parent is not None:
            data["parent"] = self.parent.to_dict()
        return data


@dataclass(frozen=True)
class ChangeSlug(UpdateAction):
    action: ClassVar[str] = "changeSlug"

    slug: LocalizedString | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "slug": dict(self.slug) if self.slug else None}


@dataclass(frozen=True)
class ChangeOrderHint(UpdateAction):
    action: ClassVar[str] = "changeOrderHint"

    order_hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "orderHint": self.order_hint}


# =============================================================================
# Asset actions
#
# ``variant_id`` is set only when the asset list belongs to a product
# variant; category assets are addressed by asset key alone.
# =============================================================================


@dataclass(frozen=True)
class _AssetAction(UpdateAction):
    asset_key: str = ""
    variant_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.variant_id is not None:
            data["variantId"] = self.variant_id
        data["assetKey"] = self.asset_key
        return data


@dataclass(frozen=True)
class RemoveAsset(_AssetAction):
    action: ClassVar[str] = "removeAsset"


@dataclass(frozen=True)
class ChangeAssetName(_AssetAction):
    action: ClassVar[str] = "changeAssetName"

    name: LocalizedString | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "name": dict(self.name) if self.name else None}


@dataclass(frozen=True)
class SetAssetDescription(_AssetAction):
    action: ClassVar[str] = "setAssetDescription"

    description: LocalizedString | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.description is not None:
            data["description"] = dict(self.description)
        return data


@dataclass(frozen=True)
class SetAssetSources(_AssetAction):
    action: ClassVar[str] = "setAssetSources"

    sources: Sequence[Mapping[str, Any]] = ()

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "sources": [dict(s) for s in self.sources]}


@dataclass(frozen=True)
class SetAssetTags(_AssetAction):
    action: ClassVar[str] = "setAssetTags"

    tags: Sequence[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.tags is not None:
            data["tags"] = list(self.tags)
        return data


@dataclass(frozen=True)
class SetAssetCustomType(_AssetAction):
    action: ClassVar[str] = "setAssetCustomType"

    type_id: str | None = None
    fields: Mapping[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.type_id is not None:
            data["type"] = _type_ref(self.type_id)
            if self.fields is not None:
                data["fields"] = dict(self.fields)
        return data


@dataclass(frozen=True)
class SetAssetCustomField(_AssetAction):
    action: ClassVar[str] = "setAssetCustomField"

    name: str = ""
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["name"] = self.name
        if self.value is not None:
            data["value"] = self.value
        return data


@dataclass(frozen=True)
class ChangeAssetOrder(UpdateAction):
    """Reorder assets; carries the ids of all surviving assets in the new order."""

    action: ClassVar[str] = "changeAssetOrder"

    asset_order: Sequence[str] = ()
    variant_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.variant_id is not None:
            data["variantId"] = self.variant_id
        data["assetOrder"] = list(self.asset_order)
        return data


@dataclass(frozen=True)
class AddAsset(UpdateAction):
    action: ClassVar[str] = "addAsset"

    asset: AssetDraft | None = None
    position: int | None = None
    variant_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.variant_id is not None:
            data["variantId"] = self.variant_id
        data["asset"] = self.asset.to_dict() if self.asset else None
        if self.position is not None:
            data["position"] = self.position
        return data


# =============================================================================
# Enum value actions
#
# ``field_name`` is the name of the field (or attribute) definition that owns
# the enum values.
# =============================================================================


@dataclass(frozen=True)
class _EnumAction(UpdateAction):
    field_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "fieldName": self.field_name}


@dataclass(frozen=True)
class AddEnumValue(_EnumAction):
    action: ClassVar[str] = "addEnumValue"

    value: EnumValue | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "value": self.value.to_dict() if self.value else None}


@dataclass(frozen=True)
class AddLocalizedEnumValue(AddEnumValue):
    action: ClassVar[str] = "addLocalizedEnumValue"


@dataclass(frozen=True)
class RemoveEnumValues(_EnumAction):
    action: ClassVar[str] = "removeEnumValues"

    keys: Sequence[str] = ()

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "keys": list(self.keys)}


@dataclass(frozen=True)
class ChangeEnumValueLabel(_EnumAction):
    action: ClassVar[str] = "changeEnumValueLabel"

    value: EnumValue | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "value": self.value.to_dict() if self.value else None}


@dataclass(frozen=True)
class ChangeLocalizedEnumValueLabel(ChangeEnumValueLabel):
    action: ClassVar[str] = "changeLocalizedEnumValueLabel"


@dataclass(frozen=True)
class ChangeEnumValueOrder(_EnumAction):
    action: ClassVar[str] = "changeEnumValueOrder"

    keys: Sequence[str] = ()

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "keys": list(self.keys)}


@dataclass(frozen=True)
class ChangeLocalizedEnumValueOrder(ChangeEnumValueOrder):
    action: ClassVar[str] = "changeLocalizedEnumValueOrder"
