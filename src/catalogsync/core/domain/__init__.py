"""
Domain layer - resources, drafts, update actions and value comparison.

Everything here is pure data with no I/O.
"""

from .actions import (
    AddAsset,
    AddEnumValue,
    AddLocalizedEnumValue,
    ChangeAssetName,
    ChangeAssetOrder,
    ChangeEnumValueLabel,
    ChangeEnumValueOrder,
    ChangeLocalizedEnumValueLabel,
    ChangeLocalizedEnumValueOrder,
    ChangeName,
    ChangeOrderHint,
    ChangeParent,
    ChangeSlug,
    RemoveAsset,
    RemoveEnumValues,
    SetAssetCustomField,
    SetAssetCustomType,
    SetAssetDescription,
    SetAssetSources,
    SetAssetTags,
    SetCustomField,
    SetCustomType,
    SetDescription,
    UpdateAction,
)
from .entities import (
    Asset,
    AssetDraft,
    CleanupStatistics,
    CustomFieldSet,
    DeferredRecord,
    EnumValue,
    Label,
    LocalizedString,
    Reference,
    Resource,
    ResourceDraft,
    hash_key,
)
from .json_values import is_blank, json_equals, normalize_json


__all__ = [
    # Entities
    "Asset",
    "AssetDraft",
    "CleanupStatistics",
    "CustomFieldSet",
    "DeferredRecord",
    "EnumValue",
    "Label",
    "LocalizedString",
    "Reference",
    "Resource",
    "ResourceDraft",
    "hash_key",
    # Actions
    "AddAsset",
    "AddEnumValue",
    "AddLocalizedEnumValue",
    "ChangeAssetName",
    "ChangeAssetOrder",
    "ChangeEnumValueLabel",
    "ChangeEnumValueOrder",
    "ChangeLocalizedEnumValueLabel",
    "ChangeLocalizedEnumValueOrder",
    "ChangeName",
    "ChangeOrderHint",
    "ChangeParent",
    "ChangeSlug",
    "RemoveAsset",
    "RemoveEnumValues",
    "SetAssetCustomField",
    "SetAssetCustomType",
    "SetAssetDescription",
    "SetAssetSources",
    "SetAssetTags",
    "SetCustomField",
    "SetCustomType",
    "SetDescription",
    "UpdateAction",
    # JSON values
    "is_blank",
    "json_equals",
    "normalize_json",
]
