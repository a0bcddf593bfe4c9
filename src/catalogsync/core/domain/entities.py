"""
Domain Entities - snapshots of remote resources and the drafts describing
their desired state.

Drafts are supplied by the caller and stay unchanged for a sync pass.
Resources are read-only snapshots of what the platform currently holds.
Both serialize to the platform's camelCase JSON shape via ``to_dict``.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union


LocalizedString = Mapping[str, str]
Label = Union[str, LocalizedString]


def hash_key(natural_key: str) -> str:
    """
    Derive the storage key for a natural key.

    The platform limits key length and characters, so deferred drafts are
    stored under the lowercase hex SHA-1 digest of their natural key.
    """
    return hashlib.sha1(natural_key.encode("utf-8")).hexdigest()


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class CustomFieldSet:
    """
    A typed bag of custom values attached to a resource or asset.

    ``fields`` may be None when the type is set but no field map was
    supplied at all (distinct from an empty map).
    """

    type_id: str | None
    fields: Mapping[str, Any] | None = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": {"typeId": "type", "id": self.type_id}}
        if self.fields is not None:
            data["fields"] = dict(self.fields)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> CustomFieldSet | None:
        if data is None:
            return None
        type_ref = data.get("type") or {}
        fields = data.get("fields")
        return cls(
            type_id=type_ref.get("id"),
            fields=dict(fields) if fields is not None else None,
        )


@dataclass(frozen=True)
class Reference:
    """Pointer to another resource by platform id, key, or both."""

    type_id: str
    id: str | None = None
    key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"typeId": self.type_id}
        if self.id is not None:
            data["id"] = self.id
        if self.key is not None:
            data["key"] = self.key
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Reference | None:
        if data is None:
            return None
        return cls(type_id=data["typeId"], id=data.get("id"), key=data.get("key"))


@dataclass(frozen=True)
class AssetDraft:
    """Desired state of one asset inside a resource's asset list."""

    key: str | None
    name: LocalizedString | None = None
    description: LocalizedString | None = None
    sources: Sequence[Mapping[str, Any]] = ()
    tags: Sequence[str] | None = None
    custom: CustomFieldSet | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "key": self.key,
            "name": dict(self.name) if self.name is not None else None,
            "sources": [dict(source) for source in self.sources],
        }
        if self.description is not None:
            data["description"] = dict(self.description)
        if self.tags is not None:
            data["tags"] = list(self.tags)
        if self.custom is not None:
            data["custom"] = self.custom.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssetDraft:
        return cls(
            key=data.get("key"),
            name=data.get("name"),
            description=data.get("description"),
            sources=tuple(data.get("sources") or ()),
            tags=tuple(data["tags"]) if data.get("tags") is not None else None,
            custom=CustomFieldSet.from_dict(data.get("custom")),
        )


@dataclass(frozen=True)
class Asset(AssetDraft):
    """An asset that exists remotely and therefore has a platform id."""

    id: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Asset:
        draft = AssetDraft.from_dict(data)
        return cls(
            id=data.get("id", ""),
            key=draft.key,
            name=draft.name,
            description=draft.description,
            sources=draft.sources,
            tags=draft.tags,
            custom=draft.custom,
        )


@dataclass(frozen=True)
class EnumValue:
    """
    One value of an enum field definition.

    ``label`` is a plain string for plain enums and a locale mapping for
    localized enums.
    """

    key: str
    label: Label

    def to_dict(self) -> dict[str, Any]:
        label = self.label if isinstance(self.label, str) else dict(self.label)
        return {"key": self.key, "label": label}


@dataclass(frozen=True)
class ResourceDraft:
    """
    Desired state of a resource.

    ``extra`` carries resource-kind specific fields that the generic engine
    passes through without interpreting.
    """

    key: str | None
    name: LocalizedString | None = None
    description: LocalizedString | None = None
    custom: CustomFieldSet | None = None
    assets: Sequence[AssetDraft] | None = None
    parent: Reference | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"key": self.key}
        if self.name is not None:
            data["name"] = dict(self.name)
        if self.description is not None:
            data["description"] = dict(self.description)
        if self.custom is not None:
            data["custom"] = self.custom.to_dict()
        if self.assets is not None:
            data["assets"] = [asset.to_dict() for asset in self.assets]
        if self.parent is not None:
            data["parent"] = self.parent.to_dict()
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResourceDraft:
        known = {"key", "name", "description", "custom", "assets", "parent"}
        assets = data.get("assets")
        return cls(
            key=data.get("key"),
            name=data.get("name"),
            description=data.get("description"),
            custom=CustomFieldSet.from_dict(data.get("custom")),
            assets=(
                tuple(AssetDraft.from_dict(asset) for asset in assets)
                if assets is not None
                else None
            ),
            parent=Reference.from_dict(data.get("parent")),
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class Resource:
    """Read-only snapshot of a resource as stored on the platform."""

    id: str
    version: int
    key: str | None = None
    name: LocalizedString | None = None
    description: LocalizedString | None = None
    custom: CustomFieldSet | None = None
    assets: Sequence[Asset] = ()
    parent: Reference | None = None
    last_modified_at: datetime | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Resource:
        known = {
            "id",
            "version",
            "key",
            "name",
            "description",
            "custom",
            "assets",
            "parent",
            "lastModifiedAt",
        }
        return cls(
            id=data["id"],
            version=int(data.get("version", 1)),
            key=data.get("key"),
            name=data.get("name"),
            description=data.get("description"),
            custom=CustomFieldSet.from_dict(data.get("custom")),
            assets=tuple(Asset.from_dict(asset) for asset in data.get("assets") or ()),
            parent=Reference.from_dict(data.get("parent")),
            last_modified_at=_parse_datetime(data.get("lastModifiedAt")),
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class DeferredRecord:
    """
    A draft parked until the resources it references exist.

    ``missing_reference_keys`` is advisory: the store persists it but does not
    interpret it.
    """

    draft: ResourceDraft
    missing_reference_keys: frozenset[str] = frozenset()
    last_modified_at: datetime | None = None

    @property
    def natural_key(self) -> str | None:
        return self.draft.key

    @property
    def hashed_key(self) -> str:
        if not self.draft.key:
            raise ValueError("Deferred record has no natural key to hash")
        return hash_key(self.draft.key)

    def to_value(self) -> dict[str, Any]:
        """Build the JSON value persisted in the key-value store."""
        return {
            "draft": self.draft.to_dict(),
            "missingReferencedKeys": sorted(self.missing_reference_keys),
        }

    @classmethod
    def from_value(
        cls,
        value: Mapping[str, Any],
        last_modified_at: datetime | None = None,
    ) -> DeferredRecord:
        return cls(
            draft=ResourceDraft.from_dict(value["draft"]),
            missing_reference_keys=frozenset(value.get("missingReferencedKeys") or ()),
            last_modified_at=last_modified_at,
        )

    def __hash__(self) -> int:
        return hash((self.draft.key, self.missing_reference_keys))


@dataclass
class CleanupStatistics:
    """Counts gathered while sweeping stale deferred records."""

    deleted_count: int = 0
    failed_count: int = 0

    def merge(self, other: CleanupStatistics) -> CleanupStatistics:
        return CleanupStatistics(
            deleted_count=self.deleted_count + other.deleted_count,
            failed_count=self.failed_count + other.failed_count,
        )

    @property
    def report_message(self) -> str:
        return (
            f"Summary: {self.deleted_count} deferred drafts were deleted in total "
            f"({self.failed_count} failed to delete)."
        )
