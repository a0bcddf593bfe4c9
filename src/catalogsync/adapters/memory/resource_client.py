"""
In-memory resource client for tests and offline runs.

Behaves like the platform where the sync engine can tell the difference:
resources are versioned, stale versions are rejected with a conflict,
key references are stored as id references, and update actions are
applied in order.
"""

from __future__ import annotations

import dataclasses
import re
import uuid
from collections import Counter, defaultdict
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from catalogsync.core.domain import (
    AddAsset,
    Asset,
    AssetDraft,
    ChangeAssetName,
    ChangeAssetOrder,
    ChangeName,
    ChangeOrderHint,
    ChangeParent,
    ChangeSlug,
    CustomFieldSet,
    Reference,
    RemoveAsset,
    Resource,
    ResourceDraft,
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
from catalogsync.core.exceptions import (
    BadRequestError,
    ConcurrentModificationError,
    ResourceNotFoundError,
)
from catalogsync.core.ports import PagedResult, ResourceClientPort


_IN_PREDICATE = re.compile(r'^\s*(\w+)\s+in\s+\((.*)\)\s*$', re.DOTALL)
_QUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_asset(draft: AssetDraft) -> Asset:
    return Asset(
        id=str(uuid.uuid4()),
        key=draft.key,
        name=draft.name,
        description=draft.description,
        sources=tuple(draft.sources),
        tags=draft.tags,
        custom=draft.custom,
    )


def _with_custom_field(custom: CustomFieldSet | None, name: str, value: Any) -> CustomFieldSet:
    if custom is None:
        raise BadRequestError(f"Cannot set custom field '{name}' without a custom type")
    fields = dict(custom.fields or {})
    if value is None:
        fields.pop(name, None)
    else:
        fields[name] = value
    return CustomFieldSet(type_id=custom.type_id, fields=fields)


def _custom_type(type_id: str | None, fields: Any) -> CustomFieldSet | None:
    if type_id is None:
        return None
    return CustomFieldSet(type_id=type_id, fields=dict(fields) if fields is not None else {})


class InMemoryResourceClient(ResourceClientPort):
    """
    Dict-backed ResourceClientPort.

    Failures can be scripted per method with ``inject_failure`` to exercise
    retry and conflict handling.
    """

    def __init__(
        self,
        resource_type: str = "category",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._resource_type = resource_type
        self._clock = clock or _utcnow
        self._resources: dict[str, Resource] = {}
        self._failures: defaultdict[str, list[BaseException]] = defaultdict(list)
        self.call_counts: Counter[str] = Counter()

    @property
    def resource_type(self) -> str:
        return self._resource_type

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def inject_failure(self, method: str, error: BaseException, times: int = 1) -> None:
        """Make the next ``times`` calls of ``method`` raise ``error``."""
        self._failures[method].extend([error] * times)

    def add_resource(self, resource: Resource) -> None:
        self._resources[resource.id] = resource

    def resources(self) -> list[Resource]:
        return sorted(self._resources.values(), key=lambda r: (r.key or "", r.id))

    def get_by_key(self, key: str) -> Resource | None:
        return next((r for r in self._resources.values() if r.key == key), None)

    def _record_call(self, method: str) -> None:
        self.call_counts[method] += 1
        if self._failures[method]:
            raise self._failures[method].pop(0)

    # -------------------------------------------------------------------------
    # ResourceClientPort
    # -------------------------------------------------------------------------

    async def query(
        self,
        predicate: str | None = None,
        *,
        limit: int = 500,
        offset: int = 0,
    ) -> PagedResult[Resource]:
        self._record_call("query")
        matching = [r for r in self.resources() if self._matches(r, predicate)]
        return PagedResult(
            results=matching[offset : offset + limit], offset=offset, total=len(matching)
        )

    async def fetch_by_keys(self, keys: Sequence[str]) -> list[Resource]:
        self._record_call("fetch_by_keys")
        wanted = set(keys)
        return [r for r in self.resources() if r.key in wanted]

    async def fetch_by_ids(self, ids: Sequence[str]) -> list[Resource]:
        self._record_call("fetch_by_ids")
        return [self._resources[i] for i in ids if i in self._resources]

    async def create(self, draft: ResourceDraft) -> Resource:
        self._record_call("create")
        if draft.key and self.get_by_key(draft.key) is not None:
            raise BadRequestError(
                f"A {self._resource_type} with key '{draft.key}' already exists",
                resource_key=draft.key,
                status_code=400,
            )
        resource = Resource(
            id=str(uuid.uuid4()),
            version=1,
            key=draft.key,
            name=draft.name,
            description=draft.description,
            custom=draft.custom,
            assets=tuple(_new_asset(asset) for asset in draft.assets or ()),
            parent=self._to_id_reference(draft.parent),
            last_modified_at=self._clock(),
            extra=dict(draft.extra),
        )
        self._resources[resource.id] = resource
        return resource

    async def update(self, resource: Resource, actions: Sequence[UpdateAction]) -> Resource:
        self._record_call("update")
        current = self._current(resource)
        updated = current
        for action in actions:
            updated = self._apply(updated, action)
        updated = dataclasses.replace(
            updated, version=current.version + 1, last_modified_at=self._clock()
        )
        self._resources[updated.id] = updated
        return updated

    async def delete(self, resource: Resource) -> Resource:
        self._record_call("delete")
        current = self._current(resource)
        del self._resources[current.id]
        return current

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _current(self, resource: Resource) -> Resource:
        current = self._resources.get(resource.id)
        if current is None:
            raise ResourceNotFoundError(
                f"{self._resource_type} '{resource.key}' not found",
                resource_key=resource.key,
                status_code=404,
            )
        if current.version != resource.version:
            raise ConcurrentModificationError(
                f"Version mismatch for {self._resource_type} '{resource.key}': "
                f"expected {resource.version}, current {current.version}",
                resource_key=resource.key,
                current_version=current.version,
            )
        return current

    @staticmethod
    def _matches(resource: Resource, predicate: str | None) -> bool:
        if predicate is None:
            return True
        match = _IN_PREDICATE.match(predicate)
        if match is None:
            raise BadRequestError(f"Unsupported predicate: {predicate}", status_code=400)
        field_name, raw_values = match.groups()
        values = {v.replace('\\"', '"').replace("\\\\", "\\") for v in _QUOTED.findall(raw_values)}
        return getattr(resource, field_name, None) in values

    def _to_id_reference(self, reference: Reference | None) -> Reference | None:
        if reference is None or reference.id is not None:
            return reference
        if reference.type_id != self._resource_type:
            return reference
        target = self.get_by_key(reference.key or "")
        if target is None:
            raise BadRequestError(
                f"Referenced {reference.type_id} '{reference.key}' does not exist",
                resource_key=reference.key,
                status_code=400,
            )
        return Reference(type_id=reference.type_id, id=target.id)

    def _apply(self, resource: Resource, action: UpdateAction) -> Resource:
        replace = dataclasses.replace

        if isinstance(action, ChangeName):
            return replace(resource, name=action.name)
        if isinstance(action, SetDescription):
            return replace(resource, description=action.description)
        if isinstance(action, ChangeSlug):
            return replace(resource, extra={**resource.extra, "slug": action.slug})
        if isinstance(action, ChangeOrderHint):
            return replace(resource, extra={**resource.extra, "orderHint": action.order_hint})
        if isinstance(action, ChangeParent):
            return replace(resource, parent=self._to_id_reference(action.parent))
        if isinstance(action, SetCustomType):
            return replace(resource, custom=_custom_type(action.type_id, action.fields))
        if isinstance(action, SetCustomField):
            return replace(
                resource, custom=_with_custom_field(resource.custom, action.name, action.value)
            )
        if isinstance(action, ChangeAssetOrder):
            return replace(resource, assets=self._reorder_assets(resource, action.asset_order))
        if isinstance(action, AddAsset):
            if action.asset is None:
                raise BadRequestError("addAsset requires an asset", status_code=400)
            assets = list(resource.assets)
            position = len(assets) if action.position is None else action.position
            assets.insert(position, _new_asset(action.asset))
            return replace(resource, assets=tuple(assets))
        if isinstance(action, RemoveAsset):
            index = self._asset_index(resource, action.asset_key)
            assets = list(resource.assets)
            del assets[index]
            return replace(resource, assets=tuple(assets))
        if isinstance(
            action,
            (
                ChangeAssetName,
                SetAssetDescription,
                SetAssetSources,
                SetAssetTags,
                SetAssetCustomType,
                SetAssetCustomField,
            ),
        ):
            index = self._asset_index(resource, action.asset_key)
            assets = list(resource.assets)
            assets[index] = self._apply_to_asset(assets[index], action)
            return replace(resource, assets=tuple(assets))

        raise BadRequestError(f"Unsupported update action '{action.action}'", status_code=400)

    @staticmethod
    def _apply_to_asset(asset: Asset, action: UpdateAction) -> Asset:
        replace = dataclasses.replace
        if isinstance(action, ChangeAssetName):
            return replace(asset, name=action.name)
        if isinstance(action, SetAssetDescription):
            return replace(asset, description=action.description)
        if isinstance(action, SetAssetSources):
            return replace(asset, sources=tuple(action.sources))
        if isinstance(action, SetAssetTags):
            return replace(asset, tags=action.tags)
        if isinstance(action, SetAssetCustomType):
            return replace(asset, custom=_custom_type(action.type_id, action.fields))
        if isinstance(action, SetAssetCustomField):
            return replace(
                asset, custom=_with_custom_field(asset.custom, action.name, action.value)
            )
        raise BadRequestError(f"Unsupported asset action '{action.action}'", status_code=400)

    @staticmethod
    def _asset_index(resource: Resource, asset_key: str) -> int:
        for index, asset in enumerate(resource.assets):
            if asset.key == asset_key:
                return index
        raise BadRequestError(
            f"Asset '{asset_key}' not found on '{resource.key}'",
            resource_key=resource.key,
            status_code=400,
        )

    @staticmethod
    def _reorder_assets(resource: Resource, order: Sequence[str]) -> tuple[Asset, ...]:
        by_id = {asset.id: asset for asset in resource.assets}
        if sorted(order) != sorted(by_id):
            raise BadRequestError(
                f"Asset order of '{resource.key}' must contain every asset id exactly once",
                resource_key=resource.key,
                status_code=400,
            )
        return tuple(by_id[asset_id] for asset_id in order)
