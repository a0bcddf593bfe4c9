"""
Ordered Collection Reconciler - add/remove/reorder/modify actions between an
existing ordered list of keyed items and the desired list of item drafts.

Used for asset lists and enum-value lists. The reconciler owns the matching
and ordering rules; what the actions look like for a given item kind is
delegated to an ItemActionFactory.

Ordering of the resulting action list:
    1. removals
    2. per-item modifications (in old-list order)
    3. at most one reorder action, then additions with their target index
       (or, for factories with ``reorder_after_additions``, appended
       additions followed by a reorder over the full draft order)

Old items the reconciler cannot match (no key, or a key already seen) are
pinned: they keep their current positions and are never touched.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from catalogsync.core.domain import UpdateAction, is_blank
from catalogsync.core.exceptions import BuildUpdateActionError, DuplicateKeyError

from .options import SyncOptions


OldT = TypeVar("OldT")
DraftT = TypeVar("DraftT")

# (key, item); key is None for pinned items
Entry = tuple[str | None, Any]
# (key, order id); key is None for pinned items
Slot = tuple[str | None, str]


class ItemActionFactory(ABC, Generic[OldT, DraftT]):
    """
    Capability describing one kind of ordered, keyed sub-item.

    Subclasses name the item kind (used in messages) and build the actions
    the reconciler asks for.
    """

    item_label: str = "item"

    # The platform appends added items instead of inserting them at an index.
    reorder_after_additions: bool = False

    def key_of(self, item: OldT | DraftT) -> str | None:
        """Natural key of an existing item or a draft."""
        return getattr(item, "key", None)

    @abstractmethod
    def order_id_of(self, item: OldT) -> str:
        """Identifier used in the reorder action (platform id or key)."""
        ...

    def draft_order_id_of(self, draft: DraftT) -> str:
        """Order identifier of an item that is about to be added."""
        return self.key_of(draft) or ""

    @abstractmethod
    def build_remove_action(self, item: OldT) -> UpdateAction:
        ...

    def build_remove_actions(self, items: Sequence[OldT]) -> list[UpdateAction]:
        return [self.build_remove_action(item) for item in items]

    @abstractmethod
    def build_item_actions(self, old_item: OldT, new_draft: DraftT) -> list[UpdateAction]:
        """Per-attribute actions for an item present on both sides."""
        ...

    @abstractmethod
    def build_change_order_action(self, order: list[str]) -> UpdateAction:
        ...

    @abstractmethod
    def build_add_action(self, new_draft: DraftT, position: int) -> UpdateAction:
        ...


def _fill_slots(
    slots: Sequence[Slot], keys: Sequence[str], ids_by_key: Mapping[str, str]
) -> list[Slot]:
    """Put ``keys`` into the keyed slots, in order, leaving pinned slots alone."""
    remaining = iter(keys)
    filled: list[Slot] = []
    for key, order_id in slots:
        if key is None:
            filled.append((None, order_id))
        else:
            next_key = next(remaining)
            filled.append((next_key, ids_by_key[next_key]))
    return filled


class OrderedCollectionReconciler(Generic[OldT, DraftT]):
    """
    Reconciles one ordered collection.

    Example:
        >>> reconciler = OrderedCollectionReconciler(AssetActionFactory())
        >>> actions = reconciler.build_actions(
        ...     category.assets, draft.assets, container=f"category '{category.key}'"
        ... )
    """

    def __init__(self, factory: ItemActionFactory[OldT, DraftT]) -> None:
        self.factory = factory
        self.logger = logging.getLogger("OrderedCollectionReconciler")

    def build_actions(
        self,
        old_items: Sequence[OldT],
        new_drafts: Sequence[DraftT] | None,
        *,
        container: str = "resource",
        options: SyncOptions | None = None,
        old_resource: Any = None,
        new_draft: Any = None,
    ) -> list[UpdateAction]:
        """
        Compute the ordered actions turning ``old_items`` into ``new_drafts``.

        Old items without a key are reported through the warning callback and
        left alone. Invalid drafts (blank or duplicate keys) are reported
        through the error callback and produce an empty list.

        Args:
            old_items: Items currently on the remote resource
            new_drafts: Desired items; None removes every keyed item
            container: Description of the owning resource, used in messages
            options: Sync options carrying the callbacks
            old_resource: Passed through to the callbacks
            new_draft: Passed through to the callbacks

        Returns:
            Ordered list of update actions
        """
        options = options or SyncOptions()
        label = self.factory.item_label

        entries: list[Entry] = []
        seen_old: set[str] = set()
        for item in old_items:
            key = self.factory.key_of(item)
            if key is None or is_blank(key):
                options.apply_warning_callback(
                    f"{label.capitalize()} without a key in {container} will not be synced.",
                    None,
                    old_resource,
                    new_draft,
                )
                entries.append((None, item))
            elif key in seen_old:
                options.apply_warning_callback(
                    f"{label.capitalize()} key '{key}' occurs more than once in {container}; "
                    "only the first occurrence will be synced.",
                    None,
                    old_resource,
                    new_draft,
                )
                entries.append((None, item))
            else:
                seen_old.add(key)
                entries.append((key, item))

        try:
            return self._reconcile(entries, new_drafts, container)
        except BuildUpdateActionError as e:
            options.apply_error_callback(
                f"Failed to build update actions for the {label}s of {container}. "
                f"Reason: {e.message}",
                e,
                old_resource,
                new_draft,
            )
            return []

    def _reconcile(
        self,
        entries: list[Entry],
        new_drafts: Sequence[DraftT] | None,
        container: str,
    ) -> list[UpdateAction]:
        factory = self.factory

        if new_drafts is None:
            return factory.build_remove_actions([item for key, item in entries if key is not None])

        drafts_by_key = self._index_drafts(new_drafts, container)
        survivors: dict[str, OldT] = {
            key: item for key, item in entries if key is not None and key in drafts_by_key
        }
        remaining = [(key, item) for key, item in entries if key is None or key in survivors]

        actions = factory.build_remove_actions(
            [item for key, item in entries if key is not None and key not in survivors]
        )
        for key, item in remaining:
            if key is not None:
                actions.extend(factory.build_item_actions(item, drafts_by_key[key]))

        slots: list[Slot] = [(key, factory.order_id_of(item)) for key, item in remaining]
        ids_by_key = {key: factory.order_id_of(item) for key, item in survivors.items()}
        if factory.reorder_after_additions:
            actions.extend(self._append_then_reorder(slots, ids_by_key, drafts_by_key, survivors))
        else:
            actions.extend(self._reorder_then_insert(slots, ids_by_key, drafts_by_key, survivors))

        self.logger.debug(
            f"{len(actions)} action(s) for {factory.item_label}s of {container}"
        )
        return actions

    def _reorder_then_insert(
        self,
        slots: list[Slot],
        ids_by_key: dict[str, str],
        drafts_by_key: dict[str, DraftT],
        survivors: dict[str, OldT],
    ) -> list[UpdateAction]:
        actions: list[UpdateAction] = []
        layout = _fill_slots(
            slots, [key for key in drafts_by_key if key in survivors], ids_by_key
        )
        if layout != slots:
            actions.append(self.factory.build_change_order_action([i for _, i in layout]))

        keys = [key for key, _ in layout]
        previous: str | None = None
        for key, draft in drafts_by_key.items():
            if key not in survivors:
                position = 0 if previous is None else keys.index(previous) + 1
                keys.insert(position, key)
                actions.append(self.factory.build_add_action(draft, position))
            previous = key
        return actions

    def _append_then_reorder(
        self,
        slots: list[Slot],
        ids_by_key: dict[str, str],
        drafts_by_key: dict[str, DraftT],
        survivors: dict[str, OldT],
    ) -> list[UpdateAction]:
        actions: list[UpdateAction] = []
        slots = list(slots)
        for key, draft in drafts_by_key.items():
            if key not in survivors:
                actions.append(self.factory.build_add_action(draft, len(slots)))
                ids_by_key[key] = self.factory.draft_order_id_of(draft)
                slots.append((key, ids_by_key[key]))

        layout = _fill_slots(slots, list(drafts_by_key), ids_by_key)
        if layout != slots:
            actions.append(self.factory.build_change_order_action([i for _, i in layout]))
        return actions

    def _index_drafts(self, new_drafts: Sequence[DraftT], container: str) -> dict[str, DraftT]:
        """Map drafts by key, preserving order. Keys must be present and unique."""
        label = self.factory.item_label
        drafts_by_key: dict[str, DraftT] = {}
        for index, draft in enumerate(new_drafts):
            key = self.factory.key_of(draft)
            if key is None or is_blank(key):
                raise BuildUpdateActionError(
                    f"{label.capitalize()} draft at position {index} of {container} has no key."
                )
            if key in drafts_by_key:
                raise DuplicateKeyError(
                    f"Duplicate {label} key '{key}' in {container}. "
                    f"{label.capitalize()} keys are expected to be unique.",
                    duplicate_key=key,
                )
            drafts_by_key[key] = draft
        return drafts_by_key
