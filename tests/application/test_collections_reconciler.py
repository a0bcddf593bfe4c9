"""
Tests for the ordered collection reconciler.

Positioned additions are exercised with a small keyed item kind whose
actions are plain tuples, which keeps the expected actions easy to read.
Appended additions are exercised with plain enum values.
"""

from dataclasses import dataclass

import pytest

from catalogsync.application.sync import (
    ItemActionFactory,
    OrderedCollectionReconciler,
    PlainEnumValueActionFactory,
)
from catalogsync.core.domain import (
    AddEnumValue,
    ChangeEnumValueLabel,
    ChangeEnumValueOrder,
    EnumValue,
    RemoveEnumValues,
)
from catalogsync.core.exceptions import BuildUpdateActionError, DuplicateKeyError


@dataclass(frozen=True)
class Item:
    key: str | None
    label: str = ""
    id: str = ""


class ItemFactory(ItemActionFactory[Item, Item]):
    item_label = "item"

    def order_id_of(self, item):
        return item.id or f"id-{item.key}"

    def build_remove_action(self, item):
        return ("remove", item.key)

    def build_item_actions(self, old_item, new_draft):
        if old_item.label == new_draft.label:
            return []
        return [("label", old_item.key, new_draft.label)]

    def build_change_order_action(self, order):
        return ("order", tuple(order))

    def build_add_action(self, new_draft, position):
        return ("add", new_draft.key, position)


def items(*keys):
    return [Item(key) for key in keys]


def apply_item_actions(old, actions):
    """Apply tuple actions the way the platform applies positioned ones."""
    result = list(old)
    for action in actions:
        kind = action[0]
        if kind == "remove":
            result = [item for item in result if item.key != action[1] or item.key is None]
        elif kind == "label":
            result = [Item(i.key, action[2], i.id) if i.key == action[1] else i for i in result]
        elif kind == "order":
            by_id = {ItemFactory().order_id_of(item): item for item in result}
            assert sorted(action[1]) == sorted(by_id)
            result = [by_id[order_id] for order_id in action[1]]
        else:
            result.insert(action[2], Item(action[1]))
    return result


def values(*keys):
    return [EnumValue(key, key.upper()) for key in keys]


def remove(*keys):
    return RemoveEnumValues(field_name="size", keys=keys)


def add(key):
    return AddEnumValue(field_name="size", value=EnumValue(key, key.upper()))


def reorder(*keys):
    return ChangeEnumValueOrder(field_name="size", keys=keys)


@pytest.fixture
def reconciler():
    return OrderedCollectionReconciler(ItemFactory())


@pytest.fixture
def enum_reconciler():
    return OrderedCollectionReconciler(PlainEnumValueActionFactory("size"))


# =============================================================================
# Positioned additions
# =============================================================================


class TestNoChange:
    def test_identical_lists(self, reconciler):
        assert reconciler.build_actions(items("a", "b"), items("a", "b")) == []

    def test_both_empty(self, reconciler):
        assert reconciler.build_actions([], []) == []


class TestRemovals:
    def test_none_removes_everything(self, reconciler):
        assert reconciler.build_actions(items("a", "b"), None) == [
            ("remove", "a"),
            ("remove", "b"),
        ]

    def test_empty_list_removes_everything(self, reconciler):
        assert reconciler.build_actions(items("a", "b"), []) == [
            ("remove", "a"),
            ("remove", "b"),
        ]

    def test_removal_alone_does_not_reorder(self, reconciler):
        assert reconciler.build_actions(items("a", "b", "c"), items("a", "c")) == [
            ("remove", "b")
        ]


class TestAdditions:
    def test_additions_carry_draft_position(self, reconciler):
        actions = reconciler.build_actions(items("b"), items("a", "b", "c"))

        assert actions == [("add", "a", 0), ("add", "c", 2)]

    def test_add_to_empty(self, reconciler):
        assert reconciler.build_actions([], items("a")) == [("add", "a", 0)]


class TestReorder:
    def test_rotation_is_one_reorder(self, reconciler):
        actions = reconciler.build_actions(items("a", "b", "c"), items("c", "a", "b"))

        assert actions == [("order", ("id-c", "id-a", "id-b"))]

    def test_reorder_lists_only_remaining_items(self, reconciler):
        actions = reconciler.build_actions(items("a", "b", "c"), items("d", "c", "a"))

        assert actions == [("remove", "b"), ("order", ("id-c", "id-a")), ("add", "d", 0)]

    def test_action_ordering(self, reconciler):
        old = [Item("a", "A"), Item("b", "B"), Item("c", "C")]
        new = [Item("c", "C"), Item("x"), Item("a", "Alpha")]

        actions = reconciler.build_actions(old, new)

        assert actions == [
            ("remove", "b"),
            ("label", "a", "Alpha"),
            ("order", ("id-c", "id-a")),
            ("add", "x", 1),
        ]
        assert [i.key for i in apply_item_actions(old, actions)] == ["c", "x", "a"]


class TestInvalidDrafts:
    def test_duplicate_draft_keys(self, reconciler, sync_options, recorder):
        actions = reconciler.build_actions(
            items("a"), items("a", "b", "a"), container="category 'shoes'", options=sync_options
        )

        assert actions == []
        message, error = recorder.errors[0]
        assert isinstance(error, DuplicateKeyError)
        assert error.duplicate_key == "a"
        assert message.startswith("Failed to build update actions for the items of category 'shoes'.")

    def test_blank_draft_key(self, reconciler, sync_options, recorder):
        drafts = [Item("a"), Item("")]

        assert reconciler.build_actions(items("a"), drafts, options=sync_options) == []
        error = recorder.errors[0][1]
        assert type(error) is BuildUpdateActionError
        assert "position 1" in error.message


class TestPinnedOldItems:
    def test_keyless_old_item_is_skipped_with_warning(self, reconciler, sync_options, recorder):
        old = [Item(None, id="id-x"), Item("a")]

        actions = reconciler.build_actions(old, items("a", "b"), container="x", options=sync_options)

        assert actions == [("add", "b", 2)]
        assert recorder.warning_messages == ["Item without a key in x will not be synced."]

    def test_keyless_item_keeps_its_place_in_reorder(self, reconciler, sync_options):
        old = [Item(None, id="id-x"), Item("a"), Item("b")]

        actions = reconciler.build_actions(old, items("b", "a"), options=sync_options)

        assert actions == [("order", ("id-x", "id-b", "id-a"))]
        assert [i.id or i.key for i in apply_item_actions(old, actions)] == ["id-x", "b", "a"]

    def test_additions_shift_around_pinned_items(self, reconciler, sync_options):
        old = [Item("a"), Item(None, id="id-x"), Item("b")]
        new = items("b", "c", "a")

        actions = reconciler.build_actions(old, new, options=sync_options)
        result = apply_item_actions(old, actions)

        assert [i.id or i.key for i in result] == ["b", "c", "id-x", "a"]
        assert reconciler.build_actions(result, new, options=sync_options) == []

    def test_duplicate_old_keys_keep_first(self, reconciler, sync_options, recorder):
        old = [Item("a", id="a1"), Item("b"), Item("a", id="a2")]

        actions = reconciler.build_actions(old, items("b", "a"), options=sync_options)

        assert actions == [("order", ("id-b", "a1", "a2"))]
        assert len(recorder.warnings) == 1
        assert "'a'" in recorder.warning_messages[0]


# =============================================================================
# Appended additions (enum values)
# =============================================================================


class TestAppendedAdditions:
    def test_removals_are_batched(self, enum_reconciler):
        assert enum_reconciler.build_actions(values("a", "b", "c"), values("b")) == [
            remove("a", "c")
        ]

    def test_none_removes_everything_in_one_action(self, enum_reconciler):
        assert enum_reconciler.build_actions(values("a", "b"), None) == [remove("a", "b")]

    def test_appended_addition_needs_no_reorder(self, enum_reconciler):
        assert enum_reconciler.build_actions(values("a"), values("a", "b")) == [add("b")]

    def test_reorder_follows_additions_with_every_key(self, enum_reconciler):
        actions = enum_reconciler.build_actions(values("a", "b"), values("c", "a", "b"))

        assert actions == [add("c"), reorder("c", "a", "b")]

    def test_action_ordering(self, enum_reconciler):
        old = [EnumValue("a", "A"), EnumValue("b", "B"), EnumValue("c", "C")]
        new = [EnumValue("c", "C"), EnumValue("x", "X"), EnumValue("a", "Alpha")]

        actions = enum_reconciler.build_actions(old, new)

        assert actions == [
            remove("b"),
            ChangeEnumValueLabel(field_name="size", value=EnumValue("a", "Alpha")),
            add("x"),
            reorder("c", "x", "a"),
        ]

    def test_keyless_old_value_is_skipped(self, enum_reconciler, sync_options, recorder):
        old = [EnumValue("", "Blank"), EnumValue("a", "A")]

        actions = enum_reconciler.build_actions(
            old, values("a", "b"), container="x", options=sync_options
        )

        assert actions == [add("b")]
        assert recorder.warning_messages == ["Enum value without a key in x will not be synced."]
