"""
Property-based tests for the diff engines.

Tests invariants for:
- Structural JSON equality
- Custom field diffs (applying the actions reaches the desired state)
- Asset and enum value list reconciliation (one pass converges, a second
  pass is empty)
"""

import asyncio

from hypothesis import given, settings
from hypothesis import strategies as st

from catalogsync.adapters.memory import InMemoryResourceClient
from catalogsync.application.sync import (
    ResourceCustomActionBuilder,
    build_asset_actions,
    build_custom_update_actions,
    build_enum_value_actions,
)
from catalogsync.core.domain import (
    AddEnumValue,
    AssetDraft,
    ChangeEnumValueLabel,
    ChangeEnumValueOrder,
    CustomFieldSet,
    EnumValue,
    RemoveEnumValues,
    ResourceDraft,
    SetCustomField,
    json_equals,
)


json_leaves = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-10_000, max_value=10_000),
    st.text(max_size=5),
)
json_values = st.recursive(
    json_leaves,
    lambda children: st.one_of(
        st.lists(children, max_size=3),
        st.dictionaries(st.text(max_size=3), children, max_size=3),
    ),
    max_leaves=10,
)
field_maps = st.dictionaries(st.sampled_from("abcdef"), json_values, max_size=6)
unique_keys = st.lists(st.sampled_from("abcdefgh"), unique=True, max_size=8)


# =============================================================================
# JSON equality
# =============================================================================


class TestJsonEqualsProperties:
    @given(json_values)
    def test_reflexive(self, value):
        assert json_equals(value, value)

    @given(st.integers(min_value=-(2**53), max_value=2**53))
    def test_int_equals_float(self, number):
        assert json_equals(number, float(number))

    @given(st.dictionaries(st.text(max_size=3), json_values, max_size=5))
    def test_key_order_irrelevant(self, mapping):
        reversed_mapping = dict(reversed(list(mapping.items())))
        assert json_equals(mapping, reversed_mapping)


# =============================================================================
# Custom fields
# =============================================================================


def _apply_field_actions(fields, actions):
    result = {name: value for name, value in fields.items() if value is not None}
    for action in actions:
        assert isinstance(action, SetCustomField)
        if action.value is None:
            result.pop(action.name, None)
        else:
            result[action.name] = action.value
    return result


class TestCustomFieldDiffProperties:
    @given(field_maps, field_maps)
    def test_applying_actions_reaches_new_fields(self, old_fields, new_fields):
        builder = ResourceCustomActionBuilder()
        old = CustomFieldSet(type_id="t", fields=old_fields)
        new = CustomFieldSet(type_id="t", fields=new_fields)

        actions = build_custom_update_actions(old, new, builder)
        applied = _apply_field_actions(old_fields, actions)

        expected = {name: value for name, value in new_fields.items() if value is not None}
        assert json_equals(applied, expected)
        assert build_custom_update_actions(
            CustomFieldSet(type_id="t", fields=applied), new, builder
        ) == []

    @given(field_maps)
    def test_identical_sets_produce_nothing(self, fields):
        custom = CustomFieldSet(type_id="t", fields=fields)

        assert build_custom_update_actions(custom, custom, ResourceCustomActionBuilder()) == []

    @given(field_maps, field_maps)
    def test_at_most_one_action_per_field(self, old_fields, new_fields):
        actions = build_custom_update_actions(
            CustomFieldSet(type_id="t", fields=old_fields),
            CustomFieldSet(type_id="t", fields=new_fields),
            ResourceCustomActionBuilder(),
        )

        names = [action.name for action in actions]
        assert len(names) == len(set(names))


# =============================================================================
# Ordered collections
# =============================================================================


def _asset_draft(key, label="v1"):
    return AssetDraft(key=key, name={"en": f"{key} {label}"}, sources=({"uri": f"{key}.png"},))


async def _converge(old_keys, new_keys, renamed):
    client = InMemoryResourceClient()
    resource = await client.create(
        ResourceDraft(key="r", assets=tuple(_asset_draft(k) for k in old_keys))
    )
    drafts = [_asset_draft(k, "v2" if k in renamed else "v1") for k in new_keys]

    actions = build_asset_actions(resource.assets, drafts)
    updated = await client.update(resource, actions) if actions else resource
    return actions, updated, build_asset_actions(updated.assets, drafts)


class TestAssetReconcilerProperties:
    @settings(max_examples=60, deadline=None)
    @given(unique_keys, unique_keys, st.sets(st.sampled_from("abcdefgh")))
    def test_one_pass_converges(self, old_keys, new_keys, renamed):
        actions, updated, second_pass = asyncio.run(_converge(old_keys, new_keys, renamed))

        assert [asset.key for asset in updated.assets] == new_keys
        assert second_pass == []

    @settings(max_examples=60, deadline=None)
    @given(unique_keys)
    def test_any_permutation_is_at_most_one_reorder(self, keys):
        old = [EnumValue(k, k) for k in keys]
        new = list(reversed(old))

        actions = build_enum_value_actions("f", old, new)

        assert len([a for a in actions if isinstance(a, ChangeEnumValueOrder)]) <= 1
        assert all(isinstance(a, ChangeEnumValueOrder) for a in actions)
        assert (actions == []) == (old == new)


def _apply_enum_actions(values, actions):
    """Apply enum actions the way the platform does: additions are appended."""
    result = list(values)
    for action in actions:
        if isinstance(action, RemoveEnumValues):
            result = [value for value in result if value.key not in action.keys]
        elif isinstance(action, ChangeEnumValueLabel):
            result = [action.value if v.key == action.value.key else v for v in result]
        elif isinstance(action, AddEnumValue):
            result.append(action.value)
        else:
            assert isinstance(action, ChangeEnumValueOrder)
            by_key = {value.key: value for value in result}
            assert sorted(action.keys) == sorted(by_key)
            result = [by_key[key] for key in action.keys]
    return result


class TestEnumValueReconcilerProperties:
    @settings(max_examples=100)
    @given(unique_keys, unique_keys, st.sets(st.sampled_from("abcdefgh")))
    def test_one_pass_converges(self, old_keys, new_keys, relabelled):
        old = [EnumValue(k, k) for k in old_keys]
        new = [EnumValue(k, k.upper() if k in relabelled else k) for k in new_keys]

        actions = build_enum_value_actions("f", old, new)
        applied = _apply_enum_actions(old, actions)

        assert applied == new
        assert build_enum_value_actions("f", applied, new) == []

    @given(unique_keys, unique_keys)
    def test_at_most_one_removal_and_one_reorder(self, old_keys, new_keys):
        actions = build_enum_value_actions(
            "f", [EnumValue(k, k) for k in old_keys], [EnumValue(k, k) for k in new_keys]
        )

        assert len([a for a in actions if isinstance(a, RemoveEnumValues)]) <= 1
        assert len([a for a in actions if isinstance(a, ChangeEnumValueOrder)]) <= 1
        if any(isinstance(a, ChangeEnumValueOrder) for a in actions):
            assert isinstance(actions[-1], ChangeEnumValueOrder)
