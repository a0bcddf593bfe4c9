"""
Helpers shared by the per-attribute action builders.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from catalogsync.core.domain import UpdateAction, json_equals


A = TypeVar("A", bound=UpdateAction)


def build_update_action(
    old_value: Any,
    new_value: Any,
    action_supplier: Callable[[], A],
) -> A | None:
    """
    Build an action only if the two values differ.

    Values are compared structurally (see ``json_equals``), so an absent
    value equals None and ``1 == 1.0``.
    """
    if json_equals(old_value, new_value):
        return None
    return action_supplier()


def build_update_actions(*candidates: UpdateAction | None) -> list[UpdateAction]:
    """Collect the non-None results of several ``build_update_action`` calls."""
    return [action for action in candidates if action is not None]
