"""
Structural equality for JSON-like values.

Custom field values arrive from two places: the platform's JSON responses
and caller-built drafts. The same logical value may therefore differ in
key order or number formatting (``1`` vs ``1.0``, ``Decimal("2.50")`` vs
``2.5``), and both must compare equal.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any


@dataclass(frozen=True)
class _Number:
    """Numeric leaf, kept apart from bools (``True == 1`` in Python)."""

    value: Decimal | str


def _to_number(value: int | float | Decimal) -> _Number:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return _Number(repr(value))
        return _Number(Decimal(repr(value)))
    try:
        return _Number(Decimal(value))
    except InvalidOperation:  # pragma: no cover
        return _Number(str(value))


def normalize_json(value: Any) -> Any:
    """
    Convert a JSON-like value into a canonical, order-insensitive form.

    Objects become dicts of normalized values (dict equality already ignores
    key order), arrays keep their order, and numbers are compared by value.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, float, Decimal)):
        return _to_number(value)
    if isinstance(value, Mapping):
        return {str(k): normalize_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_json(item) for item in value]
    return value


def json_equals(left: Any, right: Any) -> bool:
    """Return True if two JSON-like values are structurally equal."""
    return normalize_json(left) == normalize_json(right)


def is_blank(value: str | None) -> bool:
    """Check whether a string is None, empty or whitespace only."""
    return value is None or not value.strip()
