"""Identifier parsing helpers."""

from __future__ import annotations

from typing import Any


def parse_numeric_id(value: Any) -> int | None:
    """Return *value* as a non-negative int, or None if it is not a numeric id.

    Accepts ints (but not bools) and strings of ASCII digits such as ``"42"``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return None


def parse_positive_id(value: Any) -> int | None:
    """Like :func:`parse_numeric_id` but rejects zero."""
    parsed = parse_numeric_id(value)
    if parsed is None or parsed == 0:
        return None
    return parsed
