"""Helpers for safely working with dynamic (untyped) structures.

Use these at boundaries where TOML or JSON is ingested. They validate at
runtime and narrow types for the checker.
"""

from __future__ import annotations

import re
from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

__all__ = [
    "StrDict",
    "as_str_dict",
    "get_bool",
    "get_str",
    "get_str_list",
    "get_table",
    "is_str_dict",
    "normalize_keys",
    "snake_case",
]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    """Return obj as StrDict if it matches, else None."""
    if is_str_dict(obj):
        return obj
    return None


def snake_case(key: str) -> str:
    """``pushRepo`` -> ``push_repo``; snake_case input is returned unchanged."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def normalize_keys(table: Mapping[str, object]) -> StrDict:
    """Return a shallow copy of ``table`` with snake_case keys."""
    return {snake_case(k): v for k, v in table.items()}


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value, stripped. None if missing, not a str, or blank."""
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    """Get a boolean value. None if missing or not a bool."""
    value = table.get(key)
    if isinstance(value, bool):
        return value
    return None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table (dict with string keys)."""
    return as_str_dict(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> tuple[str, ...] | None:
    """Get a list of strings. A single string is treated as a one-item list."""
    value = table.get(key)
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    if not isinstance(value, list):
        return None
    items = cast(list[object], value)
    return tuple(item for item in items if isinstance(item, str))
