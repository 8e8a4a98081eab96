"""Typed reads from parsed TOML.

tomllib hands back plain dicts of `object`. These helpers check shapes at
runtime and narrow them for the type checker, so config code never indexes
into an unchecked value.
"""

from __future__ import annotations

from typing import Mapping, cast

StrDict = dict[str, object]


def as_str_dict(obj: object) -> StrDict | None:
    """`obj` as a string-keyed dict, or None if it is anything else."""
    if not isinstance(obj, dict):
        return None
    d = cast(dict[object, object], obj)
    if any(not isinstance(k, str) for k in d):
        return None
    return cast(StrDict, d)


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """String value, stripped; None if missing, not a string, or blank.

    Blank counts as absent so that `tag = ""` means the same as no tag.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def has_wrong_type(table: Mapping[str, object], key: str, expected: type) -> bool:
    """True if `key` is present but its value is not an `expected`."""
    value = table.get(key)
    return value is not None and not isinstance(value, expected)
