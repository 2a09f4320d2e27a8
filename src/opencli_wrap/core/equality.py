"""Structural equality and summary hashing for the spec model.

One utility serves every entity of the command tree (spec, command,
option, argument, ...).  Entities are dataclasses; their fields are
compared recursively:

* scalars by exact type and value (``1`` never equals ``True``),
* mappings by identical key sets and equal values, ignoring order,
* sequences by length and position-wise equality,
* nested dataclasses recursively.

:func:`structural_hash` is deliberately cheap: scalars and nested
dataclasses contribute their values, containers only their length.
Equal values always hash equal; unequal values may collide, so
equality stays the final authority.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from typing import Any


def _is_entity(value: object) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def structural_equals(left: object, right: object) -> bool:
    """Return ``True`` when *left* and *right* are recursively value-equal."""
    if left is right:
        return True

    if _is_entity(left) or _is_entity(right):
        if type(left) is not type(right):
            return False
        return all(
            structural_equals(getattr(left, f.name), getattr(right, f.name))
            for f in dataclasses.fields(left)  # type: ignore[arg-type]
        )

    if isinstance(left, Mapping) or isinstance(right, Mapping):
        if not (isinstance(left, Mapping) and isinstance(right, Mapping)):
            return False
        if left.keys() != right.keys():
            return False
        return all(structural_equals(left[key], right[key]) for key in left)

    if _is_sequence(left) or _is_sequence(right):
        if not (_is_sequence(left) and _is_sequence(right)):
            return False
        assert isinstance(left, Sequence) and isinstance(right, Sequence)
        if len(left) != len(right):
            return False
        return all(structural_equals(a, b) for a, b in zip(left, right))

    return type(left) is type(right) and left == right


def structural_hash(value: object) -> int:
    """Return a summary hash consistent with :func:`structural_equals`."""
    return hash(_summary(value))


def _summary(value: object) -> Any:
    if _is_entity(value):
        return (
            type(value).__name__,
            *(_field_summary(getattr(value, f.name)) for f in dataclasses.fields(value)),  # type: ignore[arg-type]
        )
    return _field_summary(value)


def _field_summary(value: object) -> Any:
    if _is_entity(value):
        return _summary(value)
    if isinstance(value, Mapping) or _is_sequence(value):
        return len(value)  # type: ignore[arg-type]
    return (type(value).__name__, value)


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))
