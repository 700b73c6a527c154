"""A general, stable ordering for mapping keys, used when printing mappings.

Ordering rules:

- None compares low
- ints, floats, strings and bytes order by <
- NaN compares less than any other float (and less than itself)
- False orders before True
- complex numbers compare real part, then imaginary part
- tuples compare element by element, then by length
- dataclass instances compare each field in turn
- frozensets compare their sorted elements as tuples do
- values of different types are ordered first by their type, then by value
- any other object compares by identity, like a machine address
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Iterator


@dataclass
class SortedMap:
    """The keys and values of a mapping, aligned and in sorted key order."""

    keys: list[Any] = field(default_factory=list)
    values: list[Any] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[tuple[Any, Any]]:
        return iter(zip(self.keys, self.values))

    def items(self) -> list[tuple[Any, Any]]:
        """Return the key/value pairs in sorted order."""
        return list(zip(self.keys, self.values))


def _ordered(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _float_compare(a: float, b: float) -> int:
    if a != a:
        return -1  # No good answer if b is also NaN, so don't check.
    if b != b:
        return 1
    return _ordered(a, b)


def _sequence_compare(a: Any, b: Any) -> int:
    for x, y in zip(a, b):
        result = compare(x, y)
        if result:
            return result
    return _ordered(len(a), len(b))


def _type_key(t: type) -> tuple[str, str, int]:
    return (t.__module__, t.__qualname__, id(t))


_compare_key = cmp_to_key(lambda a, b: compare(a, b))


def compare(a: Any, b: Any) -> int:
    """Return -1, 0 or 1 as a is less than, equal to or greater than b."""
    if a is None or b is None:
        if a is None and b is None:
            return 0
        return -1 if a is None else 1
    type_a, type_b = type(a), type(b)
    if type_a is not type_b:
        return _ordered(_type_key(type_a), _type_key(type_b))
    if isinstance(a, int):
        return _ordered(a, b)
    if isinstance(a, float):
        return _float_compare(a, b)
    if isinstance(a, complex):
        return _float_compare(a.real, b.real) or _float_compare(a.imag, b.imag)
    if isinstance(a, (str, bytes)):
        return _ordered(a, b)
    if isinstance(a, tuple):
        return _sequence_compare(a, b)
    if isinstance(a, frozenset):
        return _sequence_compare(
            sorted(a, key=_compare_key), sorted(b, key=_compare_key)
        )
    if dataclasses.is_dataclass(a):
        return _sequence_compare(
            [getattr(a, f.name) for f in dataclasses.fields(a)],
            [getattr(b, f.name) for f in dataclasses.fields(b)],
        )
    if isinstance(a, (list, dict, set, bytearray)):
        raise TypeError(f"bad type in compare: {type_a.__name__}")
    return _ordered(id(a), id(b))


def sort_map(mapping: Any) -> SortedMap | None:
    """Return the mapping's items in stable key order, or None for a non-mapping."""
    if not isinstance(mapping, Mapping):
        return None
    items = sorted(mapping.items(), key=lambda item: _compare_key(item[0]))
    return SortedMap(
        keys=[key for key, _ in items],
        values=[value for _, value in items],
    )