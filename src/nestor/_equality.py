"""Shallow equality shared by bridges and composed contexts.

Two values are shallow-equal when they are the same object, equal atomic
values, or containers of the same type whose members are pairwise
identical (or equal atomic values).  Nested containers are compared by
identity, never recursively.
"""

from collections.abc import Mapping
from typing import Any

_ATOMIC = (int, float, complex, str, bytes, bool, type(None))


def _same(a: Any, b: Any) -> bool:
    if a is b:
        return True
    if isinstance(a, _ATOMIC) and type(a) is type(b):
        # NaN counts as equal to NaN.
        return a == b or (a != a and b != b)
    return False


def shallow_equal(a: Any, b: Any) -> bool:
    """Compare two values one level deep."""
    if _same(a, b):
        return True
    if type(a) is not type(b):
        return False

    if isinstance(a, Mapping):
        if len(a) != len(b):
            return False
        for key, value in a.items():
            if key not in b or not _same(value, b[key]):
                return False
        return True

    if isinstance(a, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(_same(x, y) for x, y in zip(a, b, strict=True))

    return False
