"""Frozen state containers and canonical serialization.

Canonical state is a JSON-like tree. Once committed it is frozen: FrozenDict
and FrozenList refuse in-place mutation, so observers holding a reference can
never see a later transition. ``thaw()`` (or ``copy.deepcopy``) returns a plain
mutable copy which reducers use as their draft.
"""

import hashlib
import json
import math
from typing import Any

from pydantic import BaseModel


def _immutable(self, *args, **kwargs):
    raise TypeError(f"{type(self).__name__} is immutable; thaw() it to get a mutable draft")


class FrozenDict(dict):
    """Read-only dict. Equality and JSON encoding behave like a plain dict."""

    __setitem__ = _immutable
    __delitem__ = _immutable
    __ior__ = _immutable
    clear = _immutable
    pop = _immutable
    popitem = _immutable
    setdefault = _immutable
    update = _immutable

    def __copy__(self) -> dict:
        return dict(self)

    def __deepcopy__(self, memo) -> dict:
        return thaw(self)

    def __reduce__(self):
        return (FrozenDict, (dict(self),))

    def __repr__(self) -> str:
        return f"FrozenDict({dict.__repr__(self)})"


class FrozenList(list):
    """Read-only list. Equality and JSON encoding behave like a plain list."""

    __setitem__ = _immutable
    __delitem__ = _immutable
    __iadd__ = _immutable
    __imul__ = _immutable
    append = _immutable
    extend = _immutable
    insert = _immutable
    pop = _immutable
    remove = _immutable
    clear = _immutable
    sort = _immutable
    reverse = _immutable

    def __copy__(self) -> list:
        return list(self)

    def __deepcopy__(self, memo) -> list:
        return thaw(self)

    def __reduce__(self):
        return (FrozenList, (list(self),))

    def __repr__(self) -> str:
        return f"FrozenList({list.__repr__(self)})"


def freeze(value: Any, _path: str = "$") -> Any:
    """Convert a JSON-like value into its frozen form.

    Tuples become lists and pydantic models are dumped in JSON mode. Values
    without a deterministic JSON form (sets, NaN, arbitrary objects, non-string
    keys) raise TypeError naming the offending path.
    """
    if isinstance(value, (FrozenDict, FrozenList)):
        return value
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise TypeError(f"non-finite float at {_path}")
        return value
    if isinstance(value, BaseModel):
        return freeze(value.model_dump(mode="json"), _path)
    if isinstance(value, dict):
        frozen = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"non-string key {key!r} at {_path}")
            frozen[key] = freeze(item, f"{_path}.{key}")
        return FrozenDict(frozen)
    if isinstance(value, (list, tuple)):
        return FrozenList(freeze(item, f"{_path}[{i}]") for i, item in enumerate(value))
    raise TypeError(f"unsupported state value of type {type(value).__name__} at {_path}")


def thaw(value: Any) -> Any:
    """Return a plain, fully mutable deep copy of a (possibly frozen) value."""
    if isinstance(value, dict):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def same_value(a: Any, b: Any) -> bool:
    """Strict structural equality: ``1``, ``1.0`` and ``True`` all differ."""
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(same_value(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        if len(a) != len(b):
            return False
        return all(same_value(x, y) for x, y in zip(a, b))
    if isinstance(a, (dict, list)) or isinstance(b, (dict, list)):
        return False
    return type(a) is type(b) and a == b


def canonical_json(value: Any) -> str:
    """Deterministic JSON text for a state tree (sorted keys, no whitespace)."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def state_digest(value: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()
