"""Masking projector: per-player views of canonical state.

A mask is a pure function ``mask(state, player_id) -> view``. It always runs
on a private mutable copy, so it may edit in place and return None, or return
a new value. The result is frozen and cached per ``(version, player_id)``.
"""

import logging
from collections import OrderedDict
from typing import Any, Callable, Iterator, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from turnengine.engine.frozen import freeze, thaw

logger = logging.getLogger(__name__)

HIDDEN = "<hidden>"

MaskFunction = Callable[[Any, str], Any]


def identity_mask(state: Any, player_id: str) -> Any:
    """Every player sees everything."""
    return state


# ============================================================================
# Declarative masks
# ============================================================================


class HiddenField(BaseModel):
    """One rule of a DeclarativeMask.

    Attributes:
        path: Keys and indices from the root. A ``"*"`` segment matches every
            key of a dict (or index of a list) and binds it.
        visible_to: ``visible_to(player_id, bound)`` where ``bound`` lists the
            values matched by ``*`` segments. Defaults to "the viewer is the
            first bound key", i.e. only the owner sees their own subtree.
        keep_length: Hidden lists become lists of placeholders of the same
            length instead of a single placeholder.
        placeholder: Value substituted for hidden scalars and list items.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: tuple[Union[str, int], ...]
    visible_to: Optional[Callable[[str, list[Any]], bool]] = None
    keep_length: bool = True
    placeholder: Any = HIDDEN

    def is_visible(self, player_id: str, bound: list[Any]) -> bool:
        if self.visible_to is not None:
            return bool(self.visible_to(player_id, bound))
        return bool(bound) and bound[0] == player_id

    def conceal(self, value: Any) -> Any:
        if isinstance(value, list):
            if self.keep_length:
                return [self.placeholder] * len(value)
            return self.placeholder
        if isinstance(value, dict):
            return {key: self.conceal(item) for key, item in value.items()}
        return self.placeholder


class DeclarativeMask:
    """Mask built from HiddenField rules, applied in order.

    Paths that do not exist in a given state are skipped, so the mask is
    total over every reachable state.

    Usage:
        mask = DeclarativeMask([HiddenField(path=("players", "*", "hand"))])
    """

    def __init__(self, fields: Sequence[HiddenField]):
        self.fields = list(fields)

    def __call__(self, state: Any, player_id: str) -> Any:
        for rule in self.fields:
            for parent, key, bound in _walk(state, list(rule.path), []):
                if not rule.is_visible(player_id, bound):
                    parent[key] = rule.conceal(parent[key])
        return state


def _walk(node: Any, path: list, bound: list) -> Iterator[tuple[Any, Any, list]]:
    """Yield ``(container, key, bound)`` for every location matching ``path``."""
    if not path:
        return
    head, rest = path[0], path[1:]
    if head == "*":
        if isinstance(node, dict):
            keys: list = list(node.keys())
        elif isinstance(node, list):
            keys = list(range(len(node)))
        else:
            return
    else:
        if isinstance(node, dict) and head in node:
            keys = [head]
        elif isinstance(node, list) and isinstance(head, int) and -len(node) <= head < len(node):
            keys = [head]
        else:
            return

    for key in keys:
        now_bound = bound + [key] if head == "*" else bound
        if rest:
            yield from _walk(node[key], rest, now_bound)
        else:
            yield node, key, now_bound


# ============================================================================
# Projector
# ============================================================================


class MaskingProjector:
    """Applies a game's mask and caches the frozen result."""

    def __init__(self, mask: Optional[MaskFunction] = None, cache_size: int = 256):
        self._mask = mask or identity_mask
        self._cache_size = cache_size
        self._cache: OrderedDict[tuple[int, str], Any] = OrderedDict()

    def view(self, state: Any, player_id: str, version: Optional[int] = None) -> Any:
        """Return ``player_id``'s frozen view of ``state``.

        Args:
            state: Frozen canonical state.
            player_id: The viewer.
            version: Canonical version of ``state``; enables caching.
        """
        key = (version, player_id)
        if version is not None and key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        draft = thaw(state)
        returned = self._mask(draft, player_id)
        result = freeze(returned if returned is not None else draft)

        if version is not None and self._cache_size > 0:
            self._cache[key] = result
            if len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
        return result

    @property
    def cached(self) -> int:
        return len(self._cache)
