"""Structural diffs between two state trees.

A patch is an ordered list of PatchOp. Applying the patches of consecutive
versions one after another is equivalent to jumping straight to the last
version.
"""

from typing import Any

from turnengine.engine.frozen import freeze, same_value, thaw
from turnengine.models.patch import Patch, PatchOp, PatchOpKind, PathSegment


def diff(old: Any, new: Any) -> Patch:
    """Compute the patch turning ``old`` into ``new``."""
    ops: Patch = []
    _diff(old, new, [], ops)
    return ops


def _diff(old: Any, new: Any, path: list[PathSegment], ops: Patch) -> None:
    if isinstance(old, dict) and isinstance(new, dict):
        for key in old:
            if key not in new:
                ops.append(PatchOp(op=PatchOpKind.REMOVE, path=path + [key]))
        for key, value in new.items():
            if key not in old:
                ops.append(PatchOp(op=PatchOpKind.ADD, path=path + [key], value=thaw(value)))
            else:
                _diff(old[key], value, path + [key], ops)
        return

    if isinstance(old, list) and isinstance(new, list):
        common = min(len(old), len(new))
        for i in range(common):
            _diff(old[i], new[i], path + [i], ops)
        # Trailing removals go from the end so earlier indices stay valid
        for i in reversed(range(common, len(old))):
            ops.append(PatchOp(op=PatchOpKind.REMOVE, path=path + [i]))
        for i in range(common, len(new)):
            ops.append(PatchOp(op=PatchOpKind.ADD, path=path + [i], value=thaw(new[i])))
        return

    if not same_value(old, new):
        ops.append(PatchOp(op=PatchOpKind.REPLACE, path=list(path), value=thaw(new)))


def apply_patch(state: Any, patch: Patch) -> Any:
    """Apply a patch and return the resulting frozen state.

    The input is not modified. Raises ValueError when an operation does not fit
    the state it is applied to.
    """
    document = thaw(state)
    for op in patch:
        document = _apply_op(document, op)
    return freeze(document)


def _apply_op(document: Any, op: PatchOp) -> Any:
    if not op.path:
        if op.op == PatchOpKind.REMOVE:
            raise ValueError("cannot remove the document root")
        return thaw(op.value)

    parent = document
    for segment in op.path[:-1]:
        parent = _child(parent, segment, op)
    last = op.path[-1]

    if isinstance(parent, dict):
        if op.op == PatchOpKind.ADD:
            parent[last] = thaw(op.value)
        elif last not in parent:
            raise ValueError(f"{op}: key {last!r} does not exist")
        elif op.op == PatchOpKind.REMOVE:
            del parent[last]
        else:
            parent[last] = thaw(op.value)
    elif isinstance(parent, list):
        if not isinstance(last, int):
            raise ValueError(f"{op}: list index must be an int")
        if op.op == PatchOpKind.ADD:
            if not 0 <= last <= len(parent):
                raise ValueError(f"{op}: index {last} out of range")
            parent.insert(last, thaw(op.value))
        elif not 0 <= last < len(parent):
            raise ValueError(f"{op}: index {last} out of range")
        elif op.op == PatchOpKind.REMOVE:
            del parent[last]
        else:
            parent[last] = thaw(op.value)
    else:
        raise ValueError(f"{op}: cannot address into {type(parent).__name__}")
    return document


def _child(container: Any, segment: PathSegment, op: PatchOp) -> Any:
    try:
        return container[segment]
    except (KeyError, IndexError, TypeError):
        raise ValueError(f"{op}: path segment {segment!r} not found") from None
