"""Patch operation model shared by the engine and observers."""

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field

PathSegment = Union[str, int]


class PatchOpKind(str, Enum):
    """Kinds of patch operation."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class PatchOp(BaseModel):
    """One change inside a patch.

    ``path`` addresses dict keys and list indices from the root; an empty
    path addresses the whole state.
    """

    op: PatchOpKind
    path: list[PathSegment] = Field(default_factory=list)
    value: Any = None

    def __str__(self) -> str:
        path = "/" + "/".join(str(p) for p in self.path)
        if self.op == PatchOpKind.REMOVE:
            return f"{self.op.value} {path}"
        return f"{self.op.value} {path} = {self.value!r}"


Patch = list[PatchOp]
