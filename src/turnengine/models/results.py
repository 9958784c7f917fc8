"""Values returned to callers and observers of an engine."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from turnengine.models.patch import PatchOp
from turnengine.models.log import ActionLogEntry
from turnengine.models.phase import PhaseStack


class SubmitStatus(str, Enum):
    """Outcome of a submission."""

    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


class SubmitResult(BaseModel):
    """What the submitting player is told.

    Rejections carry the error code and message; canonical state is untouched.
    Duplicates carry the entry logged by the original submission.
    """

    status: SubmitStatus
    version: int
    entry: Optional[ActionLogEntry] = None
    patch: list[PatchOp] = Field(default_factory=list)
    error_code: Optional[str] = None
    error: Optional[str] = None
    field_errors: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.status == SubmitStatus.ACCEPTED

    def __bool__(self) -> bool:
        return self.status != SubmitStatus.REJECTED


class PatchStreamItem(BaseModel):
    """One step of the patch stream sent to an observer."""

    from_version: int
    to_version: int
    patch: list[PatchOp] = Field(default_factory=list)
    player_id: Optional[str] = None


class Snapshot(BaseModel):
    """Full state at a version, used to (re)initialize an observer."""

    version: int
    state: Any
    phases: PhaseStack
    player_id: Optional[str] = None

    @property
    def terminated(self) -> bool:
        return self.phases.terminated
