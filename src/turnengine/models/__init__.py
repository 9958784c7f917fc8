"""Models package."""

from turnengine.models.action import (
    ActionDefinition,
    ActionSubmission,
    EmptyPayload,
)
from turnengine.models.phase import (
    PhaseDefinition,
    PhaseFrame,
    PhaseStack,
    PhaseRequest,
    PhaseRequestKind,
    everyone,
    round_robin,
    all_required_acted,
)
from turnengine.models.game import GameDefinition, GameBuilder
from turnengine.models.patch import Patch, PatchOp, PatchOpKind
from turnengine.models.log import ActionLogEntry, EntryKind, ReplayLog
from turnengine.models.results import (
    SubmitStatus,
    SubmitResult,
    PatchStreamItem,
    Snapshot,
)

__all__ = [
    "ActionDefinition",
    "ActionSubmission",
    "EmptyPayload",
    "PhaseDefinition",
    "PhaseFrame",
    "PhaseStack",
    "PhaseRequest",
    "PhaseRequestKind",
    "everyone",
    "round_robin",
    "all_required_acted",
    "GameDefinition",
    "GameBuilder",
    "Patch",
    "PatchOp",
    "PatchOpKind",
    "ActionLogEntry",
    "EntryKind",
    "ReplayLog",
    "SubmitStatus",
    "SubmitResult",
    "PatchStreamItem",
    "Snapshot",
]
