"""Engine package - state transition and phase orchestration components."""

from .frozen import FrozenDict, FrozenList, freeze, thaw, canonical_json, state_digest
from .rng import DeterministicRng, Draws, LiveDraws, ReplayDraws, ForbiddenDraws
from .patch import diff, apply_patch
from .schema import validate_payload
from .context import ActionContext
from .authorization import default_authorize, check_authorized
from .reducer import ReducerExecutor, ReductionResult
from .phase_stack import PhaseStackMachine, PhaseTransition, TransitionKind
from .masking import HIDDEN, HiddenField, DeclarativeMask, MaskingProjector, identity_mask
from .listener import EngineListener, NoOpListener, CollectingListener, create_listener
from .game_engine import GameEngine
from .replay import ReplayEngine
from .observer import ObserverView

__all__ = [
    "FrozenDict",
    "FrozenList",
    "freeze",
    "thaw",
    "canonical_json",
    "state_digest",
    "DeterministicRng",
    "Draws",
    "LiveDraws",
    "ReplayDraws",
    "ForbiddenDraws",
    "diff",
    "apply_patch",
    "validate_payload",
    "ActionContext",
    "default_authorize",
    "check_authorized",
    "ReducerExecutor",
    "ReductionResult",
    "PhaseStackMachine",
    "PhaseTransition",
    "TransitionKind",
    "HIDDEN",
    "HiddenField",
    "DeclarativeMask",
    "MaskingProjector",
    "identity_mask",
    "EngineListener",
    "NoOpListener",
    "CollectingListener",
    "create_listener",
    "GameEngine",
    "ReplayEngine",
    "ObserverView",
]
