"""turnengine - deterministic, authoritative engine for turn-based games."""

from turnengine.engine import (
    ActionContext,
    CollectingListener,
    DeclarativeMask,
    GameEngine,
    HiddenField,
    NoOpListener,
    ObserverView,
    ReplayEngine,
)
from turnengine.errors import (
    ActionRejected,
    EngineError,
    IllegalInPhase,
    ReducerFault,
    ReplayDivergence,
    SchemaInvalid,
    Unauthorized,
)
from turnengine.models import (
    ActionSubmission,
    GameBuilder,
    GameDefinition,
    ReplayLog,
    SubmitStatus,
)

__version__ = "0.1.0"

__all__ = [
    "ActionContext",
    "CollectingListener",
    "DeclarativeMask",
    "GameEngine",
    "HiddenField",
    "NoOpListener",
    "ObserverView",
    "ReplayEngine",
    "ActionRejected",
    "EngineError",
    "IllegalInPhase",
    "ReducerFault",
    "ReplayDivergence",
    "SchemaInvalid",
    "Unauthorized",
    "ActionSubmission",
    "GameBuilder",
    "GameDefinition",
    "ReplayLog",
    "SubmitStatus",
]
