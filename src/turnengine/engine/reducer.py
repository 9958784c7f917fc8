"""Reducer executor: draft, reduce, freeze, diff."""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from turnengine.engine.context import ActionContext
from turnengine.engine.frozen import freeze, thaw
from turnengine.engine.patch import diff
from turnengine.errors import ReducerFault, ReplayDivergence
from turnengine.models.action import ActionDefinition
from turnengine.models.patch import PatchOp
from turnengine.models.phase import PhaseRequest

logger = logging.getLogger(__name__)


class ReductionResult(BaseModel):
    """Output of one reducer run, not yet committed."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: Any
    patch: list[PatchOp] = Field(default_factory=list)
    draws: list[float] = Field(default_factory=list)
    phase_requests: list[PhaseRequest] = Field(default_factory=list)


class ReducerExecutor:
    """Runs a reducer against a private draft of canonical state.

    The reducer mutates ``ctx.state`` in place or returns a replacement
    value. Either way the result is frozen, checked against the optional
    state model and diffed against the prior state. The prior state is never
    touched, so a failure needs no explicit rollback.
    """

    def __init__(self, state_model: Optional[type[BaseModel]] = None):
        self._state_model = state_model

    def execute(
        self,
        definition: ActionDefinition,
        payload: BaseModel,
        ctx: ActionContext,
        state: Any,
    ) -> ReductionResult:
        """Apply one validated, authorized action.

        Raises:
            ReducerFault: The reducer raised, or produced a state that cannot
                be frozen or fails the state model.
            ReplayDivergence: While replaying, the reducer's draws did not match
                the recorded ones.
        """
        ctx.state = thaw(state)
        try:
            returned = definition.reducer(ctx, payload)
            new_state = freeze(returned if returned is not None else ctx.state)
            if self._state_model is not None:
                self._state_model.model_validate(new_state)
        except ReplayDivergence:
            raise
        except Exception as exc:
            logger.error("reducer %s faulted: %s", definition.name, exc)
            raise ReducerFault(
                f"reducer {definition.name!r} failed: {type(exc).__name__}: {exc}",
                action_name=definition.name,
            ) from exc
        finally:
            ctx.state = None

        patch = diff(state, new_state)
        logger.debug("%s produced %d patch op(s)", definition.name, len(patch))
        return ReductionResult(
            state=new_state,
            patch=patch,
            draws=list(ctx.rng.recorded),
            phase_requests=list(ctx.phase_requests),
        )
