"""Authorization gate: may this player take this action right now?"""

import logging
from typing import Any, Optional

from pydantic import BaseModel

from turnengine.engine.context import ActionContext
from turnengine.errors import IllegalInPhase, Unauthorized
from turnengine.models.action import ActionDefinition

logger = logging.getLogger(__name__)


def default_authorize(ctx: ActionContext, payload: BaseModel, state: Any) -> bool:
    """Only the active player may act in a sequential frame; in a
    simultaneous frame, any required participant who has not acted yet."""
    frame = ctx.frame
    if frame is None:
        return False
    if frame.active_index is None:
        return ctx.acting_player_id in frame.pending
    return ctx.acting_player_id == frame.active_player


def check_authorized(
    definition: ActionDefinition,
    payload: BaseModel,
    ctx: ActionContext,
    state: Any,
    allowed_actions: frozenset[str],
    skip_predicate: bool = False,
) -> None:
    """Raise unless the action may proceed.

    The phase check always applies. The predicate (the action's own, or
    default_authorize) is skipped only for actions injected by the
    orchestration layer.

    Raises:
        IllegalInPhase: The action is not allowed in the top frame.
        Unauthorized: The predicate returned False or raised.
    """
    if definition.name not in allowed_actions:
        raise IllegalInPhase(
            f"{definition.name!r} is not allowed in phase {ctx.phase!r}",
            action_name=definition.name,
        )
    if skip_predicate:
        return

    predicate = definition.authorize or default_authorize
    reason: Optional[str] = None
    try:
        permitted = bool(predicate(ctx, payload, state))
    except Exception as exc:
        permitted = False
        reason = f"{type(exc).__name__}: {exc}"
        logger.debug("authorize predicate for %s raised: %s", definition.name, reason)

    if not permitted:
        message = f"{ctx.acting_player_id!r} may not {definition.name!r} now"
        if reason:
            message = f"{message} ({reason})"
        raise Unauthorized(message, action_name=definition.name)
