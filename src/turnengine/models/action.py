"""Action definitions and submissions."""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


class EmptyPayload(BaseModel):
    """Payload model for actions that take no arguments."""

    model_config = ConfigDict(extra="forbid")


# reducer(ctx, payload) mutates ctx.state (or returns a replacement state)
Reducer = Callable[..., Any]
# authorize(ctx, payload, state) -> bool
AuthorizePredicate = Callable[..., bool]


class ActionDefinition(BaseModel):
    """A named unit of state change.

    Registered once on a GameDefinition and never modified afterwards.
    ``authorize`` replaces the default "active player only" rule; it never
    widens the set of actions legal in the current phase.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    reducer: Reducer
    payload_model: type[BaseModel] = EmptyPayload
    authorize: Optional[AuthorizePredicate] = None
    description: str = ""


class ActionSubmission(BaseModel):
    """An action as it arrives from a player.

    ``client_action_id`` is the idempotency token: a resubmission that reuses
    a token already logged for the same player is acknowledged without being
    applied again.
    """

    action_name: str
    acting_player_id: str
    payload: Any = Field(default_factory=dict)
    client_action_id: Optional[str] = None
