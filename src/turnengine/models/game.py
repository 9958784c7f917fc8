"""Game definitions and the builder used to declare them."""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from turnengine.models.action import ActionDefinition, AuthorizePredicate, EmptyPayload
from turnengine.models.phase import PhaseDefinition


class GameDefinition(BaseModel):
    """Everything the engine needs to run one kind of game.

    Attributes:
        name: Game identifier, recorded in exported logs.
        version: Bumped whenever reducers change; replays are only exact for
            the version that produced the log.
        root_phase: Phase entered when the game starts.
        initial_state: ``initial_state(players, options)`` builds version 0.
        actions: Static name -> ActionDefinition mapping.
        phases: Static name -> PhaseDefinition mapping.
        mask: ``mask(state, player_id)``; None means every player sees everything.
        state_model: Optional pydantic model every committed state must satisfy.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    version: str = "1"
    root_phase: str
    initial_state: Callable[..., Any]
    actions: dict[str, ActionDefinition] = Field(default_factory=dict)
    phases: dict[str, PhaseDefinition] = Field(default_factory=dict)
    mask: Optional[Callable[..., Any]] = None
    state_model: Optional[type[BaseModel]] = None
    min_players: int = 1
    max_players: Optional[int] = None

    def get_action(self, name: str) -> Optional[ActionDefinition]:
        return self.actions.get(name)

    def get_phase(self, name: str) -> PhaseDefinition:
        try:
            return self.phases[name]
        except KeyError:
            raise KeyError(f"unknown phase {name!r} in game {self.name!r}") from None


class GameBuilder:
    """Collects actions and phases, then freezes them into a GameDefinition.

    Usage:
        game = GameBuilder("cards", root_phase="main", initial_state=deal)

        @game.action("playCard", payload=PlayCard)
        def play_card(ctx, payload):
            ctx.state["discard"].append(payload.card)

        game.phase("main", allowed_actions=["playCard"])
        definition = game.build()
    """

    def __init__(
        self,
        name: str,
        *,
        root_phase: str,
        initial_state: Callable[..., Any],
        version: str = "1",
        mask: Optional[Callable[..., Any]] = None,
        state_model: Optional[type[BaseModel]] = None,
        min_players: int = 1,
        max_players: Optional[int] = None,
    ):
        self._fields: dict[str, Any] = {
            "name": name,
            "version": version,
            "root_phase": root_phase,
            "initial_state": initial_state,
            "mask": mask,
            "state_model": state_model,
            "min_players": min_players,
            "max_players": max_players,
        }
        self._actions: dict[str, ActionDefinition] = {}
        self._phases: dict[str, PhaseDefinition] = {}
        self._duplicates: list[str] = []

    def action(
        self,
        name: str,
        payload: type[BaseModel] = EmptyPayload,
        authorize: Optional[AuthorizePredicate] = None,
        description: str = "",
    ) -> Callable:
        """Decorator registering the wrapped function as the action's reducer."""

        def register(reducer: Callable) -> Callable:
            self.add_action(ActionDefinition(
                name=name,
                reducer=reducer,
                payload_model=payload,
                authorize=authorize,
                description=description or (reducer.__doc__ or "").strip(),
            ))
            return reducer

        return register

    def add_action(self, definition: ActionDefinition) -> None:
        if definition.name in self._actions:
            self._duplicates.append(f"action:{definition.name}")
        self._actions[definition.name] = definition

    def phase(self, name: str, **kwargs: Any) -> PhaseDefinition:
        definition = PhaseDefinition(name=name, **kwargs)
        if name in self._phases:
            self._duplicates.append(f"phase:{name}")
        self._phases[name] = definition
        return definition

    def build(self) -> GameDefinition:
        """Validate and freeze the definition.

        Raises:
            DefinitionError: If validation reports any error-level violation.
        """
        from turnengine.errors import DefinitionError
        from turnengine.validation.definition import validate_definition

        definition = GameDefinition(
            actions=dict(self._actions),
            phases=dict(self._phases),
            **self._fields,
        )
        result = validate_definition(definition, duplicates=self._duplicates)
        if not result.is_valid:
            raise DefinitionError(result.errors)
        return definition
