"""A small shedding card game used by the demo runner and the tests.

Players take turns in the ``main`` phase. Playing a card opens a simultaneous
``discard`` phase in which every other player discards one card and draws a
random replacement from the deck. Drawing a card in ``main`` keeps the turn.
The game ends as soon as any hand is empty.
"""

from typing import Any

from pydantic import BaseModel, Field

from turnengine.engine.authorization import default_authorize
from turnengine.engine.context import ActionContext
from turnengine.engine.masking import DeclarativeMask, HiddenField
from turnengine.models.game import GameBuilder, GameDefinition

DEFAULT_DECK = ["A", "B", "C", "D", "E", "F", "G", "H", "I", "J", "K", "L"]
HAND_SIZE = 2


class CardPayload(BaseModel):
    card: str = Field(min_length=1)


class PlayerState(BaseModel):
    hand: list[str]
    drew: bool = False


class CardGameState(BaseModel):
    """Shape every committed state must have."""

    players: dict[str, PlayerState]
    deck: list[str]
    discard: list[str]


def deal(players: list[str], options: dict[str, Any]) -> dict[str, Any]:
    """Initial state. ``options`` may fix ``hands`` and ``deck`` explicitly."""
    deck = list(options.get("deck", DEFAULT_DECK))
    hands = options.get("hands")
    if hands is None:
        hands = {}
        for player_id in players:
            hands[player_id], deck = deck[:HAND_SIZE], deck[HAND_SIZE:]
    return {
        "players": {p: {"hand": list(hands.get(p, [])), "drew": False} for p in players},
        "deck": deck,
        "discard": [],
    }


def holds_card(ctx: ActionContext, payload: CardPayload, state: Any) -> bool:
    """Default turn rules, and the card must be in the acting player's hand."""
    if not default_authorize(ctx, payload, state):
        return False
    return payload.card in state["players"][ctx.acting_player_id]["hand"]


def can_draw(ctx: ActionContext, payload: BaseModel, state: Any) -> bool:
    me = state["players"][ctx.acting_player_id]
    return default_authorize(ctx, payload, state) and bool(state["deck"]) and not me["drew"]


def someone_is_out(state: Any, frame: Any) -> bool:
    return any(not p["hand"] for p in state["players"].values())


def draw_keeps_turn(state: Any, frame: Any, action_name: str) -> bool:
    return action_name != "drawCard"


def build_card_game() -> GameDefinition:
    game = GameBuilder(
        "cards",
        root_phase="main",
        initial_state=deal,
        mask=DeclarativeMask([
            HiddenField(path=("players", "*", "hand")),
            HiddenField(path=("deck",), visible_to=lambda player_id, bound: False),
        ]),
        state_model=CardGameState,
        min_players=2,
        max_players=4,
    )

    @game.action("playCard", payload=CardPayload, authorize=holds_card)
    def play_card(ctx: ActionContext, payload: CardPayload) -> None:
        """Play a card; everyone else must then discard one."""
        me = ctx.state["players"][ctx.acting_player_id]
        me["hand"].remove(payload.card)
        me["drew"] = False
        ctx.state["discard"].append(payload.card)
        others = ctx.others()
        if others and me["hand"]:
            ctx.push_phase("discard", participants=others)

    @game.action("drawCard", authorize=can_draw)
    def draw_card(ctx: ActionContext, payload: BaseModel) -> None:
        """Take the top card of the deck; the turn stays with the player."""
        me = ctx.state["players"][ctx.acting_player_id]
        me["hand"].append(ctx.state["deck"].pop(0))
        me["drew"] = True

    @game.action("discardCard", payload=CardPayload, authorize=holds_card)
    def discard_card(ctx: ActionContext, payload: CardPayload) -> None:
        """Discard a card and draw a random replacement."""
        hand = ctx.state["players"][ctx.acting_player_id]["hand"]
        hand.remove(payload.card)
        ctx.state["discard"].append(payload.card)
        deck = ctx.state["deck"]
        if deck:
            hand.append(deck.pop(ctx.randint(0, len(deck) - 1)))

    game.phase(
        "main",
        allowed_actions=frozenset({"playCard", "drawCard"}),
        end_condition=someone_is_out,
        turn_passes=draw_keeps_turn,
    )
    game.phase("discard", allowed_actions=frozenset({"discardCard"}), simultaneous=True)
    return game.build()
