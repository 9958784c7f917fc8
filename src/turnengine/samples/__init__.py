"""Sample games built on the engine."""

from .cards import build_card_game, CardPayload, CardGameState

__all__ = ["build_card_game", "CardPayload", "CardGameState"]
