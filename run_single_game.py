#!/usr/bin/env python
"""Run a single seeded card game with random legal moves and print the replay log."""

import random
import sys

from turnengine.config import configure_logging
from turnengine.engine import GameEngine, ReplayEngine
from turnengine.models import SubmitStatus
from turnengine.samples import build_card_game

MAX_STEPS = 500


def candidate_moves(engine: GameEngine, player_id: str) -> list[tuple[str, dict]]:
    """Every (action, payload) pair worth trying for ``player_id``."""
    hand = engine.state["players"][player_id]["hand"]
    moves = []
    for name in engine.legal_actions(player_id):
        if name == "drawCard":
            moves.append((name, {}))
        else:
            moves.extend((name, {"card": card}) for card in hand)
    return moves


def play(seed: int, players: list[str]) -> GameEngine:
    definition = build_card_game()
    engine = GameEngine(definition, players, seed=seed)
    bot = random.Random(seed)

    for step in range(MAX_STEPS):
        if engine.terminated:
            break
        waiting_on = engine.players_to_act()
        if not waiting_on:
            engine.force_end_phase("nobody left to act")
            continue
        player_id = bot.choice(waiting_on)
        moves = candidate_moves(engine, player_id)
        bot.shuffle(moves)
        for name, payload in moves:
            result = engine.act(player_id, name, payload, client_action_id=f"{player_id}-{step}")
            if result.status == SubmitStatus.ACCEPTED:
                break
        else:
            # Stand-in for a turn timeout
            engine.force_end_phase(f"{player_id} had no legal move")
    else:
        engine.force_terminate("step limit reached")
    return engine


def main():
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else random.randint(1, 1000000)
    configure_logging()
    print(f"Running single game with seed: {seed}...")

    engine = play(seed, ["p1", "p2", "p3"])
    log = engine.export_log()

    print("\n" + "=" * 70)
    print("REPLAY LOG (seed={})".format(seed))
    print("=" * 70)
    print(log.to_yaml())

    print("=" * 70)
    print("QUICK SUMMARY")
    print("=" * 70)
    counts: dict[str, int] = {}
    for entry in log.entries:
        key = entry.action_name or entry.kind.value
        counts[key] = counts.get(key, 0) + 1
    for name, count in sorted(counts.items()):
        print(f"  {name}: {count}")
    print(f"\nFinal version: {engine.version}")
    print(f"Ended: {engine.terminal_reason}")

    replayed = ReplayEngine(engine.definition).replay(log)
    same = replayed.state == engine.state
    print(f"Replay matches: {same}")
    if not same:
        sys.exit(1)


if __name__ == "__main__":
    main()
