"""Deterministic random source.

Every random value a reducer sees is derived from primitive float draws in
[0, 1). Live play takes those floats from a per-game ``random.Random(seed)``
and records them on the action's log entry; replay feeds the recorded floats
back in the same order instead of generating new ones.
"""

import random
from typing import Any, MutableSequence, Optional, Sequence

from turnengine.errors import ReplayDivergence


class DeterministicRng:
    """Seeded generator owned by one game instance."""

    def __init__(self, seed: int):
        self.seed = seed
        self._random = random.Random(seed)

    def draw(self) -> float:
        return self._random.random()

    def checkpoint(self) -> Any:
        """Capture the generator position so a faulted action can be undone."""
        return self._random.getstate()

    def restore(self, checkpoint: Any) -> None:
        self._random.setstate(checkpoint)


class Draws:
    """Draw helpers exposed to reducers through the action context.

    Subclasses supply ``_next()``; everything else is built on top of it so
    the recorded stream is always a flat list of floats.
    """

    recorded: Sequence[float] = ()

    def _next(self) -> float:
        raise NotImplementedError

    def random(self) -> float:
        """Return a float in [0, 1)."""
        return self._next()

    def randbelow(self, n: int) -> int:
        """Return an int in [0, n)."""
        if n <= 0:
            raise ValueError(f"randbelow() needs a positive bound, got {n}")
        return min(int(self._next() * n), n - 1)

    def randint(self, a: int, b: int) -> int:
        """Return an int in [a, b], both ends included."""
        if a > b:
            raise ValueError(f"empty range for randint({a}, {b})")
        return a + self.randbelow(b - a + 1)

    def choice(self, seq: Sequence[Any]) -> Any:
        if not seq:
            raise IndexError("cannot choose from an empty sequence")
        return seq[self.randbelow(len(seq))]

    def shuffle(self, seq: MutableSequence[Any]) -> None:
        """Shuffle in place (Fisher-Yates)."""
        for i in reversed(range(1, len(seq))):
            j = self.randbelow(i + 1)
            seq[i], seq[j] = seq[j], seq[i]

    def sample(self, seq: Sequence[Any], k: int) -> list[Any]:
        if not 0 <= k <= len(seq):
            raise ValueError(f"sample size {k} out of range for population of {len(seq)}")
        pool = list(seq)
        for i in range(k):
            j = i + self.randbelow(len(pool) - i)
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:k]


class LiveDraws(Draws):
    """Takes draws from the game's generator and records them."""

    def __init__(self, source: DeterministicRng):
        self._source = source
        self.recorded: list[float] = []

    def _next(self) -> float:
        value = self._source.draw()
        self.recorded.append(value)
        return value


class ReplayDraws(Draws):
    """Substitutes draws recorded on a log entry."""

    def __init__(self, recorded: Sequence[float], sequence: Optional[int] = None):
        self._recorded = list(recorded)
        self._position = 0
        self._sequence = sequence
        self.recorded = self._recorded

    def _next(self) -> float:
        if self._position >= len(self._recorded):
            raise ReplayDivergence(
                f"reducer requested draw #{self._position + 1} but only "
                f"{len(self._recorded)} were recorded",
                sequence=self._sequence,
            )
        value = self._recorded[self._position]
        self._position += 1
        return value

    def finish(self) -> None:
        """Fail if the reducer consumed fewer draws than were recorded."""
        if self._position != len(self._recorded):
            raise ReplayDivergence(
                f"reducer consumed {self._position} of {len(self._recorded)} recorded draws",
                sequence=self._sequence,
            )


class ForbiddenDraws(Draws):
    """Used while authorizing: predicates must not consume randomness."""

    def _next(self) -> float:
        raise RuntimeError("authorization predicates must not draw random values")
