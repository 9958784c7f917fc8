"""Per-invocation context handed to authorization predicates and reducers."""

from typing import Any, MutableSequence, Optional, Sequence

from turnengine.engine.rng import Draws
from turnengine.models.phase import PhaseFrame, PhaseRequest, PhaseRequestKind


class ActionContext:
    """Everything a reducer may look at or ask for while it runs.

    Attributes:
        acting_player_id: Player the action is applied for.
        active_player_id: Holder of the turn in the top frame (None in a
            simultaneous frame).
        phase: Name of the top frame's phase.
        frame: Copy of the top frame; edits have no effect on the stack.
        players: All players in seat order.
        state: Mutable draft of canonical state (None during authorization).
        version: Canonical version the action is applied on top of.
        injected: True when the orchestration layer submitted the action on
            the player's behalf.
    """

    def __init__(
        self,
        *,
        acting_player_id: str,
        active_player_id: Optional[str],
        phase: Optional[str],
        frame: Optional[PhaseFrame],
        players: Sequence[str],
        draws: Draws,
        state: Any = None,
        version: int = 0,
        injected: bool = False,
    ):
        self.acting_player_id = acting_player_id
        self.active_player_id = active_player_id
        self.phase = phase
        self.frame = frame
        self.players = list(players)
        self.state = state
        self.version = version
        self.injected = injected
        self._draws = draws
        self.phase_requests: list[PhaseRequest] = []

    # ------------------------------------------------------------------
    # Randomness
    # ------------------------------------------------------------------

    @property
    def rng(self) -> Draws:
        return self._draws

    def random(self) -> float:
        return self._draws.random()

    def randint(self, a: int, b: int) -> int:
        return self._draws.randint(a, b)

    def choice(self, seq: Sequence[Any]) -> Any:
        return self._draws.choice(seq)

    def shuffle(self, seq: MutableSequence[Any]) -> None:
        self._draws.shuffle(seq)

    def sample(self, seq: Sequence[Any], k: int) -> list[Any]:
        return self._draws.sample(seq, k)

    # ------------------------------------------------------------------
    # Phase requests, applied in order once the reducer commits
    # ------------------------------------------------------------------

    def push_phase(
        self,
        phase: str,
        participants: Optional[Sequence[str]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        """Enter ``phase`` as a child of the current frame."""
        self.phase_requests.append(PhaseRequest(
            kind=PhaseRequestKind.PUSH,
            phase=phase,
            participants=list(participants) if participants is not None else None,
            data=dict(data or {}),
        ))

    def end_phase(self) -> None:
        """Pop the frame this action ran in."""
        self.phase_requests.append(PhaseRequest(kind=PhaseRequestKind.END))

    def others(self, player_id: Optional[str] = None) -> list[str]:
        """All players except ``player_id`` (default: the acting player), in seat order."""
        excluded = player_id if player_id is not None else self.acting_player_id
        return [p for p in self.players if p != excluded]
