"""PhaseStackMachine - owns the stack of live phase frames.

The top frame decides which actions are legal and who may act; frames below
it are dormant until everything above them has been popped. After every
committed action the machine:

1. records progress on the frame the action ran in (marks the player as
   having acted in a simultaneous frame, or passes the turn in a sequential
   one);
2. applies the phase requests the reducer issued, in order;
3. pops frames whose end condition holds, entering their ``next_phase`` in
   their place, until the top frame is still running. Popping the last frame
   ends the game.

Every operation works on a copy of the stack and returns it together with the
transitions it made. Nothing changes until the caller commits the copy, so a
failure half-way through leaves the committed stack untouched.
"""

import logging
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from pydantic import BaseModel

from turnengine.errors import ReducerFault
from turnengine.models.game import GameDefinition
from turnengine.models.phase import (
    PhaseDefinition,
    PhaseFrame,
    PhaseRequest,
    PhaseRequestKind,
    PhaseStack,
)

logger = logging.getLogger(__name__)


class TransitionKind(str, Enum):
    """Direction of a phase transition."""

    ENTER = "enter"
    EXIT = "exit"


class PhaseTransition(BaseModel):
    """A frame pushed onto or popped off the stack."""

    kind: TransitionKind
    frame: PhaseFrame
    depth: int


class PhaseStackMachine:
    """Stack-based phase and turn state machine for one game instance."""

    def __init__(
        self,
        definition: GameDefinition,
        players: Sequence[str],
        max_transitions: int = 64,
    ):
        """Initialize the machine with an empty stack.

        Args:
            definition: Game definition supplying phase templates.
            players: All players in seat order.
            max_transitions: Bound on frames popped by a single cascade; a
                definition whose end conditions never settle is a fault.
        """
        self._definition = definition
        self._players = list(players)
        self._max_transitions = max_transitions
        self._stack = PhaseStack()

    # =========================================================================
    # Queries (always against the committed stack)
    # =========================================================================

    @property
    def stack(self) -> PhaseStack:
        """A copy of the committed stack."""
        return self._stack.model_copy(deep=True)

    @property
    def terminated(self) -> bool:
        return self._stack.terminated

    @property
    def current_frame(self) -> Optional[PhaseFrame]:
        return self._stack.top

    @property
    def current_phase(self) -> Optional[str]:
        top = self._stack.top
        return top.phase if top else None

    @property
    def active_player(self) -> Optional[str]:
        """Holder of the turn in the top frame (None if simultaneous or over)."""
        if self._stack.terminated or self._stack.top is None:
            return None
        return self._stack.top.active_player

    def players_to_act(self) -> list[str]:
        """Players the default policy lets act right now."""
        top = self._stack.top
        if self._stack.terminated or top is None:
            return []
        if top.active_index is None:
            return top.pending
        return [top.active_player]

    def effective_allowed(self, stack: Optional[PhaseStack] = None) -> frozenset[str]:
        """Allowed actions of the top frame, widened by ``inherit_actions``."""
        stack = stack or self._stack
        allowed: frozenset[str] = frozenset()
        for frame in reversed(stack.frames):
            phase = self._definition.get_phase(frame.phase)
            allowed |= phase.allowed_actions
            if not phase.inherit_actions:
                break
        return allowed

    def legal_actions(self, player_id: str) -> list[str]:
        """Actions ``player_id`` could submit now, sorted by name.

        Actions with a custom authorize predicate are listed whenever the
        phase allows them; the predicate itself is only consulted on submit.
        """
        if self._stack.terminated or self._stack.top is None:
            return []
        may_act = player_id in self.players_to_act()
        names = []
        for name in sorted(self.effective_allowed()):
            action = self._definition.get_action(name)
            if action is None:
                continue
            if may_act or action.authorize is not None:
                names.append(name)
        return names

    # =========================================================================
    # Transitions (return a working copy; caller commits)
    # =========================================================================

    def commit(self, stack: PhaseStack) -> None:
        self._stack = stack

    def start(self, state: Any, version: int = 0) -> tuple[PhaseStack, list[PhaseTransition]]:
        """Push the root frame and settle any end conditions it already meets."""
        work = PhaseStack()
        transitions: list[PhaseTransition] = []
        self._push(work, self._definition.root_phase, state, version, None, {}, transitions)
        self._cascade(work, state, version, transitions)
        return work, transitions

    def enter(
        self,
        phase: str,
        state: Any,
        version: int,
        participants: Optional[Sequence[str]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> tuple[PhaseStack, list[PhaseTransition]]:
        """Push a frame on top of the committed stack, then settle."""
        work = self._stack.model_copy(deep=True)
        transitions: list[PhaseTransition] = []
        if work.terminated:
            return work, transitions
        self._push(work, phase, state, version, participants, data or {}, transitions)
        self._cascade(work, state, version, transitions)
        return work, transitions

    def after_commit(
        self,
        state: Any,
        acting_player_id: str,
        action_name: str,
        requests: Sequence[PhaseRequest],
        version: int,
    ) -> tuple[PhaseStack, list[PhaseTransition]]:
        """Advance the stack after an action committed.

        Args:
            state: The newly committed canonical state.
            acting_player_id: Player the action was applied for.
            action_name: Name of the committed action.
            requests: Phase requests the reducer issued.
            version: The new canonical version.
        """
        work = self._stack.model_copy(deep=True)
        transitions: list[PhaseTransition] = []
        frame = work.top
        if frame is None:
            raise ReducerFault("no active phase frame", action_name=action_name)

        phase = self._definition.get_phase(frame.phase)
        if phase.simultaneous:
            if not frame.has_acted(acting_player_id):
                frame.acted.append(acting_player_id)
        else:
            frame.turns_taken += 1
            passes = self._call(phase.passes_turn, state, frame, action_name, what="turn_passes")
            if passes and frame.participants:
                frame.active_index = self._next_index(phase, frame, state)

        for request in requests:
            if request.kind == PhaseRequestKind.END:
                if work.frames and not work.terminated:
                    self._pop(work, state, version, transitions, reason=f"ended by {action_name}")
            else:
                self._push(work, request.phase, state, version, request.participants, request.data, transitions)

        self._cascade(work, state, version, transitions)
        return work, transitions

    def force_end(self, state: Any, version: int, reason: str) -> tuple[PhaseStack, list[PhaseTransition]]:
        """Pop the top frame regardless of its end condition, then settle."""
        work = self._stack.model_copy(deep=True)
        transitions: list[PhaseTransition] = []
        if work.terminated or not work.frames:
            return work, transitions
        self._pop(work, state, version, transitions, reason=reason)
        self._cascade(work, state, version, transitions)
        return work, transitions

    def terminate(self, reason: str) -> tuple[PhaseStack, list[PhaseTransition]]:
        """Mark the game over; frames are kept for inspection."""
        work = self._stack.model_copy(deep=True)
        work.terminated = True
        work.terminal_reason = reason
        return work, []

    # =========================================================================
    # Internals
    # =========================================================================

    def _push(
        self,
        work: PhaseStack,
        phase_name: Optional[str],
        state: Any,
        version: int,
        participants: Optional[Sequence[str]],
        data: dict[str, Any],
        transitions: list[PhaseTransition],
    ) -> None:
        if phase_name not in self._definition.phases:
            raise ReducerFault(f"cannot enter unknown phase {phase_name!r}")
        phase = self._definition.phases[phase_name]

        if participants is None:
            chosen = [
                p for p in self._players
                if self._call(phase.available, state, p, what=f"{phase_name}.available")
            ]
        else:
            unknown = [p for p in participants if p not in self._players]
            if unknown:
                raise ReducerFault(f"phase {phase_name!r} given unknown participants {unknown}")
            chosen = list(dict.fromkeys(participants))

        frame = PhaseFrame(
            frame_id=work.next_frame_id,
            phase=phase_name,
            participants=chosen,
            entered_at_version=version,
            data=dict(data),
        )
        if phase.simultaneous:
            frame.required = list(chosen)
        elif chosen:
            frame.active_index = self._next_index(phase, frame, state)

        work.next_frame_id += 1
        work.frames.append(frame)
        transitions.append(PhaseTransition(kind=TransitionKind.ENTER, frame=frame.model_copy(deep=True), depth=work.depth))
        logger.info("enter %s (depth %d)", frame, work.depth)

    def _pop(
        self,
        work: PhaseStack,
        state: Any,
        version: int,
        transitions: list[PhaseTransition],
        reason: str,
    ) -> None:
        frame = work.frames.pop()
        transitions.append(PhaseTransition(kind=TransitionKind.EXIT, frame=frame, depth=work.depth + 1))
        logger.info("exit %s: %s", frame, reason)

        phase = self._definition.get_phase(frame.phase)
        if phase.next_phase is not None:
            self._push(work, phase.next_phase, state, version, None, {}, transitions)
        elif not work.frames:
            work.terminated = True
            work.terminal_reason = f"{frame.phase} ended ({reason})"
            logger.info("game over: %s", work.terminal_reason)

    def _cascade(
        self,
        work: PhaseStack,
        state: Any,
        version: int,
        transitions: list[PhaseTransition],
    ) -> None:
        popped = 0
        while not work.terminated and work.top is not None:
            frame = work.top
            phase = self._definition.get_phase(frame.phase)
            if not self._call(phase.is_over, state, frame, what=f"{frame.phase}.end_condition"):
                return
            popped += 1
            if popped > self._max_transitions:
                raise ReducerFault(
                    f"phase transitions did not settle after {self._max_transitions} steps "
                    f"(stuck at {frame.phase!r})"
                )
            self._pop(work, state, version, transitions, reason="end condition met")

    def _next_index(self, phase: PhaseDefinition, frame: PhaseFrame, state: Any) -> int:
        index = self._call(phase.turn_order, frame, state, what=f"{phase.name}.turn_order")
        if not isinstance(index, int) or not 0 <= index < len(frame.participants):
            raise ReducerFault(
                f"turn_order of {phase.name!r} returned {index!r} for "
                f"{len(frame.participants)} participant(s)"
            )
        return index

    @staticmethod
    def _call(fn: Callable[..., Any], *args: Any, what: str) -> Any:
        """Run a game-supplied predicate, turning its errors into faults."""
        try:
            return fn(*args)
        except ReducerFault:
            raise
        except Exception as exc:
            raise ReducerFault(f"{what} raised {type(exc).__name__}: {exc}") from exc
