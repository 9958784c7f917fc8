"""Phase definitions, live phase frames and the serializable phase stack."""

from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Default policies
# ============================================================================


def everyone(state: Any, player_id: str) -> bool:
    """Availability predicate admitting every player."""
    return True


def round_robin(frame: "PhaseFrame", state: Any) -> int:
    """Turn order: the next participant in seat order, wrapping around."""
    if not frame.participants:
        return 0
    current = frame.active_index if frame.active_index is not None else -1
    return (current + 1) % len(frame.participants)


def all_required_acted(state: Any, frame: "PhaseFrame") -> bool:
    """End condition of a simultaneous frame: nobody left to act."""
    return not frame.pending


# ============================================================================
# Declarative template
# ============================================================================


class PhaseDefinition(BaseModel):
    """Template instantiated into a PhaseFrame whenever the phase is entered.

    Attributes:
        name: Unique phase name.
        allowed_actions: Action names legal while this phase is on top.
        simultaneous: Every participant acts once, in any order, instead of
            taking turns.
        available: ``available(state, player_id)`` selects the participants
            when the frame is entered without an explicit list.
        end_condition: ``end_condition(state, frame)``; checked after every
            commit while the frame is on top. Defaults to "everyone acted"
            for simultaneous phases and "never" for sequential ones.
        turn_order: ``turn_order(frame, state)`` returns the next active index.
        turn_passes: ``turn_passes(state, frame, action_name)``; when it returns
            False the active player keeps the turn. Defaults to always passing.
        inherit_actions: Union the parent frame's allowed actions into this
            one instead of replacing them.
        next_phase: Phase entered in place of this frame when it ends.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    allowed_actions: frozenset[str] = frozenset()
    simultaneous: bool = False
    available: Callable[..., bool] = everyone
    end_condition: Optional[Callable[..., bool]] = None
    turn_order: Callable[..., int] = round_robin
    turn_passes: Optional[Callable[..., bool]] = None
    inherit_actions: bool = False
    next_phase: Optional[str] = None

    def is_over(self, state: Any, frame: "PhaseFrame") -> bool:
        if self.end_condition is not None:
            return bool(self.end_condition(state, frame))
        if self.simultaneous:
            return all_required_acted(state, frame)
        return False

    def passes_turn(self, state: Any, frame: "PhaseFrame", action_name: str) -> bool:
        if self.turn_passes is None:
            return True
        return bool(self.turn_passes(state, frame, action_name))


# ============================================================================
# Live frames
# ============================================================================


class PhaseFrame(BaseModel):
    """A live phase on the stack, with its per-entry bookkeeping."""

    frame_id: int
    phase: str
    participants: list[str] = Field(default_factory=list)
    active_index: Optional[int] = None  # sequential frames only
    required: list[str] = Field(default_factory=list)  # simultaneous frames only
    acted: list[str] = Field(default_factory=list)
    turns_taken: int = 0
    entered_at_version: int = 0
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def active_player(self) -> Optional[str]:
        if self.active_index is None or not self.participants:
            return None
        return self.participants[self.active_index]

    @property
    def pending(self) -> list[str]:
        """Required participants who have not acted yet."""
        return [p for p in self.required if p not in self.acted]

    def has_acted(self, player_id: str) -> bool:
        return player_id in self.acted

    def __str__(self) -> str:
        if self.active_index is not None:
            return f"{self.phase}#{self.frame_id}(active={self.active_player})"
        return f"{self.phase}#{self.frame_id}(pending={self.pending})"


class PhaseStack(BaseModel):
    """Ordered frames, bottom first. Serializable for snapshots."""

    frames: list[PhaseFrame] = Field(default_factory=list)
    next_frame_id: int = 0
    terminated: bool = False
    terminal_reason: Optional[str] = None

    @property
    def top(self) -> Optional[PhaseFrame]:
        return self.frames[-1] if self.frames else None

    @property
    def depth(self) -> int:
        return len(self.frames)

    def describe(self) -> str:
        if self.terminated:
            return f"terminated ({self.terminal_reason})"
        return " > ".join(str(f) for f in self.frames) or "(empty)"


# ============================================================================
# Requests issued by reducers
# ============================================================================


class PhaseRequestKind(str, Enum):
    """What a reducer asks the phase stack to do after it commits."""

    PUSH = "push"
    END = "end"


class PhaseRequest(BaseModel):
    """A phase change requested from inside a reducer."""

    kind: PhaseRequestKind
    phase: Optional[str] = None
    participants: Optional[list[str]] = None
    data: dict[str, Any] = Field(default_factory=dict)
