"""EngineListener - observation hooks at key points of a game.

Usage:
    # In tests or development
    listener = CollectingListener()
    engine = GameEngine(definition, players, seed=7, listener=listener)
    violations = listener.get_violations()

    # No overhead in production (listener=None)
    engine = GameEngine(definition, players, seed=7)

Hooks run synchronously after the engine has committed (or refused) a
transition. They see frozen state only and cannot change the outcome.
"""

from typing import Any, Optional, Protocol

from turnengine.errors import ActionRejected, DuplicateAction, ReducerFault
from turnengine.models.action import ActionSubmission
from turnengine.models.log import ActionLogEntry, ReplayLog
from turnengine.models.patch import PatchOp
from turnengine.models.phase import PhaseFrame, PhaseStack


class EngineListener(Protocol):
    """Hooks called by GameEngine. All return nothing except on_game_over."""

    def on_game_start(self, state: Any, phases: PhaseStack) -> None:
        """Called once the root frame has been entered."""
        ...

    def on_action_committed(self, entry: ActionLogEntry, patch: list[PatchOp], state: Any) -> None:
        """Called after an entry (action or forced transition) is logged."""
        ...

    def on_action_rejected(self, submission: ActionSubmission, error: ActionRejected) -> None:
        """Called when a submission is refused before touching state."""
        ...

    def on_duplicate(self, submission: ActionSubmission, error: DuplicateAction) -> None:
        """Called when a resubmitted idempotency token is answered from the log."""
        ...

    def on_phase_enter(self, frame: PhaseFrame, depth: int) -> None:
        ...

    def on_phase_exit(self, frame: PhaseFrame, depth: int) -> None:
        ...

    def on_fault(self, submission: ActionSubmission, error: ReducerFault) -> None:
        """Called when a reducer or phase predicate faulted; nothing was committed."""
        ...

    def on_game_over(self, reason: Optional[str], state: Any, log: ReplayLog) -> list:
        """Called when the game terminates. Returns any violations found."""
        ...


class NoOpListener:
    """Listener that ignores every hook."""

    def on_game_start(self, state: Any, phases: PhaseStack) -> None:
        pass

    def on_action_committed(self, entry: ActionLogEntry, patch: list[PatchOp], state: Any) -> None:
        pass

    def on_action_rejected(self, submission: ActionSubmission, error: ActionRejected) -> None:
        pass

    def on_duplicate(self, submission: ActionSubmission, error: DuplicateAction) -> None:
        pass

    def on_phase_enter(self, frame: PhaseFrame, depth: int) -> None:
        pass

    def on_phase_exit(self, frame: PhaseFrame, depth: int) -> None:
        pass

    def on_fault(self, submission: ActionSubmission, error: ReducerFault) -> None:
        pass

    def on_game_over(self, reason: Optional[str], state: Any, log: ReplayLog) -> list:
        return []


class CollectingListener(NoOpListener):
    """Listener that records everything it sees for later inspection.

    On game over the exported log is checked with validate_log and any
    violations are kept. Lazy imports avoid a cycle with the validation
    package.
    """

    def __init__(self):
        self.events: list[tuple[str, Any]] = []
        self.entries: list[ActionLogEntry] = []
        self.rejections: list[tuple[ActionSubmission, ActionRejected]] = []
        self.duplicates: list[tuple[ActionSubmission, DuplicateAction]] = []
        self.faults: list[tuple[ActionSubmission, ReducerFault]] = []
        self._violations: list = []
        self.game_over_reason: Optional[str] = None

    def get_violations(self) -> list:
        return list(self._violations)

    def phase_trace(self) -> list[str]:
        """``enter:<phase>`` / ``exit:<phase>`` strings in hook order."""
        return [
            f"{kind}:{frame.phase}"
            for kind, frame in self.events
            if kind in ("enter", "exit")
        ]

    def clear(self) -> None:
        self.events.clear()
        self.entries.clear()
        self.rejections.clear()
        self.duplicates.clear()
        self.faults.clear()
        self._violations.clear()
        self.game_over_reason = None

    def on_game_start(self, state: Any, phases: PhaseStack) -> None:
        self.events.append(("start", phases.model_copy(deep=True)))

    def on_action_committed(self, entry: ActionLogEntry, patch: list[PatchOp], state: Any) -> None:
        self.entries.append(entry)
        self.events.append(("commit", entry))

    def on_action_rejected(self, submission: ActionSubmission, error: ActionRejected) -> None:
        self.rejections.append((submission, error))
        self.events.append(("reject", error.code))

    def on_duplicate(self, submission: ActionSubmission, error: DuplicateAction) -> None:
        self.duplicates.append((submission, error))
        self.events.append(("duplicate", error.code))

    def on_phase_enter(self, frame: PhaseFrame, depth: int) -> None:
        self.events.append(("enter", frame))

    def on_phase_exit(self, frame: PhaseFrame, depth: int) -> None:
        self.events.append(("exit", frame))

    def on_fault(self, submission: ActionSubmission, error: ReducerFault) -> None:
        self.faults.append((submission, error))
        self.events.append(("fault", error.code))

    def on_game_over(self, reason: Optional[str], state: Any, log: ReplayLog) -> list:
        """Validate the finished log (rules L.1-L.7)."""
        from turnengine.validation.log import validate_log

        self.game_over_reason = reason
        self.events.append(("game_over", reason))
        result = validate_log(log)
        self._violations.extend(result.violations)
        return result.violations


def create_listener(collect: bool = False) -> EngineListener:
    """Factory function to create the appropriate listener.

    Args:
        collect: If True, returns CollectingListener for tests.
                 If False, returns NoOpListener for production.
    """
    if collect:
        return CollectingListener()
    return NoOpListener()
