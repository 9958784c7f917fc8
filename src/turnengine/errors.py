"""Engine exceptions.

Routine rejections (bad payload, wrong player, wrong phase) derive from
ActionRejected and are reported back to the submitting player without
touching canonical state. ReducerFault and ReplayDivergence indicate a bug in
the game definition and are raised to the caller.
"""

from typing import Any, Optional


class EngineError(Exception):
    """Base class for all engine errors."""

    code: str = "ENGINE_ERROR"


# ============================================================================
# Routine rejections
# ============================================================================


class ActionRejected(EngineError):
    """An action was refused before any state was touched."""

    code = "REJECTED"

    def __init__(self, message: str, action_name: Optional[str] = None):
        self.action_name = action_name
        super().__init__(message)


class UnknownAction(ActionRejected):
    """The action name is not registered on the game definition."""

    code = "UNKNOWN_ACTION"


class SchemaInvalid(ActionRejected):
    """The payload does not match the action's declared payload model.

    Attributes:
        field_errors: One dict per violated constraint with ``field``,
            ``message`` and ``type`` keys.
    """

    code = "SCHEMA_INVALID"

    def __init__(
        self,
        message: str,
        action_name: Optional[str] = None,
        field_errors: Optional[list[dict[str, Any]]] = None,
    ):
        self.field_errors = field_errors or []
        super().__init__(message, action_name)

    def __str__(self) -> str:
        if not self.field_errors:
            return super().__str__()
        details = "; ".join(f"{e['field']}: {e['message']}" for e in self.field_errors)
        return f"{super().__str__()} ({details})"


class IllegalInPhase(ActionRejected):
    """The action is not allowed in the current phase frame."""

    code = "ILLEGAL_IN_PHASE"


class Unauthorized(ActionRejected):
    """The authorization predicate refused the acting player."""

    code = "UNAUTHORIZED"


class GameTerminated(ActionRejected):
    """The game has ended; no further actions are accepted."""

    code = "GAME_TERMINATED"


class DuplicateAction(EngineError):
    """A submission reused an already-logged idempotency token.

    Never raised to callers: GameEngine.submit() reports it as
    SubmitStatus.DUPLICATE and hands it to EngineListener.on_duplicate.

    Attributes:
        sequence: The log entry the original submission produced.
    """

    code = "DUPLICATE_ACTION"

    def __init__(self, message: str, sequence: int):
        self.sequence = sequence
        super().__init__(message)


# ============================================================================
# Fatal errors
# ============================================================================


class ReducerFault(EngineError):
    """A reducer (or a phase predicate run after it) raised.

    The transition is aborted and canonical state is left unchanged.
    """

    code = "REDUCER_FAULT"

    def __init__(self, message: str, action_name: Optional[str] = None):
        self.action_name = action_name
        super().__init__(message)


class ReplayDivergence(EngineError):
    """State rebuilt from the log does not match what was recorded."""

    code = "REPLAY_DIVERGENCE"

    def __init__(
        self,
        message: str,
        sequence: Optional[int] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
    ):
        self.sequence = sequence
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class VersionGap(EngineError):
    """An observer was handed a patch that does not start at its version."""

    code = "VERSION_GAP"

    def __init__(self, message: str, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class DefinitionError(EngineError):
    """The game definition is inconsistent.

    Attributes:
        violations: The ValidationViolation list that caused the failure.
    """

    code = "DEFINITION_ERROR"

    def __init__(self, violations: list):
        self.violations = violations
        super().__init__(f"Game definition invalid with {len(violations)} violation(s)")

    def __str__(self) -> str:
        if not self.violations:
            return "DefinitionError(no violations)"
        lines = [f"DefinitionError({len(self.violations)} violations):"]
        for v in self.violations:
            lines.append(f"  {v}")
        return "\n".join(lines)
