"""Replay Log Validators (L.1-L.7).

Structural checks on an exported log, run before (or instead of) a replay.

Rules:
- L.1: Sequence numbers start at 1 and are contiguous
- L.2: Idempotency tokens are unique per player
- L.3: Action entries name an action and an acting player
- L.4: Action names are registered on the definition
- L.5: The log was produced by the same game and definition version
- L.6: No entries follow a terminate entry
- L.7: Recorded draws lie in [0, 1)
"""

from typing import Optional

from turnengine.models.game import GameDefinition
from turnengine.models.log import EntryKind, ReplayLog
from .types import ValidationResult, ValidationSeverity, ValidationViolation


def validate_log(log: ReplayLog, definition: Optional[GameDefinition] = None) -> ValidationResult:
    """Validate an exported replay log.

    Args:
        log: The log to check.
        definition: When given, also check names and versions against it.

    Returns:
        ValidationResult with every violation found.
    """
    violations: list[ValidationViolation] = []
    seen_tokens: set[tuple[str, str]] = set()
    terminated_at: Optional[int] = None

    if definition is not None:
        if log.game != definition.name:
            violations.append(ValidationViolation(
                rule_id="L.5",
                category="Log - Provenance",
                message=f"log was produced by game {log.game!r}, not {definition.name!r}",
            ))
        elif log.game_version != definition.version:
            violations.append(ValidationViolation(
                rule_id="L.5",
                category="Log - Provenance",
                message=(
                    f"log was produced by version {log.game_version!r}, "
                    f"definition is {definition.version!r}"
                ),
                severity=ValidationSeverity.WARNING,
            ))

    for expected, entry in enumerate(log.entries, start=1):
        if entry.sequence != expected:
            violations.append(ValidationViolation(
                rule_id="L.1",
                category="Log - Sequence",
                message=f"expected sequence {expected}, found {entry.sequence}",
                sequence=entry.sequence,
                context={"position": expected - 1},
            ))

        if terminated_at is not None:
            violations.append(ValidationViolation(
                rule_id="L.6",
                category="Log - Sequence",
                message=f"entry {entry.sequence} follows terminate entry {terminated_at}",
                sequence=entry.sequence,
            ))
        if entry.kind == EntryKind.TERMINATE and terminated_at is None:
            terminated_at = entry.sequence

        if any(not 0.0 <= d < 1.0 for d in entry.draws):
            violations.append(ValidationViolation(
                rule_id="L.7",
                category="Log - Randomness",
                message=f"entry {entry.sequence} records a draw outside [0, 1)",
                sequence=entry.sequence,
            ))

        if entry.kind != EntryKind.ACTION:
            continue

        if not entry.action_name or not entry.acting_player_id:
            violations.append(ValidationViolation(
                rule_id="L.3",
                category="Log - Entries",
                message=f"action entry {entry.sequence} lacks an action name or acting player",
                sequence=entry.sequence,
            ))
            continue

        if definition is not None and entry.action_name not in definition.actions:
            violations.append(ValidationViolation(
                rule_id="L.4",
                category="Log - Entries",
                message=f"entry {entry.sequence} uses unknown action {entry.action_name!r}",
                sequence=entry.sequence,
            ))

        if entry.client_action_id is not None:
            token = (entry.acting_player_id, entry.client_action_id)
            if token in seen_tokens:
                violations.append(ValidationViolation(
                    rule_id="L.2",
                    category="Log - Idempotency",
                    message=(
                        f"entry {entry.sequence} reuses token {entry.client_action_id!r} "
                        f"for player {entry.acting_player_id!r}"
                    ),
                    sequence=entry.sequence,
                ))
            seen_tokens.add(token)

    return ValidationResult(violations=violations)
