"""Game Definition Validators (D.1-D.7).

Rules:
- D.1: Action and phase names must be unique
- D.2: The root phase must be declared
- D.3: Phases may only allow registered actions
- D.4: next_phase must name a declared phase
- D.5: Player bounds must be consistent (1 <= min_players <= max_players)
- D.6: A phase naming itself as next_phase loops back into itself (warning)
- D.7: Every action should be allowed in at least one phase (warning)
"""

from typing import Optional

from turnengine.models.game import GameDefinition
from .types import ValidationResult, ValidationSeverity, ValidationViolation


def validate_definition(
    definition: GameDefinition,
    duplicates: Optional[list[str]] = None,
) -> ValidationResult:
    """Validate a complete game definition.

    Args:
        definition: The definition to check.
        duplicates: ``kind:name`` labels the builder saw registered twice.

    Returns:
        ValidationResult with every violation found.
    """
    violations: list[ValidationViolation] = []

    for label in duplicates or []:
        violations.append(ValidationViolation(
            rule_id="D.1",
            category="Definition - Names",
            message=f"{label.replace(':', ' ')!s} registered more than once",
            context={"name": label},
        ))

    if definition.root_phase not in definition.phases:
        violations.append(ValidationViolation(
            rule_id="D.2",
            category="Definition - Phases",
            message=f"root phase {definition.root_phase!r} is not declared",
            context={"root_phase": definition.root_phase},
        ))

    allowed_anywhere: set[str] = set()
    for phase in definition.phases.values():
        allowed_anywhere |= phase.allowed_actions
        for action_name in sorted(phase.allowed_actions):
            if action_name not in definition.actions:
                violations.append(ValidationViolation(
                    rule_id="D.3",
                    category="Definition - Phases",
                    message=f"phase {phase.name!r} allows unknown action {action_name!r}",
                    context={"phase": phase.name, "action": action_name},
                ))
        if phase.next_phase is not None:
            if phase.next_phase not in definition.phases:
                violations.append(ValidationViolation(
                    rule_id="D.4",
                    category="Definition - Phases",
                    message=f"phase {phase.name!r} continues into unknown phase {phase.next_phase!r}",
                    context={"phase": phase.name, "next_phase": phase.next_phase},
                ))
            elif phase.next_phase == phase.name:
                violations.append(ValidationViolation(
                    rule_id="D.6",
                    category="Definition - Phases",
                    message=f"phase {phase.name!r} names itself as next_phase",
                    severity=ValidationSeverity.WARNING,
                    context={"phase": phase.name},
                ))

    if definition.min_players < 1 or (
        definition.max_players is not None and definition.max_players < definition.min_players
    ):
        violations.append(ValidationViolation(
            rule_id="D.5",
            category="Definition - Players",
            message=(
                f"invalid player bounds min={definition.min_players} "
                f"max={definition.max_players}"
            ),
        ))

    for action_name in sorted(definition.actions):
        if action_name not in allowed_anywhere:
            violations.append(ValidationViolation(
                rule_id="D.7",
                category="Definition - Actions",
                message=f"action {action_name!r} is not allowed in any phase",
                severity=ValidationSeverity.WARNING,
                context={"action": action_name},
            ))

    return ValidationResult(violations=violations)
