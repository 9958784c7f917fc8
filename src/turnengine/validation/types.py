"""Validation types shared by the definition and log validators."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ValidationSeverity(str, Enum):
    """Errors make a definition or log unusable; warnings are reported only."""

    ERROR = "error"
    WARNING = "warning"


class ValidationViolation(BaseModel):
    """One broken rule, e.g. ``D.3`` or ``L.1``.

    ``sequence`` names the log entry a log rule tripped on; definition rules
    leave it unset and put the offending names in ``context`` instead.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str
    category: str  # e.g. "Definition - Phases", "Log - Sequence"
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR
    context: Optional[dict[str, Any]] = None
    sequence: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.severity == ValidationSeverity.ERROR

    def __str__(self) -> str:
        where = f" (entry {self.sequence})" if self.sequence is not None else ""
        return f"[{self.severity.value.upper()}] {self.rule_id}{where}: {self.message}"


class ValidationResult(BaseModel):
    """Every violation found by one validator run, in discovery order."""

    violations: list[ValidationViolation] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(v.is_error for v in self.violations)

    @property
    def errors(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.is_error]

    @property
    def warnings(self) -> list[ValidationViolation]:
        return [v for v in self.violations if not v.is_error]

    @property
    def rule_ids(self) -> list[str]:
        return [v.rule_id for v in self.violations]

    def __bool__(self) -> bool:
        return self.is_valid

    def __add__(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(violations=self.violations + other.violations)
