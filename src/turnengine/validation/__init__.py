"""Static validation for game definitions and exported logs.

Files:
- types.py: Shared ValidationViolation, ValidationResult, ValidationSeverity
- definition.py: D.1-D.7 game definition checks
- log.py: L.1-L.7 replay log checks
"""

from .types import ValidationResult, ValidationViolation, ValidationSeverity
from .definition import validate_definition
from .log import validate_log

__all__ = [
    "ValidationResult",
    "ValidationViolation",
    "ValidationSeverity",
    "validate_definition",
    "validate_log",
]
