from dataclasses import dataclass, field
from typing import List

from .errors import DraftError, ValidationError


@dataclass
class ValidationResult:
    """Stage verdict. A failed stage ends the turn."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> "ValidationResult":
        return cls(is_valid=False, errors=list(errors))

    @classmethod
    def rejected_draft(cls, error: DraftError) -> "ValidationResult":
        return cls.failure([error.to_validation_error()])

    @property
    def messages(self) -> List[str]:
        return [f"{e.object_id}: {e.message}" for e in self.errors]
