from dataclasses import dataclass


@dataclass
class ValidationError:
    level: str      # draft | policy | extraction
    message: str
    object_id: str  # offending slot name or rule id


@dataclass
class DraftError:
    """Draft validator verdict: which slot to reset and what to tell the operator."""
    field: str
    message: str

    def to_validation_error(self) -> ValidationError:
        return ValidationError(
            level="draft",
            message=self.message,
            object_id=self.field,
        )
