from abc import ABC, abstractmethod
from rbac_chat.pipeline.context import TurnContext
from rbac_chat.ir.validation import ValidationResult


class PipelineStage(ABC):
    name: str

    @abstractmethod
    def run(self, context: TurnContext) -> ValidationResult:
        """
        Must:
        - read from context
        - write to context (replace draft/policy, never mutate the inputs)
        - call context.finish() when the turn is resolved
        - NEVER call other stages
        """
