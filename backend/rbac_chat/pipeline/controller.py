import logging
from dataclasses import dataclass, field
from typing import List, Optional

from rbac_chat.extraction import SlotExtractor
from rbac_chat.ir.draft import Draft
from rbac_chat.ir.errors import ValidationError
from rbac_chat.ir.policy import Policy
from rbac_chat.ir.schema import Schema
from rbac_chat.ir.validation import ValidationResult
from rbac_chat.pipeline.accumulator import DraftAccumulationStage
from rbac_chat.pipeline.compiler import CompilationStage, RuleCompiler
from rbac_chat.pipeline.context import TurnContext, TurnOutcome
from rbac_chat.pipeline.draft_validator import DraftValidationStage
from rbac_chat.pipeline.questions import ClarificationStage, QuestionRenderer
from rbac_chat.pipeline.router import RoutingStage, StatusStage
from rbac_chat.pipeline.stage import PipelineStage
from rbac_chat.validation.policy_validator import PolicyValidator

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    response: str
    outcome: TurnOutcome
    draft: Draft
    policy: Policy
    extraction_source: Optional[str] = None
    errors: List[ValidationError] = field(default_factory=list)


class ExtractionStage(PipelineStage):
    name = "extraction"

    def __init__(self, extractor: SlotExtractor):
        self.extractor = extractor

    def run(self, context: TurnContext) -> ValidationResult:
        result = self.extractor.extract(context.text, context.schema, context.draft)
        context.patch = result.patch
        context.extraction_source = result.source
        return ValidationResult.success()


class TurnController:
    """
    Runs one conversational turn:

        extraction -> accumulation -> draft validation -> routing
            -> status | clarification | compilation

    The first stage that settles the turn (sets an outcome) ends it, and so
    does a failed stage. The caller's draft and policy are never mutated;
    the new ones come back on the TurnResult.
    """

    def __init__(
        self,
        extractor: SlotExtractor,
        questions: QuestionRenderer,
        validator_factory=PolicyValidator,
    ):
        self.extractor = extractor
        self.questions = questions
        self.validator_factory = validator_factory

    def _stages(self, schema: Schema) -> List[PipelineStage]:
        return [
            ExtractionStage(self.extractor),
            DraftAccumulationStage(),
            DraftValidationStage(),
            RoutingStage(),
            StatusStage(),
            ClarificationStage(self.questions),
            CompilationStage(RuleCompiler(self.validator_factory(schema))),
        ]

    def run_turn(self, text: str, draft: Draft, policy: Policy, schema: Schema) -> TurnResult:
        context = TurnContext(
            text=text,
            schema=schema,
            draft=draft,
            policy=policy,
        )

        for stage in self._stages(schema):
            result = stage.run(context)

            if not result.is_valid:
                context.errors.extend(result.errors)
                logger.info("Stage %s stopped the turn: %s", stage.name, "; ".join(result.messages))

            # -------------------------------------------------
            # Hard stop once the turn is settled
            # -------------------------------------------------
            if context.is_terminal or not result.is_valid:
                break

        if context.outcome is None:
            # Every route settles the turn; reaching here means a stage bug
            raise RuntimeError("Turn finished without an outcome")

        logger.info(
            "Turn settled: outcome=%s source=%s rules=%d",
            context.outcome.value,
            context.extraction_source,
            len(context.policy.rules),
        )

        return TurnResult(
            response=context.response,
            outcome=context.outcome,
            draft=context.draft,
            policy=context.policy,
            extraction_source=context.extraction_source,
            errors=context.errors,
        )
