import logging
from typing import List, Optional

import requests

from rbac_chat.inference.base import LLMClient
from rbac_chat.inference.prompt import build_question_messages
from rbac_chat.ir.draft import Draft
from rbac_chat.ir.validation import ValidationResult
from rbac_chat.pipeline import responses
from rbac_chat.pipeline.context import Route, TurnContext, TurnOutcome
from rbac_chat.pipeline.stage import PipelineStage

logger = logging.getLogger(__name__)


class QuestionRenderer:
    """
    Phrases the clarifying question for a draft with missing slots.

    Uses the LLM when one is configured and falls back to the fixed
    templates on any transport or response-shape failure.
    """

    def __init__(self, client: Optional[LLMClient] = None, max_tokens: int = 100):
        self.client = client
        self.max_tokens = max_tokens

    def ask(self, missing: List[str], draft: Draft) -> str:
        if self.client is not None:
            try:
                question = self.client.generate(
                    build_question_messages(missing, draft),
                    max_tokens=self.max_tokens,
                )
                question = (question or "").strip()
                if question:
                    return question
                logger.warning("Question generation returned empty text")
            except (requests.RequestException, KeyError, IndexError, ValueError) as e:
                logger.warning("Question generation failed, using template: %s", e)

        return responses.clarifying_question(missing, role=draft.role, resource=draft.resource)


class ClarificationStage(PipelineStage):
    name = "clarification"

    def __init__(self, renderer: QuestionRenderer):
        self.renderer = renderer

    def run(self, context: TurnContext) -> ValidationResult:
        if context.route != Route.NEEDS_INPUT:
            return ValidationResult.success()

        # Draft is kept so the next turn can fill the gap
        question = self.renderer.ask(context.missing, context.draft)
        context.finish(TurnOutcome.NEEDS_INPUT, question)

        return ValidationResult.success()
