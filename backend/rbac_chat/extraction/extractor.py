import logging
from dataclasses import dataclass
from typing import Optional

from rbac_chat.errors import ExtractionError
from rbac_chat.inference.base import LLMClient
from rbac_chat.ir.draft import Draft, SlotPatch
from rbac_chat.ir.schema import Schema
from .llm_extractor import LLMExtractor
from .pattern_extractor import PatternExtractor

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    patch: SlotPatch
    source: str  # llm | pattern
    fallback_reason: Optional[str] = None


class SlotExtractor:
    """
    Two-tier extraction: LLM when a client is configured, pattern matching
    otherwise. Any LLM failure degrades to pattern matching silently.
    """

    def __init__(self, client: Optional[LLMClient] = None):
        self.llm = LLMExtractor(client) if client is not None else None

    def extract(self, text: str, schema: Schema, draft: Draft) -> ExtractionResult:
        fallback_reason = None

        if self.llm is not None:
            try:
                patch = self.llm.extract(text, schema, draft)
                return ExtractionResult(patch=patch, source="llm")
            except ExtractionError as e:
                logger.warning("LLM extraction failed, falling back to pattern matching: %s", e)
                fallback_reason = str(e)

        patch = PatternExtractor(schema).extract(text)
        return ExtractionResult(patch=patch, source="pattern", fallback_reason=fallback_reason)
