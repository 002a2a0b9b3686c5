from rbac_chat.extraction.extractor import ExtractionResult, SlotExtractor
from rbac_chat.extraction.llm_extractor import LLMExtractor
from rbac_chat.extraction.pattern_extractor import PatternExtractor
