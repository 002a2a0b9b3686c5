import requests

from rbac_chat.errors import ExtractionError
from rbac_chat.inference.base import LLMClient
from rbac_chat.inference.prompt import build_extraction_messages
from rbac_chat.ir.draft import Draft, SlotPatch
from rbac_chat.ir.schema import Schema
from rbac_chat.llm.parser import parse_extraction


class LLMExtractor:
    """Slot extraction through a chat-completions model."""

    def __init__(self, client: LLMClient, max_tokens: int = 1024):
        self.client = client
        self.max_tokens = max_tokens

    def extract(self, text: str, schema: Schema, draft: Draft) -> SlotPatch:
        messages = build_extraction_messages(text, schema, draft)

        try:
            raw = self.client.generate(messages, max_tokens=self.max_tokens)
        except requests.RequestException as e:
            raise ExtractionError(f"LLM request failed: {e}") from e
        except (KeyError, IndexError, ValueError) as e:
            raise ExtractionError(f"Malformed LLM response: {e}") from e

        return parse_extraction(raw, schema)
