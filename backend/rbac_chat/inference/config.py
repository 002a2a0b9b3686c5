from typing import Optional

from rbac_chat.config import LLM_BASE_URL, LLM_MODEL, LLM_TEMPERATURE, LLM_TIMEOUT
from .base import LLMClient
from .chat_completions_client import ChatCompletionsClient


def get_llm_client() -> Optional[LLMClient]:
    """LLM client from environment, or None when no endpoint is configured."""
    if not LLM_BASE_URL:
        return None

    return ChatCompletionsClient(
        base_url=LLM_BASE_URL,
        model=LLM_MODEL,
        temperature=LLM_TEMPERATURE,
        timeout=LLM_TIMEOUT,
    )
