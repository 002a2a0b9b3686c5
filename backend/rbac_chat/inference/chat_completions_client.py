import re
from typing import Dict, List, Optional

import requests

from .base import LLMClient


class ChatCompletionsClient(LLMClient):
    """Client for any OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.0,
        timeout: int = 60,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.timeout = timeout

    def generate(self, messages: List[Dict], max_tokens: Optional[int] = None) -> str:
        url = f"{self.base_url}/chat/completions"

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens

        response = requests.post(url, json=payload, timeout=self.timeout)
        response.raise_for_status()

        content = response.json()["choices"][0]["message"]["content"]

        #  STRIP MARKDOWN FENCES
        content = re.sub(r"^```(?:json)?\s*", "", content.strip())
        content = re.sub(r"\s*```$", "", content.strip())

        return content
