from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class LLMClient(ABC):
    @abstractmethod
    def generate(self, messages: List[Dict], max_tokens: Optional[int] = None) -> str:
        """Return the assistant text for a list of chat messages.

        Implementations raise on transport errors; callers decide the fallback.
        """
