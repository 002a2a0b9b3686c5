import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .draft import Draft
from .policy import Policy


@dataclass
class ConversationTurn:
    role: str  # user | system
    content: str
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}


@dataclass
class SessionState:
    session_id: str = "default"
    draft: Draft = field(default_factory=Draft)
    policy: Policy = field(default_factory=Policy)
    conversation: List[ConversationTurn] = field(default_factory=list)

    def log(self, role: str, content: str) -> None:
        self.conversation.append(ConversationTurn(role=role, content=content))

    def history(self) -> List[Dict[str, Any]]:
        return [t.to_dict() for t in self.conversation]
