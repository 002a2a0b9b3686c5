from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from rbac_chat.ir.draft import Draft, SlotPatch
from rbac_chat.ir.errors import ValidationError
from rbac_chat.ir.policy import Policy
from rbac_chat.ir.schema import Schema


class TurnOutcome(str, Enum):
    RULE_COMMITTED = "rule_committed"
    REVOKED = "revoked"
    NO_OP = "no_op"
    DRY_RUN_REJECTED = "dry_run_rejected"
    DRAFT_REJECTED = "draft_rejected"
    NEEDS_INPUT = "needs_input"
    STATUS_ANSWERED = "status_answered"


class Route(str, Enum):
    STATUS = "status"
    NEEDS_INPUT = "needs_input"
    COMPILE = "compile"


@dataclass
class TurnContext:
    # Raw input (authoritative)
    text: str
    schema: Schema

    # Threaded state: stages replace these, never the caller's objects
    draft: Draft
    policy: Policy

    # Extraction
    patch: Optional[SlotPatch] = None
    extraction_source: Optional[str] = None

    # Routing
    route: Optional[Route] = None
    missing: List[str] = field(default_factory=list)

    # Result
    response_lines: List[str] = field(default_factory=list)
    outcome: Optional[TurnOutcome] = None

    errors: List[ValidationError] = field(default_factory=list)

    @property
    def response(self) -> str:
        return "\n".join(self.response_lines)

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None

    def finish(self, outcome: TurnOutcome, *lines: str) -> None:
        self.outcome = outcome
        self.response_lines.extend(lines)
