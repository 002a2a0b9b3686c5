from dataclasses import dataclass, field
from typing import List, Optional

from rbac_chat.ir.policy import Effect, Policy, Rule


IMPLICIT_DENY = "implicit deny"
EXPLICIT_DENY = "explicit deny"
EXPLICIT_ALLOW = "explicit allow"


@dataclass(frozen=True)
class AccessQuery:
    role: str
    resource: str
    action: str
    environment: Optional[str] = None


@dataclass
class AccessDecision:
    allowed: bool
    reason: str
    matched_rules: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "matched_rules": self.matched_rules,
        }


def _matches(rule: Rule, query: AccessQuery) -> bool:
    if rule.role != query.role or rule.resource != query.resource:
        return False
    if query.action not in rule.actions:
        return False

    # No environment condition: the rule applies everywhere
    if query.environment and rule.environment:
        return query.environment in rule.environments

    return True


def evaluate_access(policy: Policy, query: AccessQuery) -> AccessDecision:
    """
    Deny-overrides, default-deny decision for one request.

    The result does not depend on rule order.
    """
    matched = [r for r in policy.rules if _matches(r, query)]
    ids = sorted(r.id for r in matched)

    if not matched:
        return AccessDecision(False, IMPLICIT_DENY, ids)

    if any(r.effect == Effect.DENY for r in matched):
        return AccessDecision(False, EXPLICIT_DENY, ids)

    return AccessDecision(True, EXPLICIT_ALLOW, ids)
