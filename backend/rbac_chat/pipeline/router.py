from dataclasses import dataclass, field
from typing import List

from rbac_chat.ir.draft import Draft
from rbac_chat.ir.policy import Policy
from rbac_chat.ir.slots import is_unknown
from rbac_chat.ir.validation import ValidationResult
from rbac_chat.pipeline import responses
from rbac_chat.pipeline.context import Route, TurnContext, TurnOutcome
from rbac_chat.pipeline.stage import PipelineStage


@dataclass
class RouteDecision:
    route: Route
    missing: List[str] = field(default_factory=list)


def route_draft(draft: Draft) -> RouteDecision:
    """
    Decide what the turn does next:
        QUESTION draft      -> STATUS
        missing slots       -> NEEDS_INPUT (role, resource, action order)
        otherwise           -> COMPILE
    """
    if draft.is_question:
        return RouteDecision(Route.STATUS)

    missing = draft.missing_slots()
    if missing:
        return RouteDecision(Route.NEEDS_INPUT, missing)

    return RouteDecision(Route.COMPILE)


def answer_status(draft: Draft, policy: Policy) -> List[str]:
    """Summarize what the draft's role currently holds."""
    role = draft.role
    if not role or is_unknown(role) or not isinstance(role, str):
        return [responses.status_missing_role()]

    rules = policy.rules_for_role(role)
    if not rules:
        return [responses.status_no_permissions(role)]

    return responses.status_summary(role, rules)


class RoutingStage(PipelineStage):
    name = "routing"

    def run(self, context: TurnContext) -> ValidationResult:
        decision = route_draft(context.draft)
        context.route = decision.route
        context.missing = decision.missing
        return ValidationResult.success()


class StatusStage(PipelineStage):
    name = "status"

    def run(self, context: TurnContext) -> ValidationResult:
        if context.route != Route.STATUS:
            return ValidationResult.success()

        lines = answer_status(context.draft, context.policy)
        context.draft = Draft()
        context.finish(TurnOutcome.STATUS_ANSWERED, *lines)

        return ValidationResult.success()
