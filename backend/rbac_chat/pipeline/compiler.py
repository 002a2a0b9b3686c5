"""
Rule Compiler - turns a complete draft into policy mutations.

Steps per resource candidate:
1. REVOKE: subtract the draft's actions from every matching rule
2. GRANT: dry-run the policy validator with the candidate appended
3. COMMIT: merge into the rule with the same (role, resource, action-set)
   or append it

The caller's policy is never touched; all work happens on a copy.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from rbac_chat.ir.draft import Draft, Intent
from rbac_chat.ir.policy import Effect, Policy, Rule
from rbac_chat.ir.slots import as_tuple, collapse
from rbac_chat.ir.validation import ValidationResult
from rbac_chat.pipeline import responses
from rbac_chat.pipeline.context import Route, TurnContext, TurnOutcome
from rbac_chat.pipeline.stage import PipelineStage
from rbac_chat.validation.policy_validator import PolicyValidator

logger = logging.getLogger(__name__)


# Turn-level outcome when candidates disagree: first present wins
OUTCOME_PRIORITY = (
    TurnOutcome.RULE_COMMITTED,
    TurnOutcome.REVOKED,
    TurnOutcome.DRY_RUN_REJECTED,
    TurnOutcome.NO_OP,
)


@dataclass
class CandidateResult:
    resource: str
    outcome: TurnOutcome
    line: str
    rule_id: Optional[str] = None


@dataclass
class CompileResult:
    policy: Policy
    candidates: List[CandidateResult] = field(default_factory=list)

    @property
    def lines(self) -> List[str]:
        return [c.line for c in self.candidates]

    @property
    def outcome(self) -> TurnOutcome:
        seen = {c.outcome for c in self.candidates}
        for outcome in OUTCOME_PRIORITY:
            if outcome in seen:
                return outcome
        return TurnOutcome.NO_OP


class RuleCompiler:
    """
    Usage:
        compiler = RuleCompiler(PolicyValidator(schema))
        result = compiler.compile(draft, policy)
        policy = result.policy
    """

    def __init__(self, validator: PolicyValidator):
        self.validator = validator

    def compile(self, draft: Draft, policy: Policy) -> CompileResult:
        working = policy.copy()
        result = CompileResult(policy=working)

        role = draft.role
        actions = as_tuple(draft.action)

        # A rejected resource does not stop the others
        for resource in as_tuple(draft.resource):
            if draft.resolved_intent == Intent.REVOKE:
                candidate = self._revoke(working, role, resource, actions)
            else:
                candidate = self._grant(working, draft, role, resource, actions)
            result.candidates.append(candidate)

        return result

    # ----------------------------
    # REVOKE
    # ----------------------------

    def _revoke(self, policy: Policy, role: str, resource: str, actions: tuple) -> CandidateResult:
        revoked = set(actions)
        narrowed = removed = False
        kept: List[Rule] = []

        for rule in policy.rules:
            if rule.role != role or rule.resource != resource:
                kept.append(rule)
                continue

            remaining = [a for a in as_tuple(rule.action) if a not in revoked]
            if not remaining:
                removed = True
                continue

            if len(remaining) < len(as_tuple(rule.action)):
                rule.action = collapse(remaining)
                narrowed = True
            kept.append(rule)

        policy.rules = kept

        action = collapse(actions)
        if narrowed:
            fold_duplicates(policy)
            return CandidateResult(
                resource, TurnOutcome.REVOKED, responses.rule_narrowed(role, action, resource)
            )
        if removed:
            return CandidateResult(
                resource, TurnOutcome.REVOKED, responses.rule_revoked(role, action, resource)
            )
        return CandidateResult(
            resource, TurnOutcome.NO_OP, responses.revoke_no_match(role, resource)
        )

    # ----------------------------
    # GRANT
    # ----------------------------

    def _grant(self, policy: Policy, draft: Draft, role: str, resource: str, actions: tuple) -> CandidateResult:
        candidate = Rule(
            role=role,
            resource=resource,
            action=collapse(actions),
            conditions={k: v for k, v in copy.deepcopy(draft.conditions).items() if v},
            effect=draft.resolved_effect,
        )

        # ---- DRY RUN ----
        trial = Policy(version=policy.version, rules=policy.rules + [candidate])
        report = self.validator.validate(trial)
        problems = report.errors_for(candidate.id)
        if problems:
            logger.info("Dry run rejected %s: %s", candidate.id, problems[0].message)
            return CandidateResult(
                resource,
                TurnOutcome.DRY_RUN_REJECTED,
                responses.dry_run_rejected(problems[0].message),
            )

        # ---- COMMIT / MERGE ----
        existing = policy.find(candidate.key())
        if existing is not None:
            existing.effect = candidate.effect
            if candidate.environment:
                existing.conditions["environment"] = collapse(
                    list(as_tuple(existing.environment)) + list(as_tuple(candidate.environment))
                )
            return CandidateResult(
                resource, TurnOutcome.RULE_COMMITTED, responses.rule_updated(existing), existing.id
            )

        policy.rules.append(candidate)
        return CandidateResult(
            resource, TurnOutcome.RULE_COMMITTED, responses.rule_added(candidate), candidate.id
        )


def fold_duplicates(policy: Policy) -> None:
    """
    Narrowing can leave two rules with the same (role, resource, action-set).
    Fold them into the first: DENY wins, and a rule without an environment
    condition already covers every environment.
    """
    folded: List[Rule] = []
    by_key = {}

    for rule in policy.rules:
        first = by_key.get(rule.key())
        if first is None:
            by_key[rule.key()] = rule
            folded.append(rule)
            continue

        if Effect.DENY in (first.effect, rule.effect):
            first.effect = Effect.DENY

        if not first.environment or not rule.environment:
            first.conditions.pop("environment", None)
        else:
            first.conditions["environment"] = collapse(
                list(as_tuple(first.environment)) + list(as_tuple(rule.environment))
            )

    policy.rules = folded


class CompilationStage(PipelineStage):
    name = "compilation"

    def __init__(self, compiler: RuleCompiler):
        self.compiler = compiler

    def run(self, context: TurnContext) -> ValidationResult:
        if context.route != Route.COMPILE:
            return ValidationResult.success()

        result = self.compiler.compile(context.draft, context.policy)

        context.policy = result.policy
        context.draft = Draft()
        context.finish(result.outcome, *result.lines)

        return ValidationResult.success()
