"""Access decisions: deny-overrides, default-deny"""

from rbac_chat.ir.draft import Draft, Intent
from rbac_chat.ir.policy import Effect, Policy, Rule
from rbac_chat.policy.evaluator import AccessQuery, evaluate_access


def _compile(compiler, policy, **slots):
    return compiler.compile(Draft(**slots), policy).policy


def test_empty_policy_is_implicit_deny():
    decision = evaluate_access(Policy(), AccessQuery(role="viewer", action="delete", resource="invoice"))

    assert decision.allowed is False
    assert decision.reason == "implicit deny"
    assert decision.matched_rules == []


def test_granted_access_is_scoped_to_resource(compiler):
    policy = _compile(compiler, Policy(), role="admin", action="read", resource="invoice")

    allowed = evaluate_access(policy, AccessQuery("admin", "invoice", "read"))
    other = evaluate_access(policy, AccessQuery("admin", "report", "read"))

    assert (allowed.allowed, allowed.reason) == (True, "explicit allow")
    assert (other.allowed, other.reason) == (False, "implicit deny")


def test_environment_condition(compiler):
    policy = _compile(
        compiler, Policy(),
        role="admin", action="read", resource="invoice", conditions={"environment": "prod"},
    )

    assert not evaluate_access(policy, AccessQuery("admin", "invoice", "read", "staging")).allowed
    assert evaluate_access(policy, AccessQuery("admin", "invoice", "read", "prod")).allowed


def test_rule_without_environment_matches_any(compiler):
    policy = _compile(compiler, Policy(), role="admin", action="read", resource="invoice")
    assert evaluate_access(policy, AccessQuery("admin", "invoice", "read", "staging")).allowed


def test_partial_revoke_then_evaluate(compiler):
    policy = _compile(compiler, Policy(), role="admin", action=("read", "delete"), resource="invoice")
    policy = _compile(compiler, policy, role="admin", action="delete", resource="invoice", intent=Intent.REVOKE)

    assert len(policy.rules) == 1
    assert policy.rules[0].action == "read"
    assert evaluate_access(policy, AccessQuery("admin", "invoice", "read")).allowed
    assert not evaluate_access(policy, AccessQuery("admin", "invoice", "delete")).allowed


def test_deny_overrides_allow_in_any_order():
    allow = Rule(id="aaaa0001", role="admin", resource="invoice", action=("read", "delete"))
    deny = Rule(id="aaaa0002", role="admin", resource="invoice", action="delete", effect=Effect.DENY)
    query = AccessQuery("admin", "invoice", "delete")

    for rules in ([allow, deny], [deny, allow]):
        decision = evaluate_access(Policy(rules=rules), query)
        assert decision.allowed is False
        assert decision.reason == "explicit deny"
        assert decision.matched_rules == ["aaaa0001", "aaaa0002"]
