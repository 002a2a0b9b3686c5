"""Rule compiler: grant, merge, revoke and dry-run rejection"""

from rbac_chat.ir.draft import Draft, Intent
from rbac_chat.ir.policy import Effect, Policy, Rule
from rbac_chat.pipeline.context import TurnOutcome


def grant(compiler, policy, role, action, resource, environment=None, effect=None):
    conditions = {"environment": environment} if environment else {}
    draft = Draft(role=role, action=action, resource=resource, conditions=conditions, effect=effect)
    return compiler.compile(draft, policy)


def revoke(compiler, policy, role, action, resource):
    draft = Draft(role=role, action=action, resource=resource, intent=Intent.REVOKE)
    return compiler.compile(draft, policy)


def test_grant_adds_one_rule(compiler):
    policy = Policy()

    result = grant(compiler, policy, "admin", "read", "invoice")

    assert policy.rules == []
    assert len(result.policy.rules) == 1
    rule = result.policy.rules[0]
    assert (rule.role, rule.action, rule.resource, rule.effect) == ("admin", "read", "invoice", Effect.ALLOW)
    assert len(rule.id) == 8
    assert result.outcome == TurnOutcome.RULE_COMMITTED
    assert result.lines == ["Rule added: [admin] can [read] [invoice]."]


def test_identical_grant_is_idempotent(compiler):
    first = grant(compiler, Policy(), "admin", "read", "invoice")
    second = grant(compiler, first.policy, "admin", "read", "invoice")

    assert len(second.policy.rules) == 1
    assert second.policy.rules[0].id == first.policy.rules[0].id
    assert second.lines == ["Rule updated: [admin] can [read] [invoice]."]


def test_deny_flips_existing_rule(compiler):
    first = grant(compiler, Policy(), "admin", "read", "invoice")
    second = grant(compiler, first.policy, "admin", "read", "invoice", effect=Effect.DENY)

    assert len(second.policy.rules) == 1
    assert second.policy.rules[0].effect == Effect.DENY
    assert second.lines == ["Rule updated: [admin] cannot [read] [invoice]."]


def test_action_set_identity_ignores_order(compiler):
    first = grant(compiler, Policy(), "admin", ("read", "delete"), "invoice")
    second = grant(compiler, first.policy, "admin", ("delete", "read"), "invoice")

    assert len(second.policy.rules) == 1


def test_environment_union(compiler):
    first = grant(compiler, Policy(), "admin", "read", "invoice", environment="prod")
    second = grant(compiler, first.policy, "admin", "read", "invoice", environment="staging")

    assert len(second.policy.rules) == 1
    assert set(second.policy.rules[0].environment) == {"prod", "staging"}
    assert second.lines == ["Rule updated: [admin] can [read] [invoice] in [prod, staging]."]


def test_same_environment_stays_scalar(compiler):
    first = grant(compiler, Policy(), "admin", "read", "invoice", environment="prod")
    second = grant(compiler, first.policy, "admin", "read", "invoice", environment="prod")

    assert second.policy.rules[0].environment == "prod"


def test_grant_then_revoke_restores_rule_count(compiler):
    base = grant(compiler, Policy(), "operator", "export", "report").policy

    granted = grant(compiler, base, "admin", "read", "invoice").policy
    revoked = revoke(compiler, granted, "admin", "read", "invoice")

    assert len(revoked.policy.rules) == len(base.rules)
    assert revoked.outcome == TurnOutcome.REVOKED
    assert revoked.lines == ["Revoked access: [admin] can no longer [read] [invoice]."]


def test_partial_revoke_narrows(compiler):
    granted = grant(compiler, Policy(), "admin", ("read", "delete"), "invoice").policy

    result = revoke(compiler, granted, "admin", "delete", "invoice")

    assert len(result.policy.rules) == 1
    assert result.policy.rules[0].action == "read"
    assert result.lines == ["Updated access: [admin] lost [delete] on [invoice]."]


def test_revoke_without_overlap_leaves_rule(compiler):
    granted = grant(compiler, Policy(), "admin", "read", "invoice").policy

    result = revoke(compiler, granted, "admin", "approve", "invoice")

    assert result.policy.rules[0].action == "read"
    assert result.outcome == TurnOutcome.NO_OP
    assert result.lines == ["No matching permission found to revoke for [admin] on [invoice]."]


def test_narrowed_message_wins_over_removed(compiler):
    policy = Policy(rules=[
        Rule(role="admin", resource="invoice", action=("read", "delete")),
        Rule(role="admin", resource="invoice", action="delete"),
    ])

    result = revoke(compiler, policy, "admin", "delete", "invoice")

    assert [r.action for r in result.policy.rules] == ["read"]
    assert result.lines == ["Updated access: [admin] lost [delete] on [invoice]."]


def test_narrowing_folds_duplicates(compiler):
    policy = Policy(rules=[
        Rule(role="admin", resource="invoice", action=("read", "delete"), conditions={"environment": "prod"}),
        Rule(role="admin", resource="invoice", action="read", effect=Effect.DENY),
    ])

    result = revoke(compiler, policy, "admin", "delete", "invoice")

    assert len(result.policy.rules) == 1
    rule = result.policy.rules[0]
    assert rule.effect == Effect.DENY
    assert rule.environment is None


def test_dry_run_rejects_business_constraint(compiler):
    result = grant(compiler, Policy(), "viewer", "delete", "invoice")

    assert result.policy.rules == []
    assert result.outcome == TurnOutcome.DRY_RUN_REJECTED
    assert result.lines == [
        "I can't allow that. Security Violation - 'viewer' cannot perform write operations."
    ]


def test_existing_violations_do_not_block_new_rules(compiler):
    # Only errors on the candidate itself reject it
    policy = Policy(rules=[Rule(role="viewer", resource="invoice", action="delete")])

    result = grant(compiler, policy, "admin", "read", "invoice")

    assert result.outcome == TurnOutcome.RULE_COMMITTED
    assert len(result.policy.rules) == 2


def test_multi_resource_continues_after_reject(compiler):
    result = grant(compiler, Policy(), "viewer", "export", ("invoice", "report"))

    assert [r.resource for r in result.policy.rules] == ["report"]
    assert result.outcome == TurnOutcome.RULE_COMMITTED
    assert result.lines == [
        "I can't allow that. Action 'export' is not allowed on 'invoice'.",
        "Rule added: [viewer] can [export] [report].",
    ]


def test_multi_resource_grant_creates_rule_per_resource(compiler):
    result = grant(compiler, Policy(), "admin", "read", ("invoice", "report"))

    assert sorted(r.resource for r in result.policy.rules) == ["invoice", "report"]
    assert len(result.lines) == 2
