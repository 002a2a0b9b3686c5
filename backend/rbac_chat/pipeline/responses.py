"""
User-facing response lines.

Every sentence the conversation can produce lives here so the stages only
decide *which* line to emit.
"""

from typing import Iterable, List

from rbac_chat.ir.policy import Effect, Rule
from rbac_chat.ir.slots import format_value


def _verb(effect: Effect) -> str:
    return "cannot" if effect == Effect.DENY else "can"


def _env_suffix(rule: Rule) -> str:
    if not rule.environment:
        return ""
    return f" in [{format_value(rule.environment)}]"


def _rule_phrase(rule: Rule) -> str:
    return (
        f"[{rule.role}] {_verb(rule.effect)} [{format_value(rule.action)}] "
        f"[{rule.resource}]{_env_suffix(rule)}"
    )


# ---- compiler ----

def rule_added(rule: Rule) -> str:
    return f"Rule added: {_rule_phrase(rule)}."


def rule_updated(rule: Rule) -> str:
    return f"Rule updated: {_rule_phrase(rule)}."


def rule_narrowed(role: str, action, resource: str) -> str:
    return f"Updated access: [{role}] lost [{format_value(action)}] on [{resource}]."


def rule_revoked(role: str, action, resource: str) -> str:
    return f"Revoked access: [{role}] can no longer [{format_value(action)}] [{resource}]."


def revoke_no_match(role: str, resource: str) -> str:
    return f"No matching permission found to revoke for [{role}] on [{resource}]."


def dry_run_rejected(message: str) -> str:
    return f"I can't allow that. {message}"


# ---- draft validator ----

def draft_rejected(message: str) -> str:
    return f"I can't allow that. {message}"


# ---- status ----

def status_line(rule: Rule) -> str:
    prefix = "cannot " if rule.effect == Effect.DENY else ""
    line = f"- {prefix}{format_value(rule.action)} {rule.resource}"
    if rule.environment:
        line += f" (in {format_value(rule.environment)})"
    return line


def status_summary(role: str, rules: Iterable[Rule]) -> List[str]:
    return [f"Current permissions for [{role}]:"] + [status_line(r) for r in rules]


def status_no_permissions(role: str) -> str:
    return f"[{role}] currently has no permissions."


def status_missing_role() -> str:
    return "Please specify which role you are asking about (e.g., 'What can admins do?')"


# ---- clarifying questions ----

def clarifying_question(missing: List[str], role=None, resource=None) -> str:
    first = missing[0] if missing else "role"

    if first == "role":
        return "Who is this rule for? (e.g., admin, operator)"
    if first == "resource":
        return f"What resource does the {format_value(role) or 'role'} need access to?"
    return (
        f"What can the {format_value(role) or 'role'} do with "
        f"{format_value(resource) or 'that resource'}?"
    )
