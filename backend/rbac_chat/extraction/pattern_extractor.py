import re
from typing import List

from rbac_chat.ir.draft import DraftType, Intent, SlotPatch
from rbac_chat.ir.policy import Effect
from rbac_chat.ir.schema import Schema
from rbac_chat.ir.slots import CLEARED, collapse


NEGATIVES = ("cannot", "can't", "can not", "deny", "denied", "not allow", "block", "forbid")
POSITIVES = ("can", "allow", "permit", "grant", "give", "let")
REVOKE_PHRASES = ("revoke", "remove access", "remove permission", "take away", "no longer")
QUESTION_OPENERS = ("what can", "what does", "what do", "which", "show", "list")

# Spoken forms of environment values; the value itself always matches
ENVIRONMENT_ALIASES = {
    "prod": ("production",),
    "staging": ("stage",),
}


def _word_pattern(name: str, suffix: str = "s?") -> re.Pattern:
    # system_config also matches "system config"
    body = "[ _]".join(re.escape(part) for part in name.lower().split("_"))
    return re.compile(rf"\b{body}{suffix}\b")


def _has_phrase(text: str, phrases) -> bool:
    return any(re.search(rf"\b{re.escape(p)}\b", text) for p in phrases)


class PatternExtractor:
    """
    Lower-fidelity extractor used when no LLM is configured or the LLM fails.

    Matches schema vocabulary directly in the text. It cannot recognize names
    outside the schema, so it never produces the Unknown sentinel.
    """

    def __init__(self, schema: Schema):
        self.schema = schema

    def extract(self, text: str) -> SlotPatch:
        lower = (text or "").lower()
        patch = SlotPatch()

        roles = self._find(lower, self.schema.roles)
        if roles:
            patch.role = collapse(roles)

        resources = self._find(lower, self.schema.resource_types)
        if resources:
            patch.resource = collapse(resources)

        actions = self._find(lower, self.schema.all_actions, suffix="(?:s|d|ed)?")
        if actions:
            patch.action = collapse(actions)

        environments = [
            value
            for value in self.schema.context_values("environment")
            if _has_phrase(lower, (value.lower(),) + ENVIRONMENT_ALIASES.get(value, ()))
        ]
        if environments:
            patch.conditions = {"environment": collapse(environments)}

        # HEURISTIC: new role + resource without action -> drop stale action
        if roles and resources and not actions:
            patch.action = CLEARED

        if self._is_question(lower):
            patch.type = DraftType.QUESTION
        else:
            patch.type = DraftType.RULE

        if _has_phrase(lower, REVOKE_PHRASES):
            patch.intent = Intent.REVOKE
        elif _has_phrase(lower, NEGATIVES):
            patch.intent = Intent.GRANT
            patch.effect = Effect.DENY
        elif _has_phrase(lower, POSITIVES):
            patch.intent = Intent.GRANT
            patch.effect = Effect.ALLOW

        return patch

    def _find(self, text: str, names: List[str], suffix: str = "s?") -> List[str]:
        return [n for n in names if _word_pattern(n, suffix).search(text)]

    def _is_question(self, text: str) -> bool:
        stripped = text.strip()
        return stripped.endswith("?") or stripped.startswith(QUESTION_OPENERS)
