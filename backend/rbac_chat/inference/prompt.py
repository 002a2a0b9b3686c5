import json
from typing import Dict, List

from rbac_chat.ir.draft import Draft
from rbac_chat.ir.schema import Schema


EXTRACTION_SYSTEM_PROMPT = """
You are an RBAC policy assistant. Extract entities or classify questions.

Output ONLY valid JSON.
Do NOT include markdown or explanations.

Task:
1. Classify "type": "RULE" (creating/editing) or "QUESTION" (asking status).
2. If RULE, detect "intent": "GRANT" or "REVOKE".
3. Detect "effect": "ALLOW" (can/allowed) or "DENY" (cannot/denied/not allowed).
   - "Admins cannot delete" -> effect: "DENY".
4. Extract "role", "action", "resource", "conditions".

Rules:
- You MUST return keys for "role", "action", "resource".
  If an entity is NOT explicitly mentioned, set it to null.
  Do NOT carry values over from the current draft.
- A subject that is not in the schema -> "role": "UNKNOWN".
- An action or resource not in the schema -> "UNKNOWN".
- Do NOT correct typos. Do NOT guess the closest match.
- Normalize plurals: "invoices" -> "invoice".
- "in prod" -> "conditions": {"environment": "prod"}.
- "Delete invoices" -> intent GRANT, action "delete".
  "Remove access" / "revoke" -> intent REVOKE.
- "Invoices and reports" -> "resource": ["invoice", "report"].
  "Read and delete" -> "action": ["read", "delete"].

JSON schema:
{
  "type": "RULE|QUESTION",
  "intent": "GRANT|REVOKE",
  "effect": "ALLOW|DENY",
  "role": "string|null",
  "action": "string|[string]|null",
  "resource": "string|[string]|null",
  "conditions": {"environment": "string|[string]"}
}
"""


QUESTION_SYSTEM_PROMPT = """
The user is building an RBAC rule but some information is missing.
Ask one short, natural clarifying question to get it.
Return only the question.
"""


def build_extraction_messages(text: str, schema: Schema, draft: Draft) -> List[Dict]:
    schema_block = {
        "roles": schema.roles,
        "resources": schema.resource_types,
        "actions": schema.all_actions,
        "environments": schema.context_values("environment"),
    }

    user_prompt = (
        f"Schema: {json.dumps(schema_block)}\n"
        f"Current draft: {json.dumps(draft.to_dict())}\n"
        f'User input: "{text}"'
    )

    return [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def build_question_messages(missing: List[str], draft: Draft) -> List[Dict]:
    user_prompt = (
        f"Missing fields: {', '.join(missing)}\n"
        f"Current draft: {json.dumps(draft.to_dict())}"
    )

    return [
        {"role": "system", "content": QUESTION_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]
