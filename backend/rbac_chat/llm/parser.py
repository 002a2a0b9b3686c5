import json
import re
from typing import Any, Dict, List

from rbac_chat.errors import ExtractionError
from rbac_chat.ir.draft import DraftType, Intent, SlotPatch
from rbac_chat.ir.policy import Effect
from rbac_chat.ir.schema import Schema
from rbac_chat.ir.slots import CLEARED, UNKNOWN, UNSET, Unknown, collapse


# ============================================================
# SAFE JSON LOADER (LLM TRUST BOUNDARY)
# ============================================================

def safe_load_json(json_text: str) -> Dict[str, Any]:
    """
    Safely extract and parse JSON from LLM output.

    Strategy:
    1. Try direct json.loads (fast path)
    2. Fallback to extracting first JSON object
    3. Fail gracefully with empty dict

    NEVER throws.
    """

    if not json_text or not isinstance(json_text, str):
        return {}

    # Fast path
    try:
        data = json.loads(json_text)
        return data if isinstance(data, dict) else {}
    except ValueError:
        pass

    # Fallback: extract first JSON object
    match = re.search(r"\{.*\}", json_text, re.DOTALL)
    if not match:
        return {}

    try:
        data = json.loads(match.group(0))
        return data if isinstance(data, dict) else {}
    except ValueError:
        return {}


# ============================================================
# EXTRACTION PARSER
# ============================================================

ENTITY_SLOTS = ("role", "action", "resource")


def parse_extraction(json_text: str, schema: Schema) -> SlotPatch:
    """
    Turn raw extractor output into a SlotPatch, re-checking every entity
    against the schema. Unrecognized names become Unknown; nulls become
    explicit resets.

    Raises ExtractionError when the output holds no JSON object.
    """
    data = safe_load_json(json_text)
    if not data:
        raise ExtractionError("Extractor returned no JSON object")

    # ---- ANTI-STICKY: two entities named, third omitted -> reset it ----
    named = [k for k in ENTITY_SLOTS if data.get(k)]
    if len(named) == 2:
        for k in ENTITY_SLOTS:
            if k not in data:
                data[k] = None

    patch = SlotPatch()

    patch.role = _parse_entity(data, "role", schema.roles)
    patch.action = _parse_entity(data, "action", schema.all_actions)
    patch.resource = _parse_entity(data, "resource", schema.resource_types, per_member=True)
    patch.conditions = _parse_conditions(data, schema)
    patch.intent = _parse_enum(data, "intent", Intent)
    patch.effect = _parse_enum(data, "effect", Effect)
    patch.type = _parse_enum(data, "type", DraftType)

    return patch


def _parse_entity(data: Dict[str, Any], key: str, vocabulary: List[str], per_member: bool = False):
    if key not in data:
        return UNSET

    raw = data[key]
    if raw is None or raw == [] or raw == "":
        return CLEARED

    items = raw if isinstance(raw, list) else [raw]
    values = [_match(item, vocabulary) for item in items]

    unknowns = [v for v in values if isinstance(v, Unknown)]
    if unknowns and not per_member:
        return unknowns[0]

    return collapse(values)


def _match(item: Any, vocabulary: List[str]):
    if not isinstance(item, str):
        return UNKNOWN

    value = item.strip()
    if value in vocabulary:
        return value

    lowered = value.lower()
    if lowered in vocabulary:
        return lowered
    if lowered.endswith("s") and lowered[:-1] in vocabulary:
        return lowered[:-1]

    if value.upper() == "UNKNOWN":
        return UNKNOWN
    return Unknown(raw=value)


def _parse_conditions(data: Dict[str, Any], schema: Schema):
    if "conditions" not in data:
        return UNSET

    raw = data["conditions"]
    if raw is None:
        return CLEARED
    if not isinstance(raw, dict):
        return UNSET

    conditions = {}
    for name, value in raw.items():
        if name not in schema.context_names or value in (None, "", []):
            continue
        items = value if isinstance(value, list) else [value]
        conditions[name] = collapse(str(v).strip().lower() for v in items)

    # Present but empty (or all-null): explicit reset
    return conditions if conditions else CLEARED


def _parse_enum(data: Dict[str, Any], key: str, enum_cls):
    if key not in data:
        return UNSET

    raw = data[key]
    if raw is None:
        return CLEARED

    try:
        return enum_cls(str(raw).strip().upper())
    except ValueError:
        return UNSET
