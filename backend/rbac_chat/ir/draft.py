from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional

from .policy import Effect
from .slots import CLEARED, UNSET, PatchMarker, SlotValue, Unknown


class Intent(str, Enum):
    GRANT = "GRANT"
    REVOKE = "REVOKE"


class DraftType(str, Enum):
    RULE = "RULE"
    QUESTION = "QUESTION"


# Only these keys ever reach the draft
DRAFT_FIELDS = ("role", "action", "resource", "conditions", "intent", "effect", "type")

REQUIRED_SLOTS = ("role", "resource", "action")

ENUM_FIELDS = {"intent": Intent, "effect": Effect, "type": DraftType}


@dataclass
class Draft:
    role: SlotValue = None
    resource: SlotValue = None
    action: SlotValue = None
    conditions: Dict[str, Any] = field(default_factory=dict)
    intent: Optional[Intent] = None
    effect: Optional[Effect] = None
    type: Optional[DraftType] = None

    @property
    def resolved_intent(self) -> Intent:
        return self.intent or Intent.GRANT

    @property
    def resolved_effect(self) -> Effect:
        return self.effect or Effect.ALLOW

    @property
    def is_question(self) -> bool:
        return self.type == DraftType.QUESTION

    def is_empty(self) -> bool:
        return self == Draft()

    def missing_slots(self) -> list:
        return [name for name in REQUIRED_SLOTS if not getattr(self, name)]

    def clear_field(self, name: str) -> None:
        setattr(self, name, empty_value(name))

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == {}:
                continue
            data[f.name] = encode_value(value)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Draft":
        data = data or {}
        draft = cls()
        for name in ("role", "resource", "action"):
            if name in data:
                setattr(draft, name, decode_value(data[name]))
        if data.get("conditions"):
            draft.conditions = {
                k: decode_value(v) for k, v in data["conditions"].items()
            }
        if data.get("intent"):
            draft.intent = Intent(data["intent"])
        if data.get("effect"):
            draft.effect = Effect(data["effect"])
        if data.get("type"):
            draft.type = DraftType(data["type"])
        return draft


@dataclass
class SlotPatch:
    """
    One turn's extracted slots.

    Every field is UNSET (carry over), CLEARED (explicit reset) or a value.
    """

    role: Any = UNSET
    resource: Any = UNSET
    action: Any = UNSET
    conditions: Any = UNSET
    intent: Any = UNSET
    effect: Any = UNSET
    type: Any = UNSET

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "SlotPatch":
        """
        Build a patch from a plain mapping. Keys outside DRAFT_FIELDS are
        ignored; a key present with None is an explicit reset.
        """
        patch = cls()
        for name in DRAFT_FIELDS:
            if name not in data:
                continue
            value = data[name]
            if value is None:
                value = CLEARED
            elif name in ENUM_FIELDS:
                value = ENUM_FIELDS[name](value)
            else:
                value = decode_value(value)
            setattr(patch, name, value)
        return patch

    def set_fields(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.set_fields()


def empty_value(name: str):
    return {} if name == "conditions" else None


# ============================================================
# JSON ENCODING (storage / API)
# ============================================================

def encode_value(value):
    if isinstance(value, Unknown):
        return {"unknown": value.raw}
    if isinstance(value, PatchMarker):
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [encode_value(v) for v in value]
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    return value


def decode_value(value):
    if isinstance(value, dict) and set(value) == {"unknown"}:
        return Unknown(raw=value["unknown"])
    if isinstance(value, dict):
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return tuple(decode_value(v) for v in value)
    return value
