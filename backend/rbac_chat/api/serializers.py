from enum import Enum
from typing import Any, Dict

from rbac_chat.ir.schema import Schema
from rbac_chat.ir.session import SessionState


PRIMITIVE_TYPES = (str, int, float, bool, type(None))


def to_jsonable(obj: Any):
    """
    Turn domain objects into JSON-compatible structures.
    Objects that know their own wire form (``to_dict``) are trusted.
    """

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, PRIMITIVE_TYPES):
        return obj

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(item) for item in obj]

    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}

    if hasattr(obj, "to_dict"):
        return to_jsonable(obj.to_dict())

    if hasattr(obj, "__dict__"):
        return {
            key: to_jsonable(value)
            for key, value in obj.__dict__.items()
            if not key.startswith("_")
        }

    return str(obj)


def serialize_state(state: SessionState, schema: Schema) -> Dict[str, Any]:
    return {
        "session_id": state.session_id,
        "history": state.history(),
        "policy": to_jsonable(state.policy),
        "draft": to_jsonable(state.draft),
        "schema": to_jsonable(schema),
    }
