import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from .slots import as_set, as_tuple


class Effect(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


ActionValue = Union[str, Tuple[str, ...]]


def new_rule_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass
class Rule:
    role: str
    resource: str
    action: ActionValue
    conditions: Dict[str, Any] = field(default_factory=dict)
    effect: Effect = Effect.ALLOW
    id: str = field(default_factory=new_rule_id)

    @property
    def actions(self) -> Set[str]:
        return as_set(self.action)

    @property
    def environment(self):
        return self.conditions.get("environment")

    @property
    def environments(self) -> Set[str]:
        return as_set(self.environment)

    def key(self) -> Tuple[str, str, frozenset]:
        """Identity used by the merge step: (role, resource, action-set)."""
        return (self.role, self.resource, frozenset(self.actions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.id,
            "role": self.role,
            "resource": self.resource,
            "action": _plain(self.action),
            "conditions": {k: _plain(v) for k, v in self.conditions.items()},
            "effect": self.effect.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        return cls(
            id=data.get("rule_id") or data.get("id") or new_rule_id(),
            role=data["role"],
            resource=data["resource"],
            action=_tupled(data["action"]),
            conditions={
                k: _tupled(v) for k, v in (data.get("conditions") or {}).items()
            },
            effect=Effect(data.get("effect") or Effect.ALLOW.value),
        )


@dataclass
class Policy:
    version: str = "1.0"
    rules: List[Rule] = field(default_factory=list)

    def copy(self) -> "Policy":
        return copy.deepcopy(self)

    def rules_for_role(self, role: str) -> List[Rule]:
        return [r for r in self.rules if r.role == role]

    def find(self, key: Tuple[str, str, frozenset]) -> Optional[Rule]:
        for rule in self.rules:
            if rule.key() == key:
                return rule
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "rules": [r.to_dict() for r in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Policy":
        data = data or {}
        return cls(
            version=str(data.get("version", "1.0")),
            rules=[Rule.from_dict(r) for r in data.get("rules", []) or []],
        )


def _plain(value):
    if isinstance(value, tuple):
        return list(value)
    return value


def _tupled(value):
    if isinstance(value, list):
        return as_tuple(value) if len(value) != 1 else value[0]
    return value
