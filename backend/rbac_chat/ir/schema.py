from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set


@dataclass
class ResourceDef:
    type: str
    actions: List[str] = field(default_factory=list)


@dataclass
class ContextDimension:
    name: str
    type: str = "string"
    values: List[str] = field(default_factory=list)


@dataclass
class RoleConstraint:
    """Business constraint: ``role`` may never hold any of ``forbidden_actions``."""
    role: str
    forbidden_actions: List[str] = field(default_factory=list)
    message: str = ""


@dataclass
class Schema:
    version: str = "1.0"
    roles: List[str] = field(default_factory=list)
    resources: List[ResourceDef] = field(default_factory=list)
    context: List[ContextDimension] = field(default_factory=list)
    constraints: List[RoleConstraint] = field(default_factory=list)

    # ----------------------------
    # Lookups
    # ----------------------------

    def get_resource(self, resource_type: str) -> Optional[ResourceDef]:
        for res in self.resources:
            if res.type == resource_type:
                return res
        return None

    @property
    def resource_types(self) -> List[str]:
        return [r.type for r in self.resources]

    @property
    def all_actions(self) -> List[str]:
        actions: List[str] = []
        for res in self.resources:
            for action in res.actions:
                if action not in actions:
                    actions.append(action)
        return actions

    def context_values(self, name: str) -> List[str]:
        for dim in self.context:
            if dim.name == name:
                return list(dim.values)
        return []

    @property
    def context_names(self) -> Set[str]:
        return {dim.name for dim in self.context}

    # ----------------------------
    # (De)serialization
    # ----------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schema":
        resources = [
            ResourceDef(
                type=r["type"],
                actions=list(r.get("actions", [])),
            )
            for r in data.get("resources", [])
        ]

        context = [
            ContextDimension(
                name=c["name"],
                type=c.get("type", "string"),
                values=list(c.get("values", []) or []),
            )
            for c in data.get("context", [])
        ]

        constraints = [
            RoleConstraint(
                role=c["role"],
                forbidden_actions=list(c.get("forbidden_actions", [])),
                message=c.get("message", ""),
            )
            for c in data.get("constraints", [])
        ]

        return cls(
            version=str(data.get("version", "1.0")),
            roles=list(data.get("roles", [])),
            resources=resources,
            context=context,
            constraints=constraints,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "roles": list(self.roles),
            "resources": [
                {"type": r.type, "actions": list(r.actions)}
                for r in self.resources
            ],
            "context": [
                {"name": c.name, "type": c.type, "values": list(c.values)}
                for c in self.context
            ],
            "constraints": [
                {
                    "role": c.role,
                    "forbidden_actions": list(c.forbidden_actions),
                    "message": c.message,
                }
                for c in self.constraints
            ],
        }
