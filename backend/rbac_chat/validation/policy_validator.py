"""
Policy Validator - Checks a full rule set against the schema registry.

Catches issues like:
- Unknown roles
- Unknown resources
- Actions not supported on a resource
- Business constraint violations (e.g. a read-only role holding a write action)

Every issue is attributed to the rule that caused it, so a dry run can tell
whether a candidate rule introduced a problem.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List

from rbac_chat.ir.policy import Policy, Rule
from rbac_chat.ir.schema import Schema
from rbac_chat.ir.slots import as_set


class ValidationSeverity(Enum):
    ERROR = "error"      # Policy cannot be committed
    WARNING = "warning"  # Policy is usable but suspicious


@dataclass
class ValidationIssue:
    """A single problem found in the policy"""
    severity: ValidationSeverity
    code: str           # Machine-readable issue code
    message: str        # Human-readable description
    rule_id: str

    def to_error_string(self) -> str:
        return f"Rule {self.rule_id}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "rule_id": self.rule_id,
        }


@dataclass
class PolicyValidationReport:
    """Result of policy validation"""
    issues: List[ValidationIssue] = field(default_factory=list)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def valid(self) -> bool:
        return not any(i.severity == ValidationSeverity.ERROR for i in self.issues)

    @property
    def errors(self) -> List[str]:
        return [
            i.to_error_string()
            for i in self.issues
            if i.severity == ValidationSeverity.ERROR
        ]

    def errors_for(self, rule_id: str) -> List[ValidationIssue]:
        return [
            i
            for i in self.issues
            if i.rule_id == rule_id and i.severity == ValidationSeverity.ERROR
        ]

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": self.errors,
            "issues": [i.to_dict() for i in self.issues],
            "timestamp": self.timestamp,
        }

    def get_summary(self) -> str:
        status = "Valid" if self.valid else "Invalid"
        return f"{status} | Errors: {len(self.errors)}"


class PolicyValidator:
    """
    Validates a Policy against a Schema.

    Usage:
        validator = PolicyValidator(schema)
        report = validator.validate(policy)

        if not report.valid:
            for error in report.errors:
                logger.warning(error)
    """

    def __init__(self, schema: Schema):
        self.schema = schema

    def validate(self, policy: Policy) -> PolicyValidationReport:
        issues: List[ValidationIssue] = []

        for rule in policy.rules:
            issues.extend(self._check_role(rule))
            issues.extend(self._check_resource_actions(rule))
            issues.extend(self._check_constraints(rule))
            issues.extend(self._check_conditions(rule))

        return PolicyValidationReport(issues=issues)

    # ----------------------------
    # Checks
    # ----------------------------

    def _check_role(self, rule: Rule) -> List[ValidationIssue]:
        if isinstance(rule.role, str) and rule.role in self.schema.roles:
            return []
        return [
            ValidationIssue(
                severity=ValidationSeverity.ERROR,
                code="UNKNOWN_ROLE",
                message=f"Role '{rule.role}' is unknown.",
                rule_id=rule.id,
            )
        ]

    def _check_resource_actions(self, rule: Rule) -> List[ValidationIssue]:
        res_def = self.schema.get_resource(rule.resource)
        if res_def is None:
            return [
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="UNKNOWN_RESOURCE",
                    message=f"Resource '{rule.resource}' does not exist.",
                    rule_id=rule.id,
                )
            ]

        issues = []
        for action in sorted(rule.actions, key=str):
            if action not in res_def.actions:
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="UNSUPPORTED_ACTION",
                        message=f"Action '{action}' is not allowed on '{rule.resource}'.",
                        rule_id=rule.id,
                    )
                )
        return issues

    def _check_constraints(self, rule: Rule) -> List[ValidationIssue]:
        issues = []
        for constraint in self.schema.constraints:
            if constraint.role != rule.role:
                continue
            if rule.actions & set(constraint.forbidden_actions):
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="SECURITY_VIOLATION",
                        message=constraint.message
                        or f"Security Violation - '{rule.role}' cannot perform "
                        f"{', '.join(constraint.forbidden_actions)}.",
                        rule_id=rule.id,
                    )
                )
        return issues

    def _check_conditions(self, rule: Rule) -> List[ValidationIssue]:
        issues = []
        for name, value in rule.conditions.items():
            known = self.schema.context_values(name)
            if name not in self.schema.context_names:
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.WARNING,
                        code="UNKNOWN_CONDITION",
                        message=f"Condition '{name}' is not a known context dimension.",
                        rule_id=rule.id,
                    )
                )
                continue
            for v in as_set(value):
                if known and v not in known:
                    issues.append(
                        ValidationIssue(
                            severity=ValidationSeverity.WARNING,
                            code="UNKNOWN_CONDITION_VALUE",
                            message=f"'{v}' is not a known value for '{name}'.",
                            rule_id=rule.id,
                        )
                    )
        return issues


def validate_policy(policy: Policy, schema: Schema) -> PolicyValidationReport:
    """Convenience wrapper"""
    return PolicyValidator(schema).validate(policy)
