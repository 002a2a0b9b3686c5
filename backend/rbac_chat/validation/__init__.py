"""
Validation module for policy validation.
"""

from rbac_chat.validation.policy_validator import (
    PolicyValidationReport,
    PolicyValidator,
    ValidationIssue,
    ValidationSeverity,
    validate_policy,
)
