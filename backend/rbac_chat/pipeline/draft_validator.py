from typing import Iterable, Optional

from rbac_chat.ir.draft import Draft
from rbac_chat.ir.errors import DraftError
from rbac_chat.ir.schema import Schema
from rbac_chat.ir.slots import as_tuple, contains_unknown, is_unknown
from rbac_chat.ir.validation import ValidationResult
from rbac_chat.pipeline import responses
from rbac_chat.pipeline.context import TurnContext, TurnOutcome
from rbac_chat.pipeline.stage import PipelineStage
from rbac_chat.utils.fuzzy import suggest


def validate_draft(draft: Draft, schema: Schema) -> Optional[DraftError]:
    """
    First problem found, checked in order role > action > resource, or None.
    """

    # ---- SENTINELS ----
    if is_unknown(draft.role):
        return DraftError(
            field="role",
            message=_with_hint("Role is unknown or invalid.", draft.role, schema.roles),
        )

    # A rule belongs to exactly one role
    if len(as_tuple(draft.role)) > 1:
        return DraftError(
            field="role",
            message="A rule can only target one role at a time.",
        )

    if is_unknown(draft.action):
        return DraftError(
            field="action",
            message=_with_hint("Action is not valid.", draft.action, schema.all_actions),
        )

    if is_unknown(draft.resource):
        return DraftError(
            field="resource",
            message=_with_hint("Resource does not exist.", draft.resource, schema.resource_types),
        )

    if contains_unknown(draft.resource):
        bad = next(v for v in as_tuple(draft.resource) if is_unknown(v))
        return DraftError(
            field="resource",
            message=_with_hint("One of the resources does not exist.", bad, schema.resource_types),
        )

    # ---- ACTION / RESOURCE COMPATIBILITY ----
    if draft.resource and draft.action:
        actions = as_tuple(draft.action)
        for resource_type in as_tuple(draft.resource):
            res = schema.get_resource(resource_type)
            if res is None:
                return DraftError(
                    field="resource",
                    message=f"Resource '{resource_type}' does not exist.",
                )
            invalid = next((a for a in actions if a not in res.actions), None)
            if invalid is not None:
                return DraftError(
                    field="action",
                    message=f"Action '{invalid}' is not supported on '{resource_type}'.",
                )

    return None


def _with_hint(message: str, value, candidates: Iterable[str]) -> str:
    match = suggest(getattr(value, "raw", None), candidates)
    if match:
        return f"{message} Did you mean '{match}'?"
    return message


class DraftValidationStage(PipelineStage):
    name = "draft_validation"

    def run(self, context: TurnContext) -> ValidationResult:
        # Status questions never compile
        if context.draft.is_question:
            return ValidationResult.success()

        error = validate_draft(context.draft, context.schema)
        if error is None:
            return ValidationResult.success()

        # Reset only the offending slot so it is asked for again
        context.draft.clear_field(error.field)
        context.finish(TurnOutcome.DRAFT_REJECTED, responses.draft_rejected(error.message))

        return ValidationResult.rejected_draft(error)
