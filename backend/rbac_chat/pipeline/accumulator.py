import copy

from rbac_chat.ir.draft import DRAFT_FIELDS, Draft, SlotPatch
from rbac_chat.ir.slots import CLEARED
from rbac_chat.ir.validation import ValidationResult
from rbac_chat.pipeline.context import TurnContext
from rbac_chat.pipeline.stage import PipelineStage


def merge_draft(previous: Draft, patch: SlotPatch) -> Draft:
    """
    Apply one turn's patch to the draft.

    CLEARED resets a field, a value replaces it, UNSET carries the previous
    value over. No schema checks happen here. ``previous`` is left untouched.
    """
    draft = copy.deepcopy(previous)

    for name, value in patch.set_fields().items():
        if name not in DRAFT_FIELDS:
            continue

        if value is CLEARED:
            draft.clear_field(name)
        else:
            setattr(draft, name, copy.deepcopy(value))

    return draft


class DraftAccumulationStage(PipelineStage):
    name = "accumulation"

    def run(self, context: TurnContext) -> ValidationResult:
        if context.patch is not None:
            context.draft = merge_draft(context.draft, context.patch)
        return ValidationResult.success()
