from __future__ import annotations

import logging
from dataclasses import replace

from contracts.errors import RECOVERABLE_KINDS, ErrorKind, error_message
from contracts.recipe import ConversionError, ConversionResult, MeasurementSystem, RecipeDraft

from .classifier import classify
from .converters import get_converter
from .recovery import RECOVERY_SUGGESTIONS, RecoveryContext, recover_draft

logger = logging.getLogger(__name__)


def _failure(kind: ErrorKind, detail: dict | None = None) -> ConversionResult:
    message, remedy = error_message(kind)
    return ConversionResult(
        success=False,
        error=ConversionError(kind=kind, message=message, remedy=remedy, detail=detail),
    )


def draft_text(draft: RecipeDraft) -> str:
    """
    Best available text for a draft: its source text, else its fields joined.
    """

    if draft.source_text.strip():
        return draft.source_text
    lines = [draft.title]
    lines.extend(i.display_name for i in draft.ingredients)
    lines.extend(draft.instructions)
    lines.extend(draft.notes)
    return "\n".join(line for line in lines if line)


def _convert_once(draft: RecipeDraft, target: MeasurementSystem) -> ConversionResult:
    if not draft.ingredients or not draft.instructions:
        return _failure(
            ErrorKind.PARSING_ERROR,
            detail={"ingredients": len(draft.ingredients), "instructions": len(draft.instructions)},
        )
    try:
        recipe_type = classify(draft)
        return get_converter(recipe_type).convert(draft, target)
    except Exception as e:
        logger.exception("recipe conversion failed", extra={"title": draft.title})
        return _failure(ErrorKind.CONVERSION_ERROR, detail={"error": repr(e)})


def classify_and_convert(
    draft: RecipeDraft,
    target: MeasurementSystem = MeasurementSystem.METRIC,
    *,
    recovery_context: RecoveryContext = RecoveryContext.PARSING,
) -> ConversionResult:
    """
    Classify `draft`, run its type converter and return a ConversionResult.

    Parsing and conversion failures get exactly one recovery attempt: the
    draft's text is reparsed by `recover_draft` and converted again. A second
    failure is returned as is.
    """

    result = _convert_once(draft, target)
    if result.success:
        return result
    error = result.error
    if error is None or error.kind not in RECOVERABLE_KINDS:
        return result

    logger.info(
        "conversion failed, attempting recovery",
        extra={"kind": error.kind.value, "context": recovery_context.value},
    )
    recovered = recover_draft(draft_text(draft), recovery_context)
    second = _convert_once(recovered, target)
    if not second.success:
        return second
    return replace(second, recovered=True, suggestions=RECOVERY_SUGGESTIONS)
