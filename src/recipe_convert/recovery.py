"""
Last-resort reparse of unstructured or garbled text into a RecipeDraft.

`recover_draft` is pure and deterministic; recovering the `source_text` of a
recovered draft yields the same draft. The caller (`classify_and_convert`)
runs it at most once per request.
"""

from __future__ import annotations

import logging
import re
from enum import Enum

from contracts.recipe import Ingredient, ParsedIngredient, RawIngredient, RecipeDraft
from contracts.units import UNIT_PATTERN
from text_normalize.ingredients import parse_ingredient_line, strip_bullet
from text_normalize.passes import COOKING_VERBS, normalize_whitespace, repair_fractions, repair_measurements

logger = logging.getLogger(__name__)


class RecoveryContext(str, Enum):
    PARSING = "parsing"
    PDF_EXTRACTION = "pdf-extraction"
    IMAGE_PROCESSING = "image-processing"
    FORMAT_DETECTION = "format-detection"


DEFAULT_TITLE = "Untitled Recipe"
INGREDIENTS_PLACEHOLDER = "Could not parse ingredients - please review the original text"
INSTRUCTIONS_PLACEHOLDER = "Could not parse instructions - please review the original text"
RECOVERY_SUGGESTIONS: tuple[str, ...] = (
    "Recipe recovered from unstructured text - please review for accuracy",
    "Check ingredient quantities",
)

MIN_ALNUM_RATIO = 0.4
INSTRUCTION_MIN_CHARS = 50
TITLE_MAX_CHARS = 80

_HEADER = re.compile(
    r"^(?:INGREDIENTS|INSTRUCTIONS|NOTES|PREP TIME|COOK TIME|TOTAL TIME|SERVINGS):\s*(?P<value>.*)$"
)
_PAGE_FURNITURE = re.compile(r"^(?:page\s+)?\d+(?:\s+of\s+\d+)?$", re.IGNORECASE)
_HYPHEN_BREAK = re.compile(r"(\w)-\n(\w)")
_LEADING_UNIT = re.compile(rf"^(?:{UNIT_PATTERN})\b", re.IGNORECASE)
_LEADING_VERB = re.compile(r"^(?:" + "|".join(COOKING_VERBS) + r")\b", re.IGNORECASE)
_STEP_PREFIX = re.compile(r"^(?:step\s*\d+\s*[:.)-]?|\d+\s*[.)](?=\s|$))\s*", re.IGNORECASE)

_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9])")
_BULLET_BREAK = re.compile(r"\s+[-•*]\s+")
_QUANTITY_BREAK = re.compile(rf"(?<!\d)\s+(?=\d+(?:[ /]\d+)*\s*(?:{UNIT_PATTERN})\s)", re.IGNORECASE)
# "3 bananas", but not "60 minutes" or "into 2 loaves"
_COUNT_BREAK = re.compile(
    r"(?<!\d)(?<!\binto)(?<!\bin)(?<!\bfor)(?<!\bat)(?<!\bto)(?<!\bof)(?<!\babout)\s+"
    r"(?=\d+(?:[ /]\d+)*\s+(?!(?:minutes?|mins?|hours?|hrs?|seconds?|secs?|degrees?|days?)\b)[A-Za-z])",
    re.IGNORECASE,
)
_VERB_BREAK = re.compile(r"\s+(?=(?:" + "|".join(v.capitalize() for v in COOKING_VERBS) + r")\b)")


# --- context-specific repairs -----------------------------------------------


def _repair_pdf_text(text: str) -> str:
    text = text.replace("\f", "\n")
    text = _HYPHEN_BREAK.sub(r"\1\2", text)
    return "\n".join(line for line in text.split("\n") if not _PAGE_FURNITURE.match(line.strip()))


_GLYPH_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?<=\d)[Oo](?=[\dOo]*(?![A-Za-z]))"), "0"),
    (re.compile(r"(?<![A-Za-z])[Oo](?=\d)"), "0"),
    (re.compile(r"(?<![A-Za-z])[lI|](?=[\d/])"), "1"),
    (re.compile(r"(?<=\d)[lI|](?=\d)"), "1"),
    (re.compile(r"(?<![A-Za-z])S(?=\d)"), "5"),
    (re.compile(r"(?<=\d)S(?=[\d\s]|$)"), "5"),
)


def repair_ocr_glyphs(line: str) -> str:
    """
    Fix letters OCR reads in place of digits, only next to other digits.
    """

    previous = None
    while previous != line:
        previous = line
        for pattern, digit in _GLYPH_RULES:
            line = pattern.sub(digit, line)
    return line


def _alnum_ratio(line: str) -> float:
    chars = [c for c in line if not c.isspace()]
    if not chars:
        return 0.0
    return sum(1 for c in chars if c.isalnum()) / len(chars)


def _repair_image_text(text: str) -> str:
    kept = []
    for line in text.split("\n"):
        if line.strip() and _alnum_ratio(line) < MIN_ALNUM_RATIO:
            continue
        kept.append(repair_ocr_glyphs(line))
    return "\n".join(kept)


def _split_unstructured(text: str) -> str:
    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) > 1:
        return text
    flat = " ".join(lines)
    for pattern in (_BULLET_BREAK, _QUANTITY_BREAK, _COUNT_BREAK, _VERB_BREAK, _SENTENCE_BREAK):
        flat = pattern.sub("\n", flat)
    return flat


_CONTEXT_REPAIRS = {
    RecoveryContext.PDF_EXTRACTION: _repair_pdf_text,
    RecoveryContext.IMAGE_PROCESSING: _repair_image_text,
    RecoveryContext.FORMAT_DETECTION: _split_unstructured,
}


def prepare_recovery_text(text: str, context: RecoveryContext) -> str:
    repair = _CONTEXT_REPAIRS.get(context)
    if repair is not None:
        text = repair(text)
    text = normalize_whitespace(text)
    return repair_measurements(repair_fractions(text))


# --- tolerant line classification -------------------------------------------


def _looks_like_ingredient(line: str) -> bool:
    s = strip_bullet(line)
    return bool(s) and (s[0].isdigit() or _LEADING_UNIT.match(s) is not None)


def _looks_like_instruction(line: str) -> bool:
    s = _STEP_PREFIX.sub("", line.strip())
    return _LEADING_VERB.match(s) is not None or len(s) > INSTRUCTION_MIN_CHARS


def recover_draft(text: str, context: RecoveryContext = RecoveryContext.PARSING) -> RecipeDraft:
    prepared = prepare_recovery_text(text, context)

    title: str | None = None
    ingredients: list[Ingredient] = []
    instructions: list[str] = []

    for raw_line in prepared.split("\n"):
        line = raw_line.strip()
        if not line or _HEADER.match(line):
            continue

        if _looks_like_ingredient(line) and not _STEP_PREFIX.match(line):
            ingredients.append(parse_ingredient_line(line))
        elif _looks_like_instruction(line):
            step = _STEP_PREFIX.sub("", line).strip()
            if step:
                instructions.append(step)
        elif title is None and len(line) <= TITLE_MAX_CHARS:
            title = line.strip("#*_ :").strip() or None
        elif instructions:
            instructions.append(line)
        else:
            ingredients.append(RawIngredient(text=strip_bullet(line)))

    parsed = sum(1 for i in ingredients if isinstance(i, ParsedIngredient))
    logger.info(
        "recipe recovery attempted",
        extra={
            "context": context.value,
            "ingredients": len(ingredients),
            "parsed_ingredients": parsed,
            "instructions": len(instructions),
        },
    )

    return RecipeDraft(
        title=title or DEFAULT_TITLE,
        ingredients=tuple(ingredients) or (RawIngredient(text=INGREDIENTS_PLACEHOLDER),),
        instructions=tuple(instructions) or (INSTRUCTIONS_PLACEHOLDER,),
        source_text=prepared,
    )


def recovery_context_for(media_kind: str | None, text: str) -> RecoveryContext:
    """
    Pick the recovery context from where the text came from.
    """

    if media_kind == "pdf":
        return RecoveryContext.PDF_EXTRACTION
    if media_kind == "image":
        return RecoveryContext.IMAGE_PROCESSING
    if sum(1 for line in text.split("\n") if line.strip()) <= 1:
        return RecoveryContext.FORMAT_DETECTION
    return RecoveryContext.PARSING
