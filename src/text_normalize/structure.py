from __future__ import annotations

import re

from contracts.recipe import Ingredient, RecipeDraft
from contracts.units import UNIT_PATTERN

from .ingredients import parse_ingredient_line, strip_bullet

DEFAULT_TITLE = "Untitled Recipe"

_HEADER = re.compile(r"^(INGREDIENTS|INSTRUCTIONS|NOTES|PREP TIME|COOK TIME|TOTAL TIME|SERVINGS):[ \t]*(.*)$")
_VALUED_FIELDS = {
    "PREP TIME": "prep_time",
    "COOK TIME": "cook_time",
    "TOTAL TIME": "total_time",
    "SERVINGS": "servings",
}

# <number> <unit>? <words>
_INGREDIENT_START = re.compile(
    rf"^\d+(?:\.\d+)?(?:[ \t]+\d+/\d+|/\d+)?[ \t]*(?:(?:{UNIT_PATTERN})\.?(?![A-Za-z]))?[ \t]+[A-Za-z(]",
    re.IGNORECASE,
)
_STEP_MARKER = re.compile(r"^(?:step\b|\d+[.)](?:\s|$))", re.IGNORECASE)
_STEP_PREFIX = re.compile(r"^(?:step\s*\d+\s*[:.)-]?|\d+\s*[.)](?=\s|$)|\d+\s+-)\s*", re.IGNORECASE)

INSTRUCTION_MIN_CHARS = 50


def is_ingredient_start(line: str) -> bool:
    return _INGREDIENT_START.match(strip_bullet(line)) is not None


def is_instruction_start(line: str) -> bool:
    s = line.strip()
    return s.endswith(":") or _STEP_MARKER.match(s) is not None or len(s) > INSTRUCTION_MIN_CHARS


def detect_structure(text: str) -> str:
    """
    Insert inferred INGREDIENTS:/INSTRUCTIONS: headers into unlabeled text.

    Only header lines (and the blank lines that delimit them) are inserted;
    every content line is kept, unchanged and in order. Text that already
    carries both markers is returned as is.
    """

    lines = text.split("\n")
    headers = {m.group(1) for m in (_HEADER.match(line.strip()) for line in lines) if m}
    has_ingredients = "INGREDIENTS" in headers
    has_instructions = "INSTRUCTIONS" in headers
    if has_ingredients and has_instructions:
        return text

    out: list[str] = []
    section: str | None = None
    value_pending = False  # a valued header whose value sits on the next line
    for line in lines:
        s = line.strip()
        m = _HEADER.match(s)
        if m:
            if m.group(1) in _VALUED_FIELDS:
                value_pending = not m.group(2).strip()
            else:
                section = m.group(1)
                value_pending = False
            out.append(line)
            continue

        if value_pending and s:
            value_pending = False
        elif s and not has_ingredients and section is None and is_ingredient_start(s):
            out.extend(["", "INGREDIENTS:", ""])
            section = "INGREDIENTS"
            has_ingredients = True
        elif (
            s
            and not has_instructions
            and section == "INGREDIENTS"
            and not is_ingredient_start(s)
            and is_instruction_start(s)
        ):
            out.extend(["", "INSTRUCTIONS:", ""])
            section = "INSTRUCTIONS"
            has_instructions = True
        out.append(line)

    return re.sub(r"\n{3,}", "\n\n", "\n".join(out)).strip()


def _instruction_text(line: str) -> str:
    return _STEP_PREFIX.sub("", line.strip()).strip()


def parse_draft(text: str) -> RecipeDraft:
    """
    Split canonical-header text into a RecipeDraft.

    The title is the first line before any section; other loose lines become
    notes so nothing is discarded.
    """

    title: str | None = None
    ingredients: list[Ingredient] = []
    instructions: list[str] = []
    notes: list[str] = []
    valued: dict[str, str | None] = {field: None for field in _VALUED_FIELDS.values()}

    section: str | None = None
    awaiting_value: str | None = None

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        m = _HEADER.match(line)
        if m:
            name, rest = m.group(1), m.group(2).strip()
            awaiting_value = None
            if name in _VALUED_FIELDS:
                if rest:
                    valued[_VALUED_FIELDS[name]] = rest
                else:
                    awaiting_value = _VALUED_FIELDS[name]
                continue
            section = name
            if not rest:
                continue
            line = rest

        if awaiting_value is not None:
            valued[awaiting_value] = line
            awaiting_value = None
            continue

        if section == "INGREDIENTS":
            ingredients.append(parse_ingredient_line(line))
        elif section == "INSTRUCTIONS":
            step = _instruction_text(line)
            if step:
                instructions.append(step)
        elif section == "NOTES":
            notes.append(strip_bullet(line))
        elif title is None and not ingredients and not instructions:
            title = line.strip("#*_ ").strip() or line
        else:
            notes.append(line)

    return RecipeDraft(
        title=title or DEFAULT_TITLE,
        ingredients=tuple(ingredients),
        instructions=tuple(instructions),
        notes=tuple(notes),
        prep_time=valued["prep_time"],
        cook_time=valued["cook_time"],
        total_time=valued["total_time"],
        servings=valued["servings"],
        source_text=text,
    )
