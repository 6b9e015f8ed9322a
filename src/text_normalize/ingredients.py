from __future__ import annotations

import re

from contracts.recipe import Ingredient, ParsedIngredient, RawIngredient
from contracts.units import UNIT_PATTERN, canonical_unit

from .passes import VULGAR_FRACTIONS, quantity_value, repair_fractions

BULLET = re.compile(r"^\s*(?:[-*•·▪◦]+|\[\s?\])\s*")

_QTY = r"\d+[ \t]+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?"
_INGREDIENT_LINE = re.compile(
    rf"^(?P<qty>{_QTY})[ \t]*(?:(?P<unit>{UNIT_PATTERN})\.?(?![A-Za-z]))?[ \t]+(?P<name>\S.*)$",
    re.IGNORECASE,
)


def strip_bullet(line: str) -> str:
    return BULLET.sub("", line).strip()


def parse_ingredient_line(line: str) -> Ingredient:
    """
    Parse "1 1/2 cups bread flour" into a ParsedIngredient.

    Lines without a leading quantity ("salt to taste", "For the dough:") are
    kept verbatim as RawIngredient. Count-only lines ("2 large eggs") parse
    with unit "".
    """

    text = strip_bullet(line)
    candidate = repair_fractions(text) if any(ch in text for ch in VULGAR_FRACTIONS) else text

    m = _INGREDIENT_LINE.match(candidate)
    if m is None:
        return RawIngredient(text=text)

    quantity = quantity_value(" ".join(m.group("qty").split()))
    if quantity is None:
        return RawIngredient(text=text)

    unit = ""
    if m.group("unit"):
        unit = canonical_unit(m.group("unit")) or ""

    name = m.group("name").strip()
    if name.lower().startswith("of "):
        name = name[3:].strip()
    if not name:
        return RawIngredient(text=text)

    return ParsedIngredient(name=name, quantity=quantity, unit=unit)
