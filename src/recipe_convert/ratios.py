from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from contracts.recipe import Ingredient, ParsedIngredient
from contracts.units import MASS_UNITS, VOLUME_UNITS

from .units import convert, unit_key


def round_half_up(value: float, places: int = 1) -> float:
    q = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(q, rounding=ROUND_HALF_UP))


def weight_of(ingredient: ParsedIngredient) -> float:
    """
    Quantity in grams; volumes count 1 ml as 1 g. Count-only and unknown
    units contribute their raw quantity.
    """

    unit = unit_key(ingredient.unit) if ingredient.unit else ""
    if unit in MASS_UNITS:
        return convert(ingredient.quantity, unit, "g")
    if unit in VOLUME_UNITS:
        return convert(ingredient.quantity, unit, "ml")
    return ingredient.quantity


def _parsed(ingredients: Iterable[Ingredient]) -> list[ParsedIngredient]:
    return [i for i in ingredients if isinstance(i, ParsedIngredient)]


def _total(ingredients: list[ParsedIngredient], term: str) -> float:
    return sum(weight_of(i) for i in ingredients if term in i.name.lower())


def bakers_percentages(ingredients: Iterable[Ingredient]) -> dict[str, float]:
    """
    Each parsed ingredient as a percentage of total flour weight (flour = 100).
    Empty when the recipe has no flour.
    """

    parsed = _parsed(ingredients)
    total_flour = _total(parsed, "flour")
    if total_flour <= 0:
        return {}

    weights: dict[str, float] = {}
    for i in parsed:
        weights[i.name] = weights.get(i.name, 0.0) + weight_of(i)
    return {name: round_half_up(w / total_flour * 100) for name, w in weights.items()}


def hydration(ingredients: Iterable[Ingredient]) -> float:
    """
    Water weight over flour weight as a percentage, one decimal; 0.0 without flour.
    """

    parsed = _parsed(ingredients)
    total_flour = _total(parsed, "flour")
    if total_flour <= 0:
        return 0.0
    total_water = _total(parsed, "water")
    return round_half_up(total_water / total_flour * 1000, 0) / 10
