from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from contracts.recipe import Ingredient, MeasurementSystem, ParsedIngredient
from contracts.units import canonical_unit

logger = logging.getLogger(__name__)

# One direction per pair; reverse factors are derived as reciprocals so round
# trips are exact up to float error. US customary volumes.
_DIRECT_FACTORS: dict[tuple[str, str], float] = {
    ("oz", "g"): 28.349523125,
    ("kg", "lb"): 2.2046226218487757,
    ("fl oz", "ml"): 29.5735295625,
    ("l", "qt"): 1.0566882094325938,
    ("qt", "ml"): 946.352946,
    ("cup", "ml"): 236.5882365,
    ("kg", "g"): 1000.0,
    ("lb", "oz"): 16.0,
    ("l", "ml"): 1000.0,
    ("tbsp", "ml"): 14.78676478125,
    ("tsp", "ml"): 4.92892159375,
}


def _build_factors() -> dict[tuple[str, str], float]:
    factors: dict[tuple[str, str], float] = {}
    for (a, b), f in _DIRECT_FACTORS.items():
        factors[(a, b)] = f
        factors[(b, a)] = 1.0 / f
    return factors


FACTORS = _build_factors()

METRIC_TARGETS: dict[str, str] = {"oz": "g", "lb": "g", "fl oz": "ml", "qt": "ml", "cup": "ml"}
IMPERIAL_TARGETS: dict[str, str] = {"g": "oz", "kg": "oz", "ml": "fl oz", "l": "fl oz"}


def unit_key(unit: str) -> str:
    return canonical_unit(unit) or " ".join(unit.lower().split())


def conversion_factor(from_unit: str, to_unit: str) -> float | None:
    """
    Factor from `from_unit` to `to_unit` along the shortest chain of known
    factors. None when no chain exists (mass and volume never connect).
    """

    a, b = unit_key(from_unit), unit_key(to_unit)
    if a == b:
        return 1.0
    direct = FACTORS.get((a, b))
    if direct is not None:
        return direct

    seen = {a}
    frontier: deque[tuple[str, float]] = deque([(a, 1.0)])
    while frontier:
        unit, acc = frontier.popleft()
        for (src, dst), factor in FACTORS.items():
            if src != unit or dst in seen:
                continue
            if dst == b:
                return acc * factor
            seen.add(dst)
            frontier.append((dst, acc * factor))
    return None


def convert(value: float, from_unit: str, to_unit: str) -> float:
    """
    Convert `value`; never raises for unit pairs. Without a conversion path
    the value comes back unchanged and a warning is logged.
    """

    factor = conversion_factor(from_unit, to_unit)
    if factor is None:
        logger.warning(
            "no unit conversion path, value passed through",
            extra={"from_unit": from_unit, "to_unit": to_unit},
        )
        return value
    return value * factor


def convert_ingredient(ingredient: Ingredient, target: MeasurementSystem) -> Ingredient:
    if not isinstance(ingredient, ParsedIngredient):
        return ingredient

    unit = unit_key(ingredient.unit) if ingredient.unit else ""
    table = METRIC_TARGETS if target is MeasurementSystem.METRIC else IMPERIAL_TARGETS
    new_unit = table.get(unit)
    if new_unit is None:
        return ingredient
    return ParsedIngredient(
        name=ingredient.name,
        quantity=round(convert(ingredient.quantity, unit, new_unit), 2),
        unit=new_unit,
    )


def convert_ingredients(ingredients: Iterable[Ingredient], target: MeasurementSystem) -> tuple[Ingredient, ...]:
    return tuple(convert_ingredient(i, target) for i in ingredients)
