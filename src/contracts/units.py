from __future__ import annotations

import re

# Spelled-out and abbreviated forms -> canonical unit token.
UNIT_ALIASES: dict[str, str] = {
    "g": "g",
    "gr": "g",
    "gram": "g",
    "grams": "g",
    "gramme": "g",
    "grammes": "g",
    "kg": "kg",
    "kgs": "kg",
    "kilo": "kg",
    "kilos": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "oz": "oz",
    "ounce": "oz",
    "ounces": "oz",
    "lb": "lb",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    "ml": "ml",
    "milliliter": "ml",
    "milliliters": "ml",
    "millilitre": "ml",
    "millilitres": "ml",
    "l": "l",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    "fl oz": "fl oz",
    "fl. oz": "fl oz",
    "fl. oz.": "fl oz",
    "floz": "fl oz",
    "fl.oz": "fl oz",
    "fluid ounce": "fl oz",
    "fluid ounces": "fl oz",
    "qt": "qt",
    "qts": "qt",
    "quart": "qt",
    "quarts": "qt",
    "c": "cup",
    "cup": "cup",
    "cups": "cup",
    "tbsp": "tbsp",
    "tbsps": "tbsp",
    "tbs": "tbsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "tsp": "tsp",
    "tsps": "tsp",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
}

MASS_UNITS = frozenset({"g", "kg", "oz", "lb"})
VOLUME_UNITS = frozenset({"ml", "l", "fl oz", "qt", "cup", "tbsp", "tsp"})

# Longest spellings first so "fl oz" wins over "oz" and "cups" over "c".
UNIT_PATTERN = "|".join(
    r"\s?".join(re.escape(part) for part in alias.split(" "))
    for alias in sorted(UNIT_ALIASES, key=len, reverse=True)
)


def canonical_unit(token: str) -> str | None:
    """
    Canonical unit for `token` ("Grams" -> "g", "fl. oz" -> "fl oz"), else None.
    """

    key = " ".join(token.lower().split())
    if key in UNIT_ALIASES:
        return UNIT_ALIASES[key]
    return UNIT_ALIASES.get(key.replace(" ", ""))
