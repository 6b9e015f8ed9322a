"""
Canonical pipeline contracts shared by every stage.

These models are the schema boundary between extraction, normalization and
conversion. Stage code should consume/produce these contract objects (not
ad-hoc dicts).
"""

from .errors import RECOVERABLE_KINDS, TERMINAL_KINDS, ErrorKind, error_message
from .recipe import (
    ConversionError,
    ConversionResult,
    Ingredient,
    MeasurementSystem,
    ParsedIngredient,
    RawIngredient,
    RecipeDraft,
    RecipeType,
    ingredient_from_dict,
)
from .units import MASS_UNITS, UNIT_ALIASES, VOLUME_UNITS, canonical_unit

__all__ = [
    "ErrorKind",
    "RECOVERABLE_KINDS",
    "TERMINAL_KINDS",
    "error_message",
    "RecipeType",
    "MeasurementSystem",
    "RawIngredient",
    "ParsedIngredient",
    "Ingredient",
    "ingredient_from_dict",
    "RecipeDraft",
    "ConversionError",
    "ConversionResult",
    "UNIT_ALIASES",
    "MASS_UNITS",
    "VOLUME_UNITS",
    "canonical_unit",
]
