"""
Classification and conversion (RecipeDraft -> ConversionResult).

- The recipe type comes from an explicit ordered rule list; first match wins.
- One converter per type: unit conversion, baking ratios, notes, timings.
- Parsing/conversion failures get a single recovery pass.
- Synchronous and side-effect free apart from logging.
"""

from .classifier import CLASSIFICATION_RULES, ClassificationRule, classify, matching_rules
from .converters import CONVERTERS, BaseConverter, get_converter
from .module import classify_and_convert
from .ratios import bakers_percentages, hydration
from .recovery import RecoveryContext, recover_draft, recovery_context_for
from .units import convert, convert_ingredients

__all__ = [
    "BaseConverter",
    "CLASSIFICATION_RULES",
    "CONVERTERS",
    "ClassificationRule",
    "RecoveryContext",
    "bakers_percentages",
    "classify",
    "classify_and_convert",
    "convert",
    "convert_ingredients",
    "get_converter",
    "hydration",
    "matching_rules",
    "recover_draft",
    "recovery_context_for",
]
