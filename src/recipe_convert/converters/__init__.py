from __future__ import annotations

from contracts.recipe import RecipeType

from .base import BaseConverter
from .enriched import EnrichedConverter
from .quickbread import QuickBreadConverter
from .sourdough import SourdoughConverter
from .standard import StandardConverter
from .yeasted import YeastedConverter

CONVERTERS: dict[RecipeType, BaseConverter] = {
    RecipeType.SOURDOUGH: SourdoughConverter(),
    RecipeType.YEASTED: YeastedConverter(),
    RecipeType.ENRICHED: EnrichedConverter(),
    RecipeType.QUICKBREAD: QuickBreadConverter(),
    RecipeType.STANDARD: StandardConverter(),
}


def get_converter(recipe_type: RecipeType) -> BaseConverter:
    return CONVERTERS.get(recipe_type, CONVERTERS[RecipeType.STANDARD])


__all__ = [
    "BaseConverter",
    "CONVERTERS",
    "EnrichedConverter",
    "QuickBreadConverter",
    "SourdoughConverter",
    "StandardConverter",
    "YeastedConverter",
    "get_converter",
]
