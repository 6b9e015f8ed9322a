from __future__ import annotations

from dataclasses import replace
from typing import ClassVar

from contracts.recipe import ConversionResult, MeasurementSystem, RecipeDraft, RecipeType

from ..ratios import bakers_percentages, hydration
from ..units import convert_ingredients


class BaseConverter:
    """
    Unit conversion plus baking ratios, shared by every recipe type.

    Subclasses add type-specific notes and a static TIMINGS table. Timings
    are domain conventions, not values derived from the input.
    """

    recipe_type: ClassVar[RecipeType]
    TIMINGS: ClassVar[dict[str, str]] = {}

    def notes(self, *, hydration_pct: float) -> list[str]:
        return []

    def convert(self, draft: RecipeDraft, target: MeasurementSystem) -> ConversionResult:
        # Ratios are taken on gram-normalized weights, so they do not depend on `target`.
        percentages = bakers_percentages(draft.ingredients)
        hydration_pct = hydration(draft.ingredients)

        converted = replace(
            draft,
            ingredients=convert_ingredients(draft.ingredients, target),
            notes=draft.notes + tuple(self.notes(hydration_pct=hydration_pct)),
        )
        return ConversionResult(
            success=True,
            recipe_type=self.recipe_type,
            converted=converted,
            bakers_percentages=percentages,
            hydration=hydration_pct,
            timings=dict(self.TIMINGS),
        )
