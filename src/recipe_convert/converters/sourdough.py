from __future__ import annotations

from contracts.recipe import RecipeType

from .base import BaseConverter


class SourdoughConverter(BaseConverter):
    recipe_type = RecipeType.SOURDOUGH
    TIMINGS = {
        "autolyse": "30-60 minutes",
        "bulk fermentation": "4-6 hours at room temperature",
        "proofing": "12-14 hours in refrigerator",
        "baking": "20 minutes covered at 500°F, 20-25 minutes uncovered at 450°F",
    }

    def notes(self, *, hydration_pct: float) -> list[str]:
        return [
            f"This is a sourdough recipe with {hydration_pct}% hydration.",
            "For best results, ensure your starter is active and at peak rise before mixing.",
        ]
