from __future__ import annotations

from contracts.recipe import RecipeType

from .base import BaseConverter


class YeastedConverter(BaseConverter):
    recipe_type = RecipeType.YEASTED
    TIMINGS = {
        "mixing": "10-15 minutes",
        "bulk fermentation": "1-2 hours at room temperature",
        "proofing": "45-60 minutes",
        "baking": "25-30 minutes at 400°F",
    }

    def notes(self, *, hydration_pct: float) -> list[str]:
        return [
            f"This yeasted bread recipe has {hydration_pct}% hydration.",
            "Allow the dough to rise until doubled in size before shaping.",
        ]
