from __future__ import annotations

from contracts.recipe import RecipeType

from .base import BaseConverter


class EnrichedConverter(BaseConverter):
    recipe_type = RecipeType.ENRICHED
    TIMINGS = {
        "mixing": "8-12 minutes",
        "bulk fermentation": "1.5-2 hours at room temperature",
        "proofing": "45-90 minutes",
        "baking": "25-35 minutes at 350°F",
    }

    def notes(self, *, hydration_pct: float) -> list[str]:
        return [
            "This is an enriched dough recipe with eggs, dairy, and/or fat.",
            "For tender results, avoid overmixing and use room temperature ingredients.",
        ]
