from __future__ import annotations

from contracts.recipe import RecipeType

from .base import BaseConverter


class QuickBreadConverter(BaseConverter):
    recipe_type = RecipeType.QUICKBREAD
    TIMINGS = {
        "mixing": "2-3 minutes",
        "resting": "0-10 minutes",
        "baking": "45-60 minutes at 350°F",
    }

    def notes(self, *, hydration_pct: float) -> list[str]:
        return [
            "This is a quick bread recipe that uses chemical leaveners instead of yeast.",
            "For best results, mix just until ingredients are combined to avoid tough texture.",
        ]
