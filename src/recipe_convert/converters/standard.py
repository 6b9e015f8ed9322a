from __future__ import annotations

from contracts.recipe import RecipeType

from .base import BaseConverter


class StandardConverter(BaseConverter):
    recipe_type = RecipeType.STANDARD
    TIMINGS = {
        "mixing": "5-10 minutes",
        "baking": "as directed by the recipe",
    }

    def notes(self, *, hydration_pct: float) -> list[str]:
        return ["No leavening was detected; review the method for rise and baking times."]
