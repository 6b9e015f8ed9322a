from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from contracts.recipe import RecipeDraft, RecipeType

Predicate = Callable[[Sequence[str]], bool]


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    name: str
    recipe_type: RecipeType
    predicate: Predicate

    def matches(self, draft: RecipeDraft) -> bool:
        return self.predicate(ingredient_names(draft))


def ingredient_names(draft: RecipeDraft) -> list[str]:
    # Raw and parsed ingredients are matched the same way.
    return [i.display_name.lower() for i in draft.ingredients]


def _any_of(*terms: str) -> Predicate:
    def _predicate(names: Sequence[str]) -> bool:
        return any(term in name for name in names for term in terms)

    return _predicate


_ENRICHMENT_GROUPS: tuple[tuple[str, ...], ...] = (("butter", "margarine"), ("egg",), ("milk",))


def _enriched(names: Sequence[str]) -> bool:
    present = sum(1 for group in _ENRICHMENT_GROUPS if _any_of(*group)(names))
    return present >= 2


def _always(names: Sequence[str]) -> bool:
    return True


# First match wins; the order is the priority.
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("natural-leaven", RecipeType.SOURDOUGH, _any_of("starter", "levain", "sourdough")),
    ClassificationRule("commercial-yeast", RecipeType.YEASTED, _any_of("yeast", "instant dry yeast", "active dry")),
    ClassificationRule("enrichment", RecipeType.ENRICHED, _enriched),
    ClassificationRule("chemical-leavener", RecipeType.QUICKBREAD, _any_of("baking powder", "baking soda")),
    ClassificationRule("default", RecipeType.STANDARD, _always),
)


def classify(draft: RecipeDraft) -> RecipeType:
    for rule in CLASSIFICATION_RULES:
        if rule.matches(draft):
            return rule.recipe_type
    return RecipeType.STANDARD


def matching_rules(draft: RecipeDraft) -> list[ClassificationRule]:
    """
    Every rule the draft satisfies, in priority order (diagnostics).
    """

    return [rule for rule in CLASSIFICATION_RULES if rule.matches(draft)]
