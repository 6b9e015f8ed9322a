from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .errors import ErrorKind


class RecipeType(str, Enum):
    STANDARD = "standard"
    SOURDOUGH = "sourdough"
    YEASTED = "yeasted"
    ENRICHED = "enriched"
    QUICKBREAD = "quickbread"


class MeasurementSystem(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


@dataclass(frozen=True, slots=True)
class RawIngredient:
    """
    An ingredient line that did not parse into quantity/unit/name.

    Kept verbatim and in order; not every line of a real recipe parses.
    """

    text: str

    @property
    def display_name(self) -> str:
        return self.text

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "raw", "text": self.text}


@dataclass(frozen=True, slots=True)
class ParsedIngredient:
    name: str
    quantity: float
    unit: str  # canonical unit token, "" for count-only ingredients ("2 eggs")

    @property
    def display_name(self) -> str:
        return self.name

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "parsed", "name": self.name, "quantity": self.quantity, "unit": self.unit}


Ingredient = Union[RawIngredient, ParsedIngredient]


def ingredient_from_dict(d: dict[str, Any] | str) -> Ingredient:
    if isinstance(d, str):
        return RawIngredient(text=d)
    if d.get("kind") == "raw" or "text" in d:
        return RawIngredient(text=str(d.get("text", "")))
    return ParsedIngredient(
        name=str(d.get("name", "")),
        quantity=float(d.get("quantity", 0.0)),
        unit=str(d.get("unit", "")),
    )


@dataclass(frozen=True, slots=True)
class RecipeDraft:
    """
    Structured recipe produced by the structure detector.

    `ingredients` is a heterogeneous ordered sequence of RawIngredient and
    ParsedIngredient. `source_text` is the normalized text the draft was built
    from; the recovery stage reparses it when classification/conversion fails.
    """

    title: str
    ingredients: tuple[Ingredient, ...] = ()
    instructions: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()
    prep_time: str | None = None
    cook_time: str | None = None
    total_time: str | None = None
    servings: str | None = None
    source_text: str = ""

    @property
    def parsed_ingredients(self) -> list[ParsedIngredient]:
        return [i for i in self.ingredients if isinstance(i, ParsedIngredient)]

    def is_empty(self) -> bool:
        return not self.ingredients and not self.instructions

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "ingredients": [i.to_dict() for i in self.ingredients],
            "instructions": list(self.instructions),
            "notes": list(self.notes),
            "prep_time": self.prep_time,
            "cook_time": self.cook_time,
            "total_time": self.total_time,
            "servings": self.servings,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "RecipeDraft":
        return RecipeDraft(
            title=str(d.get("title") or "Untitled Recipe"),
            ingredients=tuple(ingredient_from_dict(i) for i in d.get("ingredients", [])),
            instructions=tuple(str(s) for s in d.get("instructions", [])),
            notes=tuple(str(n) for n in d.get("notes", [])),
            prep_time=d.get("prep_time"),
            cook_time=d.get("cook_time"),
            total_time=d.get("total_time"),
            servings=d.get("servings"),
            source_text=str(d.get("source_text", "")),
        )


@dataclass(frozen=True, slots=True)
class ConversionError:
    kind: ErrorKind
    message: str
    remedy: str | None = None
    detail: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """
    Output of classify-and-convert.

    `success` is True exactly when `converted` is present and `error` is absent.
    """

    success: bool
    recipe_type: RecipeType | None = None
    converted: RecipeDraft | None = None
    bakers_percentages: dict[str, float] = field(default_factory=dict)
    hydration: float | None = None
    timings: dict[str, str] = field(default_factory=dict)
    error: ConversionError | None = None
    recovered: bool = False
    suggestions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.success and (self.converted is None or self.error is not None):
            raise ValueError("successful ConversionResult requires converted and no error")
        if not self.success and (self.error is None or self.converted is not None):
            raise ValueError("failed ConversionResult requires error and no converted recipe")

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "recipe_type": None if self.recipe_type is None else self.recipe_type.value,
            "converted": None if self.converted is None else self.converted.to_dict(),
            "bakers_percentages": dict(self.bakers_percentages),
            "hydration": self.hydration,
            "timings": dict(self.timings),
            "error": None
            if self.error is None
            else {
                "kind": self.error.kind.value,
                "message": self.error.message,
                "remedy": self.error.remedy,
                "detail": self.error.detail,
            },
            "recovered": self.recovered,
            "suggestions": list(self.suggestions),
        }
