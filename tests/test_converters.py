from __future__ import annotations

import unittest

from contracts.recipe import (
    ConversionError,
    ConversionResult,
    MeasurementSystem,
    ParsedIngredient,
    RecipeDraft,
    RecipeType,
)
from contracts.errors import ErrorKind
from recipe_convert.converters import CONVERTERS, get_converter
from recipe_convert.converters.sourdough import SourdoughConverter
from recipe_convert.module import classify_and_convert


def _sourdough_draft() -> RecipeDraft:
    return RecipeDraft(
        title="Country Loaf",
        ingredients=(
            ParsedIngredient(name="bread flour", quantity=500.0, unit="g"),
            ParsedIngredient(name="water", quantity=350.0, unit="g"),
            ParsedIngredient(name="starter", quantity=100.0, unit="g"),
            ParsedIngredient(name="salt", quantity=10.0, unit="g"),
        ),
        instructions=("Mix everything.", "Bake."),
        notes=("From the market.",),
    )


class TestConverters(unittest.TestCase):
    def test_registry_covers_every_type(self) -> None:
        for recipe_type in RecipeType:
            with self.subTest(recipe_type=recipe_type):
                self.assertIs(get_converter(recipe_type).recipe_type, recipe_type)
        self.assertEqual(set(CONVERTERS), set(RecipeType))

    def test_sourdough_conversion(self) -> None:
        result = classify_and_convert(_sourdough_draft())

        self.assertTrue(result.success)
        self.assertIsNone(result.error)
        self.assertFalse(result.recovered)
        self.assertEqual(result.recipe_type, RecipeType.SOURDOUGH)
        self.assertEqual(result.hydration, 70.0)
        self.assertEqual(result.bakers_percentages["bread flour"], 100.0)
        self.assertEqual(result.bakers_percentages["starter"], 20.0)
        self.assertEqual(result.timings, SourdoughConverter.TIMINGS)
        self.assertEqual(result.timings["proofing"], "12-14 hours in refrigerator")

        assert result.converted is not None
        self.assertEqual(result.converted.notes[0], "From the market.")
        self.assertIn("This is a sourdough recipe with 70.0% hydration.", result.converted.notes)

    def test_imperial_target_keeps_ratios(self) -> None:
        metric = classify_and_convert(_sourdough_draft(), MeasurementSystem.METRIC)
        imperial = classify_and_convert(_sourdough_draft(), MeasurementSystem.IMPERIAL)

        assert imperial.converted is not None
        self.assertEqual(
            imperial.converted.ingredients[0],
            ParsedIngredient(name="bread flour", quantity=17.64, unit="oz"),
        )
        self.assertEqual(imperial.hydration, metric.hydration)
        self.assertEqual(imperial.bakers_percentages, metric.bakers_percentages)

    def test_timings_per_type(self) -> None:
        expected_keys = {
            RecipeType.SOURDOUGH: {"autolyse", "bulk fermentation", "proofing", "baking"},
            RecipeType.YEASTED: {"mixing", "bulk fermentation", "proofing", "baking"},
            RecipeType.ENRICHED: {"mixing", "bulk fermentation", "proofing", "baking"},
            RecipeType.QUICKBREAD: {"mixing", "resting", "baking"},
            RecipeType.STANDARD: {"mixing", "baking"},
        }
        for recipe_type, keys in expected_keys.items():
            with self.subTest(recipe_type=recipe_type):
                self.assertEqual(set(get_converter(recipe_type).TIMINGS), keys)
        self.assertEqual(get_converter(RecipeType.QUICKBREAD).TIMINGS["baking"], "45-60 minutes at 350°F")

    def test_converter_does_not_mutate_input(self) -> None:
        draft = _sourdough_draft()
        classify_and_convert(draft, MeasurementSystem.IMPERIAL)
        self.assertEqual(draft, _sourdough_draft())


class TestConversionResultInvariant(unittest.TestCase):
    def test_success_requires_converted_and_no_error(self) -> None:
        with self.assertRaises(ValueError):
            ConversionResult(success=True)
        with self.assertRaises(ValueError):
            ConversionResult(
                success=True,
                converted=_sourdough_draft(),
                error=ConversionError(kind=ErrorKind.UNKNOWN, message="x"),
            )

    def test_failure_requires_error_and_no_converted(self) -> None:
        with self.assertRaises(ValueError):
            ConversionResult(success=False)
        with self.assertRaises(ValueError):
            ConversionResult(
                success=False,
                converted=_sourdough_draft(),
                error=ConversionError(kind=ErrorKind.UNKNOWN, message="x"),
            )

    def test_to_dict_is_plain_data(self) -> None:
        d = classify_and_convert(_sourdough_draft()).to_dict()
        self.assertEqual(d["recipe_type"], "sourdough")
        self.assertEqual(d["converted"]["ingredients"][0], {"kind": "parsed", "name": "bread flour", "quantity": 500.0, "unit": "g"})
        self.assertIsNone(d["error"])


if __name__ == "__main__":
    unittest.main()
