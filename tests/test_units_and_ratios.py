from __future__ import annotations

import unittest

from contracts.recipe import MeasurementSystem, ParsedIngredient, RawIngredient
from recipe_convert.ratios import bakers_percentages, hydration, round_half_up
from recipe_convert.units import convert, convert_ingredients


def _sourdough_ingredients():
    return (
        ParsedIngredient(name="bread flour", quantity=500.0, unit="g"),
        ParsedIngredient(name="water", quantity=350.0, unit="g"),
        ParsedIngredient(name="starter", quantity=100.0, unit="g"),
        ParsedIngredient(name="salt", quantity=10.0, unit="g"),
        RawIngredient(text="rice flour for dusting"),
    )


class TestUnitConversion(unittest.TestCase):
    def test_direct_factors(self) -> None:
        self.assertAlmostEqual(convert(1, "cup", "ml"), 236.5882365)
        self.assertAlmostEqual(convert(1, "oz", "g"), 28.349523125)
        self.assertAlmostEqual(convert(2, "kg", "g"), 2000.0)

    def test_aliases_are_canonicalized(self) -> None:
        self.assertAlmostEqual(convert(3, "grams", "g"), 3.0)
        self.assertAlmostEqual(convert(2, "cups", "c"), 2.0)
        self.assertAlmostEqual(convert(1, "fl. oz", "ml"), 29.5735295625)

    def test_round_trips_are_exact_up_to_float_error(self) -> None:
        for a, b in (("g", "oz"), ("kg", "lb"), ("ml", "fl oz"), ("l", "qt"), ("cup", "ml"), ("tsp", "ml")):
            with self.subTest(pair=(a, b)):
                self.assertAlmostEqual(convert(convert(123.4, a, b), b, a), 123.4, places=9)

    def test_two_hop_conversion(self) -> None:
        self.assertAlmostEqual(convert(1, "cup", "tbsp"), 16.0, places=6)
        self.assertAlmostEqual(convert(1, "kg", "oz"), 35.274, places=3)

    def test_quart_reaches_every_volume_unit(self) -> None:
        self.assertAlmostEqual(convert(1, "qt", "cup"), 4.0, places=6)
        self.assertAlmostEqual(convert(32, "fl oz", "qt"), 1.0, places=6)
        self.assertAlmostEqual(convert(1, "qt", "tbsp"), 64.0, places=5)
        self.assertAlmostEqual(convert(1, "quart", "tsp"), 192.0, places=4)
        for a, b in (("qt", "cup"), ("fl oz", "qt"), ("tsp", "qt"), ("l", "cup")):
            with self.subTest(pair=(a, b)):
                self.assertAlmostEqual(convert(convert(2.5, a, b), b, a), 2.5, places=9)

    def test_longer_chains_stay_within_one_dimension(self) -> None:
        self.assertAlmostEqual(convert(1, "lb", "kg"), 0.45359237, places=8)
        with self.assertLogs("recipe_convert.units", level="WARNING"):
            self.assertEqual(convert(1, "qt", "lb"), 1)

    def test_unknown_pair_passes_value_through_with_warning(self) -> None:
        with self.assertLogs("recipe_convert.units", level="WARNING"):
            self.assertEqual(convert(3, "cup", "g"), 3)
        with self.assertLogs("recipe_convert.units", level="WARNING"):
            self.assertEqual(convert(2, "pinch", "g"), 2)

    def test_convert_ingredients_to_metric(self) -> None:
        out = convert_ingredients(
            (
                ParsedIngredient(name="water", quantity=2.0, unit="cup"),
                ParsedIngredient(name="butter", quantity=8.0, unit="oz"),
                ParsedIngredient(name="eggs", quantity=2.0, unit=""),
                RawIngredient(text="salt to taste"),
            ),
            MeasurementSystem.METRIC,
        )
        self.assertEqual(out[0], ParsedIngredient(name="water", quantity=473.18, unit="ml"))
        self.assertEqual(out[1], ParsedIngredient(name="butter", quantity=226.8, unit="g"))
        self.assertEqual(out[2], ParsedIngredient(name="eggs", quantity=2.0, unit=""))
        self.assertEqual(out[3], RawIngredient(text="salt to taste"))

    def test_convert_ingredients_to_imperial(self) -> None:
        out = convert_ingredients(_sourdough_ingredients(), MeasurementSystem.IMPERIAL)
        self.assertEqual(out[0], ParsedIngredient(name="bread flour", quantity=17.64, unit="oz"))
        self.assertEqual(out[4], RawIngredient(text="rice flour for dusting"))


class TestRatios(unittest.TestCase):
    def test_round_half_up(self) -> None:
        self.assertEqual(round_half_up(2.25), 2.3)
        self.assertEqual(round_half_up(2.35), 2.4)
        self.assertEqual(round_half_up(69.95, 0), 70.0)

    def test_bakers_percentages_flour_is_100(self) -> None:
        self.assertEqual(
            bakers_percentages(_sourdough_ingredients()),
            {"bread flour": 100.0, "water": 70.0, "starter": 20.0, "salt": 2.0},
        )

    def test_multiple_flours_sum_to_100(self) -> None:
        pct = bakers_percentages(
            (
                ParsedIngredient(name="bread flour", quantity=400.0, unit="g"),
                ParsedIngredient(name="whole wheat flour", quantity=100.0, unit="g"),
                ParsedIngredient(name="water", quantity=375.0, unit="g"),
            )
        )
        self.assertEqual(pct["bread flour"] + pct["whole wheat flour"], 100.0)
        self.assertEqual(pct["water"], 75.0)

    def test_hydration(self) -> None:
        self.assertEqual(hydration(_sourdough_ingredients()), 70.0)

    def test_ratios_do_not_depend_on_units(self) -> None:
        imperial = (
            ParsedIngredient(name="flour", quantity=16.0, unit="oz"),
            ParsedIngredient(name="water", quantity=11.2, unit="oz"),
        )
        self.assertEqual(hydration(imperial), 70.0)
        self.assertEqual(hydration(convert_ingredients(imperial, MeasurementSystem.METRIC)), 70.0)

    def test_no_flour(self) -> None:
        ingredients = (ParsedIngredient(name="water", quantity=100.0, unit="g"),)
        self.assertEqual(bakers_percentages(ingredients), {})
        self.assertEqual(hydration(ingredients), 0.0)


if __name__ == "__main__":
    unittest.main()
