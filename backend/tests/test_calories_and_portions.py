"""Tests for the calorie lookup scaling rules and portion conversion."""

from __future__ import annotations

import unittest

from lifelog.llm.client import LLMError
from lifelog.resolvers.calories import (
    ENERGY_KCAL_NUTRIENT_ID,
    CalorieLookupError,
    USDACalorieLookup,
    _SearchResponse,
    lookup_calories_with_fallback,
)
from lifelog.resolvers.portion import PortionConversion, convert_to_grams

_PIZZA_PAYLOAD = {
    "foods": [
        {
            "fdcId": 101,
            "description": "PIZZA, CHEESE",
            "foodNutrients": [{"nutrientId": 1003, "value": 11.0}, {"nutrientId": ENERGY_KCAL_NUTRIENT_ID, "value": 266.0}],
        }
    ]
}


class _CannedLookup(USDACalorieLookup):
    payload: dict | None = None
    fail: bool = False

    def search(self, query: str):
        if self.fail:
            raise CalorieLookupError("USDA HTTP 503")
        return _SearchResponse.model_validate(self.payload or {}).foods


class _StubEstimator:
    def __init__(self, grams: float | None) -> None:
        self.grams = grams
        self.calls: list[tuple[str, str]] = []

    def estimate_grams(self, food: str, quantity: str) -> PortionConversion:
        self.calls.append((food, quantity))
        if self.grams is None:
            raise LLMError("no estimate")
        return PortionConversion(grams=self.grams, reasoning="stub")


def _lookup(payload: dict | None = None, *, fail: bool = False) -> _CannedLookup:
    lookup = _CannedLookup()
    lookup.payload = payload
    lookup.fail = fail
    return lookup


class CalorieLookupTests(unittest.TestCase):
    def test_grams_scale_per_100g_value(self) -> None:
        estimate = _lookup(_PIZZA_PAYLOAD).calories_for("pizza", grams=200.0)

        self.assertAlmostEqual(estimate.calories, 532.0)
        self.assertEqual(estimate.sources[0].name, "Pizza, Cheese")
        self.assertIn("101", estimate.sources[0].url)

    def test_unit_estimate_assumes_100g_per_unit(self) -> None:
        estimate = _lookup(_PIZZA_PAYLOAD).calories_for("pizza", quantity=2.0)

        self.assertAlmostEqual(estimate.calories, 532.0)
        self.assertTrue(estimate.sources[0].name.endswith("(100g est.)"))

    def test_no_results_or_energy_value(self) -> None:
        self.assertIsNone(_lookup({"foods": []}).calories_for("unobtainium"))
        no_energy = {"foods": [{"fdcId": 1, "description": "Water", "foodNutrients": []}]}
        self.assertIsNone(_lookup(no_energy).calories_for("water"))

    def test_fallback_swallows_lookup_errors_only(self) -> None:
        self.assertIsNone(lookup_calories_with_fallback(_lookup(fail=True), "pizza"))
        self.assertIsNone(lookup_calories_with_fallback(None, "pizza"))
        self.assertIsNone(lookup_calories_with_fallback(_lookup(_PIZZA_PAYLOAD), "  "))


class PortionConversionTests(unittest.TestCase):
    def test_explicit_weight_skips_estimator(self) -> None:
        estimator = _StubEstimator(999.0)

        conversion = convert_to_grams("rice", "0.5 kg", estimator)

        self.assertEqual(conversion.grams, 500.0)
        self.assertEqual(estimator.calls, [])

    def test_estimator_handles_portions(self) -> None:
        estimator = _StubEstimator(110.0)

        self.assertEqual(convert_to_grams("pizza", "1 dilim", estimator).grams, 110.0)
        self.assertEqual(estimator.calls, [("pizza", "1 dilim")])

    def test_unavailable_estimator(self) -> None:
        self.assertIsNone(convert_to_grams("pizza", "1 slice", None))
        self.assertIsNone(convert_to_grams("pizza", "1 slice", _StubEstimator(None)))


if __name__ == "__main__":
    unittest.main()
