"""Tests for MET lookup, duration estimation and the activity parser."""

from __future__ import annotations

import unittest

from lifelog.llm.client import LLMError
from lifelog.resolvers.activity import (
    DEFAULT_MET,
    ActivityCalorieService,
    ActivityFields,
    ActivityParser,
    ActivityProfile,
    ActivityResult,
    SettingsProfileProvider,
    estimate_duration_from_count,
    estimate_duration_from_distance,
    extract_activity_fields_locally,
    met_for_activity,
    met_for_speed,
)


class _StubProfileProvider:
    def __init__(self, profile: ActivityProfile | None) -> None:
        self.profile = profile

    def get_profile(self) -> ActivityProfile | None:
        return self.profile


class _StubActivityExtractor:
    def __init__(self, fields: ActivityFields | None = None, *, fail: bool = False) -> None:
        self.fields = fields
        self.fail = fail
        self.calls = 0

    def extract_activity(self, text: str) -> ActivityFields:
        self.calls += 1
        if self.fail or self.fields is None:
            raise LLMError("model unavailable")
        return self.fields


PROFILE = ActivityProfile(weight_kg=70.0, height_cm=175.0)


class MetLookupTests(unittest.TestCase):
    def test_exact_and_contained_names(self) -> None:
        self.assertEqual(met_for_activity("Running"), 9.8)
        self.assertEqual(met_for_activity("morning yoga"), 2.5)
        self.assertEqual(met_for_activity("unknown sport"), DEFAULT_MET)

    def test_speed_bands_refine_met(self) -> None:
        self.assertEqual(met_for_speed("running", 10.0, 60.0), 10.5)
        self.assertEqual(met_for_speed("cycling", 25.0, 60.0), 10.0)
        self.assertEqual(met_for_speed("walking", 3.0, 60.0), 2.0)
        self.assertEqual(met_for_speed("yoga", None, 60.0), 2.5)

    def test_duration_estimates(self) -> None:
        self.assertAlmostEqual(estimate_duration_from_distance("run", 5.0), 30.0)
        self.assertAlmostEqual(estimate_duration_from_distance("walk", 5.0), 60.0)
        self.assertAlmostEqual(estimate_duration_from_count("pushups", 20), 1.0)
        self.assertAlmostEqual(estimate_duration_from_count("burpees", 12), 1.0)


class ActivityResultFormattingTests(unittest.TestCase):
    def test_formatting(self) -> None:
        result = ActivityResult("run", 90.0, 12.345, 734.6)

        self.assertEqual(result.formatted_duration, "1h 30m")
        self.assertEqual(result.formatted_distance, "12.3 km")
        self.assertEqual(result.formatted_calories, "-735 kcal")
        self.assertEqual(ActivityResult("yoga", 45.0, None, 0.0).formatted_duration, "45m")
        self.assertEqual(ActivityResult("yoga", 120.0, None, 0.0).formatted_duration, "2h")
        self.assertEqual(ActivityResult("yoga", None, None, 0.0).formatted_calories, "0 kcal")


class ActivityParserTests(unittest.TestCase):
    def test_local_extraction(self) -> None:
        fields = extract_activity_fields_locally("45 min yoga")

        self.assertEqual(fields.activity_type, "yoga")
        self.assertEqual(fields.duration_minutes, 45.0)
        self.assertIsNone(fields.distance_km)
        self.assertIsNone(fields.count)

        counted = extract_activity_fields_locally("20 pushups")
        self.assertEqual(counted.activity_type, "pushups")
        self.assertEqual(counted.count, 20.0)

    def test_implausible_model_duration_is_overridden_by_distance(self) -> None:
        extractor = _StubActivityExtractor(ActivityFields("running", duration_minutes=200.0, distance_km=10.0))
        parser = ActivityParser(extractor, ActivityCalorieService(_StubProfileProvider(PROFILE)))

        result = parser.parse("ran 10km")

        self.assertEqual(result.duration_minutes, 60.0)
        self.assertAlmostEqual(result.calories_burned, 735.0)
        self.assertIsNone(result.error_message)

    def test_model_failure_falls_back_to_local_fields(self) -> None:
        parser = ActivityParser(
            _StubActivityExtractor(fail=True),
            ActivityCalorieService(_StubProfileProvider(PROFILE)),
        )

        result = parser.parse("10km run")

        self.assertEqual(result.activity_type, "run")
        self.assertEqual(result.distance_km, 10.0)
        self.assertEqual(result.duration_minutes, 60.0)

    def test_missing_metrics_is_reported_and_not_cached(self) -> None:
        provider = _StubProfileProvider(None)
        extractor = _StubActivityExtractor(ActivityFields("running", duration_minutes=30.0))
        parser = ActivityParser(extractor, ActivityCalorieService(provider))

        first = parser.parse("ran for 30 minutes")
        self.assertEqual(first.calories_burned, 0.0)
        self.assertIn("missing health metrics", first.error_message.lower())

        provider.profile = PROFILE
        second = parser.parse("ran for 30 minutes")
        self.assertIsNone(second.error_message)
        self.assertAlmostEqual(second.calories_burned, 9.8 * 70.0 * 0.5)
        self.assertEqual(extractor.calls, 1)

        self.assertIs(parser.parse("ran for 30 minutes"), second)

    def test_settings_provider_needs_weight_and_height(self) -> None:
        self.assertIsNone(SettingsProfileProvider(weight_kg=70.0).get_profile())
        profile = SettingsProfileProvider(weight_kg=70.0, height_cm=175.0, sex="female").get_profile()
        self.assertEqual(profile.weight_kg, 70.0)
        self.assertEqual(profile.height_cm, 175.0)
        self.assertEqual(profile.sex, "female")


if __name__ == "__main__":
    unittest.main()
