"""Contract tests for the model-backed collaborators against a stub client."""

from __future__ import annotations

import unittest
from datetime import datetime
from typing import Any

from lifelog.llm.client import LLMError, strict_schema
from lifelog.llm.collaborators import (
    IntentClassifier,
    IntentExtractor,
    LLMActivityExtractor,
    LLMPortionEstimator,
    MealFields,
    MoneyFields,
    ScheduleFields,
    TitleRefiner,
    Translator,
    WorkSessionFields,
    extract_with_fallback,
    is_likely_english,
    refine_title_with_fallback,
    sanitize_title,
    translate_with_fallback,
)


class _StubLLMClient:
    def __init__(self, payload: dict[str, Any] | None = None, *, error: Exception | None = None) -> None:
        self.payload = payload or {}
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_schema: dict[str, Any],
    ) -> dict[str, Any]:
        self.calls.append({"system": system_prompt, "user": user_prompt, "schema": json_schema})
        if self.error is not None:
            raise self.error
        return dict(self.payload)


def _fixed_clock() -> datetime:
    return datetime(2025, 11, 19, 10, 0)


class ClassifierAndExtractorTests(unittest.TestCase):
    def test_classifier_normalizes_intent_and_sends_clock(self) -> None:
        client = _StubLLMClient({"intent": " Meal "})

        intent = IntentClassifier(client, clock=_fixed_clock).classify("2 slices of pizza")

        self.assertEqual(intent, "meal")
        self.assertIn("Wednesday, November 19, 2025", client.calls[0]["user"])
        self.assertEqual(client.calls[0]["schema"]["name"], "lifelog_intent")
        self.assertTrue(client.calls[0]["system"])

    def test_extractor_validates_payload(self) -> None:
        client = _StubLLMClient({"object": "dinner", "amount": 42.5, "currency": "EUR"})

        fields = IntentExtractor(client).extract("dinner 42.5 eur", "expense")

        self.assertIsInstance(fields, MoneyFields)
        self.assertEqual(fields.amount, 42.5)
        self.assertEqual(client.calls[0]["user"], "dinner 42.5 eur")

    def test_schedule_extraction_includes_current_date(self) -> None:
        client = _StubLLMClient({"object": "meeting", "day": "tomorrow", "time": "15:00"})

        fields = IntentExtractor(client, clock=_fixed_clock).extract("meeting tomorrow at 3pm", "event")

        self.assertIsInstance(fields, ScheduleFields)
        self.assertTrue(client.calls[0]["user"].startswith("Current date and time:"))

    def test_invalid_payload_raises_llm_error(self) -> None:
        with self.assertRaises(LLMError):
            IntentExtractor(_StubLLMClient({"amount": "lots"})).extract("dinner", "expense")
        with self.assertRaises(LLMError):
            IntentExtractor(_StubLLMClient({})).extract("hello", "journal")

    def test_extract_with_fallback_echoes_text(self) -> None:
        failing = IntentExtractor(_StubLLMClient(error=LLMError("down")))

        meal = extract_with_fallback(failing, "pizza", "meal")
        work = extract_with_fallback(None, "start work", "work_start")

        self.assertEqual(meal, MealFields(object="pizza"))
        self.assertIsInstance(work, WorkSessionFields)
        self.assertEqual(work.object, "start work")

    def test_activity_and_portion_payloads(self) -> None:
        activity = LLMActivityExtractor(
            _StubLLMClient({"activity_type": " Running ", "duration_minutes": 30, "distance_km": None, "count": None})
        ).extract_activity("ran 30 minutes")
        portion = LLMPortionEstimator(_StubLLMClient({"grams": 120, "reasoning": "one slice"})).estimate_grams(
            "pizza", "1 slice"
        )

        self.assertEqual(activity.activity_type, "running")
        self.assertEqual(activity.duration_minutes, 30.0)
        self.assertEqual(portion.grams, 120.0)


class TranslationAndTitleTests(unittest.TestCase):
    def test_english_text_is_not_sent(self) -> None:
        client = _StubLLMClient({"translation": "unused"})

        self.assertEqual(Translator(client).translate_to_english("dinner tomorrow"), "dinner tomorrow")
        self.assertEqual(client.calls, [])
        self.assertTrue(is_likely_english("call at 5"))
        self.assertFalse(is_likely_english("yarın toplantı"))

    def test_translation_fallback(self) -> None:
        client = _StubLLMClient({"translation": "meeting tomorrow"})

        self.assertEqual(translate_with_fallback(Translator(client), "yarın toplantı"), "meeting tomorrow")
        self.assertEqual(translate_with_fallback(Translator(_StubLLMClient(error=LLMError("x"))), "yarın"), "yarın")
        self.assertEqual(translate_with_fallback(None, "yarın"), "yarın")

    def test_sanitize_title(self) -> None:
        self.assertEqual(sanitize_title("  Team   Sync ", "fallback"), "team_sync")
        self.assertEqual(sanitize_title("ok", "fallback"), "fallback")
        self.assertEqual(len(sanitize_title("word " * 20, "fallback")), 40)

    def test_refine_title_with_fallback(self) -> None:
        refiner = TitleRefiner(_StubLLMClient({"title": "Dentist Appointment"}))
        failing = TitleRefiner(_StubLLMClient(error=LLMError("x")))

        self.assertEqual(
            refine_title_with_fallback(refiner, "dentist tmrw", "dentist", "event", "tomorrow", None),
            "dentist_appointment",
        )
        self.assertEqual(refine_title_with_fallback(failing, "dentist tmrw", "dentist", "event", None, None), "dentist")

    def test_strict_schema_requires_every_property(self) -> None:
        schema = strict_schema("demo", {"a": {"type": "string"}, "b": {"type": "number"}})

        self.assertTrue(schema["strict"])
        self.assertEqual(schema["schema"]["required"], ["a", "b"])
        self.assertFalse(schema["schema"]["additionalProperties"])


if __name__ == "__main__":
    unittest.main()
