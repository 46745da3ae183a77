"""Tests for subject slugs, text helpers and the gibberish gate."""

from __future__ import annotations

import unittest

from lifelog.nlp.object_extractor import extract_object, strip_command_prefixes, time_variants
from lifelog.nlp.parsing import (
    extract_currency,
    extract_grams,
    is_valid_text,
    net_calorie_adjustment,
    net_currency_adjustment,
    parse_distance,
)
from lifelog.nlp.text import capitalize_words, fold_text, humanize_slug, slugify


class TextHelperTests(unittest.TestCase):
    def test_slugify_is_idempotent(self) -> None:
        for value in ("Call Mom!", "  doktor  randevusu ", "a--b__c", "pizza_+_burger"):
            with self.subTest(value=value):
                once = slugify(value)
                self.assertEqual(slugify(once), once)

    def test_slugify_joins_alphanumeric_runs(self) -> None:
        self.assertEqual(slugify("Call Mom!"), "call_mom")
        self.assertEqual(slugify("***"), "")

    def test_fold_text_drops_turkish_dotless_i_and_accents(self) -> None:
        self.assertEqual(fold_text("Yarın"), "yarin")
        self.assertEqual(fold_text("Réunion"), "reunion")

    def test_humanize_slug(self) -> None:
        self.assertEqual(humanize_slug("call_mom"), "Call Mom")
        self.assertEqual(capitalize_words("eVENING run"), "Evening Run")


class ExtractObjectTests(unittest.TestCase):
    def test_strips_day_and_time(self) -> None:
        self.assertEqual(extract_object("meeting tomorrow at 3pm"), "meeting")

    def test_strips_command_prefix_and_courtesy(self) -> None:
        self.assertEqual(extract_object("remind me to call mom tomorrow please"), "call_mom")

    def test_falls_back_when_nothing_remains(self) -> None:
        self.assertEqual(extract_object("tomorrow at 5pm", fallback="Dentist"), "dentist")

    def test_empty_input_gives_empty_slug(self) -> None:
        self.assertEqual(extract_object(""), "")

    def test_turkish_prefix_with_colon(self) -> None:
        self.assertEqual(extract_object("Hatırlat bana: doktor randevusu"), "doktor_randevusu")

    def test_prefix_requires_word_boundary(self) -> None:
        self.assertEqual(strip_command_prefixes("scheduled maintenance"), "scheduled maintenance")
        self.assertEqual(strip_command_prefixes("schedule dentist"), "dentist")

    def test_time_variants_longest_first(self) -> None:
        variants = time_variants("09:30")
        self.assertIn(variants[0], ("09:30", "09.30"))
        self.assertIn("9:30", variants)
        self.assertEqual(len(variants[-1]), 1)
        self.assertIn("9", variants)
        self.assertEqual(time_variants("noonish"), ["noonish"])


class InputGateTests(unittest.TestCase):
    def test_rejects_gibberish(self) -> None:
        for text in ("ab", "aaaa", "abcabc", "heyyyy", "!!!!a", "   "):
            with self.subTest(text=text):
                self.assertFalse(is_valid_text(text))

    def test_accepts_real_lines(self) -> None:
        for text in ("10000 steps", "pizza", "meeting tomorrow at 3pm", "+100 kcal"):
            with self.subTest(text=text):
                self.assertTrue(is_valid_text(text))


class ParsingHelperTests(unittest.TestCase):
    def test_extract_grams_converts_units(self) -> None:
        self.assertEqual(extract_grams("200g pizza"), 200.0)
        self.assertEqual(extract_grams("1.5 kg rice"), 1500.0)
        self.assertIsNone(extract_grams("two slices"))

    def test_extract_currency_prefers_symbols_and_aliases(self) -> None:
        self.assertEqual(extract_currency("coffee 4$"), "USD")
        self.assertEqual(extract_currency("kira 5000 lira"), "TRY")
        self.assertEqual(extract_currency("rent 900 cad"), "CAD")
        self.assertIsNone(extract_currency("lunch 12"))

    def test_parse_distance_converts_miles(self) -> None:
        self.assertEqual(parse_distance("10km run"), 10.0)
        self.assertAlmostEqual(parse_distance("3 miles walk"), 3 / 0.621371)

    def test_net_calorie_adjustment(self) -> None:
        self.assertEqual(net_calorie_adjustment("+200 kcal - 50"), 150.0)
        self.assertIsNone(net_calorie_adjustment("+200"))
        self.assertIsNone(net_calorie_adjustment("pizza 200 kcal"))

    def test_net_currency_adjustment_requires_one_currency(self) -> None:
        adjustment = net_currency_adjustment("+200 try - 50 try")
        self.assertIsNotNone(adjustment)
        self.assertEqual(adjustment.net, 150.0)
        self.assertEqual(adjustment.currency, "TRY")
        self.assertIsNone(net_currency_adjustment("+200 try - 50 usd"))


if __name__ == "__main__":
    unittest.main()
