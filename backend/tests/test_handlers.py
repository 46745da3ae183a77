"""Tests for per-intent result item construction."""

from __future__ import annotations

import json
import unittest
from datetime import datetime

from lifelog.handlers.confidence import LOW_CONFIDENCE_MESSAGE, ConfidenceLevel, classify_confidence, judge_slot
from lifelog.handlers.context import HandlerContext
from lifelog.handlers.dispatch import handler_for
from lifelog.handlers.event import handle_schedule
from lifelog.handlers.formatting import format_day, format_intent, format_time, is_valid_date, is_valid_time
from lifelog.handlers.meal import clean_meal_name, handle_meal, quantity_multiplier
from lifelog.handlers.money import CONVERSION_FAILED_MESSAGE, handle_money
from lifelog.handlers.activity import handle_activity
from lifelog.handlers.simple import (
    handle_calorie_adjustment,
    handle_default,
    handle_journal,
    handle_work_session,
)
from lifelog.resolvers.activity import ActivityResult
from lifelog.resolvers.calories import CalorieEstimate
from lifelog.types import CalorieSource, ParsedResult, ResultItem, Slot, SlotSource, Variable, VariableType


class _StubConverter:
    def __init__(self, rate: float | None) -> None:
        self.rate = rate
        self.calls: list[tuple[float, str, str]] = []

    def convert(self, amount: float, from_code: str, to_code: str) -> float | None:
        self.calls.append((amount, from_code, to_code))
        if self.rate is None:
            return None
        return amount * self.rate


class _StubCalorieLookup:
    def __init__(self, per_food: dict[str, float]) -> None:
        self.per_food = per_food
        self.calls: list[tuple[str, float, float | None]] = []

    def calories_for(self, food: str, *, quantity: float = 1.0, grams: float | None = None) -> CalorieEstimate | None:
        self.calls.append((food, quantity, grams))
        calories = self.per_food.get(food)
        if calories is None:
            return None
        return CalorieEstimate(
            calories=calories,
            sources=[CalorieSource(name=food.title(), calories=calories, url="https://example.org/food")],
        )


class _StubActivityParser:
    def __init__(self, result: ActivityResult | None) -> None:
        self.result = result

    def parse(self, text: str) -> ActivityResult | None:
        return self.result


def _result(intent: str, **slots: object) -> ParsedResult:
    result = ParsedResult(intent=Slot(intent, 0.9, SlotSource.MODEL))
    for name, value in slots.items():
        setattr(result, name, value if isinstance(value, Slot) else Slot(value, None, SlotSource.PATTERN))
    return result


def _fields(items: list[ResultItem]) -> list[str]:
    return [item.field for item in items]


def _item(items: list[ResultItem], field: str) -> ResultItem:
    return next(item for item in items if item.field == field)


RENT = Variable(id=1, name="rent", type=VariableType.EXPENSE, raw_value="1200", currency="USD", amount=1200.0)
RICE = Variable(
    id=2,
    name="rice",
    type=VariableType.MEAL,
    raw_value='{"calories": 130, "grams": 100}',
    calories=130.0,
    grams=100.0,
)


class ScheduleHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_event_without_day_or_time_gets_placeholders(self) -> None:
        items = await handle_schedule(_result("event", object="dentist"), "dentist", HandlerContext())

        self.assertEqual(_fields(items), ["Intent", "Event Time", "Subject", "Event Day"])
        self.assertEqual(items[0].value, "Event")
        self.assertEqual(_item(items, "Event Time").value, "Missing time")
        self.assertFalse(_item(items, "Event Time").is_valid)
        self.assertEqual(_item(items, "Event Time").confidence, 0.0)
        self.assertEqual(_item(items, "Event Day").error_message, "Please specify a valid date")

    async def test_reminder_with_day_defaults_to_noon(self) -> None:
        result = _result("reminder", object="call_mom", reminder_day="2025-11-20")

        items = await handle_schedule(result, "call mom tomorrow", HandlerContext())

        self.assertEqual(_fields(items), ["Intent", "Reminder Time", "Subject", "Reminder Day"])
        self.assertEqual(_item(items, "Reminder Time").value, "12:00")
        self.assertEqual(_item(items, "Reminder Day").value, "Nov 20, 2025")
        self.assertEqual(_item(items, "Reminder Day").raw_value, "2025-11-20")
        self.assertEqual(_item(items, "Subject").value, "Call Mom")

    async def test_reminder_without_day_or_time_asks_for_one(self) -> None:
        items = await handle_schedule(_result("reminder", object="water_plants"), "water plants", HandlerContext())

        self.assertEqual(_fields(items), ["Intent", "Subject", "Reminder Day"])
        self.assertEqual(_item(items, "Reminder Day").value, "Missing date or time")

    async def test_time_error_suppresses_default_and_placeholder(self) -> None:
        result = _result("event", object="meeting", event_day="tomorrow", event_time_error="13pm")

        items = await handle_schedule(result, "meeting tomorrow at 13pm", HandlerContext())

        self.assertEqual(_fields(items), ["Intent", "Event Time", "Subject", "Event Day"])
        time_item = _item(items, "Event Time")
        self.assertEqual(time_item.value, "13pm")
        self.assertFalse(time_item.is_valid)
        self.assertEqual(time_item.error_message, "Invalid time")
        self.assertEqual(_item(items, "Event Day").value, "tomorrow")

    async def test_low_confidence_slot_is_marked_invalid(self) -> None:
        result = _result(
            "event",
            object="standup",
            event_day="next_monday",
            event_time=Slot("9:5", 0.3, SlotSource.MODEL),
        )

        items = await handle_schedule(result, "standup next monday 9:05", HandlerContext())

        time_item = _item(items, "Event Time")
        self.assertEqual(time_item.value, "09:05")
        self.assertFalse(time_item.is_valid)
        self.assertEqual(time_item.error_message, LOW_CONFIDENCE_MESSAGE)
        self.assertEqual(_item(items, "Event Day").value, "next Monday")


class MoneyHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_foreign_amount_is_converted_to_base(self) -> None:
        converter = _StubConverter(1.1)
        result = _result("expense", object="dinner", amount=20.0, currency="EUR")

        items = await handle_money(result, "dinner 20 eur", HandlerContext(converter=converter))

        self.assertEqual(_fields(items), ["Intent", "Subject", "Currency", "Amount"])
        amount = _item(items, "Amount")
        self.assertEqual(amount.value, "-22.00 USD")
        self.assertEqual(amount.raw_value, "-20.00 EUR")
        self.assertTrue(amount.is_valid)
        self.assertEqual(converter.calls, [(20.0, "EUR", "USD")])

    async def test_failed_conversion_keeps_original_and_flags_it(self) -> None:
        result = _result("income", object="freelance", amount=300.0, currency="GBP")

        items = await handle_money(result, "freelance 300 gbp", HandlerContext(converter=_StubConverter(None)))

        amount = _item(items, "Amount")
        self.assertEqual(amount.value, "+300.00 GBP")
        self.assertFalse(amount.is_valid)
        self.assertEqual(amount.error_message, CONVERSION_FAILED_MESSAGE)

    async def test_base_currency_and_missing_currency(self) -> None:
        same = await handle_money(_result("expense", object="taxi", amount=15.0, currency="usd"), "", HandlerContext())
        bare = await handle_money(_result("expense", object="taxi", amount=15.0), "", HandlerContext())

        self.assertEqual(_item(same, "Amount").value, "-15.00 USD")
        self.assertEqual(_item(bare, "Amount").value, "-15.00")

    async def test_variable_amount_wins_over_slot(self) -> None:
        result = _result("expense", object="rent", amount=5.0)

        items = await handle_money(result, "rent", HandlerContext(variables=(RENT,)))

        self.assertEqual(_item(items, "Amount").value, "-1200.00 USD")

    async def test_unknown_currency_and_zero_amount_are_invalid(self) -> None:
        result = _result("expense", object="thing", amount=0.0, currency="XYZ")

        items = await handle_money(result, "thing 0 xyz", HandlerContext(converter=_StubConverter(1.0)))

        self.assertEqual(_item(items, "Currency").error_message, "Invalid currency code")
        self.assertFalse(_item(items, "Amount").is_valid)


class MealHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_explicit_grams_are_passed_to_lookup(self) -> None:
        lookup = _StubCalorieLookup({"pizza": 532.0})
        result = _result("meal", object="pizza", meal_quantity="200g")

        items = await handle_meal(result, "200g pizza", HandlerContext(calorie_lookup=lookup))

        self.assertEqual(_fields(items), ["Intent", "Subject", "Meal Quantity", "Calories"])
        calories = _item(items, "Calories")
        self.assertEqual(calories.value, "532 kcal")
        self.assertEqual(json.loads(calories.raw_value)[0]["name"], "Pizza")
        self.assertEqual(lookup.calls, [("pizza", 1.0, 200.0)])

    async def test_multi_meal_emits_per_item_and_total(self) -> None:
        lookup = _StubCalorieLookup({"pizza": 300.0})
        result = _result("meal", object="pizza_+_burger")

        items = await handle_meal(result, "pizza + burger", HandlerContext(calorie_lookup=lookup))

        self.assertEqual(_item(items, "Subject").value, "Pizza + Burger")
        self.assertEqual(_item(items, "Calories - Pizza").value, "300 kcal")
        self.assertFalse(_item(items, "Calories - Burger").is_valid)
        total = _item(items, "Calories")
        self.assertEqual(total.value, "300 kcal")
        self.assertFalse(total.is_valid)
        self.assertEqual(total.error_message, "Some meals could not be resolved")

    async def test_meal_variable_scales_by_grams(self) -> None:
        lookup = _StubCalorieLookup({})
        result = _result("meal", object="rice", meal_quantity="200g")

        items = await handle_meal(result, "200g rice", HandlerContext(variables=(RICE,), calorie_lookup=lookup))

        calories = _item(items, "Calories")
        self.assertEqual(calories.value, "260 kcal")
        self.assertEqual(json.loads(calories.raw_value)[0]["name"], "Variable: rice")
        self.assertEqual(lookup.calls, [])

    async def test_unknown_food_is_not_found(self) -> None:
        result = _result("meal", object="mystery_stew")

        items = await handle_meal(result, "mystery stew", HandlerContext(calorie_lookup=_StubCalorieLookup({})))

        self.assertEqual(_item(items, "Calories").value, "Not found")
        self.assertFalse(_item(items, "Calories").is_valid)

    async def test_explicit_kcal_and_missing_name(self) -> None:
        explicit = await handle_meal(_result("meal", object="salad", meal_kcal=450.0), "salad 450 kcal", HandlerContext())
        missing = await handle_meal(_result("meal"), "ate", HandlerContext())

        self.assertEqual(_item(explicit, "Calories").value, "450 kcal")
        self.assertEqual(_fields(missing), ["Intent", "Error"])

    def test_name_cleanup_and_multiplier(self) -> None:
        self.assertEqual(clean_meal_name("had_pizza"), "pizza")
        self.assertEqual(clean_meal_name("yedim"), "")
        self.assertEqual(quantity_multiplier("2"), 2.0)
        self.assertEqual(quantity_multiplier("200g"), 1.0)
        self.assertEqual(quantity_multiplier(None), 1.0)


class ActivityHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_burned_calories(self) -> None:
        parser = _StubActivityParser(ActivityResult("evening run", 30.0, 5.0, 300.0))

        items = await handle_activity(_result("activity"), "5km evening run", HandlerContext(activity_parser=parser))

        self.assertEqual(_fields(items), ["Intent", "Activity", "Duration", "Distance", "Calories Burned"])
        self.assertEqual(_item(items, "Activity").value, "Evening Run")
        self.assertEqual(_item(items, "Calories Burned").value, "-300 kcal")

    async def test_error_and_zero_calories_are_invalid(self) -> None:
        failing = _StubActivityParser(ActivityResult("run", None, None, 0.0, "Missing health metrics"))
        zero = _StubActivityParser(ActivityResult("run", None, None, 0.0))

        error_items = await handle_activity(_result("activity"), "run", HandlerContext(activity_parser=failing))
        zero_items = await handle_activity(_result("activity"), "run", HandlerContext(activity_parser=zero))

        self.assertEqual(_item(error_items, "Calories Burned").value, "Error")
        self.assertEqual(_item(zero_items, "Calories Burned").error_message, "Unable to calculate calories")

    async def test_unparsed_activity_returns_only_intent(self) -> None:
        items = await handle_activity(_result("activity"), "??", HandlerContext(activity_parser=_StubActivityParser(None)))

        self.assertEqual(_fields(items), ["Intent"])


class SimpleHandlerTests(unittest.IsolatedAsyncioTestCase):
    async def test_journal_splits_leading_mood(self) -> None:
        items = await handle_journal(_result("journal"), "😊 great day at the beach", HandlerContext())

        self.assertEqual(_fields(items), ["Intent", "Mood", "Subject"])
        self.assertEqual(_item(items, "Mood").value, "😊")
        self.assertEqual(_item(items, "Subject").value, "great day at the beach")

    async def test_work_session_is_stamped_with_clock(self) -> None:
        ctx = HandlerContext(clock=lambda: datetime(2025, 11, 19, 9, 5))

        items = await handle_work_session(_result("work_start", object="project_x"), "start work", ctx)

        self.assertEqual(_fields(items), ["Intent", "Event Time", "Subject"])
        self.assertEqual(_item(items, "Event Time").value, "09:05")
        self.assertEqual(items[0].value, "Work Start")

    async def test_calorie_adjustment_is_signed(self) -> None:
        items = await handle_calorie_adjustment(_result("calorie_adjustment", meal_kcal=150.0), "+150 kcal", HandlerContext())

        self.assertEqual(_item(items, "Calories").value, "+150 kcal")
        self.assertEqual(items[0].value, "Calorie Adjustment")

    async def test_default_handler_echoes_subject(self) -> None:
        items = await handle_default(_result("shopping", object="new_shoes"), "new shoes", HandlerContext())

        self.assertEqual([item.value for item in items], ["Shopping", "New Shoes"])


class DispatchAndPolicyTests(unittest.TestCase):
    def test_dispatch_mapping(self) -> None:
        self.assertIs(handler_for("reminder"), handle_schedule)
        self.assertIs(handler_for("EVENT"), handle_schedule)
        self.assertIs(handler_for("income"), handle_money)
        self.assertIs(handler_for("work_end"), handle_work_session)
        self.assertIs(handler_for("something_else"), handle_default)
        self.assertIs(handler_for(None), handle_default)

    def test_confidence_policy(self) -> None:
        self.assertIs(classify_confidence(None, 0.6), ConfidenceLevel.TRUSTED)
        self.assertIs(classify_confidence(0.6, 0.6), ConfidenceLevel.TRUSTED)
        self.assertIs(classify_confidence(0.59, 0.6), ConfidenceLevel.LOW_CONFIDENCE)
        self.assertEqual(judge_slot(False, 0.3, 0.6, "Invalid"), (False, LOW_CONFIDENCE_MESSAGE))
        self.assertEqual(judge_slot(False, 0.9, 0.6, "Invalid"), (False, "Invalid"))
        self.assertEqual(judge_slot(True, None, 0.6, "Invalid"), (True, None))

    def test_formatting_and_validation(self) -> None:
        self.assertEqual(format_intent("work_start"), "Work Start")
        self.assertEqual(format_intent("side_project"), "Side Project")
        self.assertEqual(format_time("9:5"), "09:05")
        self.assertEqual(format_time("soon"), "soon")
        self.assertEqual(format_day("weekday_friday"), "Friday")
        self.assertEqual(format_day("someday"), "someday")
        self.assertTrue(is_valid_time("23:59"))
        self.assertFalse(is_valid_time("24:00"))
        self.assertTrue(is_valid_date("next_monday"))
        self.assertFalse(is_valid_date("2025-02-30"))


if __name__ == "__main__":
    unittest.main()
