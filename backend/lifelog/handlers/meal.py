"""Meal items: subject, quantity and calories from variables or the calorie lookup."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass

from lifelog.handlers.context import HandlerContext
from lifelog.handlers.formatting import format_kcal, format_subject
from lifelog.handlers.items import intent_item, split_subjects, subject_item
from lifelog.nlp.parsing import extract_first_number, extract_grams
from lifelog.nlp.text import fold_text
from lifelog.resolvers.calories import lookup_calories_with_fallback
from lifelog.resolvers.portion import convert_to_grams
from lifelog.types import CalorieSource, ParsedResult, ResultItem, VariableType
from lifelog.variables.store import find_variable

logger = logging.getLogger(__name__)

MEAL_VERBS: tuple[str, ...] = (
    # English
    "had", "ate", "eating", "consumed", "finished", "having", "eat", "eaten",
    # Turkish
    "yedi", "yedim", "yiyorum", "yiyor", "yiyoruz", "yiyorlar", "yedik", "yediler", "yedin", "yiyeceğim", "yiyeceğiz",
    # French
    "mangé", "mange", "manger", "mangeait", "consommé",
    # Spanish
    "comí", "comido", "comer", "comiendo", "comiste", "comieron",
    # German
    "gegessen", "essen", "aß", "isst",
    # Italian
    "mangiato", "mangiare", "mangia", "mangiava",
    # Portuguese
    "comi", "comendo", "comeu",
)
_FOLDED_VERBS = frozenset(fold_text(verb) for verb in MEAL_VERBS)


@dataclass(frozen=True, slots=True)
class _MealCalories:
    calories: float
    sources: list[CalorieSource]


async def handle_meal(result: ParsedResult, text: str, ctx: HandlerContext) -> list[ResultItem]:
    items: list[ResultItem] = []
    head = intent_item(result)
    if head is not None:
        items.append(head)

    object_value = result.object.value if result.object else ""
    if not object_value.strip():
        items.append(
            ResultItem(field="Error", value="No meal name found", is_valid=False, error_message="No meal name found")
        )
        return items

    subject = subject_item(result)
    if subject is not None:
        items.append(subject)

    quantity = result.meal_quantity.value.strip() if result.meal_quantity and result.meal_quantity.value else None
    if quantity:
        items.append(
            ResultItem(
                field="Meal Quantity",
                value=quantity,
                raw_value=quantity,
                confidence=result.meal_quantity.confidence,
            )
        )

    if result.meal_kcal is not None and result.meal_kcal.value > 0:
        items.append(
            ResultItem(
                field="Calories",
                value=format_kcal(result.meal_kcal.value),
                confidence=result.meal_kcal.confidence,
            )
        )
        return items

    parts = split_subjects(object_value)
    if len(parts) > 1:
        items.extend(await _multi_meal_items(parts, quantity, ctx))
    else:
        items.append(await _single_meal_item(object_value, quantity, text, ctx))
    return items


def clean_meal_name(name: str) -> str:
    """Underscores to spaces, drop "+", strip leading eating verbs; empty when only a verb remains."""

    words = name.replace("_", " ").replace("+", " ").split()
    while words and fold_text(words[0]) in _FOLDED_VERBS:
        words = words[1:]
    return " ".join(words)


def quantity_multiplier(quantity: str | None) -> float:
    """A bare count ("2", "1.5") scales single-unit lookups; weights and portions do not."""

    if not quantity or extract_grams(quantity) is not None:
        return 1.0
    value = extract_first_number(quantity)
    if value is None or value <= 0:
        return 1.0
    return value


async def _single_meal_item(
    object_value: str,
    quantity: str | None,
    text: str,
    ctx: HandlerContext,
) -> ResultItem:
    name = clean_meal_name(object_value)
    if not name:
        return ResultItem(field="Error", value="No meal name found", is_valid=False, error_message="No meal name found")

    multiplier = quantity_multiplier(quantity)
    grams = extract_grams(quantity or "")
    if grams is None and quantity:
        conversion = await asyncio.to_thread(convert_to_grams, name, quantity, ctx.portion_estimator)
        if conversion is not None:
            logger.debug("meal.portion food=%s grams=%.1f reasoning=%s", name, conversion.grams, conversion.reasoning)
            grams = conversion.grams
    if grams is None:
        grams = extract_grams(text)

    found = await _resolve_calories(name, multiplier, grams, ctx)
    if found is None or found.calories <= 0:
        return ResultItem(
            field="Calories",
            value="Not found",
            is_valid=False,
            error_message="Could not find calories for this meal",
        )
    return ResultItem(field="Calories", value=format_kcal(found.calories), raw_value=encode_sources(found.sources))


async def _multi_meal_items(parts: list[str], quantity: str | None, ctx: HandlerContext) -> list[ResultItem]:
    items: list[ResultItem] = []
    multiplier = quantity_multiplier(quantity)
    grams = extract_grams(quantity or "")
    total = 0.0
    all_found = True
    all_sources: list[CalorieSource] = []

    for part in parts:
        name = clean_meal_name(part)
        if not name:
            continue
        label = f"Calories - {format_subject(name)}"
        found = await _resolve_calories(name, multiplier, grams, ctx)
        if found is None or found.calories <= 0:
            all_found = False
            items.append(
                ResultItem(
                    field=label,
                    value="Not found",
                    is_valid=False,
                    error_message=f"Could not find calories for {name}",
                )
            )
            continue
        total += found.calories
        all_sources.extend(found.sources)
        items.append(ResultItem(field=label, value=format_kcal(found.calories), raw_value=encode_sources(found.sources)))

    if total <= 0:
        items.append(
            ResultItem(
                field="Calories",
                value="Not found",
                is_valid=False,
                error_message="Could not find calories for any meal",
            )
        )
        return items
    items.append(
        ResultItem(
            field="Calories",
            value=format_kcal(total),
            is_valid=all_found,
            error_message=None if all_found else "Some meals could not be resolved",
            raw_value=encode_sources(all_sources),
        )
    )
    return items


async def _resolve_calories(
    name: str,
    multiplier: float,
    grams: float | None,
    ctx: HandlerContext,
) -> _MealCalories | None:
    variable = find_variable(ctx.variables, name, VariableType.MEAL)
    if variable is not None and variable.calories is not None:
        if grams is not None and variable.grams:
            calories = grams / variable.grams * variable.calories
        else:
            calories = variable.calories * multiplier
        return _MealCalories(calories, [CalorieSource(name=f"Variable: {variable.name}", calories=calories)])

    estimate = await asyncio.to_thread(
        lookup_calories_with_fallback,
        ctx.calorie_lookup,
        name,
        quantity=multiplier,
        grams=grams,
    )
    if estimate is None:
        return None
    return _MealCalories(estimate.calories, list(estimate.sources))


def encode_sources(sources: list[CalorieSource]) -> str:
    return json.dumps([source.to_dict() for source in sources], ensure_ascii=False)