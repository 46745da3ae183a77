"""Line to ParsedResult: local shortcuts first, then model classification and per-intent extraction."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from time import perf_counter
from typing import Callable, Iterable, Protocol

from pydantic import BaseModel

from lifelog.config import get_settings
from lifelog.handlers.items import MULTI_SUBJECT_SEPARATOR
from lifelog.handlers.simple import split_mood
from lifelog.llm.client import LLMError, get_default_llm_client
from lifelog.llm.collaborators import (
    CalorieAdjustmentFields,
    IntentClassifier,
    IntentExtractor,
    KNOWN_INTENTS,
    LLMActivityExtractor,
    MealFields,
    MoneyFields,
    TitleRefiner,
    Translator,
    WorkSessionFields,
    describe_payload,
    extract_with_fallback,
    refine_title_with_fallback,
    translate_with_fallback,
)
from lifelog.nlp.datetime_sanitizer import sanitize
from lifelog.nlp.object_extractor import extract_object
from lifelog.nlp.parsing import (
    extract_currency,
    extract_first_number,
    is_valid_text,
    net_calorie_adjustment,
    net_currency_adjustment,
    normalize_currency_code,
)
from lifelog.nlp.text import fold_text, slugify
from lifelog.resolvers.activity import ActivityParser, get_default_activity_parser
from lifelog.types import ParsedResult, Slot, SlotSource, Variable, VariableType
from lifelog.variables.store import find_variable

logger = logging.getLogger(__name__)

_QUANTITY_TOKEN_RE = re.compile(
    r"\d+(?:[.,]\d+)?\s*(?:kilograms|kilogram|kg|grams|gram|gr|g|ounces|ounce|oz|pounds|pound|lbs|lb)\b"
    r"|\d+(?:[.,]\d+)?",
    re.IGNORECASE,
)
_SCHEDULE_INTENTS = ("event", "reminder")
_MONEY_INTENTS = ("expense", "income")
_WORK_INTENTS = ("work_start", "work_end")


class ParseState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class ParseOutcome:
    """The result of one line plus the states it passed through."""

    result: ParsedResult = field(default_factory=ParsedResult)
    states: list[ParseState] = field(default_factory=lambda: [ParseState.IDLE])

    @property
    def state(self) -> ParseState:
        return self.states[-1]

    def advance(self, state: ParseState) -> None:
        self.states.append(state)


class Classifier(Protocol):
    def classify(self, text: str) -> str:
        """Return one of the known intent strings."""


class Extractor(Protocol):
    def extract(self, text: str, intent: str) -> BaseModel:
        """Return the intent's structured fields."""


class LineOrchestrator:
    """Runs the per-line state machine; every failure path degrades to a result."""

    def __init__(
        self,
        *,
        classifier: Classifier | None = None,
        extractor: Extractor | None = None,
        translator: Translator | None = None,
        title_refiner: TitleRefiner | None = None,
        activity_parser: ActivityParser | None = None,
        clock: Callable[[], datetime] = datetime.now,
        month_first: bool = False,
    ) -> None:
        self._classifier = classifier
        self._extractor = extractor
        self._translator = translator
        self._title_refiner = title_refiner
        self._activity_parser = activity_parser
        self._clock = clock
        self._month_first = month_first

    @property
    def activity_parser(self) -> ActivityParser | None:
        return self._activity_parser

    async def parse(self, text: str, variables: Iterable[Variable] = ()) -> ParseOutcome:
        outcome = ParseOutcome()
        trimmed = (text or "").strip()
        if not is_valid_text(trimmed):
            logger.debug("line_pipeline.rejected text=%s", trimmed)
            outcome.advance(ParseState.DONE)
            return outcome

        shortcut = shortcut_result(trimmed, tuple(variables))
        if shortcut is not None:
            outcome.result = shortcut
            outcome.advance(ParseState.VALIDATING)
            outcome.advance(ParseState.DONE)
            return outcome

        total_started = perf_counter()
        outcome.advance(ParseState.CLASSIFYING)
        started = perf_counter()
        intent = await self._classify(trimmed, outcome)
        classify_ms = (perf_counter() - started) * 1000.0
        if outcome.state is ParseState.FAILED:
            outcome.result = ParsedResult(intent=Slot("none", None, SlotSource.PATTERN))
            return outcome

        outcome.advance(ParseState.EXTRACTING)
        started = perf_counter()
        outcome.result = await self._extract(trimmed, intent, outcome)
        extract_ms = (perf_counter() - started) * 1000.0
        if outcome.state is not ParseState.FAILED:
            outcome.advance(ParseState.VALIDATING)
            outcome.advance(ParseState.DONE)

        logger.info(
            "line_pipeline.timing intent=%s state=%s classify_ms=%.2f extract_ms=%.2f total_ms=%.2f",
            outcome.result.intent_value,
            outcome.state.value,
            classify_ms,
            extract_ms,
            (perf_counter() - total_started) * 1000.0,
        )
        return outcome

    async def _classify(self, text: str, outcome: ParseOutcome) -> str:
        if self._classifier is None:
            outcome.advance(ParseState.FAILED)
            return "none"
        try:
            intent = await asyncio.to_thread(self._classifier.classify, text)
        except LLMError as exc:
            logger.warning("line_pipeline.classify_failed error=%s", exc)
            outcome.advance(ParseState.FAILED)
            return "none"
        intent = (intent or "none").strip().lower()
        logger.debug("line_pipeline.classified intent=%s text=%s", intent, text)
        return intent

    async def _extract(self, text: str, intent: str, outcome: ParseOutcome) -> ParsedResult:
        if intent in _SCHEDULE_INTENTS:
            return await self._extract_schedule(text, intent)
        if intent == "meal":
            return await self._extract_meal(text, outcome)
        if intent in _MONEY_INTENTS:
            fields = await asyncio.to_thread(extract_with_fallback, self._extractor, text, intent)
            return money_result(text, intent, fields)
        if intent == "activity":
            return await self._extract_activity(text)
        if intent in _WORK_INTENTS:
            fields = await asyncio.to_thread(extract_with_fallback, self._extractor, text, intent)
            return work_session_result(intent, fields)
        if intent == "calorie_adjustment":
            fields = await asyncio.to_thread(extract_with_fallback, self._extractor, text, intent)
            return calorie_adjustment_result(text, fields)
        if intent == "journal":
            return journal_result(text)
        if intent not in KNOWN_INTENTS:
            logger.info("line_pipeline.unknown_intent intent=%s", intent)
        return ParsedResult(intent=Slot(intent, None, SlotSource.MODEL))

    async def _extract_schedule(self, text: str, intent: str) -> ParsedResult:
        translated = await asyncio.to_thread(translate_with_fallback, self._translator, text)
        fields = await asyncio.to_thread(extract_with_fallback, self._extractor, text, intent)
        logger.debug("line_pipeline.extracted intent=%s payload=%s", intent, describe_payload(fields))

        sanitized = sanitize(
            text,
            translated if translated != text else None,
            fields.day,
            fields.time,
            now=self._clock(),
            month_first=self._month_first,
        )
        slug = extract_object(
            text,
            fallback=fields.object,
            parsed_day=fields.day or sanitized.day,
            parsed_time=fields.time or sanitized.time,
        )
        title = await asyncio.to_thread(
            refine_title_with_fallback,
            self._title_refiner,
            text,
            slug,
            intent,
            sanitized.day,
            sanitized.time,
        )

        result = ParsedResult(
            intent=Slot(intent, None, SlotSource.MODEL),
            object=Slot(title, None, SlotSource.PATTERN),
        )
        day = Slot(sanitized.day, None, SlotSource.PATTERN) if sanitized.day else None
        time = Slot(sanitized.time, None, SlotSource.PATTERN) if sanitized.time else None
        day_error = Slot(sanitized.invalid_day_input, None, SlotSource.PATTERN) if sanitized.invalid_day_input else None
        time_error = (
            Slot(sanitized.invalid_time_input, None, SlotSource.PATTERN) if sanitized.invalid_time_input else None
        )
        if intent == "event":
            result.event_day, result.event_time = day, time
            result.event_day_error, result.event_time_error = day_error, time_error
        else:
            result.reminder_day, result.reminder_time = day, time
            result.reminder_day_error, result.reminder_time_error = day_error, time_error
        return result

    async def _extract_meal(self, text: str, outcome: ParseOutcome) -> ParsedResult:
        if self._extractor is None:
            outcome.advance(ParseState.FAILED)
            return ParsedResult(intent=Slot("none", None, SlotSource.PATTERN))
        try:
            fields = await asyncio.to_thread(self._extractor.extract, text, "meal")
        except LLMError as exc:
            logger.warning("line_pipeline.meal_extract_failed error=%s", exc)
            outcome.advance(ParseState.FAILED)
            return ParsedResult(intent=Slot("none", None, SlotSource.PATTERN))
        return meal_result(text, fields)

    async def _extract_activity(self, text: str) -> ParsedResult:
        if self._activity_parser is None:
            return ParsedResult()
        parsed = await asyncio.to_thread(self._activity_parser.parse, text)
        if parsed is None:
            return ParsedResult()
        result = ParsedResult(
            intent=Slot("activity", None, SlotSource.MODEL),
            object=Slot(slugify(parsed.activity_type) or parsed.activity_type, None, SlotSource.MODEL),
            meal_kcal=Slot(-parsed.calories_burned, None, SlotSource.PATTERN),
        )
        if parsed.duration_minutes is not None:
            result.duration = Slot(parsed.duration_minutes, None, SlotSource.MODEL)
        if parsed.distance_km is not None:
            result.distance = Slot(parsed.distance_km, None, SlotSource.MODEL)
        return result


def shortcut_result(text: str, variables: tuple[Variable, ...]) -> ParsedResult | None:
    """Exact variable names and pure signed adjustments never reach the model."""

    variable = find_variable(variables, text)
    if variable is not None:
        return variable_result(text, variable)

    calories = net_calorie_adjustment(text)
    if calories is not None:
        return ParsedResult(
            intent=Slot("calorie_adjustment", 1.0, SlotSource.PATTERN),
            meal_kcal=Slot(calories, 1.0, SlotSource.PATTERN),
        )

    money = net_currency_adjustment(text)
    if money is not None:
        return ParsedResult(
            intent=Slot("income" if money.net >= 0 else "expense", 1.0, SlotSource.PATTERN),
            amount=Slot(abs(money.net), 1.0, SlotSource.PATTERN),
            currency=Slot(money.currency, 1.0, SlotSource.PATTERN),
        )
    return None


def variable_result(text: str, variable: Variable) -> ParsedResult:
    result = ParsedResult(
        intent=Slot(variable.type.value, 1.0, SlotSource.MANUAL),
        object=Slot("_".join(variable.name.lower().split()), 1.0, SlotSource.MANUAL),
    )
    if variable.type is VariableType.MEAL:
        if variable.calories is not None:
            result.meal_kcal = Slot(variable.calories, 1.0, SlotSource.MANUAL)
        return result
    if variable.amount is not None:
        result.amount = Slot(abs(variable.amount), 1.0, SlotSource.MANUAL)
    currency = variable.currency or extract_currency(text)
    if currency:
        result.currency = Slot(currency, 1.0, SlotSource.MANUAL)
    return result


def meal_result(text: str, fields: MealFields) -> ParsedResult:
    result = ParsedResult(
        intent=Slot("meal", None, SlotSource.MODEL),
        object=Slot(meal_object_slug(fields.object), None, SlotSource.MODEL),
        is_menu=Slot(fields.is_menu, None, SlotSource.MODEL),
    )
    quantity = (fields.meal_quantity or "").strip()
    if quantity and fold_text(quantity.replace("_", " ")) == fold_text(fields.object.replace("_", " ")):
        quantity = ""
    if not quantity:
        match = _QUANTITY_TOKEN_RE.search(text)
        if match is not None:
            quantity = "".join(match.group(0).split())
    if quantity:
        result.meal_quantity = Slot(quantity, None, SlotSource.MODEL)
    if fields.meal_kcal is not None and fields.meal_kcal > 0:
        result.meal_kcal = Slot(fields.meal_kcal, None, SlotSource.MODEL)
    return result


def meal_object_slug(value: str) -> str:
    """"pizza + burger" becomes ``pizza_+_burger``."""

    parts = [slugify(part) for part in value.replace(MULTI_SUBJECT_SEPARATOR, "+").split("+")]
    return MULTI_SUBJECT_SEPARATOR.join(part for part in parts if part)


def money_result(text: str, intent: str, fields: MoneyFields) -> ParsedResult:
    result = ParsedResult(
        intent=Slot(intent, None, SlotSource.MODEL),
        object=Slot(slugify(fields.object) or fields.object, None, SlotSource.MODEL),
    )
    amount = fields.amount
    amount_source = SlotSource.MODEL
    if amount is None:
        amount = extract_first_number(text)
        amount_source = SlotSource.PATTERN
    if amount is not None:
        result.amount = Slot(abs(amount), None, amount_source)
    currency = normalize_currency_code(fields.currency or "") or extract_currency(text)
    if currency:
        result.currency = Slot(currency, None, SlotSource.MODEL)
    return result


def work_session_result(intent: str, fields: WorkSessionFields) -> ParsedResult:
    result = ParsedResult(intent=Slot(intent, None, SlotSource.MODEL))
    if fields.object:
        result.object = Slot(slugify(fields.object) or fields.object, None, SlotSource.MODEL)
    return result


def calorie_adjustment_result(text: str, fields: CalorieAdjustmentFields) -> ParsedResult:
    result = ParsedResult(intent=Slot("calorie_adjustment", None, SlotSource.MODEL))
    calories = fields.meal_kcal
    if calories is None:
        calories = net_calorie_adjustment(text)
    if calories is None:
        calories = extract_first_number(text)
    if calories is not None:
        result.meal_kcal = Slot(calories, None, SlotSource.MODEL)
    return result


def journal_result(text: str) -> ParsedResult:
    mood, body = split_mood(text)
    result = ParsedResult(intent=Slot("journal", None, SlotSource.MODEL))
    if mood is not None:
        result.mood_emoji = Slot(mood, 1.0, SlotSource.PATTERN)
    if body:
        result.object = Slot(body, None, SlotSource.PATTERN)
    return result


def get_default_orchestrator() -> LineOrchestrator:
    """Model-backed collaborators when an API key is configured, local fallbacks otherwise."""

    settings = get_settings()
    client = get_default_llm_client()
    if client is None:
        return LineOrchestrator(activity_parser=get_default_activity_parser(), month_first=settings.month_first_dates)
    return LineOrchestrator(
        classifier=IntentClassifier(client),
        extractor=IntentExtractor(client),
        translator=Translator(client),
        title_refiner=TitleRefiner(client),
        activity_parser=get_default_activity_parser(LLMActivityExtractor(client)),
        month_first=settings.month_first_dates,
    )
