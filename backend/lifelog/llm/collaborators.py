"""Model-backed classifier, extractors, translator and title refiner."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from lifelog.llm.client import LLMClient, LLMError, load_prompt, strict_schema
from lifelog.resolvers.activity import ActivityFields
from lifelog.resolvers.portion import PortionConversion

logger = logging.getLogger(__name__)

KNOWN_INTENTS = (
    "meal",
    "expense",
    "income",
    "reminder",
    "event",
    "activity",
    "work_start",
    "work_end",
    "calorie_adjustment",
    "journal",
    "none",
)
MAX_TITLE_LENGTH = 40
MIN_TITLE_LENGTH = 3

_NULLABLE_STRING = {"type": ["string", "null"]}
_NULLABLE_NUMBER = {"type": ["number", "null"]}
_ENGLISH_INDICATORS = (
    "today", "tomorrow", "monday", "tuesday", "wednesday", "thursday", "friday",
    "saturday", "sunday", "meeting", "dinner", "lunch", "call", "remind", "at", "pm", "am",
)
_ENGLISH_RE = re.compile(r"\b(?:" + "|".join(_ENGLISH_INDICATORS) + r")\b", re.IGNORECASE)


class MealFields(BaseModel):
    object: str
    meal_quantity: str | None = None
    is_menu: bool = False
    meal_kcal: float | None = None


class MoneyFields(BaseModel):
    object: str
    amount: float | None = None
    currency: str | None = None


class ScheduleFields(BaseModel):
    object: str
    day: str | None = None
    time: str | None = None


class WorkSessionFields(BaseModel):
    object: str | None = None


class CalorieAdjustmentFields(BaseModel):
    meal_kcal: float | None = None


class _IntentPayload(BaseModel):
    intent: str


class _TranslationPayload(BaseModel):
    translation: str


class _TitlePayload(BaseModel):
    title: str


class _PortionPayload(BaseModel):
    grams: float
    reasoning: str = ""


class _ActivityPayload(BaseModel):
    activity_type: str
    duration_minutes: float | None = None
    distance_km: float | None = None
    count: float | None = None


_INTENT_SCHEMA = strict_schema("lifelog_intent", {"intent": {"type": "string", "enum": list(KNOWN_INTENTS)}})
_TRANSLATION_SCHEMA = strict_schema("lifelog_translation", {"translation": {"type": "string"}})
_TITLE_SCHEMA = strict_schema("lifelog_title", {"title": {"type": "string"}})
_PORTION_SCHEMA = strict_schema("lifelog_portion", {"grams": {"type": "number"}, "reasoning": {"type": "string"}})
_ACTIVITY_SCHEMA = strict_schema(
    "lifelog_activity",
    {
        "activity_type": {"type": "string"},
        "duration_minutes": _NULLABLE_NUMBER,
        "distance_km": _NULLABLE_NUMBER,
        "count": _NULLABLE_NUMBER,
    },
)
_MEAL_SCHEMA = strict_schema(
    "lifelog_meal",
    {
        "object": {"type": "string"},
        "meal_quantity": _NULLABLE_STRING,
        "is_menu": {"type": "boolean"},
        "meal_kcal": _NULLABLE_NUMBER,
    },
)
_MONEY_SCHEMA = strict_schema(
    "lifelog_money",
    {"object": {"type": "string"}, "amount": _NULLABLE_NUMBER, "currency": _NULLABLE_STRING},
)
_SCHEDULE_SCHEMA = strict_schema(
    "lifelog_schedule",
    {"object": {"type": "string"}, "day": _NULLABLE_STRING, "time": _NULLABLE_STRING},
)
_WORK_SESSION_SCHEMA = strict_schema("lifelog_work_session", {"object": _NULLABLE_STRING})
_CALORIE_ADJUSTMENT_SCHEMA = strict_schema("lifelog_calorie_adjustment", {"meal_kcal": _NULLABLE_NUMBER})

# intent -> (prompt name, payload model, json schema, prepend current date/time)
_EXTRACTION_SPECS: dict[str, tuple[str, type[BaseModel], dict[str, Any], bool]] = {
    "meal": ("meal", MealFields, _MEAL_SCHEMA, False),
    "expense": ("expense", MoneyFields, _MONEY_SCHEMA, False),
    "income": ("income", MoneyFields, _MONEY_SCHEMA, False),
    "event": ("event", ScheduleFields, _SCHEDULE_SCHEMA, True),
    "reminder": ("reminder", ScheduleFields, _SCHEDULE_SCHEMA, True),
    "work_start": ("work_session", WorkSessionFields, _WORK_SESSION_SCHEMA, False),
    "work_end": ("work_session", WorkSessionFields, _WORK_SESSION_SCHEMA, False),
    "calorie_adjustment": ("calorie_adjustment", CalorieAdjustmentFields, _CALORIE_ADJUSTMENT_SCHEMA, False),
}


def current_datetime_context(now: datetime) -> str:
    return f"Current date and time: {now.strftime('%A, %B %d, %Y at %H:%M')}"


def _validate(model: type[BaseModel], payload: dict[str, Any], label: str) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise LLMError(f"{label} payload failed validation: {exc}") from exc


class IntentClassifier:
    """Maps a line to one intent from ``KNOWN_INTENTS``."""

    def __init__(self, client: LLMClient, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self._client = client
        self._clock = clock

    def classify(self, text: str) -> str:
        user_prompt = f"{current_datetime_context(self._clock())}\nUser input: {text}"
        payload = self._client.complete_json(load_prompt("classify"), user_prompt, json_schema=_INTENT_SCHEMA)
        intent = _validate(_IntentPayload, payload, "Intent").intent.strip().lower()
        return intent or "none"


class IntentExtractor:
    """Per-intent structured field extraction."""

    def __init__(self, client: LLMClient, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self._client = client
        self._clock = clock

    def extract(self, text: str, intent: str) -> BaseModel:
        spec = _EXTRACTION_SPECS.get(intent)
        if spec is None:
            raise LLMError(f"No extraction schema for intent: {intent}")
        prompt_name, model, schema, with_clock = spec
        user_prompt = text
        if with_clock:
            user_prompt = f"{current_datetime_context(self._clock())}\nUser input: {text}"
        payload = self._client.complete_json(load_prompt(prompt_name), user_prompt, json_schema=schema)
        return _validate(model, payload, f"{intent} extraction")


class Translator:
    """Translates non-English lines to English before date/time and title extraction."""

    def __init__(self, client: LLMClient) -> None:
        self._client = client

    def translate_to_english(self, text: str) -> str:
        if is_likely_english(text):
            return text
        payload = self._client.complete_json(load_prompt("translate"), text, json_schema=_TRANSLATION_SCHEMA)
        translated = _validate(_TranslationPayload, payload, "Translation").translation.strip()
        return translated or text


class TitleRefiner:
    def __init__(self, client: LLMClient) -> None:
        self._client = client

    def refine(
        self,
        original_text: str,
        fallback_title: str,
        intent: str,
        day: str | None,
        time: str | None,
    ) -> str:
        context = "\n".join(
            (
                f"intent: {intent}",
                f"fallback_title: {fallback_title.replace('_', ' ')}",
                f"day: {day or 'unknown'}",
                f"time: {time or 'unknown'}",
                f"user_text: {original_text}",
            )
        )
        payload = self._client.complete_json(load_prompt("title"), context, json_schema=_TITLE_SCHEMA)
        return _validate(_TitlePayload, payload, "Title").title


class LLMPortionEstimator:
    def __init__(self, client: LLMClient) -> None:
        self._client = client

    def estimate_grams(self, food: str, quantity: str) -> PortionConversion:
        payload = self._client.complete_json(
            load_prompt("portion"),
            f"Convert: {quantity} {food}",
            json_schema=_PORTION_SCHEMA,
        )
        validated = _validate(_PortionPayload, payload, "Portion")
        return PortionConversion(grams=validated.grams, reasoning=validated.reasoning)


class LLMActivityExtractor:
    def __init__(self, client: LLMClient) -> None:
        self._client = client

    def extract_activity(self, text: str) -> ActivityFields:
        payload = self._client.complete_json(load_prompt("activity"), text, json_schema=_ACTIVITY_SCHEMA)
        validated = _validate(_ActivityPayload, payload, "Activity")
        return ActivityFields(
            activity_type=validated.activity_type.strip().lower(),
            duration_minutes=validated.duration_minutes,
            distance_km=validated.distance_km,
            count=validated.count,
        )


def is_likely_english(text: str) -> bool:
    return _ENGLISH_RE.search(text or "") is not None


def sanitize_title(title: str, fallback: str) -> str:
    """Lowercase and underscore a refined title; reject short output and cap the length."""

    candidate = "_".join(title.strip().lower().split())
    while "__" in candidate:
        candidate = candidate.replace("__", "_")
    if len(candidate) < MIN_TITLE_LENGTH:
        return fallback
    return candidate[:MAX_TITLE_LENGTH]


def extract_with_fallback(extractor: IntentExtractor | None, text: str, intent: str) -> BaseModel:
    """Run extraction; on failure echo the raw text as the object with every other field empty."""

    spec = _EXTRACTION_SPECS.get(intent)
    if extractor is not None:
        try:
            return extractor.extract(text, intent)
        except LLMError as exc:
            logger.warning("extractor.failed intent=%s error=%s", intent, exc)
    if spec is None:
        raise LLMError(f"No extraction schema for intent: {intent}")
    model = spec[1]
    if "object" in model.model_fields:
        return model(object=text)
    return model()


def translate_with_fallback(translator: Translator | None, text: str) -> str:
    if translator is None:
        return text
    try:
        return translator.translate_to_english(text)
    except LLMError as exc:
        logger.warning("translator.failed error=%s", exc)
        return text


def refine_title_with_fallback(
    refiner: TitleRefiner | None,
    original_text: str,
    fallback_title: str,
    intent: str,
    day: str | None,
    time: str | None,
) -> str:
    if refiner is None:
        return sanitize_title(fallback_title, fallback_title)
    try:
        refined = refiner.refine(original_text, fallback_title, intent, day, time)
    except LLMError as exc:
        logger.warning("title_refiner.failed intent=%s error=%s", intent, exc)
        return sanitize_title(fallback_title, fallback_title)
    return sanitize_title(refined, fallback_title)


def describe_payload(model: BaseModel) -> str:
    return json.dumps(model.model_dump(mode="json"), ensure_ascii=False, sort_keys=True)
