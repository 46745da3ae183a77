"""Typed parse outputs independent of persistence."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class SlotSource(str, Enum):
    """Where a slot value came from."""

    PATTERN = "pattern"
    MODEL = "model"
    MANUAL = "manual"


@dataclass(frozen=True, slots=True)
class Slot(Generic[T]):
    """Extracted value with optional confidence and provenance."""

    value: T
    confidence: float | None = None
    source: SlotSource = SlotSource.MODEL


@dataclass(slots=True)
class ParsedResult:
    """Slots extracted from one line of text, keyed by field name."""

    intent: Slot[str] | None = None
    object: Slot[str] | None = None
    reminder_day: Slot[str] | None = None
    reminder_time: Slot[str] | None = None
    reminder_day_error: Slot[str] | None = None
    reminder_time_error: Slot[str] | None = None
    event_day: Slot[str] | None = None
    event_time: Slot[str] | None = None
    event_day_error: Slot[str] | None = None
    event_time_error: Slot[str] | None = None
    currency: Slot[str] | None = None
    amount: Slot[float] | None = None
    duration: Slot[float] | None = None
    distance: Slot[float] | None = None
    meal_quantity: Slot[str] | None = None
    meal_kcal: Slot[float] | None = None
    is_menu: Slot[bool] | None = None
    mood_emoji: Slot[str] | None = None
    location: Slot[str] | None = None
    url: Slot[str] | None = None

    @property
    def intent_value(self) -> str | None:
        return self.intent.value if self.intent else None


@dataclass(frozen=True, slots=True)
class SanitizedDateTime:
    """Resolved day label and 24-hour time, or the raw token that failed to parse."""

    day: str | None = None
    time: str | None = None
    invalid_day_input: str | None = None
    invalid_time_input: str | None = None


@dataclass(slots=True)
class ResultItem:
    """Display-ready, validated output row."""

    field: str
    value: str
    is_valid: bool = True
    error_message: str | None = None
    raw_value: str | None = None
    confidence: float | None = None


@dataclass(frozen=True, slots=True)
class CalorieSource:
    """Provenance of a calorie figure."""

    name: str
    calories: float
    url: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "url": self.url, "calories": self.calories}


class VariableType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    MEAL = "meal"


@dataclass(frozen=True, slots=True)
class Variable:
    """Immutable view of a user-defined named quantity."""

    id: int
    name: str
    type: VariableType
    raw_value: str
    currency: str | None = None
    amount: float | None = None
    calories: float | None = None
    grams: float | None = None

    @property
    def is_money(self) -> bool:
        return self.type in (VariableType.EXPENSE, VariableType.INCOME)
