"""Display formatting and shape validation for result item values."""

from __future__ import annotations

import re

from lifelog.nlp.dates import WEEKDAYS, is_relative_day_label, parse_absolute_label
from lifelog.nlp.parsing import VALID_CURRENCY_CODES
from lifelog.nlp.text import humanize_slug

INTENT_LABELS = {
    "reminder": "Reminder",
    "event": "Event",
    "expense": "Expense",
    "income": "Income",
    "activity": "Activity",
    "meal": "Meal",
    "work_start": "Work Start",
    "work_end": "Work End",
    "journal": "Journal",
    "calorie_adjustment": "Calorie Adjustment",
}

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{1,2})$")


def format_intent(intent: str) -> str:
    return INTENT_LABELS.get(intent.lower(), intent.replace("_", " ").title())


def format_subject(value: str) -> str:
    return humanize_slug(value)


def format_time(value: str) -> str:
    """``H:M`` becomes zero-padded ``HH:MM``; anything else is returned unchanged."""

    match = _TIME_RE.match((value or "").strip())
    if match is None:
        return value
    return f"{int(match.group(1)):02d}:{int(match.group(2)):02d}"


def format_day(label: str) -> str:
    absolute = parse_absolute_label(label)
    if absolute is not None:
        return f"{absolute:%b} {absolute.day}, {absolute.year}"
    normalized = (label or "").strip().lower()
    if normalized in ("today", "tomorrow"):
        return normalized
    if normalized.startswith("next_") and normalized[len("next_") :] in WEEKDAYS:
        return f"next {normalized[len('next_') :].capitalize()}"
    if normalized.startswith("weekday_") and normalized[len("weekday_") :] in WEEKDAYS:
        return normalized[len("weekday_") :].capitalize()
    if normalized in WEEKDAYS:
        return normalized.capitalize()
    return label


def format_signed_amount(amount: float, currency: str | None = None, *, sign: str | None = None) -> str:
    """``-12.50 USD``; the sign defaults to the sign of ``amount``."""

    if sign is None:
        sign = "+" if amount >= 0 else "-"
    formatted = f"{sign}{abs(amount):.2f}"
    return f"{formatted} {currency}" if currency else formatted


def format_kcal(calories: float, *, signed: bool = False) -> str:
    if signed and calories >= 0:
        return f"+{calories:.0f} kcal"
    return f"{calories:.0f} kcal"


def is_valid_time(value: str | None) -> bool:
    match = _TIME_RE.match((value or "").strip())
    if match is None:
        return False
    return 0 <= int(match.group(1)) <= 23 and 0 <= int(match.group(2)) <= 59


def is_valid_date(value: str | None) -> bool:
    if not value:
        return False
    return parse_absolute_label(value) is not None or is_relative_day_label(value)


def is_valid_currency(code: str | None) -> bool:
    return (code or "").strip().upper() in VALID_CURRENCY_CODES


def is_valid_amount(amount: float | None) -> bool:
    return amount is not None and amount != 0
