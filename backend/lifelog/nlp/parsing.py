"""Lightweight numeric, unit and currency extraction from free text."""

from __future__ import annotations

import re
from dataclasses import dataclass

VALID_CURRENCY_CODES = ("USD", "EUR", "TRY", "GBP", "JPY", "CNY", "CAD", "AUD")

_FIRST_NUMBER_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
_GRAMS_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(grams|gram|gr|g|kilograms|kilogram|kg|ounces|ounce|oz|pounds|pound|lbs|lb)\b",
    re.IGNORECASE,
)
_CURRENCY_CODE_RE = re.compile(r"\b([a-z]{3})\b")
_CALORIE_UNIT_RE = re.compile(r"\b(?:kcal|cal|calorie|calories)\b")
_CALORIE_TOKEN_RE = re.compile(r"([+-]?)\s*(\d+(?:\.\d+)?)\s*(?:calories|calorie|kcal|cal)?", re.IGNORECASE)
_CURRENCY_TOKEN_RE = re.compile(r"([+-]?)\s*(\d+(?:\.\d+)?)\s*([a-z]{3}|usd|eur|try|gbp|tl|\$|€|₺|£)", re.IGNORECASE)
_DISTANCE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(kilometers|kilometer|km|miles|mile|mi)\b", re.IGNORECASE)

MILES_PER_KM = 0.621371

_DISTANCE_COEFFICIENTS: tuple[tuple[tuple[str, ...], float], ...] = (
    (("run", "jog", "koş", "kos"), 1.03),
    (("walk", "yürü", "yuru"), 0.5),
    (("cycl", "bike", "bisiklet"), 0.35),
)


@dataclass(frozen=True, slots=True)
class CurrencyAdjustment:
    net: float
    currency: str


def extract_first_number(text: str) -> float | None:
    """Return the first signed number, accepting "," as the decimal separator."""

    match = _FIRST_NUMBER_RE.search(text or "")
    if match is None:
        return None
    return float(match.group(0).replace(",", "."))


def extract_grams(text: str) -> float | None:
    """Return an explicit weight in grams (g, kg, oz, lb)."""

    match = _GRAMS_RE.search(text or "")
    if match is None:
        return None
    value = float(match.group(1))
    unit = match.group(2).lower()
    if unit.startswith("k"):
        return value * 1000.0
    if unit == "oz" or "ounce" in unit:
        return value * 28.3495
    if unit in ("lb", "lbs") or "pound" in unit:
        return value * 453.592
    return value


def extract_currency(text: str) -> str | None:
    lowered = (text or "").lower()
    if "$" in lowered or "usd" in lowered or "dollar" in lowered:
        return "USD"
    if "€" in lowered or "eur" in lowered or "euro" in lowered:
        return "EUR"
    if "₺" in lowered or "try" in lowered or "lira" in lowered:
        return "TRY"
    if "£" in lowered or "gbp" in lowered or "pound" in lowered:
        return "GBP"
    for match in _CURRENCY_CODE_RE.finditer(lowered):
        code = match.group(1).upper()
        if code in VALID_CURRENCY_CODES:
            return code
    return None


def normalize_currency_code(token: str) -> str | None:
    """Map a symbol or alias to an ISO code."""

    upper = (token or "").strip().upper()
    if not upper:
        return None
    symbols = {"$": "USD", "US$": "USD", "€": "EUR", "£": "GBP", "₺": "TRY", "TL": "TRY", "YTL": "TRY"}
    if upper in symbols:
        return symbols[upper]
    if len(upper) == 3 and upper.isalpha():
        return upper
    return None


def net_calorie_adjustment(text: str) -> float | None:
    """Sum a pure signed-calorie expression such as "+200 kcal - 50"."""

    lowered = (text or "").lower()
    if not _CALORIE_UNIT_RE.search(lowered):
        return None
    matches = list(_CALORIE_TOKEN_RE.finditer(lowered))
    if not matches:
        return None
    total = 0.0
    for match in matches:
        multiplier = -1.0 if "-" in match.group(1) else 1.0
        total += multiplier * float(match.group(2))
    if _CALORIE_TOKEN_RE.sub(" ", lowered).strip():
        return None
    return total


def net_currency_adjustment(text: str) -> CurrencyAdjustment | None:
    """Sum a pure signed-money expression in one currency such as "+200 try - 100 try"."""

    lowered = (text or "").lower()
    components: list[tuple[float, str]] = []
    for match in _CURRENCY_TOKEN_RE.finditer(lowered):
        currency = normalize_currency_code(match.group(3))
        if currency is None:
            continue
        multiplier = -1.0 if "-" in match.group(1) else 1.0
        components.append((multiplier * float(match.group(2)), currency))
    if not components:
        return None
    first_currency = components[0][1]
    if any(currency != first_currency for _, currency in components):
        return None
    if _CURRENCY_TOKEN_RE.sub(" ", lowered).strip():
        return None
    return CurrencyAdjustment(net=sum(amount for amount, _ in components), currency=first_currency)


def parse_distance(text: str) -> float | None:
    """Return a distance in kilometers."""

    match = _DISTANCE_RE.search(text or "")
    if match is None:
        return None
    value = float(match.group(1))
    unit = match.group(2).lower()
    if unit.startswith("mi"):
        return value / MILES_PER_KM
    return value


def distance_calorie_coefficient(activity_text: str) -> float | None:
    """kcal per kg per km for distance-based activities, or None when unrecognized."""

    lowered = (activity_text or "").lower()
    for needles, coefficient in _DISTANCE_COEFFICIENTS:
        if any(needle in lowered for needle in needles):
            return coefficient
    return None


def is_valid_text(text: str) -> bool:
    """Reject gibberish lines before any parsing work."""

    trimmed = (text or "").strip()
    if len(trimmed) < 3:
        return False
    chars = trimmed.lower()
    if len(set(chars)) == 1:
        return False
    if len(chars) >= 6:
        half = len(chars) // 2
        if chars[:half] == chars[half:]:
            return False
    meaningful = sum(1 for ch in trimmed if ch.isalnum() or ch.isspace())
    if meaningful < int(len(trimmed) * 0.5):
        return False
    # Digit runs such as "10000" are allowed.
    run_length = 1
    for previous, current in zip(chars, chars[1:]):
        run_length = run_length + 1 if current == previous and not current.isdigit() else 1
        if run_length >= 4:
            return False
    return True
