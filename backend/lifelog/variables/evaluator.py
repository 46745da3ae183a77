"""Signed arithmetic over variables and bare quantities ("+salary -rent", "+pizza -5km run")."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from lifelog.nlp.parsing import (
    distance_calorie_coefficient,
    extract_currency,
    extract_first_number,
    extract_grams,
    parse_distance,
)
from lifelog.types import ResultItem, Variable, VariableType
from lifelog.variables.store import clean_object_name, find_variable_by_precedence

logger = logging.getLogger(__name__)

_TERM_RE = re.compile(r"([+-])\s*([^+-]+)")
_QUANTITY_RE = re.compile(
    r"\d+(?:\.\d+)?\s*(?:grams|gram|gr|g|kilograms|kilogram|kg|ounces|ounce|oz|pounds|pound|lbs|lb"
    r"|kilometers|kilometer|km|miles|mile|mi|m)\b",
    re.IGNORECASE,
)
_CALORIE_WORD_RE = re.compile(r"(?<![a-z])(?:kcal|cal|calorie|calories|kalori)\b", re.IGNORECASE)


class TermKind(str, Enum):
    MONEY = "money"
    CALORIES = "calories"


@dataclass(slots=True)
class _Term:
    value: float
    kind: TermKind | None


def evaluate_expression(
    text: str,
    variables: Iterable[Variable],
    base_currency: str,
    weight_kg: float = 70.0,
) -> ResultItem | None:
    """Return one Calories or Amount item, or None when any term cannot be resolved."""

    trimmed = (text or "").strip()
    if "+" not in trimmed and "-" not in trimmed:
        return None
    if not trimmed.startswith(("+", "-")):
        trimmed = "+" + trimmed

    matches = list(_TERM_RE.finditer(trimmed))
    if not matches:
        return None

    snapshot = tuple(variables)
    terms: list[_Term] = []
    currency: str | None = None
    previous_kind: TermKind | None = None

    for match in matches:
        operator = match.group(1)
        raw_term = match.group(2).strip()
        sign = 1.0 if operator == "+" else -1.0
        grams = extract_grams(raw_term)
        distance_km = parse_distance(raw_term)
        clean_term = raw_term
        if grams is not None or distance_km is not None:
            clean_term = _QUANTITY_RE.sub("", clean_term).strip()
        clean_term = clean_object_name(clean_term)

        variable = find_variable_by_precedence(snapshot, clean_term) if clean_term else None
        if variable is not None:
            if variable.type is VariableType.MEAL:
                if variable.calories is None:
                    return None
                calories = variable.calories
                if grams is not None and variable.grams:
                    calories = grams / variable.grams * variable.calories
                terms.append(_Term(sign * calories, TermKind.CALORIES))
                previous_kind = TermKind.CALORIES
            else:
                if variable.amount is None:
                    return None
                currency = currency or variable.currency
                terms.append(_Term(sign * variable.amount, TermKind.MONEY))
                previous_kind = TermKind.MONEY
            continue

        if grams is not None:
            # Unknown food with a weight; the meal handler owns it.
            continue
        if distance_km is not None:
            coefficient = distance_calorie_coefficient(clean_term)
            if coefficient is None:
                continue
            burned = coefficient * weight_kg * distance_km
            terms.append(_Term(-sign * burned, TermKind.CALORIES))
            previous_kind = TermKind.CALORIES
            continue

        value = extract_first_number(raw_term)
        if value is None:
            logger.debug("expression.unresolved term=%s", raw_term)
            return None
        kind: TermKind | None = previous_kind
        if _CALORIE_WORD_RE.search(raw_term):
            kind = TermKind.CALORIES
        else:
            detected = extract_currency(raw_term)
            if detected is not None:
                kind = TermKind.MONEY
                currency = currency or detected
        terms.append(_Term(sign * abs(value), kind))
        if kind is not None:
            previous_kind = kind

    if not terms:
        return None
    kinds = {term.kind for term in terms if term.kind is not None}
    if len(kinds) > 1:
        return None
    final_kind = kinds.pop() if kinds else TermKind.MONEY
    total = sum(term.value for term in terms)

    if final_kind is TermKind.CALORIES:
        return ResultItem(
            field="Calories",
            value=f"{'+' if total >= 0 else ''}{total:.0f} kcal",
            confidence=1.0,
        )
    return ResultItem(
        field="Amount",
        value=f"{'+' if total >= 0 else ''}{total:.2f} {currency or base_currency}",
        confidence=1.0,
    )
