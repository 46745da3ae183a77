"""Portion description to grams conversion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from lifelog.llm.client import LLMError
from lifelog.nlp.parsing import extract_grams

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PortionConversion:
    grams: float
    reasoning: str


class PortionEstimator(Protocol):
    """Estimates the weight of a described portion ("1 dilim", "2 cups") of a food."""

    def estimate_grams(self, food: str, quantity: str) -> PortionConversion:
        """Return the estimated grams and a short reasoning."""


def convert_to_grams(food: str, quantity: str, estimator: PortionEstimator | None) -> PortionConversion | None:
    """Parse explicit weights directly, otherwise ask the estimator; None when neither works."""

    explicit = extract_grams(quantity)
    if explicit is not None:
        return PortionConversion(grams=explicit, reasoning="explicit gram value")
    if estimator is None or not quantity.strip():
        return None
    try:
        return estimator.estimate_grams(food, quantity)
    except LLMError as exc:
        logger.warning("portion.estimate_failed food=%s quantity=%s error=%s", food, quantity, exc)
        return None
