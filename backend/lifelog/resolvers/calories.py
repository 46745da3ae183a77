"""Calorie lookup against USDA FoodData Central."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import parse as urllib_parse
from urllib import request as urllib_request

from pydantic import BaseModel, Field, ValidationError

from lifelog.config import get_settings
from lifelog.nlp.text import capitalize_words
from lifelog.types import CalorieSource

logger = logging.getLogger(__name__)

ENERGY_KCAL_NUTRIENT_ID = 1008
_FOOD_DETAILS_URL = "https://fdc.nal.usda.gov/fdc-app.html#/food-details/{fdc_id}/nutrients"


class CalorieLookupError(RuntimeError):
    """Raised when the food database request fails or returns an unusable payload."""


@dataclass(frozen=True, slots=True)
class CalorieEstimate:
    calories: float
    sources: list[CalorieSource]


class CalorieLookup(Protocol):
    """Resolves a food name to a calorie figure with provenance."""

    def calories_for(self, food: str, *, quantity: float = 1.0, grams: float | None = None) -> CalorieEstimate | None:
        """Return calories for ``grams`` of ``food``, or for ``quantity`` default units."""


class _Nutrient(BaseModel):
    nutrientId: int
    value: float = 0.0


class _Food(BaseModel):
    fdcId: int
    description: str
    foodNutrients: list[_Nutrient] = Field(default_factory=list)

    @property
    def kcal_per_100g(self) -> float | None:
        return next((n.value for n in self.foodNutrients if n.nutrientId == ENERGY_KCAL_NUTRIENT_ID), None)


class _SearchResponse(BaseModel):
    foods: list[_Food] = Field(default_factory=list)


@dataclass(slots=True)
class USDACalorieLookup:
    """FoodData Central ``/foods/search`` client using stdlib HTTP."""

    api_key: str = "DEMO_KEY"
    base_url: str = "https://api.nal.usda.gov/fdc/v1"
    timeout_seconds: int = 10
    page_size: int = 5

    def search(self, query: str) -> list[_Food]:
        params = urllib_parse.urlencode(
            {
                "api_key": self.api_key,
                "query": query,
                "pageSize": str(self.page_size),
                "dataType": "Foundation,SR Legacy,Branded",
            }
        )
        url = f"{self.base_url.rstrip('/')}/foods/search?{params}"
        req = urllib_request.Request(url=url, method="GET")
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            raise CalorieLookupError(f"USDA HTTP {exc.code}") from exc
        except urllib_error.URLError as exc:
            raise CalorieLookupError(f"USDA request failed: {exc.reason}") from exc

        try:
            payload: Any = json.loads(raw)
            return _SearchResponse.model_validate(payload).foods
        except (json.JSONDecodeError, ValidationError) as exc:
            raise CalorieLookupError("USDA returned an unexpected or non-JSON response") from exc

    def calories_for(self, food: str, *, quantity: float = 1.0, grams: float | None = None) -> CalorieEstimate | None:
        foods = self.search(food)
        if not foods:
            return None
        best = foods[0]
        per_100g = best.kcal_per_100g
        if per_100g is None:
            return None

        name = capitalize_words(best.description)
        if grams is not None:
            calories = per_100g / 100.0 * grams
        else:
            # One unit is assumed to weigh 100g.
            calories = per_100g * quantity
            name += " (100g est.)"
        if calories <= 0:
            return None

        logger.debug("calories.lookup food=%s fdc_id=%s name=%s", food, best.fdcId, name)
        source = CalorieSource(
            name=name,
            calories=calories,
            url=_FOOD_DETAILS_URL.format(fdc_id=best.fdcId),
        )
        return CalorieEstimate(calories=calories, sources=[source])


def lookup_calories_with_fallback(
    lookup: CalorieLookup | None,
    food: str,
    *,
    quantity: float = 1.0,
    grams: float | None = None,
) -> CalorieEstimate | None:
    """Return None instead of raising when the lookup is unavailable."""

    if lookup is None or not food.strip():
        return None
    try:
        return lookup.calories_for(food, quantity=quantity, grams=grams)
    except CalorieLookupError as exc:
        logger.warning("calories.lookup_failed food=%s error=%s", food, exc)
        return None


def get_default_calorie_lookup() -> USDACalorieLookup:
    settings = get_settings()
    return USDACalorieLookup(
        api_key=settings.usda_api_key,
        base_url=settings.usda_api_url,
        timeout_seconds=settings.http_timeout_seconds,
    )
