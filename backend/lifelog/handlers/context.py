"""Collaborators and per-line state shared by every intent handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable

from lifelog.resolvers.activity import ActivityParser
from lifelog.resolvers.calories import CalorieLookup
from lifelog.resolvers.currency import CurrencyConverter
from lifelog.resolvers.portion import PortionEstimator
from lifelog.types import ParsedResult, ResultItem, Variable

DEFAULT_CONFIDENCE_THRESHOLD = 0.6


@dataclass(slots=True)
class HandlerContext:
    """Everything a handler may consult while building items for one line.

    ``variables`` is the snapshot taken when the line started processing; handlers
    never re-read the store.
    """

    base_currency: str = "USD"
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    variables: tuple[Variable, ...] = ()
    converter: CurrencyConverter | None = None
    calorie_lookup: CalorieLookup | None = None
    portion_estimator: PortionEstimator | None = None
    activity_parser: ActivityParser | None = None
    clock: Callable[[], datetime] = field(default=datetime.now)


Handler = Callable[[ParsedResult, str, HandlerContext], Awaitable[list[ResultItem]]]
