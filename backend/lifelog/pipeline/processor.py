"""One edited line in, ordered result items out."""

from __future__ import annotations

import logging
from dataclasses import replace
from time import perf_counter
from typing import Iterable, Protocol

from lifelog.config import get_settings
from lifelog.handlers.context import HandlerContext
from lifelog.handlers.dispatch import handler_for
from lifelog.handlers.formatting import format_intent
from lifelog.llm.client import get_default_llm_client
from lifelog.llm.collaborators import LLMPortionEstimator
from lifelog.nlp.text import capitalize_words
from lifelog.pipeline.orchestrator import LineOrchestrator, get_default_orchestrator
from lifelog.resolvers.calories import get_default_calorie_lookup
from lifelog.resolvers.currency import get_default_currency_converter
from lifelog.types import ResultItem, Variable
from lifelog.variables.evaluator import evaluate_expression

logger = logging.getLogger(__name__)


class VariableSnapshotSource(Protocol):
    def snapshot(self) -> Iterable[Variable]:
        """Return every stored variable as of now."""


class LineProcessor:
    """Evaluates expressions first, otherwise parses and dispatches to the intent handler."""

    def __init__(
        self,
        orchestrator: LineOrchestrator,
        context: HandlerContext,
        *,
        variable_source: VariableSnapshotSource | None = None,
        weight_kg: float = 70.0,
    ) -> None:
        self._orchestrator = orchestrator
        self._context = context
        self._variable_source = variable_source
        self._weight_kg = weight_kg

    async def process_line(self, text: str) -> list[ResultItem]:
        total_started = perf_counter()
        path = "empty"
        intent: str | None = None
        items: list[ResultItem] = []
        try:
            trimmed = (text or "").strip()
            if trimmed:
                ctx = replace(self._context, variables=self._snapshot())
                expression = evaluate_expression(trimmed, ctx.variables, ctx.base_currency, self._weight_kg)
                if expression is not None:
                    path = "expression"
                    intent = expression_intent(expression)
                    items = expression_items(trimmed, intent, expression)
                else:
                    path = "parse"
                    outcome = await self._orchestrator.parse(trimmed, ctx.variables)
                    intent = outcome.result.intent_value
                    if intent and intent != "none":
                        items = await handler_for(intent)(outcome.result, trimmed, ctx)
        except Exception:
            logger.exception(
                "line_processor.failed path=%s elapsed_ms=%.2f",
                path,
                (perf_counter() - total_started) * 1000.0,
            )
            intent, items = "none", []

        logger.info(
            "line_processor.timing path=%s intent=%s items=%d total_ms=%.2f",
            path,
            intent,
            len(items),
            (perf_counter() - total_started) * 1000.0,
        )
        return items

    def _snapshot(self) -> tuple[Variable, ...]:
        if self._variable_source is None:
            return tuple(self._context.variables)
        return tuple(self._variable_source.snapshot())


def expression_intent(item: ResultItem) -> str:
    if item.field == "Calories":
        return "calorie_adjustment"
    return "expense" if item.value.startswith("-") else "income"


def expression_items(text: str, intent: str, expression: ResultItem) -> list[ResultItem]:
    subject = " ".join(text.replace("+", " ").replace("-", " ").split())
    return [
        ResultItem(field="Intent", value=format_intent(intent), confidence=1.0),
        ResultItem(field="Subject", value=capitalize_words(subject), raw_value=subject.lower(), confidence=1.0),
        expression,
    ]


def get_default_line_processor() -> LineProcessor:
    """Wire the processor from settings and the local database."""

    from lifelog.db.session import SessionLocal, init_db
    from lifelog.variables.store import VariableStore

    settings = get_settings()
    init_db()
    orchestrator = get_default_orchestrator()
    client = get_default_llm_client()
    context = HandlerContext(
        base_currency=settings.base_currency,
        confidence_threshold=settings.confidence_threshold,
        converter=get_default_currency_converter(),
        calorie_lookup=get_default_calorie_lookup(),
        portion_estimator=LLMPortionEstimator(client) if client is not None else None,
        activity_parser=orchestrator.activity_parser,
    )
    return LineProcessor(
        orchestrator,
        context,
        variable_source=VariableStore(SessionLocal),
        weight_kg=settings.profile_weight_kg or settings.default_activity_weight_kg,
    )
