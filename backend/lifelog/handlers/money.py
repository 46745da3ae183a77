"""Expense and income items, with variable short-circuit and base-currency conversion."""

from __future__ import annotations

import asyncio
import logging

from lifelog.handlers.confidence import judge_slot
from lifelog.handlers.context import HandlerContext
from lifelog.handlers.formatting import format_signed_amount, format_subject, is_valid_amount, is_valid_currency
from lifelog.handlers.items import intent_item
from lifelog.types import ParsedResult, ResultItem, Slot, VariableType
from lifelog.variables.store import find_variable

logger = logging.getLogger(__name__)

CONVERSION_FAILED_MESSAGE = "Failed to convert currency. Please check your internet connection."
_VARIABLE_TYPES = {"expense": VariableType.EXPENSE, "income": VariableType.INCOME}


async def handle_money(result: ParsedResult, text: str, ctx: HandlerContext) -> list[ResultItem]:
    items: list[ResultItem] = []
    intent = result.intent_value
    threshold = ctx.confidence_threshold

    head = intent_item(result)
    if head is not None:
        items.append(head)

    if result.object is not None and result.object.value:
        items.append(
            ResultItem(
                field="Subject",
                value=format_subject(result.object.value),
                raw_value=result.object.value,
                confidence=result.object.confidence,
            )
        )

    currency = result.currency.value.upper() if result.currency and result.currency.value else None
    if result.currency is not None and currency:
        is_valid, error = judge_slot(
            is_valid_currency(currency), result.currency.confidence, threshold, "Invalid currency code"
        )
        items.append(
            ResultItem(
                field="Currency",
                value=currency,
                is_valid=is_valid,
                error_message=error,
                confidence=result.currency.confidence,
            )
        )

    if intent in _VARIABLE_TYPES and result.object is not None:
        variable_item = _variable_amount_item(result.object.value, intent, currency, ctx)
        if variable_item is not None:
            items.append(variable_item)
            return items

    if result.amount is not None:
        items.append(await _amount_item(result.amount, intent, currency, ctx))
    return items


def _variable_amount_item(
    object_name: str,
    intent: str,
    currency: str | None,
    ctx: HandlerContext,
) -> ResultItem | None:
    variable = find_variable(ctx.variables, object_name, _VARIABLE_TYPES[intent])
    if variable is None or variable.amount is None:
        return None
    amount = abs(variable.amount)
    sign = "-" if intent == "expense" else "+"
    return ResultItem(
        field="Amount",
        value=format_signed_amount(amount, variable.currency or currency or ctx.base_currency, sign=sign),
        is_valid=amount != 0,
        error_message=None if amount != 0 else "Amount cannot be zero",
    )


async def _amount_item(
    amount: Slot[float],
    intent: str | None,
    currency: str | None,
    ctx: HandlerContext,
) -> ResultItem:
    is_valid, error = judge_slot(
        is_valid_amount(amount.value), amount.confidence, ctx.confidence_threshold, "Amount cannot be zero"
    )
    if intent == "expense":
        sign = "-"
    elif intent == "income":
        sign = "+"
    else:
        sign = "+" if amount.value >= 0 else "-"
    magnitude = abs(amount.value)

    if not currency:
        return ResultItem(
            field="Amount",
            value=format_signed_amount(magnitude, sign=sign),
            is_valid=is_valid,
            error_message=error,
            confidence=amount.confidence,
        )

    original = format_signed_amount(magnitude, currency, sign=sign)
    base_currency = ctx.base_currency.upper()
    if currency == base_currency:
        return ResultItem(
            field="Amount",
            value=original,
            is_valid=is_valid,
            error_message=error,
            confidence=amount.confidence,
        )

    converted = None
    if ctx.converter is not None:
        converted = await asyncio.to_thread(ctx.converter.convert, magnitude, currency, base_currency)
    if converted is None:
        logger.warning("money.conversion_unavailable from=%s to=%s", currency, base_currency)
        return ResultItem(
            field="Amount",
            value=original,
            is_valid=False,
            error_message=CONVERSION_FAILED_MESSAGE,
            raw_value=original,
            confidence=amount.confidence,
        )
    return ResultItem(
        field="Amount",
        value=format_signed_amount(converted, base_currency, sign=sign),
        is_valid=is_valid,
        error_message=error,
        raw_value=original,
        confidence=amount.confidence,
    )
