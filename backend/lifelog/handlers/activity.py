"""Activity items: type, duration, distance and burned calories."""

from __future__ import annotations

import asyncio

from lifelog.handlers.context import HandlerContext
from lifelog.handlers.items import intent_item
from lifelog.nlp.text import capitalize_words
from lifelog.types import ParsedResult, ResultItem


async def handle_activity(result: ParsedResult, text: str, ctx: HandlerContext) -> list[ResultItem]:
    items: list[ResultItem] = []
    head = intent_item(result)
    if head is not None:
        items.append(head)

    if ctx.activity_parser is None:
        return items
    parsed = await asyncio.to_thread(ctx.activity_parser.parse, text)
    if parsed is None:
        return items

    intent_confidence = result.intent.confidence if result.intent else None
    items.append(ResultItem(field="Activity", value=capitalize_words(parsed.activity_type), confidence=intent_confidence))
    if parsed.formatted_duration is not None:
        items.append(
            ResultItem(
                field="Duration",
                value=parsed.formatted_duration,
                confidence=result.duration.confidence if result.duration else None,
            )
        )
    if parsed.formatted_distance is not None:
        items.append(
            ResultItem(
                field="Distance",
                value=parsed.formatted_distance,
                confidence=result.distance.confidence if result.distance else None,
            )
        )

    if parsed.error_message is not None:
        items.append(
            ResultItem(field="Calories Burned", value="Error", is_valid=False, error_message=parsed.error_message)
        )
    elif parsed.calories_burned <= 0:
        items.append(
            ResultItem(
                field="Calories Burned",
                value=parsed.formatted_calories,
                is_valid=False,
                error_message="Unable to calculate calories",
            )
        )
    else:
        items.append(ResultItem(field="Calories Burned", value=parsed.formatted_calories))
    return items
