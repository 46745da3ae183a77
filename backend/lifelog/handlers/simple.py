"""Handlers for intents that only echo their slots: work sessions, calorie adjustments, journal, default."""

from __future__ import annotations

from lifelog.handlers.context import HandlerContext
from lifelog.handlers.formatting import format_intent, format_kcal, format_subject, is_valid_time
from lifelog.handlers.items import intent_item, subject_item
from lifelog.types import ParsedResult, ResultItem

MOOD_EMOJIS = ("😢", "😕", "😐", "🙂", "😊")


async def handle_work_session(result: ParsedResult, text: str, ctx: HandlerContext) -> list[ResultItem]:
    """Work start/end lines are stamped with the current time."""

    items: list[ResultItem] = []
    head = intent_item(result)
    if head is not None:
        items.append(head)

    current_time = ctx.clock().strftime("%H:%M")
    is_valid = is_valid_time(current_time)
    items.append(
        ResultItem(
            field="Event Time",
            value=current_time,
            is_valid=is_valid,
            error_message=None if is_valid else "Invalid time format",
            raw_value=current_time,
            confidence=result.intent.confidence if result.intent else None,
        )
    )
    subject = subject_item(result)
    if subject is not None:
        items.append(subject)
    return items


async def handle_calorie_adjustment(result: ParsedResult, text: str, ctx: HandlerContext) -> list[ResultItem]:
    items: list[ResultItem] = []
    head = intent_item(result)
    if head is not None:
        items.append(head)
    if result.meal_kcal is not None:
        items.append(
            ResultItem(
                field="Calories",
                value=format_kcal(result.meal_kcal.value, signed=True),
                confidence=result.meal_kcal.confidence,
            )
        )
    subject = subject_item(result)
    if subject is not None:
        items.append(subject)
    return items


async def handle_journal(result: ParsedResult, text: str, ctx: HandlerContext) -> list[ResultItem]:
    items = [ResultItem(field="Intent", value=format_intent("journal"), confidence=1.0)]

    mood, body = split_mood(text)
    if mood is None and result.mood_emoji is not None:
        mood = result.mood_emoji.value
    if mood is not None:
        items.append(ResultItem(field="Mood", value=mood, raw_value=mood, confidence=1.0))

    if body:
        items.append(ResultItem(field="Subject", value=body, raw_value=body, confidence=1.0))
    elif result.object is not None and result.object.value:
        items.append(
            ResultItem(
                field="Subject",
                value=format_subject(result.object.value),
                raw_value=result.object.value,
                confidence=result.object.confidence,
            )
        )
    return items


async def handle_default(result: ParsedResult, text: str, ctx: HandlerContext) -> list[ResultItem]:
    items: list[ResultItem] = []
    head = intent_item(result)
    if head is not None:
        items.append(head)
    if result.object is not None and result.object.value:
        items.append(
            ResultItem(
                field="Subject",
                value=format_subject(result.object.value),
                confidence=result.object.confidence,
            )
        )
    return items


def split_mood(text: str) -> tuple[str | None, str]:
    """Split a leading mood emoji off a journal line."""

    stripped = (text or "").strip()
    for emoji in MOOD_EMOJIS:
        if stripped.startswith(emoji):
            return emoji, stripped[len(emoji) :].strip()
    return None, stripped
