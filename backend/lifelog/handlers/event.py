"""Event and reminder items: time, subject and day with their placeholders and errors."""

from __future__ import annotations

from lifelog.handlers.confidence import judge_slot
from lifelog.handlers.context import HandlerContext
from lifelog.handlers.formatting import format_day, format_time, is_valid_date, is_valid_time
from lifelog.handlers.items import intent_item, subject_item
from lifelog.types import ParsedResult, ResultItem, Slot, SlotSource

DEFAULT_TIME = "12:00"


async def handle_schedule(result: ParsedResult, text: str, ctx: HandlerContext) -> list[ResultItem]:
    items: list[ResultItem] = []
    intent = result.intent_value
    is_event = intent == "event"
    is_reminder = intent == "reminder"
    threshold = ctx.confidence_threshold
    noon = Slot(DEFAULT_TIME, 1.0, SlotSource.PATTERN)

    head = intent_item(result)
    if head is not None:
        items.append(head)

    if result.reminder_time is not None:
        items.append(_time_item("Reminder Time", result.reminder_time, threshold))
    elif is_reminder and result.reminder_day is not None and result.reminder_time_error is None:
        items.append(_time_item("Reminder Time", noon, threshold))
    if result.reminder_time_error is not None:
        items.append(_error_item("Reminder Time", result.reminder_time_error, "Invalid time"))

    if is_event:
        if result.event_time is not None:
            items.append(_time_item("Event Time", result.event_time, threshold))
        elif result.event_day is not None and result.event_time_error is None:
            items.append(_time_item("Event Time", noon, threshold))
        elif result.event_time_error is None:
            items.append(_placeholder("Event Time", "Missing time", "Please specify a time"))
    if result.event_time_error is not None:
        items.append(_error_item("Event Time", result.event_time_error, "Invalid time"))

    subject = subject_item(result)
    if subject is not None:
        items.append(subject)

    if result.reminder_day is not None and result.reminder_day.value:
        items.append(_day_item("Reminder Day", result.reminder_day, threshold))
    elif is_reminder and result.reminder_time is None and result.reminder_day_error is None:
        items.append(_placeholder("Reminder Day", "Missing date or time", "Please specify a date or time"))
    if result.reminder_day_error is not None:
        items.append(_error_item("Reminder Day", result.reminder_day_error, "Invalid date"))

    if result.event_day is not None and result.event_day.value:
        items.append(_day_item("Event Day", result.event_day, threshold))
    elif is_event and result.event_day_error is None:
        items.append(_placeholder("Event Day", "Missing or invalid date", "Please specify a valid date"))
    if result.event_day_error is not None:
        items.append(_error_item("Event Day", result.event_day_error, "Invalid date"))

    return items


def _time_item(field: str, slot: Slot[str], threshold: float) -> ResultItem:
    is_valid, error = judge_slot(is_valid_time(slot.value), slot.confidence, threshold, "Invalid time format")
    return ResultItem(
        field=field,
        value=format_time(slot.value),
        is_valid=is_valid,
        error_message=error,
        raw_value=slot.value,
        confidence=slot.confidence,
    )


def _day_item(field: str, slot: Slot[str], threshold: float) -> ResultItem:
    is_valid, error = judge_slot(is_valid_date(slot.value), slot.confidence, threshold, "Invalid date format")
    return ResultItem(
        field=field,
        value=format_day(slot.value),
        is_valid=is_valid,
        error_message=error,
        raw_value=slot.value,
        confidence=slot.confidence,
    )


def _error_item(field: str, slot: Slot[str], message: str) -> ResultItem:
    return ResultItem(
        field=field,
        value=slot.value,
        is_valid=False,
        error_message=message,
        raw_value=slot.value,
        confidence=slot.confidence,
    )


def _placeholder(field: str, value: str, message: str) -> ResultItem:
    return ResultItem(field=field, value=value, is_valid=False, error_message=message, confidence=0.0)
