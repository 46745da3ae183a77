"""Result items shared across intents."""

from __future__ import annotations

from lifelog.handlers.formatting import format_intent, format_subject
from lifelog.types import ParsedResult, ResultItem

MULTI_SUBJECT_SEPARATOR = "_+_"


def intent_item(result: ParsedResult) -> ResultItem | None:
    if result.intent is None:
        return None
    return ResultItem(
        field="Intent",
        value=format_intent(result.intent.value),
        confidence=result.intent.confidence,
    )


def subject_item(result: ParsedResult) -> ResultItem | None:
    """Humanized object; ``a_+_b`` objects are shown as "A + B"."""

    if result.object is None or not result.object.value:
        return None
    raw = result.object.value
    parts = split_subjects(raw)
    return ResultItem(
        field="Subject",
        value=" + ".join(format_subject(part) for part in parts),
        raw_value=raw,
        confidence=result.object.confidence,
    )


def split_subjects(value: str) -> list[str]:
    if MULTI_SUBJECT_SEPARATOR not in value:
        return [value]
    return [part for part in value.split(MULTI_SUBJECT_SEPARATOR) if part.strip("_ ")]
