"""Single confidence policy used by every handler."""

from __future__ import annotations

from enum import Enum

LOW_CONFIDENCE_MESSAGE = "Low confidence prediction"


class ConfidenceLevel(str, Enum):
    TRUSTED = "trusted"
    LOW_CONFIDENCE = "low_confidence"


def classify_confidence(confidence: float | None, threshold: float) -> ConfidenceLevel:
    """Slots without a confidence (pattern or manual values) are trusted."""

    if confidence is None or confidence >= threshold:
        return ConfidenceLevel.TRUSTED
    return ConfidenceLevel.LOW_CONFIDENCE


def judge_slot(
    format_ok: bool,
    confidence: float | None,
    threshold: float,
    invalid_message: str,
) -> tuple[bool, str | None]:
    """Combine a format check with the confidence policy into ``(is_valid, error_message)``.

    Low confidence takes precedence over a format failure so the two messages stay distinct.
    """

    if classify_confidence(confidence, threshold) is ConfidenceLevel.LOW_CONFIDENCE:
        return False, LOW_CONFIDENCE_MESSAGE
    if not format_ok:
        return False, invalid_message
    return True, None
