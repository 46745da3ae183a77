"""Day-label resolution and absolute date helpers."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_ISO_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def absolute_day_string(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_absolute_label(label: str) -> date | None:
    """Parse a strict ``YYYY-MM-DD`` label."""

    trimmed = (label or "").strip()
    if not _ISO_DAY_RE.match(trimmed):
        return None
    try:
        return date.fromisoformat(trimmed)
    except ValueError:
        return None


def next_weekday(weekday: int, today: date, *, force_following_week: bool = False) -> date:
    """Return the next date falling on ``weekday`` (Monday=0), never ``today`` itself."""

    base = upcoming_weekday_date(weekday, today)
    if force_following_week:
        return base + timedelta(days=7)
    return base


def upcoming_weekday_date(weekday: int, today: date) -> date:
    """Nearest strictly-future occurrence of ``weekday``; a same-day name means next week."""

    days_to_add = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_to_add)


def resolve_day_label(label: str, now: datetime | None = None) -> date | None:
    """Turn a relative or absolute day label into a calendar date."""

    if not label:
        return None
    today = (now or datetime.now()).date()
    absolute = parse_absolute_label(label)
    if absolute is not None:
        return absolute

    normalized = label.strip().lower()
    if normalized == "today":
        return today
    if normalized in ("tomorrow", "yarın", "yarin"):
        return today + timedelta(days=1)
    if normalized in ("haftaya", "next week", "next_week", "gelecek hafta"):
        return today + timedelta(days=7)
    if normalized in WEEKDAYS:
        return upcoming_weekday_date(WEEKDAYS.index(normalized), today)
    if normalized.startswith("weekday_") and normalized[len("weekday_") :] in WEEKDAYS:
        return upcoming_weekday_date(WEEKDAYS.index(normalized[len("weekday_") :]), today)

    forced = next((index for index, name in enumerate(WEEKDAYS) if name in normalized), None)
    if forced is not None and any(marker in normalized for marker in ("next", "haftaya", "coming")):
        return next_weekday(forced, today, force_following_week=True)
    return None


def is_relative_day_label(label: str) -> bool:
    normalized = (label or "").strip().lower()
    if normalized in ("today", "tomorrow") or normalized in WEEKDAYS:
        return True
    for prefix in ("next_", "weekday_"):
        if normalized.startswith(prefix) and normalized[len(prefix) :] in WEEKDAYS:
            return True
    return False
