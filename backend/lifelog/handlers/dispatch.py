"""Intent string to handler mapping."""

from __future__ import annotations

from lifelog.handlers.activity import handle_activity
from lifelog.handlers.context import Handler
from lifelog.handlers.event import handle_schedule
from lifelog.handlers.meal import handle_meal
from lifelog.handlers.money import handle_money
from lifelog.handlers.simple import handle_calorie_adjustment, handle_default, handle_journal, handle_work_session

HANDLERS: dict[str, Handler] = {
    "meal": handle_meal,
    "event": handle_schedule,
    "reminder": handle_schedule,
    "expense": handle_money,
    "income": handle_money,
    "activity": handle_activity,
    "work_start": handle_work_session,
    "work_end": handle_work_session,
    "calorie_adjustment": handle_calorie_adjustment,
    "journal": handle_journal,
}


def handler_for(intent: str | None) -> Handler:
    """Pure lookup; unknown intents get the pass-through handler."""

    return HANDLERS.get((intent or "").strip().lower(), handle_default)
