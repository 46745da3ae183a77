"""Canonical subject slug extraction for event and reminder lines."""

from __future__ import annotations

import re

from lifelog.nlp.datetime_sanitizer import strip_datetime_fragments
from lifelog.nlp.text import condense_whitespace, fold_text, slugify, strip_links

COMMAND_PREFIXES: tuple[str, ...] = (
    "please remind me to",
    "please remind me",
    "remind me to",
    "remind me",
    "remember to",
    "remember that",
    "set a reminder for",
    "create a reminder for",
    "create reminder for",
    "add reminder for",
    "create an event for",
    "create event for",
    "schedule an event for",
    "schedule",
    "note to",
    "bana hatırlat",
    "beni hatırlat",
    "hatırlat bana",
    "lütfen hatırlat",
    "hatırlat",
    "recuérdame",
    "recordarme",
    "ponme un recordatorio",
    "crea un recordatorio",
    "créame un evento",
    "agrega un recordatorio",
    "agendar",
    "agenda",
    "lembra-me de",
    "lembre-me de",
    "me lembra de",
    "adiciona um lembrete",
    "cria um evento",
    "bitte erinnere mich",
    "erinnere mich",
    "termin erstellen",
    "rappelle-moi",
    "rappelle moi",
    "crée un rappel",
    "planifie",
    "ricordami",
    "imposta un promemoria",
    "crea un evento",
)
_FOLDED_PREFIXES = tuple(fold_text(prefix) for prefix in COMMAND_PREFIXES)
_PREFIX_TRIM_CHARS = " \t\n\r:-–—,;"

_TRAILING_COURTESY_RE = re.compile(
    r"(?:[,\s]*(?:please|thanks|thank you|teşekkürler|lütfen|por favor|gracias|merci|danke|obrigado|grazie))+\s*$",
    re.IGNORECASE,
)
_BRACKETS_RE = re.compile(r"[\[\]{}()]+")
_QUOTES_RE = re.compile(r"[\"“”„«»‚'‘’]+")
_TERMINAL_PUNCT_RE = re.compile(r"[,.;!?]+")


def extract_object(
    original_text: str,
    fallback: str | None = None,
    parsed_day: str | None = None,
    parsed_time: str | None = None,
) -> str:
    """Return a canonical slug for the subject of ``original_text``; never empty for non-empty input."""

    working = strip_links(original_text or "")
    working = strip_datetime_fragments(working)
    working = _remove_day_label(working, parsed_day)
    working = _remove_time_label(working, parsed_time)
    working = strip_command_prefixes(working)
    working = strip_trailing_courtesy(working)
    working = _BRACKETS_RE.sub(" ", working)
    working = _QUOTES_RE.sub(" ", working)
    working = _TERMINAL_PUNCT_RE.sub(" ", working)
    slug = slugify(condense_whitespace(working))
    if slug:
        return slug
    if fallback:
        fallback_slug = slugify(fallback)
        if fallback_slug:
            return fallback_slug
    return slugify(original_text or "")


def strip_command_prefixes(text: str) -> str:
    """Repeatedly remove leading command phrases ("remind me to", "hatırlat", ...)."""

    working = text.strip()
    changed = True
    while changed and working:
        changed = False
        folded = fold_text(working)
        for prefix in _FOLDED_PREFIXES:
            if not folded.startswith(prefix):
                continue
            following = folded[len(prefix) : len(prefix) + 1]
            if following.isalnum():
                continue
            working = working[len(prefix) :].strip(_PREFIX_TRIM_CHARS)
            changed = True
            break
    return working


def strip_trailing_courtesy(text: str) -> str:
    return _TRAILING_COURTESY_RE.sub("", text).strip()


def _remove_day_label(text: str, day: str | None) -> str:
    if not day:
        return text
    return re.sub(r"\b" + re.escape(day) + r"\b", " ", text, flags=re.IGNORECASE)


def _remove_time_label(text: str, time_label: str | None) -> str:
    if not time_label:
        return text
    for variant in time_variants(time_label):
        text = re.sub(r"\b" + re.escape(variant) + r"\b", " ", text, flags=re.IGNORECASE)
    return text


def time_variants(time_label: str) -> list[str]:
    """Spellings of an ``HH:MM`` time that may appear in free text, longest first."""

    parts = time_label.split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        return [time_label]
    hour, minute = int(parts[0]), int(parts[1])
    variants = {
        time_label,
        f"{hour:02d}:{minute:02d}",
        f"{hour}:{minute:02d}",
        f"{hour:02d}.{minute:02d}",
        f"{hour}.{minute:02d}",
        f"{hour:02d}",
        f"{hour}",
    }
    return sorted(variants, key=len, reverse=True)
