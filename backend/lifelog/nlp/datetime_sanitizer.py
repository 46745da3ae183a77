"""Deterministic multilingual day/time detection for free-text lines."""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from lifelog.nlp.dates import (
    WEEKDAYS,
    absolute_day_string,
    parse_absolute_label,
    resolve_day_label,
    upcoming_weekday_date,
)
from lifelog.nlp.parsing import extract_first_number
from lifelog.nlp.text import condense_whitespace, fold_text
from lifelog.types import SanitizedDateTime


class TimePeriod(str, Enum):
    AM = "am"
    PM = "pm"
    NOON = "noon"
    MIDNIGHT = "midnight"


class RelativeUnit(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(slots=True)
class _Detection:
    value: str | None = None
    invalid_input: str | None = None

    @property
    def found(self) -> bool:
        return self.value is not None or self.invalid_input is not None


@dataclass(slots=True)
class _DateDetection:
    value: date | None = None
    invalid_input: str | None = None


_PM_KEYWORDS = (
    "aksam", "evening", "night", "gece", "soir", "abend", "tarde", "noite",
    "vespre", "afternoon", "ogleden", "ogleden sonra", "pm", "p.m",
)
_AM_KEYWORDS = ("sabah", "morning", "manha", "matin", "manana", "dawn", "am", "a.m")
_NOON_KEYWORDS = ("noon", "oglen", "midday", "mediodia")
_MIDNIGHT_KEYWORDS = ("midnight", "gece_yarisi", "gece yarisi", "geceyarisi")
_LETTER_BOUNDED = {"am", "pm", "a.m", "p.m"}

_STANDALONE_TIMES = (
    (("sabah", "morning", "matin", "manha", "manana"), "08:00"),
    (("aksam", "evening", "bu aksam", "tonight", "soir", "abend", "tarde", "noite"), "20:00"),
    (("gece", "night", "midnight", "nuit", "nacht", "gece yarisi"), "00:00"),
    (("oglen", "noon", "midday", "midi", "mediodia"), "12:00"),
)

_WEEKDAY_ALIASES: dict[str, str] = {
    "monday": "monday", "mon": "monday", "pazartesi": "monday", "lunes": "monday",
    "lundi": "monday", "montag": "monday", "lunedi": "monday",
    "tuesday": "tuesday", "tue": "tuesday", "tues": "tuesday", "sali": "tuesday", "salı": "tuesday",
    "martes": "tuesday", "mardi": "tuesday", "dienstag": "tuesday", "martedi": "tuesday",
    "wednesday": "wednesday", "wed": "wednesday", "carsamba": "wednesday", "çarşamba": "wednesday",
    "miercoles": "wednesday", "miércoles": "wednesday", "mercredi": "wednesday",
    "mittwoch": "wednesday", "mercoledi": "wednesday",
    "thursday": "thursday", "thu": "thursday", "thur": "thursday", "thurs": "thursday",
    "persembe": "thursday", "perşembe": "thursday", "jueves": "thursday", "jeudi": "thursday",
    "donnerstag": "thursday", "giovedi": "thursday",
    "friday": "friday", "fri": "friday", "cuma": "friday", "viernes": "friday",
    "vendredi": "friday", "freitag": "friday", "venerdi": "friday",
    "saturday": "saturday", "sat": "saturday", "cumartesi": "saturday", "sabado": "saturday",
    "sábado": "saturday", "samedi": "saturday", "samstag": "saturday", "sabato": "saturday",
    "sunday": "sunday", "sun": "sunday", "pazar": "sunday", "domingo": "sunday",
    "dimanche": "sunday", "sonntag": "sunday", "domenica": "sunday",
}

# Ordered: the first keyword found wins.
_RELATIVE_DAY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("next week", "next_monday"),
    ("haftaya", "next_monday"),
    ("today", "today"),
    ("tonight", "today"),
    ("bugun", "today"),
    ("hoy", "today"),
    ("hoje", "today"),
    ("heute", "today"),
    ("oggi", "today"),
    ("aujourd'hui", "today"),
    ("tomorrow", "tomorrow"),
    ("yarin", "tomorrow"),
    ("demain", "tomorrow"),
    ("domani", "tomorrow"),
    ("amanha", "tomorrow"),
)

_MONTH_NAMES: dict[int, tuple[str, ...]] = {
    1: ("january", "jan", "ocak", "oca", "enero", "janvier", "januar", "gennaio", "janeiro"),
    2: ("february", "feb", "şubat", "şub", "febrero", "février", "februar", "febbraio", "fevereiro"),
    3: ("march", "mar", "mart", "marzo", "mars", "märz", "março"),
    4: ("april", "apr", "nisan", "nis", "abril", "avril", "aprile"),
    5: ("may", "mayıs", "mayo", "mai", "maggio", "maio"),
    6: ("june", "jun", "haziran", "haz", "junio", "juin", "juni", "giugno", "junho"),
    7: ("july", "jul", "temmuz", "tem", "julio", "juillet", "juli", "luglio", "julho"),
    8: ("august", "aug", "ağustos", "ağu", "agosto", "août"),
    9: ("september", "sep", "sept", "eylül", "eyl", "septiembre", "septembre", "settembre", "setembro"),
    10: ("october", "oct", "ekim", "eki", "octubre", "octobre", "oktober", "ottobre", "outubro"),
    11: ("november", "nov", "kasım", "kas", "noviembre", "novembre", "novembro"),
    12: ("december", "dec", "aralık", "ara", "diciembre", "décembre", "dezember", "dicembre", "dezembro"),
}
_MONTH_LEXICON: dict[str, int] = {
    fold_text(name): month for month, names in _MONTH_NAMES.items() for name in names
}


def _alternation(tokens) -> str:
    variants = set()
    for token in tokens:
        variants.add(token)
        variants.add(fold_text(token))
    return "|".join(re.escape(token) for token in sorted(variants, key=len, reverse=True))


_MONTH_PATTERN = _alternation(name for names in _MONTH_NAMES.values() for name in names)
_SUFFIX_PATTERN = r"(?:\s*(?:de|da|te|ta))?"
_DAY_NAME_PATTERN = _alternation(_WEEKDAY_ALIASES)

_NUMERIC_DATE_RE = re.compile(r"(?<!\d)(\d{1,2})([./])(\d{1,2})(?:[./](\d{2,4}))?(?!\d)")
_COLON_TIME_RE = re.compile(r"(?<!\d)(\d{1,2}):(\d{2})(?!\d)")
_COLON_SUFFIX_RE = re.compile(r"\s*(a\.?m\.?|p\.?m\.?)(?![a-z])", re.IGNORECASE)
_KEYWORD_TIME_RE = re.compile(r"(?<![a-z])(?:(?:saat|hour|at|um|kl\.?|klo|@)\s*)(\d{1,2})(?::(\d{2}))?", re.IGNORECASE)
_APOSTROPHE_TIME_RE = re.compile(r"(\d{1,2})['’](?:de|da|te|ta)", re.IGNORECASE)
_AMPM_RE = re.compile(r"(\d{1,2})\s*(a\.?m\.?|p\.?m\.?)(?![a-z])", re.IGNORECASE)
_PERIOD_PREFIXED_RE = re.compile(
    r"("
    + "|".join(
        (r"(?<![a-z])" + re.escape(keyword)) if keyword in _LETTER_BOUNDED else re.escape(keyword)
        for keyword in sorted(_PM_KEYWORDS + _AM_KEYWORDS + _NOON_KEYWORDS + _MIDNIGHT_KEYWORDS, key=len, reverse=True)
    )
    + r")\s*(\d{1,2})(?::(\d{2}))?",
    re.IGNORECASE,
)
_DAY_MONTH_RE = re.compile(r"(?<!\d)(\d{1,2})\s+(" + _MONTH_PATTERN + ")" + _SUFFIX_PATTERN + r"(?![a-z])", re.IGNORECASE)
_MONTH_DAY_RE = re.compile(r"(?<![a-z])(" + _MONTH_PATTERN + ")" + _SUFFIX_PATTERN + r"\s+(\d{1,2})(?!\d)", re.IGNORECASE)
_NEXT_WEEKDAY_RE = re.compile(r"\b(?:next(?:\s+week)?|coming|haftaya)\s+(" + _DAY_NAME_PATTERN + r")\b", re.IGNORECASE)
_DAY_NAME_RE = re.compile(r"\b(?:" + _DAY_NAME_PATTERN + r")\b", re.IGNORECASE)
_DAY_NAME_WITH_TIME_RE = re.compile(r"\b(?:" + _DAY_NAME_PATTERN + r")(?:\s+at)?\s+\d{1,2}(?::\d{2})?\b", re.IGNORECASE)

_TIME_KEYWORD_RE = re.compile(
    r"\b(?:"
    + _alternation(
        [
            "saat", "hour", "hours", "heure", "hora", "uhr", "pm", "am", "p.m.", "a.m.", "p.m", "a.m",
            "morning", "afternoon", "evening", "night", "noon", "midnight",
            "sabah", "öğlen", "akşam", "gece",
            "mañana", "tarde", "noche", "mediodía", "madrugada",
            "manhã", "noite", "meia noite",
            "matin", "après-midi", "soir", "nuit", "midi", "minuit",
            "nachmittag", "abend", "nacht", "mittag",
        ]
    )
    + r")\b",
    re.IGNORECASE,
)
_RELATIVE_DAY_RE = re.compile(
    r"\b(?:"
    + _alternation(
        [
            "today", "tomorrow", "tonight", "bugün", "yarın", "haftaya",
            "hoy", "mañana", "hoje", "amanhã", "aujourd'hui", "demain", "heute", "morgen", "oggi", "domani",
            "this evening", "this morning", "next week", "next month", "bu akşam", "bu sabah",
            "esta noche", "esta semana", "próxima semana", "cette semaine", "semaine prochaine",
            "diese woche", "nächste woche", "questa settimana", "prossima settimana",
        ]
    )
    + r")\b",
    re.IGNORECASE,
)

_NUMBER_WORDS = r"a|an|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve"
_EN_UNITS = r"minutes|minute|mins|min|hours|hour|hrs|hr|days|day|weeks|week|months|month"
_RELATIVE_IN_AFTER_RE = re.compile(
    r"\b(?:in|after)\s+(\d+|half\s+(?:an|a)|" + _NUMBER_WORDS + r")\s+(" + _EN_UNITS + r")\b", re.IGNORECASE
)
_RELATIVE_LATER_RE = re.compile(
    r"\b(\d+|" + _NUMBER_WORDS + r")\s+(" + _EN_UNITS + r")\s+(?:later|from\s+now)\b", re.IGNORECASE
)
_TURKISH_RELATIVE_RE = re.compile(
    r"\b(yarim|yarım|bir|iki|uc|üç|dort|dört|bes|beş|alti|altı|yedi|sekiz|dokuz|on|\d+)\s+"
    r"(dakika|dk|saat|gun|gün|hafta|ay)(?:ya|ye|e|a|te|ta|de|da)?\s*"
    r"(sonra|icinde|içinde|icerisinde|içerisinde)?\b",
    re.IGNORECASE,
)
_HALF_HOUR_TR_RE = re.compile(r"\byarim\s+saat")
_TURKISH_SUFFIXES = ("'da", "'de", "'ta", "'te", "'yu", "'yi", "'u", "'i")

_RELATIVE_NUMBER_WORDS: dict[str, float] = {
    "a": 1, "an": 1, "one": 1, "half": 0.5, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
    "yarim": 0.5, "bir": 1, "iki": 2, "uc": 3, "dort": 4, "bes": 5, "alti": 6,
    "yedi": 7, "sekiz": 8, "dokuz": 9, "on": 10,
}
_UNIT_TOKENS: dict[str, RelativeUnit] = {
    **dict.fromkeys(("minute", "minutes", "min", "mins", "dakika", "dk"), RelativeUnit.MINUTE),
    **dict.fromkeys(("hour", "hours", "hr", "hrs", "saat"), RelativeUnit.HOUR),
    **dict.fromkeys(("day", "days", "gun"), RelativeUnit.DAY),
    **dict.fromkeys(("week", "weeks", "hafta"), RelativeUnit.WEEK),
    **dict.fromkeys(("month", "months", "ay"), RelativeUnit.MONTH),
}


def sanitize(
    original_text: str,
    translated_text: str | None = None,
    candidate_day: str | None = None,
    candidate_time: str | None = None,
    *,
    now: datetime | None = None,
    month_first: bool = False,
) -> SanitizedDateTime:
    """Resolve an absolute day and a 24-hour time from the original and translated text."""

    now = now or datetime.now()
    texts = [text for text in (original_text, translated_text) if text]

    day_detection = _detect_day(texts, now=now, month_first=month_first)
    if not day_detection.found:
        day_detection = _normalize_candidate_day(candidate_day, now=now, month_first=month_first)

    period = _detect_period(texts)
    time_detection = _detect_time(texts, period)
    if not time_detection.found:
        time_detection = _normalize_candidate_time(candidate_time, period)
    explicit_time = time_detection.value is not None

    day_value = day_detection.value
    time_value = time_detection.value
    relative = _detect_relative_offset(texts, now) or _detect_simple_relative(texts, now)
    if relative is not None:
        moment, unit = relative
        day_value = absolute_day_string(moment)
        if unit in (RelativeUnit.MINUTE, RelativeUnit.HOUR):
            time_value = format_time(moment.hour, moment.minute)
        elif not explicit_time:
            time_value = None

    if day_value is None and time_value is not None:
        day_value = absolute_day_string(now)

    if day_value is not None:
        resolved = resolve_day_label(day_value, now)
        if resolved is not None:
            day_value = absolute_day_string(resolved)

    return SanitizedDateTime(
        day=day_value,
        time=time_value,
        invalid_day_input=None if day_value is not None else day_detection.invalid_input,
        invalid_time_input=None if time_value is not None else time_detection.invalid_input,
    )


def strip_datetime_fragments(text: str) -> str:
    """Remove every recognizable date/time span from ``text``."""

    if not text:
        return text
    cleaned = text
    for regex in (
        _COLON_TIME_RE,
        _KEYWORD_TIME_RE,
        _APOSTROPHE_TIME_RE,
        _AMPM_RE,
        _NUMERIC_DATE_RE,
        _DAY_MONTH_RE,
        _MONTH_DAY_RE,
        _PERIOD_PREFIXED_RE,
        _DAY_NAME_WITH_TIME_RE,
        _NEXT_WEEKDAY_RE,
        _DAY_NAME_RE,
        _RELATIVE_DAY_RE,
        _TIME_KEYWORD_RE,
        _RELATIVE_IN_AFTER_RE,
        _RELATIVE_LATER_RE,
        _TURKISH_RELATIVE_RE,
    ):
        cleaned = regex.sub(" ", cleaned)
    for suffix in _TURKISH_SUFFIXES:
        cleaned = re.sub(re.escape(suffix), " ", cleaned, flags=re.IGNORECASE)
    return condense_whitespace(cleaned)


def format_time(hour: int, minute: int) -> str | None:
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return f"{hour:02d}:{minute:02d}"


def format_hour(hour: int, period: TimePeriod | None) -> str | None:
    """Format a bare hour; with a period marker the hour must be 1-12."""

    if period is None:
        return format_time(hour, 0)
    if not 1 <= hour <= 12:
        return None
    if period is TimePeriod.AM:
        return format_time(0 if hour == 12 else hour, 0)
    if period is TimePeriod.PM:
        return format_time(12 if hour == 12 else hour + 12, 0)
    if period is TimePeriod.NOON:
        return format_time(12, 0)
    return format_time(0, 0)


def _apply_period(period: TimePeriod | None, hour: int) -> int:
    if period is None or not 0 <= hour <= 23:
        return hour
    if period is TimePeriod.AM:
        return 0 if hour == 12 else hour
    if period is TimePeriod.PM:
        return hour + 12 if hour < 12 else hour
    if period is TimePeriod.NOON:
        return 12
    return 0


def _detect_day(texts: list[str], *, now: datetime, month_first: bool) -> _Detection:
    for text in texts:
        numeric = _detect_numeric_date(text, now=now, month_first=month_first)
        if numeric is not None:
            if numeric.value is not None:
                return _Detection(value=absolute_day_string(numeric.value))
            return _Detection(invalid_input=(numeric.invalid_input or "").strip() or None)
        word = _detect_word_date(text, now=now)
        if word is not None:
            if word.value is not None:
                return _Detection(value=absolute_day_string(word.value))
            return _Detection(invalid_input=(word.invalid_input or "").strip() or None)
        next_weekday = _detect_next_weekday_alias(text)
        if next_weekday is not None:
            return _Detection(value=f"next_{next_weekday}")
        weekday = _detect_weekday_token(text)
        if weekday is not None:
            target = upcoming_weekday_date(WEEKDAYS.index(weekday), now.date())
            return _Detection(value=absolute_day_string(target))
        relative = _detect_relative_day_keyword(text)
        if relative is not None:
            return _Detection(value=relative)
    return _Detection()


def _detect_time(texts: list[str], period: TimePeriod | None) -> _Detection:
    for text in texts:
        for detector in (_detect_colon_time, _detect_keyword_time, _detect_period_prefixed_time):
            detection = detector(text, period)
            if detection is not None and detection.found:
                return detection
        standalone = _detect_standalone_time_keyword(text)
        if standalone is not None:
            return standalone
    return _Detection()


def _detect_standalone_time_keyword(text: str) -> _Detection | None:
    normalized = fold_text(text)
    for keywords, value in _STANDALONE_TIMES:
        if any(re.search(r"(?<![a-z])" + re.escape(keyword), normalized) for keyword in keywords):
            return _Detection(value=value)
    return None


def _detect_colon_time(text: str, period: TimePeriod | None) -> _Detection | None:
    match = _COLON_TIME_RE.search(text)
    if match is None:
        return _detect_dotted_time(text)
    hour, minute = int(match.group(1)), int(match.group(2))
    token = match.group(0).strip()
    suffix = _COLON_SUFFIX_RE.match(text, match.end())
    if suffix is not None:
        token = text[match.start() : suffix.end()].strip()
        if not 1 <= hour <= 12:
            return _Detection(invalid_input=token)
        hour = _apply_period(TimePeriod.PM if "p" in suffix.group(1).lower() else TimePeriod.AM, hour)
    formatted = format_time(hour, minute)
    if formatted is None:
        return _Detection(invalid_input=token)
    return _Detection(value=formatted)


def _detect_dotted_time(text: str) -> _Detection | None:
    """``15.30`` reads as a time only when the pair cannot be a day and month."""

    match = _NUMERIC_DATE_RE.search(text)
    if match is None or match.group(4) is not None or match.group(2) != ".":
        return None
    if not _is_dotted_time(match.group(1), match.group(3)):
        return None
    return _Detection(value=format_time(int(match.group(1)), int(match.group(3))))


def _is_dotted_time(first: str, second: str) -> bool:
    hour, minute = int(first), int(second)
    if len(second) != 2 or format_time(hour, minute) is None:
        return False
    day, month = hour, minute
    if month > 12 and day <= 12:
        day, month = month, day
    if 1 <= month <= 12 and 1 <= day <= calendar.monthrange(2000, month)[1]:
        return False
    return True


def _detect_keyword_time(text: str, period: TimePeriod | None) -> _Detection | None:
    normalized = fold_text(text)
    match = _KEYWORD_TIME_RE.search(normalized)
    if match is not None:
        token = match.group(0).strip()
        hour = int(match.group(1))
        if match.group(2) is not None:
            formatted = format_time(hour, int(match.group(2)))
        else:
            # An am/pm suffix right after the keyword hour ("at 3pm") overrides the period.
            suffix = _AMPM_RE.match(normalized, match.start(1))
            if suffix is not None:
                override = TimePeriod.PM if "p" in suffix.group(2) else TimePeriod.AM
                formatted = format_hour(hour, override)
                token = normalized[match.start() : suffix.end()].strip()
            else:
                formatted = format_hour(hour, period)
        return _Detection(value=formatted) if formatted else _Detection(invalid_input=token)

    match = _APOSTROPHE_TIME_RE.search(normalized)
    if match is not None:
        formatted = format_hour(int(match.group(1)), period)
        return _Detection(value=formatted) if formatted else _Detection(invalid_input=match.group(0).strip())

    match = _AMPM_RE.search(normalized)
    if match is not None:
        override = TimePeriod.PM if "p" in match.group(2) else TimePeriod.AM
        formatted = format_hour(int(match.group(1)), override)
        return _Detection(value=formatted) if formatted else _Detection(invalid_input=match.group(0).strip())
    return None


def _detect_period_prefixed_time(text: str, period: TimePeriod | None) -> _Detection | None:
    normalized = fold_text(text)
    match = _PERIOD_PREFIXED_RE.search(normalized)
    if match is None:
        return None
    token = match.group(0).strip()
    hour = int(match.group(2))
    inferred = _period_override(match.group(1)) or period
    if inferred in (TimePeriod.AM, TimePeriod.PM) and not 1 <= hour <= 12:
        return _Detection(invalid_input=token)
    if match.group(3) is not None:
        formatted = format_time(_apply_period(inferred, hour), int(match.group(3)))
    else:
        formatted = format_hour(hour, inferred)
    return _Detection(value=formatted) if formatted else _Detection(invalid_input=token)


def _detect_numeric_date(text: str, *, now: datetime, month_first: bool) -> _DateDetection | None:
    match = _NUMERIC_DATE_RE.search(text)
    if match is None:
        return None
    token = match.group(0).strip()
    first, separator, second, year_token = int(match.group(1)), match.group(2), int(match.group(3)), match.group(4)
    if separator == "." and not year_token and _is_dotted_time(match.group(1), match.group(3)):
        return None
    day_first = separator == "." or not month_first
    day, month = (first, second) if day_first else (second, first)
    if month > 12 and day <= 12:
        day, month = month, day
    if not (1 <= day <= 31 and 1 <= month <= 12):
        return _DateDetection(invalid_input=token)
    year: int | None = None
    if year_token:
        year = int(year_token)
        if len(year_token) == 2:
            year += 1900 if year >= 70 else 2000
    resolved = _make_date(day, month, year, now=now)
    if resolved is None:
        return _DateDetection(invalid_input=token)
    return _DateDetection(value=resolved)


def _detect_word_date(text: str, *, now: datetime) -> _DateDetection | None:
    normalized = fold_text(text)
    match = _DAY_MONTH_RE.search(normalized)
    if match is not None:
        day_token, month_token = match.group(1), match.group(2)
    else:
        match = _MONTH_DAY_RE.search(normalized)
        if match is None:
            return None
        month_token, day_token = match.group(1), match.group(2)
    month = _MONTH_LEXICON.get(fold_text(month_token))
    resolved = _make_date(int(day_token), month, None, now=now) if month else None
    if resolved is None:
        return _DateDetection(invalid_input=match.group(0).strip())
    return _DateDetection(value=resolved)


def _make_date(day: int, month: int, year: int | None, *, now: datetime) -> date | None:
    try:
        resolved = date(year or now.year, month, day)
    except ValueError:
        return None
    if year is None and resolved < now.date():
        try:
            return date(resolved.year + 1, month, day)
        except ValueError:
            return None
    return resolved


def _detect_next_weekday_alias(text: str) -> str | None:
    match = _NEXT_WEEKDAY_RE.search(fold_text(text))
    if match is None:
        return None
    return _WEEKDAY_ALIASES.get(match.group(1))


def _detect_weekday_token(text: str) -> str | None:
    for match in _DAY_NAME_RE.finditer(fold_text(text)):
        weekday = _WEEKDAY_ALIASES.get(match.group(0))
        if weekday is not None:
            return weekday
    return None


def _detect_relative_day_keyword(text: str) -> str | None:
    normalized = fold_text(text)
    for keyword, label in _RELATIVE_DAY_KEYWORDS:
        if re.search(r"(?<![a-z])" + re.escape(keyword) + r"(?![a-z])", normalized):
            return label
    return None


def _detect_period(texts: list[str]) -> TimePeriod | None:
    for text in texts:
        normalized = fold_text(text)
        for period, keywords in (
            (TimePeriod.MIDNIGHT, _MIDNIGHT_KEYWORDS),
            (TimePeriod.PM, _PM_KEYWORDS),
            (TimePeriod.NOON, _NOON_KEYWORDS),
            (TimePeriod.AM, _AM_KEYWORDS),
        ):
            if any(_contains_keyword(normalized, keyword) for keyword in keywords):
                return period
    return None


def _contains_keyword(text: str, keyword: str) -> bool:
    if keyword in _LETTER_BOUNDED:
        return re.search(r"(?<![a-z])" + re.escape(keyword) + r"(?![a-z])", text) is not None
    return keyword in text


def _period_override(keyword: str) -> TimePeriod | None:
    for period, keywords in (
        (TimePeriod.MIDNIGHT, _MIDNIGHT_KEYWORDS),
        (TimePeriod.PM, _PM_KEYWORDS),
        (TimePeriod.NOON, _NOON_KEYWORDS),
        (TimePeriod.AM, _AM_KEYWORDS),
    ):
        if any(candidate in keyword for candidate in keywords):
            return period
    return None


def _normalize_candidate_day(candidate: str | None, *, now: datetime, month_first: bool) -> _Detection:
    """Model-suggested day, accepted only when it resolves to a valid value."""

    candidate = (candidate or "").strip()
    if not candidate:
        return _Detection()
    token = fold_text(candidate).replace("-", "_").replace(" ", "_")
    for keyword, label in _RELATIVE_DAY_KEYWORDS:
        if token == keyword.replace(" ", "_"):
            return _Detection(value=label)
    if token.startswith("next_") and token[5:] in WEEKDAYS:
        return _Detection(value=token)
    if token in _WEEKDAY_ALIASES:
        target = upcoming_weekday_date(WEEKDAYS.index(_WEEKDAY_ALIASES[token]), now.date())
        return _Detection(value=absolute_day_string(target))
    absolute = parse_absolute_label(candidate)
    if absolute is not None:
        return _Detection(value=absolute_day_string(absolute))
    detection = _detect_numeric_date(candidate, now=now, month_first=month_first) or _detect_word_date(
        candidate, now=now
    )
    if detection is not None and detection.value is not None:
        return _Detection(value=absolute_day_string(detection.value))
    return _Detection()


def _normalize_candidate_time(candidate: str | None, period: TimePeriod | None) -> _Detection:
    """Model-suggested time, accepted only when it normalizes to a valid value."""

    candidate = condense_whitespace(candidate or "").replace(".", ":")
    if not candidate:
        return _Detection()
    formatted: str | None = None
    if re.fullmatch(r"\d{1,2}:\d{1,2}", candidate):
        hour, minute = candidate.split(":")
        formatted = format_time(int(hour), int(minute))
    elif re.fullmatch(r"\d{1,2}", candidate):
        formatted = format_time(int(candidate), 0)
    else:
        match = re.fullmatch(r"(\d{1,2})([ap])m", candidate.replace(" ", "").lower())
        if match is not None:
            override = TimePeriod.PM if match.group(2) == "p" else TimePeriod.AM
            formatted = format_hour(int(match.group(1)), override)
    return _Detection(value=formatted) if formatted else _Detection()


def _detect_relative_offset(texts: list[str], now: datetime) -> tuple[datetime, RelativeUnit] | None:
    for text in texts:
        normalized = fold_text(text)
        if _HALF_HOUR_TR_RE.search(normalized):
            moment = _apply_relative(0.5, RelativeUnit.HOUR, now)
            if moment is not None:
                return moment, RelativeUnit.HOUR
        for regex in (_RELATIVE_IN_AFTER_RE, _RELATIVE_LATER_RE, _TURKISH_RELATIVE_RE):
            parsed = _parse_relative_match(normalized, regex)
            if parsed is None:
                continue
            moment = _apply_relative(parsed[0], parsed[1], now)
            if moment is not None:
                return moment, parsed[1]
    return None


def _detect_simple_relative(texts: list[str], now: datetime) -> tuple[datetime, RelativeUnit] | None:
    for text in texts:
        normalized = fold_text(text)
        if "sonra" not in normalized and "icinde" not in normalized:
            continue
        if "yarim" in normalized or "half" in normalized:
            value = 0.5
        else:
            value = extract_first_number(normalized)
        if value is None or value <= 0:
            continue
        unit = _guess_unit(normalized)
        if unit is None:
            continue
        moment = _apply_relative(value, unit, now)
        if moment is not None:
            return moment, unit
    return None


def _guess_unit(normalized: str) -> RelativeUnit | None:
    if "saat" in normalized or "hour" in normalized:
        return RelativeUnit.HOUR
    if "dk" in normalized or "dakika" in normalized or "minute" in normalized:
        return RelativeUnit.MINUTE
    if "hafta" in normalized or "week" in normalized:
        return RelativeUnit.WEEK
    if re.search(r"\bay\b", normalized) or "month" in normalized:
        return RelativeUnit.MONTH
    if "gun" in normalized or "day" in normalized:
        return RelativeUnit.DAY
    return None


def _parse_relative_match(text: str, regex: re.Pattern[str]) -> tuple[float, RelativeUnit] | None:
    match = regex.search(text)
    if match is None:
        return None
    value = _parse_relative_value(match.group(1))
    if value is None or value <= 0:
        return None
    unit_token = match.group(2).strip().lower()
    unit = _UNIT_TOKENS.get(unit_token) or _UNIT_TOKENS.get(re.sub(r"(ya|ye|e|a)$", "", unit_token))
    if unit is None:
        return None
    return value, unit


def _parse_relative_value(token: str) -> float | None:
    normalized = condense_whitespace(fold_text(token))
    if not normalized:
        return None
    if normalized.isdigit():
        return float(normalized)
    if "half" in normalized or "yarim" in normalized:
        return 0.5
    return _RELATIVE_NUMBER_WORDS.get(normalized)


def _apply_relative(value: float, unit: RelativeUnit, now: datetime) -> datetime | None:
    if unit is RelativeUnit.MINUTE:
        return now + timedelta(minutes=value)
    if unit is RelativeUnit.HOUR:
        return now + timedelta(hours=value)
    if not float(value).is_integer():
        return None
    whole = int(value)
    if unit is RelativeUnit.DAY:
        return now + timedelta(days=whole)
    if unit is RelativeUnit.WEEK:
        return now + timedelta(days=whole * 7)
    return _add_months(now, whole)


def _add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
