"""Activity parsing and MET-based burned-calorie estimation."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, replace
from typing import Protocol

from lifelog.config import get_settings
from lifelog.llm.client import LLMError
from lifelog.nlp.parsing import parse_distance
from lifelog.nlp.text import condense_whitespace, fold_text

logger = logging.getLogger(__name__)

DEFAULT_MET = 5.0

MET_VALUES: dict[str, float] = {
    "running": 9.8, "jogging": 7.0, "run": 9.8, "koşu": 9.8, "koş": 9.8, "sprint": 12.3,
    "walking": 3.5, "walk": 3.5, "yürüyüş": 3.5, "yürü": 3.5, "hiking": 6.0, "trekking": 6.5,
    "cycling": 8.0, "bike": 8.0, "bisiklet": 8.0, "mountain biking": 8.5, "stationary bike": 6.8,
    "swimming": 8.0, "swim": 8.0, "yüzme": 8.0, "freestyle": 9.8, "breaststroke": 10.3,
    "backstroke": 7.0, "butterfly": 13.8,
    "football": 8.0, "futbol": 8.0, "soccer": 10.0, "basketball": 6.5, "basketbol": 6.5,
    "volleyball": 4.0, "voleybol": 4.0, "tennis": 7.3, "tenis": 7.3, "badminton": 5.5,
    "table tennis": 4.0, "masa tenisi": 4.0,
    "weight training": 6.0, "ağırlık": 6.0, "gym": 6.0, "aerobics": 7.3, "aerobik": 7.3,
    "zumba": 8.8, "crossfit": 8.0, "circuit training": 8.0, "hiit": 12.3, "tabata": 12.3,
    "yoga": 2.5, "hatha yoga": 2.5, "vinyasa yoga": 4.0, "power yoga": 4.0, "pilates": 3.0,
    "dancing": 4.5, "dans": 4.5, "dance": 4.5, "ballet": 4.8, "bale": 4.8, "hip hop": 5.0,
    "salsa": 5.0, "ballroom": 5.5,
    "boxing": 12.8, "boks": 12.8, "kickboxing": 10.3, "martial arts": 10.3, "karate": 10.3,
    "taekwondo": 10.3, "judo": 10.3,
    "kayaking": 5.0, "rowing": 7.0, "kürek": 7.0, "surfing": 3.0, "paddleboarding": 6.0,
    "water skiing": 6.0,
    "skiing": 7.0, "kayak": 7.0, "snowboarding": 5.3, "ice skating": 7.0, "buz pateni": 7.0,
    "cross-country skiing": 9.0,
    "climbing": 11.0, "tırmanış": 11.0, "rock climbing": 11.0, "rope jumping": 12.3,
    "ip atlama": 12.3, "jumping rope": 12.3, "elliptical": 5.0, "stair climbing": 8.8,
    "merdiven": 8.8, "rowing machine": 7.0,
    "golfing": 4.8, "golf": 4.8, "bowling": 3.0, "skateboarding": 5.0, "kaykay": 5.0,
    "rollerblading": 7.5, "paten": 7.5,
    "gardening": 4.0, "bahçe": 4.0, "mowing lawn": 5.5, "çim biçme": 5.5, "cleaning": 3.5,
    "temizlik": 3.5, "vacuuming": 3.5, "carrying groceries": 7.5, "alışveriş taşıma": 7.5,
    "playing with kids": 4.0, "çocuk oyunu": 4.0, "carrying children": 3.5, "çocuk taşıma": 3.5,
}
_MET_KEYS_LONGEST_FIRST = sorted(MET_VALUES, key=len, reverse=True)

# (upper bound km/h exclusive, MET); the last band is open-ended.
_RUNNING_BANDS = (
    (6.4, 6.0), (8.0, 8.3), (8.4, 9.0), (9.7, 9.8), (10.8, 10.5), (11.3, 11.0),
    (12.1, 11.5), (12.9, 11.8), (13.8, 12.3), (14.5, 12.8), (float("inf"), 14.5),
)
_CYCLING_BANDS = ((16.0, 4.0), (19.0, 6.8), (22.0, 8.0), (26.0, 10.0), (32.0, 12.0), (float("inf"), 15.8))
_WALKING_BANDS = ((3.2, 2.0), (4.0, 2.8), (4.8, 3.5), (5.6, 4.3), (6.4, 5.0), (float("inf"), 7.0))

_RUN_NEEDLES = ("run", "koş", "jog")
_CYCLE_NEEDLES = ("cycl", "bisiklet", "bike")
_WALK_NEEDLES = ("walk", "yürü")

_AVERAGE_SPEEDS_KMH: tuple[tuple[tuple[str, ...], float], ...] = (
    (("run", "koş", "jog"), 10.0),
    (("walk", "yürü", "hik"), 5.0),
    (("cycl", "bisiklet", "bik"), 20.0),
    (("swim", "yüz"), 3.0),
    (("row", "kürek"), 8.0),
    (("ski", "kayak"), 9.0),
    (("skat", "paten"), 12.0),
)
_DEFAULT_SPEED_KMH = 5.0

_SECONDS_PER_REP: tuple[tuple[tuple[str, ...], float], ...] = (
    (("pushup", "push-up", "şınav"), 3.0),
    (("situp", "sit-up", "mekik"), 3.0),
    (("squat", "çömelme"), 3.0),
    (("burpee",), 5.0),
    (("pullup", "pull-up", "barfiks"), 4.0),
    (("jump", "zıpla", "jack"), 1.5),
    (("lunge",), 3.0),
)
_DEFAULT_SECONDS_PER_REP = 3.0

_DURATION_RE = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*(hours|hour|hrs|hr|h|saat|minutes|minute|mins|min|dakika|dk)(?![^\W\d_])",
    re.IGNORECASE,
)
_COUNT_RE = re.compile(r"\b(\d+)\b")
_NOISE_RE = re.compile(
    r"\d+(?:[.,]\d+)?\s*(?:kilometers|kilometer|km|miles|mile|mi|hours|hour|hrs|hr|h|saat|minutes|minute|mins|min|dakika|dk)?",
    re.IGNORECASE,
)


class ActivityCalorieError(RuntimeError):
    """Raised when burned calories cannot be computed."""


class MissingHealthMetricsError(ActivityCalorieError):
    def __init__(self, message: str = "Missing health metrics: weight and height are required for calorie calculation") -> None:
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class ActivityProfile:
    weight_kg: float
    height_cm: float
    age: int = 30
    sex: str | None = None


class ProfileProvider(Protocol):
    def get_profile(self) -> ActivityProfile | None:
        """Return the user's body metrics, or None when unknown."""


@dataclass(slots=True)
class SettingsProfileProvider:
    """Reads body metrics from the ``profile_*`` settings."""

    weight_kg: float | None = None
    height_cm: float | None = None
    age: int = 30
    sex: str | None = None

    @classmethod
    def from_settings(cls) -> "SettingsProfileProvider":
        settings = get_settings()
        return cls(
            weight_kg=settings.profile_weight_kg,
            height_cm=settings.profile_height_cm,
            age=settings.profile_age,
            sex=settings.profile_sex,
        )

    def get_profile(self) -> ActivityProfile | None:
        if not self.weight_kg or not self.height_cm:
            return None
        return ActivityProfile(weight_kg=self.weight_kg, height_cm=self.height_cm, age=self.age, sex=self.sex)


def met_for_activity(activity: str) -> float:
    """Exact table lookup, then containment either way, else the default MET."""

    lowered = (activity or "").strip().lower()
    if lowered in MET_VALUES:
        return MET_VALUES[lowered]
    for key in _MET_KEYS_LONGEST_FIRST:
        if key in lowered or (lowered and lowered in key):
            return MET_VALUES[key]
    return DEFAULT_MET


def _band_lookup(bands: tuple[tuple[float, float], ...], speed: float) -> float:
    return next(met for upper, met in bands if speed < upper)


def met_for_speed(activity: str, distance_km: float | None, duration_minutes: float) -> float:
    lowered = (activity or "").lower()
    if distance_km is not None and duration_minutes > 0:
        speed = distance_km / duration_minutes * 60.0
        if any(needle in lowered for needle in _RUN_NEEDLES):
            return _band_lookup(_RUNNING_BANDS, speed)
        if any(needle in lowered for needle in _CYCLE_NEEDLES):
            return _band_lookup(_CYCLING_BANDS, speed)
        if any(needle in lowered for needle in _WALK_NEEDLES):
            return _band_lookup(_WALKING_BANDS, speed)
    return met_for_activity(lowered)


def estimate_duration_from_distance(activity: str, distance_km: float) -> float:
    """Minutes needed to cover ``distance_km`` at the activity family's average speed."""

    lowered = (activity or "").lower()
    speed = next(
        (kmh for needles, kmh in _AVERAGE_SPEEDS_KMH if any(needle in lowered for needle in needles)),
        _DEFAULT_SPEED_KMH,
    )
    return distance_km / speed * 60.0


def estimate_duration_from_count(activity: str, count: float) -> float:
    lowered = (activity or "").lower()
    seconds = next(
        (value for needles, value in _SECONDS_PER_REP if any(needle in lowered for needle in needles)),
        _DEFAULT_SECONDS_PER_REP,
    )
    return count * seconds / 60.0


class ActivityCalorieService:
    """calories = MET x weight_kg x hours."""

    def __init__(self, profile_provider: ProfileProvider) -> None:
        self._profile_provider = profile_provider

    def calculate(self, activity: str, duration_minutes: float, distance_km: float | None = None) -> float:
        profile = self._profile_provider.get_profile()
        if profile is None:
            raise MissingHealthMetricsError()
        met = met_for_speed(activity, distance_km, duration_minutes)
        return met * profile.weight_kg * (duration_minutes / 60.0)


@dataclass(frozen=True, slots=True)
class ActivityFields:
    activity_type: str
    duration_minutes: float | None = None
    distance_km: float | None = None
    count: float | None = None


class ActivityFieldExtractor(Protocol):
    def extract_activity(self, text: str) -> ActivityFields:
        """Return the activity type and any explicit duration, distance or count."""


@dataclass(frozen=True, slots=True)
class ActivityResult:
    activity_type: str
    duration_minutes: float | None
    distance_km: float | None
    calories_burned: float
    error_message: str | None = None

    @property
    def formatted_duration(self) -> str | None:
        if self.duration_minutes is None:
            return None
        if self.duration_minutes >= 60:
            hours = int(self.duration_minutes // 60)
            minutes = int(self.duration_minutes % 60)
            return f"{hours}h {minutes}m" if minutes > 0 else f"{hours}h"
        return f"{int(self.duration_minutes)}m"

    @property
    def formatted_distance(self) -> str | None:
        if self.distance_km is None:
            return None
        return f"{self.distance_km:.1f} km"

    @property
    def formatted_calories(self) -> str:
        rounded = int(round(self.calories_burned))
        if rounded <= 0:
            return "0 kcal"
        return f"-{rounded} kcal"


def extract_activity_fields_locally(text: str) -> ActivityFields | None:
    """Pattern-only extraction used when no model is available."""

    folded = fold_text(text or "")
    activity_type = next(
        (key for key in _MET_KEYS_LONGEST_FIRST if re.search(r"(?<![^\W\d_])" + re.escape(fold_text(key)), folded)),
        None,
    )
    if activity_type is None:
        residual = condense_whitespace(_NOISE_RE.sub(" ", text or "")).lower()
        if not residual:
            return None
        activity_type = residual

    duration = None
    duration_match = _DURATION_RE.search(text or "")
    if duration_match is not None:
        value = float(duration_match.group(1).replace(",", "."))
        unit = duration_match.group(2).lower()
        duration = value * 60.0 if unit.startswith(("h", "saat")) else value

    distance = parse_distance(text or "")
    count = None
    if duration is None and distance is None:
        count_match = _COUNT_RE.search(text or "")
        if count_match is not None:
            count = float(count_match.group(1))
    return ActivityFields(activity_type=activity_type, duration_minutes=duration, distance_km=distance, count=count)


class ActivityParser:
    """Turns an activity line into duration, distance and burned calories, caching per text."""

    def __init__(self, extractor: ActivityFieldExtractor | None, calorie_service: ActivityCalorieService) -> None:
        self._extractor = extractor
        self._calorie_service = calorie_service
        self._cache: dict[str, ActivityResult] = {}
        self._fields_cache: dict[str, ActivityFields | None] = {}
        self._lock = threading.Lock()

    def parse(self, text: str) -> ActivityResult | None:
        with self._lock:
            cached = self._cache.get(text)
        if cached is not None:
            return cached

        with self._lock:
            known = text in self._fields_cache
            fields = self._fields_cache.get(text)
        if not known:
            fields = self._extract_fields(text)
            with self._lock:
                self._fields_cache[text] = fields
        if fields is None or not fields.activity_type.strip():
            return None
        fields = self._resolve_duration(fields)

        error_message = None
        missing_metrics = False
        try:
            calories = self._calculate(fields)
        except MissingHealthMetricsError as exc:
            calories = 0.0
            error_message = str(exc)
            missing_metrics = True
        except ActivityCalorieError as exc:
            calories = 0.0
            error_message = str(exc)

        result = ActivityResult(
            activity_type=fields.activity_type,
            duration_minutes=fields.duration_minutes,
            distance_km=fields.distance_km,
            calories_burned=calories,
            error_message=error_message,
        )
        if not missing_metrics:
            with self._lock:
                self._cache[text] = result
        return result

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._fields_cache.clear()

    def _extract_fields(self, text: str) -> ActivityFields | None:
        local = extract_activity_fields_locally(text)
        if self._extractor is None:
            return local
        try:
            fields = self._extractor.extract_activity(text)
        except LLMError as exc:
            logger.warning("activity.extract_failed error=%s", exc)
            return local
        if local is not None:
            if fields.distance_km is None and local.distance_km is not None:
                fields = replace(fields, distance_km=local.distance_km)
            if fields.duration_minutes is None and local.duration_minutes is not None:
                fields = replace(fields, duration_minutes=local.duration_minutes)
        return fields

    def _resolve_duration(self, fields: ActivityFields) -> ActivityFields:
        if fields.distance_km is not None and fields.distance_km > 0:
            estimated = estimate_duration_from_distance(fields.activity_type, fields.distance_km)
            current = fields.duration_minutes
            if current is None or current <= 0:
                return replace(fields, duration_minutes=estimated)
            ratio = current / estimated
            if ratio > 2.0 or ratio < 0.5:
                logger.info(
                    "activity.duration_override activity=%s model_minutes=%.1f estimated_minutes=%.1f",
                    fields.activity_type,
                    current,
                    estimated,
                )
                return replace(fields, duration_minutes=estimated)
            return fields
        if fields.duration_minutes is None and fields.count is not None and fields.count > 0:
            return replace(fields, duration_minutes=estimate_duration_from_count(fields.activity_type, fields.count))
        return fields

    def _calculate(self, fields: ActivityFields) -> float:
        duration = fields.duration_minutes
        if duration is None or duration <= 0:
            return 0.0
        return self._calorie_service.calculate(fields.activity_type, duration, fields.distance_km)


def get_default_activity_parser(extractor: ActivityFieldExtractor | None = None) -> ActivityParser:
    return ActivityParser(extractor, ActivityCalorieService(SettingsProfileProvider.from_settings()))
