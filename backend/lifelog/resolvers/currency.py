"""Currency catalogue, USD-pivot rate fetching and cached conversion."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from sqlalchemy import select
from sqlalchemy.orm import Session

from lifelog.config import get_settings
from lifelog.models.currency_rate import CurrencyRateSnapshot

logger = logging.getLogger(__name__)

PIVOT_CURRENCY = "USD"


@dataclass(frozen=True, slots=True)
class Currency:
    code: str
    symbol: str
    name: str


SUPPORTED_CURRENCIES: tuple[Currency, ...] = (
    Currency("USD", "$", "US Dollar"),
    Currency("EUR", "€", "Euro"),
    Currency("TRY", "₺", "Turkish Lira"),
    Currency("GBP", "£", "British Pound"),
    Currency("JPY", "¥", "Japanese Yen"),
    Currency("AUD", "A$", "Australian Dollar"),
    Currency("CAD", "C$", "Canadian Dollar"),
    Currency("CHF", "Fr", "Swiss Franc"),
    Currency("CNY", "¥", "Chinese Yuan"),
    Currency("SEK", "kr", "Swedish Krona"),
    Currency("NZD", "NZ$", "New Zealand Dollar"),
    Currency("MXN", "$", "Mexican Peso"),
    Currency("SGD", "S$", "Singapore Dollar"),
    Currency("HKD", "HK$", "Hong Kong Dollar"),
    Currency("NOK", "kr", "Norwegian Krone"),
    Currency("KRW", "₩", "South Korean Won"),
    Currency("INR", "₹", "Indian Rupee"),
    Currency("RUB", "₽", "Russian Ruble"),
    Currency("BRL", "R$", "Brazilian Real"),
    Currency("ZAR", "R", "South African Rand"),
    Currency("DKK", "kr", "Danish Krone"),
    Currency("PLN", "zł", "Polish Zloty"),
    Currency("THB", "฿", "Thai Baht"),
    Currency("IDR", "Rp", "Indonesian Rupiah"),
    Currency("HUF", "Ft", "Hungarian Forint"),
    Currency("CZK", "Kč", "Czech Koruna"),
    Currency("ILS", "₪", "Israeli New Shekel"),
    Currency("MYR", "RM", "Malaysian Ringgit"),
    Currency("PHP", "₱", "Philippine Peso"),
    Currency("RON", "lei", "Romanian Leu"),
    Currency("BGN", "лв", "Bulgarian Lev"),
    Currency("HRK", "kn", "Croatian Kuna"),
    Currency("ISK", "kr", "Icelandic Króna"),
)
SUPPORTED_CODES = frozenset(currency.code for currency in SUPPORTED_CURRENCIES)


def currency_from_code(code: str) -> Currency | None:
    """Case-insensitive catalogue lookup."""

    upper = (code or "").strip().upper()
    return next((currency for currency in SUPPORTED_CURRENCIES if currency.code == upper), None)


class CurrencyRateError(RuntimeError):
    """Raised when the rate source cannot produce a usable rate table."""


class RateSource(Protocol):
    """Produces a table of ``{code: rate}`` relative to USD."""

    def fetch_rates(self) -> dict[str, float]:
        """Return the latest USD-pivot rates."""


@dataclass(slots=True)
class FreeCurrencyApiRateSource:
    """freecurrencyapi.com ``/latest`` client using stdlib HTTP."""

    api_key: str
    url: str = "https://api.freecurrencyapi.com/v1/latest"
    timeout_seconds: int = 10

    def fetch_rates(self) -> dict[str, float]:
        req = urllib_request.Request(url=self.url, method="GET", headers={"apikey": self.api_key})
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            if exc.code == 429:
                raise CurrencyRateError("Currency API rate limit reached") from exc
            raise CurrencyRateError(f"Currency API HTTP {exc.code}") from exc
        except urllib_error.URLError as exc:
            raise CurrencyRateError(f"Currency API request failed: {exc.reason}") from exc

        try:
            data = json.loads(raw)["data"]
            return {str(code).upper(): float(value) for code, value in data.items()}
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise CurrencyRateError("Currency API returned an unexpected payload") from exc


class RateCache:
    """Time-bounded USD-pivot rate table, optionally backed by a durable snapshot table.

    Reads never block each other; writes go through a single lock and the last
    writer wins.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=6),
        *,
        session_factory: Callable[[], Session] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ttl = ttl
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rates: dict[str, float] | None = None
        self._stored_at: datetime | None = None
        self._write_lock = threading.Lock()

    def get(self) -> dict[str, float] | None:
        """Return fresh rates from memory, then from the durable store."""

        now = self._clock()
        rates, stored_at = self._rates, self._stored_at
        if rates is not None and stored_at is not None and now - stored_at < self._ttl:
            return rates
        persisted = self._load_snapshot(now)
        if persisted is None:
            return None
        rates, fetched_at = persisted
        with self._write_lock:
            self._rates, self._stored_at = rates, fetched_at
        return rates

    def put(self, rates: dict[str, float]) -> None:
        normalized = {code.upper(): value for code, value in rates.items()}
        now = self._clock()
        with self._write_lock:
            self._rates, self._stored_at = normalized, now
            self._save_snapshot(normalized, now)

    def _load_snapshot(self, now: datetime) -> tuple[dict[str, float], datetime] | None:
        if self._session_factory is None:
            return None
        with self._session_factory() as db:
            snapshot = db.scalars(
                select(CurrencyRateSnapshot)
                .where(CurrencyRateSnapshot.base_code == PIVOT_CURRENCY)
                .order_by(CurrencyRateSnapshot.fetched_at.desc(), CurrencyRateSnapshot.id.desc())
                .limit(1)
            ).first()
            if snapshot is None:
                return None
            fetched_at = snapshot.fetched_at
            if fetched_at.tzinfo is None:
                fetched_at = fetched_at.replace(tzinfo=timezone.utc)
            if now - fetched_at >= self._ttl:
                return None
            rates = {str(code).upper(): float(value) for code, value in (snapshot.rates_json or {}).items()}
            return rates, fetched_at

    def _save_snapshot(self, rates: dict[str, float], now: datetime) -> None:
        if self._session_factory is None:
            return
        with self._session_factory() as db:
            db.add(CurrencyRateSnapshot(base_code=PIVOT_CURRENCY, rates_json=rates, fetched_at=now))
            db.commit()


class CurrencyConverter:
    """Converts amounts through a USD pivot; returns None rather than guessing."""

    def __init__(self, source: RateSource | None, cache: RateCache) -> None:
        self._source = source
        self._cache = cache

    def rate(self, from_code: str, to_code: str) -> float | None:
        from_upper = (from_code or "").upper()
        to_upper = (to_code or "").upper()
        if from_upper == to_upper:
            return 1.0

        rates = self._cache.get()
        if rates is None:
            rates = self.refresh_rates()
        if rates is None:
            return None

        from_rate = 1.0 if from_upper == PIVOT_CURRENCY else rates.get(from_upper)
        to_rate = 1.0 if to_upper == PIVOT_CURRENCY else rates.get(to_upper)
        if not from_rate or to_rate is None:
            logger.info("currency.rate_missing from=%s to=%s", from_upper, to_upper)
            return None
        return to_rate / from_rate

    def convert(self, amount: float, from_code: str, to_code: str) -> float | None:
        if (from_code or "").upper() == (to_code or "").upper():
            return amount
        rate = self.rate(from_code, to_code)
        if rate is None:
            return None
        return amount * rate

    def refresh_rates(self) -> dict[str, float] | None:
        """Fetch from the source and write through to the cache; None when unavailable."""

        if self._source is None:
            return None
        try:
            rates = self._source.fetch_rates()
        except CurrencyRateError as exc:
            logger.warning("currency.fetch_failed error=%s", exc)
            return None
        self._cache.put(rates)
        return self._cache.get()


def get_default_currency_converter() -> CurrencyConverter:
    """Build a converter from settings; without an API key only cached rates are used."""

    from lifelog.db.session import SessionLocal

    settings = get_settings()
    source: RateSource | None = None
    if settings.currency_api_key:
        source = FreeCurrencyApiRateSource(
            api_key=settings.currency_api_key,
            url=settings.currency_api_url,
            timeout_seconds=settings.http_timeout_seconds,
        )
    cache = RateCache(
        timedelta(hours=settings.currency_cache_ttl_hours),
        session_factory=SessionLocal,
    )
    return CurrencyConverter(source, cache)
