"""Exchange rate sources for the forex engine.

Two providers are available: RBI reference rates (published against INR) and
ECB rates (published against EUR). Neither has a live feed wired in; both are
served from the reference table below and tagged with their provider. Any
object exposing ``name``, ``timeout``, ``fetch_rate``, ``fetch_historical_rates``
and ``test_connection`` satisfies :class:`RateSource`.
"""

from __future__ import annotations

import random
import time
from datetime import date, timedelta
from typing import Optional, Protocol

from ..errors import UnknownCurrencyError, ValidationError
from .models import ConnectionTestResult, ForexRate, RateSourceName

REFERENCE_CURRENCY = "INR"

# INR per unit of foreign currency (January 2025 reference levels)
STATIC_INR_RATES: dict[str, float] = {
    "USD": 83.25,
    "EUR": 90.50,
    "GBP": 105.75,
    "JPY": 0.56,
    "CHF": 95.00,
    "AUD": 54.00,
    "CAD": 61.50,
    "SGD": 62.00,
    "HKD": 10.65,
    "AED": 22.67,
    "SAR": 22.20,
    "CNY": 11.75,
    "KRW": 0.062,
    "THB": 2.40,
    "MYR": 18.50,
    "IDR": 0.0052,
    "PHP": 1.50,
}

CURRENCY_INFO: dict[str, dict[str, object]] = {
    "USD": {"name": "US Dollar", "symbol": "$", "decimals": 2},
    "EUR": {"name": "Euro", "symbol": "€", "decimals": 2},
    "GBP": {"name": "British Pound", "symbol": "£", "decimals": 2},
    "JPY": {"name": "Japanese Yen", "symbol": "¥", "decimals": 0},
    "CHF": {"name": "Swiss Franc", "symbol": "CHF", "decimals": 2},
    "AUD": {"name": "Australian Dollar", "symbol": "A$", "decimals": 2},
    "CAD": {"name": "Canadian Dollar", "symbol": "C$", "decimals": 2},
    "SGD": {"name": "Singapore Dollar", "symbol": "S$", "decimals": 2},
    "HKD": {"name": "Hong Kong Dollar", "symbol": "HK$", "decimals": 2},
    "AED": {"name": "UAE Dirham", "symbol": "د.إ", "decimals": 2},
    "SAR": {"name": "Saudi Riyal", "symbol": "﷼", "decimals": 2},
    "CNY": {"name": "Chinese Yuan", "symbol": "¥", "decimals": 2},
    "KRW": {"name": "South Korean Won", "symbol": "₩", "decimals": 0},
    "THB": {"name": "Thai Baht", "symbol": "฿", "decimals": 2},
    "MYR": {"name": "Malaysian Ringgit", "symbol": "RM", "decimals": 2},
    "IDR": {"name": "Indonesian Rupiah", "symbol": "Rp", "decimals": 0},
    "PHP": {"name": "Philippine Peso", "symbol": "₱", "decimals": 2},
    "INR": {"name": "Indian Rupee", "symbol": "₹", "decimals": 2},
}

# Maximum relative deviation applied to synthetic historical rates
HISTORICAL_VARIANCE = 0.01


def inr_value(currency: str) -> float:
    """INR per one unit of ``currency``."""
    code = currency.upper()
    if code == REFERENCE_CURRENCY:
        return 1.0
    if code not in STATIC_INR_RATES:
        raise UnknownCurrencyError(code)
    return STATIC_INR_RATES[code]


def reference_rate(base: str, quote: str) -> float:
    """Rate for ``base``/``quote`` derived from the INR reference table.

    Direct when the quote is INR, reciprocal when the base is INR, otherwise
    triangulated through INR.
    """
    base, quote = base.upper(), quote.upper()
    if base == quote:
        # Still reject codes we do not know.
        inr_value(base)
        return 1.0
    if quote == REFERENCE_CURRENCY:
        return inr_value(base)
    if base == REFERENCE_CURRENCY:
        return 1 / inr_value(quote)
    return inr_value(base) / inr_value(quote)


def weekdays(start_date: date, end_date: date) -> list[date]:
    """Business days (Monday to Friday) in the inclusive range."""
    if start_date > end_date:
        raise ValidationError(
            f"start date {start_date.isoformat()} is after end date {end_date.isoformat()}", field="startDate"
        )
    days = []
    current = start_date
    while current <= end_date:
        if current.weekday() < 5:
            days.append(current)
        current += timedelta(days=1)
    return days


def synthetic_series(
    anchor: ForexRate, start_date: date, end_date: date, rng: random.Random
) -> list[ForexRate]:
    """Simulated daily rates around ``anchor`` for each weekday in range.

    No historical feed is wired in, so every generated rate is flagged
    ``synthetic=True``.
    """
    series = []
    for day in weekdays(start_date, end_date):
        variance = 1 + (rng.random() - 0.5) * 2 * HISTORICAL_VARIANCE
        series.append(
            ForexRate(
                base_currency=anchor.base_currency,
                quote_currency=anchor.quote_currency,
                rate=anchor.rate * variance,
                date=day.isoformat(),
                source=anchor.source,
                timestamp=time.mktime(day.timetuple()),
                synthetic=True,
            )
        )
    return series


class RateSource(Protocol):
    """Capability shared by every exchange rate provider."""

    name: RateSourceName
    timeout: float

    async def fetch_rate(self, base: str, quote: str) -> ForexRate: ...

    async def fetch_historical_rates(self, base: str, quote: str, start_date: date, end_date: date) -> list[ForexRate]: ...

    async def test_connection(self) -> ConnectionTestResult: ...


class RBIRateSource:
    """Reserve Bank of India reference rates, published against INR."""

    name = RateSourceName.RBI
    base_url = "https://www.rbi.org.in/scripts/ReferenceRateArchive.aspx"

    def __init__(self, timeout: float = 10.0, rng: Optional[random.Random] = None) -> None:
        self.timeout = timeout
        self.rng = rng or random.Random()

    async def fetch_rate(self, base: str, quote: str) -> ForexRate:
        rate = reference_rate(base, quote)
        return _make_rate(base, quote, rate, self.name)

    async def fetch_historical_rates(self, base: str, quote: str, start_date: date, end_date: date) -> list[ForexRate]:
        anchor = await self.fetch_rate(base, quote)
        return synthetic_series(anchor, start_date, end_date, self.rng)

    async def test_connection(self) -> ConnectionTestResult:
        started = time.perf_counter()
        return ConnectionTestResult(
            success=True,
            message="RBI reference rates available via static data",
            latency_ms=(time.perf_counter() - started) * 1000,
        )


class ECBRateSource:
    """European Central Bank rates, published against EUR."""

    name = RateSourceName.ECB
    base_url = "https://data.ecb.europa.eu/data-detail-api"

    def __init__(self, timeout: float = 15.0, rng: Optional[random.Random] = None) -> None:
        self.timeout = timeout
        self.rng = rng or random.Random()

    async def fetch_rate(self, base: str, quote: str) -> ForexRate:
        # Both legs are expressed against EUR and then divided.
        eur_inr = STATIC_INR_RATES["EUR"]
        base_per_eur = eur_inr / inr_value(base)
        quote_per_eur = eur_inr / inr_value(quote)
        return _make_rate(base, quote, quote_per_eur / base_per_eur, self.name)

    async def fetch_historical_rates(self, base: str, quote: str, start_date: date, end_date: date) -> list[ForexRate]:
        anchor = await self.fetch_rate(base, quote)
        return synthetic_series(anchor, start_date, end_date, self.rng)

    async def test_connection(self) -> ConnectionTestResult:
        started = time.perf_counter()
        return ConnectionTestResult(
            success=True,
            message="ECB exchange rates service available",
            latency_ms=(time.perf_counter() - started) * 1000,
        )


def static_rate(base: str, quote: str) -> ForexRate:
    """Last-resort rate straight from the reference table."""
    return _make_rate(base, quote, reference_rate(base, quote), RateSourceName.STATIC)


def create_rate_source(
    provider: RateSourceName | str, timeout: Optional[float] = None, rng: Optional[random.Random] = None
) -> RateSource:
    """Build the rate source registered for ``provider``."""
    provider = RateSourceName(provider.upper())
    if provider == RateSourceName.RBI:
        return RBIRateSource(timeout=timeout or 10.0, rng=rng)
    if provider == RateSourceName.ECB:
        return ECBRateSource(timeout=timeout or 15.0, rng=rng)
    raise ValidationError(f"No rate source registered for {provider.value}", field="source")


def _make_rate(base: str, quote: str, rate: float, source: RateSourceName) -> ForexRate:
    return ForexRate(
        base_currency=base.upper(),
        quote_currency=quote.upper(),
        rate=rate,
        date=date.today().isoformat(),
        source=source,
        timestamp=time.time(),
    )


__all__ = [
    "REFERENCE_CURRENCY",
    "STATIC_INR_RATES",
    "CURRENCY_INFO",
    "HISTORICAL_VARIANCE",
    "inr_value",
    "reference_rate",
    "weekdays",
    "synthetic_series",
    "RateSource",
    "RBIRateSource",
    "ECBRateSource",
    "static_rate",
    "create_rate_source",
]
