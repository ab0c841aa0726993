"""Forex Engine.

Resolves currency pairs through a tiered chain (engine cache, primary source,
fallback source, static reference table), converts amounts and summarises
period averages for transfer pricing comparisons.
"""

from __future__ import annotations

import asyncio
import math
import random
import time
from datetime import date, datetime
from typing import Optional, Union

from loguru import logger

from ..config.schema import ForexConfig
from ..errors import ComputationError, TPComplianceError, UnknownCurrencyError, ValidationError
from .forex_sources import (
    CURRENCY_INFO,
    REFERENCE_CURRENCY,
    RateSource,
    create_rate_source,
    static_rate,
)
from .models import AverageRateResult, ConversionResult, ForexRate, RateSourceName
from .rate_cache import RateCache

DateLike = Union[date, str]

_SOURCE_ERRORS = (TPComplianceError, asyncio.TimeoutError, OSError)


class ForexEngine:
    """Exchange rate resolution with caching and fallback."""

    def __init__(
        self,
        config: Optional[ForexConfig] = None,
        *,
        primary: Optional[RateSource] = None,
        fallback: Optional[RateSource] = None,
        cache: Optional[RateCache[ForexRate]] = None,
    ) -> None:
        self.config = config or ForexConfig()
        self.logger = logger.bind(module="forex_engine")
        self.rng = random.Random(self.config.historical_seed)

        rbi = create_rate_source(RateSourceName.RBI, timeout=self.config.rbi_timeout, rng=self.rng)
        ecb = create_rate_source(RateSourceName.ECB, timeout=self.config.ecb_timeout, rng=self.rng)
        self.sources: dict[RateSourceName, RateSource] = {RateSourceName.RBI: rbi, RateSourceName.ECB: ecb}

        if self.config.primary_source == "RBI":
            self.primary, self.fallback = rbi, ecb
        else:
            self.primary, self.fallback = ecb, rbi
        if primary is not None:
            self.primary = primary
        if fallback is not None:
            self.fallback = fallback

        self.cache: RateCache[ForexRate] = cache or RateCache(self.config.cache_ttl_seconds)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def get_rate(self, base: str, quote: str) -> ForexRate:
        """Resolve ``base``/``quote`` through cache, primary, fallback, then static table.

        Raises:
            UnknownCurrencyError: If no tier, including the static table, knows a code.
        """
        base, quote = base.upper(), quote.upper()
        key = RateCache.key(base, quote)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        for source in self._source_chain():
            rate = await self._fetch(source, base, quote)
            if rate is not None:
                self.cache.set(key, rate)
                return rate

        self.logger.warning(f"All rate sources failed for {base}/{quote}; using static table")
        return static_rate(base, quote)

    async def convert(self, from_currency: str, to_currency: str, amount: float) -> ConversionResult:
        rate = await self.get_rate(from_currency, to_currency)
        return ConversionResult(
            from_currency=rate.base_currency,
            to_currency=rate.quote_currency,
            from_amount=amount,
            to_amount=amount * rate.rate,
            rate=rate.rate,
            inverse_rate=1 / rate.rate,
            date=rate.date,
            source=rate.source,
        )

    async def convert_multiple(self, base: str, targets: list[str], amount: float) -> dict[str, object]:
        """Convert one amount into several currencies at once."""
        conversions = await asyncio.gather(*(self.convert(base, target, amount) for target in targets))
        used = {c.source for c in conversions}
        if RateSourceName.RBI in used:
            source = RateSourceName.RBI
        elif RateSourceName.ECB in used:
            source = RateSourceName.ECB
        else:
            source = RateSourceName.STATIC
        return {
            "base_currency": base.upper(),
            "base_amount": amount,
            "conversions": list(conversions),
            "timestamp": time.time(),
            "source": source,
        }

    async def get_historical_rates(
        self, base: str, quote: str, start_date: DateLike, end_date: DateLike
    ) -> list[ForexRate]:
        """Daily (weekday) rates for the period.

        No historical feed is wired in; every returned rate has ``synthetic=True``.
        """
        if not self.config.enable_historical:
            raise ComputationError("Historical rates are disabled in configuration")

        start, end = _as_date(start_date, "startDate"), _as_date(end_date, "endDate")
        if start > end:
            raise ValidationError("startDate must not be after endDate", field="startDate")
        base, quote = base.upper(), quote.upper()

        try:
            return await asyncio.wait_for(
                self.primary.fetch_historical_rates(base, quote, start, end), timeout=self.primary.timeout
            )
        except _SOURCE_ERRORS as exc:
            if not self.config.enable_fallback:
                raise
            self.logger.warning(f"{self.primary.name.value} historical rates failed ({exc}); trying fallback")
            return await asyncio.wait_for(
                self.fallback.fetch_historical_rates(base, quote, start, end), timeout=self.fallback.timeout
            )

    async def get_average_rate(
        self, base: str, quote: str, start_date: DateLike, end_date: DateLike
    ) -> AverageRateResult:
        rates = await self.get_historical_rates(base, quote, start_date, end_date)
        if not rates:
            raise ComputationError("No rates available for the specified period")

        values = [r.rate for r in rates]
        average = sum(values) / len(values)
        volatility = math.sqrt(sum((v - average) ** 2 for v in values) / len(values))

        return AverageRateResult(
            base_currency=base.upper(),
            quote_currency=quote.upper(),
            start_date=_as_date(start_date, "startDate").isoformat(),
            end_date=_as_date(end_date, "endDate").isoformat(),
            average_rate=average,
            min_rate=min(values),
            max_rate=max(values),
            volatility=volatility,
            data_points=len(values),
            synthetic=any(r.synthetic for r in rates),
        )

    async def get_financial_year_average_rate(self, base: str, quote: str, financial_year: str) -> AverageRateResult:
        """Average over an Indian financial year, e.g. ``"2024-25"`` (1 April to 31 March)."""
        start, end = financial_year_bounds(financial_year)
        return await self.get_average_rate(base, quote, start, end)

    async def compare_rates(self, base: str, quote: str) -> dict[str, object]:
        """Compare RBI and ECB rates for the same pair."""
        base, quote = base.upper(), quote.upper()
        rbi_rate = await self._fetch(self.sources[RateSourceName.RBI], base, quote)
        ecb_rate = await self._fetch(self.sources[RateSourceName.ECB], base, quote)

        difference = None
        percentage_diff = None
        if rbi_rate is not None and ecb_rate is not None:
            difference = abs(rbi_rate.rate - ecb_rate.rate)
            percentage_diff = difference / min(rbi_rate.rate, ecb_rate.rate) * 100

        inr_pair = REFERENCE_CURRENCY in (base, quote)
        return {
            "base_currency": base,
            "quote_currency": quote,
            "rbi_rate": rbi_rate,
            "ecb_rate": ecb_rate,
            "difference": difference,
            "percentage_diff": percentage_diff,
            "recommended_source": RateSourceName.RBI if inr_pair else RateSourceName.ECB,
        }

    async def get_all_inr_rates(self) -> list[ForexRate]:
        """Rates for every supported currency against INR, skipping unresolvable ones."""
        rates = []
        for currency in self.supported_currencies():
            if currency == REFERENCE_CURRENCY:
                continue
            try:
                rates.append(await self.get_rate(currency, REFERENCE_CURRENCY))
            except UnknownCurrencyError:
                self.logger.debug(f"No INR rate for {currency}")
        return rates

    async def get_tp_compliance_rates(self) -> dict[str, object]:
        rates = await asyncio.gather(*(self.get_rate(c, REFERENCE_CURRENCY) for c in self.config.tp_currencies))
        return {
            "rates": list(rates),
            "as_of": datetime.now().isoformat(),
            "source": self.config.primary_source,
        }

    async def test_connections(self) -> dict[str, object]:
        rbi, ecb = await asyncio.gather(
            self.sources[RateSourceName.RBI].test_connection(),
            self.sources[RateSourceName.ECB].test_connection(),
        )
        return {"rbi": rbi, "ecb": ecb}

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> dict[str, object]:
        return {"engine": self.cache.stats()}

    @staticmethod
    def supported_currencies() -> list[str]:
        return list(CURRENCY_INFO.keys())

    @staticmethod
    def currency_info(code: str) -> dict[str, object]:
        try:
            return CURRENCY_INFO[code.upper()]
        except KeyError:
            raise UnknownCurrencyError(code.upper()) from None

    @staticmethod
    def is_valid_currency(code: str) -> bool:
        return code.upper() in CURRENCY_INFO

    def format_amount(self, amount: float, currency: str) -> str:
        info = self.currency_info(currency)
        return f"{info['symbol']}{amount:.{info['decimals']}f}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _source_chain(self) -> list[RateSource]:
        if self.config.enable_fallback:
            return [self.primary, self.fallback]
        return [self.primary]

    async def _fetch(self, source: RateSource, base: str, quote: str) -> Optional[ForexRate]:
        """One source call bounded by the source timeout; failures return None."""
        try:
            return await asyncio.wait_for(source.fetch_rate(base, quote), timeout=source.timeout)
        except _SOURCE_ERRORS as exc:
            reason = "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
            self.logger.warning(f"{source.name.value} rate for {base}/{quote} unavailable: {reason}")
            return None


def financial_year_bounds(financial_year: str) -> tuple[date, date]:
    """First and last day of an Indian financial year label such as ``"2024-25"``."""
    head = financial_year.split("-")[0].strip()
    if not head.isdigit():
        raise ValidationError(f"Financial year must look like 2024-25, got: {financial_year}", field="financialYear")
    start_year = int(head)
    if start_year < 100:
        start_year += 2000
    return date(start_year, 4, 1), date(start_year + 1, 3, 31)


def _as_date(value: DateLike, field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an ISO date (YYYY-MM-DD), got: {value}", field=field_name) from None


__all__ = ["ForexEngine", "financial_year_bounds"]
