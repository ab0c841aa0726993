"""
Unit tests for the forex engine: tiered resolution, caching and period averages.
"""
import asyncio
from datetime import date

import pytest

from tp_compliance.config.schema import ForexConfig
from tp_compliance.engines.forex_engine import ForexEngine, financial_year_bounds
from tp_compliance.engines.forex_sources import HISTORICAL_VARIANCE, reference_rate, weekdays
from tp_compliance.engines.models import ConnectionTestResult, RateSourceName
from tp_compliance.engines.rate_cache import RateCache
from tp_compliance.errors import ComputationError, UnknownCurrencyError, UpstreamUnavailable, ValidationError


class FailingSource:
    """Rate source that is always down."""

    name = RateSourceName.RBI
    timeout = 1.0

    def __init__(self):
        self.calls = 0

    async def fetch_rate(self, base, quote):
        self.calls += 1
        raise UpstreamUnavailable("RBI", "service unavailable")

    async def fetch_historical_rates(self, base, quote, start_date, end_date):
        raise UpstreamUnavailable("RBI", "service unavailable")

    async def test_connection(self):
        return ConnectionTestResult(success=False, message="down")


class SlowSource(FailingSource):
    """Rate source that never answers within its timeout."""

    timeout = 0.01

    async def fetch_rate(self, base, quote):
        self.calls += 1
        await asyncio.sleep(1)


class TestReferenceTable:
    """Static INR reference rates."""

    def test_direct_reciprocal_and_cross(self):
        assert reference_rate("USD", "INR") == 83.25
        assert reference_rate("INR", "USD") == pytest.approx(1 / 83.25)
        assert reference_rate("EUR", "USD") == pytest.approx(90.50 / 83.25)
        assert reference_rate("usd", "usd") == 1.0

    def test_unknown_code(self):
        with pytest.raises(UnknownCurrencyError) as exc_info:
            reference_rate("XYZ", "INR")

        assert exc_info.value.currency == "XYZ"

    def test_weekdays_skip_weekends(self):
        """1 April 2024 was a Monday."""
        days = weekdays(date(2024, 4, 1), date(2024, 4, 7))

        assert len(days) == 5
        assert days[-1] == date(2024, 4, 5)


class TestGetRate:
    """Cache, primary, fallback, static."""

    async def test_primary_source(self):
        engine = ForexEngine()

        rate = await engine.get_rate("usd", "inr")

        assert rate.rate == 83.25
        assert rate.base_currency == "USD"
        assert rate.source == RateSourceName.RBI
        assert rate.synthetic is False

    async def test_ecb_primary_when_configured(self):
        engine = ForexEngine(ForexConfig(primary_source="ecb"))

        rate = await engine.get_rate("USD", "INR")

        assert rate.source == RateSourceName.ECB
        assert rate.rate == pytest.approx(83.25)

    async def test_second_call_served_from_cache(self):
        primary = FailingSource()
        engine = ForexEngine(primary=primary)

        first = await engine.get_rate("GBP", "INR")
        second = await engine.get_rate("GBP", "INR")

        assert first is second
        assert primary.calls == 1
        assert engine.cache_stats()["engine"]["size"] == 1

    async def test_fallback_when_primary_fails(self):
        engine = ForexEngine(primary=FailingSource())

        rate = await engine.get_rate("USD", "INR")

        assert rate.source == RateSourceName.ECB

    async def test_timeout_counts_as_failure(self):
        engine = ForexEngine(primary=SlowSource())

        rate = await engine.get_rate("USD", "INR")

        assert rate.source == RateSourceName.ECB

    async def test_static_table_when_every_source_fails(self):
        engine = ForexEngine(primary=FailingSource(), fallback=FailingSource())

        rate = await engine.get_rate("USD", "INR")

        assert rate.source == RateSourceName.STATIC
        assert rate.rate == 83.25

    async def test_fallback_disabled(self):
        """Without fallback the chain goes straight from primary to static."""
        engine = ForexEngine(ForexConfig(enable_fallback=False), primary=FailingSource())

        rate = await engine.get_rate("USD", "INR")

        assert rate.source == RateSourceName.STATIC

    async def test_unknown_currency_raises(self):
        engine = ForexEngine()

        with pytest.raises(UnknownCurrencyError):
            await engine.get_rate("ABC", "INR")

    async def test_clear_cache(self):
        engine = ForexEngine()
        await engine.get_rate("USD", "INR")

        engine.clear_cache()

        assert engine.cache_stats()["engine"]["size"] == 0


class TestConversion:
    """Amount conversion."""

    async def test_convert(self):
        engine = ForexEngine()

        result = await engine.convert("USD", "INR", 100)

        assert result.to_amount == pytest.approx(8325.0)
        assert result.inverse_rate == pytest.approx(1 / 83.25)
        assert result.source == RateSourceName.RBI

    async def test_convert_multiple(self):
        engine = ForexEngine()

        result = await engine.convert_multiple("usd", ["INR", "EUR"], 10)

        assert result["base_currency"] == "USD"
        assert [c.to_currency for c in result["conversions"]] == ["INR", "EUR"]
        assert result["source"] == RateSourceName.RBI

    @pytest.mark.parametrize(
        "base, quote",
        [("USD", "INR"), ("INR", "EUR"), ("GBP", "JPY"), ("EUR", "USD"), ("IDR", "KRW")],
    )
    async def test_round_trip_returns_original_amount(self, base, quote):
        """Direct, reciprocal and cross pairs convert back to the starting amount."""
        engine = ForexEngine()

        there = await engine.convert(quote, base, 12_345.67)
        back = await engine.convert(base, quote, there.to_amount)

        assert back.to_amount == pytest.approx(12_345.67)

    def test_format_amount(self):
        engine = ForexEngine()

        assert engine.format_amount(1234.5, "USD") == "$1234.50"
        assert engine.format_amount(1234.5, "JPY") == "¥1234"

    def test_currency_info(self):
        assert ForexEngine.currency_info("inr")["name"] == "Indian Rupee"
        assert ForexEngine.is_valid_currency("XYZ") is False
        with pytest.raises(UnknownCurrencyError):
            ForexEngine.currency_info("XYZ")


class TestHistorical:
    """Synthetic historical series and averages."""

    async def test_series_is_flagged_synthetic(self):
        engine = ForexEngine(ForexConfig(historical_seed=7))

        rates = await engine.get_historical_rates("USD", "INR", "2024-04-01", "2024-04-07")

        assert len(rates) == 5
        assert all(r.synthetic for r in rates)
        for rate in rates:
            assert abs(rate.rate / 83.25 - 1) <= HISTORICAL_VARIANCE

    async def test_seed_makes_series_repeatable(self):
        first = await ForexEngine(ForexConfig(historical_seed=42)).get_historical_rates(
            "EUR", "INR", date(2024, 1, 1), date(2024, 1, 31)
        )
        second = await ForexEngine(ForexConfig(historical_seed=42)).get_historical_rates(
            "EUR", "INR", date(2024, 1, 1), date(2024, 1, 31)
        )

        assert [r.rate for r in first] == [r.rate for r in second]

    async def test_disabled_historical(self):
        engine = ForexEngine(ForexConfig(enable_historical=False))

        with pytest.raises(ComputationError):
            await engine.get_historical_rates("USD", "INR", "2024-04-01", "2024-04-30")

    async def test_reversed_period(self):
        engine = ForexEngine()

        with pytest.raises(ValidationError):
            await engine.get_historical_rates("USD", "INR", "2024-05-01", "2024-04-01")

    async def test_bad_date_string(self):
        engine = ForexEngine()

        with pytest.raises(ValidationError, match="ISO date"):
            await engine.get_historical_rates("USD", "INR", "01/04/2024", "2024-04-30")

    async def test_financial_year_average(self):
        """FY 2024-25 has 261 weekdays."""
        engine = ForexEngine(ForexConfig(historical_seed=1))

        result = await engine.get_financial_year_average_rate("USD", "INR", "2024-25")

        assert result.start_date == "2024-04-01"
        assert result.end_date == "2025-03-31"
        assert result.data_points == 261
        assert result.min_rate <= result.average_rate <= result.max_rate
        assert result.synthetic is True

    def test_financial_year_bounds(self):
        assert financial_year_bounds("2023-24") == (date(2023, 4, 1), date(2024, 3, 31))
        assert financial_year_bounds("23-24") == (date(2023, 4, 1), date(2024, 3, 31))
        with pytest.raises(ValidationError):
            financial_year_bounds("FY24")


class TestComparisons:
    """Source comparison and bulk rates."""

    async def test_compare_rates(self):
        engine = ForexEngine()

        result = await engine.compare_rates("USD", "INR")

        assert result["rbi_rate"].source == RateSourceName.RBI
        assert result["ecb_rate"].source == RateSourceName.ECB
        assert result["difference"] == pytest.approx(0.0, abs=1e-9)
        assert result["recommended_source"] == RateSourceName.RBI

    async def test_non_inr_pair_prefers_ecb(self):
        result = await ForexEngine().compare_rates("EUR", "USD")

        assert result["recommended_source"] == RateSourceName.ECB

    async def test_all_inr_rates_skip_inr(self):
        rates = await ForexEngine().get_all_inr_rates()

        assert len(rates) == 17
        assert "INR" not in [r.base_currency for r in rates]

    async def test_tp_rates(self):
        result = await ForexEngine().get_tp_compliance_rates()

        assert [r.base_currency for r in result["rates"]] == ["USD", "EUR", "GBP", "JPY", "CHF", "SGD", "AED"]
        assert result["source"] == "RBI"

    async def test_tp_rates_follow_configuration(self):
        engine = ForexEngine(ForexConfig(tp_currencies="gbp, chf"))

        result = await engine.get_tp_compliance_rates()

        assert [r.base_currency for r in result["rates"]] == ["GBP", "CHF"]

    async def test_connections(self):
        result = await ForexEngine().test_connections()

        assert result["rbi"].success is True
        assert result["ecb"].success is True


class TestRateCache:
    """TTL behaviour with an injected clock."""

    def test_entries_expire(self):
        now = [100.0]
        cache = RateCache(ttl_seconds=10, clock=lambda: now[0])
        cache.set("USD_INR", 83.25)

        assert cache.get("USD_INR") == 83.25
        now[0] = 110.0
        assert cache.get("USD_INR") is None
        assert len(cache) == 0

    def test_key_is_case_insensitive(self):
        assert RateCache.key("usd", "Inr") == "USD_INR"
