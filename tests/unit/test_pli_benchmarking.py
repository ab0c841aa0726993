"""
Unit tests for PLI calculations and interquartile benchmarking.
"""
import math

import pytest

from tp_compliance.engines.benchmarking import benchmark_values, nearest_rank, parse_pli_type
from tp_compliance.engines.models import CompanyFinancials, FunctionalProfile, PLIType
from tp_compliance.engines.pli import (
    average_pli,
    calculate_pli,
    recommended_pli,
    working_capital_adjustment,
    working_capital_days,
)
from tp_compliance.errors import ComputationError, InsufficientComparablesError, ValidationError


def make_financials(**overrides):
    values = {
        "financial_year": "2023-24",
        "revenue": 5.0e9,
        "operating_revenue": 4.8e9,
        "total_cost": 4.2e9,
        "operating_cost": 4.0e9,
        "gross_profit": 1.2e9,
        "operating_profit": 8.0e8,
        "net_profit": 6.0e8,
        "total_assets": 3.0e9,
        "fixed_assets": 5.0e8,
        "current_assets": 2.5e9,
        "total_liabilities": 1.0e9,
        "shareholders_equity": 2.0e9,
        "employee_cost": 2.8e9,
        "depreciation": 1.0e8,
        "interest_expense": 5.0e7,
    }
    values.update(overrides)
    return CompanyFinancials(**values)


class TestCalculatePli:
    """Ratio derivation from one year's financials."""

    def test_all_ratios(self):
        """Each PLI uses its own denominator."""
        pli = calculate_pli(make_financials())

        assert pli.op_oc == pytest.approx(0.2)
        assert pli.op_or == pytest.approx(8.0e8 / 4.8e9)
        assert pli.op_ta == pytest.approx(8.0e8 / 3.0e9)
        assert pli.op_ce == pytest.approx(8.0e8 / 2.05e9)
        assert pli.berry_ratio == pytest.approx(1.0)
        assert pli.ncp_sales == pli.op_oc

    def test_zero_denominators_give_zero(self):
        """No NaN or infinity escapes from a zero base."""
        pli = calculate_pli(make_financials(operating_cost=0.0, operating_revenue=0.0, total_assets=0.0))

        assert pli.op_oc == 0.0
        assert pli.op_or == 0.0
        assert pli.op_ta == 0.0
        assert all(math.isfinite(v) for v in (pli.op_ce, pli.berry_ratio))

    def test_negative_denominator_gives_zero(self):
        """A negative cost base does not flip the sign of the ratio."""
        pli = calculate_pli(make_financials(operating_cost=-1.0e9))

        assert pli.op_oc == 0.0

    def test_average_over_years(self):
        """Multi-year averages are plain arithmetic means."""
        first = calculate_pli(make_financials())
        second = calculate_pli(make_financials(operating_profit=4.0e8))

        averaged = average_pli([first, second])

        assert averaged.op_oc == pytest.approx(0.15)

    def test_average_of_nothing(self):
        """Averaging zero years is a computation error."""
        with pytest.raises(ComputationError):
            average_pli([])


class TestRecommendedPli:
    """Functional profile to PLI mapping."""

    @pytest.mark.parametrize(
        "profile, expected",
        [
            (FunctionalProfile.DISTRIBUTOR, PLIType.BERRY_RATIO),
            (FunctionalProfile.FULL_FLEDGED_MANUFACTURER, PLIType.OP_OR),
            (FunctionalProfile.HOLDING_COMPANY, PLIType.OP_TA),
            ("IT_SERVICES", PLIType.OP_OC),
        ],
    )
    def test_mapping(self, profile, expected):
        assert recommended_pli(profile) == expected


class TestWorkingCapital:
    """Working capital adjustment against the tested party."""

    def test_days_from_balances(self):
        """Receivables use revenue, inventory and payables use operating cost."""
        financials = make_financials(
            revenue=365.0e6, operating_cost=365.0e6, receivables=60.0e6, inventory=30.0e6, payables=20.0e6
        )

        days = working_capital_days(financials)

        assert days["receivables_days"] == pytest.approx(60.0)
        assert days["inventory_days"] == pytest.approx(30.0)
        assert days["payables_days"] == pytest.approx(20.0)
        assert days["working_capital_days"] == pytest.approx(70.0)

    def test_adjustment_in_percentage_points(self):
        """Adjustment = difference / 365 x rate x 100, subtracted from the PLI."""
        financials = make_financials(
            revenue=365.0e6, operating_cost=365.0e6, receivables=60.0e6, inventory=30.0e6, payables=20.0e6
        )

        result = working_capital_adjustment("CIN1", "Comparable", financials, 12.0, 40.0)

        assert result.difference == pytest.approx(30.0)
        assert result.adjustment == pytest.approx(30 / 365 * 0.10 * 100)
        assert result.adjusted_pli == pytest.approx(12.0 - result.adjustment)
        assert result.adjustment_rate == 0.10

    def test_missing_balances_count_as_zero(self):
        """Companies without balance data have zero working capital days."""
        days = working_capital_days(make_financials())

        assert days["working_capital_days"] == 0.0


class TestBenchmarkValues:
    """Nearest-rank quartiles."""

    def test_nearest_rank_indexes(self):
        """Index is floor(n x fraction) on the sorted list."""
        values = [0.10, 0.12, 0.15, 0.18, 0.22]

        assert nearest_rank(values, 0.25) == 0.12
        assert nearest_rank(values, 0.5) == 0.15
        assert nearest_rank(values, 0.75) == 0.18

    def test_quartiles_and_position(self):
        """Input order does not matter; tested party is classified against the range."""
        result = benchmark_values([0.22, 0.10, 0.18, 0.15, 0.12], PLIType.OP_OC, tested_party_pli=0.11)

        assert result.quartile1 == 0.12
        assert result.median == 0.15
        assert result.quartile3 == 0.18
        assert result.min == 0.10
        assert result.max == 0.22
        assert result.n == 5
        assert result.range == {"lower": 0.12, "upper": 0.18}
        assert result.tested_party_position == "below"

    @pytest.mark.parametrize(
        "values",
        [
            [0.07],
            [0.21, -0.04],
            [0.3, 0.1, 0.2],
            [0.05, 0.05, 0.05, 0.05],
            [0.10, 0.18, 0.19, 0.20, 0.25, -0.02],
            [i / 100 for i in range(17, 0, -1)],
        ],
    )
    def test_quartiles_are_ordered(self, values):
        """min <= Q1 <= median <= Q3 <= max for any set size, including one and two."""
        result = benchmark_values(values, PLIType.OP_OC)

        assert result.min <= result.quartile1 <= result.median <= result.quartile3 <= result.max
        assert result.n == len(values)

    def test_op_oc_set_with_tested_party_below(self):
        """Five comparables give Q1 0.18, median 0.19 and Q3 0.20; 15% falls below the range."""
        result = benchmark_values([0.10, 0.18, 0.19, 0.20, 0.25], PLIType.OP_OC, tested_party_pli=0.15)

        assert result.quartile1 == 0.18
        assert result.median == 0.19
        assert result.quartile3 == 0.20
        assert result.tested_party_position == "below"

    @pytest.mark.parametrize("tested, position", [(0.12, "within"), (0.18, "within"), (0.19, "above")])
    def test_range_bounds_are_inclusive(self, tested, position):
        result = benchmark_values([0.10, 0.12, 0.15, 0.18, 0.22], "opOc", tested_party_pli=tested)

        assert result.tested_party_position == position

    def test_non_finite_values_are_dropped(self):
        """NaN and infinity never reach the ranking."""
        result = benchmark_values([0.1, float("nan"), 0.2, float("inf")], PLIType.OP_OR)

        assert result.n == 2

    def test_empty_set_is_insufficient(self):
        """An empty comparable set raises rather than returning zeros."""
        with pytest.raises(InsufficientComparablesError):
            benchmark_values([], PLIType.OP_OC)

    def test_minimum_set_size(self):
        """The configured minimum is enforced."""
        with pytest.raises(InsufficientComparablesError, match="at least 3 required"):
            benchmark_values([0.1, 0.2], PLIType.OP_OC, minimum=3)

    def test_unknown_pli_type(self):
        """Unknown PLI names are a validation error listing the valid ones."""
        with pytest.raises(ValidationError, match="berryRatio"):
            parse_pli_type("roce")
