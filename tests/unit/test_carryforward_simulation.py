"""
Unit tests for the multi-year carryforward simulation.
"""
import pytest

from tp_compliance.engines.carryforward import simulate_carryforward
from tp_compliance.errors import ValidationError


class TestSimulation:
    """Year-by-year utilisation of a disallowance."""

    def test_partial_utilization(self):
        """Only the excess of 30% EBITDA over interest absorbs the balance."""
        result = simulate_carryforward(5_000_000, [40_000_000, 50_000_000], [10_000_000, 14_000_000], "2024-25")

        first, second = result.simulation
        assert first.year == "2025-26"
        assert first.interest_limit == 12_000_000
        assert first.excess_capacity == 2_000_000
        assert first.carryforward_utilized == 2_000_000
        assert first.carryforward_remaining == 3_000_000
        assert second.year == "2026-27"
        assert second.carryforward_utilized == 1_000_000
        assert second.carryforward_remaining == 2_000_000

        assert result.summary.total_utilized == 3_000_000
        assert result.summary.expired_amount == 2_000_000
        assert result.summary.utilization_rate == "60.0%"
        assert "restructuring debt" in result.summary.recommendation

    def test_full_utilization(self):
        """A single strong year clears the whole balance."""
        result = simulate_carryforward(5_000_000, [100_000_000], [10_000_000], "2024-25")

        assert result.simulation[0].carryforward_remaining == 0
        assert result.summary.utilization_rate == "100.0%"
        assert result.summary.recommendation == "Full carryforward utilization projected"

    def test_utilized_plus_expired_equals_original(self):
        """Summary totals reconcile exactly with the original disallowance."""
        result = simulate_carryforward(1_234_567.89, [3_333_333.0, 2_000_000.0], [500_000.0, 400_000.0], "2023-24")

        summary = result.summary
        assert summary.total_utilized + summary.expired_amount == pytest.approx(summary.original_disallowance)

    def test_balance_consumed_over_three_years(self):
        """Excess capacity of 3, 4 and 5 lakh absorbs a 10 lakh disallowance exactly."""
        result = simulate_carryforward(
            1_000_000, [1_000_000, 2_000_000, 2_000_000], [0, 200_000, 100_000], "2024-25"
        )

        assert [y.excess_capacity for y in result.simulation] == [300_000, 400_000, 500_000]
        assert [y.carryforward_utilized for y in result.simulation] == [300_000, 400_000, 300_000]
        assert [y.carryforward_remaining for y in result.simulation] == [700_000, 300_000, 0]
        assert result.summary.total_utilized == pytest.approx(1_000_000)
        assert result.summary.expired_amount == pytest.approx(0)

    def test_caps_at_eight_years(self):
        """Projections beyond the carryforward window are ignored."""
        result = simulate_carryforward(1_000_000, [1.0] * 10, [0.0] * 10, "2020-21")

        assert len(result.simulation) == 8
        assert result.simulation[-1].year == "2028-29"

    def test_no_capacity_when_interest_exceeds_limit(self):
        """Years without headroom utilise nothing."""
        result = simulate_carryforward(1_000_000, [10_000_000], [5_000_000], "2024-25")

        assert result.simulation[0].excess_capacity == 0
        assert result.simulation[0].carryforward_utilized == 0
        assert result.summary.expired_amount == 1_000_000


class TestSimulationValidation:
    """Rejected inputs."""

    def test_non_positive_disallowance(self):
        """Nothing to simulate without a disallowance."""
        with pytest.raises(ValidationError) as exc_info:
            simulate_carryforward(0, [1.0], [1.0], "2024-25")

        assert exc_info.value.field == "disallowedInterest"

    def test_malformed_starting_year(self):
        """The starting year must parse."""
        with pytest.raises(ValidationError) as exc_info:
            simulate_carryforward(100.0, [1.0], [1.0], "last year")

        assert exc_info.value.field == "startingYear"

    def test_short_interest_projection(self):
        """Every simulated year needs an interest figure."""
        with pytest.raises(ValidationError, match="at least 2 entries"):
            simulate_carryforward(100.0, [1.0, 2.0], [1.0], "2024-25")
