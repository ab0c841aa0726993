"""
Unit tests for the Section 94B interest limitation engine.
"""
import pytest

from tp_compliance.config.schema import ThinCapConfig
from tp_compliance.engines.carryforward import CarryforwardEntry
from tp_compliance.engines.thin_cap_engine import InterestExpense, ThinCapEngine, ThinCapFinancials, ThinCapInput
from tp_compliance.engines.thin_cap_rules import (
    EntityType,
    LenderType,
    calculate_allowable_interest,
    carryforward_expiry_year,
    is_interest_covered,
    overview,
)
from tp_compliance.errors import ValidationError


class TestInterestLimitation:
    """Applicable cases: covered interest above Rs 1 crore."""

    def test_disallows_excess_over_thirty_percent(self, thin_cap_engine, limited_input):
        """Allowable is the lower of 30% EBITDA and covered interest."""
        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        assert result.is_applicable is True
        assert result.ebitda_result.total_ebitda == 100_000_000
        assert result.ebitda_result.thirty_percent_ebitda == 30_000_000
        assert result.interest_analysis.interest_covered_under_94b == 35_000_000
        assert result.allowable_interest == 30_000_000
        assert result.disallowed_interest == 5_000_000

    def test_deductible_is_covered_minus_disallowed(self, thin_cap_engine, limited_input):
        """Deductible interest reconciles with covered interest."""
        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        covered = result.interest_analysis.interest_covered_under_94b
        assert result.deductible_interest == covered - result.disallowed_interest

    def test_resident_bank_interest_not_covered(self, thin_cap_engine, limited_input):
        """Interest to a non-AE lender stays outside Section 94B."""
        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        bank = result.interest_analysis.lender_wise_breakdown[1]
        assert bank.is_covered_under_94b is False
        assert bank.lender_type == LenderType.RESIDENT_NON_AE
        assert bank.reason_if_not_covered == "Lender is not an Associated Enterprise"
        assert result.interest_analysis.interest_not_covered == 5_000_000

    def test_disallowance_starts_carryforward(self, thin_cap_engine, limited_input):
        """Current year disallowance becomes the closing carryforward balance."""
        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        carryforward = result.carryforward_result
        assert carryforward.closing_balance == 5_000_000
        assert carryforward.available_for_future[0].disallowance_year == "2024-25"
        assert carryforward.available_for_future[0].expiry_year == "2032-33"

    def test_computation_steps_are_numbered(self, thin_cap_engine, limited_input):
        """The audit trail runs from covered interest to disallowance."""
        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        assert [s.step for s in result.computation_steps] == [1, 2, 3, 4, 5]
        assert result.computation_steps[3].formula == "MIN(30,000,000, 35,000,000)"

    def test_summary_mentions_carryforward(self, thin_cap_engine, limited_input):
        """Summary text uses Indian digit grouping."""
        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        assert "Section 94B Analysis for AY 2024-25" in result.summary
        assert "Disallowed interest: Rs. 50,00,000" in result.summary
        assert "carried forward for 8 assessment years" in result.summary

    def test_ae_interest_above_thirty_percent_of_ebitda(self, thin_cap_engine):
        """EBITDA of 17.5 Cr allows 5.25 Cr against 8.5 Cr of AE interest."""
        data = ThinCapInput(
            assessment_year="2024-25",
            entity_type=EntityType.INDIAN_COMPANY,
            financials=ThinCapFinancials(
                profit_before_tax=80_000_000,
                total_interest_expense=85_000_000,
                depreciation=10_000_000,
                amortization=0,
            ),
            interest_expenses=[
                InterestExpense(
                    lender_name="Offshore Parent Ltd",
                    interest_amount=85_000_000,
                    is_ae=True,
                    lender_country="Singapore",
                ),
            ],
        )

        result = thin_cap_engine.calculate_interest_limitation(data)

        assert result.ebitda_result.total_ebitda == 175_000_000
        assert result.allowable_interest == 52_500_000
        assert result.disallowed_interest == 32_500_000
        assert result.deductible_interest == 52_500_000


class TestNotApplicable:
    """Exempt entities and amounts below the threshold."""

    def test_below_threshold_allows_full_interest(self, thin_cap_engine, limited_input):
        """Covered interest at or below Rs 1 crore is fully deductible."""
        limited_input.interest_expenses[0].interest_amount = 8_000_000

        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        assert result.is_applicable is False
        assert result.disallowed_interest == 0
        assert result.allowable_interest == limited_input.financials.total_interest_expense
        assert "does not exceed threshold" in result.non_applicability_reason

    def test_threshold_is_exclusive(self, thin_cap_engine, limited_input):
        """Exactly Rs 1 crore does not trigger the limitation."""
        limited_input.interest_expenses[0].interest_amount = 10_000_000

        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        assert result.is_applicable is False

    def test_exempt_entity_short_circuits(self, thin_cap_engine, limited_input):
        """Banks are exempt regardless of interest paid."""
        limited_input.entity_code = "BANK"

        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        assert result.is_applicable is False
        assert "exempt" in result.non_applicability_reason
        assert result.computation_steps == []
        assert result.deductible_interest == 40_000_000

    def test_domestic_loan_type_not_covered(self):
        """Interest types are matched case-insensitively."""
        assert is_interest_covered("loan_interest") is True
        assert is_interest_covered("DOMESTIC_LOAN") is False
        assert is_interest_covered("something_else") is False


class TestNegativeEbitda:
    """Loss-making years."""

    def test_raw_limit_reported_but_disallowance_capped(self, thin_cap_engine, limited_input):
        """A negative 30% limit is reported as is; the disallowance stops at covered interest."""
        limited_input.financials.profit_before_tax = -80_000_000

        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        assert result.ebitda_result.total_ebitda == -30_000_000
        assert result.allowable_interest == -9_000_000
        assert result.disallowed_interest == 35_000_000
        assert result.deductible_interest == 0
        assert result.carryforward_result.closing_balance == 35_000_000

    def test_floor_at_zero_when_configured(self, limited_input):
        """With the floor enabled the whole covered amount is disallowed."""
        engine = ThinCapEngine(ThinCapConfig(floor_allowable_at_zero=True))
        limited_input.financials.profit_before_tax = -80_000_000

        result = engine.calculate_interest_limitation(limited_input)

        assert result.allowable_interest == 0
        assert result.disallowed_interest == 35_000_000


class TestCarryforwardRegister:
    """Brought forward disallowances in the current year."""

    def test_utilizes_valid_entries_and_expires_old_ones(self, thin_cap_engine, limited_input):
        """Entries older than eight years lapse; newer ones absorb headroom."""
        limited_input.assessment_year = "2025-26"
        limited_input.interest_expenses[0].interest_amount = 20_000_000
        limited_input.carryforward_history = [
            CarryforwardEntry("2020-21", original_amount=2_000_000, remaining_balance=2_000_000),
            CarryforwardEntry("2016-17", original_amount=1_000_000, remaining_balance=1_000_000),
        ]

        result = thin_cap_engine.calculate_interest_limitation(limited_input)
        carryforward = result.carryforward_result

        assert result.disallowed_interest == 0
        assert carryforward.opening_balance == 3_000_000
        assert carryforward.utilization_in_current_year == 2_000_000
        assert carryforward.expired_in_current_year == 1_000_000
        assert carryforward.closing_balance == 0
        # Oldest first
        assert [d.year for d in carryforward.year_wise_details] == ["2016-17", "2020-21"]

    def test_expiry_year_defaults_from_disallowance_year(self):
        """Expiry is eight assessment years after the disallowance."""
        entry = CarryforwardEntry("2019-20", original_amount=1.0, remaining_balance=1.0)

        assert entry.expiry_year == "2027-28"
        assert carryforward_expiry_year("2099-00") == "2107-08"


class TestValidation:
    """Blocking issues raise before any computation."""

    def test_bad_assessment_year(self, thin_cap_engine, limited_input):
        """Assessment years must look like YYYY-YY."""
        limited_input.assessment_year = "2024"

        with pytest.raises(ValidationError) as exc_info:
            thin_cap_engine.calculate_interest_limitation(limited_input)

        assert exc_info.value.field == "assessmentYear"
        assert "TC001" in [i.code for i in exc_info.value.issues]

    def test_missing_financials(self, thin_cap_engine, limited_input):
        """EBITDA cannot be built without financials."""
        limited_input.financials = None

        with pytest.raises(ValidationError) as exc_info:
            thin_cap_engine.calculate_interest_limitation(limited_input)

        assert "TC003" in [i.code for i in exc_info.value.issues]

    def test_negative_interest_expense(self, thin_cap_engine, limited_input):
        """Negative interest expense is rejected."""
        limited_input.financials.total_interest_expense = -1

        with pytest.raises(ValidationError, match="Interest expense cannot be negative"):
            thin_cap_engine.calculate_interest_limitation(limited_input)

    def test_pre_2018_year_is_only_a_warning(self, thin_cap_engine, limited_input):
        """Years before Section 94B still compute, with a warning attached."""
        limited_input.assessment_year = "2016-17"

        result = thin_cap_engine.calculate_interest_limitation(limited_input)

        assert "TC002" in [i.code for i in result.validation_issues]

    def test_lender_type_defaults_from_ae_flag(self):
        """AE lenders default to non-resident AE, others to resident non-AE."""
        ae = InterestExpense(lender_name="Parent", interest_amount=1.0, is_ae=True)
        other = InterestExpense(lender_name="Bank", interest_amount=1.0, is_ae=False)

        assert ae.lender_type == LenderType.NON_RESIDENT_AE
        assert other.lender_type == LenderType.RESIDENT_NON_AE


class TestRulesReference:
    """Statutory helpers behind the engine and GET /thin-cap."""

    def test_allowable_interest_percentage(self):
        """Thirty percent unless a year's rule says otherwise."""
        assert calculate_allowable_interest(100_000_000) == 30_000_000
        assert calculate_allowable_interest(100_000_000, percentage=25) == 25_000_000

    def test_engine_limit_follows_rules(self, thin_cap_engine):
        """The engine's limit is the same 30% figure."""
        assert thin_cap_engine.allowable_limit(175_000_000, "2024-25") == calculate_allowable_interest(175_000_000)

    def test_overview_carries_section_text(self):
        """The overview quotes the section's operative text."""
        ref = overview()

        assert ref["description"].startswith("Section 94B - Limitation on interest deduction")
        assert "8 assessment years" in ref["description"]
