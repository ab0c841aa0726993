"""Thin Capitalization Engine.

Applies the Section 94B interest limitation for one assessment year:
exemption check, interest analysis against the Rs 1 crore threshold, EBITDA
reconstruction, the 30% cap and carryforward of the disallowed excess.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from ..config.schema import ThinCapConfig
from ..errors import ValidationError
from ..utils.formatting import format_grouped, format_indian, round_half_up
from .carryforward import (
    CarryforwardEntry,
    CarryforwardResult,
    SimulationResult,
    simulate_carryforward,
    track_carryforward,
)
from .models import ComputationStep, Severity, ValidationIssue
from .thin_cap_rules import (
    CARRYFORWARD_YEARS,
    EntityType,
    LenderType,
    ay_start,
    calculate_allowable_interest,
    calculate_disallowed_interest,
    find_exempt_entity,
    get_ay_rules,
    is_interest_covered,
)

_AY_PATTERN = re.compile(r"^\d{4}-\d{2}$")


@dataclass
class ThinCapFinancials:
    profit_before_tax: float
    total_interest_expense: float
    depreciation: float
    amortization: float
    interest_income: Optional[float] = None
    # Gains negative, losses positive
    exceptional_items: Optional[float] = None


@dataclass
class InterestExpense:
    lender_name: str
    interest_amount: float
    is_ae: bool
    lender_country: str = ""
    principal_amount: float = 0.0
    interest_rate: float = 0.0
    lender_type: Optional[LenderType] = None
    interest_type: str = "LOAN_INTEREST"

    def __post_init__(self) -> None:
        if self.lender_type is None:
            self.lender_type = LenderType.NON_RESIDENT_AE if self.is_ae else LenderType.RESIDENT_NON_AE
        else:
            self.lender_type = LenderType(self.lender_type)


@dataclass
class ThinCapInput:
    assessment_year: str
    entity_type: EntityType
    financials: Optional[ThinCapFinancials]
    interest_expenses: list[InterestExpense] = field(default_factory=list)
    entity_code: Optional[str] = None
    carryforward_history: list[CarryforwardEntry] = field(default_factory=list)


@dataclass
class EBITDAResult:
    profit_before_tax: float = 0.0
    interest_add_back: float = 0.0
    depreciation_add_back: float = 0.0
    amortization_add_back: float = 0.0
    adjustments: float = 0.0
    total_ebitda: float = 0.0
    thirty_percent_ebitda: float = 0.0
    computation: list[ComputationStep] = field(default_factory=list)


@dataclass
class LenderInterestBreakdown:
    lender_name: str
    lender_type: LenderType
    interest_amount: float
    is_covered_under_94b: bool
    reason_if_not_covered: Optional[str] = None


@dataclass
class ThresholdCheck:
    threshold: float
    interest_amount: float
    exceeds_threshold: bool


@dataclass
class InterestAnalysis:
    total_interest_expense: float
    interest_to_non_resident_ae: float
    interest_covered_under_94b: float
    interest_not_covered: float
    lender_wise_breakdown: list[LenderInterestBreakdown]
    threshold_check: ThresholdCheck


@dataclass
class ExemptionResult:
    is_exempt: bool
    exemption_category: Optional[str] = None
    reference: Optional[str] = None


@dataclass
class ThinCapResult:
    is_applicable: bool
    assessment_year: str
    ebitda_result: EBITDAResult
    interest_analysis: InterestAnalysis
    allowable_interest: float
    disallowed_interest: float
    deductible_interest: float
    carryforward_result: CarryforwardResult
    computation_steps: list[ComputationStep]
    validation_issues: list[ValidationIssue]
    summary: str
    non_applicability_reason: Optional[str] = None


class ThinCapEngine:
    """Section 94B interest limitation calculator."""

    def __init__(self, config: Optional[ThinCapConfig] = None) -> None:
        self.config = config or ThinCapConfig()
        self.logger = logger.bind(module="thin_cap")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def calculate_interest_limitation(self, data: ThinCapInput) -> ThinCapResult:
        """Compute allowable and disallowed interest for one assessment year.

        Validation runs first; any error or critical issue raises
        ``ValidationError`` carrying every issue found. Exempt entities and
        covered interest at or below the threshold short-circuit with the full
        interest allowable and no EBITDA computation.

        Returns:
            ThinCapResult. ``deductible_interest`` is the covered interest less
            the disallowance (the full interest expense when not applicable).
        """
        issues = self.validate_input(data)
        blocking = [i for i in issues if i.blocking]
        if blocking:
            self.logger.info(f"Thin cap input rejected: {', '.join(i.code for i in blocking)}")
            raise ValidationError(blocking[0].message, field=blocking[0].field, issues=issues)

        exemption = self.check_exemptions(data)
        if exemption.is_exempt:
            return self._exempt_result(data, exemption, issues)

        analysis = self.analyze_interest(data)
        covered = analysis.interest_covered_under_94b
        steps = [
            ComputationStep(
                step=1,
                description="Total interest to non-resident AE",
                formula="Sum of interest to non-resident AE/guaranteed lenders",
                value=covered,
                reference="Section 94B(1)",
            )
        ]

        if not analysis.threshold_check.exceeds_threshold:
            return self._below_threshold_result(data, analysis, steps, issues)

        ebitda = self.calculate_ebitda(data.financials, data.assessment_year)
        steps.append(
            ComputationStep(
                step=2,
                description="EBITDA calculation",
                formula="PBT + Interest + Depreciation + Amortization",
                value=ebitda.total_ebitda,
                reference="Section 94B(2)",
            )
        )
        steps.append(
            ComputationStep(
                step=3,
                description="30% of EBITDA",
                formula="EBITDA × 30%",
                value=ebitda.thirty_percent_ebitda,
                reference="Section 94B(1)",
            )
        )

        allowable = min(ebitda.thirty_percent_ebitda, covered)
        disallowed = min(covered, calculate_disallowed_interest(covered, allowable))
        steps.append(
            ComputationStep(
                step=4,
                description="Allowable interest (lower of 30% EBITDA or actual)",
                formula=f"MIN({format_grouped(ebitda.thirty_percent_ebitda)}, {format_grouped(covered)})",
                value=allowable,
            )
        )
        steps.append(
            ComputationStep(
                step=5,
                description="Disallowed interest",
                formula="Interest covered - Allowable",
                value=disallowed,
            )
        )

        carryforward = track_carryforward(
            data.carryforward_history,
            disallowed,
            ebitda.thirty_percent_ebitda,
            data.assessment_year,
        )

        self.logger.info(
            f"AY {data.assessment_year}: covered interest {covered:.0f}, "
            f"allowable {allowable:.0f}, disallowed {disallowed:.0f}"
        )

        return ThinCapResult(
            is_applicable=True,
            assessment_year=data.assessment_year,
            ebitda_result=ebitda,
            interest_analysis=analysis,
            allowable_interest=allowable,
            disallowed_interest=disallowed,
            deductible_interest=covered - disallowed,
            carryforward_result=carryforward,
            computation_steps=steps,
            validation_issues=issues,
            summary=self._summary(data, ebitda, analysis, allowable, disallowed, carryforward),
        )

    def check_exemptions(self, data: ThinCapInput) -> ExemptionResult:
        if data.entity_code:
            exempt = find_exempt_entity(data.entity_code)
            if exempt is not None:
                return ExemptionResult(is_exempt=True, exemption_category=exempt.description, reference=exempt.section)
        return ExemptionResult(is_exempt=False)

    def calculate_ebitda(self, financials: ThinCapFinancials, assessment_year: Optional[str] = None) -> EBITDAResult:
        """EBITDA = PBT + interest + depreciation + amortization - exceptional items."""
        computation = [
            ComputationStep(1, "Profit Before Tax", "As per P&L", financials.profit_before_tax),
            ComputationStep(2, "Add: Interest Expense", "Interest claimed as deduction", financials.total_interest_expense),
            ComputationStep(3, "Add: Depreciation", "As per books", financials.depreciation),
            ComputationStep(4, "Add: Amortization", "As per books", financials.amortization),
        ]

        adjustments = financials.exceptional_items or 0.0
        if adjustments:
            computation.append(
                ComputationStep(5, "Adjustments for exceptional items", "As applicable", adjustments)
            )

        total = (
            financials.profit_before_tax
            + financials.total_interest_expense
            + financials.depreciation
            + financials.amortization
            - adjustments
        )
        computation.append(ComputationStep(6, "Total EBITDA", "Sum of above", total))

        return EBITDAResult(
            profit_before_tax=financials.profit_before_tax,
            interest_add_back=financials.total_interest_expense,
            depreciation_add_back=financials.depreciation,
            amortization_add_back=financials.amortization,
            adjustments=adjustments,
            total_ebitda=total,
            thirty_percent_ebitda=self.allowable_limit(total, assessment_year),
            computation=computation,
        )

    def allowable_limit(self, ebitda: float, assessment_year: Optional[str] = None) -> float:
        """30% of EBITDA, floored at zero only when configured to."""
        rules = get_ay_rules(assessment_year or self.config.default_assessment_year)
        limit = calculate_allowable_interest(ebitda, rules.ebitda_percentage)
        if self.config.floor_allowable_at_zero:
            return max(0.0, limit)
        return limit

    def analyze_interest(self, data: ThinCapInput) -> InterestAnalysis:
        """Split interest into the part covered by Section 94B and the rest."""
        breakdown: list[LenderInterestBreakdown] = []
        total = 0.0
        covered = 0.0
        not_covered = 0.0

        for expense in data.interest_expenses:
            total += expense.interest_amount
            is_covered = (
                expense.is_ae
                and expense.lender_type != LenderType.RESIDENT_NON_AE
                and is_interest_covered(expense.interest_type)
            )
            if is_covered:
                covered += expense.interest_amount
            else:
                not_covered += expense.interest_amount
            breakdown.append(
                LenderInterestBreakdown(
                    lender_name=expense.lender_name,
                    lender_type=expense.lender_type,
                    interest_amount=expense.interest_amount,
                    is_covered_under_94b=is_covered,
                    reason_if_not_covered=None if is_covered else self._not_covered_reason(expense),
                )
            )

        to_ae = covered
        if self.config.net_interest_income and data.financials and data.financials.interest_income:
            covered = max(0.0, covered - data.financials.interest_income)

        threshold = get_ay_rules(data.assessment_year).interest_threshold
        return InterestAnalysis(
            total_interest_expense=total,
            interest_to_non_resident_ae=to_ae,
            interest_covered_under_94b=covered,
            interest_not_covered=not_covered,
            lender_wise_breakdown=breakdown,
            threshold_check=ThresholdCheck(
                threshold=threshold,
                interest_amount=covered,
                exceeds_threshold=covered > threshold,
            ),
        )

    def validate_input(self, data: ThinCapInput) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []

        if not data.assessment_year or not _AY_PATTERN.match(data.assessment_year):
            issues.append(
                ValidationIssue(
                    field="assessmentYear",
                    message="Invalid assessment year format",
                    severity=Severity.ERROR,
                    code="TC001",
                    suggestion="Use format YYYY-YY (e.g., 2025-26)",
                )
            )
        elif ay_start(data.assessment_year) < 2018:
            issues.append(
                ValidationIssue(
                    field="assessmentYear",
                    message="Section 94B not applicable before AY 2018-19",
                    severity=Severity.WARNING,
                    code="TC002",
                )
            )

        if data.financials is None:
            issues.append(
                ValidationIssue(
                    field="financials",
                    message="Financial data is required for EBITDA calculation",
                    severity=Severity.CRITICAL,
                    code="TC003",
                )
            )
        else:
            if data.financials.total_interest_expense < 0:
                issues.append(
                    ValidationIssue(
                        field="totalInterestExpense",
                        message="Interest expense cannot be negative",
                        severity=Severity.ERROR,
                        code="TC004",
                    )
                )
            if data.financials.depreciation < 0:
                issues.append(
                    ValidationIssue(
                        field="depreciation",
                        message="Depreciation cannot be negative",
                        severity=Severity.ERROR,
                        code="TC005",
                    )
                )

        if not data.interest_expenses:
            issues.append(
                ValidationIssue(
                    field="interestExpenses",
                    message="At least one interest expense entry is required",
                    severity=Severity.WARNING,
                    code="TC006",
                )
            )

        return issues

    def track_carryforward(
        self,
        history: list[CarryforwardEntry],
        current_disallowance: float,
        available_headroom: float,
        current_year: str,
    ) -> CarryforwardResult:
        return track_carryforward(history, current_disallowance, available_headroom, current_year)

    def simulate_carryforward(
        self,
        disallowed_interest: float,
        projected_ebitda: list[float],
        projected_interest_expense: list[float],
        starting_year: str,
    ) -> SimulationResult:
        return simulate_carryforward(disallowed_interest, projected_ebitda, projected_interest_expense, starting_year)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _not_covered_reason(expense: InterestExpense) -> str:
        if not expense.is_ae:
            return "Lender is not an Associated Enterprise"
        if expense.lender_type == LenderType.RESIDENT_NON_AE:
            return "Lender is a resident non-AE party"
        return "Interest type not covered under Section 94B"

    def _exempt_result(
        self, data: ThinCapInput, exemption: ExemptionResult, issues: list[ValidationIssue]
    ) -> ThinCapResult:
        self.logger.info(f"AY {data.assessment_year}: entity {data.entity_code} exempt from Section 94B")
        total = data.financials.total_interest_expense
        return ThinCapResult(
            is_applicable=False,
            non_applicability_reason=f"Entity is exempt from Section 94B - {exemption.exemption_category}",
            assessment_year=data.assessment_year,
            ebitda_result=EBITDAResult(),
            interest_analysis=self._empty_analysis(data.assessment_year),
            allowable_interest=total,
            disallowed_interest=0.0,
            deductible_interest=total,
            carryforward_result=CarryforwardResult(),
            computation_steps=[],
            validation_issues=issues,
            summary=(
                f"Section 94B is not applicable as the entity is exempt under "
                f"{exemption.reference or 'applicable provisions'}. Full interest deduction is allowable."
            ),
        )

    def _below_threshold_result(
        self,
        data: ThinCapInput,
        analysis: InterestAnalysis,
        steps: list[ComputationStep],
        issues: list[ValidationIssue],
    ) -> ThinCapResult:
        total = data.financials.total_interest_expense
        return ThinCapResult(
            is_applicable=False,
            non_applicability_reason=(
                f"Interest to non-resident AE (Rs. {_rupees(analysis.interest_covered_under_94b)}) "
                "does not exceed threshold of Rs. 1 Crore"
            ),
            assessment_year=data.assessment_year,
            ebitda_result=EBITDAResult(),
            interest_analysis=analysis,
            allowable_interest=total,
            disallowed_interest=0.0,
            deductible_interest=total,
            carryforward_result=CarryforwardResult(),
            computation_steps=steps,
            validation_issues=issues,
            summary=(
                "Section 94B is not applicable as interest to non-resident AE does not exceed Rs. 1 Crore "
                f"threshold. Full interest deduction of Rs. {_rupees(total)} is allowable."
            ),
        )

    @staticmethod
    def _empty_analysis(assessment_year: str) -> InterestAnalysis:
        return InterestAnalysis(
            total_interest_expense=0.0,
            interest_to_non_resident_ae=0.0,
            interest_covered_under_94b=0.0,
            interest_not_covered=0.0,
            lender_wise_breakdown=[],
            threshold_check=ThresholdCheck(
                threshold=get_ay_rules(assessment_year).interest_threshold,
                interest_amount=0.0,
                exceeds_threshold=False,
            ),
        )

    @staticmethod
    def _summary(
        data: ThinCapInput,
        ebitda: EBITDAResult,
        analysis: InterestAnalysis,
        allowable: float,
        disallowed: float,
        carryforward: CarryforwardResult,
    ) -> str:
        parts = [
            f"Section 94B Analysis for AY {data.assessment_year}:",
            f"EBITDA: Rs. {_rupees(ebitda.total_ebitda)} | 30% of EBITDA: Rs. {_rupees(ebitda.thirty_percent_ebitda)}",
            f"Total interest to non-resident AE: Rs. {_rupees(analysis.interest_covered_under_94b)}",
            f"Allowable interest: Rs. {_rupees(allowable)} | Disallowed interest: Rs. {_rupees(disallowed)}",
        ]
        if disallowed > 0:
            parts.append(
                f"The disallowed interest of Rs. {_rupees(disallowed)} can be carried forward "
                f"for {CARRYFORWARD_YEARS} assessment years."
            )
        if carryforward.opening_balance > 0:
            parts.append(
                f"Brought forward disallowance: Rs. {_rupees(carryforward.opening_balance)} | "
                f"Utilized: Rs. {_rupees(carryforward.utilization_in_current_year)} | "
                f"Expired: Rs. {_rupees(carryforward.expired_in_current_year)}"
            )
        if carryforward.closing_balance > 0:
            parts.append(f"Closing carryforward balance: Rs. {_rupees(carryforward.closing_balance)}")
        return "\n\n".join(parts)


def _rupees(amount: float) -> str:
    return format_indian(round_half_up(amount))


__all__ = [
    "ThinCapFinancials",
    "InterestExpense",
    "ThinCapInput",
    "EBITDAResult",
    "LenderInterestBreakdown",
    "ThresholdCheck",
    "InterestAnalysis",
    "ExemptionResult",
    "ThinCapResult",
    "ThinCapEngine",
]
