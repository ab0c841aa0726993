"""Penalty Exposure Engine.

Combines the concealment, documentation, information failure and report
failure penalties with statutory interest into minimum / maximum / most
likely exposure bands, and scores the likelihood that a penalty is actually
levied.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from loguru import logger

from ..config.schema import PenaltyConfig
from ..errors import ValidationError
from .models import Severity, ValidationIssue
from .penalty_rules import (
    ADVANCE_TAX_DUE_DATES,
    ADVANCE_TAX_THRESHOLD,
    AGGRAVATING_FACTORS,
    DEFENSE_DOCUMENTATION,
    DOCUMENTATION_PENALTY_RATE,
    IMMATERIAL_ADJUSTMENT_RATIO,
    INFORMATION_FAILURE_PENALTY_RATE,
    INTEREST_RATES,
    LARGE_ADJUSTMENT_RATIO,
    REDUCING_FACTORS,
    RELEVANT_CASE_LAW,
    REPORT_FAILURE_PENALTY_PER_FORM,
    REPORT_FORMS,
    SECTION_92D_DOCUMENTS,
    FactorDefinition,
    Likelihood,
    PenaltyEntityType,
    assess_likelihood,
    calendar_months_between,
    concealment_penalty_range,
    delay_months,
    documentation_penalty,
    get_tax_rate,
    information_failure_penalty,
    report_failure_penalty,
    simple_interest,
)

_AY_PATTERN = re.compile(r"^\d{4}-\d{2}$")


# ------------------------------------------------------------------
# Input records
# ------------------------------------------------------------------
@dataclass
class TransactionValue:
    nature_code: str
    description: str
    value: float
    documentation_maintained: bool = False
    reported_in_3ceb: bool = False

    @property
    def label(self) -> str:
        return f"{self.nature_code}: {self.description}"


@dataclass
class FilingCompliance:
    due_date: date
    return_filed: bool = True
    return_filing_date: Optional[date] = None
    form_3ceb_filed: bool = False
    form_3ceb_filing_date: Optional[date] = None
    # None means "not required / not known"; only an explicit False is a failure
    master_file_filed: Optional[bool] = None
    cbcr_filed: Optional[bool] = None


@dataclass
class DocumentationStatus:
    tp_documentation_maintained: bool
    is_contemporaneous: bool
    documents_furnished_on_request: bool = True
    information_furnished_to_tpo: bool = True


@dataclass
class AdvanceTaxInstallment:
    due_date: date
    amount_due: float
    # Cumulative payments up to the due date
    amount_paid: float
    payment_date: Optional[date] = None


@dataclass
class AdvanceTaxDetails:
    tax_payable: float
    tds_tcs: float
    advance_tax_paid: float
    installments: list[AdvanceTaxInstallment] = field(default_factory=list)
    refund_granted: Optional[float] = None
    refund_date: Optional[date] = None


@dataclass
class PenaltyInput:
    assessment_year: str
    entity_type: PenaltyEntityType
    primary_adjustment: float
    returned_income: float
    assessed_income: float
    transaction_values: list[TransactionValue]
    filing_compliance: FilingCompliance
    documentation_status: DocumentationStatus
    advance_tax_details: Optional[AdvanceTaxDetails] = None
    # Date of regular assessment; the engine's current date when omitted
    assessment_date: Optional[date] = None
    mitigation_factors: list[str] = field(default_factory=list)
    aggravating_factors: list[str] = field(default_factory=list)


# ------------------------------------------------------------------
# Result records
# ------------------------------------------------------------------
@dataclass
class ComputationDetail:
    description: str
    formula: str
    value: Union[float, str]


@dataclass
class ConcealmentPenaltyResult:
    section: str
    is_applicable: bool
    tax_evaded: float = 0.0
    tax_rate: float = 0.0
    minimum_penalty: float = 0.0
    maximum_penalty: float = 0.0
    most_likely_penalty: float = 0.0
    conditions_met: list[str] = field(default_factory=list)
    defenses_available: list[str] = field(default_factory=list)
    computation_details: list[ComputationDetail] = field(default_factory=list)
    non_applicability_reason: Optional[str] = None


@dataclass
class DocumentationPenaltyResult:
    section: str
    is_applicable: bool
    affected_transaction_value: float = 0.0
    penalty_rate: float = 0.0
    penalty_amount: float = 0.0
    transactions_affected: list[str] = field(default_factory=list)
    documentation_gaps: list[str] = field(default_factory=list)
    non_applicability_reason: Optional[str] = None


@dataclass
class ReportFailurePenaltyResult:
    section: str
    is_applicable: bool
    forms_not_filed: list[str] = field(default_factory=list)
    penalty_per_form: float = REPORT_FAILURE_PENALTY_PER_FORM
    total_penalty: float = 0.0


@dataclass
class InterestResult:
    section: str
    is_applicable: bool
    principal: float = 0.0
    rate_per_month: float = 0.0
    months: int = 0
    interest_amount: float = 0.0
    period_from: Optional[date] = None
    period_to: Optional[date] = None
    computation_details: list[ComputationDetail] = field(default_factory=list)


@dataclass
class ExposureBreakdown:
    category: str
    section: str
    amount: float
    percentage_of_total: float


@dataclass
class PenaltyExposure:
    """Penalty exposure for one assessment year.

    ``minimum``, ``maximum`` and ``most_likely`` differ only in the
    concealment component; every other penalty and the interest add at face
    value. Breakdown percentages are relative to ``most_likely``.
    """

    assessment_year: str
    entity_type: PenaltyEntityType
    primary_adjustment: float
    concealment_penalty: ConcealmentPenaltyResult
    documentation_penalty: DocumentationPenaltyResult
    information_failure_penalty: DocumentationPenaltyResult
    report_failure_penalty: ReportFailurePenaltyResult
    interest_234a: InterestResult
    interest_234b: InterestResult
    interest_234c: InterestResult
    interest_234d: InterestResult
    minimum: float
    maximum: float
    most_likely: float
    breakdown: list[ExposureBreakdown] = field(default_factory=list)
    validation_issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def total_interest(self) -> float:
        return (
            self.interest_234a.interest_amount
            + self.interest_234b.interest_amount
            + self.interest_234c.interest_amount
            + self.interest_234d.interest_amount
        )


@dataclass
class MitigationFactor:
    factor: str
    impact: str
    description: str
    is_present: bool


@dataclass
class DefenseStrategy:
    primary_defense: str
    supporting_arguments: list[str]
    relevant_case_law: list[str]
    documentation_needed: list[str]
    success_probability: str


@dataclass
class MitigationAnalysis:
    penalty_likelihood: Likelihood
    likelihood_score: int
    recommendation: str
    reducing_factors: list[MitigationFactor]
    aggravating_factors: list[MitigationFactor]
    recommended_actions: list[str]
    defense_strategy: DefenseStrategy


class PenaltyEngine:
    """Penalty exposure and mitigation calculator."""

    def __init__(self, config: Optional[PenaltyConfig] = None, current_date: Optional[date] = None) -> None:
        self.config = config or PenaltyConfig()
        self.current_date = current_date or date.today()
        self.logger = logger.bind(module="penalty")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def calculate(self, data: PenaltyInput) -> PenaltyExposure:
        """Compute every penalty and interest component and the exposure bands.

        Raises:
            ValidationError: If the assessment year is malformed or the
                adjustment is negative. Warnings ride along on the result.
        """
        issues = self.validate_input(data)
        blocking = [i for i in issues if i.blocking]
        if blocking:
            self.logger.info(f"Penalty input rejected: {', '.join(i.code for i in blocking)}")
            raise ValidationError(blocking[0].message, field=blocking[0].field, issues=issues)

        concealment = self.calculate_concealment_penalty(data)
        documentation = self.calculate_documentation_penalty(data)
        information = self.calculate_information_failure_penalty(data)
        report = self.calculate_report_failure_penalty(data)
        interest = [
            self.calculate_interest_234a(data),
            self.calculate_interest_234b(data),
            self.calculate_interest_234c(data),
            self.calculate_interest_234d(data),
        ]

        fixed = (
            documentation.penalty_amount
            + information.penalty_amount
            + report.total_penalty
            + sum(i.interest_amount for i in interest)
        )
        exposure = PenaltyExposure(
            assessment_year=data.assessment_year,
            entity_type=PenaltyEntityType(data.entity_type),
            primary_adjustment=data.primary_adjustment,
            concealment_penalty=concealment,
            documentation_penalty=documentation,
            information_failure_penalty=information,
            report_failure_penalty=report,
            interest_234a=interest[0],
            interest_234b=interest[1],
            interest_234c=interest[2],
            interest_234d=interest[3],
            minimum=concealment.minimum_penalty + fixed,
            maximum=concealment.maximum_penalty + fixed,
            most_likely=concealment.most_likely_penalty + fixed,
            validation_issues=issues,
        )
        exposure.breakdown = self._breakdown(exposure)

        self.logger.info(
            f"AY {data.assessment_year}: penalty exposure {exposure.minimum:.0f} - {exposure.maximum:.0f} "
            f"(most likely {exposure.most_likely:.0f})"
        )
        return exposure

    def calculate_concealment_penalty(self, data: PenaltyInput) -> ConcealmentPenaltyResult:
        """Section 271(1)(c): 100% to 300% of the tax sought to be evaded."""
        concealed = data.assessed_income - data.returned_income
        details = [
            ComputationDetail(
                description="Income concealed/underreported",
                formula="Assessed Income - Returned Income",
                value=concealed,
            )
        ]
        if concealed <= 0:
            return ConcealmentPenaltyResult(
                section="271(1)(c)",
                is_applicable=False,
                computation_details=details,
                non_applicability_reason=(
                    "No income concealment - assessed income not greater than returned income"
                ),
            )

        tax_rate = get_tax_rate(data.entity_type)
        tax_evaded = concealed * tax_rate / 100
        minimum, maximum = concealment_penalty_range(tax_evaded)
        details.extend(
            [
                ComputationDetail(
                    description="Tax evaded",
                    formula=f"Income Concealed × Tax Rate ({tax_rate}%)",
                    value=tax_evaded,
                ),
                ComputationDetail(description="Minimum penalty (100%)", formula="Tax Evaded × 100%", value=minimum),
                ComputationDetail(description="Maximum penalty (300%)", formula="Tax Evaded × 300%", value=maximum),
            ]
        )

        conditions = self._conditions_met(data)
        defenses = self._defenses(data)
        factor = max(1.0, min(3.0, 1 + len(conditions) * 0.2 - len(defenses) * 0.15))

        return ConcealmentPenaltyResult(
            section="271(1)(c)",
            is_applicable=True,
            tax_evaded=tax_evaded,
            tax_rate=tax_rate,
            minimum_penalty=minimum,
            maximum_penalty=maximum,
            most_likely_penalty=minimum * factor,
            conditions_met=conditions,
            defenses_available=defenses,
            computation_details=details,
        )

    def calculate_documentation_penalty(self, data: PenaltyInput) -> DocumentationPenaltyResult:
        """Section 271AA: 2% of transactions not documented or not reported in Form 3CEB."""
        status = data.documentation_status
        if status.tp_documentation_maintained and status.is_contemporaneous:
            return DocumentationPenaltyResult(
                section="271AA",
                is_applicable=False,
                non_applicability_reason="Contemporaneous TP documentation maintained",
            )

        affected = [t for t in data.transaction_values if not t.documentation_maintained or not t.reported_in_3ceb]
        if not affected:
            return DocumentationPenaltyResult(
                section="271AA",
                is_applicable=False,
                non_applicability_reason="All transactions properly documented and reported",
            )

        value = sum(t.value for t in affected)
        return DocumentationPenaltyResult(
            section="271AA",
            is_applicable=True,
            affected_transaction_value=value,
            penalty_rate=DOCUMENTATION_PENALTY_RATE,
            penalty_amount=documentation_penalty(value),
            transactions_affected=[t.label for t in affected],
            documentation_gaps=self._documentation_gaps(data),
        )

    def calculate_information_failure_penalty(self, data: PenaltyInput) -> DocumentationPenaltyResult:
        """Section 271G: 2% of all transactions when documents were withheld from the AO/TPO."""
        status = data.documentation_status
        if status.documents_furnished_on_request and status.information_furnished_to_tpo:
            return DocumentationPenaltyResult(
                section="271G",
                is_applicable=False,
                non_applicability_reason="All requested documents and information furnished",
            )

        value = sum(t.value for t in data.transaction_values)
        return DocumentationPenaltyResult(
            section="271G",
            is_applicable=True,
            affected_transaction_value=value,
            penalty_rate=INFORMATION_FAILURE_PENALTY_RATE,
            penalty_amount=information_failure_penalty(value),
            transactions_affected=[t.label for t in data.transaction_values],
            documentation_gaps=["Failure to furnish documents/information to AO/TPO when requested"],
        )

    def calculate_report_failure_penalty(self, data: PenaltyInput) -> ReportFailurePenaltyResult:
        """Section 271BA: a flat amount per report not furnished."""
        filing = data.filing_compliance
        missing = []
        if not filing.form_3ceb_filed:
            missing.append(REPORT_FORMS["3CEB"])
        if filing.master_file_filed is False:
            missing.append(REPORT_FORMS["3CEAA"])
        if filing.cbcr_filed is False:
            missing.append(REPORT_FORMS["3CEAD"])

        return ReportFailurePenaltyResult(
            section="271BA",
            is_applicable=bool(missing),
            forms_not_filed=missing,
            total_penalty=report_failure_penalty(len(missing)),
        )

    def calculate_interest_234a(self, data: PenaltyInput) -> InterestResult:
        filing = data.filing_compliance
        tax = data.advance_tax_details
        if not filing.return_filed or tax is None or filing.return_filing_date is None:
            return InterestResult(section="234A", is_applicable=False)

        rate = INTEREST_RATES["234A"]
        filed, due = filing.return_filing_date, filing.due_date
        if filed <= due:
            return InterestResult(section="234A", is_applicable=False, rate_per_month=rate, period_from=due, period_to=filed)

        months = delay_months(due, filed)
        payable = tax.tax_payable - tax.tds_tcs - tax.advance_tax_paid
        if payable <= 0:
            return InterestResult(
                section="234A",
                is_applicable=False,
                rate_per_month=rate,
                months=months,
                period_from=due,
                period_to=filed,
                computation_details=[
                    ComputationDetail(
                        description="No tax payable after TDS and advance tax",
                        formula="Tax - TDS - Advance Tax ≤ 0",
                        value=payable,
                    )
                ],
            )

        amount = simple_interest(payable, "234A", months)
        return InterestResult(
            section="234A",
            is_applicable=True,
            principal=payable,
            rate_per_month=rate,
            months=months,
            interest_amount=amount,
            period_from=due,
            period_to=filed,
            computation_details=[
                ComputationDetail(description="Tax payable", formula="Tax - TDS - Advance Tax", value=payable),
                ComputationDetail(description="Delay in months", formula="Ceiling of days/30", value=months),
                ComputationDetail(
                    description="Interest amount", formula=f"{payable:.0f} × {rate:g}% × {months}", value=amount
                ),
            ],
        )

    def calculate_interest_234b(self, data: PenaltyInput) -> InterestResult:
        tax = data.advance_tax_details
        if tax is None:
            return InterestResult(section="234B", is_applicable=False)

        rate = INTEREST_RATES["234B"]
        assessed = tax.tax_payable
        paid = tax.advance_tax_paid + tax.tds_tcs
        threshold = assessed * ADVANCE_TAX_THRESHOLD
        if paid >= threshold:
            return InterestResult(
                section="234B",
                is_applicable=False,
                rate_per_month=rate,
                computation_details=[
                    ComputationDetail(
                        description="Advance tax meets 90% threshold",
                        formula=f"Paid ({paid:.0f}) >= 90% of Assessed ({threshold:.0f})",
                        value="N/A",
                    )
                ],
            )

        shortfall = assessed - paid
        start = self._assessment_year_start(data.assessment_year)
        end = data.filing_compliance.return_filing_date or data.assessment_date or self.current_date
        months = calendar_months_between(start, end)
        amount = simple_interest(shortfall, "234B", months)

        return InterestResult(
            section="234B",
            is_applicable=True,
            principal=shortfall,
            rate_per_month=rate,
            months=months,
            interest_amount=amount,
            period_from=start,
            period_to=end,
            computation_details=[
                ComputationDetail(description="Assessed tax", formula="Tax liability on assessed income", value=assessed),
                ComputationDetail(description="Advance tax + TDS paid", formula="Total tax already paid", value=paid),
                ComputationDetail(description="Shortfall", formula="Assessed - Paid", value=shortfall),
                ComputationDetail(
                    description="Interest period months", formula="April 1 to determination date", value=months
                ),
                ComputationDetail(
                    description="Interest amount", formula=f"{shortfall:.0f} × {rate:g}% × {months}", value=amount
                ),
            ],
        )

    def calculate_interest_234c(self, data: PenaltyInput) -> InterestResult:
        tax = data.advance_tax_details
        if tax is None or not tax.installments:
            return InterestResult(section="234C", is_applicable=False)

        rate = INTEREST_RATES["234C"]
        shortfalls: list[tuple[float, int]] = []
        details: list[ComputationDetail] = []
        for due, installment in zip(ADVANCE_TAX_DUE_DATES, tax.installments):
            required = tax.tax_payable * due.cumulative_percentage / 100
            shortfall = max(0.0, required - installment.amount_paid)
            if shortfall > 0:
                shortfalls.append((shortfall, due.months))
                details.append(
                    ComputationDetail(
                        description=f"{due.label} - Required: {required:.0f}, Paid: {installment.amount_paid:.0f}",
                        formula=f"Shortfall × {rate:g}% × {due.months} months",
                        value=simple_interest(shortfall, "234C", due.months),
                    )
                )

        if not shortfalls:
            return InterestResult(
                section="234C",
                is_applicable=False,
                rate_per_month=rate,
                computation_details=[
                    ComputationDetail(
                        description="All advance tax installments paid on time", formula="N/A", value="N/A"
                    )
                ],
            )

        # Installments fall in the financial year preceding the assessment year
        fy_start = self._assessment_year_start(data.assessment_year).year - 1
        return InterestResult(
            section="234C",
            is_applicable=True,
            principal=sum(amount for amount, _ in shortfalls),
            rate_per_month=rate,
            months=sum(months for _, months in shortfalls),
            interest_amount=sum(simple_interest(amount, "234C", months) for amount, months in shortfalls),
            period_from=date(fy_start, 6, 15),
            period_to=date(fy_start + 1, 3, 15),
            computation_details=details,
        )

    def calculate_interest_234d(self, data: PenaltyInput) -> InterestResult:
        tax = data.advance_tax_details
        if tax is None or not tax.refund_granted or tax.refund_granted <= 0:
            return InterestResult(section="234D", is_applicable=False)

        rate = INTEREST_RATES["234D"]
        refund = tax.refund_granted
        start = tax.refund_date or self.current_date
        end = data.assessment_date or self.current_date
        months = calendar_months_between(start, end)
        amount = simple_interest(refund, "234D", months)

        return InterestResult(
            section="234D",
            is_applicable=True,
            principal=refund,
            rate_per_month=rate,
            months=months,
            interest_amount=amount,
            period_from=start,
            period_to=end,
            computation_details=[
                ComputationDetail(
                    description="Excess refund amount", formula="Refund granted on provisional basis", value=refund
                ),
                ComputationDetail(description="Period in months", formula="From refund date to assessment date", value=months),
                ComputationDetail(
                    description="Interest amount", formula=f"{refund:.0f} × {rate:g}% × {months}", value=amount
                ),
            ],
        )

    def interest_for_period(
        self,
        section: str,
        tax_amount: float,
        due_date: date,
        payment_date: date,
        advance_tax_paid: float = 0.0,
        assessed_tax: Optional[float] = None,
        refund_granted: Optional[float] = None,
    ) -> InterestResult:
        """Interest under one of 234A/B/C/D between two dates.

        Months are counted in started 30-day blocks.

        Raises:
            ValidationError: For an unknown section or a non-positive tax amount.
        """
        section = section.upper()
        if section not in INTEREST_RATES:
            raise ValidationError(f"Unknown interest section: {section}", field="section")
        if tax_amount <= 0:
            raise ValidationError("taxAmount must be greater than zero", field="taxAmount")

        if section == "234A":
            basis = tax_amount
        elif section == "234B":
            basis = max(0.0, (assessed_tax or tax_amount) - advance_tax_paid)
        elif section == "234C":
            basis = max(0.0, tax_amount - advance_tax_paid)
        else:
            basis = refund_granted or tax_amount

        rate = INTEREST_RATES[section]
        months = delay_months(due_date, payment_date)
        amount = simple_interest(basis, section, months)
        return InterestResult(
            section=section,
            is_applicable=amount > 0,
            principal=basis,
            rate_per_month=rate,
            months=months,
            interest_amount=amount,
            period_from=due_date,
            period_to=payment_date,
            computation_details=[
                ComputationDetail(
                    description="Interest amount", formula=f"{basis:.0f} × {rate:g}% × {months} months", value=amount
                )
            ],
        )

    def assess_mitigation(self, exposure: PenaltyExposure, data: Optional[PenaltyInput] = None) -> MitigationAnalysis:
        """Score how likely the exposure is to be levied and suggest a defence.

        Factors that need facts beyond the exposure (voluntary disclosure,
        professional advice, materiality) are only detected when ``data`` is
        supplied.
        """
        reducing = [self._factor(f, exposure, data) for f in REDUCING_FACTORS]
        aggravating = [self._factor(f, exposure, data) for f in AGGRAVATING_FACTORS]
        present = [f for f in reducing if f.is_present]

        likelihood, score, recommendation = assess_likelihood(
            len(present), sum(1 for f in aggravating if f.is_present)
        )

        if len(present) >= 3:
            probability = "high"
        elif present:
            probability = "medium"
        else:
            probability = "low"

        strategy = DefenseStrategy(
            primary_defense=(
                f"Rely on {present[0].factor}" if present else "Challenge the underlying adjustment on merits"
            ),
            supporting_arguments=[f.description for f in present],
            relevant_case_law=list(RELEVANT_CASE_LAW),
            documentation_needed=list(DEFENSE_DOCUMENTATION),
            success_probability=probability,
        )

        self.logger.debug(f"Penalty likelihood {likelihood.value} (score {score})")

        return MitigationAnalysis(
            penalty_likelihood=likelihood,
            likelihood_score=score,
            recommendation=recommendation,
            reducing_factors=reducing,
            aggravating_factors=aggravating,
            recommended_actions=self._recommended_actions(exposure, likelihood),
            defense_strategy=strategy,
        )

    def validate_input(self, data: PenaltyInput) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []

        if not data.assessment_year or not _AY_PATTERN.match(data.assessment_year):
            issues.append(
                ValidationIssue(
                    field="assessmentYear",
                    message="Assessment year is required in YYYY-YY format",
                    severity=Severity.ERROR,
                    code="PEN001",
                    suggestion="Use format YYYY-YY (e.g., 2025-26)",
                )
            )
        if data.primary_adjustment < 0:
            issues.append(
                ValidationIssue(
                    field="primaryAdjustment",
                    message="Primary adjustment cannot be negative",
                    severity=Severity.ERROR,
                    code="PEN002",
                )
            )
        if not data.transaction_values:
            issues.append(
                ValidationIssue(
                    field="transactionValues",
                    message="At least one transaction value is required",
                    severity=Severity.WARNING,
                    code="PEN003",
                )
            )
        return issues

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _assessment_year_start(assessment_year: str) -> date:
        return date(int(assessment_year.split("-")[0]), 4, 1)

    @staticmethod
    def _conditions_met(data: PenaltyInput) -> list[str]:
        conditions = []
        if data.primary_adjustment > 0:
            conditions.append("Transfer pricing adjustment sustained")
        if not data.documentation_status.tp_documentation_maintained:
            conditions.append("TP documentation not maintained")
        if not data.documentation_status.is_contemporaneous:
            conditions.append("Documentation not contemporaneous")
        return conditions

    @staticmethod
    def _defenses(data: PenaltyInput) -> list[str]:
        defenses = []
        if data.documentation_status.tp_documentation_maintained:
            defenses.append("Contemporaneous documentation maintained")
        if data.documentation_status.documents_furnished_on_request:
            defenses.append("Full cooperation during proceedings")
        if "professional_advice" in data.mitigation_factors:
            defenses.append("Reliance on professional advice in good faith")
        return defenses

    @staticmethod
    def _documentation_gaps(data: PenaltyInput) -> list[str]:
        gaps: list[str] = []
        if not data.documentation_status.tp_documentation_maintained:
            gaps.extend(SECTION_92D_DOCUMENTS)
        elif not data.documentation_status.is_contemporaneous:
            gaps.append("Documentation not maintained contemporaneously")

        for t in data.transaction_values:
            if not t.documentation_maintained:
                gaps.append(f"Documentation for {t.label}")
            if not t.reported_in_3ceb:
                gaps.append(f"Form 3CEB reporting for {t.label}")
        return list(dict.fromkeys(gaps))

    @staticmethod
    def _adjustment_ratio(data: PenaltyInput) -> Optional[float]:
        if data.returned_income <= 0:
            return None
        return data.primary_adjustment / data.returned_income

    def _factor(
        self, definition: FactorDefinition, exposure: PenaltyExposure, data: Optional[PenaltyInput]
    ) -> MitigationFactor:
        name = definition.factor
        mitigating = data.mitigation_factors if data else []
        aggravating = data.aggravating_factors if data else []
        ratio = self._adjustment_ratio(data) if data else None

        if name == "Contemporaneous documentation":
            present = not exposure.documentation_penalty.is_applicable
        elif name == "Consistent methodology":
            present = "consistent_methodology" in mitigating
        elif name == "Timely compliance":
            present = not exposure.interest_234a.is_applicable and not exposure.report_failure_penalty.is_applicable
        elif name == "Cooperative attitude":
            present = not exposure.information_failure_penalty.is_applicable
        elif name == "Good faith reliance":
            present = "professional_advice" in mitigating
        elif name == "Voluntary disclosure":
            present = "voluntary_disclosure" in mitigating
        elif name == "Immaterial adjustment":
            present = ratio is not None and ratio < IMMATERIAL_ADJUSTMENT_RATIO
        elif name == "Repeated non-compliance":
            present = "repeated_non_compliance" in aggravating
        elif name == "Deliberate concealment":
            present = "deliberate_concealment" in aggravating
        elif name == "Non-cooperation":
            present = exposure.information_failure_penalty.is_applicable
        elif name == "No documentation":
            present = exposure.documentation_penalty.is_applicable
        elif name == "Large adjustments":
            present = (
                data is not None
                and data.primary_adjustment > 0
                and (ratio is None or ratio >= LARGE_ADJUSTMENT_RATIO)
            )
        else:
            present = False

        return MitigationFactor(
            factor=name, impact=definition.impact, description=definition.description, is_present=present
        )

    @staticmethod
    def _recommended_actions(exposure: PenaltyExposure, likelihood: Likelihood) -> list[str]:
        actions = []
        if likelihood in (Likelihood.HIGH, Likelihood.VERY_HIGH):
            actions.extend(
                [
                    "Engage penalty specialist immediately",
                    "Prepare detailed defense documentation",
                    "Consider voluntary disclosure if applicable",
                ]
            )
        if exposure.concealment_penalty.is_applicable:
            actions.extend(["Prepare bonafide explanation for TP position", "Gather evidence of reasonable cause"])
        if exposure.documentation_penalty.is_applicable:
            actions.extend(["Complete TP documentation retrospectively", "Document reasons for any gaps"])
        actions.extend(
            [
                "Review appeal options if adjustment is disputed",
                "Calculate cost-benefit of settlement vs. litigation",
            ]
        )
        return actions

    @staticmethod
    def _breakdown(exposure: PenaltyExposure) -> list[ExposureBreakdown]:
        total = exposure.most_likely
        rows = [
            ("Concealment Penalty", "271(1)(c)", exposure.concealment_penalty.most_likely_penalty),
            ("Documentation Penalty", "271AA", exposure.documentation_penalty.penalty_amount),
            ("Information Failure Penalty", "271G", exposure.information_failure_penalty.penalty_amount),
            ("Report Failure Penalty", "271BA", exposure.report_failure_penalty.total_penalty),
            ("Interest (234A/B/C/D)", "234A/B/C/D", exposure.total_interest),
        ]
        return [
            ExposureBreakdown(
                category=category,
                section=section,
                amount=amount,
                percentage_of_total=amount / total * 100 if total > 0 else 0.0,
            )
            for category, section, amount in rows
            if amount > 0
        ]


__all__ = [
    "TransactionValue",
    "FilingCompliance",
    "DocumentationStatus",
    "AdvanceTaxInstallment",
    "AdvanceTaxDetails",
    "PenaltyInput",
    "ComputationDetail",
    "ConcealmentPenaltyResult",
    "DocumentationPenaltyResult",
    "ReportFailurePenaltyResult",
    "InterestResult",
    "ExposureBreakdown",
    "PenaltyExposure",
    "MitigationFactor",
    "DefenseStrategy",
    "MitigationAnalysis",
    "PenaltyEngine",
]
