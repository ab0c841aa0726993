"""Request bodies for the HTTP layer.

Every body accepts the camelCase wire names (and the snake_case field names)
and knows how to turn itself into the engine's input record. The CLI reuses
the same models to parse its JSON input files.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config.schema import ComparablesConfig, PenaltyConfig
from ..engines.carryforward import CarryforwardEntry
from ..engines.dispute_workflow import (
    DraftAssessmentOrder,
    DRPObjection,
    GroundsOfAppeal,
    SpecificGround,
    TaxpayerDetails,
    TPOOrder,
    TransactionAdjustment,
)
from ..engines.dispute_timelines import DisputeStatus
from ..engines.forex_engine import financial_year_bounds
from ..engines.models import ComparableSearchCriteria, DatabaseSource, FunctionalProfile, PLIType
from ..engines.penalty_engine import (
    DocumentationStatus,
    FilingCompliance,
    PenaltyInput,
    TransactionValue,
)
from ..engines.penalty_rules import PenaltyEntityType
from ..engines.thin_cap_engine import InterestExpense, ThinCapFinancials, ThinCapInput
from ..engines.thin_cap_rules import EntityType, LenderType
from ..errors import ValidationError
from ..utils.formatting import format_indian

_AY_PATTERN = re.compile(r"^\d{4}-\d{2}$")


class WireModel(BaseModel):
    """Base for request bodies: camelCase aliases, snake_case names also accepted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ------------------------------------------------------------------
# Thin capitalization
# ------------------------------------------------------------------
class FinancialsBody(WireModel):
    profit_before_tax: float
    total_interest_expense: float
    depreciation: float = 0.0
    amortization: float = 0.0
    interest_income: Optional[float] = None
    exceptional_items: Optional[float] = None

    def to_engine(self) -> ThinCapFinancials:
        return ThinCapFinancials(**self.model_dump())


class InterestExpenseBody(WireModel):
    lender_name: str
    interest_amount: float
    is_ae: bool = Field(alias="isAE")
    lender_country: str = ""
    principal_amount: float = 0.0
    interest_rate: float = 0.0
    lender_type: Optional[LenderType] = None
    interest_type: str = "LOAN_INTEREST"

    def to_engine(self) -> InterestExpense:
        return InterestExpense(**self.model_dump())


class CarryforwardEntryBody(WireModel):
    disallowance_year: str
    original_amount: float
    remaining_balance: float
    amount_utilized: float = 0.0
    expiry_year: Optional[str] = None

    def to_engine(self) -> CarryforwardEntry:
        return CarryforwardEntry(**self.model_dump())


class ThinCapRequest(WireModel):
    assessment_year: str
    entity_type: EntityType
    entity_code: Optional[str] = None
    financials: Optional[FinancialsBody] = None
    interest_expenses: list[InterestExpenseBody] = Field(default_factory=list)
    carryforward_history: list[CarryforwardEntryBody] = Field(default_factory=list)

    def to_engine(self) -> ThinCapInput:
        return ThinCapInput(
            assessment_year=self.assessment_year,
            entity_type=self.entity_type,
            entity_code=self.entity_code,
            financials=self.financials.to_engine() if self.financials else None,
            interest_expenses=[e.to_engine() for e in self.interest_expenses],
            carryforward_history=[c.to_engine() for c in self.carryforward_history],
        )


class SimulationRequest(WireModel):
    disallowed_interest: float
    projected_ebitda: list[float] = Field(alias="projectedEBITDA")
    projected_interest_expense: list[float]
    starting_year: str


# ------------------------------------------------------------------
# Comparables
# ------------------------------------------------------------------
class SearchRequest(WireModel):
    """Screening criteria; omitted filters fall back to the usual TP defaults."""

    nic_codes: list[str] = Field(default_factory=list)
    revenue_min: Optional[float] = None
    revenue_max: Optional[float] = None
    functional_profile: Optional[FunctionalProfile] = None
    exclude_related_party_above: Optional[float] = Field(default=None, ge=0, le=100)
    exclude_persistent_losses: bool = True
    min_years_data: Optional[int] = 3
    employee_cost_ratio_min: Optional[float] = None
    employee_cost_ratio_max: Optional[float] = None
    status: list[str] = Field(default_factory=lambda: ["ACTIVE"])
    exclude_cins: list[str] = Field(default_factory=list)
    sources: list[DatabaseSource] = Field(default_factory=list)
    limit: Optional[int] = Field(default=None, gt=0)
    offset: int = Field(default=0, ge=0)

    def to_criteria(self, config: ComparablesConfig) -> ComparableSearchCriteria:
        data = self.model_dump()
        if data["exclude_related_party_above"] is None:
            data["exclude_related_party_above"] = config.default_related_party_threshold
        if data["limit"] is None:
            data["limit"] = config.default_limit
        return ComparableSearchCriteria(**data)


class BenchmarkRequest(WireModel):
    cins: Optional[list[str]] = None
    criteria: Optional[SearchRequest] = None
    pli_type: PLIType = PLIType.OP_OC
    tested_party_pli: Optional[float] = None


class WorkingCapitalRequest(WireModel):
    cins: list[str] = Field(min_length=1)
    tested_party_wc_days: float
    adjustment_rate: Optional[float] = Field(default=None, ge=0)
    pli_type: PLIType = PLIType.OP_OC


# ------------------------------------------------------------------
# Forex
# ------------------------------------------------------------------
class ConvertRequest(WireModel):
    from_currency: str
    to_currency: str
    amount: float


class ConvertMultipleRequest(WireModel):
    base_currency: str
    target_currencies: list[str] = Field(min_length=1)
    amount: float


class PeriodRequest(WireModel):
    base_currency: str
    quote_currency: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    financial_year: Optional[str] = None

    def period(self) -> tuple[date, date]:
        if self.financial_year:
            return financial_year_bounds(self.financial_year)
        if self.start_date is None or self.end_date is None:
            raise ValidationError("startDate and endDate, or financialYear, are required", field="startDate")
        return self.start_date, self.end_date


# ------------------------------------------------------------------
# Dispute workflow
# ------------------------------------------------------------------
class TaxpayerBody(WireModel):
    name: str
    pan: str
    address: str = ""

    def to_engine(self) -> TaxpayerDetails:
        return TaxpayerDetails(name=self.name, pan=self.pan, address=self.address)


class ObjectionBody(WireModel):
    ground: str
    description: str = ""
    supporting_evidence: list[str] = Field(default_factory=list)


class DRPRequest(WireModel):
    tpo_order_date: date
    tpo_order_number: str
    assessment_year: str
    adjustment_amount: float = Field(ge=0)
    adjustment_type: Literal["primary", "secondary", "penalty"] = "primary"
    transaction_type: str = "International transaction"
    objections: list[ObjectionBody] = Field(default_factory=list)
    taxpayer_details: TaxpayerBody
    draft_order_date: Optional[date] = None
    filing_date: Optional[date] = None

    def tpo_order(self) -> TPOOrder:
        return TPOOrder(
            order_number=self.tpo_order_number,
            order_date=self.tpo_order_date,
            assessment_year=self.assessment_year,
            primary_adjustment=self.adjustment_amount,
            taxpayer=self.taxpayer_details.to_engine(),
            transaction_adjustments=[
                TransactionAdjustment(
                    transaction_type=self.transaction_type,
                    reported_value=0.0,
                    alp_determined=self.adjustment_amount,
                    adjustment_amount=self.adjustment_amount,
                    nature_code="01",
                    related_party="Foreign AE",
                )
            ],
            reasons_for_adjustment=["Transfer Pricing adjustment"],
        )

    def draft_order(self) -> DraftAssessmentOrder:
        # Demand and interest are rough estimates until the actual draft order is keyed in
        return DraftAssessmentOrder(
            order_number=f"DO/{self.tpo_order_number}",
            order_date=self.draft_order_date or self.tpo_order_date,
            assessment_year=self.assessment_year,
            tpo_order_reference=self.tpo_order_number,
            tp_adjustment=self.adjustment_amount,
            total_income=self.adjustment_amount,
            demand_raised=self.adjustment_amount * 0.3,
            interest_computed=self.adjustment_amount * 0.1,
        )

    def drp_objections(self) -> list[DRPObjection]:
        share = self.adjustment_amount / (len(self.objections) or 1)
        return [
            DRPObjection(
                objection_number=i,
                issue_category="Transfer Pricing",
                brief_description=o.ground,
                detailed_objection=o.description,
                relief_sought=share,
                legal_basis=list(o.supporting_evidence),
            )
            for i, o in enumerate(self.objections, start=1)
        ]


class ITATRequest(WireModel):
    assessment_order_date: date
    assessment_order_number: str
    assessment_year: str
    adjustment_amount: float = Field(gt=0)
    grounds_of_appeal: list[str] = Field(default_factory=list)
    taxpayer_details: TaxpayerBody
    drp_direction_date: Optional[date] = None
    filing_date: Optional[date] = None
    demand_amount: Optional[float] = Field(default=None, ge=0)
    payment_offered: float = Field(default=0.0, ge=0)

    def tpo_order(self) -> TPOOrder:
        return TPOOrder(
            order_number=self.assessment_order_number,
            order_date=self.assessment_order_date,
            assessment_year=self.assessment_year,
            primary_adjustment=self.adjustment_amount,
            taxpayer=self.taxpayer_details.to_engine(),
        )

    def grounds(self) -> GroundsOfAppeal:
        return GroundsOfAppeal(
            general_grounds=list(self.grounds_of_appeal),
            specific_grounds=[
                SpecificGround(
                    ground_number=i,
                    category="Transfer Pricing",
                    ground=ground,
                    related_legal_sections=["Section 92", "Section 92CA"],
                )
                for i, ground in enumerate(self.grounds_of_appeal, start=1)
            ],
            relief_prayer=f"Deletion of transfer pricing adjustment of Rs. {format_indian(self.adjustment_amount)}",
        )


class DeadlineRequest(WireModel):
    reference_date: date
    stage: str


class CaseEventBody(WireModel):
    event_date: date = Field(alias="date")
    event: str
    notes: Optional[str] = None


class CaseTrackingRequest(WireModel):
    case_id: str
    stage: str
    status: DisputeStatus = DisputeStatus.IN_PROGRESS
    filing_date: date
    events: list[CaseEventBody] = Field(default_factory=list)


# ------------------------------------------------------------------
# Penalty
# ------------------------------------------------------------------
class PenaltyRequest(WireModel):
    adjustment_amount: float = Field(gt=0)
    tax_rate: float = Field(gt=0, le=100)
    assessment_year: str
    entity_type: Optional[PenaltyEntityType] = None
    returned_income: float = 0.0
    transaction_value: Optional[float] = Field(default=None, ge=0)
    has_documentation: bool = False
    form_3ceb_filed: bool = Field(default=False, alias="form3CEBFiled")
    report_type: Optional[Literal["3CEB", "3CEAA", "3CEAD"]] = None
    report_not_filed: bool = False
    is_wilful_default: bool = False
    is_repeat_offence: bool = False
    assessment_date: Optional[date] = None

    def to_input(self, config: PenaltyConfig) -> PenaltyInput:
        start_year = int(self.assessment_year[:4]) if _AY_PATTERN.match(self.assessment_year) else None
        filing = FilingCompliance(
            # Non-audit due date; a malformed year is rejected by the engine validator
            due_date=date(start_year, 7, 31) if start_year else date.today(),
            form_3ceb_filed=self.form_3ceb_filed,
        )
        if self.report_not_filed:
            if self.report_type == "3CEAA":
                filing.master_file_filed = False
            elif self.report_type == "3CEAD":
                filing.cbcr_filed = False
            else:
                filing.form_3ceb_filed = False

        aggravating = []
        if self.is_wilful_default:
            aggravating.append("deliberate_concealment")
        if self.is_repeat_offence:
            aggravating.append("repeated_non_compliance")

        transactions = []
        if self.transaction_value:
            transactions.append(
                TransactionValue(
                    nature_code="01",
                    description="International Transaction",
                    value=self.transaction_value,
                    documentation_maintained=self.has_documentation,
                    reported_in_3ceb=filing.form_3ceb_filed,
                )
            )

        return PenaltyInput(
            assessment_year=self.assessment_year,
            entity_type=self.entity_type or PenaltyEntityType(config.default_entity_type),
            primary_adjustment=self.adjustment_amount,
            returned_income=self.returned_income,
            assessed_income=self.returned_income + self.adjustment_amount,
            transaction_values=transactions,
            filing_compliance=filing,
            documentation_status=DocumentationStatus(
                tp_documentation_maintained=self.has_documentation,
                is_contemporaneous=self.has_documentation,
            ),
            assessment_date=self.assessment_date,
            aggravating_factors=aggravating,
        )


class InterestRequest(WireModel):
    section: Literal["234A", "234B", "234C", "234D"]
    tax_amount: float = Field(gt=0)
    due_date: date
    payment_date: date
    advance_tax_paid: float = Field(default=0.0, ge=0)
    assessed_tax: Optional[float] = None
    refund_granted: Optional[float] = None


__all__ = [
    "WireModel",
    "FinancialsBody",
    "InterestExpenseBody",
    "CarryforwardEntryBody",
    "ThinCapRequest",
    "SimulationRequest",
    "SearchRequest",
    "BenchmarkRequest",
    "WorkingCapitalRequest",
    "ConvertRequest",
    "ConvertMultipleRequest",
    "PeriodRequest",
    "TaxpayerBody",
    "ObjectionBody",
    "DRPRequest",
    "ITATRequest",
    "DeadlineRequest",
    "CaseEventBody",
    "CaseTrackingRequest",
    "PenaltyRequest",
    "InterestRequest",
]
