"""Dispute Workflow Engine.

DRP and ITAT lifecycle for transfer pricing disputes: eligibility, the
applications themselves, their statutory timelines, completeness checks,
grounds of appeal and deadline tracking.

``current_date`` is injected so every deadline computation is reproducible.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional

from loguru import logger

from ..utils.formatting import format_indian
from .dispute_timelines import (
    DISPUTE_TIMELINES,
    STANDARD_TP_GROUNDS,
    STAY_OF_DEMAND,
    DisputeStage,
    DisputeStatus,
    calculate_appeal_fee,
    calculate_deadline,
    check_condonation,
    days_between,
    drp_timeline,
    is_within_time_limit,
    itat_timeline,
)


@dataclass
class TaxpayerDetails:
    name: str
    pan: str
    address: str = ""
    authorized_representative: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class TransactionAdjustment:
    transaction_type: str
    reported_value: float
    alp_determined: float
    adjustment_amount: float
    nature_code: str = ""
    related_party: str = ""


@dataclass
class TPOOrder:
    order_number: str
    order_date: date
    assessment_year: str
    primary_adjustment: float
    taxpayer: TaxpayerDetails
    transaction_adjustments: list[TransactionAdjustment] = field(default_factory=list)
    reasons_for_adjustment: list[str] = field(default_factory=list)
    method_applied: str = "TNMM"


@dataclass
class DraftAssessmentOrder:
    order_number: str
    order_date: date
    assessment_year: str
    tpo_order_reference: str
    tp_adjustment: float
    total_income: float = 0.0
    other_additions: float = 0.0
    demand_raised: float = 0.0
    interest_computed: float = 0.0
    final_assessment_passed: bool = False


@dataclass
class DRPObjection:
    objection_number: int
    issue_category: str
    brief_description: str
    detailed_objection: str
    relief_sought: float
    legal_basis: list[str] = field(default_factory=list)
    case_law_citations: list[str] = field(default_factory=list)


@dataclass
class DRPTimeline:
    filing_date: date
    expected_hearing: date
    direction_deadline: date
    final_assessment_deadline: date
    current_status: DisputeStatus = DisputeStatus.IN_PROGRESS
    first_hearing_date: Optional[date] = None


@dataclass
class DRPApplication:
    application_id: str
    filing_date: date
    draft_order_reference: str
    tpo_order_reference: str
    draft_order_date: date
    assessment_year: str
    taxpayer: TaxpayerDetails
    objections: list[DRPObjection]
    grounds_of_objection: list[str]
    relief_claimed: float
    supporting_documents: list[str]
    timeline: DRPTimeline
    status: DisputeStatus = DisputeStatus.IN_PROGRESS


@dataclass
class EligibilityResult:
    is_eligible: bool
    eligibility_reasons: list[str]
    ineligibility_reasons: list[str]
    recommended_path: str


@dataclass
class SpecificGround:
    ground_number: int
    category: str
    ground: str
    related_legal_sections: list[str]
    sub_grounds: list[str] = field(default_factory=list)
    precedents_cited: list[str] = field(default_factory=list)


@dataclass
class GroundsOfAppeal:
    general_grounds: list[str]
    specific_grounds: list[SpecificGround]
    relief_prayer: str


@dataclass
class ITATTimeline:
    filing_date: date
    cross_objection_deadline: date
    paper_book_deadline: date
    stay_expiry: date
    current_status: DisputeStatus = DisputeStatus.IN_PROGRESS


@dataclass
class StayApplication:
    application_date: date
    demand_amount: float
    payment_offered: float
    minimum_payment: float
    stay_granted: bool
    conditions: list[str]


@dataclass
class ITATAppeal:
    appeal_number: str
    filing_date: date
    assessment_year: str
    order_appealed: str
    order_date: date
    taxpayer: TaxpayerDetails
    grounds_of_appeal: list[str]
    relief_claimed: float
    fee: int
    timeline: ITATTimeline
    appellant: Literal["taxpayer", "department"] = "taxpayer"
    status: DisputeStatus = DisputeStatus.IN_PROGRESS
    stay_application: Optional[StayApplication] = None


@dataclass
class WorkflowIssue:
    field: str
    message: str
    code: Optional[str] = None
    recommendation: Optional[str] = None


@dataclass
class WorkflowValidation:
    is_valid: bool
    errors: list[WorkflowIssue]
    warnings: list[WorkflowIssue]


@dataclass
class DeadlineAlert:
    deadline: date
    description: str
    days_remaining: int
    severity: Literal["critical", "warning", "info"]


@dataclass
class PendingAction:
    action: str
    deadline: date
    priority: Literal["high", "medium", "low"]
    responsible_party: str


@dataclass
class ProgressTracker:
    application_id: str
    current_stage: DisputeStage
    current_status: DisputeStatus
    completed_stages: list[dict[str, object]]
    pending_actions: list[PendingAction]
    upcoming_deadlines: list[DeadlineAlert]
    last_updated: date


REQUIRED_DOCUMENTS = [
    "Copy of TPO Order",
    "Copy of Draft Assessment Order",
    "Transfer Pricing Documentation",
    "FAR Analysis",
    "Benchmarking Study",
    "Economic Analysis",
    "Financial Statements",
    "Intercompany Agreements",
    "Correspondence with TPO",
]


def alert_severity(days_remaining: int) -> Literal["critical", "warning", "info"]:
    if days_remaining <= 30:
        return "critical"
    if days_remaining <= 90:
        return "warning"
    return "info"


class DisputeWorkflowEngine:
    """DRP and ITAT workflow calculations anchored at ``current_date``."""

    def __init__(self, current_date: Optional[date] = None) -> None:
        self.current_date = current_date or date.today()
        self.logger = logger.bind(module="dispute_workflow")

    # ------------------------------------------------------------------
    # DRP workflow
    # ------------------------------------------------------------------
    def validate_eligibility(self, tpo_order: TPOOrder, draft_order: DraftAssessmentOrder) -> EligibilityResult:
        """Check every DRP gate; all must pass for the route to be open.

        Gates: filed within 30 days of the draft order, a TP adjustment
        exists, the draft order references the TPO order, and no final
        assessment has been passed on the draft.
        """
        eligible: list[str] = []
        ineligible: list[str] = []
        limit = DISPUTE_TIMELINES["drp"]["filing_deadline"]

        check = is_within_time_limit(draft_order.order_date, self.current_date, limit)
        if check.is_valid:
            eligible.append(f"Filing within {limit} days deadline ({check.days_remaining} days remaining)")
        else:
            ineligible.append(f"Filing deadline exceeded by {check.days_used - limit} days")

        if tpo_order.primary_adjustment > 0:
            eligible.append("Transfer pricing adjustment exists - DRP route available")
        else:
            ineligible.append("No transfer pricing adjustment in TPO order")

        if draft_order.tpo_order_reference == tpo_order.order_number:
            eligible.append("Draft order references the TPO order")
        else:
            ineligible.append(
                f"Draft order {draft_order.order_number} does not reference TPO order {tpo_order.order_number}"
            )

        if draft_order.final_assessment_passed:
            ineligible.append(f"Final assessment already passed for draft order {draft_order.order_number}")

        is_eligible = not ineligible
        if not is_eligible:
            self.logger.info(f"DRP route closed for {tpo_order.order_number}: {'; '.join(ineligible)}")

        return EligibilityResult(
            is_eligible=is_eligible,
            eligibility_reasons=eligible,
            ineligibility_reasons=ineligible,
            recommended_path=(
                "DRP route recommended for TP disputes"
                if is_eligible
                else "Consider condonation application or alternative remedy"
            ),
        )

    def create_drp_application(
        self,
        tpo_order: TPOOrder,
        draft_order: DraftAssessmentOrder,
        objections: list[DRPObjection],
    ) -> DRPApplication:
        return DRPApplication(
            application_id=self._application_id("DRP", tpo_order.assessment_year),
            filing_date=self.current_date,
            draft_order_reference=draft_order.order_number,
            tpo_order_reference=tpo_order.order_number,
            draft_order_date=draft_order.order_date,
            assessment_year=tpo_order.assessment_year,
            taxpayer=tpo_order.taxpayer,
            objections=objections,
            grounds_of_objection=self._drp_grounds(tpo_order, objections),
            relief_claimed=sum(o.relief_sought for o in objections),
            supporting_documents=REQUIRED_DOCUMENTS + [b for o in objections for b in o.legal_basis],
            timeline=self.calculate_drp_timeline(self.current_date),
        )

    def calculate_drp_timeline(self, filing_date: date) -> DRPTimeline:
        dates = drp_timeline(filing_date)
        return DRPTimeline(
            filing_date=filing_date,
            expected_hearing=dates["expected_hearing"],
            direction_deadline=dates["direction_deadline"],
            final_assessment_deadline=dates["final_assessment"],
        )

    def validate_drp_application(self, application: DRPApplication) -> WorkflowValidation:
        errors: list[WorkflowIssue] = []
        warnings: list[WorkflowIssue] = []

        check = is_within_time_limit(
            application.draft_order_date, application.filing_date, DISPUTE_TIMELINES["drp"]["filing_deadline"]
        )
        if not check.is_valid:
            errors.append(WorkflowIssue("filingDate", "Filing deadline has passed", code="DEADLINE_EXCEEDED"))
        if not application.objections:
            errors.append(
                WorkflowIssue("objections", "At least one objection must be raised", code="NO_OBJECTIONS")
            )
        if not application.grounds_of_objection:
            errors.append(
                WorkflowIssue("groundsOfObjection", "Grounds of objection are required", code="NO_GROUNDS")
            )
        if len(application.supporting_documents) < 3:
            warnings.append(
                WorkflowIssue(
                    "supportingDocuments",
                    "Limited supporting documents provided",
                    recommendation="Include TP documentation, FAR analysis, and benchmarking study",
                )
            )

        return WorkflowValidation(is_valid=not errors, errors=errors, warnings=warnings)

    def track_drp_progress(self, application: DRPApplication) -> ProgressTracker:
        direction_deadline = application.timeline.direction_deadline
        remaining = days_between(self.current_date, direction_deadline)
        alerts = [
            DeadlineAlert(
                deadline=direction_deadline,
                description="DRP direction deadline",
                days_remaining=remaining,
                severity=alert_severity(remaining),
            )
        ]

        actions: list[PendingAction] = []
        hearing = application.timeline.first_hearing_date
        if hearing is not None:
            to_hearing = days_between(self.current_date, hearing)
            if 0 < to_hearing <= DISPUTE_TIMELINES["drp"]["written_submission"]:
                actions.append(
                    PendingAction(
                        action="Prepare written submissions for DRP hearing",
                        deadline=calculate_deadline(self.current_date, 7),
                        priority="high",
                        responsible_party="Tax Consultant",
                    )
                )

        return ProgressTracker(
            application_id=application.application_id,
            current_stage=DisputeStage.DRP_HEARING,
            current_status=application.status,
            completed_stages=[
                {
                    "stage": DisputeStage.DRP_FILING,
                    "completed_date": application.filing_date,
                    "outcome": "Application filed successfully",
                    "documents": application.supporting_documents,
                }
            ],
            pending_actions=actions,
            upcoming_deadlines=alerts,
            last_updated=self.current_date,
        )

    # ------------------------------------------------------------------
    # ITAT workflow
    # ------------------------------------------------------------------
    def create_itat_appeal(
        self,
        order_number: str,
        order_date: date,
        taxpayer: TaxpayerDetails,
        assessment_year: str,
        grounds: GroundsOfAppeal,
        relief_claimed: float,
    ) -> ITATAppeal:
        return ITATAppeal(
            appeal_number=self._application_id("ITAT", assessment_year),
            filing_date=self.current_date,
            assessment_year=assessment_year,
            order_appealed=order_number,
            order_date=order_date,
            taxpayer=taxpayer,
            grounds_of_appeal=self._flatten_grounds(grounds),
            relief_claimed=relief_claimed,
            fee=calculate_appeal_fee(relief_claimed, "itat"),
            timeline=self.calculate_itat_timeline(self.current_date),
        )

    def calculate_itat_timeline(self, filing_date: date) -> ITATTimeline:
        dates = itat_timeline(filing_date)
        return ITATTimeline(
            filing_date=filing_date,
            cross_objection_deadline=dates["cross_objection_deadline"],
            paper_book_deadline=dates["paper_book_deadline"],
            stay_expiry=dates["stay_expiry"],
        )

    def validate_itat_appeal(self, appeal: ITATAppeal) -> WorkflowValidation:
        """Completeness check; late filings within the condonable window only warn."""
        errors: list[WorkflowIssue] = []
        warnings: list[WorkflowIssue] = []
        limit = DISPUTE_TIMELINES["itat"]["filing_deadline"]

        check = is_within_time_limit(appeal.order_date, appeal.filing_date, limit)
        if not check.is_valid:
            delay = check.days_used - limit
            condonation = check_condonation(delay)
            if condonation.eligible:
                warnings.append(
                    WorkflowIssue(
                        "filingDate",
                        f"Filing delayed by {delay} days",
                        recommendation=f"File condonation application with {condonation.grounds_required} grounds",
                    )
                )
            else:
                errors.append(
                    WorkflowIssue(
                        "filingDate",
                        "Filing deadline exceeded beyond condonable limit",
                        code="DEADLINE_NOT_CONDONABLE",
                    )
                )

        if not appeal.grounds_of_appeal:
            errors.append(WorkflowIssue("groundsOfAppeal", "Grounds of appeal are required", code="NO_GROUNDS"))
        if appeal.fee <= 0:
            errors.append(WorkflowIssue("fee", "Appeal fee must be paid", code="FEE_NOT_PAID"))

        return WorkflowValidation(is_valid=not errors, errors=errors, warnings=warnings)

    def prepare_grounds_of_appeal(self, tpo_order: TPOOrder) -> GroundsOfAppeal:
        """Standard TP grounds plus one ground per transaction-wise adjustment."""
        specific: list[SpecificGround] = []
        number = 1
        for key, category, sections in (
            ("tpo_order", "TPO Order Challenge", ["Section 92C", "Section 92CA"]),
            ("mam_selection", "Method Selection", ["Section 92C(1)", "Rule 10B"]),
            ("comparables", "Comparables Selection", ["Rule 10B(2)", "Rule 10B(3)"]),
        ):
            for ground in STANDARD_TP_GROUNDS[key]:
                specific.append(SpecificGround(number, category, ground, list(sections)))
                number += 1

        for adj in tpo_order.transaction_adjustments:
            specific.append(
                SpecificGround(
                    ground_number=number,
                    category="Transaction-Specific",
                    ground=(
                        f"The TPO/AO erred in making an adjustment of Rs. {format_indian(adj.adjustment_amount)} "
                        f"in respect of {adj.transaction_type} with {adj.related_party}"
                    ),
                    related_legal_sections=["Section 92", "Section 92C"],
                    sub_grounds=[
                        f"The reported price of Rs. {format_indian(adj.reported_value)} was at arm's length",
                        f"The ALP determined at Rs. {format_indian(adj.alp_determined)} is incorrect",
                    ],
                )
            )
            number += 1

        return GroundsOfAppeal(
            general_grounds=list(STANDARD_TP_GROUNDS["general"]),
            specific_grounds=specific,
            relief_prayer=(
                f"The appellant prays that the TP adjustment of Rs. "
                f"{format_indian(tpo_order.primary_adjustment)} be deleted in full"
            ),
        )

    def create_stay_application(self, appeal: ITATAppeal, demand_amount: float, payment_offered: float) -> StayApplication:
        """Stay of demand; the payment offered is raised to the mandatory 20% where short."""
        minimum = demand_amount * STAY_OF_DEMAND["itat"]["mandatory_payment"]
        stay = StayApplication(
            application_date=self.current_date,
            demand_amount=demand_amount,
            payment_offered=max(payment_offered, minimum),
            minimum_payment=minimum,
            stay_granted=False,
            conditions=list(STAY_OF_DEMAND["itat"]["conditions"]),
        )
        appeal.stay_application = stay
        return stay

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _application_id(prefix: str, assessment_year: str) -> str:
        return f"{prefix}/{assessment_year}/{_base36(time.time_ns() // 1_000_000)}"

    @staticmethod
    def _drp_grounds(tpo_order: TPOOrder, objections: list[DRPObjection]) -> list[str]:
        grounds = [
            f"1. The draft assessment order dated {tpo_order.order_date.isoformat()} is bad in law and liable to be quashed.",
            (
                f"2. The TPO/AO erred in making a transfer pricing adjustment of "
                f"Rs. {format_indian(tpo_order.primary_adjustment)} without proper appreciation of facts."
            ),
        ]
        grounds.extend(f"{i}. {o.brief_description}" for i, o in enumerate(objections, start=3))
        return grounds

    @staticmethod
    def _flatten_grounds(grounds: GroundsOfAppeal) -> list[str]:
        flat = [f"{i}. {g}" for i, g in enumerate(grounds.general_grounds, start=1)]
        for sg in grounds.specific_grounds:
            flat.append(f"{sg.ground_number}. {sg.ground}")
            flat.extend(f"   {sg.ground_number}.{i} {sub}" for i, sub in enumerate(sg.sub_grounds, start=1))
        return flat


def _base36(number: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out or "0"


__all__ = [
    "TaxpayerDetails",
    "TransactionAdjustment",
    "TPOOrder",
    "DraftAssessmentOrder",
    "DRPObjection",
    "DRPTimeline",
    "DRPApplication",
    "EligibilityResult",
    "SpecificGround",
    "GroundsOfAppeal",
    "ITATTimeline",
    "StayApplication",
    "ITATAppeal",
    "WorkflowIssue",
    "WorkflowValidation",
    "DeadlineAlert",
    "PendingAction",
    "ProgressTracker",
    "REQUIRED_DOCUMENTS",
    "alert_severity",
    "DisputeWorkflowEngine",
]
