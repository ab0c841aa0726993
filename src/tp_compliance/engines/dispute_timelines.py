"""Statutory timelines, forms and fees for TP dispute resolution.

All deadlines are plain calendar-day offsets from the triggering order. No
business-day or holiday adjustment is applied.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Literal, Optional, Union

from ..errors import ValidationError


class DisputeStage(str, Enum):
    TPO_REFERENCE = "tpo_reference"
    TPO_ORDER = "tpo_order"
    DRAFT_ASSESSMENT = "draft_assessment"
    DRP_FILING = "drp_filing"
    DRP_HEARING = "drp_hearing"
    DRP_DIRECTION = "drp_direction"
    FINAL_ASSESSMENT = "final_assessment"
    CIT_APPEALS = "cit_appeals"
    ITAT_APPEAL = "itat_appeal"
    HIGH_COURT = "high_court"
    SUPREME_COURT = "supreme_court"


class DisputeStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PENDING_RESPONSE = "pending_response"
    HEARING_SCHEDULED = "hearing_scheduled"
    AWAITING_ORDER = "awaiting_order"
    COMPLETED = "completed"
    PARTIALLY_ALLOWED = "partially_allowed"
    DISMISSED = "dismissed"
    WITHDRAWN = "withdrawn"


class FormType(str, Enum):
    FORM_35 = "form_35"
    FORM_35A = "form_35a"
    FORM_36 = "form_36"
    FORM_36A = "form_36a"
    DRP_OBJECTION = "drp_objection"
    WRITTEN_SUBMISSION = "written_submission"
    ADDITIONAL_EVIDENCE = "additional_evidence"
    PAPER_BOOK = "paper_book"
    GROUNDS_OF_APPEAL = "grounds_of_appeal"


# Day counts; months are taken as 30 days
DISPUTE_TIMELINES: dict[str, dict[str, int]] = {
    "tpo": {
        "reference_to_order": 21 * 30,
        "standard_timeframe": 60,
        "extension_period": 30,
    },
    "draft_assessment": {
        "issuance_after_tpo": 30,
        "taxpayer_response": 30,
    },
    "drp": {
        "filing_deadline": 30,
        "direction_deadline": 9 * 30,
        "expected_hearing": 90,
        "hearing_notice": 21,
        "additional_evidence": 7,
        "written_submission": 14,
    },
    "final_assessment": {
        "after_drp_direction": 30,
        "after_taxpayer_acceptance": 30,
        "demand_notice": 30,
    },
    "cit_appeals": {
        "filing_deadline": 30,
        "disposal_target": 365,
        "condonation_limit": 365,
    },
    "itat": {
        "filing_deadline": 60,
        "cross_objection": 30,
        "hearing_notice": 21,
        "stay_application": 180,
        "stay_extension": 180,
        "paper_book": 45,
    },
    "high_court": {
        "filing_deadline": 120,
        "admission_hearing": 90,
        "monetary_limit": 10_000_000,
    },
    "supreme_court": {
        "filing_deadline": 90,
        "monetary_limit": 20_000_000,
    },
    "condonation": {
        "max_delay": 365,
        "strong_grounds": 180,
        "normal_grounds": 30,
    },
}


@dataclass(frozen=True)
class FormRequirement:
    form_number: str
    description: str
    filing_authority: str
    fee: int
    electronic_filing: bool
    physical_copies: int
    attachments: tuple[str, ...]
    section: str


FORM_REQUIREMENTS: dict[FormType, FormRequirement] = {
    FormType.FORM_35: FormRequirement(
        "35", "Appeal to CIT(A)", "Commissioner of Income Tax (Appeals)", 1000, True, 2,
        ("Copy of assessment order", "Grounds of appeal", "Statement of facts", "Verification"),
        "Section 246A",
    ),
    FormType.FORM_35A: FormRequirement(
        "35A", "Cross Objection before CIT(A)", "Commissioner of Income Tax (Appeals)", 500, True, 2,
        ("Copy of appeal memo filed by AO", "Grounds of cross objection"),
        "Section 246A",
    ),
    FormType.FORM_36: FormRequirement(
        "36", "Appeal to ITAT", "Income Tax Appellate Tribunal", 1500, True, 4,
        (
            "Certified copy of CIT(A) order/Assessment order",
            "Grounds of appeal",
            "Statement of facts",
            "Index and paper book",
        ),
        "Section 253",
    ),
    FormType.FORM_36A: FormRequirement(
        "36A", "Cross Objection before ITAT", "Income Tax Appellate Tribunal", 500, True, 4,
        ("Copy of appeal memo", "Grounds of cross objection"),
        "Section 253(4)",
    ),
    FormType.DRP_OBJECTION: FormRequirement(
        "DRP Objection", "Objections before DRP", "Dispute Resolution Panel", 0, True, 3,
        ("Copy of draft assessment order", "Copy of TPO order", "Objections with grounds", "Supporting documents"),
        "Section 144C(2)",
    ),
    FormType.WRITTEN_SUBMISSION: FormRequirement(
        "Written Submission", "Written submissions for hearing", "Relevant authority", 0, True, 2,
        ("Detailed legal arguments", "Case law citations", "Documentary evidence"),
        "General",
    ),
    FormType.ADDITIONAL_EVIDENCE: FormRequirement(
        "Additional Evidence", "Application for additional evidence", "Relevant appellate authority", 0, False, 2,
        ("Application under Rule 46A", "Affidavit explaining delay", "Evidence documents"),
        "Rule 46A",
    ),
    FormType.PAPER_BOOK: FormRequirement(
        "Paper Book", "Compilation of documents for ITAT", "Income Tax Appellate Tribunal", 0, False, 4,
        ("Index", "Relevant orders", "Submissions made", "Evidence relied upon"),
        "ITAT Rules",
    ),
    FormType.GROUNDS_OF_APPEAL: FormRequirement(
        "Grounds of Appeal", "Specific grounds challenging the order", "As per appeal forum", 0, True, 2,
        ("Detailed grounds", "Legal basis for each ground"),
        "General",
    ),
}

APPEAL_FEES: dict[str, dict[str, int]] = {
    "cit_a": {"up_to_100000": 250, "up_to_200000": 500, "above_200000": 1000, "tp_matters": 1000},
    "itat": {"up_to_100000": 500, "up_to_200000": 1000, "above_200000": 1500, "tp_matters": 1500},
}

DRP_ELIGIBILITY: dict[str, object] = {
    "applicable_to": ["Foreign company", "Domestic company with TP adjustment", "Any person with TP order"],
    "not_applicable_to": [
        "Individuals (non-TP cases)",
        "HUF (non-TP cases)",
        "Partnership firms (non-TP cases)",
    ],
    "minimum_adjustment": 0,
    "exclusions": [
        "Best judgment assessment under Section 144",
        "Assessment where search conducted under Section 132",
    ],
}

STANDARD_TP_GROUNDS: dict[str, list[str]] = {
    "general": [
        "The order passed is bad in law and against the principles of natural justice",
        "The assessment order is barred by limitation",
        "The additions made are without proper opportunity of being heard",
    ],
    "tpo_order": [
        "The TPO erred in law and on facts in determining the arm's length price",
        "The TPO erred in rejecting the benchmarking analysis undertaken by the appellant",
        "The TPO erred in not accepting the Most Appropriate Method selected by the appellant",
        "The TPO erred in making comparability adjustments without proper basis",
        "The TPO erred in selecting inappropriate comparables",
        "The TPO erred in rejecting valid comparables provided by the appellant",
    ],
    "mam_selection": [
        "The TPO erred in not applying the Most Appropriate Method as per OECD Guidelines",
        "The TPO erred in applying TNMM when CUP method was more appropriate",
        "The TPO erred in not considering internal CUPs available with the appellant",
    ],
    "comparables": [
        "The TPO erred in including functionally dissimilar companies in the comparables set",
        "The TPO erred in excluding valid comparables without proper reasoning",
        "The TPO erred in not applying appropriate comparability adjustments",
        "The TPO erred in using single year data instead of multiple year data",
    ],
    "adjustments": [
        "The TPO erred in making working capital adjustment without proper basis",
        "The TPO erred in not allowing risk adjustment",
        "The TPO erred in not allowing capacity utilization adjustment",
    ],
    "documentation": [
        "The TPO erred in ignoring contemporaneous documentation maintained by the appellant",
        "The TPO erred in drawing adverse inference for minor documentation gaps",
    ],
    "penalty": [
        "The penalty levied under Section 271(1)(c) is not justified",
        "The penalty under Section 271AA/271G is excessive and unwarranted",
        "The appellant had reasonable cause and acted in good faith",
    ],
}

STAY_OF_DEMAND: dict[str, dict[str, object]] = {
    "itat": {
        "mandatory_payment": 0.2,
        "conditions": [
            "Prima facie case in favor of appellant",
            "Balance of convenience",
            "Irreparable hardship if stay not granted",
        ],
        "duration": 180,
        "extension": 180,
        "max_extensions": 2,
    },
    "high_court": {
        "mandatory_payment": 0.2,
        "conditions": ["Substantial question of law", "Balance of convenience", "Financial hardship"],
    },
    "assessing_officer": {
        "part_payment": 0.2,
        "conditions": ["Genuine hardship", "Pending appeal", "Security/bank guarantee"],
    },
}

MONETARY_LIMITS: dict[str, dict[str, int]] = {
    # Minimum tax effect for the department to appeal; taxpayers face none
    "department_appeal": {"itat": 5_000_000, "high_court": 10_000_000, "supreme_court": 20_000_000},
    "taxpayer_appeal": {"itat": 0, "high_court": 0, "supreme_court": 0},
}

NEXT_STAGE: dict[DisputeStage, Optional[DisputeStage]] = {
    DisputeStage.TPO_REFERENCE: DisputeStage.TPO_ORDER,
    DisputeStage.TPO_ORDER: DisputeStage.DRAFT_ASSESSMENT,
    DisputeStage.DRAFT_ASSESSMENT: DisputeStage.DRP_FILING,
    DisputeStage.DRP_FILING: DisputeStage.DRP_HEARING,
    DisputeStage.DRP_HEARING: DisputeStage.DRP_DIRECTION,
    DisputeStage.DRP_DIRECTION: DisputeStage.FINAL_ASSESSMENT,
    DisputeStage.FINAL_ASSESSMENT: DisputeStage.ITAT_APPEAL,
    DisputeStage.CIT_APPEALS: DisputeStage.ITAT_APPEAL,
    DisputeStage.ITAT_APPEAL: DisputeStage.HIGH_COURT,
    DisputeStage.HIGH_COURT: DisputeStage.SUPREME_COURT,
    DisputeStage.SUPREME_COURT: None,
}

FILING_DEADLINE_DAYS: dict[DisputeStage, int] = {
    DisputeStage.DRP_FILING: DISPUTE_TIMELINES["drp"]["filing_deadline"],
    DisputeStage.CIT_APPEALS: DISPUTE_TIMELINES["cit_appeals"]["filing_deadline"],
    DisputeStage.ITAT_APPEAL: DISPUTE_TIMELINES["itat"]["filing_deadline"],
    DisputeStage.HIGH_COURT: DISPUTE_TIMELINES["high_court"]["filing_deadline"],
    DisputeStage.SUPREME_COURT: DISPUTE_TIMELINES["supreme_court"]["filing_deadline"],
}

STAGE_FORMS: dict[DisputeStage, FormType] = {
    DisputeStage.DRP_FILING: FormType.DRP_OBJECTION,
    DisputeStage.CIT_APPEALS: FormType.FORM_35,
    DisputeStage.ITAT_APPEAL: FormType.FORM_36,
}

NEXT_MILESTONE: dict[DisputeStage, str] = {
    DisputeStage.TPO_REFERENCE: "TPO order",
    DisputeStage.TPO_ORDER: "Draft assessment order",
    DisputeStage.DRAFT_ASSESSMENT: "DRP filing or AO response",
    DisputeStage.DRP_FILING: "DRP hearing",
    DisputeStage.DRP_HEARING: "DRP directions",
    DisputeStage.DRP_DIRECTION: "Final assessment order",
    DisputeStage.FINAL_ASSESSMENT: "Appeal to CIT(A) or ITAT",
    DisputeStage.CIT_APPEALS: "CIT(A) order",
    DisputeStage.ITAT_APPEAL: "ITAT order",
    DisputeStage.HIGH_COURT: "High Court judgment",
    DisputeStage.SUPREME_COURT: "Supreme Court judgment",
}

DISPUTE_FLOWCHART: list[dict[str, object]] = [
    {
        "stage": "TPO Proceeding",
        "actions": ["Reference to TPO", "Show cause notice", "TPO order"],
        "timeline": "Within 60 days before due date of assessment",
    },
    {
        "stage": "DRP Option",
        "actions": ["File objections to DRP", "DRP hearing", "DRP directions"],
        "timeline": "30 days from TPO order, Directions within 9 months",
    },
    {
        "stage": "Assessment",
        "actions": ["AO passes order giving effect to DRP directions"],
        "timeline": "Within 1 month from DRP directions",
    },
    {
        "stage": "ITAT Appeal",
        "actions": ["File appeal", "Hearing", "ITAT order"],
        "timeline": "60 days from assessment order",
    },
    {
        "stage": "High Court",
        "actions": ["File substantial question of law", "Hearing", "HC judgment"],
        "timeline": "120 days from ITAT order",
    },
    {
        "stage": "Supreme Court",
        "actions": ["SLP/Appeal", "Hearing", "SC judgment"],
        "timeline": "90 days from HC judgment",
    },
]

Forum = Literal["cit_a", "itat"]


@dataclass
class TimeLimitCheck:
    is_valid: bool
    days_used: int
    days_remaining: int


@dataclass
class CondonationCheck:
    eligible: bool
    grounds_required: Literal["normal", "strong", "exceptional"]


def parse_stage(value: DisputeStage | str) -> DisputeStage:
    try:
        return DisputeStage(value)
    except ValueError:
        valid = ", ".join(s.value for s in DisputeStage)
        raise ValidationError(f"Unknown dispute stage: {value}. Valid stages: {valid}", field="stage") from None


def calculate_deadline(reference_date: date, stage_or_days: Union[DisputeStage, str, int]) -> date:
    """Add a stage's filing window (or an explicit day count) to ``reference_date``.

    Raises:
        ValidationError: If the stage has no filing deadline.
    """
    if isinstance(stage_or_days, int):
        days = stage_or_days
    else:
        stage = parse_stage(stage_or_days)
        if stage not in FILING_DEADLINE_DAYS:
            raise ValidationError(f"No filing deadline defined for stage {stage.value}", field="stage")
        days = FILING_DEADLINE_DAYS[stage]
    return reference_date + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    """Whole days from ``start`` to ``end``, part days rounded up."""
    if isinstance(start, datetime) or isinstance(end, datetime):
        return math.ceil((_as_datetime(end) - _as_datetime(start)).total_seconds() / 86400)
    return (end - start).days


def is_within_time_limit(order_date: date, filing_date: date, limit_days: int) -> TimeLimitCheck:
    used = days_between(order_date, filing_date)
    return TimeLimitCheck(is_valid=used <= limit_days, days_used=used, days_remaining=max(0, limit_days - used))


def check_condonation(delay_days: int) -> CondonationCheck:
    limits = DISPUTE_TIMELINES["condonation"]
    if delay_days <= limits["normal_grounds"]:
        return CondonationCheck(eligible=True, grounds_required="normal")
    if delay_days <= limits["strong_grounds"]:
        return CondonationCheck(eligible=True, grounds_required="strong")
    if delay_days <= limits["max_delay"]:
        return CondonationCheck(eligible=True, grounds_required="exceptional")
    return CondonationCheck(eligible=False, grounds_required="exceptional")


def calculate_appeal_fee(disputed_amount: float, forum: Forum) -> int:
    try:
        fees = APPEAL_FEES[forum]
    except KeyError:
        raise ValidationError(f"Unknown appeal forum: {forum}", field="forum") from None
    if disputed_amount <= 100_000:
        return fees["up_to_100000"]
    if disputed_amount <= 200_000:
        return fees["up_to_200000"]
    return fees["above_200000"]


def drp_timeline(filing_date: date) -> dict[str, date]:
    direction = calculate_deadline(filing_date, DISPUTE_TIMELINES["drp"]["direction_deadline"])
    return {
        "filing_date": filing_date,
        "expected_hearing": calculate_deadline(filing_date, DISPUTE_TIMELINES["drp"]["expected_hearing"]),
        "direction_deadline": direction,
        "final_assessment": calculate_deadline(direction, DISPUTE_TIMELINES["final_assessment"]["after_drp_direction"]),
    }


def itat_timeline(filing_date: date) -> dict[str, date]:
    itat = DISPUTE_TIMELINES["itat"]
    return {
        "filing_date": filing_date,
        "cross_objection_deadline": calculate_deadline(filing_date, itat["cross_objection"]),
        "paper_book_deadline": calculate_deadline(filing_date, itat["paper_book"]),
        "stay_expiry": calculate_deadline(filing_date, itat["stay_application"]),
    }


def next_stage(stage: DisputeStage | str) -> Optional[DisputeStage]:
    return NEXT_STAGE[parse_stage(stage)]


def filing_deadline(stage: DisputeStage | str, previous_order_date: date) -> Optional[date]:
    """Deadline for filing at ``stage``, or None when the stage has no filing window."""
    days = FILING_DEADLINE_DAYS.get(parse_stage(stage))
    return previous_order_date + timedelta(days=days) if days else None


def required_form(stage: DisputeStage | str) -> Optional[FormType]:
    return STAGE_FORMS.get(parse_stage(stage))


def _as_datetime(value: date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


__all__ = [
    "DisputeStage",
    "DisputeStatus",
    "FormType",
    "DISPUTE_TIMELINES",
    "FormRequirement",
    "FORM_REQUIREMENTS",
    "APPEAL_FEES",
    "DRP_ELIGIBILITY",
    "STANDARD_TP_GROUNDS",
    "STAY_OF_DEMAND",
    "MONETARY_LIMITS",
    "NEXT_STAGE",
    "FILING_DEADLINE_DAYS",
    "STAGE_FORMS",
    "NEXT_MILESTONE",
    "DISPUTE_FLOWCHART",
    "TimeLimitCheck",
    "CondonationCheck",
    "parse_stage",
    "calculate_deadline",
    "days_between",
    "is_within_time_limit",
    "check_condonation",
    "calculate_appeal_fee",
    "drp_timeline",
    "itat_timeline",
    "next_stage",
    "filing_deadline",
    "required_form",
]
