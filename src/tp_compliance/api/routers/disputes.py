from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from ...engines.dispute_timelines import (
    DISPUTE_FLOWCHART,
    DISPUTE_TIMELINES,
    FILING_DEADLINE_DAYS,
    FORM_REQUIREMENTS,
    NEXT_MILESTONE,
    STANDARD_TP_GROUNDS,
    DisputeStage,
    DisputeStatus,
    calculate_deadline,
    days_between,
    next_stage,
    parse_stage,
    required_form,
)
from ...engines.dispute_workflow import DisputeWorkflowEngine
from ...utils.log_setup import EngineNames, log_context
from ...utils.serialization import to_wire
from ..schemas import CaseTrackingRequest, DeadlineRequest, DRPRequest, ITATRequest

router = APIRouter(
    prefix="/dispute-workflow",
    tags=["Dispute Workflow"]
)


@router.post("/drp", summary="Create DRP Application")
async def create_drp_application(request: DRPRequest):
    """
    Check the DRP gates and, when they all pass, build the application with
    its statutory timeline. ``filingDate`` defaults to today.
    """
    filing_date = request.filing_date or date.today()
    engine = DisputeWorkflowEngine(current_date=filing_date)
    tpo_order, draft_order = request.tpo_order(), request.draft_order()

    with log_context(engine=EngineNames.DISPUTE, assessment_year=request.assessment_year):
        eligibility = engine.validate_eligibility(tpo_order, draft_order)
        if not eligibility.is_eligible:
            return {
                "eligible": False,
                "reasons": eligibility.ineligibility_reasons,
                "eligibility": to_wire(eligibility),
                "alternativeOptions": [
                    "File objections before AO",
                    "Proceed with appeal to CIT(A) after assessment order",
                ],
            }

        application = engine.create_drp_application(tpo_order, draft_order, request.drp_objections())
        validation = engine.validate_drp_application(application)
        progress = engine.track_drp_progress(application)

    filing_deadline = calculate_deadline(draft_order.order_date, DisputeStage.DRP_FILING)
    return {
        "eligible": True,
        "application": to_wire(application),
        "timeline": to_wire(application.timeline),
        "eligibility": to_wire(eligibility),
        "validation": to_wire(validation),
        "progress": to_wire(progress),
        "summary": {
            "caseType": "DRP Application",
            "filingDeadline": filing_deadline.isoformat(),
            "daysRemaining": max(0, days_between(filing_date, filing_deadline)),
            "expectedDirectionDate": application.timeline.direction_deadline.isoformat(),
            "totalDisputedAmount": request.adjustment_amount,
            "numberOfObjections": len(request.objections),
            "nextSteps": [
                "File Form 35A with DRP within deadline",
                "Submit supporting documentation",
                "Prepare for hearing if scheduled",
            ],
        },
    }


@router.post("/itat", summary="Create ITAT Appeal")
async def create_itat_appeal(request: ITATRequest):
    """
    Build an ITAT appeal against an assessment order. Without explicit grounds
    the standard TP grounds are prepared; a ``demandAmount`` adds a stay of
    demand application.
    """
    filing_date = request.filing_date or date.today()
    engine = DisputeWorkflowEngine(current_date=filing_date)

    with log_context(engine=EngineNames.DISPUTE, assessment_year=request.assessment_year):
        if request.grounds_of_appeal:
            grounds = request.grounds()
        else:
            grounds = engine.prepare_grounds_of_appeal(request.tpo_order())
        appeal = engine.create_itat_appeal(
            request.assessment_order_number,
            request.assessment_order_date,
            request.taxpayer_details.to_engine(),
            request.assessment_year,
            grounds,
            request.adjustment_amount,
        )
        if request.demand_amount:
            engine.create_stay_application(appeal, request.demand_amount, request.payment_offered)
        validation = engine.validate_itat_appeal(appeal)

    filing_deadline = calculate_deadline(request.assessment_order_date, DisputeStage.ITAT_APPEAL)
    return {
        "appeal": to_wire(appeal),
        "grounds": to_wire(grounds),
        "validation": to_wire(validation),
        "summary": {
            "caseType": "ITAT Appeal",
            "assessmentOrderDate": request.assessment_order_date.isoformat(),
            "filingDeadline": filing_deadline.isoformat(),
            "daysRemaining": max(0, days_between(filing_date, filing_deadline)),
            "isWithinTime": filing_date <= filing_deadline,
            "adjustmentAmount": request.adjustment_amount,
            "numberOfGrounds": len(grounds.general_grounds) + len(grounds.specific_grounds),
            "appealFee": appeal.fee,
            "nextSteps": [
                "File Form 36 with ITAT",
                "Pay appeal fee",
                "Submit paper book with documents",
                "Serve copy on department",
            ],
        },
    }


@router.post("/deadline", summary="Filing Deadline for a Stage")
async def filing_deadline(request: DeadlineRequest):
    stage = parse_stage(request.stage)
    deadline = calculate_deadline(request.reference_date, stage)
    form = required_form(stage)
    following = next_stage(stage)
    return {
        "stage": stage.value,
        "referenceDate": request.reference_date.isoformat(),
        "deadline": deadline.isoformat(),
        "days": FILING_DEADLINE_DAYS[stage],
        "nextStage": following.value if following else None,
        "form": form.value if form else None,
        "formDetails": to_wire(FORM_REQUIREMENTS[form]) if form else None,
    }


@router.patch("", summary="Track Case Progress")
async def track_case(request: CaseTrackingRequest):
    stage = parse_stage(request.stage)
    days_since_filing = days_between(request.filing_date, date.today())
    milestone = NEXT_MILESTONE[stage]
    return {
        "caseId": request.case_id,
        "progress": {
            "currentStage": stage.value,
            "currentStatus": request.status.value,
            "daysInCurrentStage": days_since_filing,
            "expectedNextMilestone": milestone,
            "timeline": [{"stage": stage.value, "startDate": request.filing_date.isoformat(), "endDate": None}],
            "events": [to_wire(e.model_dump(by_alias=True)) for e in request.events],
        },
        "summary": {
            "currentStage": stage.value,
            "currentStatus": request.status.value,
            "daysSinceFiling": days_since_filing,
            "eventsCount": len(request.events),
            "nextMilestone": milestone,
        },
    }


@router.get("", summary="Dispute Reference Tables")
async def get_reference(type: Optional[str] = Query(default=None, description="timelines | forms | grounds | flowchart")):
    if type == "timelines":
        return {"timelines": to_wire(DISPUTE_TIMELINES), "description": "Statutory timelines for dispute resolution"}
    if type == "forms":
        return {"forms": to_wire(FORM_REQUIREMENTS), "description": "Form requirements for various dispute stages"}
    if type == "grounds":
        return {
            "grounds": to_wire(STANDARD_TP_GROUNDS),
            "description": "Standard grounds of appeal for transfer pricing cases",
        }
    if type == "flowchart":
        return {"stages": to_wire(DISPUTE_FLOWCHART)}

    return {
        "overview": {
            "title": "Transfer Pricing Dispute Resolution",
            "description": "Workflow management for TP disputes in India",
            "stages": [s.value for s in DisputeStage],
            "statuses": [s.value for s in DisputeStatus],
        },
        "timelines": to_wire(DISPUTE_TIMELINES),
        "forms": to_wire(FORM_REQUIREMENTS),
        "standardGrounds": to_wire(STANDARD_TP_GROUNDS),
        "keyDeadlines": {
            "DRP": f"{DISPUTE_TIMELINES['drp']['filing_deadline']} days from draft order",
            "ITAT": f"{DISPUTE_TIMELINES['itat']['filing_deadline']} days from assessment order",
            "HIGH_COURT": f"{DISPUTE_TIMELINES['high_court']['filing_deadline']} days from ITAT order",
            "SUPREME_COURT": f"{DISPUTE_TIMELINES['supreme_court']['filing_deadline']} days from HC order",
        },
    }
