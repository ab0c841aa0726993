from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...config.schema import AppConfig
from ...engines.penalty_engine import PenaltyEngine
from ...engines.penalty_rules import INTEREST_NOTES, SECTION_REFERENCE, penalty_overview
from ...errors import ValidationError
from ...utils.formatting import round_half_up
from ...utils.log_setup import EngineNames, log_context
from ...utils.serialization import to_wire
from ..dependencies import get_config, get_penalty_engine
from ..schemas import InterestRequest, PenaltyRequest

router = APIRouter(
    prefix="/penalty",
    tags=["Penalty"]
)


@router.post("", summary="Calculate Penalty Exposure")
async def calculate_exposure(
    request: PenaltyRequest,
    engine: PenaltyEngine = Depends(get_penalty_engine),
    config: AppConfig = Depends(get_config),
):
    """
    Exposure bands under Sections 271(1)(c), 271AA, 271G and 271BA plus
    statutory interest, with a mitigation assessment.
    """
    data = request.to_input(config.penalty)
    with log_context(engine=EngineNames.PENALTY, assessment_year=request.assessment_year):
        exposure = engine.calculate(data)
        mitigation = engine.assess_mitigation(exposure, data)

    concealment = exposure.concealment_penalty
    return {
        "exposure": to_wire(exposure),
        "mitigation": to_wire(mitigation),
        "summary": {
            "adjustmentAmount": request.adjustment_amount,
            "taxEvaded": request.adjustment_amount * request.tax_rate / 100,
            "concealmentPenaltyRange": {
                "minimum": concealment.minimum_penalty,
                "maximum": concealment.maximum_penalty,
            },
            "documentationPenalty": exposure.documentation_penalty.penalty_amount,
            "reportFailurePenalty": exposure.report_failure_penalty.total_penalty,
            "totalInterest": exposure.total_interest,
            "totalMinimumExposure": exposure.minimum,
            "totalMaximumExposure": exposure.maximum,
            "mostLikelyExposure": exposure.most_likely,
            "mitigationRecommendations": mitigation.recommended_actions,
            "riskLevel": mitigation.penalty_likelihood.value,
        },
    }


@router.put("", summary="Calculate Statutory Interest")
async def calculate_interest(request: InterestRequest, engine: PenaltyEngine = Depends(get_penalty_engine)):
    """Interest under Section 234A/B/C/D between a due date and a payment date."""
    result = engine.interest_for_period(
        request.section,
        request.tax_amount,
        request.due_date,
        request.payment_date,
        advance_tax_paid=request.advance_tax_paid,
        assessed_tax=request.assessed_tax,
        refund_granted=request.refund_granted,
    )
    return {
        "section": result.section,
        "taxAmount": request.tax_amount,
        "dueDate": request.due_date.isoformat(),
        "paymentDate": request.payment_date.isoformat(),
        "delayMonths": result.months,
        "interestRate": f"{result.rate_per_month:g}% per month",
        "interestAmount": round_half_up(result.interest_amount),
        "calculation": {
            "formula": result.computation_details[0].formula,
            "result": result.interest_amount,
        },
        "notes": INTEREST_NOTES[result.section],
    }


@router.get("", summary="Penalty Reference")
async def get_reference(section: Optional[str] = Query(default=None, description="271(1)(c) | 271AA | 271BA | 271G")):
    if section:
        try:
            return to_wire(SECTION_REFERENCE[section])
        except KeyError:
            raise ValidationError("Invalid section", field="section") from None
    return to_wire(penalty_overview())
