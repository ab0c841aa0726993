from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...engines.thin_cap_engine import ThinCapEngine, ThinCapResult
from ...engines.thin_cap_rules import (
    CARRYFORWARD_YEARS,
    EBITDA_LIMITATION_PERCENTAGE,
    calculation_reference,
    exemption_reference,
    overview,
)
from ...utils.log_setup import EngineNames, log_context
from ...utils.serialization import to_wire
from ..dependencies import get_thin_cap_engine
from ..schemas import SimulationRequest, ThinCapRequest

router = APIRouter(
    prefix="/thin-cap",
    tags=["Thin Capitalization"]
)


def limitation_status(result: ThinCapResult) -> str:
    if not result.is_applicable:
        return "Below Threshold"
    return "Limitation Applies" if result.disallowed_interest > 0 else "Within Limit"


@router.post("", summary="Calculate Section 94B Limitation")
async def calculate_limitation(
    request: ThinCapRequest,
    engine: ThinCapEngine = Depends(get_thin_cap_engine),
):
    """
    Apply the 30% of EBITDA cap to interest paid to non-resident associated
    enterprises for one assessment year.
    """
    data = request.to_engine()
    with log_context(engine=EngineNames.THIN_CAP, assessment_year=data.assessment_year):
        result = engine.calculate_interest_limitation(data)

    exemption = engine.check_exemptions(data)
    if exemption.is_exempt:
        return {
            "exempt": True,
            "exemptionCategory": exemption.exemption_category,
            "exemptionReference": exemption.reference,
            "calculation": None,
            "summary": {
                "section": "94B",
                "status": "Exempt",
                "reason": exemption.exemption_category,
                "disallowedInterest": 0,
            },
        }

    total_to_ae = sum(e.interest_amount for e in data.interest_expenses if e.is_ae)
    return {
        "exempt": False,
        "ebitda": to_wire(result.ebitda_result),
        "calculation": to_wire(result),
        "carryforward": to_wire(result.carryforward_result),
        "summary": {
            "section": "94B",
            "status": limitation_status(result),
            "totalInterestPaid": total_to_ae,
            "allowableInterest": result.allowable_interest,
            "disallowedInterest": result.disallowed_interest,
            "ebitda": result.ebitda_result.total_ebitda,
            "limitPercentage": f"{EBITDA_LIMITATION_PERCENTAGE}%",
            "carryforwardAvailable": result.carryforward_result.closing_balance,
            "carryforwardPeriod": f"{CARRYFORWARD_YEARS} years",
        },
    }


@router.put("", summary="Simulate Carryforward Utilization")
async def simulate_carryforward(
    request: SimulationRequest,
    engine: ThinCapEngine = Depends(get_thin_cap_engine),
):
    """Project how a disallowance is absorbed by future EBITDA headroom."""
    with log_context(engine=EngineNames.THIN_CAP, assessment_year=request.starting_year):
        simulation = engine.simulate_carryforward(
            request.disallowed_interest,
            request.projected_ebitda,
            request.projected_interest_expense,
            request.starting_year,
        )
    return to_wire(simulation)


@router.get("", summary="Section 94B Reference")
async def get_reference(type: Optional[str] = Query(default=None, description="exemptions | calculation")):
    """Static reference material; without ``type`` returns the overview."""
    if type == "exemptions":
        return to_wire(exemption_reference())
    if type == "calculation":
        return to_wire(calculation_reference())
    return to_wire(overview())
