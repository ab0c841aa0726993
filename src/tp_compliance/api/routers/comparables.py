from fastapi import APIRouter, Depends, Query

from ... import __version__
from ...config.schema import AppConfig
from ...engines.comparable_search import ComparableSearchEngine
from ...errors import ValidationError
from ...utils.log_setup import EngineNames, log_context
from ...utils.serialization import to_wire
from ..dependencies import get_comparables_engine, get_config
from ..schemas import BenchmarkRequest, SearchRequest, WorkingCapitalRequest

router = APIRouter(
    prefix="/comparables",
    tags=["Comparables"]
)


@router.get("", summary="Comparables Capabilities")
async def get_capabilities(engine: ComparableSearchEngine = Depends(get_comparables_engine)):
    return {
        "status": "ready",
        "version": __version__,
        "functionalProfiles": engine.functional_profiles(),
        "pliDescriptions": to_wire(engine.pli_descriptions()),
        "capabilities": {
            "search": True,
            "benchmarking": True,
            "workingCapitalAdjustment": True,
            "filteringAnalysis": True,
            "recommendedPli": True,
        },
        "sources": ["PROWESS (CMIE)", "Capitaline"],
    }


@router.post("/search", summary="Search Comparable Companies")
async def search_comparables(
    request: SearchRequest,
    engine: ComparableSearchEngine = Depends(get_comparables_engine),
    config: AppConfig = Depends(get_config),
):
    """Screen the selected databases and return one page of merged results."""
    with log_context(engine=EngineNames.COMPARABLES):
        result = engine.search(request.to_criteria(config.comparables))
    return to_wire(result)


@router.post("/benchmark", summary="Benchmark Comparable Set")
async def benchmark_comparables(
    request: BenchmarkRequest,
    engine: ComparableSearchEngine = Depends(get_comparables_engine),
    config: AppConfig = Depends(get_config),
):
    """
    Interquartile range of the chosen PLI across either explicit CINs or the
    page of companies a search returns.
    """
    with log_context(engine=EngineNames.BENCHMARKING):
        if request.cins:
            companies = [engine.get_company(cin) for cin in request.cins]
            return to_wire(engine.benchmark(companies, request.pli_type, request.tested_party_pli))
        if request.criteria is not None:
            _, benchmark = engine.benchmark_search(
                request.criteria.to_criteria(config.comparables), request.pli_type, request.tested_party_pli
            )
            return to_wire(benchmark)
    raise ValidationError("Either cins or criteria is required", field="cins")


@router.get("/companies/{cin}", summary="Get Company")
async def get_company(cin: str, engine: ComparableSearchEngine = Depends(get_comparables_engine)):
    return to_wire(engine.get_company(cin))


@router.get("/companies/{cin}/financials", summary="Get Company Financials")
async def get_company_financials(
    cin: str,
    years: int = Query(default=3, description="Most recent years to return"),
    engine: ComparableSearchEngine = Depends(get_comparables_engine),
):
    financials = engine.get_company_financials(cin, years)
    return {"cin": cin, "financials": to_wire(financials)}


@router.post("/filtering-analysis", summary="Screening Filter Effectiveness")
async def filtering_analysis(
    request: SearchRequest,
    engine: ComparableSearchEngine = Depends(get_comparables_engine),
    config: AppConfig = Depends(get_config),
):
    """How many companies each screening step removes on its own."""
    with log_context(engine=EngineNames.COMPARABLES):
        return to_wire(engine.filtering_analysis(request.to_criteria(config.comparables)))


@router.post("/working-capital", summary="Working Capital Adjustments")
async def working_capital(
    request: WorkingCapitalRequest,
    engine: ComparableSearchEngine = Depends(get_comparables_engine),
):
    companies = [engine.get_company(cin) for cin in request.cins]
    adjustments = engine.working_capital_adjustments(
        companies, request.tested_party_wc_days, request.adjustment_rate, request.pli_type
    )
    return {"adjustments": to_wire(adjustments), "count": len(adjustments)}


@router.get("/recommended-pli/{profile}", summary="Recommended PLI")
async def recommended_pli(profile: str, engine: ComparableSearchEngine = Depends(get_comparables_engine)):
    return to_wire(engine.recommended_pli(profile))


@router.get("/connections", summary="Test Database Connections")
async def test_connections(engine: ComparableSearchEngine = Depends(get_comparables_engine)):
    return to_wire(engine.test_connections())
