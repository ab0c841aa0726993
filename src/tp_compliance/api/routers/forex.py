from fastapi import APIRouter, Depends, Query

from ...engines.forex_engine import ForexEngine
from ...utils.log_setup import EngineNames, log_context
from ...utils.serialization import to_wire
from ..dependencies import get_forex_engine
from ..schemas import ConvertMultipleRequest, ConvertRequest, PeriodRequest

router = APIRouter(
    prefix="/forex",
    tags=["Forex"]
)


@router.get("", summary="Forex Capabilities")
async def get_capabilities(engine: ForexEngine = Depends(get_forex_engine)):
    return {
        "status": "ready",
        "primarySource": engine.config.primary_source,
        "fallbackEnabled": engine.config.enable_fallback,
        "historicalEnabled": engine.config.enable_historical,
        "supportedCurrencies": engine.supported_currencies(),
        "tpCurrencies": engine.config.tp_currencies,
        "cache": to_wire(engine.cache_stats()),
    }


@router.get("/rate", summary="Get Exchange Rate")
async def get_rate(
    base: str = Query(..., description="Base currency, e.g. USD"),
    quote: str = Query(default="INR", description="Quote currency"),
    engine: ForexEngine = Depends(get_forex_engine),
):
    with log_context(engine=EngineNames.FOREX):
        return to_wire(await engine.get_rate(base, quote))


@router.post("/convert", summary="Convert Amount")
async def convert(request: ConvertRequest, engine: ForexEngine = Depends(get_forex_engine)):
    with log_context(engine=EngineNames.FOREX):
        return to_wire(await engine.convert(request.from_currency, request.to_currency, request.amount))


@router.post("/convert-multiple", summary="Convert Into Several Currencies")
async def convert_multiple(request: ConvertMultipleRequest, engine: ForexEngine = Depends(get_forex_engine)):
    with log_context(engine=EngineNames.FOREX):
        result = await engine.convert_multiple(request.base_currency, request.target_currencies, request.amount)
    return to_wire(result)


@router.post("/average", summary="Average Rate Over a Period")
async def average_rate(request: PeriodRequest, engine: ForexEngine = Depends(get_forex_engine)):
    """Average, range and volatility for a date range or an Indian financial year."""
    start, end = request.period()
    with log_context(engine=EngineNames.FOREX):
        result = await engine.get_average_rate(request.base_currency, request.quote_currency, start, end)
    return to_wire(result)


@router.post("/historical", summary="Historical Rates")
async def historical_rates(request: PeriodRequest, engine: ForexEngine = Depends(get_forex_engine)):
    start, end = request.period()
    with log_context(engine=EngineNames.FOREX):
        rates = await engine.get_historical_rates(request.base_currency, request.quote_currency, start, end)
    return {
        "rates": to_wire(rates),
        "count": len(rates),
        "period": {"startDate": start.isoformat(), "endDate": end.isoformat()},
        "synthetic": any(r.synthetic for r in rates),
    }


@router.get("/compare", summary="Compare RBI and ECB Rates")
async def compare_rates(
    base: str = Query(...),
    quote: str = Query(default="INR"),
    engine: ForexEngine = Depends(get_forex_engine),
):
    return to_wire(await engine.compare_rates(base, quote))


@router.get("/tp-rates", summary="Rates for Common TP Currencies")
async def tp_rates(engine: ForexEngine = Depends(get_forex_engine)):
    return to_wire(await engine.get_tp_compliance_rates())


@router.get("/inr-rates", summary="All Rates Against INR")
async def inr_rates(engine: ForexEngine = Depends(get_forex_engine)):
    rates = await engine.get_all_inr_rates()
    return {"rates": to_wire(rates), "count": len(rates)}


@router.get("/currencies/{code}", summary="Currency Details")
async def currency_info(code: str, engine: ForexEngine = Depends(get_forex_engine)):
    return {"code": code.upper(), **to_wire(engine.currency_info(code))}


@router.get("/connections", summary="Test Rate Sources")
async def test_connections(engine: ForexEngine = Depends(get_forex_engine)):
    return to_wire(await engine.test_connections())


@router.delete("/cache", summary="Clear Rate Cache")
async def clear_cache(engine: ForexEngine = Depends(get_forex_engine)):
    engine.clear_cache()
    return {"status": "cleared"}
