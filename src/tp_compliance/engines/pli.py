"""Profit level indicator (PLI) calculations.

Every ratio is exactly 0 when its denominator is zero or negative, so callers
never see NaN, infinities or sign flips from a negative base.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import ComputationError
from .models import CompanyFinancials, FunctionalProfile, PLICalculated, PLIType

PLI_DESCRIPTIONS: dict[PLIType, dict[str, object]] = {
    PLIType.OP_OC: {
        "name": "Operating Profit to Operating Cost",
        "formula": "Operating Profit / Operating Cost",
        "description": "Most commonly used PLI for service providers. Measures return on operating costs.",
        "applicability": ["IT_SERVICES", "BPO_PROVIDER", "KPO_PROVIDER", "CAPTIVE_SERVICE_PROVIDER", "CONTRACT_RD"],
    },
    PLIType.OP_OR: {
        "name": "Operating Profit to Operating Revenue",
        "formula": "Operating Profit / Operating Revenue",
        "description": "Measures operating margin. Suitable for full-fledged entities.",
        "applicability": ["FULL_FLEDGED_MANUFACTURER", "FULL_FLEDGED_RD"],
    },
    PLIType.OP_TA: {
        "name": "Return on Assets",
        "formula": "Operating Profit / Total Assets",
        "description": "Measures return relative to assets employed. For asset-intensive operations.",
        "applicability": ["HOLDING_COMPANY", "FULL_FLEDGED_MANUFACTURER"],
    },
    PLIType.OP_CE: {
        "name": "Return on Capital Employed",
        "formula": "Operating Profit / (Total Assets - (Total Liabilities - Interest Expense))",
        "description": "Measures return on capital. For capital-intensive operations.",
        "applicability": ["FULL_FLEDGED_MANUFACTURER"],
    },
    PLIType.BERRY_RATIO: {
        "name": "Berry Ratio",
        "formula": "Gross Profit / (Operating Cost - Employee Cost)",
        "description": "Ratio of gross profit to operating expenses. Useful for distribution entities.",
        "applicability": ["DISTRIBUTOR", "COMMISSION_AGENT", "MARKETING_SUPPORT"],
    },
}

RECOMMENDED_PLI: dict[FunctionalProfile, PLIType] = {
    FunctionalProfile.FULL_FLEDGED_MANUFACTURER: PLIType.OP_OR,
    FunctionalProfile.CONTRACT_MANUFACTURER: PLIType.OP_OC,
    FunctionalProfile.TOLL_MANUFACTURER: PLIType.OP_OC,
    FunctionalProfile.DISTRIBUTOR: PLIType.BERRY_RATIO,
    FunctionalProfile.COMMISSION_AGENT: PLIType.BERRY_RATIO,
    FunctionalProfile.MARKETING_SUPPORT: PLIType.BERRY_RATIO,
    FunctionalProfile.CONTRACT_RD: PLIType.OP_OC,
    FunctionalProfile.FULL_FLEDGED_RD: PLIType.OP_OR,
    FunctionalProfile.CAPTIVE_SERVICE_PROVIDER: PLIType.OP_OC,
    FunctionalProfile.BPO_PROVIDER: PLIType.OP_OC,
    FunctionalProfile.KPO_PROVIDER: PLIType.OP_OC,
    FunctionalProfile.SOFTWARE_DEVELOPER: PLIType.OP_OC,
    FunctionalProfile.IT_SERVICES: PLIType.OP_OC,
    FunctionalProfile.HOLDING_COMPANY: PLIType.OP_TA,
}

# Opportunity cost rate used for working capital adjustments
DEFAULT_WC_RATE = 0.10


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def calculate_pli(financials: CompanyFinancials) -> PLICalculated:
    """Derive the five PLIs (plus net cost plus) from one year's financials."""
    op = financials.operating_profit
    op_oc = _ratio(op, financials.operating_cost)
    return PLICalculated(
        op_oc=op_oc,
        op_or=_ratio(op, financials.operating_revenue),
        op_ta=_ratio(op, financials.total_assets),
        op_ce=_ratio(op, financials.capital_employed),
        berry_ratio=_ratio(financials.gross_profit, financials.operating_cost - financials.employee_cost),
        ncp_sales=op_oc,
    )


def average_pli(plis: list[PLICalculated]) -> PLICalculated:
    """Arithmetic mean of each ratio across years."""
    if not plis:
        raise ComputationError("Cannot average PLIs over zero years")
    n = len(plis)
    return PLICalculated(
        op_oc=sum(p.op_oc for p in plis) / n,
        op_or=sum(p.op_or for p in plis) / n,
        op_ta=sum(p.op_ta for p in plis) / n,
        op_ce=sum(p.op_ce for p in plis) / n,
        berry_ratio=sum(p.berry_ratio for p in plis) / n,
        ncp_sales=sum(p.ncp_sales for p in plis) / n,
    )


def recommended_pli(profile: FunctionalProfile | str) -> PLIType:
    return RECOMMENDED_PLI.get(FunctionalProfile(profile), PLIType.OP_OC)


@dataclass
class WorkingCapitalAdjustment:
    cin: str
    company_name: str
    original_pli: float
    adjusted_pli: float
    adjustment: float
    receivables_days: float
    inventory_days: float
    payables_days: float
    working_capital_days: float
    tested_party_wc_days: float
    difference: float
    adjustment_rate: float


def working_capital_days(financials: CompanyFinancials) -> dict[str, float]:
    """Receivable, inventory and payable days from one year's financials.

    Missing balances count as zero.
    """
    daily_revenue = financials.revenue / 365
    daily_cost = financials.operating_cost / 365
    receivables_days = _ratio(financials.receivables or 0.0, daily_revenue)
    inventory_days = _ratio(financials.inventory or 0.0, daily_cost)
    payables_days = _ratio(financials.payables or 0.0, daily_cost)
    return {
        "receivables_days": receivables_days,
        "inventory_days": inventory_days,
        "payables_days": payables_days,
        "working_capital_days": receivables_days + inventory_days - payables_days,
    }


def working_capital_adjustment(
    cin: str,
    name: str,
    financials: CompanyFinancials,
    original_pli: float,
    tested_party_wc_days: float,
    adjustment_rate: Optional[float] = None,
) -> WorkingCapitalAdjustment:
    """Adjust a comparable's PLI for working capital differences with the tested party.

    ``adjustment`` is expressed in percentage points, as is conventional in
    benchmarking reports; ``adjusted_pli`` subtracts it from the original.
    """
    rate = DEFAULT_WC_RATE if adjustment_rate is None else adjustment_rate
    days = working_capital_days(financials)
    difference = days["working_capital_days"] - tested_party_wc_days
    adjustment = difference / 365 * rate * 100
    return WorkingCapitalAdjustment(
        cin=cin,
        company_name=name,
        original_pli=original_pli,
        adjusted_pli=original_pli - adjustment,
        adjustment=adjustment,
        tested_party_wc_days=tested_party_wc_days,
        difference=difference,
        adjustment_rate=rate,
        **days,
    )


__all__ = [
    "PLI_DESCRIPTIONS",
    "RECOMMENDED_PLI",
    "DEFAULT_WC_RATE",
    "calculate_pli",
    "average_pli",
    "recommended_pli",
    "WorkingCapitalAdjustment",
    "working_capital_days",
    "working_capital_adjustment",
]
