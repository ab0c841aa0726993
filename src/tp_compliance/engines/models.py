"""Shared dataclasses for the compliance engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PLIType(str, Enum):
    """Profit level indicators supported by the benchmarking engine."""

    OP_OC = "opOc"
    OP_OR = "opOr"
    OP_TA = "opTa"
    OP_CE = "opCe"
    BERRY_RATIO = "berryRatio"


class FunctionalProfile(str, Enum):
    CONTRACT_MANUFACTURER = "CONTRACT_MANUFACTURER"
    FULL_FLEDGED_MANUFACTURER = "FULL_FLEDGED_MANUFACTURER"
    TOLL_MANUFACTURER = "TOLL_MANUFACTURER"
    DISTRIBUTOR = "DISTRIBUTOR"
    COMMISSION_AGENT = "COMMISSION_AGENT"
    CONTRACT_RD = "CONTRACT_RD"
    FULL_FLEDGED_RD = "FULL_FLEDGED_RD"
    CAPTIVE_SERVICE_PROVIDER = "CAPTIVE_SERVICE_PROVIDER"
    BPO_PROVIDER = "BPO_PROVIDER"
    KPO_PROVIDER = "KPO_PROVIDER"
    SOFTWARE_DEVELOPER = "SOFTWARE_DEVELOPER"
    IT_SERVICES = "IT_SERVICES"
    MARKETING_SUPPORT = "MARKETING_SUPPORT"
    HOLDING_COMPANY = "HOLDING_COMPANY"


class DatabaseSource(str, Enum):
    PROWESS = "PROWESS"
    CAPITALINE = "CAPITALINE"
    MANUAL = "MANUAL"


class CompanyStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DORMANT = "DORMANT"
    STRUCK_OFF = "STRUCK_OFF"


class RateSourceName(str, Enum):
    RBI = "RBI"
    ECB = "ECB"
    STATIC = "STATIC"


@dataclass(frozen=True)
class CompanyFinancials:
    """One company's statement snapshot for one financial year (amounts in INR)."""

    financial_year: str
    revenue: float
    operating_revenue: float
    total_cost: float
    operating_cost: float
    gross_profit: float
    operating_profit: float
    net_profit: float
    total_assets: float
    fixed_assets: float
    current_assets: float
    total_liabilities: float
    shareholders_equity: float
    employee_cost: float
    depreciation: float
    interest_expense: float
    export_revenue: Optional[float] = None
    import_expense: Optional[float] = None
    rd_expense: Optional[float] = None
    receivables: Optional[float] = None
    inventory: Optional[float] = None
    payables: Optional[float] = None

    @property
    def capital_employed(self) -> float:
        return self.total_assets - (self.total_liabilities - self.interest_expense)

    @property
    def employee_cost_ratio(self) -> float:
        """Employee cost as a percentage of revenue."""
        if self.revenue <= 0:
            return 0.0
        return self.employee_cost / self.revenue * 100


@dataclass(frozen=True)
class PLICalculated:
    """Profit level indicators derived from one set of financials.

    ``ncp_sales`` is the net cost plus markup and equals ``op_oc`` when derived
    from operating figures.
    """

    op_oc: float
    op_or: float
    op_ta: float
    op_ce: float
    berry_ratio: float
    ncp_sales: float

    def value(self, pli_type: PLIType) -> float:
        return {
            PLIType.OP_OC: self.op_oc,
            PLIType.OP_OR: self.op_or,
            PLIType.OP_TA: self.op_ta,
            PLIType.OP_CE: self.op_ce,
            PLIType.BERRY_RATIO: self.berry_ratio,
        }[PLIType(pli_type)]


@dataclass
class ComparableCompany:
    """A company drawn from a comparables database, read-only within a request."""

    cin: str
    name: str
    nic_code: str
    nic_description: str
    functional_profile: FunctionalProfile
    status: CompanyStatus
    source: DatabaseSource
    financials: list[CompanyFinancials]
    yearly_pli: dict[str, PLICalculated]
    pli: PLICalculated
    average_pli: PLICalculated
    related_party_transactions: float
    persistent_losses: bool
    years_continuous_data: int
    incorporated: Optional[str] = None
    registered_office: Optional[str] = None
    last_updated: Optional[str] = None

    @property
    def latest_financials(self) -> Optional[CompanyFinancials]:
        return self.financials[0] if self.financials else None


@dataclass
class ComparableSearchCriteria:
    nic_codes: list[str] = field(default_factory=list)
    revenue_min: Optional[float] = None
    revenue_max: Optional[float] = None
    functional_profile: Optional[FunctionalProfile] = None
    exclude_related_party_above: Optional[float] = None
    exclude_persistent_losses: bool = False
    min_years_data: Optional[int] = None
    employee_cost_ratio_min: Optional[float] = None
    employee_cost_ratio_max: Optional[float] = None
    status: list[str] = field(default_factory=list)
    exclude_cins: list[str] = field(default_factory=list)
    sources: list[DatabaseSource] = field(default_factory=list)
    limit: int = 50
    offset: int = 0


@dataclass
class ComparableSearchResult:
    companies: list[ComparableCompany]
    total_found: int
    applied_filters: list[str]
    sources: list[DatabaseSource]
    search_time_ms: float
    search_criteria: Optional[ComparableSearchCriteria] = None


@dataclass
class BenchmarkingSet:
    """Nearest-rank quartile statistics for one PLI across a comparable set."""

    pli_type: PLIType
    quartile1: float
    median: float
    quartile3: float
    mean: float
    min: float
    max: float
    range: dict[str, float]
    n: int
    comparables: list[str] = field(default_factory=list)
    tested_party_pli: Optional[float] = None
    tested_party_position: Optional[str] = None


@dataclass
class ForexRate:
    base_currency: str
    quote_currency: str
    rate: float
    date: str
    source: RateSourceName
    timestamp: float
    synthetic: bool = False


@dataclass
class ConversionResult:
    from_currency: str
    to_currency: str
    from_amount: float
    to_amount: float
    rate: float
    inverse_rate: float
    date: str
    source: RateSourceName


@dataclass
class AverageRateResult:
    base_currency: str
    quote_currency: str
    start_date: str
    end_date: str
    average_rate: float
    min_rate: float
    max_rate: float
    volatility: float
    data_points: int
    synthetic: bool = False


@dataclass
class ConnectionTestResult:
    success: bool
    message: str
    latency_ms: float = 0.0
    quota_remaining: Optional[int] = None


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class ValidationIssue:
    """A single input problem reported by an engine's validator."""

    field: str
    message: str
    severity: Severity
    code: str
    suggestion: Optional[str] = None

    @property
    def blocking(self) -> bool:
        return self.severity in (Severity.ERROR, Severity.CRITICAL)


@dataclass
class ComputationStep:
    step: int
    description: str
    formula: str
    value: float | str
    reference: Optional[str] = None


__all__ = [
    "PLIType",
    "FunctionalProfile",
    "DatabaseSource",
    "CompanyStatus",
    "RateSourceName",
    "CompanyFinancials",
    "PLICalculated",
    "ComparableCompany",
    "ComparableSearchCriteria",
    "ComparableSearchResult",
    "BenchmarkingSet",
    "ForexRate",
    "ConversionResult",
    "AverageRateResult",
    "ConnectionTestResult",
    "Severity",
    "ValidationIssue",
    "ComputationStep",
]
