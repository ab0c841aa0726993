"""Comparable company database connectors.

Prowess (CMIE) and Capitaline are supported. Without an API key each
connector serves its slice of the bundled sample universe. Every connector
runs the same filter pipeline so results do not depend on which database
answered.
"""

from __future__ import annotations

import dataclasses
import time
from typing import Optional, Protocol

from loguru import logger

from ..errors import ValidationError
from ..utils.formatting import format_grouped
from .comparable_data import SAMPLE_COMPANIES
from .models import (
    CompanyFinancials,
    CompanyStatus,
    ComparableCompany,
    ComparableSearchCriteria,
    ComparableSearchResult,
    ConnectionTestResult,
    DatabaseSource,
    FunctionalProfile,
)


def _plain(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def filter_companies(
    companies: list[ComparableCompany],
    criteria: ComparableSearchCriteria,
    nic_match_digits: int = 2,
) -> tuple[list[ComparableCompany], list[str]]:
    """Apply every criterion that is set, ANDed, recording a label per filter.

    Returns:
        The surviving companies (input order preserved) and the applied filter labels.
    """
    filtered = list(companies)
    applied: list[str] = []

    if criteria.nic_codes:
        prefixes = [code[:nic_match_digits] for code in criteria.nic_codes]
        filtered = [c for c in filtered if any(c.nic_code.startswith(p) for p in prefixes)]
        applied.append(f"NIC Codes: {', '.join(criteria.nic_codes)}")

    if criteria.revenue_min is not None:
        filtered = [c for c in filtered if c.financials and c.financials[0].revenue >= criteria.revenue_min]
        applied.append(f"Revenue >= {format_grouped(criteria.revenue_min)}")

    if criteria.revenue_max is not None:
        filtered = [c for c in filtered if c.financials and c.financials[0].revenue <= criteria.revenue_max]
        applied.append(f"Revenue <= {format_grouped(criteria.revenue_max)}")

    if criteria.functional_profile:
        filtered = [c for c in filtered if c.functional_profile == criteria.functional_profile]
        applied.append(f"Functional Profile: {FunctionalProfile(criteria.functional_profile).value}")

    if criteria.exclude_related_party_above is not None:
        threshold = criteria.exclude_related_party_above
        filtered = [c for c in filtered if c.related_party_transactions <= threshold]
        applied.append(f"RPT <= {_plain(threshold)}%")

    if criteria.exclude_persistent_losses:
        filtered = [c for c in filtered if not c.persistent_losses]
        applied.append("Excluded persistent loss companies")

    if criteria.min_years_data is not None:
        filtered = [c for c in filtered if c.years_continuous_data >= criteria.min_years_data]
        applied.append(f"Min {criteria.min_years_data} years data")

    if criteria.status:
        wanted = {s.upper() for s in criteria.status}
        if CompanyStatus.ACTIVE.value in wanted:
            filtered = [c for c in filtered if c.status == CompanyStatus.ACTIVE]
            applied.append("Active companies only")
        else:
            filtered = [c for c in filtered if c.status.value in wanted]
            applied.append(f"Status: {', '.join(sorted(wanted))}")

    if criteria.employee_cost_ratio_min is not None:
        floor = criteria.employee_cost_ratio_min
        filtered = [c for c in filtered if c.financials and c.financials[0].employee_cost_ratio >= floor]
        applied.append(f"Employee cost ratio >= {_plain(floor)}%")

    if criteria.employee_cost_ratio_max is not None:
        ceiling = criteria.employee_cost_ratio_max
        filtered = [c for c in filtered if c.financials and c.financials[0].employee_cost_ratio <= ceiling]
        applied.append(f"Employee cost ratio <= {_plain(ceiling)}%")

    if criteria.exclude_cins:
        excluded = set(criteria.exclude_cins)
        filtered = [c for c in filtered if c.cin not in excluded]
        applied.append(f"Excluded {len(excluded)} companies")

    return filtered, applied


def paginate(companies: list[ComparableCompany], offset: int, limit: int) -> list[ComparableCompany]:
    if offset < 0:
        raise ValidationError("offset must be zero or positive", field="offset")
    if limit <= 0:
        raise ValidationError("limit must be positive", field="limit")
    return companies[offset : offset + limit]


class ComparableSource(Protocol):
    """Capability shared by every comparables database."""

    name: DatabaseSource
    timeout: float

    def search(self, criteria: ComparableSearchCriteria) -> ComparableSearchResult: ...

    def get_company(self, cin: str) -> Optional[ComparableCompany]: ...

    def get_company_financials(self, cin: str, years: int) -> list[CompanyFinancials]: ...

    def test_connection(self) -> ConnectionTestResult: ...


class _SampleBackedSource:
    """Connector serving the sample universe for its database."""

    name: DatabaseSource
    display_name: str
    base_url: str
    quota: int

    def __init__(self, api_key: Optional[str] = None, timeout: float = 30.0, nic_match_digits: int = 2) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.nic_match_digits = nic_match_digits
        self.logger = logger.bind(module="comparable_sources", source=self.name.value)

    def universe(self) -> list[ComparableCompany]:
        return [c for c in SAMPLE_COMPANIES if c.source == self.name]

    def search(self, criteria: ComparableSearchCriteria) -> ComparableSearchResult:
        started = time.perf_counter()
        filtered, applied = filter_companies(self.universe(), criteria, self.nic_match_digits)
        page = paginate(filtered, criteria.offset, criteria.limit)
        self.logger.debug(f"{self.display_name} search matched {len(filtered)} companies")
        return ComparableSearchResult(
            companies=page,
            total_found=len(filtered),
            applied_filters=applied,
            sources=[self.name],
            search_time_ms=(time.perf_counter() - started) * 1000,
            search_criteria=criteria,
        )

    def get_company(self, cin: str) -> Optional[ComparableCompany]:
        return next((c for c in self.universe() if c.cin == cin), None)

    def get_company_financials(self, cin: str, years: int) -> list[CompanyFinancials]:
        company = self.get_company(cin)
        if company is None:
            return []
        return company.financials[:years]

    def test_connection(self) -> ConnectionTestResult:
        started = time.perf_counter()
        if not self.api_key:
            return ConnectionTestResult(
                success=False,
                message=f"{self.display_name} API key not configured. Using sample data.",
                latency_ms=(time.perf_counter() - started) * 1000,
            )
        return ConnectionTestResult(
            success=True,
            message=f"{self.display_name} database connected",
            latency_ms=(time.perf_counter() - started) * 1000,
            quota_remaining=self.quota,
        )


class ProwessSource(_SampleBackedSource):
    name = DatabaseSource.PROWESS
    display_name = "Prowess"
    base_url = "https://prowessiq.cmie.com/api/v1"
    quota = 1000


class CapitalineSource(_SampleBackedSource):
    name = DatabaseSource.CAPITALINE
    display_name = "Capitaline"
    base_url = "https://www.capitaline.com/api/v2"
    quota = 500


_REGISTRY: dict[DatabaseSource, type[_SampleBackedSource]] = {
    DatabaseSource.PROWESS: ProwessSource,
    DatabaseSource.CAPITALINE: CapitalineSource,
}


def create_comparable_source(
    provider: DatabaseSource | str,
    api_key: Optional[str] = None,
    nic_match_digits: int = 2,
) -> ComparableSource:
    """Build the connector registered for ``provider``."""
    try:
        provider = DatabaseSource(provider.upper())
        source_cls = _REGISTRY[provider]
    except (ValueError, KeyError):
        raise ValidationError(f"No comparables database registered for {provider}", field="sources") from None
    return source_cls(api_key=api_key, nic_match_digits=nic_match_digits)


def unpaged(criteria: ComparableSearchCriteria, limit: int) -> ComparableSearchCriteria:
    """Copy of ``criteria`` covering the whole result set."""
    return dataclasses.replace(criteria, offset=0, limit=limit)


__all__ = [
    "filter_companies",
    "paginate",
    "unpaged",
    "ComparableSource",
    "ProwessSource",
    "CapitalineSource",
    "create_comparable_source",
]
