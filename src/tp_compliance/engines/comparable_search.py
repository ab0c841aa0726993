"""Comparable Search Engine.

Searches one or more comparables databases, merges the results by CIN and
feeds the surviving companies into the benchmarking statistics.
"""

from __future__ import annotations

import sys
import time
from typing import Optional

from loguru import logger

from ..config.schema import ComparablesConfig
from ..errors import NotFoundError, ValidationError
from .benchmarking import calculate_benchmarking_set, parse_pli_type
from .comparable_sources import (
    ComparableSource,
    create_comparable_source,
    filter_companies,
    paginate,
    unpaged,
)
from .models import (
    BenchmarkingSet,
    CompanyFinancials,
    ComparableCompany,
    ComparableSearchCriteria,
    ComparableSearchResult,
    DatabaseSource,
    FunctionalProfile,
    PLIType,
)
from .pli import PLI_DESCRIPTIONS, WorkingCapitalAdjustment, recommended_pli, working_capital_adjustment


class ComparableSearchEngine:
    """Search, screen and benchmark comparable companies."""

    def __init__(
        self,
        config: Optional[ComparablesConfig] = None,
        sources: Optional[dict[DatabaseSource, ComparableSource]] = None,
    ) -> None:
        self.config = config or ComparablesConfig()
        self.logger = logger.bind(module="comparable_search")
        if sources is None:
            keys = {
                DatabaseSource.PROWESS: self.config.prowess_api_key,
                DatabaseSource.CAPITALINE: self.config.capitaline_api_key,
            }
            sources = {
                provider: create_comparable_source(provider, api_key, self.config.nic_match_digits)
                for provider, api_key in keys.items()
            }
        self.sources = sources

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def search(self, criteria: ComparableSearchCriteria) -> ComparableSearchResult:
        """Search the selected databases and merge results by CIN.

        The first database to return a CIN wins. Pagination is applied after
        merging; ``total_found`` is the merged count before slicing.
        """
        started = time.perf_counter()
        selected = self._selected_sources(criteria)

        merged: dict[str, ComparableCompany] = {}
        applied: list[str] = []
        for source in selected:
            result = source.search(unpaged(criteria, sys.maxsize))
            applied = applied or result.applied_filters
            for company in result.companies:
                merged.setdefault(company.cin, company)

        companies = list(merged.values())
        page = paginate(companies, criteria.offset, criteria.limit)
        self.logger.info(
            f"Comparable search over {', '.join(s.name.value for s in selected)}: "
            f"{len(companies)} found, returning {len(page)}"
        )

        return ComparableSearchResult(
            companies=page,
            total_found=len(companies),
            applied_filters=applied,
            sources=[s.name for s in selected],
            search_time_ms=(time.perf_counter() - started) * 1000,
            search_criteria=criteria,
        )

    def get_company(self, cin: str) -> ComparableCompany:
        for source in self.sources.values():
            company = source.get_company(cin)
            if company is not None:
                return company
        raise NotFoundError(f"Company not found: {cin}")

    def get_company_financials(self, cin: str, years: int) -> list[CompanyFinancials]:
        if years <= 0:
            raise ValidationError("years must be positive", field="years")
        return self.get_company(cin).financials[:years]

    def benchmark(
        self,
        companies: list[ComparableCompany],
        pli_type: PLIType | str,
        tested_party_pli: Optional[float] = None,
    ) -> BenchmarkingSet:
        return calculate_benchmarking_set(
            companies, pli_type, tested_party_pli, minimum=self.config.minimum_comparables
        )

    def benchmark_search(
        self,
        criteria: ComparableSearchCriteria,
        pli_type: PLIType | str,
        tested_party_pli: Optional[float] = None,
    ) -> tuple[ComparableSearchResult, BenchmarkingSet]:
        """Search, then benchmark the page of companies returned."""
        pli_type = parse_pli_type(pli_type)
        result = self.search(criteria)
        return result, self.benchmark(result.companies, pli_type, tested_party_pli)

    def filtering_analysis(self, criteria: ComparableSearchCriteria) -> dict[str, object]:
        """How many companies each screening step removes on its own."""
        universe = self._universe(criteria)
        total = len(universe)

        def remaining(partial: ComparableSearchCriteria) -> int:
            return len(filter_companies(universe, partial, self.config.nic_match_digits)[0])

        after_nic = remaining(ComparableSearchCriteria(nic_codes=list(criteria.nic_codes)))
        after_revenue = remaining(
            ComparableSearchCriteria(revenue_min=criteria.revenue_min, revenue_max=criteria.revenue_max)
        )
        after_rpt = remaining(ComparableSearchCriteria(exclude_related_party_above=criteria.exclude_related_party_above))
        after_loss = remaining(ComparableSearchCriteria(exclude_persistent_losses=criteria.exclude_persistent_losses))
        final_count = self.search(unpaged(criteria, sys.maxsize)).total_found

        def effectiveness(name: str, survivors: int) -> dict[str, object]:
            removed = total - survivors
            return {
                "filter": name,
                "companies_removed": removed,
                "percentage": removed / total * 100 if total else 0.0,
            }

        return {
            "total_in_database": total,
            "after_nic_filter": after_nic,
            "after_revenue_filter": after_revenue,
            "after_rpt_filter": after_rpt,
            "after_loss_filter": after_loss,
            "final_count": final_count,
            "filter_effectiveness": [
                effectiveness("NIC Code", after_nic),
                effectiveness("Revenue Range", after_revenue),
                effectiveness("Related Party", after_rpt),
                effectiveness("Persistent Losses", after_loss),
            ],
        }

    def working_capital_adjustments(
        self,
        companies: list[ComparableCompany],
        tested_party_wc_days: float,
        adjustment_rate: Optional[float] = None,
        pli_type: PLIType | str = PLIType.OP_OC,
    ) -> list[WorkingCapitalAdjustment]:
        pli_type = parse_pli_type(pli_type)
        adjustments = []
        for company in companies:
            if company.latest_financials is None:
                continue
            adjustments.append(
                working_capital_adjustment(
                    company.cin,
                    company.name,
                    company.latest_financials,
                    company.pli.value(pli_type),
                    tested_party_wc_days,
                    adjustment_rate,
                )
            )
        return adjustments

    def recommended_pli(self, profile: FunctionalProfile | str) -> dict[str, object]:
        try:
            profile = FunctionalProfile(profile)
        except ValueError:
            raise ValidationError(f"Unknown functional profile: {profile}", field="functionalProfile") from None
        pli_type = recommended_pli(profile)
        return {
            "functional_profile": profile,
            "recommended_pli": pli_type,
            "description": PLI_DESCRIPTIONS[pli_type],
        }

    @staticmethod
    def pli_descriptions() -> dict[str, dict[str, object]]:
        return {pli.value: description for pli, description in PLI_DESCRIPTIONS.items()}

    @staticmethod
    def functional_profiles() -> list[str]:
        return [profile.value for profile in FunctionalProfile]

    def test_connections(self) -> dict[str, object]:
        return {provider.value.lower(): source.test_connection() for provider, source in self.sources.items()}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _selected_sources(self, criteria: ComparableSearchCriteria) -> list[ComparableSource]:
        requested = criteria.sources or [DatabaseSource(s) for s in self.config.default_sources]
        selected = []
        for provider in requested:
            try:
                selected.append(self.sources[DatabaseSource(provider)])
            except (KeyError, ValueError):
                raise ValidationError(f"Comparables database not available: {provider}", field="sources") from None
        return selected

    def _universe(self, criteria: ComparableSearchCriteria) -> list[ComparableCompany]:
        everything = ComparableSearchCriteria(limit=sys.maxsize)
        merged: dict[str, ComparableCompany] = {}
        for source in self._selected_sources(criteria):
            for company in source.search(everything).companies:
                merged.setdefault(company.cin, company)
        return list(merged.values())


__all__ = ["ComparableSearchEngine"]
