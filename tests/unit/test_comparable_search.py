"""
Unit tests for comparable company search against the sample databases.
"""
import pytest

from tp_compliance.api.schemas import SearchRequest
from tp_compliance.config.schema import ComparablesConfig
from tp_compliance.engines.comparable_search import ComparableSearchEngine
from tp_compliance.engines.models import ComparableSearchCriteria, DatabaseSource, PLIType
from tp_compliance.errors import InsufficientComparablesError, NotFoundError, ValidationError
from tp_compliance.utils.serialization import to_wire

TCS = "L72200MH2001PLC134517"
INFOSYS = "U72900KA2005PTC035678"
WIPRO = "U72100DL2008PTC178901"
HCL = "U74900HR2012PTC045678"
TATA_AUTO = "U29100MH2000PTC123456"


@pytest.fixture
def engine():
    return ComparableSearchEngine()


def default_criteria(**fields):
    """Criteria as the HTTP layer builds them, with the usual TP defaults."""
    return SearchRequest(**fields).to_criteria(ComparablesConfig())


class TestSearch:
    """Screening and merging across databases."""

    def test_default_screens(self, engine):
        """Default RPT threshold of 25% removes the two high-RPT companies."""
        result = engine.search(default_criteria())

        cins = [c.cin for c in result.companies]
        assert result.total_found == 6
        assert TATA_AUTO not in cins
        assert "RPT <= 25%" in result.applied_filters
        assert "Active companies only" in result.applied_filters
        assert "Min 3 years data" in result.applied_filters
        assert result.sources == [DatabaseSource.PROWESS, DatabaseSource.CAPITALINE]

    def test_nic_prefix_match(self, engine):
        """NIC codes match on their first two digits."""
        result = engine.search(default_criteria(nic_codes=["6201"]))

        assert {c.cin for c in result.companies} == {TCS, INFOSYS, WIPRO, HCL}
        assert "NIC Codes: 6201" in result.applied_filters

    def test_functional_profile_filter(self, engine):
        result = engine.search(default_criteria(functional_profile="IT_SERVICES"))

        assert [c.cin for c in result.companies] == [WIPRO]

    def test_revenue_range(self, engine):
        """Revenue bounds are inclusive and use the latest year."""
        result = engine.search(default_criteria(revenue_min=2.5e9, revenue_max=5.0e9))

        assert {c.cin for c in result.companies} == {TCS, INFOSYS, WIPRO}
        assert "Revenue >= 2,500,000,000" in result.applied_filters

    def test_single_source(self, engine):
        """Only the named database is queried."""
        result = engine.search(default_criteria(sources=["CAPITALINE"]))

        assert result.sources == [DatabaseSource.CAPITALINE]
        assert all(c.source == DatabaseSource.CAPITALINE for c in result.companies)

    def test_pagination_after_merge(self, engine):
        """total_found counts the merged set, not the page."""
        first_page = engine.search(default_criteria(limit=2))
        last_page = engine.search(default_criteria(limit=2, offset=5))

        assert len(first_page.companies) == 2
        assert first_page.total_found == 6
        assert len(last_page.companies) == 1

    def test_exclude_cins(self, engine):
        result = engine.search(default_criteria(exclude_cins=[TCS]))

        assert TCS not in [c.cin for c in result.companies]
        assert "Excluded 1 companies" in result.applied_filters

    def test_unavailable_source(self):
        """Asking for a database with no connector is a validation error."""
        engine = ComparableSearchEngine(sources={})

        with pytest.raises(ValidationError, match="not available"):
            engine.search(ComparableSearchCriteria(sources=[DatabaseSource.MANUAL]))

    def test_wire_format(self, engine):
        """Search time is reported under its short wire name."""
        wire = to_wire(engine.search(default_criteria(limit=1)))

        assert "searchTime" in wire
        assert wire["companies"][0]["pli"].keys() >= {"opOc", "opOr", "berryRatio"}


class TestCompanies:
    """Direct company lookups."""

    def test_get_company(self, engine):
        company = engine.get_company(WIPRO)

        assert company.name == "Wipro IT Services Ltd"
        assert company.source == DatabaseSource.CAPITALINE

    def test_unknown_company(self, engine):
        with pytest.raises(NotFoundError, match="Company not found"):
            engine.get_company("NOPE")

    def test_financials_slice(self, engine):
        financials = engine.get_company_financials(TCS, 3)

        assert len(financials) == 1
        assert financials[0].financial_year == "2023-24"

    def test_financials_years_must_be_positive(self, engine):
        with pytest.raises(ValidationError):
            engine.get_company_financials(TCS, 0)


class TestBenchmarking:
    """Benchmarking sets built from companies."""

    def test_benchmark_search(self, engine):
        """Quartiles over the multi-year average op/oc of the IT set."""
        _, result = engine.benchmark_search(default_criteria(nic_codes=["62"]), PLIType.OP_OC, 0.15)

        assert result.n == 4
        assert result.quartile1 == pytest.approx(0.185)
        assert result.median == pytest.approx(0.19)
        assert result.quartile3 == pytest.approx(0.23)
        assert result.mean == pytest.approx(0.19625)
        assert result.tested_party_position == "below"

    def test_benchmark_explicit_companies(self, engine):
        companies = [engine.get_company(cin) for cin in (TCS, WIPRO)]

        result = engine.benchmark(companies, "opOc")

        assert result.comparables == ["TCS Technologies Ltd", "Wipro IT Services Ltd"]
        assert result.tested_party_position is None

    def test_empty_search_cannot_be_benchmarked(self, engine):
        """No matching companies means no arm's length range."""
        with pytest.raises(InsufficientComparablesError):
            engine.benchmark_search(default_criteria(nic_codes=["99"]), PLIType.OP_OC)

    def test_configured_minimum(self):
        engine = ComparableSearchEngine(ComparablesConfig(minimum_comparables=5))

        with pytest.raises(InsufficientComparablesError):
            engine.benchmark_search(default_criteria(nic_codes=["62"]), PLIType.OP_OC)


class TestAnalysis:
    """Filtering analysis, working capital and reference data."""

    def test_filtering_analysis(self, engine):
        """Each screen is measured on its own against the whole universe."""
        analysis = engine.filtering_analysis(default_criteria())

        assert analysis["total_in_database"] == 8
        assert analysis["after_rpt_filter"] == 6
        assert analysis["final_count"] == 6
        rpt = next(f for f in analysis["filter_effectiveness"] if f["filter"] == "Related Party")
        assert rpt["companies_removed"] == 2
        assert rpt["percentage"] == pytest.approx(25.0)

    def test_working_capital_for_companies(self, engine):
        """Sample data has no balances, so the adjustment comes from the tested party alone."""
        adjustments = engine.working_capital_adjustments([engine.get_company(TCS)], 36.5)

        assert len(adjustments) == 1
        assert adjustments[0].difference == pytest.approx(-36.5)
        assert adjustments[0].adjustment == pytest.approx(-1.0)

    def test_recommended_pli(self, engine):
        result = engine.recommended_pli("DISTRIBUTOR")

        assert result["recommended_pli"] == PLIType.BERRY_RATIO
        assert result["description"]["name"] == "Berry Ratio"

    def test_recommended_pli_unknown_profile(self, engine):
        with pytest.raises(ValidationError, match="Unknown functional profile"):
            engine.recommended_pli("ASTRONAUT")

    def test_connections_without_api_keys(self, engine):
        """Sample-backed connectors report that no key is configured."""
        status = engine.test_connections()

        assert set(status) == {"prowess", "capitaline"}
        assert status["prowess"].success is False
        assert "Using sample data" in status["prowess"].message

    def test_connection_with_api_key(self):
        engine = ComparableSearchEngine(ComparablesConfig(prowess_api_key="secret"))

        status = engine.test_connections()

        assert status["prowess"].success is True
        assert status["prowess"].quota_remaining == 1000
