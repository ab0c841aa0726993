"""
Unit tests for wire serialization of engine records.
"""
import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from tp_compliance.utils.serialization import camel_case, to_wire


class Stage(str, Enum):
    DRP = "drp_filing"


@dataclass
class Inner:
    is_ae: bool
    as_of: date


@dataclass
class Outer:
    search_time_ms: float
    thirty_percent_ebitda: float
    inner: Inner
    rows: list = field(default_factory=list)
    computation_steps: list = field(default_factory=list)


class TestCamelCase:
    """Key conversion"""

    def test_mechanical(self):
        assert camel_case("tested_party_pli") == "testedPartyPli"
        assert camel_case("cin") == "cin"

    def test_special_keys(self):
        assert camel_case("op_oc") == "opOc"
        assert camel_case("is_ae") == "isAE"
        assert camel_case("interest_covered_under_94b") == "interestCoveredUnder94B"
        assert camel_case("search_time_ms") == "searchTime"

    def test_data_keys_pass_through(self):
        """Currency pairs and fiscal years are data, not attribute names"""
        assert camel_case("USD_INR") == "USD_INR"
        assert camel_case("2024-25") == "2024-25"


class TestToWire:
    """Recursive conversion of dataclasses, enums, dates and floats"""

    def test_nested_dataclass(self):
        value = Outer(
            search_time_ms=12.5,
            thirty_percent_ebitda=30_000_000,
            inner=Inner(is_ae=True, as_of=date(2024, 3, 31)),
            rows=[Stage.DRP, (1, 2)],
        )

        wire = to_wire(value)

        assert wire == {
            "searchTime": 12.5,
            "thirtyPercentEBITDA": 30_000_000,
            "inner": {"isAE": True, "asOf": "2024-03-31"},
            "rows": ["drp_filing", [1, 2]],
            "computationSteps": [],
        }

    def test_exclude_top_level_fields(self):
        value = Outer(0.0, 0.0, Inner(False, date(2024, 1, 1)))

        assert "computationSteps" not in to_wire(value, exclude=["computation_steps"])

    def test_enum_keys_become_values(self):
        assert to_wire({Stage.DRP: 30, "filing_deadline": 30}) == {"drp_filing": 30, "filingDeadline": 30}

    def test_non_finite_floats_become_none(self):
        assert to_wire([math.nan, math.inf, 1.5]) == [None, None, 1.5]

    def test_scalars_pass_through(self):
        assert to_wire("text") == "text"
        assert to_wire(None) is None
