"""Section 94B (thin capitalization) statutory rules and reference tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..utils.formatting import format_indian

# Interest to non-resident AEs must exceed Rs 1 crore for Section 94B to bite
INTEREST_THRESHOLD = 10_000_000
EBITDA_LIMITATION_PERCENTAGE = 30
CARRYFORWARD_YEARS = 8

APPLICABLE_FROM = "2017-04-01"
FIRST_APPLICABLE_AY = "2018-19"


class EntityType(str, Enum):
    INDIAN_COMPANY = "indian_company"
    PE_FOREIGN_COMPANY = "pe_foreign_company"
    LLP = "llp"


class LenderType(str, Enum):
    NON_RESIDENT_AE = "non_resident_ae"
    NON_RESIDENT_GUARANTEED = "non_resident_guaranteed"
    RESIDENT_WITH_AE_DEPOSIT = "resident_with_ae_deposit"
    RESIDENT_NON_AE = "resident_non_ae"


@dataclass(frozen=True)
class ExemptEntity:
    code: str
    description: str
    section: str


EXEMPT_ENTITIES: list[ExemptEntity] = [
    ExemptEntity("BANK", "Company engaged in banking business", "5(c) of BR Act 1949"),
    ExemptEntity("INSURANCE", "Company engaged in insurance business", "Insurance Act 1938"),
    ExemptEntity(
        "NBFC_SYSTEMICALLY_IMPORTANT", "NBFC classified as systemically important by RBI", "RBI regulations"
    ),
    ExemptEntity("INFRASTRUCTURE_PPP", "Infrastructure project entity under PPP", "Notification specific"),
]

# interest type -> covered by Section 94B
COVERED_INTEREST_TYPES: dict[str, bool] = {
    "LOAN_INTEREST": True,
    "BOND_INTEREST": True,
    "GUARANTEED_LOAN": True,
    "BACK_TO_BACK_LOAN": True,
    "TRADE_CREDIT": True,
    "DOMESTIC_LOAN": False,
}

EBITDA_CALCULATION: dict[str, object] = {
    "formula": "PBT + Interest Expense + Depreciation + Amortization",
    "components": [
        "Profit Before Tax (as per P&L)",
        "Add: Interest expense claimed as deduction",
        "Add: Depreciation as per books",
        "Add: Amortization as per books",
    ],
    "exclusions": [
        "Exceptional/extraordinary items may be excluded",
        "One-time gains/losses may be adjusted",
    ],
}

CARRYFORWARD_RULES: dict[str, object] = {
    "years": CARRYFORWARD_YEARS,
    "setOffAgainst": "Income from business or profession",
    "subjectTo": f"{EBITDA_LIMITATION_PERCENTAGE}% of EBITDA in subsequent year",
    "utilizationOrder": "FIFO - First in, first out",
    "conditions": [
        "Same business must continue",
        "Books of account must be maintained",
        "Return must be filed within due date",
    ],
}

RELEVANT_NOTIFICATIONS: list[dict[str, str]] = [
    {
        "number": "Notification No. 12/2019",
        "date": "2019-02-28",
        "subject": "Infrastructure projects exemption under Section 94B",
    },
    {
        "number": "Circular No. 22/2017",
        "date": "2017-06-21",
        "subject": "Clarification on Section 94B provisions",
    },
]


@dataclass(frozen=True)
class AYThinCapRule:
    assessment_year: str
    interest_threshold: float = INTEREST_THRESHOLD
    ebitda_percentage: float = EBITDA_LIMITATION_PERCENTAGE
    carryforward_years: int = CARRYFORWARD_YEARS
    special_provisions: list[str] = field(default_factory=list)


_SPECIAL_PROVISIONS = {
    "2018-19": ["First year of applicability"],
    "2019-20": ["Infrastructure PPP exemption notified"],
    "2026-27": ["Current assessment year"],
}

AY_THIN_CAP_RULES: dict[str, AYThinCapRule] = {
    f"{start}-{(start + 1) % 100:02d}": AYThinCapRule(
        assessment_year=f"{start}-{(start + 1) % 100:02d}",
        special_provisions=list(_SPECIAL_PROVISIONS.get(f"{start}-{(start + 1) % 100:02d}", [])),
    )
    for start in range(2018, 2027)
}

LATEST_RULE_YEAR = "2026-27"


def ay_start(assessment_year: str) -> int:
    """First calendar year of an assessment year label (``"2025-26"`` -> 2025)."""
    return int(assessment_year.split("-")[0])


def ay_label(start: int) -> str:
    return f"{start}-{(start + 1) % 100:02d}"


def is_exempt_entity(entity_code: str) -> bool:
    return any(e.code == entity_code for e in EXEMPT_ENTITIES)


def find_exempt_entity(entity_code: str) -> ExemptEntity | None:
    return next((e for e in EXEMPT_ENTITIES if e.code == entity_code), None)


def is_interest_covered(interest_type: str) -> bool:
    """Whether ``interest_type`` falls under Section 94B (case-insensitive)."""
    return COVERED_INTEREST_TYPES.get(interest_type.upper(), False)


def calculate_allowable_interest(ebitda: float, percentage: float = EBITDA_LIMITATION_PERCENTAGE) -> float:
    return ebitda * percentage / 100


def calculate_disallowed_interest(total_interest: float, allowable_interest: float) -> float:
    return max(0.0, total_interest - allowable_interest)


def get_ay_rules(assessment_year: str) -> AYThinCapRule:
    return AY_THIN_CAP_RULES.get(assessment_year, AY_THIN_CAP_RULES[LATEST_RULE_YEAR])


def carryforward_expiry_year(disallowance_year: str) -> str:
    """Last assessment year in which a disallowance can still be set off."""
    return ay_label(ay_start(disallowance_year) + CARRYFORWARD_YEARS)


def is_carryforward_valid(disallowance_year: str, current_year: str) -> bool:
    return ay_start(current_year) - ay_start(disallowance_year) <= CARRYFORWARD_YEARS


def section_94b_description() -> str:
    return (
        "Section 94B - Limitation on interest deduction\n\n"
        "Where an Indian company, or a permanent establishment of a foreign company, being the borrower, "
        "incurs any expenditure by way of interest or of similar nature exceeding Rs. 1 crore, "
        "payable to a non-resident associated enterprise, the deduction shall be limited to "
        "30% of its EBITDA or the interest paid/payable to AE, whichever is less.\n\n"
        "The disallowed interest can be carried forward for 8 assessment years."
    )


# ------------------------------------------------------------------
# Reference tables served by GET /thin-cap
# ------------------------------------------------------------------
def exemption_reference() -> dict[str, object]:
    return {
        "exemptions": [
            {
                "category": "Banking Companies",
                "description": "Companies regulated under Banking Regulation Act, 1949",
                "reference": "Section 94B(3)(i)",
            },
            {
                "category": "Insurance Companies",
                "description": "Companies regulated under Insurance Act, 1938",
                "reference": "Section 94B(3)(ii)",
            },
            {
                "category": "Threshold",
                "description": f"Interest paid to non-resident AE less than Rs. {format_indian(INTEREST_THRESHOLD)}",
                "reference": "Section 94B proviso",
            },
            {
                "category": "Existing Debt",
                "description": "Debt issued before April 1, 2017 (grandfathering)",
                "reference": "CBDT Circular",
            },
        ]
    }


def calculation_reference() -> dict[str, object]:
    return {
        "formula": {
            "step1": "Calculate EBITDA = Operating Profit + Depreciation + Interest expense",
            "step2": f"Allowable Interest = EBITDA × {EBITDA_LIMITATION_PERCENTAGE}%",
            "step3": "Disallowed Interest = Interest paid to NR AE - Allowable Interest",
            "step4": f"If Disallowed > 0, can be carried forward for {CARRYFORWARD_YEARS} years",
        },
        "notes": [
            "Only interest paid to non-resident AE is considered",
            "Interest received from AE can be netted against interest paid",
            "EBITDA is calculated based on book profits",
            "Carryforward subject to subsequent year limitations",
        ],
    }


def overview() -> dict[str, object]:
    return {
        "section": "94B",
        "title": "Limitation on Interest Deduction",
        "description": section_94b_description(),
        "effective_from": f"AY {FIRST_APPLICABLE_AY}",
        "rules": AY_THIN_CAP_RULES,
        "overview": {
            "purpose": "Prevent excessive interest deduction through thin capitalization by associated enterprises",
            "mechanism": f"Limits interest deduction to {EBITDA_LIMITATION_PERCENTAGE}% of EBITDA",
            "scope": "Interest paid to non-resident associated enterprises",
            "carryforward": f"Disallowed interest can be carried forward for {CARRYFORWARD_YEARS} years",
        },
        "compliance": {
            "documentation": [
                "Loan agreements with AE",
                "Interest computation working",
                "EBITDA calculation worksheet",
                "Carryforward register",
            ],
            "disclosure": "Form 3CEB - Clause 22 (Thin Capitalization disclosure)",
            "deadline": "Along with transfer pricing report",
        },
    }


__all__ = [
    "INTEREST_THRESHOLD",
    "EBITDA_LIMITATION_PERCENTAGE",
    "CARRYFORWARD_YEARS",
    "APPLICABLE_FROM",
    "FIRST_APPLICABLE_AY",
    "EntityType",
    "LenderType",
    "ExemptEntity",
    "EXEMPT_ENTITIES",
    "COVERED_INTEREST_TYPES",
    "EBITDA_CALCULATION",
    "CARRYFORWARD_RULES",
    "RELEVANT_NOTIFICATIONS",
    "AYThinCapRule",
    "AY_THIN_CAP_RULES",
    "ay_start",
    "ay_label",
    "is_exempt_entity",
    "find_exempt_entity",
    "is_interest_covered",
    "calculate_allowable_interest",
    "calculate_disallowed_interest",
    "get_ay_rules",
    "carryforward_expiry_year",
    "is_carryforward_valid",
    "section_94b_description",
    "exemption_reference",
    "calculation_reference",
    "overview",
]
