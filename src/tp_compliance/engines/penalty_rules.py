"""Penalty and interest provisions of the Income Tax Act applied to TP cases.

Sections covered: 271(1)(c), 271AA, 271BA, 271G and interest under
234A/B/C/D.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from math import ceil


class PenaltyEntityType(str, Enum):
    DOMESTIC_COMPANY = "domestic_company"
    DOMESTIC_COMPANY_OLD = "domestic_company_old"
    FOREIGN_COMPANY = "foreign_company"
    LLP_FIRM = "llp_firm"
    INDIVIDUAL = "individual_highest"


class Likelihood(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


# Effective rates including surcharge and cess
TAX_RATES: dict[PenaltyEntityType, float] = {
    PenaltyEntityType.DOMESTIC_COMPANY: 25.168,
    PenaltyEntityType.DOMESTIC_COMPANY_OLD: 34.944,
    PenaltyEntityType.FOREIGN_COMPANY: 43.68,
    PenaltyEntityType.LLP_FIRM: 34.944,
    PenaltyEntityType.INDIVIDUAL: 39.0,
}

CONCEALMENT_MINIMUM_RATE = 100
CONCEALMENT_MAXIMUM_RATE = 300

CONCEALMENT_PENALTY_CONDITIONS = [
    "Concealment of particulars of income",
    "Furnishing of inaccurate particulars of income",
    "Transfer pricing adjustment sustained on appeal",
    "Deliberate non-disclosure of international transactions",
    "Underreporting of income due to TP adjustment",
]

CONCEALMENT_PENALTY_DEFENSES = [
    "Bonafide mistake in computation",
    "Reliance on expert advice",
    "Full disclosure made in return",
    "Reasonable interpretation of law",
    "No mens rea/fraudulent intention",
    "Consistent position in earlier years accepted",
]

DOCUMENTATION_PENALTY_RATE = 2
INFORMATION_FAILURE_PENALTY_RATE = 2
REPORT_FAILURE_PENALTY_PER_FORM = 100_000

SECTION_92D_DOCUMENTS = [
    "Description of ownership structure",
    "Description of business operations",
    "Nature of international transactions",
    "Functional analysis (FAR)",
    "Transfer pricing method selection",
    "Comparability analysis",
    "Assumptions, policies, and price negotiations",
    "Details of uncontrolled transactions for comparability",
    "Adjustment computations",
    "Supporting evidence/documentation",
]

REPORT_FORMS = {
    "3CEB": "Form 3CEB - Transfer Pricing Audit Report",
    "3CEAA": "Form 3CEAA - Master File",
    "3CEAD": "Form 3CEAD - Country-by-Country Report",
}

# section -> monthly rate (%)
INTEREST_RATES: dict[str, float] = {
    "234A": 1.0,
    "234B": 1.0,
    "234C": 1.0,
    "234D": 0.5,
}

ADVANCE_TAX_THRESHOLD = 0.9

# Adjustment as a share of returned income
IMMATERIAL_ADJUSTMENT_RATIO = 0.05
LARGE_ADJUSTMENT_RATIO = 0.10


@dataclass(frozen=True)
class AdvanceTaxDueDate:
    label: str
    cumulative_percentage: int
    months: int


ADVANCE_TAX_DUE_DATES = [
    AdvanceTaxDueDate("June 15", 15, 3),
    AdvanceTaxDueDate("September 15", 45, 3),
    AdvanceTaxDueDate("December 15", 75, 3),
    AdvanceTaxDueDate("March 15", 100, 1),
]


@dataclass(frozen=True)
class FactorDefinition:
    factor: str
    impact: str
    description: str


REDUCING_FACTORS = [
    FactorDefinition("Contemporaneous documentation", "high", "Maintained proper TP documentation at transaction time"),
    FactorDefinition("Consistent methodology", "high", "Used consistent TP methods across years"),
    FactorDefinition("Timely compliance", "medium", "Filed all returns and reports on time"),
    FactorDefinition("Cooperative attitude", "medium", "Full cooperation during assessment proceedings"),
    FactorDefinition("Good faith reliance", "high", "Relied on professional advice in good faith"),
    FactorDefinition("Voluntary disclosure", "high", "Proactively disclosed issues before detection"),
    FactorDefinition("Immaterial adjustment", "medium", "Adjustment is immaterial relative to total income"),
]

AGGRAVATING_FACTORS = [
    FactorDefinition("Repeated non-compliance", "high", "Pattern of non-compliance across years"),
    FactorDefinition("Deliberate concealment", "critical", "Evidence of deliberate attempt to evade tax"),
    FactorDefinition("Non-cooperation", "high", "Failure to cooperate during proceedings"),
    FactorDefinition("No documentation", "critical", "Complete absence of TP documentation"),
    FactorDefinition("Large adjustments", "high", "Material TP adjustments sustained"),
]

RELEVANT_CASE_LAW = [
    "CIT vs. Reliance Petroproducts - Explanation of bonafide claim",
    "Price Waterhouse vs. CIT - Incorrect claim vs. concealment",
]

DEFENSE_DOCUMENTATION = [
    "TP documentation",
    "Board minutes",
    "Expert opinions",
    "Correspondence with AE",
]

_LIKELIHOOD_RECOMMENDATIONS = {
    Likelihood.LOW: "Penalty likelihood is low. Maintain documentation and compliance posture.",
    Likelihood.MEDIUM: (
        "Moderate penalty risk. Consider strengthening documentation and seeking professional advice."
    ),
    Likelihood.HIGH: (
        "High penalty risk. Strongly recommend engaging experts and preparing defense documentation."
    ),
    Likelihood.VERY_HIGH: (
        "Very high penalty risk. Immediate action required - consider voluntary disclosure or settlement."
    ),
}


# Reference tables served by GET /penalty
SECTION_REFERENCE: dict[str, dict[str, object]] = {
    "271(1)(c)": {
        "section": "271(1)(c)",
        "title": "Penalty for Concealment of Income",
        "minimum_penalty": "100% of tax evaded",
        "maximum_penalty": "300% of tax evaded",
        "applicability": "When income is concealed or inaccurate particulars furnished",
        "defenses": CONCEALMENT_PENALTY_DEFENSES,
        "case_references": [
            "CIT vs. Reliance Petroproducts",
            "MAK Data vs. CIT",
            "Price Waterhouse Coopers vs. CIT",
        ],
    },
    "271AA": {
        "section": "271AA",
        "title": "Penalty for Failure to Keep Documentation",
        "penalty": "2% of transaction value",
        "applicability": "International transactions without prescribed documentation",
        "documentation": SECTION_92D_DOCUMENTS,
    },
    "271BA": {
        "section": "271BA",
        "title": "Penalty for Failure to Furnish Report",
        "penalty": "Rs. 1,00,000 per report",
        "applicability": "Failure to furnish CbCR, Master File, or Form 3CEB",
        "due_date": "Due date of filing income tax return",
    },
    "271G": {
        "section": "271G",
        "title": "Penalty for Failure to Furnish Information",
        "penalty": "2% of transaction value",
        "applicability": "Failure to furnish documents requested by TPO",
        "time_limit": "30 days from date of TPO notice (extendable)",
    },
}

INTEREST_NOTES: dict[str, list[str]] = {
    "234A": [
        "Interest calculated from due date of return to actual filing date",
        "Applies even if tax is paid but return not filed",
        "Part of month counted as full month",
    ],
    "234B": [
        "Applicable if advance tax paid is less than 90% of assessed tax",
        "Interest calculated from April 1 of AY to date of determination",
        "Relief available for TDS/TCS credits",
    ],
    "234C": [
        "Quarterly installments: 15%, 45%, 75%, 100% by Jun 15, Sep 15, Dec 15, Mar 15",
        "Interest on shortfall for each quarter",
    ],
    "234D": [
        "Applies when refund granted on initial processing is more than due",
        "Interest from date of refund to date of regular assessment",
        "Lower rate of 0.5% per month compared to other sections",
    ],
}


def get_tax_rate(entity_type: PenaltyEntityType | str) -> float:
    try:
        return TAX_RATES[PenaltyEntityType(entity_type)]
    except ValueError:
        return TAX_RATES[PenaltyEntityType.DOMESTIC_COMPANY]


def concealment_penalty_range(tax_evaded: float) -> tuple[float, float]:
    """Statutory (minimum, maximum) band for a concealment penalty."""
    return (
        tax_evaded * CONCEALMENT_MINIMUM_RATE / 100,
        tax_evaded * CONCEALMENT_MAXIMUM_RATE / 100,
    )


def documentation_penalty(transaction_value: float) -> float:
    return transaction_value * DOCUMENTATION_PENALTY_RATE / 100


def information_failure_penalty(transaction_value: float) -> float:
    return transaction_value * INFORMATION_FAILURE_PENALTY_RATE / 100


def report_failure_penalty(number_of_forms: int) -> float:
    return number_of_forms * REPORT_FAILURE_PENALTY_PER_FORM


def simple_interest(principal: float, section: str, months: int) -> float:
    return principal * INTEREST_RATES[section] / 100 * months


def delay_months(start: date, end: date) -> int:
    """Whole months of delay, counting every started 30-day block as a month."""
    days = (end - start).days
    return max(0, ceil(days / 30))


def calendar_months_between(start: date, end: date) -> int:
    """Calendar months from ``start`` to ``end`` with a part month counted in full."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day - start.day > 0:
        return months + 1
    return max(0, months)


def assess_likelihood(reducing_present: int, aggravating_present: int) -> tuple[Likelihood, int, str]:
    """Score penalty likelihood from counts of present factors.

    Returns:
        (likelihood, score clamped to 0-100, recommendation)
    """
    score = max(0, min(100, aggravating_present * 20 - reducing_present * 15 + 50))
    if score < 30:
        likelihood = Likelihood.LOW
    elif score < 50:
        likelihood = Likelihood.MEDIUM
    elif score < 75:
        likelihood = Likelihood.HIGH
    else:
        likelihood = Likelihood.VERY_HIGH
    return likelihood, score, _LIKELIHOOD_RECOMMENDATIONS[likelihood]


def penalty_overview() -> dict[str, object]:
    return {
        "penalty_sections": {
            "271(1)(c)": {
                "description": "Penalty for concealment of income",
                "rate": "100% to 300% of tax evaded",
                "basis": "Tax sought to be evaded",
            },
            "271AA": {
                "description": "Penalty for failure to keep/maintain documents",
                "rate": "2% of transaction value",
                "basis": "International transactions without documentation",
            },
            "271BA": {
                "description": "Penalty for failure to furnish report",
                "rate": "Rs. 1,00,000 per report",
                "basis": "CbCR, Master File, Form 3CEB",
            },
            "271G": {
                "description": "Penalty for failure to furnish information/document",
                "rate": "2% of transaction value",
                "basis": "Documents requested by TPO",
            },
        },
        "interest_sections": {
            "234A": {
                "description": "Interest for default in furnishing return",
                "rate": "1% per month",
                "basis": "Tax on total income minus advance tax and TDS",
            },
            "234B": {
                "description": "Interest for default in payment of advance tax",
                "rate": "1% per month",
                "basis": "Shortfall in advance tax (< 90% of assessed tax)",
            },
            "234C": {
                "description": "Interest for deferment of advance tax",
                "rate": "1% per month",
                "basis": "Shortfall in quarterly advance tax payments",
            },
            "234D": {
                "description": "Interest on excess refund",
                "rate": "0.5% per month",
                "basis": "Excess refund granted on regular assessment",
            },
        },
        "tax_rates": dict(TAX_RATES),
    }


__all__ = [
    "PenaltyEntityType",
    "Likelihood",
    "TAX_RATES",
    "CONCEALMENT_MINIMUM_RATE",
    "CONCEALMENT_MAXIMUM_RATE",
    "CONCEALMENT_PENALTY_CONDITIONS",
    "CONCEALMENT_PENALTY_DEFENSES",
    "DOCUMENTATION_PENALTY_RATE",
    "INFORMATION_FAILURE_PENALTY_RATE",
    "REPORT_FAILURE_PENALTY_PER_FORM",
    "SECTION_92D_DOCUMENTS",
    "REPORT_FORMS",
    "INTEREST_RATES",
    "ADVANCE_TAX_THRESHOLD",
    "IMMATERIAL_ADJUSTMENT_RATIO",
    "LARGE_ADJUSTMENT_RATIO",
    "AdvanceTaxDueDate",
    "ADVANCE_TAX_DUE_DATES",
    "FactorDefinition",
    "REDUCING_FACTORS",
    "AGGRAVATING_FACTORS",
    "RELEVANT_CASE_LAW",
    "DEFENSE_DOCUMENTATION",
    "SECTION_REFERENCE",
    "INTEREST_NOTES",
    "get_tax_rate",
    "concealment_penalty_range",
    "documentation_penalty",
    "information_failure_penalty",
    "report_failure_penalty",
    "simple_interest",
    "delay_months",
    "calendar_months_between",
    "assess_likelihood",
    "penalty_overview",
]
