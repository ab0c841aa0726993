"""Reference data for comparable searches.

Holds the NIC 2008 code reference and the sample company universe served by
the database connectors when no API key is configured.
"""

from __future__ import annotations

from .models import (
    CompanyFinancials,
    CompanyStatus,
    ComparableCompany,
    DatabaseSource,
    FunctionalProfile,
    PLICalculated,
)
from .pli import calculate_pli

NIC_CODES: dict[str, dict[str, str]] = {
    "62": {"description": "Computer programming, consultancy and related activities", "group": "IT Services"},
    "6201": {"description": "Computer programming activities", "group": "IT Services"},
    "6202": {
        "description": "Computer consultancy and computer facilities management activities",
        "group": "IT Services",
    },
    "6209": {"description": "Other information technology and computer service activities", "group": "IT Services"},
    "63": {"description": "Information service activities", "group": "IT Services"},
    "6311": {"description": "Data processing, hosting and related activities", "group": "ITES/BPO"},
    "6312": {"description": "Web portals", "group": "IT Services"},
    "82": {
        "description": "Office administrative, office support and other business support activities",
        "group": "ITES/BPO",
    },
    "8211": {"description": "Combined office administrative service activities", "group": "ITES/BPO"},
    "8220": {"description": "Activities of call centres", "group": "ITES/BPO"},
    "72": {"description": "Scientific research and development", "group": "R&D"},
    "7210": {
        "description": "Research and experimental development on natural sciences and engineering",
        "group": "R&D",
    },
    "7220": {
        "description": "Research and experimental development on social sciences and humanities",
        "group": "R&D",
    },
    "21": {
        "description": "Manufacture of pharmaceuticals, medicinal chemical and botanical products",
        "group": "Pharma",
    },
    "2100": {
        "description": "Manufacture of pharmaceuticals, medicinal chemical and botanical products",
        "group": "Pharma",
    },
    "26": {"description": "Manufacture of computer, electronic and optical products", "group": "Electronics"},
    "29": {"description": "Manufacture of motor vehicles, trailers and semi-trailers", "group": "Automotive"},
    "46": {"description": "Wholesale trade, except of motor vehicles and motorcycles", "group": "Trading"},
    "47": {"description": "Retail trade, except of motor vehicles and motorcycles", "group": "Trading"},
}

_FINANCIAL_FIELDS = (
    "revenue",
    "operating_revenue",
    "total_cost",
    "operating_cost",
    "gross_profit",
    "operating_profit",
    "net_profit",
    "total_assets",
    "fixed_assets",
    "current_assets",
    "total_liabilities",
    "shareholders_equity",
    "employee_cost",
    "depreciation",
    "interest_expense",
)


def _financials(year: str, values: tuple[float, ...], **extra: float) -> CompanyFinancials:
    return CompanyFinancials(financial_year=year, **dict(zip(_FINANCIAL_FIELDS, values)), **extra)


def _company(
    cin: str,
    name: str,
    nic_code: str,
    nic_description: str,
    profile: FunctionalProfile,
    source: DatabaseSource,
    incorporated: str,
    office: str,
    financials: list[CompanyFinancials],
    reported_average: tuple[float, float, float, float, float, float],
    rpt: float,
    years: int,
) -> ComparableCompany:
    yearly = {f.financial_year: calculate_pli(f) for f in financials}
    return ComparableCompany(
        cin=cin,
        name=name,
        nic_code=nic_code,
        nic_description=nic_description,
        functional_profile=profile,
        status=CompanyStatus.ACTIVE,
        source=source,
        financials=financials,
        yearly_pli=yearly,
        pli=yearly[financials[0].financial_year],
        # Multi-year average as reported by the database
        average_pli=PLICalculated(*reported_average),
        related_party_transactions=rpt,
        persistent_losses=False,
        years_continuous_data=years,
        incorporated=incorporated,
        registered_office=office,
        last_updated="2024-06-30",
    )


IT_NIC = "Computer programming, consultancy and related activities"

SAMPLE_COMPANIES: list[ComparableCompany] = [
    _company(
        "L72200MH2001PLC134517", "TCS Technologies Ltd", "62013", IT_NIC,
        FunctionalProfile.SOFTWARE_DEVELOPER, DatabaseSource.PROWESS, "2001-01-15", "Mumbai, Maharashtra",
        [_financials(
            "2023-24",
            (5.0e9, 4.8e9, 4.2e9, 4.0e9, 1.2e9, 8.0e8, 6.0e8, 3.0e9, 5.0e8, 2.5e9, 1.0e9, 2.0e9, 2.8e9, 1.0e8, 5.0e7),
            export_revenue=4.5e9, rd_expense=2.0e8,
        )],
        (0.19, 0.16, 0.25, 0.38, 1.28, 0.19), 5.2, 5,
    ),
    _company(
        "U72900KA2005PTC035678", "Infosys BPM Solutions Pvt Ltd", "62013", IT_NIC,
        FunctionalProfile.CAPTIVE_SERVICE_PROVIDER, DatabaseSource.PROWESS, "2005-03-22", "Bangalore, Karnataka",
        [_financials(
            "2023-24",
            (2.5e9, 2.4e9, 2.1e9, 2.0e9, 6.0e8, 4.0e8, 3.0e8, 1.5e9, 2.0e8, 1.3e9, 5.0e8, 1.0e9, 1.4e9, 5.0e7, 2.5e7),
            export_revenue=2.3e9,
        )],
        (0.18, 0.15, 0.24, 0.36, 1.25, 0.18), 8.5, 5,
    ),
    _company(
        "U72100DL2008PTC178901", "Wipro IT Services Ltd", "62013", IT_NIC,
        FunctionalProfile.IT_SERVICES, DatabaseSource.CAPITALINE, "2008-07-10", "New Delhi, Delhi",
        [_financials(
            "2023-24",
            (3.5e9, 3.3e9, 2.9e9, 2.75e9, 8.5e8, 5.5e8, 4.2e8, 2.2e9, 3.5e8, 1.85e9, 7.5e8, 1.45e9, 1.9e9, 8.0e7, 3.5e7),
            export_revenue=3.0e9, rd_expense=1.5e8,
        )],
        (0.185, 0.155, 0.235, 0.36, 1.27, 0.185), 12.3, 5,
    ),
    _company(
        "U74999TN2010PTC076543", "Tech Mahindra BPO Ltd", "63110", "Data processing, hosting and related activities",
        FunctionalProfile.BPO_PROVIDER, DatabaseSource.PROWESS, "2010-02-18", "Chennai, Tamil Nadu",
        [_financials(
            "2023-24",
            (1.8e9, 1.75e9, 1.55e9, 1.48e9, 4.2e8, 2.7e8, 2.0e8, 1.1e9, 1.8e8, 9.2e8, 3.8e8, 7.2e8, 1.05e9, 4.0e7, 2.0e7),
            export_revenue=1.6e9,
        )],
        (0.175, 0.148, 0.23, 0.35, 1.24, 0.175), 18.7, 4,
    ),
    _company(
        "L24100GJ1995PLC024567", "Reliance Chemicals Manufacturing Ltd", "20119",
        "Manufacture of other basic inorganic chemicals",
        FunctionalProfile.FULL_FLEDGED_MANUFACTURER, DatabaseSource.CAPITALINE, "1995-05-30", "Ahmedabad, Gujarat",
        [_financials(
            "2023-24",
            (8.0e9, 7.8e9, 7.2e9, 7.0e9, 1.2e9, 8.0e8, 5.5e8, 6.5e9, 4.0e9, 2.5e9, 2.5e9, 4.0e9, 8.0e8, 3.0e8, 1.5e8),
            export_revenue=2.0e9, import_expense=1.5e9,
        )],
        (0.11, 0.10, 0.12, 0.19, 1.15, 0.11), 22.5, 5,
    ),
    _company(
        "U29100MH2000PTC123456", "Tata Auto Parts Ltd", "29301",
        "Manufacture of parts and accessories for motor vehicles",
        FunctionalProfile.CONTRACT_MANUFACTURER, DatabaseSource.PROWESS, "2000-09-15", "Pune, Maharashtra",
        [_financials(
            "2023-24",
            (4.5e9, 4.4e9, 4.1e9, 4.0e9, 5.5e8, 4.0e8, 2.8e8, 3.2e9, 1.8e9, 1.4e9, 1.2e9, 2.0e9, 6.0e8, 2.0e8, 8.0e7),
            export_revenue=8.0e8, import_expense=5.0e8,
        )],
        (0.095, 0.087, 0.12, 0.19, 1.12, 0.095), 45.0, 5,
    ),
    _company(
        "U74900HR2012PTC045678", "HCL Analytics Solutions Pvt Ltd", "62013", IT_NIC,
        FunctionalProfile.KPO_PROVIDER, DatabaseSource.PROWESS, "2012-04-25", "Gurgaon, Haryana",
        [_financials(
            "2023-24",
            (1.2e9, 1.15e9, 9.8e8, 9.2e8, 3.2e8, 2.3e8, 1.75e8, 7.5e8, 1.0e8, 6.5e8, 2.5e8, 5.0e8, 6.5e8, 2.5e7, 1.5e7),
            export_revenue=1.1e9, rd_expense=8.0e7,
        )],
        (0.23, 0.19, 0.29, 0.43, 1.32, 0.23), 3.2, 5,
    ),
    _company(
        "L51909TG2006PLC050123", "Amazon Distribution India Ltd", "46909", "Wholesale of a variety of goods",
        FunctionalProfile.DISTRIBUTOR, DatabaseSource.CAPITALINE, "2006-08-12", "Hyderabad, Telangana",
        [_financials(
            "2023-24",
            (1.5e10, 1.48e10, 1.45e10, 1.42e10, 8.0e8, 6.0e8, 4.0e8, 8.0e9, 1.5e9, 6.5e9, 4.0e9, 4.0e9, 1.2e9, 2.0e8, 1.0e8),
        )],
        (0.04, 0.038, 0.07, 0.14, 1.05, 0.04), 65.0, 5,
    ),
]


def nic_description(code: str) -> str | None:
    """Longest NIC reference prefix description for ``code``."""
    for length in range(len(code), 1, -1):
        entry = NIC_CODES.get(code[:length])
        if entry:
            return entry["description"]
    return None


__all__ = ["NIC_CODES", "SAMPLE_COMPANIES", "nic_description"]
