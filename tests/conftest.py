"""
Shared fixtures for the TP Compliance test suite.
"""
import os
from datetime import date

import pytest
from loguru import logger

from tp_compliance.config.schema import AppConfig
from tp_compliance.engines.penalty_engine import PenaltyEngine
from tp_compliance.engines.thin_cap_engine import (
    InterestExpense,
    ThinCapEngine,
    ThinCapFinancials,
    ThinCapInput,
)
from tp_compliance.engines.thin_cap_rules import EntityType


@pytest.fixture(autouse=True)
def quiet_env(monkeypatch):
    """Keep TPC_* variables from the developer shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("TPC_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def app_config():
    """Default configuration with no YAML file involved."""
    return AppConfig()


@pytest.fixture
def thin_cap_engine():
    return ThinCapEngine()


@pytest.fixture
def penalty_engine():
    """Penalty engine pinned to a fixed date so interest periods are stable."""
    return PenaltyEngine(current_date=date(2025, 1, 31))


@pytest.fixture
def limited_input():
    """
    AY 2024-25 case where Section 94B bites.

    EBITDA = 5 Cr + 4 Cr + 1 Cr = 10 Cr, so 30% = 3 Cr against 3.5 Cr of
    interest to a non-resident AE: 50 lakh is disallowed.
    """
    return ThinCapInput(
        assessment_year="2024-25",
        entity_type=EntityType.INDIAN_COMPANY,
        financials=ThinCapFinancials(
            profit_before_tax=50_000_000,
            total_interest_expense=40_000_000,
            depreciation=10_000_000,
            amortization=0,
        ),
        interest_expenses=[
            InterestExpense(
                lender_name="Parent Holdings BV",
                interest_amount=35_000_000,
                is_ae=True,
                lender_country="Netherlands",
            ),
            InterestExpense(
                lender_name="State Bank of India",
                interest_amount=5_000_000,
                is_ae=False,
                lender_country="India",
            ),
        ],
    )


@pytest.fixture
def clean_loguru():
    """Reset Loguru handlers around a test."""
    logger.remove()
    yield
    logger.remove()
