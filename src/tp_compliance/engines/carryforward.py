"""Carryforward of interest disallowed under Section 94B.

Two views of the same rule: ``track_carryforward`` settles the brought
forward register for one assessment year, and ``simulate_carryforward``
projects how an amount disallowed today is absorbed over the following
years.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from ..errors import ValidationError
from ..utils.formatting import round_half_up
from .thin_cap_rules import (
    CARRYFORWARD_YEARS,
    EBITDA_LIMITATION_PERCENTAGE,
    ay_label,
    ay_start,
    carryforward_expiry_year,
    is_carryforward_valid,
)

_logger = logger.bind(module="carryforward")


@dataclass
class CarryforwardEntry:
    """Brought forward disallowance from an earlier assessment year."""

    disallowance_year: str
    original_amount: float
    remaining_balance: float
    amount_utilized: float = 0.0
    expiry_year: Optional[str] = None

    def __post_init__(self) -> None:
        if self.expiry_year is None:
            self.expiry_year = carryforward_expiry_year(self.disallowance_year)


@dataclass
class CarryforwardYearDetail:
    year: str
    opening: float
    utilized: float
    expired: float
    closing: float
    expiry_year: str


@dataclass
class CarryforwardFuture:
    disallowance_year: str
    amount: float
    expiry_year: str
    years_remaining: int


@dataclass
class CarryforwardResult:
    opening_balance: float = 0.0
    current_year_disallowance: float = 0.0
    utilization_in_current_year: float = 0.0
    expired_in_current_year: float = 0.0
    closing_balance: float = 0.0
    year_wise_details: list[CarryforwardYearDetail] = field(default_factory=list)
    available_for_future: list[CarryforwardFuture] = field(default_factory=list)


@dataclass
class SimulationYear:
    year: str
    ebitda: float
    interest_limit: int
    interest_expense: float
    excess_capacity: int
    carryforward_utilized: int
    carryforward_remaining: int


@dataclass
class SimulationSummary:
    original_disallowance: float
    total_utilized: float
    expired_amount: float
    utilization_rate: str
    recommendation: str


@dataclass
class SimulationResult:
    simulation: list[SimulationYear]
    summary: SimulationSummary


def years_remaining(expiry_year: str, current_year: str) -> int:
    return max(0, ay_start(expiry_year) - ay_start(current_year))


def track_carryforward(
    history: list[CarryforwardEntry],
    current_disallowance: float,
    available_headroom: float,
    current_year: str,
) -> CarryforwardResult:
    """Settle the carryforward register for ``current_year``.

    Entries are processed oldest first. Those older than the carryforward
    window expire in full; the rest absorb whatever headroom is left after
    the current year's own disallowance.

    Args:
        history: Brought forward entries, in any order.
        current_disallowance: Interest disallowed in ``current_year``.
        available_headroom: Allowable interest (30% of EBITDA) for the year.
        current_year: Assessment year being settled.

    Returns:
        CarryforwardResult with one detail row per entry plus the current year.
    """
    details: list[CarryforwardYearDetail] = []
    total_opening = 0.0
    total_utilized = 0.0
    total_expired = 0.0

    headroom = max(0.0, available_headroom - current_disallowance)

    for entry in sorted(history, key=lambda e: e.disallowance_year):
        opening = entry.remaining_balance
        total_opening += opening
        utilized = 0.0
        expired = 0.0
        closing = opening

        if not is_carryforward_valid(entry.disallowance_year, current_year):
            expired = opening
            closing = 0.0
            total_expired += expired
        elif headroom > 0:
            utilized = min(opening, headroom)
            headroom -= utilized
            closing = opening - utilized
            total_utilized += utilized

        details.append(
            CarryforwardYearDetail(
                year=entry.disallowance_year,
                opening=opening,
                utilized=utilized,
                expired=expired,
                closing=closing,
                expiry_year=entry.expiry_year,
            )
        )

    if current_disallowance > 0:
        details.append(
            CarryforwardYearDetail(
                year=current_year,
                opening=0.0,
                utilized=0.0,
                expired=0.0,
                closing=current_disallowance,
                expiry_year=carryforward_expiry_year(current_year),
            )
        )

    future = [
        CarryforwardFuture(
            disallowance_year=d.year,
            amount=d.closing,
            expiry_year=d.expiry_year,
            years_remaining=years_remaining(d.expiry_year, current_year),
        )
        for d in details
        if d.closing > 0
    ]

    if total_expired > 0:
        _logger.info(f"Carryforward of {total_expired:.0f} expired in AY {current_year}")

    return CarryforwardResult(
        opening_balance=total_opening,
        current_year_disallowance=current_disallowance,
        utilization_in_current_year=total_utilized,
        expired_in_current_year=total_expired,
        closing_balance=sum(d.closing for d in details),
        year_wise_details=details,
        available_for_future=future,
    )


def simulate_carryforward(
    disallowed_interest: float,
    projected_ebitda: list[float],
    projected_interest_expense: list[float],
    starting_year: str,
) -> SimulationResult:
    """Project utilisation of ``disallowed_interest`` over the next years.

    At most eight years are simulated. Ledger amounts are rounded half-up to
    whole rupees; the summary totals are not rounded, so
    ``total_utilized + expired_amount == original_disallowance`` holds exactly.

    Raises:
        ValidationError: If the disallowance is not positive, the starting
            year is malformed, or fewer interest projections than simulated
            years are supplied.
    """
    if disallowed_interest <= 0:
        raise ValidationError("disallowedInterest must be greater than zero", field="disallowedInterest")
    try:
        start = ay_start(starting_year)
    except (ValueError, AttributeError):
        raise ValidationError(
            f"startingYear must be in YYYY-YY format, got: {starting_year}", field="startingYear"
        ) from None

    years = min(len(projected_ebitda), CARRYFORWARD_YEARS)
    if len(projected_interest_expense) < years:
        raise ValidationError(
            f"projectedInterestExpense needs at least {years} entries, got {len(projected_interest_expense)}",
            field="projectedInterestExpense",
        )

    remaining = disallowed_interest
    ledger: list[SimulationYear] = []
    for i in range(years):
        ebitda = projected_ebitda[i]
        interest_limit = ebitda * EBITDA_LIMITATION_PERCENTAGE / 100
        interest_expense = projected_interest_expense[i]
        excess = max(0.0, interest_limit - interest_expense)
        utilized = min(excess, remaining)
        remaining -= utilized

        ledger.append(
            SimulationYear(
                year=ay_label(start + i + 1),
                ebitda=ebitda,
                interest_limit=round_half_up(interest_limit),
                interest_expense=interest_expense,
                excess_capacity=round_half_up(excess),
                carryforward_utilized=round_half_up(utilized),
                carryforward_remaining=round_half_up(remaining),
            )
        )

    expired = remaining
    total_utilized = disallowed_interest - remaining
    if expired > 0:
        recommendation = (
            "Consider restructuring debt or increasing operational efficiency "
            "to utilize carryforward before expiry"
        )
    else:
        recommendation = "Full carryforward utilization projected"

    _logger.debug(f"Simulated {years} years from {starting_year}: utilized {total_utilized:.0f}, expired {expired:.0f}")

    return SimulationResult(
        simulation=ledger,
        summary=SimulationSummary(
            original_disallowance=disallowed_interest,
            total_utilized=total_utilized,
            expired_amount=expired,
            utilization_rate=f"{total_utilized / disallowed_interest * 100:.1f}%",
            recommendation=recommendation,
        ),
    )


__all__ = [
    "CarryforwardEntry",
    "CarryforwardYearDetail",
    "CarryforwardFuture",
    "CarryforwardResult",
    "SimulationYear",
    "SimulationSummary",
    "SimulationResult",
    "years_remaining",
    "track_carryforward",
    "simulate_carryforward",
]
