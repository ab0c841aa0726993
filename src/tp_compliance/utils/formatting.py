"""Number formatting helpers shared by the engines and the CLI.

Amounts are rendered with Indian digit grouping (lakh/crore), e.g.
``17500000`` -> ``1,75,00,000``.
"""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (``2.5 -> 3``, ``-2.5 -> -2``)."""
    return int(math.floor(value + 0.5))


def group_indian(digits: str) -> str:
    """Insert Indian-style separators into a string of integer digits."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_indian(value: float, decimals: int = 0) -> str:
    """Format a number with Indian digit grouping.

    Trailing fractional zeros are dropped so ``1500.50`` renders as ``1,500.5``.
    """
    sign = "-" if value < 0 else ""
    text = f"{abs(value):.{decimals}f}"
    whole, _, frac = text.partition(".")
    frac = frac.rstrip("0")
    result = group_indian(whole)
    if frac:
        result += "." + frac
    return sign + result


def format_rupees(value: float) -> str:
    """Format an amount as ``Rs. 1,75,00,000``."""
    return f"Rs. {format_indian(value)}"


def format_grouped(value: float) -> str:
    """Western thousands grouping without a trailing ``.0`` for whole numbers."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def format_percent(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"


__all__ = [
    "round_half_up",
    "group_indian",
    "format_indian",
    "format_rupees",
    "format_grouped",
    "format_percent",
]
