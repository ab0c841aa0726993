"""Arm's length range statistics over a comparable set.

Quartiles use the nearest-rank method on the ascending list: the value at
index ``floor(n * fraction)``. No interpolation, so results match previously
filed benchmarking studies.
"""

from __future__ import annotations

import math
from typing import Optional

from loguru import logger

from ..errors import InsufficientComparablesError, ValidationError
from .models import BenchmarkingSet, ComparableCompany, PLIType

_logger = logger.bind(module="benchmarking")


def nearest_rank(sorted_values: list[float], fraction: float) -> float:
    return sorted_values[int(math.floor(len(sorted_values) * fraction))]


def classify_tested_party(tested_pli: float, lower: float, upper: float) -> str:
    if tested_pli < lower:
        return "below"
    if tested_pli > upper:
        return "above"
    return "within"


def parse_pli_type(value: PLIType | str) -> PLIType:
    try:
        return PLIType(value)
    except ValueError:
        valid = ", ".join(p.value for p in PLIType)
        raise ValidationError(f"Unknown PLI type: {value}. Valid types: {valid}", field="pliType") from None


def benchmark_values(
    values: list[float],
    pli_type: PLIType | str,
    tested_party_pli: Optional[float] = None,
    *,
    labels: Optional[list[str]] = None,
    minimum: int = 1,
) -> BenchmarkingSet:
    """Build a BenchmarkingSet from raw PLI values.

    NaN and infinite values are dropped before ranking.

    Raises:
        InsufficientComparablesError: If fewer than ``minimum`` valid values remain.
    """
    pli_type = parse_pli_type(pli_type)
    valid = sorted(v for v in values if v is not None and math.isfinite(v))

    if not valid or len(valid) < minimum:
        raise InsufficientComparablesError(
            f"Insufficient comparables: {len(valid)} valid {pli_type.value} value(s), at least {max(minimum, 1)} required"
        )

    q1 = nearest_rank(valid, 0.25)
    median = nearest_rank(valid, 0.5)
    q3 = nearest_rank(valid, 0.75)

    position = None
    if tested_party_pli is not None:
        position = classify_tested_party(tested_party_pli, q1, q3)

    _logger.debug(f"Benchmarked {len(valid)} {pli_type.value} values: q1={q1:.4f} median={median:.4f} q3={q3:.4f}")

    return BenchmarkingSet(
        pli_type=pli_type,
        quartile1=q1,
        median=median,
        quartile3=q3,
        mean=sum(valid) / len(valid),
        min=valid[0],
        max=valid[-1],
        range={"lower": q1, "upper": q3},
        n=len(valid),
        comparables=list(labels or []),
        tested_party_pli=tested_party_pli,
        tested_party_position=position,
    )


def calculate_benchmarking_set(
    companies: list[ComparableCompany],
    pli_type: PLIType | str,
    tested_party_pli: Optional[float] = None,
    *,
    minimum: int = 1,
) -> BenchmarkingSet:
    """Quartiles of ``average_pli[pli_type]`` across ``companies``."""
    pli_type = parse_pli_type(pli_type)
    values = [c.average_pli.value(pli_type) for c in companies]
    return benchmark_values(
        values,
        pli_type,
        tested_party_pli,
        labels=[c.name for c in companies],
        minimum=minimum,
    )


__all__ = [
    "nearest_rank",
    "classify_tested_party",
    "parse_pli_type",
    "benchmark_values",
    "calculate_benchmarking_set",
]
