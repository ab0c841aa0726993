"""Serialization helpers for turning engine results into wire dicts.

Engine records are dataclasses with snake_case attributes; the HTTP layer and
the CLI ``--json`` output use camelCase keys. Every router should go through
``to_wire`` rather than building dicts by hand.

Usage:
    from tp_compliance.utils.serialization import to_wire

    return to_wire(result)
    return to_wire(result, exclude=["computation_steps"])
"""

from __future__ import annotations

import dataclasses
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

# Keys whose camelCase form is not mechanical.
SPECIAL_KEYS = {
    "op_oc": "opOc",
    "op_or": "opOr",
    "op_ta": "opTa",
    "op_ce": "opCe",
    "is_ae": "isAE",
    "ebitda": "ebitda",
    "projected_ebitda": "projectedEBITDA",
    "ebitda_result": "ebitdaResult",
    "total_ebitda": "totalEBITDA",
    "thirty_percent_ebitda": "thirtyPercentEBITDA",
    "interest_covered_under_94b": "interestCoveredUnder94B",
    "is_covered_under_94b": "isCoveredUnder94B",
    "reported_in_3ceb": "reportedIn3CEB",
    "form_3ceb_filed": "form3CEBFiled",
    "information_furnished_to_tpo": "informationFurnishedToTPO",
    "search_time_ms": "searchTime",
}


def camel_case(name: str) -> str:
    """Convert ``snake_case`` to ``camelCase``."""
    if name in SPECIAL_KEYS:
        return SPECIAL_KEYS[name]
    if not name.islower():
        # Currency pairs, fiscal years and other data keys pass through.
        return name
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _wire_key(key: Any) -> Any:
    # Enum keys are data (stage, form type), not attribute names
    if isinstance(key, Enum):
        return key.value
    if isinstance(key, str):
        return camel_case(key)
    return key


def to_wire(value: Any, exclude: Optional[Iterable[str]] = None) -> Any:
    """Convert dataclasses, enums and dates into JSON-safe structures.

    Args:
        value: Dataclass instance, mapping, sequence or scalar.
        exclude: Top-level dataclass field names to skip.

    Returns:
        JSON-safe value with camelCase keys (dates become ISO strings,
        non-finite floats become None).
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        skip = set(exclude or [])
        return {
            camel_case(f.name): to_wire(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if f.name not in skip
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {_wire_key(k): to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


__all__ = ["camel_case", "to_wire"]
