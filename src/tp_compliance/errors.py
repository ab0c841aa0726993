"""Error taxonomy shared by the engines, the HTTP layer and the CLI.

Engines raise these; routers map them to HTTP status codes and the CLI prints
them and exits non-zero.
"""

from __future__ import annotations

from typing import Any, Optional


class TPComplianceError(Exception):
    """Base class for every error raised by the compliance engines."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TPComplianceError):
    """Missing or malformed input."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, issues: Optional[list[Any]] = None) -> None:
        super().__init__(message)
        self.field = field
        self.issues = issues or []


class ComputationError(TPComplianceError):
    """The inputs were well formed but no meaningful result exists."""

    status_code = 422


class InsufficientComparablesError(ComputationError):
    """Benchmarking was asked for with too few valid PLI values."""


class UnknownCurrencyError(ComputationError):
    def __init__(self, currency: str) -> None:
        super().__init__(f"Unknown currency code: {currency}")
        self.currency = currency


class NotFoundError(TPComplianceError):
    status_code = 404


class UpstreamUnavailable(TPComplianceError):
    """An external data source failed or timed out."""

    status_code = 503

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


__all__ = [
    "TPComplianceError",
    "ValidationError",
    "ComputationError",
    "InsufficientComparablesError",
    "UnknownCurrencyError",
    "NotFoundError",
    "UpstreamUnavailable",
]
