"""Compliance engines for Indian transfer pricing."""

from .comparable_search import ComparableSearchEngine
from .dispute_workflow import DisputeWorkflowEngine
from .forex_engine import ForexEngine
from .models import (
    BenchmarkingSet,
    ComparableCompany,
    ComparableSearchCriteria,
    ComparableSearchResult,
    ComputationStep,
    ForexRate,
    PLIType,
    Severity,
    ValidationIssue,
)
from .penalty_engine import PenaltyEngine, PenaltyExposure, PenaltyInput
from .thin_cap_engine import ThinCapEngine, ThinCapInput, ThinCapResult

__all__ = [
    "ComparableSearchEngine",
    "DisputeWorkflowEngine",
    "ForexEngine",
    "PenaltyEngine",
    "ThinCapEngine",
    "BenchmarkingSet",
    "ComparableCompany",
    "ComparableSearchCriteria",
    "ComparableSearchResult",
    "ComputationStep",
    "ForexRate",
    "PLIType",
    "Severity",
    "ValidationIssue",
    "PenaltyExposure",
    "PenaltyInput",
    "ThinCapInput",
    "ThinCapResult",
]
