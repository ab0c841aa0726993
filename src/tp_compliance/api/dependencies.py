"""Shared dependencies for the compliance API routers."""

from __future__ import annotations

from fastapi import Depends, Request

from ..config.schema import AppConfig
from ..engines.comparable_search import ComparableSearchEngine
from ..engines.forex_engine import ForexEngine
from ..engines.penalty_engine import PenaltyEngine
from ..engines.thin_cap_engine import ThinCapEngine


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


# Forex and comparables engines are long-lived: they own the rate cache and
# the database connectors.
def get_forex_engine(request: Request) -> ForexEngine:
    return request.app.state.forex_engine


def get_comparables_engine(request: Request) -> ComparableSearchEngine:
    return request.app.state.comparables_engine


def get_thin_cap_engine(config: AppConfig = Depends(get_config)) -> ThinCapEngine:
    return ThinCapEngine(config.thin_cap)


def get_penalty_engine(config: AppConfig = Depends(get_config)) -> PenaltyEngine:
    return PenaltyEngine(config.penalty)
