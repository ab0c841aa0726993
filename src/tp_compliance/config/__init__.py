"""Configuration package for the TP Compliance engines.

This package provides configuration management with Pydantic BaseSettings
for type validation and automatic environment variable override support.

Environment Variables:
    Use TPC_ prefix for overrides. For nested configs use double underscore.
    Examples:
        TPC_FOREX__PRIMARY_SOURCE=ECB
        TPC_COMPARABLES__NIC_MATCH_DIGITS=3
        TPC_THIN_CAP__FLOOR_ALLOWABLE_AT_ZERO=true
"""

from .loader import ConfigLoader, ConfigurationError, load_config, load_config_for_testing
from .schema import (
    ApiConfig,
    AppConfig,
    ComparablesConfig,
    ForexConfig,
    LoggingConfig,
    PathsConfig,
    PenaltyConfig,
    ThinCapConfig,
)

__all__ = [
    "AppConfig",
    "PathsConfig",
    "LoggingConfig",
    "ForexConfig",
    "ComparablesConfig",
    "ThinCapConfig",
    "PenaltyConfig",
    "ApiConfig",
    "ConfigLoader",
    "ConfigurationError",
    "load_config",
    "load_config_for_testing",
]
