"""Configuration schema using Pydantic BaseSettings with environment variable support.

This module defines the configuration schema for the TP Compliance engines.
Environment variables can be used to override config values using the TPC_ prefix.
For example: TPC_FOREX__PRIMARY_SOURCE=ECB or TPC_THIN_CAP__FLOOR_ALLOWABLE_AT_ZERO=true
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PathsConfig(BaseSettings):
    """File system paths configuration."""

    model_config = SettingsConfigDict(env_prefix="TPC_PATHS__", env_nested_delimiter="__")

    logs_dir: Path = Field(default="./logs", description="Directory for log files")
    data_dir: Path = Field(default="./data", description="Base data directory")

    @field_validator("logs_dir", "data_dir", mode="before")
    @classmethod
    def validate_paths(cls, v):
        """Convert string paths to Path objects and resolve them."""
        if isinstance(v, str):
            return Path(v).expanduser().resolve()
        return v


class LoggingConfig(BaseSettings):
    """Logging system configuration."""

    model_config = SettingsConfigDict(env_prefix="TPC_LOGGING__", env_nested_delimiter="__")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO", description="Logging level")
    console: bool = Field(default=True, description="Enable console logging")
    file: bool = Field(default=True, description="Enable file logging")
    retention_days: int = Field(default=30, gt=0, description="Log file retention in days")


class ForexConfig(BaseSettings):
    """Forex rate service configuration."""

    model_config = SettingsConfigDict(env_prefix="TPC_FOREX__", env_nested_delimiter="__")

    primary_source: Literal["RBI", "ECB"] = Field(default="RBI", description="Primary rate source")
    enable_fallback: bool = Field(default=True, description="Try the secondary source when the primary fails")
    enable_historical: bool = Field(default=True, description="Allow historical (synthetic) rate generation")
    cache_ttl_seconds: int = Field(default=3600, ge=0, description="Rate cache time-to-live in seconds")
    rbi_timeout: float = Field(default=10.0, gt=0, description="RBI source timeout in seconds")
    ecb_timeout: float = Field(default=15.0, gt=0, description="ECB source timeout in seconds")
    historical_seed: int | None = Field(default=None, description="Seed for synthetic historical variance")
    # Currencies most often seen in Indian transfer pricing documentation
    tp_currencies: list[str] = Field(
        default=["USD", "EUR", "GBP", "JPY", "CHF", "SGD", "AED"],
        description="Currencies quoted by the TP rates summary",
    )

    @field_validator("primary_source", mode="before")
    @classmethod
    def normalize_source(cls, v):
        """Accept lower-case source names."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("tp_currencies", mode="before")
    @classmethod
    def normalize_currencies(cls, v):
        """Accept a comma-separated string and lower-case codes."""
        if isinstance(v, str):
            v = v.split(",")
        return [str(item).strip().upper() for item in v if str(item).strip()]


class ComparablesConfig(BaseSettings):
    """Comparable company database configuration."""

    model_config = SettingsConfigDict(env_prefix="TPC_COMPARABLES__", env_nested_delimiter="__")

    prowess_api_key: str | None = Field(default=None, description="CMIE Prowess API key")
    capitaline_api_key: str | None = Field(default=None, description="Capitaline API key")
    default_sources: list[Literal["PROWESS", "CAPITALINE"]] = Field(
        default=["PROWESS", "CAPITALINE"], description="Databases searched when a request names none"
    )
    default_limit: int = Field(default=50, gt=0, description="Default page size for searches")
    nic_match_digits: int = Field(default=2, ge=1, le=5, description="NIC code prefix length used for matching")
    minimum_comparables: int = Field(default=1, ge=1, description="Minimum valid PLIs for a benchmarking set")
    default_related_party_threshold: float = Field(
        default=25.0, ge=0.0, le=100.0, description="Default RPT exclusion threshold (% of revenue)"
    )

    @field_validator("default_sources", mode="before")
    @classmethod
    def validate_sources(cls, v):
        """Allow a comma-separated string of sources."""
        if isinstance(v, str):
            return [item.strip().upper() for item in v.split(",") if item.strip()]
        return v


class ThinCapConfig(BaseSettings):
    """Section 94B interest limitation configuration."""

    model_config = SettingsConfigDict(env_prefix="TPC_THIN_CAP__", env_nested_delimiter="__")

    floor_allowable_at_zero: bool = Field(
        default=False, description="Treat allowable interest as zero when EBITDA is negative"
    )
    net_interest_income: bool = Field(
        default=False, description="Net interest income against interest covered by Section 94B"
    )
    default_assessment_year: str = Field(default="2026-27", description="Assessment year used for rule lookups")

    @field_validator("default_assessment_year")
    @classmethod
    def validate_assessment_year(cls, v):
        """Ensure the assessment year looks like YYYY-YY."""
        parts = v.split("-")
        if len(parts) != 2 or len(parts[0]) != 4 or len(parts[1]) != 2 or not (parts[0] + parts[1]).isdigit():
            raise ValueError(f"Assessment year must be in YYYY-YY format, got: {v}")
        return v


class PenaltyConfig(BaseSettings):
    """Penalty exposure calculator configuration."""

    model_config = SettingsConfigDict(env_prefix="TPC_PENALTY__", env_nested_delimiter="__")

    default_entity_type: Literal[
        "domestic_company", "domestic_company_old", "foreign_company", "llp_firm", "individual_highest"
    ] = Field(default="domestic_company", description="Entity type used when a request names none")
    default_tax_rate: float = Field(default=25.168, gt=0, le=100, description="Tax rate (%) for quick estimates")


class ApiConfig(BaseSettings):
    """HTTP API configuration."""

    model_config = SettingsConfigDict(env_prefix="TPC_API__", env_nested_delimiter="__")

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8000, gt=0, le=65535, description="Bind port")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")


class AppConfig(BaseSettings):
    """Main application configuration combining all sections."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    forex: ForexConfig = Field(default_factory=ForexConfig)
    comparables: ComparablesConfig = Field(default_factory=ComparablesConfig)
    thin_cap: ThinCapConfig = Field(default_factory=ThinCapConfig)
    penalty: PenaltyConfig = Field(default_factory=PenaltyConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = SettingsConfigDict(
        env_prefix="TPC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        for directory in (self.paths.logs_dir, self.paths.data_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def get_log_file_path(self) -> Path:
        """Get the current log file path with date."""
        from datetime import datetime

        date_str = datetime.now().strftime("%Y-%m-%d")
        return self.paths.logs_dir / f"tp-compliance-{date_str}.log"

    def get_error_log_path(self) -> Path:
        """Get the error log file path."""
        return self.paths.logs_dir / "errors.log"


SECTION_NAMES = ("paths", "logging", "forex", "comparables", "thin_cap", "penalty", "api")
