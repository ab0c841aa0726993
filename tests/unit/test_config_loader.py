"""
Unit tests for configuration loading.

Covers:
- Schema defaults and field validation
- YAML loading
- Environment variable overrides (TPC_ prefix)
- Priority: CLI > environment > YAML > defaults
- Helpful errors for invalid values
"""

from pathlib import Path

import pytest

from tp_compliance.config import AppConfig, ForexConfig, ThinCapConfig
from tp_compliance.config.loader import (
    ConfigLoader,
    ConfigurationError,
    load_config,
    load_config_for_testing,
)
from tp_compliance.config.schema import SECTION_NAMES


class TestDefaults:
    """Default values when no source overrides anything"""

    def test_default_configuration(self):
        """Every section is populated with its defaults"""
        config = AppConfig()

        assert config.logging.level == "INFO"
        assert config.forex.primary_source == "RBI"
        assert config.forex.cache_ttl_seconds == 3600
        assert config.comparables.default_sources == ["PROWESS", "CAPITALINE"]
        assert config.comparables.nic_match_digits == 2
        assert config.thin_cap.floor_allowable_at_zero is False
        assert config.thin_cap.default_assessment_year == "2026-27"
        assert config.penalty.default_tax_rate == 25.168
        assert config.api.port == 8000

    def test_paths_are_resolved(self):
        """String paths become absolute Path objects"""
        config = AppConfig()

        assert config.paths.logs_dir == Path("./logs").resolve()
        assert config.paths.logs_dir.is_absolute()

    def test_section_names_match_fields(self):
        assert set(SECTION_NAMES) == set(AppConfig.model_fields)

    def test_source_name_is_normalized(self):
        assert ForexConfig(primary_source="ecb").primary_source == "ECB"

    def test_assessment_year_format_is_checked(self):
        with pytest.raises(ValueError, match="YYYY-YY"):
            ThinCapConfig(default_assessment_year="2026")


class TestYamlLoading:
    """Loading configuration from YAML"""

    def test_yaml_values_are_applied(self):
        config = load_config_for_testing(
            yaml_content="""
forex:
  primary_source: ECB
  enable_fallback: false
comparables:
  default_limit: 25
  default_sources: [PROWESS]
thin_cap:
  floor_allowable_at_zero: true
logging:
  level: DEBUG
"""
        )

        assert config.forex.primary_source == "ECB"
        assert config.forex.enable_fallback is False
        assert config.comparables.default_limit == 25
        assert config.comparables.default_sources == ["PROWESS"]
        assert config.thin_cap.floor_allowable_at_zero is True
        assert config.logging.level == "DEBUG"

    def test_missing_file_uses_defaults(self, tmp_path):
        """A YAML file is optional"""
        loader = ConfigLoader(str(tmp_path / "absent.yaml"))

        config = loader.load_config(validate=False)

        assert config.api.host == "127.0.0.1"

    def test_invalid_yaml_raises(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("forex: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(str(config_file), validate=False)

    def test_non_mapping_yaml_raises(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_config(str(config_file), validate=False)

    def test_validate_creates_directories(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            f"paths:\n  logs_dir: {tmp_path / 'out' / 'logs'}\n  data_dir: {tmp_path / 'out' / 'data'}\n",
            encoding="utf-8",
        )

        load_config(str(config_file))

        assert (tmp_path / "out" / "logs").is_dir()
        assert (tmp_path / "out" / "data").is_dir()


class TestEnvironmentOverrides:
    """TPC_ environment variables"""

    def test_env_overrides_yaml(self):
        config = load_config_for_testing(
            yaml_content="forex:\n  primary_source: ECB\n",
            env_vars={"TPC_FOREX__PRIMARY_SOURCE": "rbi"},
        )

        assert config.forex.primary_source == "RBI"

    def test_env_values_are_typed(self, monkeypatch):
        monkeypatch.setenv("TPC_API__PORT", "9000")
        monkeypatch.setenv("TPC_FOREX__RBI_TIMEOUT", "2.5")
        monkeypatch.setenv("TPC_THIN_CAP__NET_INTEREST_INCOME", "yes")

        config = ConfigLoader("__no_config__.yaml").load_config(validate=False)

        assert config.api.port == 9000
        assert config.forex.rbi_timeout == 2.5
        assert config.thin_cap.net_interest_income is True

    def test_parse_env_value(self):
        loader = ConfigLoader()

        assert loader._parse_env_value("off") is False
        assert loader._parse_env_value("a, b,") == ["a", "b"]
        assert loader._parse_env_value("42") == 42
        assert loader._parse_env_value("0.25") == 0.25
        assert loader._parse_env_value("2026-27") == "2026-27"

    @pytest.mark.parametrize(
        "raw, expected",
        [("1,00,000", 100_000), ("5_000_000", 5_000_000), ("1,250.50", 1250.5), ("30%", 30), ("-2", -2)],
    )
    def test_grouped_amounts_are_numbers(self, raw, expected):
        """Digit grouping and percent signs do not turn amounts into lists"""
        assert ConfigLoader()._parse_env_value(raw) == expected

    def test_code_lists_are_upper_cased(self):
        loader = ConfigLoader()

        assert loader._parse_env_value("usd, eur,GBP") == ["USD", "EUR", "GBP"]
        assert loader._parse_env_value("http://localhost:3000,*", as_list=True) == ["http://localhost:3000", "*"]

    def test_currency_list_from_env(self, monkeypatch):
        monkeypatch.setenv("TPC_FOREX__TP_CURRENCIES", "usd,eur, aed")
        monkeypatch.setenv("TPC_PENALTY__DEFAULT_TAX_RATE", "34.944%")

        config = ConfigLoader("__no_config__.yaml").load_config(validate=False)

        assert config.forex.tp_currencies == ["USD", "EUR", "AED"]
        assert config.penalty.default_tax_rate == 34.944

    def test_single_value_for_list_field(self, monkeypatch):
        """A list field given one item still becomes a list"""
        monkeypatch.setenv("TPC_COMPARABLES__DEFAULT_SOURCES", "capitaline")
        monkeypatch.setenv("TPC_API__CORS_ORIGINS", "https://tp.example.in")

        config = ConfigLoader("__no_config__.yaml").load_config(validate=False)

        assert config.comparables.default_sources == ["CAPITALINE"]
        assert config.api.cors_origins == ["https://tp.example.in"]

    def test_testing_helper_restores_environment(self, monkeypatch):
        monkeypatch.setenv("TPC_API__HOST", "0.0.0.0")

        load_config_for_testing(env_vars={"TPC_API__HOST": "10.0.0.1"})

        import os

        assert os.environ["TPC_API__HOST"] == "0.0.0.0"


class TestPriority:
    """CLI > environment > YAML > defaults"""

    def test_cli_wins(self):
        config = load_config_for_testing(
            yaml_content="comparables:\n  default_limit: 10\n",
            env_vars={"TPC_COMPARABLES__DEFAULT_LIMIT": "20"},
            cli_overrides={"comparables": {"default_limit": 30}},
        )

        assert config.comparables.default_limit == 30

    def test_deep_merge_keeps_sibling_keys(self):
        config = load_config_for_testing(
            yaml_content="forex:\n  primary_source: ECB\n  cache_ttl_seconds: 60\n",
            cli_overrides={"forex": {"cache_ttl_seconds": 120}},
        )

        assert config.forex.primary_source == "ECB"
        assert config.forex.cache_ttl_seconds == 120


class TestValidationErrors:
    """Invalid values produce a readable ConfigurationError"""

    def test_out_of_range_port(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config_for_testing(cli_overrides={"api": {"port": 0}})

        message = str(exc_info.value)
        assert "Configuration validation failed" in message
        assert "api -> port" in message
        assert "TPC_* prefix" in message

    def test_unknown_source(self):
        with pytest.raises(ConfigurationError, match="forex -> primary_source"):
            load_config_for_testing(yaml_content="forex:\n  primary_source: FED\n")


class TestSourcesInfo:
    """Debug information about configuration sources"""

    def test_sources_info(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("api:\n  port: 8100\n", encoding="utf-8")
        monkeypatch.setenv("TPC_LOGGING__LEVEL", "DEBUG")

        loader = ConfigLoader(str(config_file))
        loader.load_config(cli_overrides={"penalty": {"default_tax_rate": 30}}, validate=False)
        info = loader.get_config_sources_info()

        assert info["yaml_file"]["exists"] is True
        assert info["environment_variables"]["variables"] == ["TPC_LOGGING__LEVEL"]
        assert info["cli_overrides"]["sections"] == ["penalty"]
