"""Configuration loader with priority-based resolution.

This module implements configuration loading with the following priority order:
1. CLI arguments (highest priority)
2. Environment variables (TPC_ prefix)
3. YAML configuration file
4. Default values (lowest priority)
"""

import os
import re
from pathlib import Path
from typing import Any, get_origin

import yaml
from pydantic import BaseModel, ValidationError

from .schema import AppConfig

ENV_PREFIX = "TPC_"

# Plain or grouped number, optionally a percentage: 25.168, 1,00,000, 5_000_000, 30%
_AMOUNT = re.compile(r"^-?\d+(?:[,_]\d+)*(?:\.\d+)?%?$")
# Currency and database codes
_CODE = re.compile(r"^[A-Za-z]{3,10}$")


def _is_list_field(parts: list[str]) -> bool:
    """Whether ``section.field`` is declared as a list in AppConfig."""
    if len(parts) != 2:
        return False
    section = AppConfig.model_fields.get(parts[0])
    if section is None or not isinstance(section.annotation, type) or not issubclass(section.annotation, BaseModel):
        return False
    field = section.annotation.model_fields.get(parts[1])
    return field is not None and get_origin(field.annotation) is list


def _split_codes(value: str) -> list[str]:
    items = [item.strip() for item in value.split(",") if item.strip()]
    return [item.upper() if _CODE.match(item) else item for item in items]


class ConfigurationError(Exception):
    """Raised when configuration loading fails."""

    pass


class ConfigLoader:
    """Configuration loader with priority-based resolution.

    Handles loading configuration from multiple sources with proper precedence:
    CLI arguments > Environment variables > YAML file > Defaults
    """

    def __init__(self, config_path: str | None = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file.
                        Defaults to 'config.yaml' in current directory.
        """
        self.config_path = config_path or "config.yaml"
        self._yaml_data: dict[str, Any] = {}
        self._cli_overrides: dict[str, Any] = {}

    def load_config(
        self,
        cli_overrides: dict[str, Any] | None = None,
        validate: bool = True,
    ) -> AppConfig:
        """Load configuration with full precedence resolution.

        Args:
            cli_overrides: Dictionary of CLI argument overrides
            validate: When False, skip directory creation (used by tests)

        Returns:
            AppConfig: Validated configuration object

        Raises:
            ConfigurationError: If configuration loading or validation fails
        """
        try:
            self._cli_overrides = cli_overrides or {}
            self._load_yaml_config()
            merged_config = self._merge_all_sources()

            # Environment variables are already merged above
            config = AppConfig.model_validate(merged_config)

            if validate:
                config.ensure_directories()

            return config

        except ValidationError as e:
            self._raise_helpful_error(e)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def _load_yaml_config(self) -> None:
        """Load YAML configuration file if it exists."""
        config_file = Path(self.config_path)

        if not config_file.exists():
            # YAML file is optional
            self._yaml_data = {}
            return

        try:
            with open(config_file, encoding="utf-8") as f:
                self._yaml_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read {config_file}: {e}") from e

        if not isinstance(self._yaml_data, dict):
            raise ConfigurationError(f"Top level of {config_file} must be a mapping of sections")

    def _merge_all_sources(self) -> dict[str, Any]:
        """Merge configuration from all sources with proper precedence."""
        merged = self._yaml_data.copy()
        self._deep_merge(merged, self._get_env_overrides())
        self._deep_merge(merged, self._cli_overrides)
        return merged

    def _get_env_overrides(self) -> dict[str, Any]:
        """Collect TPC_SECTION__FIELD variables into nested section dicts.

        Each value is typed against the schema field it targets, so list
        fields always split on commas even when only one item is given.
        """
        nested: dict[str, Any] = {}

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            parts = [part.lower() for part in env_key[len(ENV_PREFIX) :].split("__")]
            parsed_value = self._parse_env_value(env_value, as_list=_is_list_field(parts))

            current = nested
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = parsed_value

        return nested

    def _parse_env_value(self, value: str, as_list: bool = False) -> Any:
        """Type an environment variable value.

        Amounts may use Indian or western digit grouping ("1,00,000",
        "1_00_000") and a trailing percent sign; they are read as numbers
        rather than lists. Other comma-separated values become lists, with
        alphabetic codes such as currencies or database names upper-cased.

        Args:
            value: String value from environment variable
            as_list: Target field is a list

        Returns:
            Parsed value (str, int, float, bool, or list)
        """
        if as_list:
            return _split_codes(value)

        if not value:
            return value

        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        if _AMOUNT.match(value):
            digits = value.rstrip("%").replace(",", "").replace("_", "")
            return float(digits) if "." in digits else int(digits)

        if "," in value:
            return _split_codes(value)

        return value

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> None:
        """Deep merge override dict into base dict (base is modified in place)."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _raise_helpful_error(self, validation_error: ValidationError) -> None:
        """Convert Pydantic validation error to helpful configuration error.

        Raises:
            ConfigurationError: With helpful error message
        """
        error_messages = []

        for error in validation_error.errors():
            loc = " -> ".join(str(x) for x in error["loc"])
            error_messages.append(f"  {loc}: {error['msg']}")

        helpful_msg = (
            "Configuration validation failed:\n"
            + "\n".join(error_messages)
            + "\n\nPlease check your configuration in:\n"
            f"  1. {self.config_path} (YAML file)\n"
            "  2. Environment variables (TPC_* prefix)\n"
            "  3. CLI arguments\n"
        )

        raise ConfigurationError(helpful_msg) from validation_error

    def get_config_sources_info(self) -> dict[str, Any]:
        """Get information about configuration sources for debugging."""
        config_file = Path(self.config_path)
        env_vars = [k for k in os.environ if k.startswith(ENV_PREFIX)]

        return {
            "yaml_file": {
                "path": str(config_file.absolute()),
                "exists": config_file.exists(),
                "readable": config_file.exists() and os.access(config_file, os.R_OK),
            },
            "environment_variables": {
                "count": len(env_vars),
                "variables": env_vars,
            },
            "cli_overrides": {
                "count": len(self._cli_overrides),
                "sections": list(self._cli_overrides.keys()),
            },
        }


def load_config(
    config_path: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
    validate: bool = True,
) -> AppConfig:
    """Convenience function to load configuration.

    Raises:
        ConfigurationError: If configuration loading fails
    """
    loader = ConfigLoader(config_path)
    return loader.load_config(cli_overrides, validate)


def load_config_for_testing(
    yaml_content: str | None = None,
    env_vars: dict[str, str] | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Load configuration for testing purposes.

    Args:
        yaml_content: YAML content as string
        env_vars: Environment variables to set temporarily
        cli_overrides: CLI override values

    Returns:
        AppConfig: Loaded configuration
    """
    import tempfile

    config_path = None
    if yaml_content:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False, encoding="utf-8") as f:
            f.write(yaml_content)
            config_path = f.name

    old_env = {}
    if env_vars:
        for key, value in env_vars.items():
            old_env[key] = os.environ.get(key)
            os.environ[key] = value

    try:
        loader = ConfigLoader(config_path or "__no_config__.yaml")
        return loader.load_config(cli_overrides, validate=False)
    finally:
        for key, old_value in old_env.items():
            if old_value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = old_value

        if config_path:
            os.unlink(config_path)
