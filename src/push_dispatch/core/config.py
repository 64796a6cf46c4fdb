"""Configuration system for push-dispatch.

Loads the YAML configuration file, resolves ``${VARIABLE}`` references
from the environment and validates the result with Pydantic. Every
failure surfaces as a ConfigurationError carrying an actionable message.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, Field, ValidationError

from push_dispatch.providers.gcm.config import GcmConfig

__all__ = [
    "ApplicationConfig",
    "ConfigurationError",
    "EnvironmentVariableError",
    "MainConfig",
    "load_main_config",
    "resolve_env_var",
    "resolve_env_vars_in_dict",
]

# Matches ${VARIABLE_NAME}; names are upper-case letters, digits and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")


class ApplicationConfig(BaseModel):
    """Application-level settings: logging and dry-run behavior."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    dry_run: Annotated[
        bool,
        Field(
            description="Dry-run mode: log gateway requests without sending",
        ),
    ] = False
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Enable syslog integration",
        ),
    ] = False


class MainConfig(BaseModel):
    """Top-level configuration.

    Sections:
    - gcm: gateway credentials, endpoint and retry policy
    - application: logging and dry-run settings
    """

    gcm: Annotated[
        GcmConfig,
        Field(
            description="GCM gateway configuration",
        ),
    ]
    application: Annotated[
        ApplicationConfig,
        Field(
            description="Application-level configuration",
        ),
    ] = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """A referenced environment variable is not set.

    The message names the variable but never includes any resolved value.
    """


def resolve_env_var(value: str) -> str:
    """Resolve ``${VARIABLE_NAME}`` references in a string value.

    Args:
        value: String potentially containing environment variable references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["GCM_API_KEY"] = "AIza-secret"
        >>> resolve_env_var("${GCM_API_KEY}")
        'AIza-secret'
        >>> resolve_env_var("no variables here")
        'no variables here'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before running push-dispatch."
            )
            raise EnvironmentVariableError(msg)
        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _resolve_item(item: object) -> object:
    if isinstance(item, str):
        return resolve_env_var(item)
    if isinstance(item, dict):
        # YAML data is untyped at load time; validated by Pydantic after resolution
        return resolve_env_vars_in_dict(item)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    if isinstance(item, list):
        return [_resolve_item(element) for element in item]  # pyright: ignore[reportUnknownVariableType]  # YAML list items
    return item


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in a mapping.

    Strings inside nested mappings and lists are resolved; other values
    are preserved as-is.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["GCM_API_KEY"] = "AIza-secret"
        >>> resolve_env_vars_in_dict({"gcm": {"server_api_key": "${GCM_API_KEY}"}})
        {'gcm': {'server_api_key': 'AIza-secret'}}
    """
    return {key: _resolve_item(value) for key, value in data.items()}


class ConfigurationError(Exception):
    """Configuration loading or validation failed."""


def _format_validation_error(error: ValidationError, config_path: Path) -> str:
    error_lines = ["Configuration validation failed:", ""]
    for detail in error.errors():
        field_path = " → ".join(str(loc) for loc in detail["loc"])
        error_lines.append(f"  Field: {field_path}")
        error_lines.append(f"  Error: {detail['msg']}")
        error_lines.append(f"  Type: {detail['type']}")
        error_lines.append("")
    error_lines.append(f"Configuration file: {config_path}")
    error_lines.append("Please fix the above errors and try again.")
    return "\n".join(error_lines)


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate the configuration file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file is missing, unreadable, malformed,
            references an unset environment variable or fails validation

    Examples:
        >>> config = load_main_config(Path("config/push-dispatch.yaml"))
        >>> print(config.gcm.retries)
        3
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}"
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = f"Environment variable resolution failed in: {config_path}\n{e}"
        raise ConfigurationError(msg) from e

    try:
        return MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e, config_path)) from e
