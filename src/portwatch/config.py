"""Configuration system for portwatch.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages.

The YAML file carries two generations of destination configuration: a
single legacy ``gotify`` section and a ``gotify_destinations`` list. Both
are folded into one normalized list by
:meth:`MonitoringConfig.resolved_destinations`, which is the only shape the
monitoring core ever sees.
"""

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final, Self
from urllib.parse import urlparse

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from portwatch.types.models import endpoint_key

logger = logging.getLogger(__name__)

# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _validate_http_url(value: str) -> str:
    cleaned = value.strip()
    parsed = urlparse(cleaned)
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        msg = f"Destination URL must be an absolute http(s) URL, got: {cleaned!r}"
        raise ValueError(msg)
    return cleaned


class EndpointConfig(BaseModel):
    """A monitored ``host:port`` target identified by a unique name."""

    model_config = ConfigDict(frozen=True)

    name: Annotated[
        str,
        Field(
            min_length=1,
            description="Unique display name of the endpoint",
        ),
    ]
    host: Annotated[
        str,
        Field(
            min_length=1,
            description="Hostname or IP address to connect to",
        ),
    ]
    port: Annotated[
        int,
        Field(
            ge=1,
            le=65535,
            description="TCP port to connect to",
        ),
    ]
    enabled: Annotated[
        bool,
        Field(
            description="Whether the endpoint is probed",
        ),
    ] = True

    @field_validator("name", "host", mode="after")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank values."""
        stripped = v.strip()
        if not stripped:
            msg = "Value must not be blank"
            raise ValueError(msg)
        return stripped

    @property
    def key(self) -> str:
        """Identity key of the endpoint (``host:port``)."""
        return endpoint_key(self.host, self.port)


class DestinationConfig(BaseModel):
    """A Gotify alert destination with its own endpoint filtering policy.

    ``monitor_all`` sends every endpoint's alerts here. Otherwise only
    endpoints named in ``monitored_endpoints`` are covered; an empty list
    means the destination receives nothing.
    """

    model_config = ConfigDict(frozen=True)

    name: Annotated[
        str | None,
        Field(
            description="Display name; falls back to the base URL",
        ),
    ] = None
    base_url: Annotated[
        str,
        Field(
            description="Base URL of the Gotify server",
        ),
    ]
    token: Annotated[
        str,
        Field(
            min_length=1,
            validation_alias=AliasChoices("token", "application_token"),
            description="Gotify application token",
        ),
    ]
    priority: Annotated[
        int,
        Field(
            ge=0,
            le=10,
            description="Base priority (alerts use their own fixed priorities)",
        ),
    ] = 5
    enabled: Annotated[
        bool,
        Field(
            description="Whether alerts are delivered to this destination",
        ),
    ] = True
    monitor_all: Annotated[
        bool,
        Field(
            description="Receive alerts for every endpoint",
        ),
    ] = True
    monitored_endpoints: Annotated[
        tuple[str, ...],
        Field(
            validation_alias=AliasChoices("monitored_endpoints", "monitored_servers"),
            description="Endpoint names covered when monitor_all is false",
        ),
    ] = ()

    @field_validator("base_url", mode="after")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the destination base URL is an absolute http(s) URL."""
        return _validate_http_url(v)

    @field_validator("name", mode="after")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        """Treat blank names as absent."""
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @property
    def display_name(self) -> str:
        """Name shown in logs and delivery results."""
        return self.name or self.base_url


class LegacyGotifyConfig(BaseModel):
    """Single-destination configuration kept for older configuration files.

    An empty ``base_url`` or ``application_token`` means the section is
    unused. When used, the destination covers every endpoint.
    """

    name: str | None = None
    base_url: str = ""
    application_token: str = ""
    priority: Annotated[int, Field(ge=0, le=10)] = 5
    enabled: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url.strip() and self.application_token.strip())

    def to_destination(self) -> DestinationConfig:
        """Convert into a monitor-all destination."""
        return DestinationConfig(
            name=self.name,
            base_url=self.base_url,
            token=self.application_token,
            priority=self.priority,
            enabled=self.enabled,
            monitor_all=True,
        )


class MonitoringConfig(BaseModel):
    """Configuration for the monitoring cycle.

    Defines the probed endpoints, probe timeout, check interval and the
    alert destinations.
    """

    check_interval_seconds: Annotated[
        float,
        Field(
            gt=0,
            description="Idle time between two monitoring cycles in seconds",
        ),
    ] = 30
    timeout_seconds: Annotated[
        float,
        Field(
            gt=0,
            description="TCP connect timeout per probe in seconds",
        ),
    ] = 30
    startup_delay_seconds: Annotated[
        float,
        Field(
            ge=0,
            description="Delay before the first monitoring cycle in seconds",
        ),
    ] = 5
    servers: Annotated[
        list[EndpointConfig],
        Field(
            description="Monitored endpoints",
        ),
    ] = []
    gotify: Annotated[
        LegacyGotifyConfig | None,
        Field(
            description="Legacy single destination",
        ),
    ] = None
    gotify_destinations: Annotated[
        list[DestinationConfig],
        Field(
            description="Alert destinations",
        ),
    ] = []

    @field_validator("servers", mode="after")
    @classmethod
    def validate_unique_server_names(cls, v: list[EndpointConfig]) -> list[EndpointConfig]:
        """Validate endpoint names are unique.

        Raises:
            ValueError: If two endpoints share a name
        """
        seen: set[str] = set()
        duplicates: set[str] = set()
        for server in v:
            if server.name in seen:
                duplicates.add(server.name)
            seen.add(server.name)
        if duplicates:
            msg = f"Duplicate server name(s): {', '.join(sorted(duplicates))}"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def warn_about_unmatched_allow_lists(self) -> Self:
        """Log destinations whose allow-list matches no configured endpoint.

        Such destinations are valid; they simply receive no alerts.
        """
        for destination in self.destinations_without_matches():
            logger.warning(
                "Destination allow-list matches no configured server",
                extra={
                    "destination_name": destination.display_name,
                    "monitored_endpoints": list(destination.monitored_endpoints),
                },
            )
        return self

    @property
    def enabled_servers(self) -> list[EndpointConfig]:
        return [server for server in self.servers if server.enabled]

    def resolved_destinations(self) -> list[DestinationConfig]:
        """Return the single normalized list of enabled destinations.

        The legacy ``gotify`` section, when configured, comes first.
        """
        destinations: list[DestinationConfig] = []
        if self.gotify is not None and self.gotify.is_configured:
            destinations.append(self.gotify.to_destination())
        destinations.extend(self.gotify_destinations)
        return [destination for destination in destinations if destination.enabled]

    def destinations_without_matches(self) -> list[DestinationConfig]:
        """Return allow-list destinations that match none of the servers."""
        names = {server.name.strip().casefold() for server in self.servers}
        unmatched: list[DestinationConfig] = []
        for destination in self.gotify_destinations:
            if destination.monitor_all or not destination.monitored_endpoints:
                continue
            wanted = {entry.strip().casefold() for entry in destination.monitored_endpoints}
            if not wanted & names:
                unmatched.append(destination)
        return unmatched


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings.

    Defines operational behavior including logging level, dry-run mode
    and syslog integration.
    """

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
            description="Dry-run mode: log alerts without sending",
        ),
    ] = False
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Enable syslog integration",
        ),
    ] = False


class MainConfig(BaseModel):
    """Main application configuration schema.

    Top-level configuration container aggregating all configuration sections:
    - monitoring: Endpoints, intervals and alert destinations
    - application: Application-level settings
    """

    monitoring: Annotated[
        MonitoringConfig,
        Field(
            description="Monitoring cycle configuration",
        ),
    ]
    application: Annotated[
        ApplicationConfig,
        Field(
            description="Application-level configuration",
        ),
    ] = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails.

    Raised when a referenced environment variable is missing. The message
    names the variable but never includes any secret values.
    """


class ConfigurationError(Exception):
    """Exception raised when configuration loading or validation fails.

    This exception provides detailed, actionable error messages for configuration
    issues including file not found, YAML parsing errors, and validation failures.
    """


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Parses ${VARIABLE_NAME} syntax and replaces with environment variable values.
    Supports multiple environment variable references in a single string.

    Args:
        value: String potentially containing environment variable references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a required environment variable is missing

    Examples:
        >>> os.environ["GOTIFY_TOKEN"] = "secret_value"
        >>> resolve_env_var("${GOTIFY_TOKEN}")
        'secret_value'
        >>> resolve_env_var("no variables here")
        'no variables here'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)

        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)

        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _resolve_env_vars_in_item(item: object) -> object:
    if isinstance(item, str):
        return resolve_env_var(item)
    if isinstance(item, dict):
        # YAML data is untyped at load time; validated by Pydantic after resolution
        return resolve_env_vars_in_dict(item)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    if isinstance(item, list):
        return [_resolve_env_vars_in_item(element) for element in item]  # pyright: ignore[reportUnknownVariableType]  # YAML list items
    return item


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in a dictionary.

    Traverses nested dictionaries and lists, resolving environment variable
    references in string values. Non-string values are preserved as-is.

    Args:
        data: Dictionary potentially containing environment variable references

    Returns:
        New dictionary with environment variables resolved

    Raises:
        EnvironmentVariableError: If a required environment variable is missing

    Examples:
        >>> os.environ["SECRET"] = "my_secret"
        >>> resolve_env_vars_in_dict({"nested": {"token": "${SECRET}"}})
        {'nested': {'token': 'my_secret'}}
    """
    return {key: _resolve_env_vars_in_item(value) for key, value in data.items()}


def format_validation_error(error: ValidationError, config_path: Path) -> str:
    """Format Pydantic validation errors with field-level diagnostics."""
    error_lines = ["Configuration validation failed:", ""]
    for item in error.errors():
        field_path = " → ".join(str(loc) for loc in item["loc"])
        error_lines.append(f"  Field: {field_path}")
        error_lines.append(f"  Error: {item['msg']}")
        error_lines.append(f"  Type: {item['type']}")
        error_lines.append("")

    error_lines.append(f"Configuration file: {config_path}")
    error_lines.append("Please fix the above errors and try again.")
    return "\n".join(error_lines)


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate main application configuration from YAML file.

    Loads the configuration file, resolves environment variables, and
    validates against the MainConfig schema. Provides fail-fast validation
    with actionable error messages.

    Args:
        config_path: Path to main configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If configuration file cannot be loaded or is invalid

    Examples:
        >>> config = load_main_config(Path("config/portwatch.yaml"))
        >>> config.monitoring.check_interval_seconds
        30.0
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location.\n"
            f"See config/portwatch.example.yaml for the file format."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
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
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {config_path}\n"
            f"{e}\n"
            f"Set the required environment variable before starting the application."
        )
        raise ConfigurationError(msg) from e

    try:
        return MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        raise ConfigurationError(format_validation_error(e, config_path)) from e
