"""weedctl configuration.

This module provides the public API for cluster configuration: layered
loading, validation, and typed access.

Example:
    >>> from weedctl.config import ClusterConfig
    >>> config = ClusterConfig.load()
    >>> config.ports.master
    9333
"""

from weedctl.exceptions import (
    ConfigLoadError,
    ConfigurationError,
    ConfigValidationError,
    PortConflictError,
)

from ._defaults import (
    DATA_DIR_PREFIX,
    DEFAULT_CONFIG,
    default_data_dir,
    find_recent_data_dir,
)
from ._discovery import (
    CONFIG_ENV_VAR,
    PROJECT_CONFIG_NAME,
    discover_sources,
    get_user_config_path,
)
from ._loader import (
    LEGACY_ENV_VARS,
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    SERVICE_ORDER,
    ClusterConfig,
    ClusterSection,
    ConfigSource,
    ConfigSourceName,
    FeaturesConfig,
    LimitsConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    PortBinding,
    PortsConfig,
    S3Config,
    ServicesConfig,
    TimeoutsConfig,
)
from ._validation import (
    ValidationIssue,
    check_derived_ports,
    check_port_conflicts,
    find_port_conflicts,
    raise_if_validation_errors,
    validate_config,
)

__all__ = [
    "CONFIG_ENV_VAR",
    "DATA_DIR_PREFIX",
    "DEFAULT_CONFIG",
    "LEGACY_ENV_VARS",
    "PROJECT_CONFIG_NAME",
    "SERVICE_ORDER",
    "ClusterConfig",
    "ClusterSection",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "ConfigurationError",
    "FeaturesConfig",
    "LimitsConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "PortBinding",
    "PortConflictError",
    "PortsConfig",
    "S3Config",
    "ServicesConfig",
    "TimeoutsConfig",
    "ValidationIssue",
    "check_derived_ports",
    "check_port_conflicts",
    "deep_merge",
    "default_data_dir",
    "discover_sources",
    "find_port_conflicts",
    "find_recent_data_dir",
    "get_user_config_path",
    "parse_env_vars",
    "parse_string_value",
    "raise_if_validation_errors",
    "read_toml_file",
    "set_nested_key",
]
