"""Configuration models.

This module provides Pydantic models for weedctl configuration sections
and the main ClusterConfig container class.
"""

from weedctl.config._models._cluster import (
    ClusterSection,
    FeaturesConfig,
    LimitsConfig,
    PortsConfig,
    S3Config,
    ServicesConfig,
    TimeoutsConfig,
)
from weedctl.config._models._common import (
    ConfigSource,
    ConfigSourceName,
    LogFormat,
    LogLevel,
    Port,
    Seconds,
)
from weedctl.config._models._config import SERVICE_ORDER, ClusterConfig, PortBinding
from weedctl.config._models._logging import LoggingConfig

__all__ = [
    "SERVICE_ORDER",
    "ClusterConfig",
    "ClusterSection",
    "ConfigSource",
    "ConfigSourceName",
    "FeaturesConfig",
    "LimitsConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "Port",
    "PortBinding",
    "PortsConfig",
    "S3Config",
    "Seconds",
    "ServicesConfig",
    "TimeoutsConfig",
]
