# pyright: reportExplicitAny=false, reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Cluster configuration container with typed access.

This module provides ClusterConfig, the single immutable value every other
component receives. It is built once from layered sources and never mutated;
the one derived value, a resolved data directory, produces a new instance.
"""

from collections.abc import Mapping  # noqa: TC003
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, PrivateAttr

from weedctl.config._defaults import DEFAULT_CONFIG
from weedctl.config._loader import copy_value, deep_merge, parse_env_vars, read_toml_file
from weedctl.config._models._cluster import (
    ClusterSection,
    FeaturesConfig,
    LimitsConfig,
    PortsConfig,
    S3Config,
    ServicesConfig,
    TimeoutsConfig,
)
from weedctl.config._models._common import ConfigSource, ConfigSourceName
from weedctl.config._models._logging import LoggingConfig

SERVICE_ORDER: tuple[str, ...] = ("master", "volume", "filer", "s3", "mq")
"""Dependency order: every later service needs the master's address."""

_METRICS_OFFSETS: dict[str, int] = {"master": 0, "volume": 1, "filer": 2}


@dataclass(frozen=True, slots=True)
class PortBinding:
    """A port the cluster will listen on.

    Attributes:
        name: Binding label, e.g. ``master`` or ``master.grpc``.
        service: The service that owns the listener.
        port: The TCP port.
    """

    name: str
    service: str
    port: int


class ClusterConfig(BaseModel):
    """Resolved cluster configuration.

    Use factory methods to create instances rather than the constructor
    when layered sources are involved.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    cluster: ClusterSection = ClusterSection()
    ports: PortsConfig = PortsConfig()
    services: ServicesConfig = ServicesConfig()
    limits: LimitsConfig = LimitsConfig()
    features: FeaturesConfig = FeaturesConfig()
    timeouts: TimeoutsConfig = TimeoutsConfig()
    s3: S3Config = S3Config()
    logging: LoggingConfig = LoggingConfig()

    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        validate: bool = True,
        source: str | None = None,
    ) -> Self:
        """Create configuration from a dictionary.

        Args:
            data: Dictionary of configuration values. Missing keys take
                their defaults.
            validate: Whether to validate values and port assignments.
            source: Source label attached to validation errors.

        Returns:
            Configuration object from the dictionary.

        Raises:
            ConfigValidationError: If a value, or a port derived from one, is
                invalid.
            PortConflictError: If two enabled listeners share a port.
        """
        # Deferred import to avoid circular dependency
        from weedctl.config._validation import (  # noqa: PLC0415
            check_derived_ports,
            check_port_conflicts,
            raise_if_validation_errors,
            validate_config,
        )

        merged = deep_merge(DEFAULT_CONFIG, data)

        if validate:
            raise_if_validation_errors(validate_config(merged), source=source)

        config = cls.model_validate(merged)

        if validate:
            check_derived_ports(config, source=source)
            check_port_conflicts(config)

        return config

    @classmethod
    def from_file(cls, path: Path, *, validate: bool = True) -> Self:
        """Load configuration from a single TOML file on top of defaults.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        data = read_toml_file(path)
        config = cls.from_dict(data, validate=validate, source=str(path))
        config._sources = (  # noqa: SLF001
            ConfigSource(
                name=ConfigSourceName.FILE,
                path=path,
                exists=True,
                values=data,
            ),
        )
        return config

    @classmethod
    def load(
        cls,
        *,
        config_path: Path | None = None,
        cwd: Path | None = None,
        include_env: bool = True,
        environ: Mapping[str, str] | None = None,
        cli_overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Sources merge lowest to highest precedence:
        defaults -> user -> project -> file -> env -> cli.

        Args:
            config_path: Explicit config file (``--config``). Must exist.
            cwd: Directory searched for a project ``weedctl.toml``.
            include_env: Include environment variables as a source.
            environ: Environment mapping. Defaults to ``os.environ``.
            cli_overrides: Nested dictionary of command-line overrides.

        Returns:
            Merged configuration object.

        Raises:
            ConfigLoadError: If a config file cannot be read or parsed.
            ConfigValidationError: If the merged config fails validation.
            PortConflictError: If two enabled listeners share a port.
        """
        # Deferred imports to avoid circular dependency
        from weedctl.config._discovery import discover_sources  # noqa: PLC0415

        sources = discover_sources(
            config_path=config_path,
            cwd=cwd,
            include_env=include_env,
            environ=environ,
            cli_overrides=cli_overrides,
        )

        merged: dict[str, Any] = {}
        loaded_sources: list[ConfigSource] = []

        for source in reversed(sources):
            values: dict[str, Any] = {}

            if source.name in (ConfigSourceName.DEFAULT, ConfigSourceName.CLI):
                values = source.values
            elif source.name == ConfigSourceName.ENV:
                values = parse_env_vars(environ)
            elif source.path and source.exists:
                values = read_toml_file(source.path)

            loaded_sources.append(
                ConfigSource(
                    name=source.name,
                    path=source.path,
                    exists=source.exists,
                    values=values,
                )
            )

            if values:
                merged = deep_merge(merged, values)

        config = cls.from_dict(merged)
        config._sources = tuple(reversed(loaded_sources))  # noqa: SLF001
        return config

    @property
    def sources(self) -> list[ConfigSource]:
        """Return the sources that contributed, highest precedence first."""
        return list(self._sources)

    @property
    def data_dir(self) -> Path | None:
        """Return the configured data directory, or None if unset."""
        if not self.cluster.data_dir:
            return None
        return Path(self.cluster.data_dir).expanduser()

    def with_data_dir(self, path: Path) -> Self:
        """Return a copy of this configuration pinned to ``path``."""
        cluster = self.cluster.model_copy(update={"data_dir": str(path)})
        return self.model_copy(update={"cluster": cluster})

    def with_binary(self, path: Path) -> Self:
        """Return a copy of this configuration running the binary at ``path``."""
        cluster = self.cluster.model_copy(update={"binary": str(path)})
        return self.model_copy(update={"cluster": cluster})

    def enabled_services(self) -> list[str]:
        """Return enabled service names in dependency order."""
        return [name for name in SERVICE_ORDER if getattr(self.services, name)]

    def service_port(self, name: str) -> int:
        """Return the main listener port of service ``name``."""
        return int(getattr(self.ports, name))

    def metrics_port(self, name: str) -> int | None:
        """Return the metrics port of ``name``, or None if it exposes none."""
        if not self.features.metrics or name not in _METRICS_OFFSETS:
            return None
        return self.ports.metrics + _METRICS_OFFSETS[name]

    def bindings(self) -> list[PortBinding]:
        """Return every port the enabled services will listen on."""
        result: list[PortBinding] = []
        for name in self.enabled_services():
            result.append(PortBinding(name, name, self.service_port(name)))
            if name == "master":
                result.append(
                    PortBinding("master.grpc", name, self.ports.master_grpc)
                )
            metrics = self.metrics_port(name)
            if metrics is not None:
                result.append(PortBinding(f"{name}.metrics", name, metrics))
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        return copy_value(self.model_dump(mode="json"))
