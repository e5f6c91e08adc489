# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""Command-line options shared by the cluster commands.

Every option defaults to None so that only flags the operator actually
passed end up in the CLI configuration layer.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Annotated, Any, Literal

from cyclopts import Parameter

LogLevelChoice = Literal["debug", "info", "warning", "error"]

# Option field -> (section, key) in the configuration tree.
_CONFIG_KEYS: dict[str, tuple[str, str]] = {
    "data_dir": ("cluster", "data_dir"),
    "binary": ("cluster", "binary"),
    "verbosity": ("cluster", "verbosity"),
    "host": ("cluster", "host"),
    "bind": ("cluster", "bind"),
    "master_port": ("ports", "master"),
    "volume_port": ("ports", "volume"),
    "filer_port": ("ports", "filer"),
    "s3_port": ("ports", "s3"),
    "mq_port": ("ports", "mq"),
    "metrics_port": ("ports", "metrics"),
    "master": ("services", "master"),
    "volume": ("services", "volume"),
    "filer": ("services", "filer"),
    "s3": ("services", "s3"),
    "mq": ("services", "mq"),
    "volume_max": ("limits", "volume_max"),
    "volume_size_limit": ("limits", "volume_size_limit_mb"),
    "filer_max_mb": ("limits", "filer_max_mb"),
    "raft": ("features", "raft"),
    "metrics": ("features", "metrics"),
    "detach": ("features", "detach"),
    "startup_timeout": ("timeouts", "startup"),
    "health_timeout": ("timeouts", "health_check"),
    "s3_config": ("s3", "config_file"),
    "log_level": ("logging", "level"),
}


@dataclass(frozen=True, slots=True)
class ClusterOptions:
    """Cluster options accepted by start, stop, status and restart."""

    config: Annotated[
        Path | None,
        Parameter(help="Configuration file. Defaults to ./weedctl.toml if present."),
    ] = None
    data_dir: Annotated[
        Path | None,
        Parameter(
            name=["--data-dir", "-d"],
            help="Data directory for storage, logs and PID files.",
        ),
    ] = None
    binary: Annotated[
        str | None,
        Parameter(name=["--binary", "-b"], help="Path or name of the weed binary."),
    ] = None
    verbosity: Annotated[
        int | None, Parameter(help="weed log verbosity, 0 to 3.")
    ] = None
    host: Annotated[str | None, Parameter(help="Advertised host address.")] = None
    bind: Annotated[str | None, Parameter(help="Address services bind to.")] = None

    master_port: Annotated[int | None, Parameter(help="Master HTTP port.")] = None
    volume_port: Annotated[int | None, Parameter(help="Volume server port.")] = None
    filer_port: Annotated[int | None, Parameter(help="Filer port.")] = None
    s3_port: Annotated[int | None, Parameter(help="S3 gateway port.")] = None
    mq_port: Annotated[int | None, Parameter(help="MQ broker port.")] = None
    metrics_port: Annotated[
        int | None,
        Parameter(help="Base metrics port. Volume and filer use +1 and +2."),
    ] = None

    master: Annotated[bool | None, Parameter(help="Start the master.")] = None
    volume: Annotated[bool | None, Parameter(help="Start the volume server.")] = None
    filer: Annotated[bool | None, Parameter(help="Start the filer.")] = None
    s3: Annotated[bool | None, Parameter(help="Start the S3 gateway.")] = None
    mq: Annotated[bool | None, Parameter(help="Start the MQ broker.")] = None

    volume_max: Annotated[
        int | None, Parameter(help="Maximum number of volumes.")
    ] = None
    volume_size_limit: Annotated[
        int | None, Parameter(help="Volume size limit in MB.")
    ] = None
    filer_max_mb: Annotated[
        int | None, Parameter(help="Filer chunk size limit in MB.")
    ] = None

    raft: Annotated[bool | None, Parameter(help="Use Hashicorp raft.")] = None
    metrics: Annotated[bool | None, Parameter(help="Expose Prometheus metrics.")] = None
    detach: Annotated[
        bool | None,
        Parameter(help="Return once the cluster is ready and leave it running."),
    ] = None

    startup_timeout: Annotated[
        float | None, Parameter(help="Seconds each service may take to come up.")
    ] = None
    health_timeout: Annotated[
        float | None, Parameter(help="Timeout of the cluster health check.")
    ] = None

    s3_config: Annotated[
        str | None, Parameter(help="S3 identity configuration file.")
    ] = None
    log_level: Annotated[
        LogLevelChoice | None, Parameter(help="weedctl log level.")
    ] = None

    def to_overrides(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return the options that were set, as a nested configuration dict."""
        overrides: dict[str, dict[str, Any]] = {}  # pyright: ignore[reportExplicitAny]
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or f.name not in _CONFIG_KEYS:
                continue
            section, key = _CONFIG_KEYS[f.name]
            if isinstance(value, Path):
                value = str(value)
            overrides.setdefault(section, {})[key] = value
        return overrides


DEFAULT_OPTIONS = ClusterOptions()
