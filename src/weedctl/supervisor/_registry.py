"""Component registry: ServiceSpecs built from ClusterConfig.

Each service has a frozen options dataclass that renders its argument list.
Arguments are composed as a list of ``-flag=value`` items and handed to the
process API directly, so no value is ever re-parsed by a shell.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from weedctl.config import SERVICE_ORDER, ClusterConfig

from ._models import ProbeKind, ProbeSpec, ServiceSpec


def _flag(name: str, value: object) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return f"-{name}={value}"


def _metrics_flags(port: int | None, address: str) -> list[str]:
    if port is None:
        return []
    return [_flag("metricsPort", port), _flag("metricsAddress", address)]


@dataclass(frozen=True, slots=True)
class MasterOptions:
    """Flags for ``weed master``."""

    subcommand: ClassVar[str] = "master"

    port: int
    mdir: Path
    ip: str
    bind: str
    volume_size_limit_mb: int
    raft: bool = True
    metrics_port: int | None = None
    election_timeout: str = "1s"
    default_replication: str = "000"

    def flags(self) -> list[str]:
        """Render the flag list."""
        args = [_flag("port", self.port), _flag("mdir", self.mdir)]
        if self.raft:
            args.append("-raftHashicorp")
        args += [
            _flag("electionTimeout", self.election_timeout),
            _flag("volumeSizeLimitMB", self.volume_size_limit_mb),
            _flag("ip", self.ip),
            _flag("ip.bind", self.bind),
            *_metrics_flags(self.metrics_port, self.ip),
            _flag("defaultReplication", self.default_replication),
        ]
        return args


@dataclass(frozen=True, slots=True)
class VolumeOptions:
    """Flags for ``weed volume``."""

    subcommand: ClassVar[str] = "volume"

    port: int
    directory: Path
    max_volumes: int
    mserver: str
    ip: str
    bind: str
    metrics_port: int | None = None
    pre_stop_seconds: int = 1

    def flags(self) -> list[str]:
        """Render the flag list."""
        return [
            _flag("port", self.port),
            _flag("dir", self.directory),
            _flag("max", self.max_volumes),
            _flag("mserver", self.mserver),
            _flag("preStopSeconds", self.pre_stop_seconds),
            _flag("ip", self.ip),
            _flag("ip.bind", self.bind),
            *_metrics_flags(self.metrics_port, self.ip),
        ]


@dataclass(frozen=True, slots=True)
class FilerOptions:
    """Flags for ``weed filer``."""

    subcommand: ClassVar[str] = "filer"

    port: int
    default_store_dir: Path
    master: str
    max_mb: int
    ip: str
    bind: str
    metrics_port: int | None = None

    def flags(self) -> list[str]:
        """Render the flag list."""
        return [
            _flag("port", self.port),
            _flag("defaultStoreDir", self.default_store_dir),
            _flag("master", self.master),
            _flag("maxMB", self.max_mb),
            _flag("ip", self.ip),
            _flag("ip.bind", self.bind),
            *_metrics_flags(self.metrics_port, self.ip),
        ]


@dataclass(frozen=True, slots=True)
class S3Options:
    """Flags for ``weed s3``."""

    subcommand: ClassVar[str] = "s3"

    port: int
    filer: str
    bind: str
    config_file: Path | None = None
    allow_empty_folder: bool = False
    allow_delete_bucket_not_empty: bool = True

    def flags(self) -> list[str]:
        """Render the flag list. ``-config`` is only passed for existing files."""
        args = [
            _flag("port", self.port),
            _flag("filer", self.filer),
            _flag("allowEmptyFolder", self.allow_empty_folder),
            _flag("allowDeleteBucketNotEmpty", self.allow_delete_bucket_not_empty),
        ]
        if self.config_file is not None and self.config_file.is_file():
            args.append(_flag("config", self.config_file))
        args.append(_flag("ip.bind", self.bind))
        return args


@dataclass(frozen=True, slots=True)
class MQBrokerOptions:
    """Flags for ``weed mq.broker``."""

    subcommand: ClassVar[str] = "mq.broker"

    port: int
    master: str
    ip: str
    log_flush_interval: int = 0

    def flags(self) -> list[str]:
        """Render the flag list."""
        return [
            _flag("port", self.port),
            _flag("master", self.master),
            _flag("ip", self.ip),
            _flag("logFlushInterval", self.log_flush_interval),
        ]


ServiceOptions = MasterOptions | VolumeOptions | FilerOptions | S3Options | MQBrokerOptions


def build_command(
    binary: str,
    verbosity: int,
    options: ServiceOptions,
) -> tuple[str, ...]:
    """Compose ``binary -v=N <subcommand> <flags...>``."""
    return (binary, _flag("v", verbosity), options.subcommand, *options.flags())


def build_options(config: ClusterConfig, name: str, run_dir: Path) -> ServiceOptions:
    """Build the options struct for service ``name``."""
    host = config.cluster.host
    bind = config.cluster.bind
    ports = config.ports
    master_address = f"{host}:{ports.master}"

    match name:
        case "master":
            return MasterOptions(
                port=ports.master,
                mdir=run_dir / "master",
                ip=host,
                bind=bind,
                volume_size_limit_mb=config.limits.volume_size_limit_mb,
                raft=config.features.raft,
                metrics_port=config.metrics_port("master"),
            )
        case "volume":
            return VolumeOptions(
                port=ports.volume,
                directory=run_dir / "volume",
                max_volumes=config.limits.volume_max,
                mserver=master_address,
                ip=host,
                bind=bind,
                metrics_port=config.metrics_port("volume"),
            )
        case "filer":
            return FilerOptions(
                port=ports.filer,
                default_store_dir=run_dir / "filer",
                master=master_address,
                max_mb=config.limits.filer_max_mb,
                ip=host,
                bind=bind,
                metrics_port=config.metrics_port("filer"),
            )
        case "s3":
            config_file = config.s3.config_file
            return S3Options(
                port=ports.s3,
                filer=f"{host}:{ports.filer}",
                bind=bind,
                config_file=Path(config_file).expanduser() if config_file else None,
            )
        case "mq":
            return MQBrokerOptions(port=ports.mq, master=master_address, ip=host)
        case _:
            msg = f"Unknown service: {name}"
            raise ValueError(msg)


def _probes(config: ClusterConfig, name: str) -> tuple[ProbeSpec, ...]:
    timeouts = config.timeouts
    max_attempts = max(1, math.ceil(timeouts.startup / timeouts.poll_interval))
    host = config.cluster.host
    port = config.service_port(name)

    def probe(kind: ProbeKind, probe_port: int) -> ProbeSpec:
        return ProbeSpec(
            kind=kind,
            host=host,
            port=probe_port,
            path="/" if kind is ProbeKind.HTTP else None,
            fallback_path="/status" if kind is ProbeKind.HTTP else None,
            poll_interval=timeouts.poll_interval,
            max_attempts=max_attempts,
        )

    if name == "master":
        return (
            probe(ProbeKind.HTTP, port),
            probe(ProbeKind.GRPC, config.ports.master_grpc),
        )
    if name == "mq":
        return (probe(ProbeKind.TCP, port),)
    return (probe(ProbeKind.HTTP, port),)


def build_spec(config: ClusterConfig, name: str, run_dir: Path) -> ServiceSpec:
    """Build the ServiceSpec of one service."""
    options = build_options(config, name, run_dir)
    host = config.cluster.host
    port = config.service_port(name)
    metrics_port = config.metrics_port(name)
    work_dir = run_dir / name

    return ServiceSpec(
        name=name,
        enabled=name in config.enabled_services(),
        command=build_command(config.cluster.binary, config.cluster.verbosity, options),
        run_dir=run_dir,
        work_dir=work_dir,
        probes=_probes(config, name),
        address=f"{host}:{port}",
        metrics_url=(
            f"http://{host}:{metrics_port}/metrics" if metrics_port is not None else None
        ),
        settle_delay=config.timeouts.mq_settle if name == "mq" else 0.0,
        subcommand=options.subcommand,
        sweep_markers=(str(work_dir), _flag("port", port)),
    )


def build_registry(config: ClusterConfig, run_dir: Path | None = None) -> list[ServiceSpec]:
    """Build a ServiceSpec for every known service, in dependency order.

    Disabled services are included with ``enabled=False`` so that stop and
    status can still recognise their leftovers.

    Args:
        config: Resolved configuration.
        run_dir: Data directory. Defaults to ``config.data_dir``.

    Raises:
        ValueError: If neither ``run_dir`` nor ``config.data_dir`` is set.
    """
    directory = run_dir or config.data_dir
    if directory is None:
        msg = "A data directory is required to build the registry"
        raise ValueError(msg)

    return [build_spec(config, name, directory) for name in SERVICE_ORDER]
