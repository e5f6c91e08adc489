"""Data models for the cluster supervisor.

This module defines the core data types for cluster lifecycle management:
- ServiceState: Lifecycle states for managed services
- ProbeKind / ProbeSpec: Readiness probe description
- ServiceSpec: Immutable launch description of one service
- RunningProcess: Runtime handle of a launched service
- ServiceEvent: Immutable event records
- ProbeResult, StopReport, ServiceStatus, ClusterStatus: operation results
"""

import subprocess  # noqa: TC003 - Used in runtime type annotations
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import IO, Literal

from weedctl.exceptions import SupervisorWarning  # noqa: TC001

EventLevel = Literal["debug", "info", "warning", "error"]

# Upper bound for a single probe attempt regardless of the poll interval.
MAX_ATTEMPT_TIMEOUT = 2.0


class ServiceState(StrEnum):
    """Service lifecycle states.

    - NOT_STARTED: Known to the registry, never launched
    - STARTING: Launched, readiness probe in progress
    - READY: Readiness probe succeeded
    - STOPPING: Termination signal sent
    - STOPPED: Confirmed stopped and removed from the process table
    - FAILED: Launch failed or the readiness probe never succeeded
    - CRASHED: Was ready, but status found the process gone
    """

    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"
    CRASHED = "crashed"


class ProbeKind(StrEnum):
    """Readiness probe protocol. gRPC endpoints are probed as plain TCP."""

    TCP = "tcp"
    HTTP = "http"
    GRPC = "grpc"


@dataclass(frozen=True, slots=True)
class ProbeSpec:
    """Readiness probe description.

    Attributes:
        kind: Probe protocol.
        host: Host to connect to.
        port: Port to connect to.
        path: HTTP path tried first (HTTP probes only).
        fallback_path: HTTP path tried when ``path`` gets no response.
        poll_interval: Seconds between attempts.
        max_attempts: Attempts before giving up.
    """

    kind: ProbeKind
    host: str
    port: int
    path: str | None = None
    fallback_path: str | None = "/status"
    poll_interval: float = 2.0
    max_attempts: int = 30

    @property
    def deadline(self) -> float:
        """Hard upper bound on the time the probe may take."""
        return self.max_attempts * self.poll_interval

    @property
    def attempt_timeout(self) -> float:
        """Time budget for one connection attempt."""
        return min(self.poll_interval, MAX_ATTEMPT_TIMEOUT)

    @property
    def target(self) -> str:
        """Return ``host:port``."""
        return f"{self.host}:{self.port}"

    def paths(self) -> list[str]:
        """Return the HTTP paths to try, in order."""
        candidates = [self.path or "/", self.fallback_path]
        return list(dict.fromkeys(p for p in candidates if p))


@dataclass(frozen=True, slots=True)
class ServiceSpec:
    """Static description of one service.

    Immutable after construction. Built by the registry from ClusterConfig.

    Attributes:
        name: Unique service name, also the file stem for PID and log files.
        enabled: Whether start_all launches it.
        command: Binary followed by the complete argument list.
        run_dir: The cluster data directory that holds PID and log files.
        work_dir: The service's own storage directory.
        probes: Readiness probes, checked in order after launch.
        address: Externally reachable ``host:port``.
        metrics_url: Prometheus endpoint, if metrics are enabled.
        settle_delay: Pause after readiness before the next launch.
        subcommand: The weed subcommand, used to recognise leftovers.
        sweep_markers: Argument fragments identifying this cluster's process.
    """

    name: str
    enabled: bool
    command: tuple[str, ...]
    run_dir: Path
    work_dir: Path
    probes: tuple[ProbeSpec, ...] = ()
    address: str = ""
    metrics_url: str | None = None
    settle_delay: float = 0.0
    subcommand: str = ""
    sweep_markers: tuple[str, ...] = ()

    @property
    def log_file(self) -> Path:
        """Return ``<run_dir>/<name>.log``."""
        return self.run_dir / f"{self.name}.log"

    @property
    def pid_file(self) -> Path:
        """Return ``<run_dir>/<name>.pid``."""
        return self.run_dir / f"{self.name}.pid"

    @property
    def binary(self) -> str:
        """Return the executable the service runs."""
        return self.command[0]


@dataclass(slots=True)
class RunningProcess:
    """Runtime handle of a launched service.

    Owned by the process table. ``popen`` and ``log_handle`` are only set
    in the invocation that launched the process; entries rebuilt from PID
    files carry just the PID.

    Attributes:
        service_name: Name of the service (back-reference).
        pid: Operating system process ID.
        started_at: ISO 8601 timestamp of the launch, or of the PID file.
        log_file: Path of the service's log file.
        log_handle: Open append handle the child writes to.
        popen: Child process handle.
    """

    service_name: str
    pid: int
    started_at: str
    log_file: Path
    log_handle: IO[bytes] | None = None
    popen: subprocess.Popen[bytes] | None = None

    def close(self) -> None:
        """Release the log handle held by this process entry."""
        if self.log_handle is not None and not self.log_handle.closed:
            self.log_handle.close()
        self.log_handle = None


@dataclass(frozen=True, slots=True)
class ServiceEvent:
    """Immutable service lifecycle event.

    Emitted on every state transition and written to EventSinks.

    Attributes:
        service_name: Name of the service that generated the event.
        state: State the service transitioned into.
        level: Severity tag.
        timestamp: ISO 8601 formatted timestamp.
        pid: Process ID if applicable.
        message: Optional human-readable message.
    """

    service_name: str
    state: ServiceState
    level: EventLevel
    timestamp: str
    pid: int | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of a readiness probe.

    Attributes:
        ready: Whether any attempt succeeded.
        attempts: Attempts made, including the successful one.
        elapsed: Seconds spent probing.
    """

    ready: bool
    attempts: int
    elapsed: float


@dataclass(slots=True)
class StopReport:
    """Accumulated outcome of a stop_all pass.

    Attributes:
        stopped: Services removed from the table, in stop order.
        warnings: Non-fatal conditions met along the way.
        swept: PIDs killed by the catch-all sweep.
    """

    stopped: list[str] = field(default_factory=list)
    warnings: list[SupervisorWarning] = field(default_factory=list)
    swept: list[int] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ServiceStatus:
    """Point-in-time status of one tracked service.

    Attributes:
        name: Service name.
        pid: Recorded process ID.
        alive: Whether the PID refers to a live, non-zombie process.
        address: Externally reachable ``host:port``, empty if unknown.
        started_at: ISO 8601 timestamp of the launch or PID file.
        log_file: Path of the service's log file.
    """

    name: str
    pid: int
    alive: bool
    address: str
    started_at: str
    log_file: Path

    @property
    def state(self) -> ServiceState:
        """READY if alive, CRASHED otherwise."""
        return ServiceState.READY if self.alive else ServiceState.CRASHED


@dataclass(frozen=True, slots=True)
class ClusterStatus:
    """Status of every tracked service.

    Attributes:
        services: One entry per PID file, in dependency order.
        missing: Enabled services that have no PID file.
    """

    services: tuple[ServiceStatus, ...] = ()
    missing: tuple[str, ...] = ()

    @property
    def running(self) -> int:
        """Number of live services."""
        return sum(1 for s in self.services if s.alive)

    @property
    def total(self) -> int:
        """Number of services recorded as running."""
        return len(self.services)

    @property
    def healthy(self) -> bool:
        """True if something is tracked, all of it alive, nothing missing."""
        return self.total > 0 and self.running == self.total and not self.missing
