"""Supervisor package for local SeaweedFS clusters.

This package starts the cluster's services one at a time in dependency
order, waits for each to become reachable, tracks them in a process table
persisted as PID files, and tears them down in reverse order.

Key Components:
    - ServiceSpec: Immutable launch description of one service
    - ProbeSpec: Readiness probe description
    - ProcessTable: Ordered table of running services
    - EventSink: Protocol for consuming lifecycle events
    - ConsoleEventSink: Console rendering of lifecycle events
    - build_registry: ServiceSpecs from ClusterConfig
    - LifecycleController: start_all, status, stop_all, restart and run

Example:
    >>> from weedctl.config import ClusterConfig
    >>> from weedctl.supervisor import LifecycleController
    >>> config = ClusterConfig.load(cli_overrides={"cluster": {"data_dir": "/tmp/x"}})
    >>> controller = LifecycleController.from_config(config)
    >>> await controller.run()  # Blocks until SIGINT or SIGTERM
"""

from ._controller import LifecycleController, RunOutcome
from ._models import (
    ClusterStatus,
    ProbeKind,
    ProbeResult,
    ProbeSpec,
    RunningProcess,
    ServiceEvent,
    ServiceSpec,
    ServiceState,
    ServiceStatus,
    StopReport,
)
from ._output import ConsoleEventSink, NullEventSink
from ._probe import (
    check_cluster_health,
    ensure_ports_available,
    tcp_reachable,
    wait_for_ports_released,
    wait_until_ready,
)
from ._process import cmdline_matches, launch, pid_alive, tail_log
from ._protocol import EventSink
from ._registry import build_command, build_options, build_registry, build_spec
from ._table import ProcessTable, read_pid_file

__all__ = [
    "ClusterStatus",
    "ConsoleEventSink",
    "EventSink",
    "LifecycleController",
    "NullEventSink",
    "ProbeKind",
    "ProbeResult",
    "ProbeSpec",
    "ProcessTable",
    "RunOutcome",
    "RunningProcess",
    "ServiceEvent",
    "ServiceSpec",
    "ServiceState",
    "ServiceStatus",
    "StopReport",
    "build_command",
    "build_options",
    "build_registry",
    "build_spec",
    "check_cluster_health",
    "cmdline_matches",
    "ensure_ports_available",
    "launch",
    "pid_alive",
    "read_pid_file",
    "tail_log",
    "tcp_reachable",
    "wait_for_ports_released",
    "wait_until_ready",
]
