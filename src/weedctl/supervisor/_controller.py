"""Lifecycle controller for a local SeaweedFS cluster.

This module provides the LifecycleController, which starts services one at
a time in dependency order, blocks on each service's readiness probes before
launching the next, and tears everything down in reverse order.

Startup is fail-fast: any failure rolls back what was started. Shutdown is
best-effort: problems are accumulated as warnings and never stop the
remaining services from being stopped.
"""

import signal
from collections.abc import Awaitable, Callable, Sequence  # noqa: TC003
from enum import StrEnum
from pathlib import Path  # noqa: TC003
from typing import Self, final

import anyio
from structlog.typing import FilteringBoundLogger  # noqa: TC002

from weedctl.config import ClusterConfig, PortBinding  # noqa: TC001
from weedctl.exceptions import (
    LaunchError,
    ReadinessTimeoutError,
    ShutdownWarning,
    StaleProcessWarning,
    SupervisorWarning,
    WeedctlError,
)
from weedctl.utils import create_null_logger

from ._models import (
    ClusterStatus,
    EventLevel,
    ProbeResult,
    ProbeSpec,
    RunningProcess,
    ServiceEvent,
    ServiceSpec,
    ServiceState,
    ServiceStatus,
    StopReport,
)
from ._output import NullEventSink
from ._probe import (
    check_cluster_health,
    ensure_ports_available,
    wait_for_ports_released,
    wait_until_ready,
)
from ._process import (
    find_leftovers,
    is_alive,
    kill_leftovers,
    launch,
    send_signal,
    tail_log,
    timestamp,
    wait_for_exit,
    wait_for_pids_gone,
)
from ._protocol import EventSink  # noqa: TC001
from ._registry import build_registry
from ._table import ProcessTable

ProbeFunc = Callable[[ProbeSpec], Awaitable[ProbeResult]]

DEFAULT_GRACE_PERIOD = 5.0
DEFAULT_KILL_TIMEOUT = 5.0
CLUSTER_EVENT_NAME = "cluster"


class RunOutcome(StrEnum):
    """How a ``run`` call ended.

    - DETACHED: The cluster is up and was left running
    - STOPPED: The cluster was up and has been shut down on request
    - INTERRUPTED: Shutdown was requested before the cluster became ready
    """

    DETACHED = "detached"
    STOPPED = "stopped"
    INTERRUPTED = "interrupted"


@final
class LifecycleController:
    """Drives start_all, status, stop_all and restart over a service registry.

    The controller owns one ProcessTable at a time. All operations run on a
    single task, strictly one service after another.
    """

    __slots__ = (
        "_bindings",
        "_grace_period",
        "_health_port",
        "_health_timeout",
        "_host",
        "_kill_timeout",
        "_logger",
        "_pending_warnings",
        "_probe",
        "_run_dir",
        "_shutdown_event",
        "_sink",
        "_specs",
        "_start_scope",
        "_states",
        "_sweep",
        "_table",
    )

    def __init__(  # noqa: PLR0913
        self,
        specs: Sequence[ServiceSpec],
        *,
        run_dir: Path,
        host: str = "127.0.0.1",
        bindings: Sequence[PortBinding] = (),
        grace_period: float = DEFAULT_GRACE_PERIOD,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
        health_port: int | None = None,
        health_timeout: float = 30.0,
        sink: EventSink | None = None,
        logger: FilteringBoundLogger | None = None,
        probe: ProbeFunc = wait_until_ready,
        sweep: bool = True,
    ) -> None:
        """Initialize the controller.

        Args:
            specs: Every known service, in dependency order. Disabled ones
                are never launched but are still recognised by the sweep.
            run_dir: Data directory holding PID and log files.
            host: Host the port preflight and reap confirmation check.
            bindings: Ports the cluster listens on.
            grace_period: Seconds a process may take to honour SIGTERM.
            kill_timeout: Seconds to wait for exit after SIGKILL.
            health_port: Master port for the post-start cluster health
                check. None skips the check.
            health_timeout: Timeout of the cluster health request.
            sink: Receives every state transition.
            logger: Structured logger.
            probe: Readiness probe implementation.
            sweep: Kill leftover processes of this cluster after stop_all.
        """
        self._specs: dict[str, ServiceSpec] = {spec.name: spec for spec in specs}
        self._run_dir = run_dir
        self._host = host
        self._bindings = tuple(bindings)
        self._grace_period = grace_period
        self._kill_timeout = kill_timeout
        self._health_port = health_port
        self._health_timeout = health_timeout
        self._sink: EventSink = sink or NullEventSink()
        self._logger: FilteringBoundLogger = logger or create_null_logger()
        self._probe = probe
        self._sweep = sweep
        self._table = ProcessTable(run_dir)
        self._states: dict[str, ServiceState] = {
            spec.name: ServiceState.NOT_STARTED for spec in specs
        }
        self._pending_warnings: list[SupervisorWarning] = []
        self._shutdown_event: anyio.Event | None = None
        self._start_scope: anyio.CancelScope | None = None

    @classmethod
    def from_config(
        cls,
        config: ClusterConfig,
        *,
        run_dir: Path | None = None,
        sink: EventSink | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> Self:
        """Build a controller for the cluster ``config`` describes.

        Raises:
            ValueError: If no data directory is configured or given.
        """
        specs = build_registry(config, run_dir)
        directory = specs[0].run_dir
        return cls(
            specs,
            run_dir=directory,
            host=config.cluster.host,
            bindings=config.bindings(),
            grace_period=config.timeouts.grace_period,
            kill_timeout=config.timeouts.kill_timeout,
            health_port=config.ports.master if config.services.master else None,
            health_timeout=config.timeouts.health_check,
            sink=sink,
            logger=logger,
        )

    @property
    def run_dir(self) -> Path:
        """Return the data directory."""
        return self._run_dir

    @property
    def table(self) -> ProcessTable:
        """Return the current process table."""
        return self._table

    @property
    def specs(self) -> list[ServiceSpec]:
        """Return every known service spec, in dependency order."""
        return list(self._specs.values())

    @property
    def states(self) -> dict[str, ServiceState]:
        """Return a snapshot of every service's lifecycle state."""
        return dict(self._states)

    def enabled_specs(self) -> list[ServiceSpec]:
        """Return the specs start_all launches, in dependency order."""
        return [spec for spec in self._specs.values() if spec.enabled]

    async def _transition(
        self,
        name: str,
        state: ServiceState,
        *,
        pid: int | None = None,
        message: str | None = None,
        level: EventLevel = "info",
    ) -> None:
        """Record a state change, log it and write it to the sink."""
        if name in self._states:
            self._states[name] = state
        event = ServiceEvent(
            service_name=name,
            state=state,
            level=level,
            timestamp=timestamp(),
            pid=pid,
            message=message,
        )
        log = getattr(self._logger, level)
        log(f"service_{state.value}", service=name, pid=pid, detail=message)
        try:
            await self._sink.write_event(event)
        except Exception as e:  # noqa: BLE001
            # A broken sink must not break the lifecycle
            self._logger.warning("event_sink_failed", error=str(e))

    async def _warn(self, report: StopReport, warning: SupervisorWarning) -> None:
        report.warnings.append(warning)
        await self._transition(
            warning.service_name,
            ServiceState.STOPPED,
            pid=warning.pid,
            message=str(warning),
            level="warning",
        )

    # -------------------------------------------------------------------------
    # start
    # -------------------------------------------------------------------------

    async def start_all(self) -> ProcessTable:
        """Launch every enabled service in dependency order.

        Each service must pass all of its readiness probes before the next
        one is launched. On any failure, including cancellation, the
        services already launched are stopped again and the error
        propagates; later services are never attempted.

        Returns:
            The populated process table, in startup order.

        Raises:
            PortInUseError: If a needed port is busy. Nothing is launched.
            LaunchError: If a directory cannot be created or a process
                cannot be spawned.
            ReadinessTimeoutError: If a probe exhausts its attempts.
        """
        if len(self._table):
            msg = "start_all called while services are still tracked"
            raise RuntimeError(msg)

        try:
            self._run_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Cannot create data directory {self._run_dir}: {e}"
            raise LaunchError(msg, service_name=CLUSTER_EVENT_NAME, cause=e) from e

        await ensure_ports_available(self._bindings, self._host)

        self._logger.info(
            "cluster_starting",
            run_dir=str(self._run_dir),
            services=[spec.name for spec in self.enabled_specs()],
        )

        current: ServiceSpec | None = None
        try:
            for spec in self.enabled_specs():
                current = spec
                await self._start_one(spec)
        except BaseException as e:
            if current is not None:
                with anyio.CancelScope(shield=True):
                    await self._report_failure(current, e)
            with anyio.CancelScope(shield=True):
                _ = await self.stop_all()
            raise

        self._logger.info("cluster_ready", services=self._table.names())
        return self._table

    async def _start_one(self, spec: ServiceSpec) -> None:
        process = launch(spec)
        try:
            self._table.add(process)
        except OSError as e:
            msg = f"Cannot write PID file {spec.pid_file}: {e}"
            raise LaunchError(msg, service_name=spec.name, cause=e) from e

        await self._transition(
            spec.name,
            ServiceState.STARTING,
            pid=process.pid,
            message=" ".join(spec.command),
        )

        for probe in spec.probes:
            result = await self._probe(probe)
            if not result.ready:
                msg = (
                    f"{spec.name} did not become reachable on {probe.target} "
                    f"({probe.kind.value}) after {result.attempts} attempts "
                    f"in {result.elapsed:.1f}s"
                )
                if not is_alive(process):
                    msg += "; the process has exited"
                raise ReadinessTimeoutError(
                    msg,
                    service_name=spec.name,
                    host=probe.host,
                    port=probe.port,
                    attempts=result.attempts,
                    log_tail=tail_log(spec.log_file),
                )
            self._logger.debug(
                "probe_ready",
                service=spec.name,
                kind=probe.kind.value,
                target=probe.target,
                attempts=result.attempts,
                elapsed=round(result.elapsed, 3),
            )

        if spec.settle_delay > 0:
            self._logger.info(
                "service_settling", service=spec.name, delay=spec.settle_delay
            )
            await anyio.sleep(spec.settle_delay)

        await self._transition(
            spec.name,
            ServiceState.READY,
            pid=process.pid,
            message=f"listening on {spec.address}",
        )

    async def _report_failure(self, spec: ServiceSpec, error: BaseException) -> None:
        if isinstance(error, ReadinessTimeoutError):
            log_tail = error.log_tail
        else:
            log_tail = tail_log(spec.log_file)

        if isinstance(error, WeedctlError):
            message = str(error)
        else:
            message = "startup interrupted"

        entry = self._table.get(spec.name)
        await self._transition(
            spec.name,
            ServiceState.FAILED,
            pid=entry.pid if entry else None,
            message=message,
            level="error",
        )
        self._logger.error(
            "service_log_tail",
            service=spec.name,
            log_file=str(spec.log_file),
            lines=list(log_tail),
        )

    async def check_health(self) -> bool | None:
        """Ask the master for cluster health. Failure is only a warning.

        Returns:
            None if the check is skipped, otherwise whether it passed.
        """
        if self._health_port is None:
            self._logger.info("cluster_health_skipped", reason="master not started")
            return None

        healthy = await check_cluster_health(
            self._host, self._health_port, self._health_timeout
        )
        if healthy:
            self._logger.info("cluster_healthy")
        else:
            await self._transition(
                CLUSTER_EVENT_NAME,
                ServiceState.READY,
                message="could not verify cluster health",
                level="warning",
            )
        return healthy

    # -------------------------------------------------------------------------
    # stop
    # -------------------------------------------------------------------------

    def attach(self) -> list[StaleProcessWarning]:
        """Adopt the processes recorded in the data directory's PID files.

        Stale entries are dropped and their warnings are handed to the next
        stop_all report.

        Returns:
            The stale-entry warnings.
        """
        table, warnings = ProcessTable.load(self._run_dir, self._specs)
        self._table = table
        self._pending_warnings.extend(warnings)
        for warning in warnings:
            self._logger.warning(
                "stale_process",
                service=warning.service_name,
                pid=warning.pid,
                reason=warning.reason,
            )
        return warnings

    async def stop_all(self) -> StopReport:
        """Stop every tracked process in reverse startup order.

        Each live process gets SIGTERM, then up to the grace period to exit,
        then SIGKILL and up to the kill timeout. Every entry is removed from
        the table whatever the outcome. Afterwards leftover processes of
        this cluster are swept. Safe to call repeatedly and on partially
        populated tables.

        Returns:
            What was stopped, and the warnings collected on the way.
        """
        report = StopReport()
        for warning in self._pending_warnings:
            await self._warn(report, warning)
        self._pending_warnings.clear()

        handled: set[int] = set()
        for process in reversed(self._table):
            handled.add(process.pid)
            try:
                await self._stop_one(process, report)
            finally:
                _ = self._table.remove(process.service_name)
                report.stopped.append(process.service_name)

        if self._sweep:
            report.swept = await self._sweep_leftovers(handled)

        self._logger.info(
            "cluster_stopped",
            stopped=report.stopped,
            warnings=len(report.warnings),
            swept=report.swept,
        )
        return report

    async def _stop_one(self, process: RunningProcess, report: StopReport) -> None:
        name = process.service_name
        pid = process.pid

        if not is_alive(process):
            await self._warn(
                report,
                StaleProcessWarning(
                    f"{name}: process {pid} had already exited",
                    service_name=name,
                    pid=pid,
                    reason="process not running",
                ),
            )
            return

        await self._transition(name, ServiceState.STOPPING, pid=pid, message="SIGTERM")
        try:
            send_signal(process, signal.SIGTERM)
        except ProcessLookupError:
            await self._transition(name, ServiceState.STOPPED, pid=pid)
            return
        except PermissionError as e:
            await self._warn(
                report,
                ShutdownWarning(
                    f"{name}: cannot signal process {pid}: {e}",
                    service_name=name,
                    pid=pid,
                    killed=False,
                ),
            )
            return

        if await wait_for_exit(process, self._grace_period):
            await self._transition(
                name, ServiceState.STOPPED, pid=pid, message="terminated gracefully"
            )
            return

        try:
            send_signal(process, signal.SIGKILL)
        except ProcessLookupError:
            await self._transition(name, ServiceState.STOPPED, pid=pid)
            return
        except PermissionError as e:
            await self._warn(
                report,
                ShutdownWarning(
                    f"{name}: cannot kill process {pid}: {e}",
                    service_name=name,
                    pid=pid,
                    killed=False,
                ),
            )
            return

        killed = await wait_for_exit(process, self._kill_timeout)
        if killed:
            message = (
                f"{name}: process {pid} ignored SIGTERM for "
                f"{self._grace_period:g}s and was killed"
            )
        else:
            message = f"{name}: process {pid} survived SIGKILL"
        await self._warn(
            report,
            ShutdownWarning(message, service_name=name, pid=pid, killed=killed),
        )

    async def _sweep_leftovers(self, handled: set[int]) -> list[int]:
        specs = self.specs

        def sweep() -> list[int]:
            leftovers = find_leftovers(specs, exclude=handled)
            if not leftovers:
                return []
            return kill_leftovers(leftovers, self._grace_period)

        swept = await anyio.to_thread.run_sync(sweep)
        if swept:
            self._logger.warning("leftovers_killed", pids=swept)
        return swept

    # -------------------------------------------------------------------------
    # status / restart
    # -------------------------------------------------------------------------

    async def status(self) -> ClusterStatus:
        """Report liveness of every tracked service without changing anything.

        Uses the in-memory table when this controller started the cluster,
        otherwise the PID files. Services this controller saw become ready
        and that are now gone transition to CRASHED.
        """
        table = self._table if len(self._table) else ProcessTable.read(
            self._run_dir, self._specs
        )

        services: list[ServiceStatus] = []
        for process in table:
            spec = self._specs.get(process.service_name)
            alive = is_alive(process)
            services.append(
                ServiceStatus(
                    name=process.service_name,
                    pid=process.pid,
                    alive=alive,
                    address=spec.address if spec else "",
                    started_at=process.started_at,
                    log_file=process.log_file,
                )
            )
            if not alive and self._states.get(process.service_name) is ServiceState.READY:
                await self._transition(
                    process.service_name,
                    ServiceState.CRASHED,
                    pid=process.pid,
                    message="process is gone",
                    level="error",
                )

        missing = tuple(
            spec.name for spec in self.enabled_specs() if spec.name not in table
        )
        return ClusterStatus(services=tuple(services), missing=missing)

    async def restart(self) -> ProcessTable:
        """Stop everything, confirm it is gone, then start again.

        The old processes are adopted from PID files if this controller has
        none in memory. Before starting, every stopped PID must be gone and
        every cluster port released.

        Raises:
            PortInUseError: If a port is still held after the stop timeout.
        """
        if not len(self._table):
            _ = self.attach()

        old_pids = [process.pid for process in self._table]
        report = await self.stop_all()

        timeout = self._grace_period + self._kill_timeout
        remaining = await wait_for_pids_gone(old_pids + report.swept, timeout)
        if remaining:
            self._logger.warning("processes_not_reaped", pids=remaining)
        await wait_for_ports_released(self._bindings, self._host, timeout)

        self._table = ProcessTable(self._run_dir)
        self._states = dict.fromkeys(self._specs, ServiceState.NOT_STARTED)
        return await self.start_all()

    # -------------------------------------------------------------------------
    # run
    # -------------------------------------------------------------------------

    def request_shutdown(self) -> None:
        """Ask a running ``run`` call to tear the cluster down.

        During startup this interrupts start_all, which rolls back.
        """
        if self._shutdown_event is not None:
            self._shutdown_event.set()
        if self._start_scope is not None:
            self._start_scope.cancel()

    async def _watch_signals(self) -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for signum in signals:
                self._logger.warning(
                    "signal_received", signal=signal.Signals(signum).name
                )
                self.request_shutdown()

    async def run(
        self,
        *,
        detach: bool = False,
        restart: bool = False,
        handle_signals: bool = True,
        on_ready: Callable[[], None] | None = None,
    ) -> RunOutcome:
        """Start the cluster and keep it up until shutdown is requested.

        SIGINT and SIGTERM (or ``request_shutdown``) at any point, including
        mid-start, lead to exactly one teardown.

        Args:
            detach: Return as soon as the cluster is ready, leaving it
                running.
            restart: Stop the processes recorded in the data directory
                first, as ``restart`` does.
            handle_signals: Install SIGINT/SIGTERM handlers. Requires the
                main thread.
            on_ready: Called once the cluster is up and health-checked.

        Returns:
            How the run ended.

        Raises:
            WeedctlError: If startup fails. Already rolled back.
        """
        self._shutdown_event = anyio.Event()
        failure: WeedctlError | None = None
        outcome = RunOutcome.INTERRUPTED

        async with anyio.create_task_group() as tg:
            if handle_signals:
                tg.start_soon(self._watch_signals)
            try:
                with anyio.CancelScope() as scope:
                    self._start_scope = scope
                    _ = await (self.restart() if restart else self.start_all())
                    _ = await self.check_health()
                    if on_ready is not None:
                        on_ready()
                self._start_scope = None

                if not scope.cancelled_caught:
                    if detach:
                        outcome = RunOutcome.DETACHED
                    else:
                        await self._shutdown_event.wait()
                        outcome = RunOutcome.STOPPED
            except WeedctlError as e:
                failure = e
            finally:
                self._start_scope = None
                if outcome is not RunOutcome.DETACHED and len(self._table):
                    with anyio.CancelScope(shield=True):
                        _ = await self.stop_all()
                tg.cancel_scope.cancel()

        if failure is not None:
            raise failure
        return outcome
