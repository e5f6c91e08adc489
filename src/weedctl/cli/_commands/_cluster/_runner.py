# ruff: noqa: TC001, TC002, TC003  # Annotations are evaluated at runtime
"""Async runners for the cluster commands.

Each runner receives the resolved configuration and returns an exit code.
``execute`` wraps them: it loads configuration, creates the command logger,
drives the runner with anyio and turns weedctl exceptions into exit codes.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

import anyio
from rich.console import Console
from structlog.typing import FilteringBoundLogger

from weedctl.cli._commands._context import CLIContext
from weedctl.cli._commands._shared import ExitCode, exit_code_for
from weedctl.config import (
    ClusterConfig,
    default_data_dir,
    find_recent_data_dir,
)
from weedctl.exceptions import ConfigurationError, LaunchError, WeedctlError
from weedctl.supervisor import ConsoleEventSink, LifecycleController, RunOutcome
from weedctl.utils import create_cli_logger, find_binary, get_binary_version

from ._options import ClusterOptions
from ._report import (
    render_banner,
    render_error,
    render_status,
    render_stop_report,
    render_summary,
)


@dataclass(frozen=True, slots=True)
class CommandEnv:
    """Consoles and logger handed to a runner."""

    console: Console
    error_console: Console
    logger: FilteringBoundLogger


Runner = Callable[[ClusterConfig, CommandEnv], Awaitable[ExitCode]]


def load_config(options: ClusterOptions) -> ClusterConfig:
    """Resolve the layered configuration for one command invocation.

    Raises:
        ConfigurationError: If a source cannot be read or fails validation.
    """
    return ClusterConfig.load(
        config_path=options.config,
        cli_overrides=options.to_overrides(),
    )


def execute(command: str, options: ClusterOptions, runner: Runner) -> ExitCode:
    """Run ``runner`` for ``command`` and return its exit code."""
    ctx = CLIContext.get_current()

    try:
        config = load_config(options)
    except ConfigurationError as e:
        render_error(ctx.error_console, e)
        return exit_code_for(e)

    logger = create_cli_logger(
        level=config.logging.level.value,
        log_format=config.logging.format.value,  # pyright: ignore[reportArgumentType]
        log_file=config.logging.file,
        command=command,
    )
    logger.info(
        "command_started",
        sources=[source.name.value for source in config.sources],
        data_dir=config.cluster.data_dir or None,
    )

    env = CommandEnv(
        console=ctx.console,
        error_console=ctx.error_console,
        logger=logger,
    )
    try:
        code = anyio.run(runner, config, env)
    except WeedctlError as e:
        logger.error("command_failed", error=str(e), error_type=type(e).__name__)
        render_error(ctx.error_console, e)
        return exit_code_for(e)

    logger.info("command_finished", exit_code=int(code))
    return code


def _fresh_run_dir() -> Path:
    try:
        return default_data_dir()
    except OSError as e:
        msg = f"Cannot create a data directory: {e}"
        raise LaunchError(msg, service_name="cluster", cause=e) from e


def _existing_run_dir(config: ClusterConfig) -> Path | None:
    """Return the configured data directory, else the newest one in use."""
    return config.data_dir or find_recent_data_dir()


def _controller(
    config: ClusterConfig,
    env: CommandEnv,
    run_dir: Path,
) -> LifecycleController:
    return LifecycleController.from_config(
        config.with_data_dir(run_dir),
        sink=ConsoleEventSink(env.error_console),
        logger=env.logger,
    )


async def _run_cluster(
    config: ClusterConfig,
    env: CommandEnv,
    run_dir: Path | None,
    *,
    restart: bool,
) -> ExitCode:
    binary = find_binary(config.cluster.binary)
    version = await anyio.to_thread.run_sync(get_binary_version, binary)
    if run_dir is None:
        run_dir = _fresh_run_dir()
    config = config.with_binary(binary).with_data_dir(run_dir)
    env.logger.info("binary_resolved", binary=str(binary), version=version)

    detach = config.features.detach
    controller = _controller(config, env, run_dir)
    render_banner(env.console, config, binary_version=version)

    def on_ready() -> None:
        render_summary(env.console, config, controller.table, detached=detach)

    outcome = await controller.run(detach=detach, restart=restart, on_ready=on_ready)

    match outcome:
        case RunOutcome.INTERRUPTED:
            env.error_console.print(
                "[yellow]Interrupted before the cluster became ready[/yellow]"
            )
            return ExitCode.INTERRUPTED
        case RunOutcome.STOPPED:
            env.console.print("[green]Cluster stopped[/green]")
        case RunOutcome.DETACHED:
            pass
    return ExitCode.SUCCESS


async def run_start(config: ClusterConfig, env: CommandEnv) -> ExitCode:
    """Start the cluster in a fresh data directory unless one is configured."""
    return await _run_cluster(config, env, config.data_dir, restart=False)


async def run_restart(config: ClusterConfig, env: CommandEnv) -> ExitCode:
    """Stop the cluster recorded in the data directory, then start it again."""
    return await _run_cluster(config, env, _existing_run_dir(config), restart=True)


async def run_stop(config: ClusterConfig, env: CommandEnv) -> ExitCode:
    """Stop the cluster recorded in the data directory."""
    run_dir = _existing_run_dir(config)
    if run_dir is None:
        env.console.print("No running cluster found.")
        return ExitCode.SUCCESS

    controller = _controller(config, env, run_dir)
    _ = controller.attach()
    report = await controller.stop_all()
    render_stop_report(env.console, report, run_dir)
    return ExitCode.SUCCESS


async def run_status(config: ClusterConfig, env: CommandEnv) -> ExitCode:
    """Report liveness of the cluster recorded in the data directory."""
    run_dir = _existing_run_dir(config)
    if run_dir is None:
        env.console.print("No running cluster found.")
        return ExitCode.NOT_RUNNING

    controller = _controller(config, env, run_dir)
    status = await controller.status()
    if status.total == 0:
        env.console.print(f"Nothing is recorded as running in {run_dir}.")
        return ExitCode.NOT_RUNNING

    render_status(env.console, status, run_dir)
    return ExitCode.SUCCESS if status.healthy else ExitCode.SERVICES_DOWN
