# ruff: noqa: TC001, TC002, TC003  # Annotations are evaluated at runtime
"""Rich rendering of cluster reports and errors."""

from pathlib import Path

from rich.console import Console
from rich.table import Table

from weedctl.config import ClusterConfig
from weedctl.exceptions import (
    ConfigLoadError,
    ConfigValidationError,
    PortConflictError,
    PortInUseError,
    ReadinessTimeoutError,
    WeedctlError,
)
from weedctl.supervisor import ClusterStatus, ProcessTable, StopReport

_SERVICE_LABELS = {
    "master": "Master",
    "volume": "Volume",
    "filer": "Filer",
    "s3": "S3 gateway",
    "mq": "MQ broker",
}

_URL_PATHS = {
    "master": "/",
    "volume": "/status",
    "filer": "/",
    "s3": "/",
}


def _label(name: str) -> str:
    return _SERVICE_LABELS.get(name, name)


def _data_dir_flag(run_dir: Path) -> str:
    return f"--data-dir {run_dir}"


def render_banner(
    console: Console,
    config: ClusterConfig,
    *,
    binary_version: str,
) -> None:
    """Print what is about to be started."""
    console.print()
    console.print("[bold blue]Starting SeaweedFS cluster[/bold blue]")
    console.print(f"[dim]Binary:[/dim] {config.cluster.binary} ({binary_version})")
    console.print(f"[dim]Data directory:[/dim] {config.data_dir}")
    console.print(f"[dim]Services:[/dim] {', '.join(config.enabled_services())}")
    console.print()


def render_summary(
    console: Console,
    config: ClusterConfig,
    table: ProcessTable,
    *,
    detached: bool,
) -> None:
    """Print the startup summary: processes, URLs, directories, next steps."""
    host = config.cluster.host
    run_dir = table.run_dir

    processes = Table(show_header=True, header_style="bold")
    processes.add_column("Service", style="cyan")
    processes.add_column("PID", justify="right")
    processes.add_column("Address")
    processes.add_column("Log")
    for process in table:
        name = process.service_name
        processes.add_row(
            _label(name),
            str(process.pid),
            f"{host}:{config.service_port(name)}",
            str(process.log_file),
        )

    console.print()
    console.print("[bold green]SeaweedFS cluster is ready[/bold green]")
    console.print(processes)

    urls = Table(show_header=False, box=None, padding=(0, 2))
    urls.add_column("Endpoint")
    urls.add_column("URL")
    for name in table.names():
        if name in _URL_PATHS:
            urls.add_row(
                _label(name),
                f"http://{host}:{config.service_port(name)}{_URL_PATHS[name]}",
            )
        else:
            urls.add_row(_label(name), f"{host}:{config.service_port(name)}")
        metrics = config.metrics_port(name)
        if metrics is not None:
            urls.add_row(f"  {_label(name)} metrics", f"http://{host}:{metrics}/metrics")
    console.print(urls)

    console.print()
    console.print(f"[dim]Data directory:[/dim] {run_dir}")
    for name in table.names():
        console.print(f"[dim]{_label(name)} storage:[/dim] {run_dir / name}")

    console.print()
    if detached:
        console.print("The cluster keeps running in the background.")
    else:
        console.print("Press Ctrl+C to stop the cluster.")
    console.print(f"  Status: [bold]weedctl status {_data_dir_flag(run_dir)}[/bold]")
    console.print(f"  Stop:   [bold]weedctl stop {_data_dir_flag(run_dir)}[/bold]")
    console.print()


def render_status(console: Console, status: ClusterStatus, run_dir: Path) -> None:
    """Print one row per tracked service plus the running/total line."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Service", style="cyan")
    table.add_column("State")
    table.add_column("PID", justify="right")
    table.add_column("Address")
    table.add_column("Since")

    for service in status.services:
        state = (
            "[green]running[/green]" if service.alive else "[red]not running[/red]"
        )
        table.add_row(
            _label(service.name),
            state,
            str(service.pid),
            service.address,
            service.started_at,
        )
    for name in status.missing:
        table.add_row(_label(name), "[yellow]no pid file[/yellow]", "-", "-", "-")

    console.print(f"[bold blue]SeaweedFS cluster[/bold blue] [dim]{run_dir}[/dim]")
    console.print(table)
    style = "green" if status.healthy else "red"
    console.print(
        f"[{style}]{status.running}/{status.total} services running[/{style}]"
    )


def render_stop_report(console: Console, report: StopReport, run_dir: Path) -> None:
    """Print what stop_all did."""
    if report.stopped:
        stopped = ", ".join(_label(name) for name in report.stopped)
        console.print(f"[green]Stopped:[/green] {stopped}")
    else:
        console.print("No tracked services were running.")
    for warning in report.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    if report.swept:
        pids = ", ".join(str(pid) for pid in report.swept)
        console.print(f"[yellow]Killed leftover processes:[/yellow] {pids}")
    console.print(f"[dim]Data directory kept at {run_dir}[/dim]")


def render_error(console: Console, error: WeedctlError) -> None:
    """Print an error with the context its exception carries."""
    console.print(f"[red]Error:[/red] {error}")

    match error:
        case ConfigLoadError(path=path, line=line) if path is not None:
            where = f"{path}:{line}" if line is not None else str(path)
            console.print(f"  [dim]file:[/dim] {where}")
        case ConfigValidationError():
            console.print(f"  [dim]key:[/dim] {error.key} = {error.value!r}")
            console.print(f"  [dim]expected:[/dim] {error.expected}")
            if error.source:
                console.print(f"  [dim]source:[/dim] {error.source}")
        case PortConflictError():
            console.print(f"  [dim]claimed by:[/dim] {', '.join(error.services)}")
        case PortInUseError():
            console.print(f"  [dim]address:[/dim] {error.host}:{error.port}")
        case ReadinessTimeoutError():
            console.print(
                f"  [dim]service:[/dim] {error.service_name} "
                f"({error.host}:{error.port}, {error.attempts} attempts)"
            )
            if error.log_tail:
                console.print(f"  [dim]last {len(error.log_tail)} log lines:[/dim]")
                for line in error.log_tail:
                    console.print(f"    {line}", markup=False, highlight=False)
        case _:
            pass
