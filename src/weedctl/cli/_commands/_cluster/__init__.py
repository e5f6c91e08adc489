"""Cluster commands: start, stop, status and restart."""

from typing import Annotated

from cyclopts import Parameter

from ._options import DEFAULT_OPTIONS, ClusterOptions

__all__ = ["ClusterOptions", "restart", "start", "status", "stop"]

Options = Annotated[ClusterOptions, Parameter(name="*")]


def start(options: Options = DEFAULT_OPTIONS) -> None:
    """Start a local SeaweedFS cluster.

    Launches master, volume and filer (plus S3 and MQ broker when enabled)
    one at a time, waiting for each to become reachable. Blocks until
    Ctrl+C unless --detach is given.
    """
    from ._runner import execute, run_start

    raise SystemExit(execute("start", options, run_start))


def stop(options: Options = DEFAULT_OPTIONS) -> None:
    """Stop the cluster recorded in the data directory."""
    from ._runner import execute, run_stop

    raise SystemExit(execute("stop", options, run_stop))


def status(options: Options = DEFAULT_OPTIONS) -> None:
    """Show which services of the cluster are running.

    Exits 0 if every service is alive, 1 if some are down and 5 if nothing
    is recorded as running.
    """
    from ._runner import execute, run_status

    raise SystemExit(execute("status", options, run_status))


def restart(options: Options = DEFAULT_OPTIONS) -> None:
    """Stop the cluster, wait for its ports to be released, start it again."""
    from ._runner import execute, run_restart

    raise SystemExit(execute("restart", options, run_restart))
