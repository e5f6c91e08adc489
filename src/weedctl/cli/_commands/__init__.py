"""weedctl CLI commands."""
# pyright: reportUnusedCallResult=false

from cyclopts import App

from ._cluster import restart, start, status, stop
from ._context import CLIContext
from ._shared import ExitCode, exit_code_for, exit_with_error, get_error_console

__all__ = [
    "CLIContext",
    "ExitCode",
    "exit_code_for",
    "exit_with_error",
    "get_error_console",
    "register_commands",
]


def register_commands(app: App) -> None:
    app.default(start)
    app.command(start)
    app.command(stop)
    app.command(status)
    app.command(restart)
