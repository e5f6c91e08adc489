"""Shared CLI utilities for commands.

This module provides common utilities used across CLI command implementations:
- Standardized exit codes
- Mapping from weedctl exceptions to exit codes
- Console utilities for error handling
"""

from enum import IntEnum
from typing import Never

from rich.console import Console

from weedctl.exceptions import (
    BinaryNotFoundError,
    ConfigurationError,
    LaunchError,
    ReadinessTimeoutError,
    WeedctlError,
)

__all__ = [
    "ExitCode",
    "exit_code_for",
    "exit_with_error",
    "get_error_console",
]


class ExitCode(IntEnum):
    """Exit codes of the weedctl CLI."""

    SUCCESS = 0
    SERVICES_DOWN = 1
    CONFIG_ERROR = 2
    BINARY_NOT_FOUND = 3
    READINESS_FAILED = 4
    NOT_RUNNING = 5
    LAUNCH_FAILED = 6
    INTERRUPTED = 130


def exit_code_for(error: WeedctlError) -> ExitCode:
    """Map an exception to the exit code the CLI reports for it."""
    match error:
        case BinaryNotFoundError():
            return ExitCode.BINARY_NOT_FOUND
        case ConfigurationError():
            return ExitCode.CONFIG_ERROR
        case ReadinessTimeoutError():
            return ExitCode.READINESS_FAILED
        case LaunchError():
            return ExitCode.LAUNCH_FAILED
        case _:
            return ExitCode.SERVICES_DOWN


def get_error_console() -> Console:
    """Get a Rich console configured for error output to stderr.

    Returns:
        Console instance writing to stderr.
    """
    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.SERVICES_DOWN,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Args:
        message: The error message to display.
        code: The exit code to use.
        console: Optional Rich console for output. If not provided,
            a new stderr console will be created.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)
