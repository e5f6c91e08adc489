"""CLI context for global state management.

The CLIContext is set once at CLI startup and made available to all
commands via contextvars, so commands can be driven with capture consoles
in tests.
"""

import contextvars
from dataclasses import dataclass, field

from rich.console import Console

_current_cli_context: contextvars.ContextVar["CLIContext | None"] = (
    contextvars.ContextVar("cli_context", default=None)
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context.

    Attributes:
        console: Console for reports (stdout).
        error_console: Console for errors and lifecycle events (stderr).
        no_color: Whether colored output was disabled.
    """

    console: Console = field(default_factory=Console, repr=False)
    error_console: Console = field(
        default_factory=lambda: Console(stderr=True), repr=False
    )
    no_color: bool = False

    @classmethod
    def get_current(cls) -> "CLIContext":  # noqa: UP037
        """Get the current active CLIContext, or a default one if not set."""
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx
        return cls()

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:
        """Set the current active CLIContext."""
        _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Reset to the default context."""
        _current_cli_context.set(None)
