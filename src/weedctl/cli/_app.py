"""The command-line interface for weedctl."""

from importlib.metadata import PackageNotFoundError, version
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from ._commands import CLIContext, ExitCode, exit_with_error, register_commands

APP_HELP = "Launch, probe, report on and tear down a local SeaweedFS cluster."


def _version() -> str:
    try:
        return version("weedctl")
    except PackageNotFoundError:
        return "0.0.0+unknown"


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Build the weedctl application.

    Args:
        console: Console for reports. Defaults to stdout.
        error_console: Console for errors and lifecycle events. Defaults to
            stderr.
        exit_on_error: Exit on argument parsing errors instead of raising.

    Returns:
        The application. Invoke ``app.meta()`` to honour global options.
    """
    app = App(
        name="weedctl",
        help=APP_HELP,
        version=_version,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        no_color: Annotated[
            bool, Parameter(name="--no-color", help="Disable colored output")
        ] = False,
    ) -> None:
        """Run a weedctl command with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            no_color: Disable colored output.
        """
        ctx = CLIContext(
            console=console or Console(no_color=no_color),
            error_console=error_console or Console(stderr=True, no_color=no_color),
            no_color=no_color,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `weedctl` CLI."""
    app = create_app()
    try:
        app.meta()
    except KeyboardInterrupt:
        # Ctrl+C outside the supervisor loop, e.g. while loading configuration
        exit_with_error("Interrupted", ExitCode.INTERRUPTED)


if __name__ == "__main__":
    main()
