"""Event sink implementations for the supervisor system."""

from typing import TYPE_CHECKING, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._models import ServiceState

if TYPE_CHECKING:
    from ._models import EventLevel, ServiceEvent


@final
class ConsoleEventSink:
    """Event sink that renders events to a console, one line each.

    Formats events as
    ``[timestamp] [LEVEL] [service] STATE (pid=N) - message``
    with color coding by state and level.
    """

    __slots__ = ("_console", "_level_styles", "_state_styles")

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the event sink.

        Args:
            console: Rich Console instance for output. If None, creates one
                writing to stderr.
        """
        self._console = console or Console(stderr=True)
        self._state_styles: dict[ServiceState, Style] = {
            ServiceState.STARTING: Style(color="cyan"),
            ServiceState.READY: Style(color="green", bold=True),
            ServiceState.STOPPING: Style(color="yellow"),
            ServiceState.STOPPED: Style(color="yellow", dim=True),
            ServiceState.FAILED: Style(color="red", bold=True),
            ServiceState.CRASHED: Style(color="red", bold=True),
        }
        self._level_styles: dict[EventLevel, Style] = {
            "debug": Style(dim=True),
            "info": Style(color="blue"),
            "warning": Style(color="yellow", bold=True),
            "error": Style(color="red", bold=True),
        }

    async def write_event(self, event: "ServiceEvent") -> None:
        """Write a service lifecycle event.

        Args:
            event: The lifecycle event to record.
        """
        style = self._state_styles.get(event.state, Style())

        text = Text()
        _ = text.append(f"[{event.timestamp}]", style=Style(dim=True))
        _ = text.append(" ")
        _ = text.append(
            f"[{event.level.upper()}]",
            style=self._level_styles.get(event.level, Style()),
        )
        _ = text.append(" ")
        _ = text.append(f"[{event.service_name}]", style=Style(color="blue", bold=True))
        _ = text.append(" ")
        _ = text.append(event.state.value.upper(), style=style)

        if event.pid is not None:
            _ = text.append(f" (pid={event.pid})", style=Style(dim=True))

        if event.message:
            _ = text.append(f" - {event.message}")

        self._console.print(text)


@final
class NullEventSink:
    """Event sink that discards every event."""

    __slots__ = ()

    async def write_event(self, event: "ServiceEvent") -> None:
        """Discard ``event``."""
