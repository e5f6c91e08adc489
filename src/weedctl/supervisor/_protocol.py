"""Protocol definitions for the supervisor system.

This module defines the interface that decouples the lifecycle controller
from output/UI implementations.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ._models import ServiceEvent


@runtime_checkable
class EventSink(Protocol):
    """Protocol for consuming service lifecycle events.

    EventSinks receive every state transition the controller makes and can
    format, store, or display it. The protocol is async to support
    non-blocking I/O operations like writing to files or updating UIs.
    """

    async def write_event(self, event: "ServiceEvent") -> None:
        """Write a service lifecycle event.

        Args:
            event: The lifecycle event to record.
        """
        ...
