"""weedctl exceptions and warnings."""

from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any


class WeedctlError(Exception):
    """Base exception for weedctl errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(WeedctlError):
    """Base exception for configuration errors.

    Configuration errors are always detected before any subprocess is
    launched, so nothing needs to be torn down when one is raised.
    """


class ConfigLoadError(ConfigurationError):
    """Raised when a configuration file cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigurationError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source


class PortConflictError(ConfigurationError):
    """Raised when two enabled services are configured on the same port.

    Attributes:
        port: The contested port.
        services: Names of the bindings that claim the port.
    """

    def __init__(self, message: str, *, port: int, services: tuple[str, ...]) -> None:
        """Initialize with error message and conflict context.

        Args:
            message: Human-readable error message.
            port: The contested port.
            services: Names of the bindings that claim the port.
        """
        super().__init__(message)
        self.port: int = port
        self.services: tuple[str, ...] = services


class PortInUseError(ConfigurationError):
    """Raised when a port the cluster needs is already accepting connections.

    Attributes:
        port: The busy port.
        host: The host the port was checked on.
        binding: Name of the binding that needs the port.
    """

    def __init__(
        self,
        message: str,
        *,
        port: int,
        host: str,
        binding: str | None = None,
    ) -> None:
        """Initialize with error message and port context.

        Args:
            message: Human-readable error message.
            port: The busy port.
            host: The host the port was checked on.
            binding: Name of the binding that needs the port.
        """
        super().__init__(message)
        self.port: int = port
        self.host: str = host
        self.binding: str | None = binding


class BinaryNotFoundError(ConfigurationError):
    """Raised when the weed binary cannot be located.

    Attributes:
        binary: The binary name or path that was searched for.
    """

    def __init__(self, message: str, *, binary: str) -> None:
        """Initialize with error message and binary context."""
        super().__init__(message)
        self.binary: str = binary


# =============================================================================
# Lifecycle Exceptions
# =============================================================================


class LaunchError(WeedctlError):
    """Raised when a service subprocess cannot be spawned.

    Also covers failure to create the service's data directory, since a
    service without its working storage cannot be launched.

    Attributes:
        service_name: The service that failed to launch.
        cause: The underlying exception.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and service context."""
        super().__init__(message)
        self.service_name: str = service_name
        self.cause: Exception | None = cause


class ReadinessTimeoutError(WeedctlError):
    """Raised when a readiness probe exhausts its attempts.

    Attributes:
        service_name: The service whose endpoint never came up.
        host: Probed host.
        port: Probed port.
        attempts: Number of probe attempts made.
        log_tail: Last lines of the service's log file.
    """

    def __init__(  # noqa: PLR0913
        self,
        message: str,
        *,
        service_name: str,
        host: str,
        port: int,
        attempts: int,
        log_tail: tuple[str, ...] = (),
    ) -> None:
        """Initialize with error message and probe context.

        Args:
            message: Human-readable error message.
            service_name: The service whose endpoint never came up.
            host: Probed host.
            port: Probed port.
            attempts: Number of probe attempts made.
            log_tail: Last lines of the service's log file.
        """
        super().__init__(message)
        self.service_name: str = service_name
        self.host: str = host
        self.port: int = port
        self.attempts: int = attempts
        self.log_tail: tuple[str, ...] = log_tail


# =============================================================================
# Warnings
# =============================================================================


class SupervisorWarning(UserWarning):
    """Base class for non-fatal conditions reported during teardown or status."""

    def __init__(self, message: str, *, service_name: str, pid: int | None) -> None:
        """Initialize with message and process context."""
        super().__init__(message)
        self.service_name: str = service_name
        self.pid: int | None = pid


class ShutdownWarning(SupervisorWarning):
    """A process ignored graceful termination and had to be force-killed.

    Attributes:
        killed: False if the process survived even the forceful signal.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str,
        pid: int | None,
        killed: bool = True,
    ) -> None:
        """Initialize with message, process context and kill outcome."""
        super().__init__(message, service_name=service_name, pid=pid)
        self.killed: bool = killed


class StaleProcessWarning(SupervisorWarning):
    """A tracked PID no longer refers to a live process.

    Treated as "already stopped", never as an error.

    Attributes:
        reason: Why the entry is considered stale.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str,
        pid: int | None,
        reason: str,
    ) -> None:
        """Initialize with message, process context and staleness reason."""
        super().__init__(message, service_name=service_name, pid=pid)
        self.reason: str = reason
