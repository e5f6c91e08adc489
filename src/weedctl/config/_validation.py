# pyright: reportAny=false, reportExplicitAny=false, reportUnknownArgumentType=false, reportUnknownMemberType=false, reportUnknownParameterType=false, reportUnknownVariableType=false
"""Configuration validation using Pydantic schemas.

This module validates weedctl configuration dictionaries against the frozen
section models and checks cross-field constraints pydantic cannot express,
namely that no two enabled listeners share a port.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_core import ErrorDetails  # noqa: TC002

from weedctl.config._models._cluster import (
    ClusterSection,
    FeaturesConfig,
    LimitsConfig,
    PortsConfig,
    S3Config,
    ServicesConfig,
    TimeoutsConfig,
)
from weedctl.config._models._logging import LoggingConfig
from weedctl.exceptions import ConfigValidationError, PortConflictError

if TYPE_CHECKING:
    from weedctl.config._models._config import ClusterConfig

MAX_PORT = 65535


# -----------------------------------------------------------------------------
# Validation Issue
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Represents a configuration validation issue.

    Attributes:
        key: Dotted path to the configuration key (e.g., "ports.master").
        message: Human-readable description of the issue.
        expected: Description of expected value or type, if available.
        actual: The actual value that caused the issue.
        source: Name of the source where the issue was found, or None.
        severity: Whether this is an error or warning.
    """

    key: str
    message: str
    expected: str | None
    actual: Any
    source: str | None
    severity: Literal["error", "warning"]


# -----------------------------------------------------------------------------
# Pydantic Schemas
# -----------------------------------------------------------------------------


class ConfigSchema(BaseModel):
    """Pydantic schema for the root configuration; unknown keys are ignored."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    cluster: ClusterSection = ClusterSection()
    ports: PortsConfig = PortsConfig()
    services: ServicesConfig = ServicesConfig()
    limits: LimitsConfig = LimitsConfig()
    features: FeaturesConfig = FeaturesConfig()
    timeouts: TimeoutsConfig = TimeoutsConfig()
    s3: S3Config = S3Config()
    logging: LoggingConfig = LoggingConfig()


# -----------------------------------------------------------------------------
# Validation Functions
# -----------------------------------------------------------------------------


def _pydantic_error_to_issue(
    error: ErrorDetails,
    source: str | None,
) -> ValidationIssue:
    """Convert a Pydantic error dict to a ValidationIssue.

    Args:
        error: A single error dict from ValidationError.errors().
        source: The source label, or None for merged config.

    Returns:
        A ValidationIssue representing the validation error.
    """
    loc = error.get("loc", ())
    key = ".".join(str(part) for part in loc)

    message = str(error.get("msg", "Validation error"))

    ctx = error.get("ctx")
    expected: str | None = None
    if ctx is not None:
        if "expected" in ctx:
            expected = str(ctx["expected"])
        elif "ge" in ctx and "le" in ctx:
            expected = f"{ctx['ge']}..{ctx['le']}"
        elif "ge" in ctx:
            expected = f">= {ctx['ge']}"
        elif "gt" in ctx:
            expected = f"> {ctx['gt']}"
        elif "le" in ctx:
            expected = f"<= {ctx['le']}"

    return ValidationIssue(
        key=key,
        message=message,
        expected=expected,
        actual=error.get("input"),
        source=source,
        severity="error",
    )


def validate_config(
    config: dict[str, Any],
    *,
    source: str | None = None,
) -> list[ValidationIssue]:
    """Validate a configuration dictionary.

    Args:
        config: The configuration dictionary to validate.
        source: Label attached to every issue.

    Returns:
        List of ValidationIssue objects. Empty list indicates valid config.
    """
    try:
        _ = ConfigSchema.model_validate(config)
    except ValidationError as e:
        return [_pydantic_error_to_issue(err, source=source) for err in e.errors()]
    else:
        return []


def raise_if_validation_errors(
    issues: list[ValidationIssue],
    source: str | None = None,
) -> None:
    """Raise ConfigValidationError for the first error-severity issue.

    Args:
        issues: List of ValidationIssue objects to check.
        source: Optional source string to use in the exception.
            If not provided, uses the source from the first error.

    Raises:
        ConfigValidationError: If any issues have severity="error".
    """
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        issue = errors[0]
        msg = f"Invalid configuration value for '{issue.key}': {issue.message}"
        raise ConfigValidationError(
            msg,
            key=issue.key,
            value=issue.actual,
            expected=issue.expected or issue.message,
            source=source or issue.source,
        )


def find_port_conflicts(config: "ClusterConfig") -> dict[int, tuple[str, ...]]:
    """Return every port claimed by more than one enabled listener.

    Derived listeners count: the master's gRPC port and, with metrics on,
    the per-service metrics ports.

    Returns:
        Mapping of port to the binding names claiming it, in binding order.
    """
    claims: defaultdict[int, list[str]] = defaultdict(list)
    for binding in config.bindings():
        claims[binding.port].append(binding.name)
    return {port: tuple(names) for port, names in claims.items() if len(names) > 1}


def check_port_conflicts(config: "ClusterConfig") -> None:
    """Raise PortConflictError for the first conflicting port.

    Raises:
        PortConflictError: If two enabled listeners share a port.
    """
    conflicts = find_port_conflicts(config)
    if conflicts:
        port, names = next(iter(conflicts.items()))
        msg = f"Port {port} is assigned to more than one listener: {', '.join(names)}"
        raise PortConflictError(msg, port=port, services=names)


def check_derived_ports(config: "ClusterConfig", *, source: str | None = None) -> None:
    """Raise ConfigValidationError if a derived listener port is out of range.

    The master's gRPC port and the metrics ports are offsets from configured
    ports, so each configured port can be valid while its derivative is not.

    Raises:
        ConfigValidationError: If a binding's port exceeds 65535.
    """
    for binding in config.bindings():
        if binding.port <= MAX_PORT:
            continue
        if binding.name.endswith(".metrics"):
            key, base = "ports.metrics", config.ports.metrics
        else:
            key, base = f"ports.{binding.service}", config.service_port(binding.service)
        msg = (
            f"Port {binding.port} derived for {binding.name} from {key}={base} "
            f"is above {MAX_PORT}"
        )
        raise ConfigValidationError(
            msg,
            key=key,
            value=base,
            expected=f"<= {MAX_PORT - (binding.port - base)}",
            source=source,
        )
