# pyright: reportAny=false
"""Unit tests for weedctl exceptions and warnings.

These tests verify that constructors store their context attributes and
that each error sits on the branch the CLI maps to an exit code.
"""

from pathlib import Path

from weedctl.exceptions import (
    BinaryNotFoundError,
    ConfigLoadError,
    ConfigurationError,
    LaunchError,
    PortInUseError,
    ReadinessTimeoutError,
    ShutdownWarning,
    StaleProcessWarning,
    SupervisorWarning,
    WeedctlError,
)


class TestConfigLoadError:
    def test_context_fields_default_to_none(self) -> None:
        error = ConfigLoadError("Simple error")

        assert error.path is None
        assert error.line is None
        assert error.column is None

    def test_stores_location(self) -> None:
        error = ConfigLoadError(
            "Parse error", path=Path("/etc/weedctl.toml"), line=15, column=8
        )

        assert error.path == Path("/etc/weedctl.toml")
        assert (error.line, error.column) == (15, 8)


class TestConfigurationBranch:
    def test_preflight_errors_are_configuration_errors(self) -> None:
        assert isinstance(
            PortInUseError("busy", port=9333, host="127.0.0.1"), ConfigurationError
        )
        assert isinstance(BinaryNotFoundError("missing", binary="weed"), ConfigurationError)

    def test_lifecycle_errors_are_not(self) -> None:
        launch = LaunchError("spawn failed", service_name="filer")
        readiness = ReadinessTimeoutError(
            "slow", service_name="master", host="127.0.0.1", port=9333, attempts=3
        )

        assert not isinstance(launch, ConfigurationError)
        assert not isinstance(readiness, ConfigurationError)
        assert isinstance(launch, WeedctlError)
        assert isinstance(readiness, WeedctlError)


class TestLaunchError:
    def test_keeps_cause(self) -> None:
        cause = PermissionError("denied")

        error = LaunchError("spawn failed", service_name="volume", cause=cause)

        assert error.service_name == "volume"
        assert error.cause is cause


class TestReadinessTimeoutError:
    def test_log_tail_defaults_to_empty(self) -> None:
        error = ReadinessTimeoutError(
            "slow", service_name="filer", host="127.0.0.1", port=8888, attempts=30
        )

        assert error.log_tail == ()
        assert error.attempts == 30


class TestWarnings:
    def test_shutdown_warning_defaults_to_killed(self) -> None:
        warning = ShutdownWarning("ignored SIGTERM", service_name="volume", pid=42)

        assert warning.killed
        assert isinstance(warning, SupervisorWarning)
        assert isinstance(warning, UserWarning)

    def test_stale_warning_without_pid(self) -> None:
        warning = StaleProcessWarning(
            "gone", service_name="filer", pid=None, reason="pid file already removed"
        )

        assert warning.pid is None
        assert warning.reason == "pid file already removed"
        assert str(warning) == "gone"
