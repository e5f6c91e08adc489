"""Helpers for supervisor tests: stand-in services and a recording sink."""

import subprocess
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from weedctl.supervisor import ProbeKind, ProbeResult, ProbeSpec, ServiceEvent, ServiceSpec

SLEEP_FOREVER = "import time; time.sleep(120)"

IGNORE_SIGTERM = (
    "import pathlib, signal, sys, time\n"
    "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
    "pathlib.Path(sys.argv[1]).touch()\n"
    "time.sleep(120)\n"
)


def make_spec(
    name: str,
    run_dir: Path,
    *,
    code: str = SLEEP_FOREVER,
    args: tuple[str, ...] = (),
    enabled: bool = True,
    port: int = 1,
    subcommand: str = "",
    markers: tuple[str, ...] = (),
) -> ServiceSpec:
    """Build a ServiceSpec that runs a small Python program instead of weed."""
    return ServiceSpec(
        name=name,
        enabled=enabled,
        command=(sys.executable, "-c", code, *args),
        run_dir=run_dir,
        work_dir=run_dir / name,
        probes=(ProbeSpec(kind=ProbeKind.TCP, host="127.0.0.1", port=port),),
        address=f"127.0.0.1:{port}",
        subcommand=subcommand,
        sweep_markers=markers,
    )


async def always_ready(probe: ProbeSpec) -> ProbeResult:
    return ProbeResult(ready=True, attempts=1, elapsed=0.0)


class RecordingSink:
    """EventSink that keeps every event."""

    def __init__(self) -> None:
        self.events: list[ServiceEvent] = []

    async def write_event(self, event: ServiceEvent) -> None:
        self.events.append(event)

    def states(self, name: str) -> list[str]:
        return [e.state.value for e in self.events if e.service_name == name]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def dead_pid() -> int:
    """PID of a process that has already exited and been reaped."""
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    _ = proc.wait()
    return proc.pid


@pytest.fixture
def sleeper() -> Iterator[subprocess.Popen[bytes]]:
    """A live child process, killed after the test."""
    proc = subprocess.Popen([sys.executable, "-c", SLEEP_FOREVER])
    yield proc
    if proc.poll() is None:
        proc.kill()
    _ = proc.wait()
