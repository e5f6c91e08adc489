"""Operating-system process helpers.

Services are launched detached, in their own session, with stdout and
stderr appended to their log file. The supervisor never reads the child's
output pipes, so a child survives its supervisor exiting (detached mode).
"""

import os
import signal
import subprocess
from collections import deque
from pathlib import Path

import anyio
import pendulum
import psutil

from weedctl.exceptions import LaunchError

from ._models import RunningProcess, ServiceSpec

EXIT_POLL_INTERVAL = 0.05
LOG_TAIL_LINES = 50


def timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    return pendulum.now("UTC").to_iso8601_string()


def launch(spec: ServiceSpec) -> RunningProcess:
    """Create the service's storage directory and spawn it.

    Raises:
        LaunchError: If the directory cannot be created or the process
            cannot be spawned.
    """
    try:
        spec.work_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        msg = f"Cannot create data directory {spec.work_dir} for {spec.name}: {e}"
        raise LaunchError(msg, service_name=spec.name, cause=e) from e

    try:
        log_handle = spec.log_file.open("ab")
    except OSError as e:
        msg = f"Cannot open log file {spec.log_file} for {spec.name}: {e}"
        raise LaunchError(msg, service_name=spec.name, cause=e) from e

    try:
        popen = subprocess.Popen(  # noqa: S603
            list(spec.command),
            cwd=spec.run_dir,
            stdin=subprocess.DEVNULL,
            stdout=log_handle,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
    except OSError as e:
        log_handle.close()
        msg = f"Failed to start {spec.name}: {e}"
        raise LaunchError(msg, service_name=spec.name, cause=e) from e

    return RunningProcess(
        service_name=spec.name,
        pid=popen.pid,
        started_at=timestamp(),
        log_file=spec.log_file,
        log_handle=log_handle,
        popen=popen,
    )


def pid_alive(pid: int) -> bool:
    """Return True if ``pid`` is a live process. Zombies count as dead."""
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # Exists but belongs to someone else.
        return True


def is_alive(process: RunningProcess) -> bool:
    """Return True if the tracked process is still running.

    For processes this invocation launched, polling also reaps the child.
    """
    if process.popen is not None:
        return process.popen.poll() is None
    return pid_alive(process.pid)


def send_signal(process: RunningProcess, signum: signal.Signals) -> None:
    """Send ``signum`` to the tracked process.

    Raises:
        ProcessLookupError: If the process no longer exists.
        PermissionError: If the process may not be signalled.
    """
    if process.popen is not None:
        if process.popen.poll() is not None:
            raise ProcessLookupError(process.pid)
        process.popen.send_signal(signum)
    else:
        os.kill(process.pid, signum)


async def wait_for_exit(process: RunningProcess, timeout: float) -> bool:
    """Wait up to ``timeout`` seconds for the process to exit.

    Returns:
        True if the process is gone, False if it outlived the timeout.
    """
    with anyio.move_on_after(timeout):
        while is_alive(process):
            await anyio.sleep(EXIT_POLL_INTERVAL)
    return not is_alive(process)


async def wait_for_pids_gone(pids: list[int], timeout: float) -> list[int]:
    """Wait up to ``timeout`` seconds for every PID to disappear.

    Returns:
        The PIDs still alive when the wait ended.
    """
    remaining = [pid for pid in pids if pid_alive(pid)]
    with anyio.move_on_after(timeout):
        while remaining:
            await anyio.sleep(EXIT_POLL_INTERVAL)
            remaining = [pid for pid in remaining if pid_alive(pid)]
    return remaining


def tail_log(path: Path, lines: int = LOG_TAIL_LINES) -> tuple[str, ...]:
    """Return the last ``lines`` lines of a log file, or nothing if unreadable."""
    try:
        with path.open(encoding="utf-8", errors="replace") as f:
            return tuple(line.rstrip("\n") for line in deque(f, maxlen=lines))
    except OSError:
        return ()


def _arg_matches(arg: str, marker: str) -> bool:
    if marker.startswith("-"):
        return arg == marker
    value = arg.partition("=")[2] if arg.startswith("-") else arg
    return value == marker or value.startswith(marker.rstrip("/") + "/")


def cmdline_matches(
    cmdline: list[str],
    *,
    binary_name: str,
    subcommand: str,
    markers: tuple[str, ...],
) -> bool:
    """Return True if a command line belongs to one of this cluster's services.

    The executable (or, for interpreted launchers, the script) must be
    ``binary_name``, ``subcommand`` must appear as an argument, and at least
    one argument must match one of ``markers``. Flag markers such as
    ``-port=8080`` match a whole argument; path markers match a path argument
    or flag value equal to or below that path.
    """
    if not cmdline or not subcommand or not markers:
        return False
    if binary_name not in {Path(part).name for part in cmdline[:2]}:
        return False
    args = cmdline[1:]
    if subcommand not in args:
        return False
    return any(_arg_matches(arg, marker) for arg in args for marker in markers)


def find_leftovers(
    specs: list[ServiceSpec],
    *,
    exclude: set[int],
) -> list[psutil.Process]:
    """Find processes matching any of ``specs`` that are not in ``exclude``."""
    own = os.getpid()
    found: list[psutil.Process] = []
    for proc in psutil.process_iter(["pid", "cmdline"]):
        pid = proc.info["pid"]
        if pid == own or pid in exclude:
            continue
        cmdline = proc.info.get("cmdline") or []
        for spec in specs:
            if cmdline_matches(
                cmdline,
                binary_name=Path(spec.binary).name,
                subcommand=spec.subcommand,
                markers=spec.sweep_markers,
            ):
                found.append(proc)
                break
    return found


def kill_leftovers(procs: list[psutil.Process], grace_period: float) -> list[int]:
    """Terminate ``procs``, force-killing any that outlive ``grace_period``.

    Blocking; run it in a worker thread from async code.

    Returns:
        PIDs that were signalled.
    """
    signalled: list[psutil.Process] = []
    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            continue
        signalled.append(proc)

    _, alive = psutil.wait_procs(signalled, timeout=grace_period)
    for proc in alive:
        try:
            proc.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    _ = psutil.wait_procs(alive, timeout=grace_period)

    return [proc.pid for proc in signalled]
