import io
import os
import random
import signal
import socket
import stat
import subprocess
import sys
import time
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import pytest
from rich.console import Console

from weedctl.cli import create_app

from tests.conftest import free_ports

SRC_DIR = Path(__file__).parents[2] / "src"

# Stand-in for the weed binary: answers HTTP on -port (and on port + 10000
# for the master's gRPC listener) until it is signalled.
FAKE_WEED = '''
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer


class Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, *args):
        pass


def main():
    args = sys.argv[1:]
    if args[:1] == ["version"]:
        print("version 30GB 3.80 fake")
        return
    subcommand = next(a for a in args if not a.startswith("-"))
    opts = dict(a[1:].split("=", 1) for a in args if a.startswith("-") and "=" in a)
    port = int(opts["port"])
    servers = [ThreadingHTTPServer(("127.0.0.1", port), Handler)]
    if subcommand == "master":
        servers.append(ThreadingHTTPServer(("127.0.0.1", port + 10000), Handler))
    print(f"{subcommand} listening on {port}", flush=True)
    for server in servers[1:]:
        threading.Thread(target=server.serve_forever, daemon=True).start()
    servers[0].serve_forever()


main()
'''

# A weed that dies during startup.
BROKEN_WEED = '''
import sys

if sys.argv[1:2] == ["version"]:
    print("version 30GB 3.80 broken")
    sys.exit(0)
print("F0101 fatal: cannot open store", flush=True)
sys.exit(1)
'''


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


def _write_executable(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


def _bindable(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("127.0.0.1", port))
        except OSError:
            return False
    return True


def free_master_port() -> int:
    """A free port whose gRPC companion (port + 10000) is free too."""
    for _ in range(200):
        port = random.randint(20000, 29999)  # noqa: S311
        if _bindable(port) and _bindable(port + 10000):
            return port
    pytest.skip("no free master port pair")


@dataclass(frozen=True, slots=True)
class CliResult:
    """Outcome of one in-process CLI invocation."""

    code: int
    out: str
    err: str


@dataclass(frozen=True, slots=True)
class ClusterEnv:
    """Isolated environment for driving the CLI against a fake weed binary."""

    tmp_path: Path
    data_dir: Path
    weed: Path
    master_port: int
    volume_port: int
    filer_port: int

    def cluster_args(self) -> list[str]:
        return [
            "--data-dir",
            str(self.data_dir),
            "--binary",
            str(self.weed),
            "--master-port",
            str(self.master_port),
            "--volume-port",
            str(self.volume_port),
            "--filer-port",
            str(self.filer_port),
            "--no-metrics",
        ]

    def run(self, *args: str) -> CliResult:
        """Invoke the CLI in-process and capture both consoles."""
        console = Console(file=io.StringIO(), width=200, no_color=True)
        error_console = Console(file=io.StringIO(), width=200, no_color=True)
        app = create_app(console, error_console, exit_on_error=False)
        try:
            app.meta(list(args))
        except SystemExit as e:
            code = int(e.code or 0)
        else:
            code = 0
        return CliResult(
            code=code,
            out=console.file.getvalue(),  # pyright: ignore[reportAttributeAccessIssue]
            err=error_console.file.getvalue(),  # pyright: ignore[reportAttributeAccessIssue]
        )

    def pids(self) -> dict[str, int]:
        return {
            path.stem: int(path.read_text())
            for path in sorted(self.data_dir.glob("*.pid"))
        }

    def subprocess_env(self) -> dict[str, str]:
        env = os.environ.copy()
        env["PYTHONUNBUFFERED"] = "1"
        env["PYTHONPATH"] = os.pathsep.join(
            p for p in (str(SRC_DIR), env.get("PYTHONPATH", "")) if p
        )
        return env


@pytest.fixture
def fake_weed(tmp_path: Path) -> Path:
    return _write_executable(tmp_path / "bin" / "weed", FAKE_WEED)


@pytest.fixture
def broken_weed(tmp_path: Path) -> Path:
    return _write_executable(tmp_path / "broken" / "weed", BROKEN_WEED)


@pytest.fixture
def cluster_env(
    tmp_path: Path,
    fake_weed: Path,
    clean_env: None,
    user_config_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[ClusterEnv]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WEEDCTL_LOGGING__FILE", str(tmp_path / "weedctl.log"))
    monkeypatch.setenv("WEEDCTL_TIMEOUTS__POLL_INTERVAL", "0.2")
    monkeypatch.setenv("WEEDCTL_TIMEOUTS__STARTUP", "20")
    monkeypatch.setenv("WEEDCTL_TIMEOUTS__HEALTH_CHECK", "5")
    volume_port, filer_port = free_ports(2)
    env = ClusterEnv(
        tmp_path=tmp_path,
        data_dir=tmp_path / "seaweedfs-it",
        weed=fake_weed,
        master_port=free_master_port(),
        volume_port=volume_port,
        filer_port=filer_port,
    )
    yield env
    # Whatever a failed test left behind
    for pid in env.pids().values():
        try:
            os.kill(pid, signal.SIGKILL)
        except OSError:
            pass


def wait_for_output(path: Path, text: str, proc: subprocess.Popen[bytes]) -> None:
    """Poll ``path`` until it contains ``text`` or ``proc`` exits."""
    deadline = time.monotonic() + 60
    while time.monotonic() < deadline:
        if path.exists() and text in path.read_text(errors="replace"):
            return
        if proc.poll() is not None:
            break
        time.sleep(0.1)
    pytest.fail(f"never saw {text!r}; output:\n{path.read_text(errors='replace')}")
