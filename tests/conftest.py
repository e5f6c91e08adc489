"""Shared test fixtures for weedctl tests."""

import io
import socket
from pathlib import Path

import pytest
from rich.console import Console

from weedctl.config import LEGACY_ENV_VARS


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    """Console writing to an in-memory buffer; read it with ``console.file``."""
    return Console(file=io.StringIO(), width=200, no_color=True, force_terminal=False)


def console_output(console: Console) -> str:
    """Return everything written to a ``console`` fixture."""
    file = console.file
    assert isinstance(file, io.StringIO)
    return file.getvalue()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every environment variable weedctl reads as configuration."""
    import os

    for name in LEGACY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("WEEDCTL_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def user_config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the per-user config file at a temporary location."""
    path = tmp_path / "user" / "config.toml"
    monkeypatch.setattr(
        "weedctl.config._discovery.get_user_config_path",
        lambda: path,
    )
    return path


def free_port() -> int:
    """Return a TCP port that is currently free on 127.0.0.1."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


def free_ports(count: int) -> list[int]:
    """Return ``count`` distinct free ports."""
    sockets: list[socket.socket] = []
    try:
        for _ in range(count):
            s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            s.bind(("127.0.0.1", 0))
            sockets.append(s)
        return [int(s.getsockname()[1]) for s in sockets]
    finally:
        for s in sockets:
            s.close()
