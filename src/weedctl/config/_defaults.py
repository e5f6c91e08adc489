"""Default configuration values.

This module defines the built-in default configuration values that are used
when no other configuration sources provide values.

Note: DEFAULT_CONFIG is intentionally a plain dict for type compatibility
with functions like deep_merge. The merge functions create copies, so mutation
of the original is not a concern in practice.
"""

import tempfile
from pathlib import Path
from typing import Any

import pendulum

DATA_DIR_PREFIX = "seaweedfs-"

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "cluster": {
        "data_dir": "",
        "binary": "weed",
        "verbosity": 1,
        "host": "127.0.0.1",
        "bind": "0.0.0.0",  # noqa: S104
    },
    "ports": {
        "master": 9333,
        "volume": 8080,
        "filer": 8888,
        "s3": 8000,
        "mq": 17777,
        "metrics": 9324,
    },
    "services": {
        "master": True,
        "volume": True,
        "filer": True,
        "s3": False,
        "mq": False,
    },
    "limits": {
        "volume_max": 100,
        "volume_size_limit_mb": 1024,
        "filer_max_mb": 256,
    },
    "features": {
        "raft": True,
        "metrics": True,
        "detach": False,
    },
    "timeouts": {
        "startup": 60.0,
        "health_check": 30.0,
        "poll_interval": 2.0,
        "grace_period": 5.0,
        "kill_timeout": 5.0,
        "mq_settle": 10.0,
    },
    "s3": {
        "config_file": "",
    },
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
}


def default_data_dir(base: Path | None = None) -> Path:
    """Create and return a fresh, timestamp-qualified data directory.

    Each invocation gets its own directory so that two supervisors on the
    same host never share working storage or PID files. Invocations within
    the same second get a numeric suffix.

    Args:
        base: Parent directory. Defaults to the system temp directory.

    Returns:
        Path like ``/tmp/seaweedfs-20250101-120000`` or
        ``/tmp/seaweedfs-20250101-120000-1``.

    Raises:
        OSError: If the directory cannot be created.
    """
    root = base if base is not None else Path(tempfile.gettempdir())
    name = DATA_DIR_PREFIX + pendulum.now().format("YYYYMMDD-HHmmss")
    path = root / name
    suffix = 0
    while True:
        try:
            path.mkdir(parents=True)
        except FileExistsError:
            suffix += 1
            path = root / f"{name}-{suffix}"
        else:
            return path


def find_recent_data_dir(base: Path | None = None) -> Path | None:
    """Find the most recently modified default data directory that was used.

    Used by stop, status and restart when no data directory is configured.
    A directory qualifies if it holds PID files or service logs, so one that
    a previous stop already cleaned is found again and its stale entries are
    reported, while an empty directory left by a failed preflight is not.

    Args:
        base: Directory to search. Defaults to the system temp directory.

    Returns:
        The newest matching directory, or None.
    """
    root = base if base is not None else Path(tempfile.gettempdir())
    candidates = [
        p
        for p in root.glob(f"{DATA_DIR_PREFIX}*")
        if p.is_dir() and (any(p.glob("*.pid")) or any(p.glob("*.log")))
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda p: (p.stat().st_mtime_ns, p.name))
