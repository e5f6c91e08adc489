"""Process table and its PID-file projection.

Within one invocation the in-memory table is the authority. PID files in
the data directory are its persisted projection: written on add, deleted on
remove, and re-read (and revalidated) by later ``stop`` and ``status``
invocations.
"""

from collections.abc import Iterable, Iterator  # noqa: TC003
from pathlib import Path
from typing import Self, final

import pendulum

from weedctl.exceptions import StaleProcessWarning

from ._models import RunningProcess
from ._process import pid_alive


def pid_file_path(run_dir: Path, name: str) -> Path:
    """Return ``<run_dir>/<name>.pid``."""
    return run_dir / f"{name}.pid"


def log_file_path(run_dir: Path, name: str) -> Path:
    """Return ``<run_dir>/<name>.log``."""
    return run_dir / f"{name}.log"


def read_pid_file(path: Path) -> int | None:
    """Parse a PID file.

    Returns:
        The PID, or None if the file is missing, unreadable or malformed.
    """
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    try:
        pid = int(text)
    except ValueError:
        return None
    return pid if pid > 0 else None


def _pid_file_timestamp(path: Path) -> str:
    try:
        mtime = path.stat().st_mtime
    except OSError:
        return ""
    return pendulum.from_timestamp(mtime).to_iso8601_string()


@final
class ProcessTable:
    """Ordered mapping from service name to RunningProcess.

    Insertion order is startup order; iterating ``reversed(table)`` gives
    shutdown order. Keys are unique.
    """

    __slots__ = ("_entries", "_run_dir")

    def __init__(self, run_dir: Path) -> None:
        """Initialize an empty table bound to ``run_dir``."""
        self._run_dir = run_dir
        self._entries: dict[str, RunningProcess] = {}

    @property
    def run_dir(self) -> Path:
        """Return the data directory holding the PID files."""
        return self._run_dir

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RunningProcess]:
        return iter(list(self._entries.values()))

    def __reversed__(self) -> Iterator[RunningProcess]:
        return iter(list(reversed(self._entries.values())))

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def names(self) -> list[str]:
        """Return service names in insertion order."""
        return list(self._entries)

    def get(self, name: str) -> RunningProcess | None:
        """Return the entry for ``name``, if any."""
        return self._entries.get(name)

    def add(self, process: RunningProcess) -> None:
        """Record a launched process and write its PID file.

        Raises:
            ValueError: If the service is already in the table.
            OSError: If the PID file cannot be written.
        """
        name = process.service_name
        if name in self._entries:
            msg = f"Service '{name}' is already in the process table"
            raise ValueError(msg)
        self._entries[name] = process
        _ = pid_file_path(self._run_dir, name).write_text(
            f"{process.pid}\n", encoding="utf-8"
        )

    def remove(self, name: str) -> RunningProcess | None:
        """Drop ``name`` from the table, close its log handle, delete its PID file."""
        process = self._entries.pop(name, None)
        if process is not None:
            process.close()
        pid_file_path(self._run_dir, name).unlink(missing_ok=True)
        return process

    def clear(self) -> None:
        """Remove every entry."""
        for name in self.names():
            _ = self.remove(name)

    @classmethod
    def read(cls, run_dir: Path, names: Iterable[str]) -> Self:
        """Rebuild a table from PID files without touching anything.

        Dead PIDs are kept so that status can report them.
        """
        table = cls(run_dir)
        for name in names:
            pid_file = pid_file_path(run_dir, name)
            pid = read_pid_file(pid_file)
            if pid is None:
                continue
            table._entries[name] = RunningProcess(  # noqa: SLF001
                service_name=name,
                pid=pid,
                started_at=_pid_file_timestamp(pid_file),
                log_file=log_file_path(run_dir, name),
            )
        return table

    @classmethod
    def load(
        cls,
        run_dir: Path,
        names: Iterable[str],
    ) -> tuple[Self, list[StaleProcessWarning]]:
        """Rebuild a table from PID files, revalidating every entry.

        Entries whose PID is no longer alive, and malformed PID files, are
        deleted and reported as stale. A service with a log file but no PID
        file was stopped before; it is reported as stale too.

        Returns:
            The table of live processes and the stale-entry warnings.
        """
        table = cls(run_dir)
        warnings: list[StaleProcessWarning] = []

        for name in names:
            pid_file = pid_file_path(run_dir, name)

            if not pid_file.exists():
                if log_file_path(run_dir, name).exists():
                    warnings.append(
                        StaleProcessWarning(
                            f"{name}: PID file already removed, treating as stopped",
                            service_name=name,
                            pid=None,
                            reason="pid file already removed",
                        )
                    )
                continue

            pid = read_pid_file(pid_file)
            if pid is None:
                reason = "malformed pid file"
            elif not pid_alive(pid):
                reason = "process not running"
            else:
                table._entries[name] = RunningProcess(  # noqa: SLF001
                    service_name=name,
                    pid=pid,
                    started_at=_pid_file_timestamp(pid_file),
                    log_file=log_file_path(run_dir, name),
                )
                continue

            pid_file.unlink(missing_ok=True)
            warnings.append(
                StaleProcessWarning(
                    f"{name}: {reason} (pid={pid}), treating as stopped",
                    service_name=name,
                    pid=pid,
                    reason=reason,
                )
            )

        return table, warnings
