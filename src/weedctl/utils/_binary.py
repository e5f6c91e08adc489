"""Locating and identifying the weed binary."""

import shutil
import subprocess
from pathlib import Path

from weedctl.exceptions import BinaryNotFoundError

VERSION_TIMEOUT_SECONDS = 5.0


def find_binary(binary: str) -> Path:
    """Resolve ``binary`` to an executable path.

    Bare names are looked up on ``PATH``; anything containing a path
    separator must point at an executable file.

    Raises:
        BinaryNotFoundError: If no executable is found.
    """
    resolved = shutil.which(binary)
    if resolved is None:
        msg = (
            f"weed binary not found: {binary}. Install SeaweedFS or point "
            "--binary / WEED_BINARY at the executable"
        )
        raise BinaryNotFoundError(msg, binary=binary)
    return Path(resolved).absolute()


def get_binary_version(path: Path) -> str:
    """Return the first line of ``weed version``, or ``unknown``.

    Never raises; a binary that cannot report its version is still usable.
    """
    try:
        result = subprocess.run(  # noqa: S603
            [str(path), "version"],
            capture_output=True,
            text=True,
            timeout=VERSION_TIMEOUT_SECONDS,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired):
        return "unknown"

    lines = result.stdout.strip().splitlines()
    return lines[0] if lines else "unknown"
