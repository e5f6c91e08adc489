"""Utility helpers shared by the supervisor and the CLI."""

from ._binary import find_binary, get_binary_version
from ._logging import create_cli_logger, create_null_logger
from ._paths import get_cli_log_file, get_log_dir

__all__ = [
    "create_cli_logger",
    "create_null_logger",
    "find_binary",
    "get_binary_version",
    "get_cli_log_file",
    "get_log_dir",
]
