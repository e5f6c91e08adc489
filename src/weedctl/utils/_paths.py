from pathlib import Path

import platformdirs

APP_NAME = "weedctl"


def get_log_dir() -> Path:
    """Get the per-user log directory for weedctl."""
    return platformdirs.user_log_path(APP_NAME)


def get_cli_log_file() -> Path:
    """Get the path to the default CLI log file."""
    return get_log_dir() / "weedctl.log"
