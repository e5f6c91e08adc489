"""Config path discovery utilities.

This module determines which configuration files take part in a load and
in what precedence, using platform-specific locations for the user file.
"""

import os
from collections.abc import Mapping  # noqa: TC003
from pathlib import Path
from typing import Any

import platformdirs

from weedctl.exceptions import ConfigLoadError

from ._defaults import DEFAULT_CONFIG
from ._models._common import ConfigSource, ConfigSourceName

PROJECT_CONFIG_NAME = "weedctl.toml"
CONFIG_ENV_VAR = "WEEDCTL_CONFIG"


def get_user_config_path() -> Path:
    r"""Get platform-specific user config file path.

    - Linux: ``~/.config/weedctl/config.toml``
    - macOS: ``~/Library/Application Support/weedctl/config.toml``
    - Windows: ``%APPDATA%\weedctl\config.toml``

    The path is returned regardless of whether the file exists.
    """
    return platformdirs.user_config_path("weedctl") / "config.toml"


def _file_exists(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def discover_sources(
    *,
    config_path: Path | None = None,
    cwd: Path | None = None,
    include_env: bool = True,
    environ: Mapping[str, str] | None = None,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> list[ConfigSource]:
    """Discover all configuration sources.

    Args:
        config_path: Explicit config file. Falls back to ``WEEDCTL_CONFIG``.
        cwd: Directory searched for ``weedctl.toml``. Defaults to the
            current working directory.
        include_env: Include environment variables as a source.
        environ: Environment mapping used for ``WEEDCTL_CONFIG``.
        cli_overrides: Command-line overrides.

    Returns:
        List of ConfigSource objects in precedence order (highest first).
        File sources that don't exist are still included with exists=False.

    Raises:
        ConfigLoadError: If an explicitly requested file does not exist.
    """
    env = os.environ if environ is None else environ
    sources: list[ConfigSource] = []

    sources.append(
        ConfigSource(
            name=ConfigSourceName.CLI,
            path=None,
            exists=bool(cli_overrides),
            values=cli_overrides or {},
        )
    )

    if include_env:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.ENV,
                path=None,
                exists=True,  # Actual values parsed during loading phase
                values={},
            )
        )

    explicit = config_path
    if explicit is None and env.get(CONFIG_ENV_VAR):
        explicit = Path(env[CONFIG_ENV_VAR])
    if explicit is not None:
        explicit = explicit.expanduser()
        if not _file_exists(explicit):
            msg = f"Config file not found: {explicit}"
            raise ConfigLoadError(msg, path=explicit)
        sources.append(
            ConfigSource(
                name=ConfigSourceName.FILE,
                path=explicit,
                exists=True,
                values={},
            )
        )

    project_path = (cwd or Path.cwd()) / PROJECT_CONFIG_NAME
    sources.append(
        ConfigSource(
            name=ConfigSourceName.PROJECT,
            path=project_path,
            exists=explicit is None and _file_exists(project_path),
            values={},
        )
    )

    user_path = get_user_config_path()
    sources.append(
        ConfigSource(
            name=ConfigSourceName.USER,
            path=user_path,
            exists=_file_exists(user_path),
            values={},
        )
    )

    sources.append(
        ConfigSource(
            name=ConfigSourceName.DEFAULT,
            path=None,
            exists=True,
            values=DEFAULT_CONFIG,
        )
    )

    return sources
