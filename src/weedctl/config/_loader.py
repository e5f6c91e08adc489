# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""TOML configuration file loading, environment parsing and merging."""

import json
import os
import tomllib
from collections.abc import Mapping  # noqa: TC003
from pathlib import Path  # noqa: TC003
from typing import Any

from weedctl.exceptions import ConfigLoadError

ENV_PREFIX = "WEEDCTL_"

# Flat variable names understood by the original startup scripts.
LEGACY_ENV_VARS: dict[str, str] = {
    "WEED_DATA_DIR": "cluster.data_dir",
    "WEED_BINARY": "cluster.binary",
    "VERBOSE": "cluster.verbosity",
    "MASTER_PORT": "ports.master",
    "VOLUME_PORT": "ports.volume",
    "FILER_PORT": "ports.filer",
    "S3_PORT": "ports.s3",
    "MQ_PORT": "ports.mq",
    "METRICS_PORT": "ports.metrics",
    "START_MASTER": "services.master",
    "START_VOLUME": "services.volume",
    "START_FILER": "services.filer",
    "START_S3": "services.s3",
    "START_MQ": "services.mq",
    "VOLUME_MAX": "limits.volume_max",
    "VOLUME_SIZE_LIMIT": "limits.volume_size_limit_mb",
    "FILER_MAX_MB": "limits.filer_max_mb",
    "USE_RAFT": "features.raft",
    "ENABLE_METRICS": "features.metrics",
    "STARTUP_TIMEOUT": "timeouts.startup",
    "HEALTH_CHECK_TIMEOUT": "timeouts.health_check",
    "S3_CONFIG_FILE": "s3.config_file",
}

# Prefixed variables that are not configuration keys.
_RESERVED_ENV_VARS = frozenset({"WEEDCTL_CONFIG", "WEEDCTL_DEBUG"})


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a TOML file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed TOML content as dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file cannot be parsed.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file: {e}"
        raise ConfigLoadError(
            msg,
            path=path,
            line=e.lineno,
            column=e.colno,
        ) from e


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Deep merge two configuration dictionaries.

    Merges `override` into `base`, returning a new dictionary. Neither input
    is modified.

    Args:
        base: Base configuration (lower precedence).
        override: Override configuration (higher precedence).

    Returns:
        Merged configuration dictionary.

    Merge rules:
        - Dictionaries are recursively merged
        - Arrays are replaced entirely (no element-wise merge)
        - Scalars are replaced with override value
        - Missing keys in override preserve base values
    """
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

    for key in base.keys() | override.keys():
        if key not in override:
            result[key] = copy_value(base[key])
        elif key not in base:
            result[key] = copy_value(override[key])
        elif isinstance(base[key], dict) and isinstance(override[key], dict):
            result[key] = deep_merge(base[key], override[key])
        else:
            result[key] = copy_value(override[key])

    return result


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Create a deep copy of a configuration value.

    Args:
        value: The value to copy.

    Returns:
        A deep copy of the value.
    """
    if isinstance(value, dict):
        return {k: copy_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [copy_value(item) for item in value]
    return value


def parse_env_vars(
    environ: Mapping[str, str] | None = None,
    *,
    prefix: str = ENV_PREFIX,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse environment variables into a nested config dictionary.

    Two naming schemes are recognised. Legacy flat names (``MASTER_PORT``,
    ``WEED_DATA_DIR``...) are applied first; prefixed nested names
    (``WEEDCTL_PORTS__MASTER``) are applied on top and win on conflict.

    Args:
        environ: Environment mapping. Defaults to ``os.environ``.
        prefix: Prefix for nested variables.

    Returns:
        Dictionary of parsed config values with nested structure.
    """
    env = os.environ if environ is None else environ
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

    for name, key_path in LEGACY_ENV_VARS.items():
        if name in env:
            set_nested_key(result, key_path, parse_string_value(env[name]))

    for name, value in env.items():
        if not name.startswith(prefix) or name in _RESERVED_ENV_VARS:
            continue

        # WEEDCTL_PORTS__MASTER -> ports.master
        config_key = name[len(prefix) :]
        if not config_key:
            continue
        config_path = config_key.replace("__", ".").lower()

        set_nested_key(result, config_path, parse_string_value(value))

    return result


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Parse a string value with automatic type inference.

    Precedence:
    1. Boolean: true/false (case-insensitive)
    2. Integer: parseable as int (no decimal)
    3. Float: parseable as float (with decimal)
    4. JSON array/object: starts with [ or {
    5. String: fallback

    "1" and "0" stay integers; pydantic coerces them for boolean fields.

    Args:
        value: Raw string value to parse.

    Returns:
        Parsed value with inferred type.

    Examples:
        >>> parse_string_value("true")
        True
        >>> parse_string_value("9333")
        9333
        >>> parse_string_value("2.5")
        2.5
    """
    lower_value = value.lower()
    if lower_value in ("true", "false"):
        return lower_value == "true"

    if "." not in value:
        try:
            return int(value)
        except ValueError:
            pass
    else:
        try:
            return float(value)
        except ValueError:
            pass

    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Set a value at a dotted key path in a nested dictionary.

    Creates intermediate dictionaries as needed.

    Args:
        d: The dictionary to modify.
        key_path: Dotted key path (e.g., "ports.master").
        value: The value to set.

    Example:
        >>> d = {}
        >>> set_nested_key(d, "ports.master", 9334)
        >>> d
        {'ports': {'master': 9334}}
    """
    parts = key_path.split(".")
    current = d

    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    if parts:
        current[parts[-1]] = value
