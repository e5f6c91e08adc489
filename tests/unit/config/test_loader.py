# pyright: reportAny=false, reportUnknownArgumentType=false
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from weedctl.config._loader import (
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from weedctl.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


class TestReadTomlFile:
    def test_parses_valid_toml(self, fs: FakeFilesystem) -> None:
        content = """
[ports]
master = 9334

[services]
s3 = true
"""
        path = Path("/cfg/weedctl.toml")
        fs.create_file(path, contents=content)

        result = read_toml_file(path)

        assert result == {"ports": {"master": 9334}, "services": {"s3": True}}

    def test_raises_file_not_found_for_missing_file(self, fs: FakeFilesystem) -> None:
        with pytest.raises(FileNotFoundError):
            read_toml_file(Path("/cfg/missing.toml"))

    def test_config_load_error_includes_line_and_column(
        self, fs: FakeFilesystem
    ) -> None:
        content = """[cluster]
binary = "weed"

[ports
"""
        path = Path("/cfg/broken.toml")
        fs.create_file(path, contents=content)

        with pytest.raises(ConfigLoadError) as exc_info:
            read_toml_file(path)

        error = exc_info.value
        assert error.path == path
        assert error.line == 4
        assert error.column is not None
        assert exc_info.value.__cause__ is not None


class TestDeepMerge:
    def test_override_wins_for_scalars(self) -> None:
        result = deep_merge({"ports": {"master": 1}}, {"ports": {"master": 2}})
        assert result == {"ports": {"master": 2}}

    def test_nested_keys_are_preserved(self) -> None:
        base = {"ports": {"master": 1, "volume": 2}}
        result = deep_merge(base, {"ports": {"volume": 3}})
        assert result == {"ports": {"master": 1, "volume": 3}}

    def test_inputs_are_not_modified(self) -> None:
        base = {"ports": {"master": 1}}
        override = {"ports": {"volume": 2}}

        result = deep_merge(base, override)
        result["ports"]["master"] = 99

        assert base == {"ports": {"master": 1}}
        assert override == {"ports": {"volume": 2}}

    def test_lists_are_replaced(self) -> None:
        result = deep_merge({"a": [1, 2]}, {"a": [3]})
        assert result == {"a": [3]}


class TestParseStringValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("true", True),
            ("FALSE", False),
            ("9333", 9333),
            ("0", 0),
            ("2.5", 2.5),
            ("127.0.0.1", "127.0.0.1"),
            ("/tmp/seaweedfs-x", "/tmp/seaweedfs-x"),
            ('["a", "b"]', ["a", "b"]),
            ("weed", "weed"),
        ],
    )
    def test_infers_types(self, raw: str, expected: object) -> None:
        assert parse_string_value(raw) == expected

    def test_one_and_zero_stay_integers(self) -> None:
        assert parse_string_value("1") == 1
        assert parse_string_value("1") is not True


class TestSetNestedKey:
    def test_creates_intermediate_dicts(self) -> None:
        d: dict[str, object] = {}
        set_nested_key(d, "ports.master", 9334)
        assert d == {"ports": {"master": 9334}}

    def test_replaces_scalar_in_the_way(self) -> None:
        d: dict[str, object] = {"ports": 5}
        set_nested_key(d, "ports.master", 9334)
        assert d == {"ports": {"master": 9334}}


class TestParseEnvVars:
    def test_legacy_names(self) -> None:
        env = {
            "MASTER_PORT": "9400",
            "START_S3": "true",
            "WEED_DATA_DIR": "/data/sw",
            "VERBOSE": "3",
            "STARTUP_TIMEOUT": "12.5",
        }

        result = parse_env_vars(env)

        assert result == {
            "ports": {"master": 9400},
            "services": {"s3": True},
            "cluster": {"data_dir": "/data/sw", "verbosity": 3},
            "timeouts": {"startup": 12.5},
        }

    def test_prefixed_nested_names(self) -> None:
        env = {"WEEDCTL_PORTS__FILER": "8899", "WEEDCTL_LOGGING__LEVEL": "debug"}

        result = parse_env_vars(env)

        assert result == {"ports": {"filer": 8899}, "logging": {"level": "debug"}}

    def test_prefixed_names_win_over_legacy(self) -> None:
        env = {"MASTER_PORT": "9400", "WEEDCTL_PORTS__MASTER": "9500"}

        result = parse_env_vars(env)

        assert result["ports"]["master"] == 9500

    def test_reserved_and_unrelated_names_are_ignored(self) -> None:
        env = {
            "WEEDCTL_CONFIG": "/etc/weedctl.toml",
            "WEEDCTL_DEBUG": "1",
            "HOME": "/root",
            "WEEDCTL_": "x",
        }

        assert parse_env_vars(env) == {}
