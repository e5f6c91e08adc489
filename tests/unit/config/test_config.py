# pyright: reportAny=false
import os
from pathlib import Path

import pendulum
import pydantic
import pytest
from pytest_mock import MockerFixture

from weedctl.config import (
    DATA_DIR_PREFIX,
    SERVICE_ORDER,
    ClusterConfig,
    ConfigLoadError,
    ConfigSourceName,
    ConfigValidationError,
    PortBinding,
    PortConflictError,
    default_data_dir,
    find_recent_data_dir,
)


class TestDefaults:
    def test_default_values(self) -> None:
        config = ClusterConfig.from_dict({})

        assert config.cluster.binary == "weed"
        assert config.cluster.verbosity == 1
        assert config.ports.master == 9333
        assert config.ports.master_grpc == 19333
        assert config.enabled_services() == ["master", "volume", "filer"]
        assert config.timeouts.startup == 60.0
        assert config.timeouts.grace_period == 5.0
        assert config.data_dir is None

    def test_config_is_frozen(self) -> None:
        config = ClusterConfig.from_dict({})

        with pytest.raises(pydantic.ValidationError):
            config.cluster = config.cluster  # pyright: ignore[reportAttributeAccessIssue]

    def test_unknown_keys_are_ignored(self) -> None:
        config = ClusterConfig.from_dict({"ports": {"gopher": 1}, "extra": {}})

        assert config.ports.master == 9333


class TestFromDict:
    def test_invalid_port_raises_validation_error(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = ClusterConfig.from_dict({"ports": {"master": 70000}}, source="cli")

        error = exc_info.value
        assert error.key == "ports.master"
        assert error.value == 70000
        assert error.source == "cli"

    def test_verbosity_out_of_range(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = ClusterConfig.from_dict({"cluster": {"verbosity": 4}})

        assert exc_info.value.key == "cluster.verbosity"

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = ClusterConfig.from_dict({"timeouts": {"poll_interval": 0}})

        assert exc_info.value.key == "timeouts.poll_interval"

    def test_port_conflict_between_services(self) -> None:
        with pytest.raises(PortConflictError) as exc_info:
            _ = ClusterConfig.from_dict({"ports": {"volume": 9333}})

        assert exc_info.value.port == 9333
        assert set(exc_info.value.services) == {"master", "volume"}

    def test_port_conflict_with_derived_metrics_port(self) -> None:
        # volume metrics listen on metrics + 1
        with pytest.raises(PortConflictError) as exc_info:
            _ = ClusterConfig.from_dict({"ports": {"filer": 9325}})

        assert set(exc_info.value.services) == {"volume.metrics", "filer"}

    def test_conflict_with_disabled_service_is_allowed(self) -> None:
        config = ClusterConfig.from_dict({"ports": {"s3": 9333}})

        assert config.ports.s3 == 9333

    def test_metrics_ports_free_when_metrics_disabled(self) -> None:
        config = ClusterConfig.from_dict(
            {"ports": {"filer": 9325}, "features": {"metrics": False}}
        )

        assert config.metrics_port("volume") is None


class TestDerivedValues:
    def test_bindings_include_grpc_and_metrics(self) -> None:
        config = ClusterConfig.from_dict({})

        assert config.bindings() == [
            PortBinding("master", "master", 9333),
            PortBinding("master.grpc", "master", 19333),
            PortBinding("master.metrics", "master", 9324),
            PortBinding("volume", "volume", 8080),
            PortBinding("volume.metrics", "volume", 9325),
            PortBinding("filer", "filer", 8888),
            PortBinding("filer.metrics", "filer", 9326),
        ]

    def test_s3_and_mq_have_no_metrics_port(self) -> None:
        config = ClusterConfig.from_dict({"services": {"s3": True, "mq": True}})

        assert config.metrics_port("s3") is None
        assert config.metrics_port("mq") is None
        assert config.enabled_services() == list(SERVICE_ORDER)

    def test_with_data_dir_returns_copy(self, tmp_path: Path) -> None:
        config = ClusterConfig.from_dict({})

        pinned = config.with_data_dir(tmp_path)

        assert pinned.data_dir == tmp_path
        assert config.data_dir is None

    def test_with_binary(self, tmp_path: Path) -> None:
        config = ClusterConfig.from_dict({}).with_binary(tmp_path / "weed")

        assert config.cluster.binary == str(tmp_path / "weed")

    def test_to_dict_round_trips_through_from_dict(self) -> None:
        config = ClusterConfig.from_dict({"ports": {"master": 9400}})

        assert ClusterConfig.from_dict(config.to_dict()) == config


class TestLoad:
    def test_layering(
        self,
        tmp_path: Path,
        user_config_path: Path,
    ) -> None:
        user_config_path.parent.mkdir(parents=True)
        user_config_path.write_text(
            "[ports]\nmaster = 9401\nvolume = 8081\nfiler = 8881\ns3 = 8001\n"
        )
        (tmp_path / "weedctl.toml").write_text(
            "[ports]\nvolume = 8082\nfiler = 8882\ns3 = 8002\n"
        )
        environ = {"FILER_PORT": "8883", "WEEDCTL_PORTS__S3": "8003"}

        config = ClusterConfig.load(
            cwd=tmp_path,
            environ=environ,
            cli_overrides={"ports": {"s3": 8004}},
        )

        assert config.ports.master == 9401  # user
        assert config.ports.volume == 8082  # project
        assert config.ports.filer == 8883  # legacy env
        assert config.ports.s3 == 8004  # cli

    def test_explicit_file_beats_project_file(
        self, tmp_path: Path, user_config_path: Path
    ) -> None:
        (tmp_path / "weedctl.toml").write_text("[ports]\nmaster = 9401\n")
        explicit = tmp_path / "explicit.toml"
        explicit.write_text("[cluster]\nverbosity = 3\n")

        config = ClusterConfig.load(config_path=explicit, cwd=tmp_path, environ={})

        assert config.cluster.verbosity == 3
        assert config.ports.master == 9333

    def test_env_beats_file(self, tmp_path: Path, user_config_path: Path) -> None:
        (tmp_path / "weedctl.toml").write_text("[cluster]\nbinary = 'from-file'\n")

        config = ClusterConfig.load(
            cwd=tmp_path, environ={"WEED_BINARY": "from-env"}
        )

        assert config.cluster.binary == "from-env"

    def test_sources_are_recorded(self, tmp_path: Path, user_config_path: Path) -> None:
        config = ClusterConfig.load(
            cwd=tmp_path, environ={}, cli_overrides={"cluster": {"verbosity": 0}}
        )

        names = [source.name for source in config.sources]
        assert names[0] is ConfigSourceName.CLI
        assert names[-1] is ConfigSourceName.DEFAULT
        assert config.sources[0].values == {"cluster": {"verbosity": 0}}

    def test_invalid_env_value_is_reported(
        self, tmp_path: Path, user_config_path: Path
    ) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = ClusterConfig.load(cwd=tmp_path, environ={"MASTER_PORT": "0"})

        assert exc_info.value.key == "ports.master"

    def test_broken_project_file(self, tmp_path: Path, user_config_path: Path) -> None:
        (tmp_path / "weedctl.toml").write_text("[ports\n")

        with pytest.raises(ConfigLoadError):
            _ = ClusterConfig.load(cwd=tmp_path, environ={})

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "c.toml"
        path.write_text("[services]\nmq = true\n")

        config = ClusterConfig.from_file(path)

        assert config.services.mq
        assert config.sources[0].name is ConfigSourceName.FILE


class TestDataDirs:
    def test_default_data_dir_is_created_and_timestamped(self, tmp_path: Path) -> None:
        path = default_data_dir(tmp_path)

        assert path.is_dir()
        assert path.parent == tmp_path
        assert path.name.startswith(DATA_DIR_PREFIX)
        assert len(path.name) == len(DATA_DIR_PREFIX) + len("YYYYMMDD-HHMMSS")

    def test_same_second_starts_get_distinct_dirs(
        self, tmp_path: Path, mocker: MockerFixture
    ) -> None:
        frozen = pendulum.datetime(2024, 5, 1, 12, 30, 45)
        _ = mocker.patch("weedctl.config._defaults.pendulum.now", return_value=frozen)

        first = default_data_dir(tmp_path)
        second = default_data_dir(tmp_path)
        third = default_data_dir(tmp_path)

        assert first.name == f"{DATA_DIR_PREFIX}20240501-123045"
        assert second.name == f"{DATA_DIR_PREFIX}20240501-123045-1"
        assert third.name == f"{DATA_DIR_PREFIX}20240501-123045-2"

    def test_find_recent_data_dir_picks_newest_by_mtime(self, tmp_path: Path) -> None:
        # Name order disagrees with mtime order.
        newer = tmp_path / f"{DATA_DIR_PREFIX}20240101-000000"
        older = tmp_path / f"{DATA_DIR_PREFIX}20240202-000000"
        for d, stamp in ((newer, 2_000_000), (older, 1_000_000)):
            d.mkdir()
            (d / "master.pid").write_text("1\n")
            os.utime(d, (stamp, stamp))

        assert find_recent_data_dir(tmp_path) == newer

    def test_cleaned_dir_with_only_logs_qualifies(self, tmp_path: Path) -> None:
        cleaned = tmp_path / f"{DATA_DIR_PREFIX}20240101-000000"
        cleaned.mkdir()
        (cleaned / "master.log").write_text("bye\n")

        assert find_recent_data_dir(tmp_path) == cleaned

    def test_empty_dir_is_ignored(self, tmp_path: Path) -> None:
        used = tmp_path / f"{DATA_DIR_PREFIX}20240101-000000"
        empty = tmp_path / f"{DATA_DIR_PREFIX}20240202-000000"
        used.mkdir()
        (used / "master.pid").write_text("1\n")
        os.utime(used, (1_000_000, 1_000_000))
        empty.mkdir()

        assert find_recent_data_dir(tmp_path) == used

    def test_find_recent_data_dir_none(self, tmp_path: Path) -> None:
        assert find_recent_data_dir(tmp_path) is None
