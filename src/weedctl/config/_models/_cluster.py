"""Cluster configuration section models.

Each section maps to a TOML table of the same name. All models are frozen
and ignore unknown keys.
"""

from typing import Annotated, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from weedctl.config._models._common import Port, Seconds  # noqa: TC001


class ClusterSection(BaseModel):
    """General cluster settings.

    Attributes:
        data_dir: Run directory holding service storage, PID and log files.
            Empty means a fresh timestamped directory under the temp dir.
        binary: Name or path of the weed binary.
        verbosity: Glog verbosity passed to every subprocess (``-v``).
        host: Address services advertise and the supervisor probes.
        bind: Address services bind their listeners to.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    data_dir: str = ""
    binary: str = "weed"
    verbosity: Annotated[int, Field(ge=0, le=3)] = 1
    host: str = "127.0.0.1"
    bind: str = "0.0.0.0"  # noqa: S104


class PortsConfig(BaseModel):
    """Listener ports.

    The master's gRPC port is always ``master + 10000``. When metrics are
    enabled, master, volume and filer expose metrics on ``metrics``,
    ``metrics + 1`` and ``metrics + 2``.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    master: Port = 9333
    volume: Port = 8080
    filer: Port = 8888
    s3: Port = 8000
    mq: Port = 17777
    metrics: Port = 9324

    @property
    def master_grpc(self) -> int:
        """Return the master's gRPC port."""
        return self.master + 10000


class ServicesConfig(BaseModel):
    """Which services to launch."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    master: bool = True
    volume: bool = True
    filer: bool = True
    s3: bool = False
    mq: bool = False


class LimitsConfig(BaseModel):
    """Storage sizing passed through to the services.

    Attributes:
        volume_max: Maximum number of volumes on the volume server.
        volume_size_limit_mb: Per-volume size limit enforced by the master.
        filer_max_mb: Chunk size limit for filer uploads.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    volume_max: Annotated[int, Field(ge=1)] = 100
    volume_size_limit_mb: Annotated[int, Field(ge=1)] = 1024
    filer_max_mb: Annotated[int, Field(ge=1)] = 256


class FeaturesConfig(BaseModel):
    """Feature toggles.

    Attributes:
        raft: Run the master with the hashicorp raft implementation.
        metrics: Expose Prometheus metrics on master, volume and filer.
        detach: Return after startup instead of blocking until interrupted.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    raft: bool = True
    metrics: bool = True
    detach: bool = False


class TimeoutsConfig(BaseModel):
    """Timing knobs, all in seconds.

    Attributes:
        startup: Readiness deadline per probe.
        health_check: Timeout for the post-start cluster health request.
        poll_interval: Delay between readiness probe attempts.
        grace_period: How long a process may take to honour SIGTERM.
        kill_timeout: How long to wait for exit after SIGKILL.
        mq_settle: Pause after the MQ broker is reachable, letting it register.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    startup: Seconds = 60.0
    health_check: Seconds = 30.0
    poll_interval: Seconds = 2.0
    grace_period: Seconds = 5.0
    kill_timeout: Seconds = 5.0
    mq_settle: Annotated[float, Field(ge=0)] = 10.0


class S3Config(BaseModel):
    """S3 gateway settings."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    config_file: str = ""
