"""Device identity, display, storage, status and network records."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Storage(BaseModel):
    """Capacity of the data partition as printed by ``df``.

    Values keep the original unit formatting (e.g. "112G" or "117155236"), so
    they are strings rather than integers. All three are non-empty.
    """

    model_config = ConfigDict(frozen=True)

    total: str = Field(min_length=1)
    used: str = Field(min_length=1)
    free: str = Field(min_length=1)


class StorageInfo(BaseModel):
    """A mounted volume from ``df -k`` with byte counts."""

    model_config = ConfigDict(frozen=True)

    path: str
    filesystem: str
    total_bytes: int = Field(ge=0)
    used_bytes: int = Field(ge=0)
    free_bytes: int = Field(ge=0)
    percentage_used: float


class ScreenInfo(BaseModel):
    """Screen resolution from ``wm size``.

    The override size is only present when it differs from the panel's
    physical size.
    """

    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    override_width: int | None = None
    override_height: int | None = None

    @property
    def resolution(self) -> str:
        """Effective resolution as "WxH", preferring the override."""
        if self.override_width is not None and self.override_height is not None:
            return f"{self.override_width}x{self.override_height}"
        return f"{self.width}x{self.height}"


class BuildInfo(BaseModel):
    """Build identifiers read from system properties."""

    model_config = ConfigDict(frozen=True)

    security_patch: str | None = None
    build_id: str | None = None


class DeviceStatus(BaseModel):
    """Uptime, load and memory headline figures.

    Memory figures are in bytes. The load averages cover the last 1, 5 and
    15 minutes and are all 0.0 when ``/proc/loadavg`` could not be read.
    """

    model_config = ConfigDict(frozen=True)

    uptime_seconds: int = Field(ge=0)
    total_memory: int = Field(default=0, ge=0)
    free_memory: int = Field(default=0, ge=0)
    available_memory: int = Field(default=0, ge=0)
    load_average: tuple[float, float, float] = (0.0, 0.0, 0.0)


class MountInfo(BaseModel):
    """A mounted file system from ``/proc/mounts``."""

    model_config = ConfigDict(frozen=True)

    device: str
    mount_point: str
    fs_type: str
    options: tuple[str, ...] = ()

    @property
    def read_only(self) -> bool:
        return "ro" in self.options


class NetworkInterface(BaseModel):
    """A network interface from ``ip addr show``.

    ``state`` is the operational state as printed (UP, DOWN, UNKNOWN...).
    ``ip_address`` is the first IPv4 address without its prefix length.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    state: str = "UNKNOWN"
    mac_address: str | None = None
    ip_address: str | None = None
    ipv6_addresses: tuple[str, ...] = ()

    @property
    def is_up(self) -> bool:
        return self.state == "UP"


class RootStatus(str, Enum):
    """How much root access the shell user has."""

    ROOTED = "rooted"
    SU_BINARY_EXISTS = "su_binary_exists"
    NOT_ROOTED = "not_rooted"
