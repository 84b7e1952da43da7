"""Package, permission and process records."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class InstallLocation(str, Enum):
    """Preferred install location declared by a package."""

    AUTO = "auto"
    INTERNAL_ONLY = "internalOnly"
    PREFER_EXTERNAL = "preferExternal"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> InstallLocation:
        try:
            return cls(value.strip())
        except ValueError:
            return cls.UNKNOWN


class PackageFilter(str, Enum):
    """Subsets of installed packages understood by ``pm list packages``."""

    ALL = "all"
    SYSTEM = "system"
    THIRD_PARTY = "third_party"
    ENABLED = "enabled"
    DISABLED = "disabled"

    @property
    def flag(self) -> str | None:
        """Switch passed to ``pm list packages``, or None for all packages."""
        return _PACKAGE_FILTER_FLAGS[self]


_PACKAGE_FILTER_FLAGS = {
    PackageFilter.ALL: None,
    PackageFilter.SYSTEM: "-s",
    PackageFilter.THIRD_PARTY: "-3",
    PackageFilter.ENABLED: "-e",
    PackageFilter.DISABLED: "-d",
}


class PackageInfo(BaseModel):
    """Details of an installed package from ``pm dump``.

    Package dumps vary between OS versions and vendors, so every attribute
    other than the name is optional. A missing attribute is ``None``.
    """

    model_config = ConfigDict(frozen=True)

    package_name: str
    version_name: str | None = None
    version_code: int | None = None
    label: str | None = None
    install_location: InstallLocation | None = None
    flags: tuple[str, ...] = ()
    first_install_time: str | None = None
    last_update_time: str | None = None
    code_path: str | None = None
    data_dir: str | None = None
    is_system_app: bool | None = None
    enabled: bool | None = None

    @property
    def has_details(self) -> bool:
        """Whether the dump yielded at least one known attribute."""
        return any(
            value is not None and value != ()
            for name, value in self
            if name != "package_name"
        )


class PermissionInfo(BaseModel):
    """A runtime or install permission and whether it is granted."""

    model_config = ConfigDict(frozen=True)

    name: str
    granted: bool


class TopPackage(BaseModel):
    """The package owning the foreground activity.

    An empty ``name`` means no foreground activity was reported.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    pid: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.name


class ProcessInfo(BaseModel):
    """A running process from ``ps``."""

    model_config = ConfigDict(frozen=True)

    pid: int = Field(ge=0)
    user: str
    name: str


class ProcessMemory(BaseModel):
    """Virtual memory figures of one process from ``/proc/<pid>/status``.

    Kernel threads have no ``Vm*`` lines, so both sizes may be None.
    """

    model_config = ConfigDict(frozen=True)

    pid: int = Field(ge=0)
    name: str
    vm_size_kb: int | None = None
    vm_rss_kb: int | None = None
    vm_swap_kb: int | None = None
