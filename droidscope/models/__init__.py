from .device import (
    BuildInfo,
    DeviceStatus,
    MountInfo,
    NetworkInterface,
    RootStatus,
    ScreenInfo,
    Storage,
    StorageInfo,
)
from .entry import LogcatBuffer, LogcatEntry, LogFormat, LogLevel
from .files import DirectoryListing, FileCategory, FileInfo, FileSearchResult, FileType
from .packages import (
    InstallLocation,
    PackageFilter,
    PackageInfo,
    PermissionInfo,
    ProcessInfo,
    ProcessMemory,
    TopPackage,
)
from .performance import BatteryInfo, CpuInfo, CpuTimes, FpsData, MemoryInfo

__all__ = [
    "BatteryInfo",
    "BuildInfo",
    "CpuInfo",
    "CpuTimes",
    "DeviceStatus",
    "DirectoryListing",
    "FileCategory",
    "FileInfo",
    "FileSearchResult",
    "FileType",
    "FpsData",
    "InstallLocation",
    "LogFormat",
    "LogLevel",
    "LogcatBuffer",
    "LogcatEntry",
    "MemoryInfo",
    "MountInfo",
    "NetworkInterface",
    "PackageFilter",
    "PackageInfo",
    "PermissionInfo",
    "ProcessInfo",
    "ProcessMemory",
    "RootStatus",
    "ScreenInfo",
    "Storage",
    "StorageInfo",
    "TopPackage",
]
