"""Telemetry collection on top of a command executor.

`TelemetryCollector` pairs each device command with its report parser. The
single-probe methods raise typed errors; the snapshot methods run many probes
and report each one as an `Outcome`, so one failing probe never hides the
others.
"""

from __future__ import annotations

import logging
import shlex
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import (
    DeviceFileNotFoundError,
    DroidScopeError,
    ExecutionError,
    PackageNotFoundError,
    ParseError,
    ProcessNotFoundError,
)
from .executor import CommandExecutor
from .filters import EntryPredicate, filter_entries
from .models import (
    BatteryInfo,
    BuildInfo,
    CpuInfo,
    DeviceStatus,
    DirectoryListing,
    FileInfo,
    FileSearchResult,
    FpsData,
    LogcatBuffer,
    LogcatEntry,
    MemoryInfo,
    MountInfo,
    NetworkInterface,
    PackageFilter,
    PackageInfo,
    PermissionInfo,
    ProcessInfo,
    ProcessMemory,
    RootStatus,
    ScreenInfo,
    Storage,
    StorageInfo,
    TopPackage,
)
from .parsers import (
    SU_PATHS,
    apply_cpu_speeds,
    find_processes,
    find_su_binaries,
    parse_battery_info,
    parse_battery_level,
    parse_cpu_speeds,
    parse_cpu_stat,
    parse_device_status,
    parse_df_output,
    parse_directory_listing,
    parse_file_info,
    parse_find_output,
    parse_flips_count,
    parse_logcat_buffers,
    parse_logcat_output,
    parse_max_refresh_rate,
    parse_meminfo,
    parse_mounts,
    parse_network_interfaces,
    parse_package_dump,
    parse_package_list,
    parse_permissions,
    parse_process_list,
    parse_process_status,
    parse_property,
    parse_running_services,
    parse_screen_size,
    parse_storage,
    parse_storage_info,
    parse_top_package,
    parse_uid,
)

logger = logging.getLogger(__name__)

CPU_SPEED_COMMAND = "cat /sys/devices/system/cpu/cpu*/cpufreq/scaling_cur_freq"


class OutcomeStatus(str, Enum):
    """Result class of one probe."""

    OK = "ok"
    TRANSPORT_ERROR = "transport_error"
    STRUCTURAL_ERROR = "structural_error"


class Outcome(BaseModel):
    """The result of one probe within a snapshot.

    Exactly one of two shapes: ``status == OK`` with ``value`` set (possibly
    None when the attribute is simply absent on the device), or an error
    status with ``error`` describing the failure.

    Attributes:
        status: Whether the probe succeeded and, if not, which error class.
        value: The parsed record on success.
        error: Error message on failure.
        exception: The original exception on failure. Not serialized.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: OutcomeStatus
    value: Any = None
    error: str | None = None
    exception: Exception | None = Field(default=None, exclude=True, repr=False)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    @classmethod
    def success(cls, value: Any) -> Outcome:
        return cls(status=OutcomeStatus.OK, value=value)

    @classmethod
    def failure(cls, error: DroidScopeError) -> Outcome:
        status = (
            OutcomeStatus.TRANSPORT_ERROR
            if isinstance(error, ExecutionError)
            else OutcomeStatus.STRUCTURAL_ERROR
        )
        return cls(status=status, error=str(error), exception=error)

    @classmethod
    def capture(cls, probe: Callable[[], Any]) -> Outcome:
        """Run a probe and wrap its result.

        Execution and parse errors become failed outcomes. Any other
        exception is a bug and propagates.
        """
        try:
            return cls.success(probe())
        except (ExecutionError, ParseError) as e:
            logger.debug(f"Probe failed: {e}")
            return cls.failure(e)

    def unwrap(self) -> Any:
        """Return the value, or raise the error the probe failed with."""
        if self.ok:
            return self.value
        if self.exception is not None:
            raise self.exception
        raise DroidScopeError(self.error or "probe failed")


class DeviceSnapshot(BaseModel):
    """Device identity and optional sub-records, each independently fallible."""

    model_config = ConfigDict(frozen=True)

    serial: str
    model: Outcome
    manufacturer: Outcome
    android_version: Outcome
    abi: Outcome
    slot: Outcome
    battery: Outcome
    storage: Outcome
    screen: Outcome
    refresh_rate: Outcome
    build: Outcome

    def to_summary(self) -> dict[str, Any]:
        """Flatten to plain values, with None for failed probes."""
        summary: dict[str, Any] = {"serial": self.serial}
        for name, outcome in self:
            if isinstance(outcome, Outcome):
                value = outcome.value if outcome.ok else None
                summary[name] = value.model_dump() if isinstance(value, BaseModel) else value
        return summary


class PerformanceSnapshot(BaseModel):
    """Memory, battery, CPU and frame counter readings."""

    model_config = ConfigDict(frozen=True)

    memory: Outcome
    battery: Outcome
    cpu: Outcome
    fps: Outcome


class TelemetryCollector:
    """Collects typed telemetry from a device.

    Examples:
        >>> collector = TelemetryCollector(AdbShellExecutor(serial="emulator-5554"))
        >>> collector.get_memory_info().total_kb
        11432996
        >>> snapshot = collector.device_snapshot()
        >>> snapshot.battery.value
        87
    """

    def __init__(self, executor: CommandExecutor, max_workers: int = 1) -> None:
        """Initialize the collector.

        Args:
            executor: Command channel to the device.
            max_workers: How many probes a snapshot may run at once. With 1,
                probes run serially on the calling thread. Raise it only if
                the executor supports concurrent calls.

        Raises:
            ValueError: If max_workers is less than 1.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.executor = executor
        self.max_workers = max_workers

    def _run(self, command: str) -> str:
        return self.executor.execute(command)

    # Device

    def get_property(self, key: str) -> str | None:
        return parse_property(self._run(f"getprop {key}"))

    def get_storage(self) -> Storage | None:
        return parse_storage(self._run("df /data"))

    def get_battery_level(self) -> int | None:
        return parse_battery_level(self._run("dumpsys battery"))

    def get_screen_info(self) -> ScreenInfo | None:
        return parse_screen_size(self._run("wm size"))

    def get_refresh_rate(self) -> int | None:
        return parse_max_refresh_rate(self._run("dumpsys display"))

    def get_build_info(self) -> BuildInfo:
        return BuildInfo(
            security_patch=self.get_property("ro.build.version.security_patch"),
            build_id=self.get_property("ro.build.id"),
        )

    def get_device_status(self) -> DeviceStatus:
        """Read uptime, memory and load averages.

        A failure to read ``/proc/loadavg`` is logged and the averages are
        left at 0.0.
        """
        uptime = self._run("cat /proc/uptime")
        meminfo = self._run("cat /proc/meminfo")
        try:
            loadavg = self._run("cat /proc/loadavg")
        except ExecutionError as e:
            logger.debug(f"Load averages unavailable: {e}")
            loadavg = None
        return parse_device_status(uptime, meminfo, loadavg)

    def get_mounts(self) -> list[MountInfo]:
        return parse_mounts(self._run("cat /proc/mounts"))

    def get_network_interfaces(
        self, include_loopback: bool = False
    ) -> list[NetworkInterface]:
        return parse_network_interfaces(self._run("ip addr show"), include_loopback)

    def get_root_status(self) -> RootStatus:
        """Check whether the shell runs as root or a su binary is installed."""
        if parse_uid(self._run("id")) == 0:
            return RootStatus.ROOTED
        listing = self._run(f"ls -l {' '.join(SU_PATHS)}")
        if find_su_binaries(listing):
            return RootStatus.SU_BINARY_EXISTS
        return RootStatus.NOT_ROOTED

    # Performance

    def get_memory_info(self) -> MemoryInfo:
        return parse_meminfo(self._run("cat /proc/meminfo"))

    def get_battery_info(self) -> BatteryInfo:
        return parse_battery_info(self._run("dumpsys battery"))

    def get_cpu_info(self) -> list[CpuInfo]:
        """Read per-core counters and attach clock speeds when readable.

        A failure to read clock speeds is logged and ignored.
        """
        cpus = parse_cpu_stat(self._run("cat /proc/stat"))
        try:
            speeds = parse_cpu_speeds(self._run(CPU_SPEED_COMMAND))
        except ExecutionError as e:
            logger.debug(f"CPU speeds unavailable: {e}")
            return cpus
        return apply_cpu_speeds(cpus, speeds)

    def get_flips_count(self) -> FpsData:
        flips = parse_flips_count(self._run("dumpsys SurfaceFlinger"))
        return FpsData(flips=flips, timestamp_ms=int(time.time() * 1000))

    # Files

    def list_directory(self, path: str) -> DirectoryListing:
        output = self._run(f"ls -la --time-style=+%s {shlex.quote(path)}")
        return parse_directory_listing(output, path)

    def get_file_info(self, path: str) -> FileInfo:
        """Stat a single path.

        Raises:
            DeviceFileNotFoundError: If the listing yields no entry.
        """
        output = self._run(f"ls -la --time-style=+%s -d {shlex.quote(path)}")
        file_info = parse_file_info(output, path)
        if file_info is None:
            raise DeviceFileNotFoundError(path)
        return file_info

    def search_files(
        self, base_path: str, pattern: str, max_depth: int = 3
    ) -> list[FileSearchResult]:
        """Find paths under ``base_path`` whose name matches a glob.

        Args:
            base_path: Directory to search from.
            pattern: Shell glob matched against names, e.g. "*.jpg".
            max_depth: How many directory levels below ``base_path`` to
                descend.

        Raises:
            ValueError: If max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError("max_depth must not be negative")
        command = (
            f"find {shlex.quote(base_path)} -maxdepth {max_depth}"
            f" -name {shlex.quote(pattern)} -exec stat -c '%F|%s|%n' {{}} +"
        )
        return parse_find_output(self._run(command))

    def list_storage_volumes(self) -> list[StorageInfo]:
        return parse_df_output(self._run("df -k"))

    def get_storage_info(self, path: str) -> StorageInfo:
        """Report the volume holding ``path``.

        Raises:
            DeviceFileNotFoundError: If ``df`` reports no matching volume.
        """
        storage = parse_storage_info(self._run(f"df -k {shlex.quote(path)}"), path)
        if storage is None:
            raise DeviceFileNotFoundError(path)
        return storage

    # Packages and processes

    def list_packages(self, package_filter: PackageFilter = PackageFilter.ALL) -> list[str]:
        command = "pm list packages"
        if package_filter.flag:
            command = f"{command} {package_filter.flag}"
        return parse_package_list(self._run(command))

    def get_package_info(self, package_name: str) -> PackageInfo:
        """Dump one package.

        Raises:
            PackageNotFoundError: If the dump carries none of the known fields.
        """
        output = self._run(f"pm dump {shlex.quote(package_name)}")
        info = parse_package_dump(output, package_name)
        if not info.has_details:
            raise PackageNotFoundError(package_name)
        return info

    def get_package_permissions(self, package_name: str) -> list[PermissionInfo]:
        return parse_permissions(self._run(f"pm dump {shlex.quote(package_name)}"))

    def get_top_package(self) -> TopPackage:
        return parse_top_package(self._run("dumpsys activity"))

    def list_processes(self) -> list[ProcessInfo]:
        return parse_process_list(self._run("ps"))

    def find_processes(self, name: str) -> list[ProcessInfo]:
        return find_processes(self.list_processes(), name)

    def get_process_memory(self, pid: int) -> ProcessMemory:
        """Read the memory figures of one process.

        Raises:
            ProcessNotFoundError: If the status report is empty or nameless.
        """
        memory = parse_process_status(self._run(f"cat /proc/{int(pid)}/status"), pid)
        if memory is None:
            raise ProcessNotFoundError(pid)
        return memory

    def list_running_services(self) -> list[str]:
        return parse_running_services(self._run("dumpsys activity services"))

    # Logcat

    def read_logcat(
        self,
        buffer: LogcatBuffer = LogcatBuffer.DEFAULT,
        lines: int = 500,
        filter: EntryPredicate | None = None,
    ) -> list[LogcatEntry]:
        """Dump the most recent entries of a buffer.

        Args:
            buffer: Buffer to read.
            lines: Maximum number of lines to fetch.
            filter: Optional predicate applied after parsing.

        Returns:
            Parsed entries, oldest first. Blank lines are skipped.
        """
        output = self._run(f"logcat -d -b {buffer.selector} -t {lines}")
        return filter_entries(parse_logcat_output(output, skip_blank=True), filter)

    def get_logcat_buffers(self) -> list[str]:
        return parse_logcat_buffers(self._run("logcat -g"))

    # Snapshots

    def _run_probes(self, probes: dict[str, Callable[[], Any]]) -> dict[str, Outcome]:
        if self.max_workers == 1:
            return {name: Outcome.capture(probe) for name, probe in probes.items()}

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                name: pool.submit(Outcome.capture, probe)
                for name, probe in probes.items()
            }
            return {name: future.result() for name, future in futures.items()}

    def device_snapshot(self, serial: str | None = None) -> DeviceSnapshot:
        """Collect identity, battery, storage and display information.

        Args:
            serial: Serial to report. Defaults to the executor's ``serial``
                attribute when it has one.

        Returns:
            DeviceSnapshot with one outcome per attribute.
        """
        if serial is None:
            serial = getattr(self.executor, "serial", None) or ""

        outcomes = self._run_probes(
            {
                "model": partial(self.get_property, "ro.product.model"),
                "manufacturer": partial(self.get_property, "ro.product.manufacturer"),
                "android_version": partial(self.get_property, "ro.build.version.release"),
                "abi": partial(self.get_property, "ro.product.cpu.abi"),
                "slot": partial(self.get_property, "ro.boot.slot_suffix"),
                "battery": self.get_battery_level,
                "storage": self.get_storage,
                "screen": self.get_screen_info,
                "refresh_rate": self.get_refresh_rate,
                "build": self.get_build_info,
            }
        )
        return DeviceSnapshot(serial=serial, **outcomes)

    def performance_snapshot(self) -> PerformanceSnapshot:
        outcomes = self._run_probes(
            {
                "memory": self.get_memory_info,
                "battery": self.get_battery_info,
                "cpu": self.get_cpu_info,
                "fps": self.get_flips_count,
            }
        )
        return PerformanceSnapshot(**outcomes)
