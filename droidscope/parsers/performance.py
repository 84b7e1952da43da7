"""Parsers for memory, battery, CPU and frame counter reports."""

from __future__ import annotations

import re

from ..exceptions import MissingFieldError
from ..models import BatteryInfo, CpuInfo, CpuTimes, MemoryInfo

_CPU_LINE = re.compile(r"^cpu(\d+)$")
_FLIPS_PATTERN = re.compile(r"flips=(\d+)")

_CPU_FIELDS = ("user", "nice", "sys", "idle", "iowait", "irq", "softirq")
_MEMINFO_KEYS = {
    "MemTotal": "total_kb",
    "MemFree": "free_kb",
    "MemAvailable": "available_kb",
}
_BATTERY_INT_KEYS = {
    "level": "level",
    "temperature": "temperature",
    "voltage": "voltage",
    "scale": "scale",
    "status": "status",
    "health": "health",
}


def _to_int(value: str, default: int = 0) -> int:
    try:
        return int(value)
    except ValueError:
        return default


def parse_meminfo(output: str) -> MemoryInfo:
    """Parse ``/proc/meminfo``.

    Example:
        MemTotal:       11432996 kB
        MemFree:          197724 kB
        MemAvailable:    1680480 kB

    Args:
        output: Content of ``cat /proc/meminfo``.

    Returns:
        MemoryInfo with the three counters in kilobytes.

    Raises:
        MissingFieldError: If ``MemTotal`` is missing or zero.
    """
    values: dict[str, int] = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        field = _MEMINFO_KEYS.get(parts[0].rstrip(":"))
        if field:
            values[field] = max(_to_int(parts[1]), 0)

    if not values.get("total_kb"):
        raise MissingFieldError("meminfo", "MemTotal")
    return MemoryInfo(**values)


def parse_battery_info(output: str) -> BatteryInfo:
    """Parse ``dumpsys battery``.

    Each ``key: value`` line is split at the first colon. Numeric keys with
    a non-numeric value are ignored, as are unknown keys.

    Args:
        output: Output of ``dumpsys battery``.

    Returns:
        BatteryInfo built from the recognised keys.

    Raises:
        MissingFieldError: If no numeric ``level`` line is present.
    """
    values: dict[str, int | str] = {}
    for line in output.splitlines():
        key, sep, value = line.strip().partition(":")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()

        if key == "technology" and value:
            values["technology"] = value
            continue
        field = _BATTERY_INT_KEYS.get(key)
        if field and value.isdigit():
            values[field] = int(value)

    if "level" not in values:
        raise MissingFieldError("battery", "level")
    return BatteryInfo(**values)


def parse_cpu_stat(output: str) -> list[CpuInfo]:
    """Parse per-core counters from ``/proc/stat``.

    The aggregate ``cpu`` line is skipped; only ``cpu<N>`` lines with at
    least seven counters are kept. Counters that are not integers become 0.

    Returns:
        One CpuInfo per core, in the order listed, without clock speeds.
    """
    cpus = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 8:
            continue
        match = _CPU_LINE.match(parts[0])
        if not match:
            continue

        times = CpuTimes(
            **{
                field: max(_to_int(value), 0)
                for field, value in zip(_CPU_FIELDS, parts[1:8])
            }
        )
        cpus.append(CpuInfo(core=int(match.group(1)), times=times))
    return cpus


def parse_cpu_speeds(output: str) -> list[int]:
    """Parse ``scaling_cur_freq`` values (kHz) into MHz.

    Lines that are not integers are skipped, so the result is positional
    over the readable cores only.
    """
    speeds = []
    for line in output.splitlines():
        value = line.strip()
        if value.isdigit():
            speeds.append(int(value) // 1000)
    return speeds


def apply_cpu_speeds(cpus: list[CpuInfo], speeds: list[int]) -> list[CpuInfo]:
    """Attach clock speeds to cores by position.

    Cores beyond the end of ``speeds`` keep ``speed_mhz=None``.
    """
    return [
        cpu.model_copy(update={"speed_mhz": speeds[index]})
        if index < len(speeds)
        else cpu
        for index, cpu in enumerate(cpus)
    ]


def parse_flips_count(output: str) -> int:
    """Extract the page flip counter from ``dumpsys SurfaceFlinger``.

    Raises:
        MissingFieldError: If no ``flips=`` value is present.
    """
    for line in output.splitlines():
        match = _FLIPS_PATTERN.search(line)
        if match:
            return int(match.group(1))
    raise MissingFieldError("SurfaceFlinger", "flips")
