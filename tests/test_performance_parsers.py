"""Tests for memory, battery, CPU and frame counter parsers."""

import pytest

from droidscope.exceptions import MissingFieldError
from droidscope.models import CpuInfo, CpuTimes, MemoryInfo
from droidscope.parsers import (
    apply_cpu_speeds,
    parse_battery_info,
    parse_cpu_speeds,
    parse_cpu_stat,
    parse_flips_count,
    parse_meminfo,
)

MEMINFO = "MemTotal:       11432996 kB\nMemFree:          197724 kB\nMemAvailable:    1680480 kB"

BATTERY_DUMP = """Current Battery Service state:
  AC powered: false
  USB powered: true
  status: 2
  health: 2
  present: true
  level: 87
  scale: 100
  voltage: 4312
  temperature: 285
  technology: Li-ion
"""

PROC_STAT = """cpu  2255 34 2290 22625563 6290 127 456 0 0 0
cpu0 1132 34 1441 11311718 3675 127 438 0 0 0
cpu1 1123 0 849 11313845 2614 0 18 0 0 0
intr 114930548 113199788 3 0 5 263 0 4 [... lots more numbers ...]
ctxt 1990473
btime 1062191376
"""


def test_parse_meminfo_example() -> None:
    """Test the three meminfo counters."""
    assert parse_meminfo(MEMINFO) == MemoryInfo(
        total_kb=11432996, free_kb=197724, available_kb=1680480
    )


def test_parse_meminfo_ignores_unknown_keys() -> None:
    """Test that other meminfo lines are skipped."""
    output = MEMINFO + "\nBuffers:           12345 kB\nCached:          2345678 kB\n"

    assert parse_meminfo(output).total_kb == 11432996


def test_parse_meminfo_missing_optional_counters() -> None:
    """Test that only MemTotal is required."""
    info = parse_meminfo("MemTotal:       2048 kB")

    assert info.total_kb == 2048
    assert info.free_kb == 0
    assert info.available_kb == 0


@pytest.mark.parametrize(
    "output",
    [
        "MemFree:          197724 kB\nMemAvailable:    1680480 kB",
        "MemTotal:       0 kB\nMemFree:          197724 kB",
        "",
    ],
)
def test_parse_meminfo_requires_total(output: str) -> None:
    """Test that a missing or zero MemTotal is a structural error."""
    with pytest.raises(MissingFieldError) as excinfo:
        parse_meminfo(output)

    assert excinfo.value.field == "MemTotal"


def test_parse_battery_info() -> None:
    """Test parsing a full battery dump."""
    battery = parse_battery_info(BATTERY_DUMP)

    assert battery.level == 87
    assert battery.temperature == 285
    assert battery.voltage == 4312
    assert battery.scale == 100
    assert battery.status == 2
    assert battery.health == 2
    assert battery.technology == "Li-ion"


def test_parse_battery_info_without_level() -> None:
    """Test that dropping the level line is a structural error."""
    output = "\n".join(
        line for line in BATTERY_DUMP.splitlines() if "level:" not in line
    )

    with pytest.raises(MissingFieldError) as excinfo:
        parse_battery_info(output)

    assert excinfo.value.report == "battery"
    assert excinfo.value.field == "level"


def test_parse_battery_info_ignores_non_numeric_values() -> None:
    """Test that malformed numeric values are skipped."""
    battery = parse_battery_info("level: 50\nvoltage: unknown\ntemperature: 300")

    assert battery.level == 50
    assert battery.voltage == 0
    assert battery.temperature == 300


def test_parse_cpu_stat_skips_aggregate() -> None:
    """Test that only numbered cores are returned."""
    cpus = parse_cpu_stat(PROC_STAT)

    assert [cpu.core for cpu in cpus] == [0, 1]
    assert cpus[0].times == CpuTimes(
        user=1132, nice=34, sys=1441, idle=11311718, iowait=3675, irq=127, softirq=438
    )
    assert all(cpu.speed_mhz is None for cpu in cpus)


def test_parse_cpu_stat_short_and_garbled_lines() -> None:
    """Test that short lines are dropped and bad counters become zero."""
    output = "cpu0 1 2 3\ncpu1 10 x 30 40 50 60 70\ncpufreq 1 2 3 4 5 6 7"
    cpus = parse_cpu_stat(output)

    assert len(cpus) == 1
    assert cpus[0].core == 1
    assert cpus[0].times.nice == 0
    assert cpus[0].times.softirq == 70


def test_parse_cpu_speeds() -> None:
    """Test kHz to MHz conversion."""
    assert parse_cpu_speeds("1800000\n2400000\n\nbad\n300000") == [1800, 2400, 300]


def test_apply_cpu_speeds_positional() -> None:
    """Test that speeds are attached by position."""
    cpus = [CpuInfo(core=i, times=CpuTimes()) for i in range(3)]
    result = apply_cpu_speeds(cpus, [1800, 2400])

    assert [cpu.speed_mhz for cpu in result] == [1800, 2400, None]


def test_parse_flips_count() -> None:
    """Test reading the SurfaceFlinger flip counter."""
    output = "Static screen stats:\n  Total frames: 1000\n  flips=48231, isSecure=0\n"

    assert parse_flips_count(output) == 48231


def test_parse_flips_count_missing() -> None:
    """Test that a dump without the counter fails."""
    with pytest.raises(MissingFieldError):
        parse_flips_count("SurfaceFlinger is not running")
