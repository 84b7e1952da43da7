"""Memory, battery, CPU and frame counter records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MemoryInfo(BaseModel):
    """System memory counters from ``/proc/meminfo`` in kilobytes.

    The counters are independent; ``available_kb`` may exceed ``total_kb``
    on some kernels under pressure and is not checked against it.
    """

    model_config = ConfigDict(frozen=True)

    total_kb: int = Field(ge=0)
    free_kb: int = Field(default=0, ge=0)
    available_kb: int = Field(default=0, ge=0)


class BatteryInfo(BaseModel):
    """Battery state from ``dumpsys battery``.

    Attributes:
        level: Charge level, usually 0-100 (relative to ``scale``).
        temperature: Temperature in tenths of a degree Celsius.
        voltage: Voltage in millivolts.
        scale: Maximum value of ``level`` when reported.
        status: Raw BatteryManager status code when reported.
        health: Raw BatteryManager health code when reported.
        technology: Cell chemistry (e.g. "Li-ion") when reported.
    """

    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=0)
    temperature: int = 0
    voltage: int = Field(default=0, ge=0)
    scale: int | None = None
    status: int | None = None
    health: int | None = None
    technology: str | None = None

    @property
    def temperature_celsius(self) -> float:
        return self.temperature / 10.0


class CpuTimes(BaseModel):
    """Accumulated jiffies of one core, as listed in ``/proc/stat``."""

    model_config = ConfigDict(frozen=True)

    user: int = 0
    nice: int = 0
    sys: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0

    @property
    def total(self) -> int:
        return (
            self.user
            + self.nice
            + self.sys
            + self.idle
            + self.iowait
            + self.irq
            + self.softirq
        )


class CpuInfo(BaseModel):
    """A logical core's counters plus its current clock, when known."""

    model_config = ConfigDict(frozen=True)

    core: int = Field(ge=0)
    times: CpuTimes
    speed_mhz: int | None = None


class FpsData(BaseModel):
    """SurfaceFlinger page flip counter sampled at ``timestamp_ms``.

    Two samples give a frame rate: ``delta(flips) / delta(timestamp_ms) * 1000``.
    """

    model_config = ConfigDict(frozen=True)

    flips: int = Field(ge=0)
    timestamp_ms: int = Field(ge=0)
