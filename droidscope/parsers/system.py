"""Parsers for device identity, display and storage reports.

These reports back the optional parts of a device snapshot. A report that
does not carry the expected value yields ``None`` rather than an error, so
one missing attribute never hides its siblings.
"""

from __future__ import annotations

import re

from ..models import ScreenInfo, Storage

_SIZE_PATTERN = re.compile(r"(\d+)\s*x\s*(\d+)")
_REFRESH_RATE_PATTERN = re.compile(r"refreshrate[\s:=]*([0-9]+(?:\.[0-9]+)?)")


def parse_property(output: str) -> str | None:
    """Parse the output of ``getprop <key>``.

    Returns:
        The trimmed property value, or None when the property is unset.
    """
    value = output.strip()
    return value or None


def parse_storage(output: str) -> Storage | None:
    """Parse the data partition line of ``df /data``.

    Only the last non-empty line is considered, which skips the header.

    Example:
        /dev/block/dm-5  117155236 40245180 76778600  35% /data

    Returns:
        Storage with total, used and free as printed, or None when the line
        has fewer than four columns or the sizes are not numeric (an error
        message from df).
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return None

    parts = lines[-1].split()
    if len(parts) < 4:
        return None
    total, used, free = parts[1:4]
    if not all(value[:1].isdigit() for value in (total, used, free)):
        return None
    return Storage(total=total, used=used, free=free)


def parse_battery_level(output: str) -> int | None:
    """Extract the charge level from ``dumpsys battery``.

    Returns:
        The value of the first ``level:`` line, or None if absent or not
        numeric.
    """
    for line in output.splitlines():
        if "level:" not in line:
            continue
        _, _, value = line.partition(":")
        value = value.strip()
        return int(value) if value.isdigit() else None
    return None


def parse_screen_size(output: str) -> ScreenInfo | None:
    """Parse ``wm size``.

    Example:
        Physical size: 1080x2400
        Override size: 720x1600

    Returns:
        ScreenInfo, or None when no physical size is reported.
    """
    physical: tuple[int, int] | None = None
    override: tuple[int, int] | None = None

    for line in output.splitlines():
        match = _SIZE_PATTERN.search(line)
        if not match:
            continue
        size = (int(match.group(1)), int(match.group(2)))
        if line.strip().lower().startswith("override"):
            override = size
        elif physical is None:
            physical = size

    if physical is None:
        return None
    return ScreenInfo(
        width=physical[0],
        height=physical[1],
        override_width=override[0] if override else None,
        override_height=override[1] if override else None,
    )


def parse_max_refresh_rate(output: str) -> int | None:
    """Find the highest refresh rate mentioned in ``dumpsys display``.

    Lines are matched case-insensitively on ``refreshRate`` and the number
    following it (``refreshRate 120.00``, ``refreshRate=90``) is truncated
    to an integer.

    Returns:
        The largest rate in Hz, or None when no positive rate is found.
    """
    max_rate = 0
    for line in output.splitlines():
        for match in _REFRESH_RATE_PATTERN.finditer(line.lower()):
            max_rate = max(max_rate, int(float(match.group(1))))
    return max_rate or None


def parse_logcat_buffers(output: str) -> list[str]:
    """Parse ``logcat -g`` into buffer names.

    Example:
        main: ring buffer is 256 KiB (253 KiB consumed), max entry is 5120 B
        system: ring buffer is 256 KiB (35 KiB consumed), max entry is 5120 B

    Returns:
        Buffer names in the order listed.
    """
    buffers = []
    for line in output.splitlines():
        if "ring buffer" not in line:
            continue
        head = line.split(":", 1)[0].split()
        if head:
            buffers.append(head[-1])
    return buffers
