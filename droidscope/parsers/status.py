"""Parsers for kernel status files, mounts, network interfaces and root checks."""

from __future__ import annotations

import re

from ..exceptions import MissingFieldError
from ..models import DeviceStatus, MountInfo, NetworkInterface
from .performance import parse_meminfo

# Paths where a su binary is commonly installed
SU_PATHS = (
    "/system/bin/su",
    "/system/xbin/su",
    "/sbin/su",
    "/vendor/bin/su",
    "/data/local/xbin/su",
)

_INTERFACE_HEADER = re.compile(r"^\d+:\s+([^:\s]+):")
_INTERFACE_STATE = re.compile(r"\bstate\s+(\S+)")
_MOUNT_ESCAPE = re.compile(r"\\([0-7]{3})")
_UID = re.compile(r"\buid=(\d+)")


def parse_uptime(output: str) -> int:
    """Parse ``/proc/uptime`` into whole seconds since boot.

    Example:
        350735.47 234388.90

    Raises:
        MissingFieldError: If the first column is not a number.
    """
    parts = output.split()
    try:
        return int(float(parts[0]))
    except (IndexError, ValueError):
        raise MissingFieldError("uptime", "seconds") from None


def parse_loadavg(output: str) -> tuple[float, float, float]:
    """Parse the first three columns of ``/proc/loadavg``.

    Example:
        0.52 0.58 0.59 1/1234 5678

    Returns:
        The 1, 5 and 15 minute averages. Missing or malformed values are 0.0.
    """
    values = []
    for value in (output.split() + ["", "", ""])[:3]:
        try:
            values.append(float(value))
        except ValueError:
            values.append(0.0)
    return values[0], values[1], values[2]


def parse_device_status(
    uptime_output: str,
    meminfo_output: str,
    loadavg_output: str | None = None,
) -> DeviceStatus:
    """Combine uptime, meminfo and loadavg reports.

    Args:
        uptime_output: Content of ``/proc/uptime``.
        meminfo_output: Content of ``/proc/meminfo``.
        loadavg_output: Content of ``/proc/loadavg``, or None if unreadable.

    Raises:
        MissingFieldError: If uptime or ``MemTotal`` is missing.
    """
    memory = parse_meminfo(meminfo_output)
    load_average = parse_loadavg(loadavg_output or "")
    return DeviceStatus(
        uptime_seconds=parse_uptime(uptime_output),
        total_memory=memory.total_kb * 1024,
        free_memory=memory.free_kb * 1024,
        available_memory=memory.available_kb * 1024,
        load_average=load_average,
    )


def _unescape_mount_field(value: str) -> str:
    # /proc/mounts writes spaces, tabs and backslashes as octal escapes
    return _MOUNT_ESCAPE.sub(lambda match: chr(int(match.group(1), 8)), value)


def parse_mounts(output: str) -> list[MountInfo]:
    """Parse ``/proc/mounts``.

    Example:
        /dev/block/dm-5 /data f2fs rw,lazytime,seclabel,nosuid,nodev 0 0

    Lines with fewer than four columns are skipped.
    """
    mounts = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 4:
            continue
        mounts.append(
            MountInfo(
                device=_unescape_mount_field(parts[0]),
                mount_point=_unescape_mount_field(parts[1]),
                fs_type=parts[2],
                options=tuple(parts[3].split(",")),
            )
        )
    return mounts


def parse_network_interfaces(
    output: str, include_loopback: bool = False
) -> list[NetworkInterface]:
    """Parse ``ip addr show``.

    Example:
        2: wlan0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc mq state UP
            link/ether 02:00:00:44:55:66 brd ff:ff:ff:ff:ff:ff
            inet 192.168.1.23/24 brd 192.168.1.255 scope global wlan0
            inet6 fe80::ff:fe44:5566/64 scope link

    A numbered header line starts an interface; the indented lines below it
    add addresses. A ``name@link`` header keeps only the name.

    Args:
        output: Output of ``ip addr show``.
        include_loopback: Keep the ``lo`` interface.

    Returns:
        Interfaces in listing order.
    """
    interfaces: list[dict] = []
    for line in output.splitlines():
        header = _INTERFACE_HEADER.match(line)
        if header:
            state = _INTERFACE_STATE.search(line)
            interfaces.append(
                {
                    "name": header.group(1).split("@")[0],
                    "state": state.group(1) if state else "UNKNOWN",
                    "ipv6_addresses": [],
                }
            )
            continue
        if not interfaces:
            continue

        current = interfaces[-1]
        parts = line.split()
        if len(parts) < 2:
            continue
        if parts[0].startswith("link/") and parts[0] != "link/loopback":
            current.setdefault("mac_address", parts[1])
        elif parts[0] == "inet":
            current.setdefault("ip_address", parts[1].split("/")[0])
        elif parts[0] == "inet6":
            current["ipv6_addresses"].append(parts[1].split("/")[0])

    return [
        NetworkInterface(**fields)
        for fields in interfaces
        if include_loopback or fields["name"] != "lo"
    ]


def parse_uid(output: str) -> int | None:
    """Extract the numeric user id from ``id``.

    Example:
        uid=2000(shell) gid=2000(shell) groups=2000(shell),1004(input)
    """
    match = _UID.search(output)
    return int(match.group(1)) if match else None


def find_su_binaries(output: str) -> list[str]:
    """Return the su paths present in ``ls -l`` of `SU_PATHS`.

    Only listing lines count. Error lines such as
    ``ls: /sbin/su: No such file or directory`` are ignored, so the result
    is the same whether or not the executor folds stderr into the output.
    """
    found = []
    for line in output.splitlines():
        if not line.startswith(("-", "l")):
            continue
        parts = line.split()
        found.extend(path for path in SU_PATHS if path in parts and path not in found)
    return found
