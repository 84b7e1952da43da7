"""Parsers for process listings, process status and running services."""

from __future__ import annotations

import re

from ..models import ProcessInfo, ProcessMemory

_SERVICE_RECORD = re.compile(r"ServiceRecord\{\S+\s+\S+\s+([^}\s]+)\}")
_SERVICE_BRACKETS = re.compile(r"Service\[([^\]]+)\]")
_STATUS_KB_KEYS = {
    "VmSize": "vm_size_kb",
    "VmRSS": "vm_rss_kb",
    "VmSwap": "vm_swap_kb",
}


def parse_process_list(output: str) -> list[ProcessInfo]:
    """Parse ``ps`` output.

    Example:
        USER      PID   PPID  VSZ     RSS   WCHAN  ADDR S NAME
        root      1     0     10916   2904  0      0    S init

    The header line is skipped. Rows need at least nine columns and a
    numeric pid. The name is the last column.

    Returns:
        Processes in listing order. When a pid appears twice the first row
        wins, so pids are unique within the result.
    """
    processes = []
    seen = set()

    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 9 or not parts[1].isdigit():
            continue
        pid = int(parts[1])
        if pid in seen:
            continue
        seen.add(pid)
        processes.append(ProcessInfo(pid=pid, user=parts[0], name=parts[-1]))
    return processes


def find_processes(processes: list[ProcessInfo], name: str) -> list[ProcessInfo]:
    """Return processes whose name contains ``name``."""
    return [process for process in processes if name in process.name]


def parse_process_status(output: str, pid: int) -> ProcessMemory | None:
    """Parse ``/proc/<pid>/status``.

    Example:
        Name:   com.example.app
        VmSize:  14520384 kB
        VmRSS:     182044 kB

    Returns:
        ProcessMemory, or None when the report has no ``Name`` line (the
        process is gone or the file was unreadable).
    """
    name = None
    sizes: dict[str, int] = {}
    for line in output.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if key == "Name":
            name = value.strip()
        elif key in _STATUS_KB_KEYS:
            parts = value.split()
            if parts and parts[0].isdigit():
                sizes[_STATUS_KB_KEYS[key]] = int(parts[0])

    if not name:
        return None
    return ProcessMemory(pid=pid, name=name, **sizes)


def parse_running_services(output: str) -> list[str]:
    """Extract service components from ``dumpsys activity services``.

    Both ``ServiceRecord{5f3c2a1 u0 com.example/.SyncService}`` records and
    the bracketed ``Service[...]`` form are understood.

    Returns:
        Component names in dump order, each listed once.
    """
    services: list[str] = []
    for line in output.splitlines():
        match = _SERVICE_RECORD.search(line) or _SERVICE_BRACKETS.search(line)
        if match and match.group(1) not in services:
            services.append(match.group(1))
    return services
