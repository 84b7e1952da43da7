"""Utility functions for droidscope.

This module provides adb resolution and logging configuration.
"""

from __future__ import annotations

import functools
import logging
import os
import shutil
import sys


def _running_on_wsl() -> bool:
    if sys.platform != "linux":
        return False
    try:
        with open("/proc/version", "r") as f:
            return "microsoft" in f.read().lower()
    except OSError:
        return False


def _adb_names() -> list[str]:
    # WSL can drive the Windows adb server through adb.exe
    if sys.platform == "win32" or _running_on_wsl():
        return ["adb", "adb.exe"]
    return ["adb"]


@functools.lru_cache(maxsize=1)
def resolve_adb() -> str:
    """Locate the adb executable.

    Looks on PATH first, then under ``platform-tools`` of ANDROID_HOME and
    ANDROID_SDK_ROOT. The result is cached for the life of the process.

    Returns:
        Path to the adb executable.

    Raises:
        FileNotFoundError: If adb cannot be found.
    """
    names = _adb_names()

    found = next((path for path in map(shutil.which, names) if path), None)
    if found:
        return found

    sdk_roots = [os.environ.get(var) for var in ("ANDROID_HOME", "ANDROID_SDK_ROOT")]
    for root in filter(None, sdk_roots):
        for name in names:
            candidate = os.path.join(root, "platform-tools", name)
            if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
                return candidate

    raise FileNotFoundError(
        f"adb not found on PATH or under ANDROID_HOME/ANDROID_SDK_ROOT (tried {names})"
    )


def build_adb_command(
    adb_path: str, device_id: str | None, *args: str
) -> list[str]:
    """Build an adb argument vector targeting an optional device.

    Args:
        adb_path: Path to ADB executable.
        device_id: Target device serial ID. If None, adb picks the only device.
        *args: Remaining adb arguments (e.g. "shell", "getprop").

    Returns:
        List of command arguments.
    """
    cmd = [adb_path]
    if device_id:
        cmd.extend(["-s", device_id])
    cmd.extend(args)
    return cmd


def enable_debug(level: str | int = "DEBUG") -> None:
    """Route droidscope's log records to stderr.

    Sets the level of the ``droidscope`` logger and attaches a stream handler
    the first time it is called. The root logger is left alone, so records
    may appear twice if the application later adds a root handler.

    Args:
        level: Logging level name or number, e.g. "DEBUG" or logging.INFO.
    """
    logger = logging.getLogger("droidscope")
    logger.setLevel(level)
    if logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
    )
    logger.addHandler(handler)
