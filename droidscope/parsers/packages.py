"""Parsers for package manager and activity manager reports.

Package dumps differ between OS versions and vendors. The parsers here scan
for known prefixes and leave anything they cannot find as ``None``; deciding
whether an empty result is an error is left to the caller.
"""

from __future__ import annotations

from typing import Any

from ..models import InstallLocation, PackageInfo, PermissionInfo, TopPackage

_ENABLED_TRUE = {"true", "0", "1"}
_ENABLED_FALSE = {"false", "2", "3", "4"}


def _parse_enabled(value: str) -> bool | None:
    token = value.split()[0].lower() if value.split() else ""
    if token in _ENABLED_TRUE:
        return True
    if token in _ENABLED_FALSE:
        return False
    return None


def _parse_flags(value: str) -> tuple[str, ...]:
    return tuple(value.strip().strip("[]").split())


def parse_package_dump(output: str, package_name: str) -> PackageInfo:
    """Parse ``pm dump <package>``.

    Each line is stripped and matched against the known prefixes
    (``versionName=``, ``versionCode=``, ``pkgFlags=``, ``installLocation=``,
    ``firstInstallTime=``, ``lastUpdateTime=``, ``codePath=``, ``dataDir=``,
    ``label=``, ``enabled=``). The first occurrence of each field wins, as
    later sections of the dump describe other users or older versions.

    Args:
        output: Output of ``pm dump``.
        package_name: Package that was dumped.

    Returns:
        PackageInfo with absent fields set to None. Use
        ``PackageInfo.has_details`` to tell whether anything was found.
    """
    fields: dict[str, Any] = {}

    def _set(name: str, value: Any) -> None:
        if name not in fields and value is not None:
            fields[name] = value

    for raw_line in output.splitlines():
        line = raw_line.strip()
        key, sep, value = line.partition("=")
        if not sep:
            continue

        if key == "versionName":
            _set("version_name", value)
        elif key == "versionCode":
            code = value.split(" ", 1)[0]
            _set("version_code", int(code) if code.isdigit() else None)
        elif key == "pkgFlags":
            flags = _parse_flags(value)
            _set("flags", flags)
            _set("is_system_app", "SYSTEM" in flags)
        elif key == "installLocation":
            _set("install_location", InstallLocation.parse(value))
        elif key == "firstInstallTime":
            _set("first_install_time", value)
        elif key == "lastUpdateTime":
            _set("last_update_time", value)
        elif key == "codePath":
            _set("code_path", value)
        elif key == "dataDir":
            _set("data_dir", value)
        elif key == "label":
            _set("label", value)

        # enabled= also appears mid-line in per-user state rows
        for token in line.split():
            if token.startswith("enabled="):
                _set("enabled", _parse_enabled(token[len("enabled="):]))

    return PackageInfo(package_name=package_name, **fields)


def parse_permissions(output: str) -> list[PermissionInfo]:
    """Parse permission grants from ``pm dump``.

    Both layouts printed by the package manager are understood:

        android.permission.INTERNET: granted=true
        PermissionState[name=android.permission.CAMERA, granted=false]

    Returns:
        Permissions in dump order. A permission listed more than once keeps
        its first state.
    """
    permissions = []
    seen = set()

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if "granted=true" in line:
            granted = True
        elif "granted=false" in line:
            granted = False
        else:
            continue

        name = _permission_name(line)
        if not name or name in seen:
            continue
        seen.add(name)
        permissions.append(PermissionInfo(name=name, granted=granted))
    return permissions


def _permission_name(line: str) -> str | None:
    start = line.find("name=")
    if start != -1:
        rest = line[start + len("name="):]
        for terminator in (",", "]"):
            end = rest.find(terminator)
            if end != -1:
                rest = rest[:end]
        return rest.strip() or None

    name, sep, _ = line.partition(":")
    if sep and " " not in name.strip():
        return name.strip() or None
    return None


def parse_package_list(output: str) -> list[str]:
    """Parse ``pm list packages`` into package names."""
    return [
        line.strip()[len("package:"):]
        for line in output.splitlines()
        if line.strip().startswith("package:")
    ]


def parse_top_package(output: str) -> TopPackage:
    """Find the foreground package in ``dumpsys activity``.

    Example:
        Proc # 0: fg     T/A/TOP  LCM  t: 0 12345:com.example.app/u0a123 (top-activity)

    The second-to-last token of the first ``top-activity`` line is split on
    ``:`` into pid and ``package/user``.

    Returns:
        TopPackage, empty when no line carries the marker or the token does
        not have the expected shape.
    """
    for line in output.splitlines():
        if "top-activity" not in line:
            continue

        parts = line.split()
        if len(parts) < 2:
            return TopPackage()
        pid_str, sep, name = parts[-2].partition(":")
        if not sep or ":" in name:
            return TopPackage()
        return TopPackage(
            name=name.split("/", 1)[0],
            pid=int(pid_str) if pid_str.isdigit() else None,
        )
    return TopPackage()
