"""Parsers for directory listings, file searches and disk usage reports."""

from __future__ import annotations

from pathlib import PurePosixPath

from ..models import DirectoryListing, FileInfo, FileSearchResult, StorageInfo


def _join(base_path: str, name: str) -> str:
    if base_path.endswith("/"):
        return f"{base_path}{name}"
    return f"{base_path}/{name}"


def _optional_int(value: str) -> int | None:
    return int(value) if value.isdigit() else None


def parse_ls_line(line: str, base_path: str) -> FileInfo | None:
    """Parse one line of ``ls -la --time-style=+%s``.

    Example:
        drwxrwx--x 4 system sdcard_rw 3452 1705312245 Jan 15 My Photos

    Columns are permissions, links, owner, group, size and epoch mtime,
    followed by two columns that are ignored. The name is every token from
    the ninth onward joined by single spaces, so names with spaces survive
    (runs of spaces inside a name do not).

    Args:
        line: A single listing line.
        base_path: Directory the listing was taken from.

    Returns:
        FileInfo, or None for short lines and the ``.``/``..`` entries.
    """
    parts = line.split()
    if len(parts) < 9:
        return None

    name = " ".join(parts[8:])
    if name in (".", ".."):
        return None

    permissions = parts[0]
    return FileInfo(
        name=name,
        path=_join(base_path, name),
        size=_optional_int(parts[4]) or 0,
        permissions=permissions,
        is_directory=permissions.startswith("d"),
        is_symlink=permissions.startswith("l"),
        modified=_optional_int(parts[5]),
        owner=parts[2],
        group=parts[3],
    )


def parent_path(path: str) -> str | None:
    """Return the parent of a device path.

    Derived from the path string only; ``/`` and bare names have no parent.

    Examples:
        >>> parent_path("/sdcard/DCIM")
        '/sdcard'
        >>> parent_path("/") is None
        True
    """
    current = PurePosixPath(path)
    parent = current.parent
    if parent == current or str(parent) == ".":
        return None
    return str(parent)


def parse_directory_listing(output: str, path: str) -> DirectoryListing:
    """Parse ``ls -la`` output into a listing with totals.

    The first line (``total N``) is skipped. Unparsable lines are dropped.

    Args:
        output: Output of ``ls -la --time-style=+%s <path>``.
        path: The directory that was listed.

    Returns:
        DirectoryListing whose counts and total size are folded from the
        parsed entries. Directory sizes are not added to ``total_size``.
    """
    files = []
    total_files = 0
    total_dirs = 0
    total_size = 0

    for line in output.splitlines()[1:]:
        file_info = parse_ls_line(line, path)
        if file_info is None:
            continue
        if file_info.is_directory:
            total_dirs += 1
        else:
            total_files += 1
            total_size += file_info.size
        files.append(file_info)

    return DirectoryListing(
        path=path,
        parent_path=parent_path(path),
        files=tuple(files),
        total_files=total_files,
        total_dirs=total_dirs,
        total_size=total_size,
    )


def parse_file_info(output: str, path: str) -> FileInfo | None:
    """Parse ``ls -la -d <path>`` for a single file.

    Returns:
        FileInfo whose ``path`` is the requested path, or None when the first
        line is not a listing line.
    """
    lines = output.splitlines()
    if not lines:
        return None

    current = PurePosixPath(path)
    file_info = parse_ls_line(lines[0], str(current.parent))
    if file_info is None:
        return None
    return file_info.model_copy(update={"name": current.name or path, "path": path})


def _has_size_columns(parts: list[str]) -> bool:
    return all(value.isdigit() for value in parts[1:4])


def _storage_from_columns(parts: list[str], path: str) -> StorageInfo:
    total_bytes = int(parts[1]) * 1024
    used_bytes = int(parts[2]) * 1024
    free_bytes = int(parts[3]) * 1024
    percentage_used = used_bytes / total_bytes * 100.0 if total_bytes else 0.0

    return StorageInfo(
        path=path,
        filesystem=parts[0],
        total_bytes=total_bytes,
        used_bytes=used_bytes,
        free_bytes=free_bytes,
        percentage_used=percentage_used,
    )


def parse_df_output(output: str) -> list[StorageInfo]:
    """Parse ``df -k`` into mounted volumes.

    Only rows with numeric size columns and an absolute mount point are
    kept.

    Example:
        Filesystem     1K-blocks     Used Available Use% Mounted on
        /dev/block/dm-5 117155236 40245180  76778600  35% /data

    Returns:
        One StorageInfo per volume, sizes converted to bytes.
    """
    volumes = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 6 or not _has_size_columns(parts):
            continue
        mount_point = parts[-1]
        if not mount_point.startswith("/") or ":/" in mount_point:
            continue
        volumes.append(_storage_from_columns(parts, mount_point))
    return volumes


def parse_storage_info(output: str, path: str) -> StorageInfo | None:
    """Parse ``df -k <path>`` for the volume holding ``path``.

    Returns:
        StorageInfo for the first row mentioning ``path`` with numeric sizes,
        or None.
    """
    bare = path.strip("/")
    for line in output.splitlines():
        if path not in line and not (bare and line.endswith(bare)):
            continue
        parts = line.split()
        if len(parts) >= 6 and _has_size_columns(parts):
            return _storage_from_columns(parts, path)
    return None


def parse_find_output(output: str) -> list[FileSearchResult]:
    """Parse ``find ... -exec stat -c '%F|%s|%n' {} +``.

    Example:
        regular file|482133|/sdcard/DCIM/Camera/IMG_0001.jpg
        directory|3452|/sdcard/DCIM/Camera

    Lines that do not have a numeric size column are skipped.

    Returns:
        Matches in listing order. Directories report size 0.
    """
    results = []
    for line in output.splitlines():
        parts = line.split("|", 2)
        if len(parts) != 3 or not parts[1].isdigit() or not parts[2]:
            continue
        kind, size, path = parts
        is_directory = kind == "directory"
        results.append(
            FileSearchResult(
                name=PurePosixPath(path).name or path,
                path=path,
                size=0 if is_directory else int(size),
                is_directory=is_directory,
            )
        )
    return results
