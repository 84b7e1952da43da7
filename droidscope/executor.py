"""Command execution against a connected device.

Everything that talks to the device goes through a ``CommandExecutor``. The
collector only needs ``execute(command) -> str``, so tests and alternative
transports can supply their own implementation.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol, runtime_checkable

from .exceptions import OutputDecodeError, TransportError
from .utils import build_adb_command, resolve_adb

logger = logging.getLogger(__name__)


@runtime_checkable
class CommandExecutor(Protocol):
    """Sends a shell command to a device and returns its output."""

    def execute(self, command: str) -> str:
        """Run a shell command.

        Args:
            command: Shell command line, e.g. "cat /proc/meminfo".

        Returns:
            Captured stdout with surrounding whitespace trimmed.

        Raises:
            TransportError: If the command channel failed.
            OutputDecodeError: If the output is not valid UTF-8.
        """
        ...


class AdbShellExecutor:
    """Runs commands with ``adb [-s serial] shell``.

    Each call spawns one adb client process and blocks until it exits.
    Calls may be issued from several threads at once; the adb server
    multiplexes them over the device connection.

    Only failures of the adb client itself raise. A shell command that fails
    on the device without printing anything yields an empty string, so the
    report parsers decide what missing output means.

    Examples:
        >>> executor = AdbShellExecutor(serial="emulator-5554")
        >>> executor.execute("getprop ro.product.model")
        'sdk_gphone64_x86_64'
    """

    def __init__(
        self,
        serial: str | None = None,
        adb_path: str | None = None,
        timeout: float | None = 30.0,
    ) -> None:
        """Initialize the executor.

        Args:
            serial: Target device serial ID. If None, adb picks the only
                connected device.
            adb_path: Path to the adb executable. Resolved lazily with
                `resolve_adb` if None.
            timeout: Seconds to wait for each command. None waits forever.
        """
        self.serial = serial
        self.timeout = timeout
        self._adb_path = adb_path

    @property
    def adb_path(self) -> str:
        if self._adb_path is None:
            try:
                self._adb_path = resolve_adb()
            except FileNotFoundError as e:
                raise TransportError(str(e)) from e
        return self._adb_path

    def execute(self, command: str) -> str:
        cmd = build_adb_command(self.adb_path, self.serial, "shell", command)
        logger.debug(f"Executing: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise TransportError(
                f"Timed out running '{command}' after {self.timeout}s"
            ) from e
        except OSError as e:
            raise TransportError(f"Failed to run adb: {e}") from e

        stdout = result.stdout or b""
        if result.returncode != 0 and not stdout.strip():
            stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
            if _is_adb_failure(result.returncode, stderr):
                raise TransportError(
                    f"adb exited with code {result.returncode} for '{command}': {stderr}"
                )
            # The command itself failed on the device; parsers see no output
            logger.debug(f"'{command}' exited with code {result.returncode}: {stderr}")

        try:
            return stdout.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise OutputDecodeError(f"Output of '{command}' is not UTF-8: {e}") from e


def _is_adb_failure(returncode: int, stderr: str) -> bool:
    """Tell an adb client failure apart from a failing device command.

    The adb client reports its own errors ("error: device offline",
    "adb: no devices/emulators found") on stderr and exits with 255 when it
    loses the device. Anything else is the shell command's own exit status.
    """
    if returncode == 255:
        return True
    first_line = stderr.splitlines()[0] if stderr else ""
    return first_line.startswith(("error:", "adb:"))
