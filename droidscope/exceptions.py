"""Exceptions for droidscope command, parsing and stream operations."""

from __future__ import annotations


class DroidScopeError(Exception):
    """Base exception for all droidscope errors.

    Catching this exception allows handling any error originating from
    command execution, report parsing or log streaming.
    """


class ExecutionError(DroidScopeError):
    """Raised when a command could not be executed on the device.

    This is the transport class of failure: the command channel itself
    failed, so there is no output to parse. It is never retried by droidscope.
    """


class TransportError(ExecutionError):
    """Raised when the adb channel fails.

    Covers a missing adb executable, spawn failures, timeouts and adb-level
    errors such as a disconnected or unauthorized device.
    """


class OutputDecodeError(ExecutionError):
    """Raised when command output is not valid UTF-8."""


class ParseError(DroidScopeError):
    """Base exception for reports that were received but not understood."""


class MissingFieldError(ParseError):
    """Raised when a report lacks the field that defines it.

    A battery dump without ``level`` or a meminfo report without ``MemTotal``
    is not a degraded report, it is the wrong report. Optional attributes that
    are merely absent never raise this; they are ``None`` in the result.

    Attributes:
        report: Name of the report being parsed (e.g. "meminfo").
        field: The mandatory field that was not found.
    """

    def __init__(self, report: str, field: str) -> None:
        self.report = report
        self.field = field
        super().__init__(f"{report}: required field '{field}' not found")


class PackageNotFoundError(ParseError):
    """Raised when a package dump contains none of the known fields."""

    def __init__(self, package_name: str) -> None:
        self.package_name = package_name
        super().__init__(f"Package not found: {package_name}")


class DeviceFileNotFoundError(ParseError):
    """Raised when a path listing on the device yields no usable entry."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File not found on device: {path}")


class ProcessNotFoundError(ParseError):
    """Raised when a process status report is empty or lacks a name."""

    def __init__(self, pid: int) -> None:
        self.pid = pid
        super().__init__(f"Process not found: {pid}")


class LogStreamError(DroidScopeError):
    """Base exception for all log stream errors."""


class LogStreamStartError(LogStreamError):
    """Raised when the log source process cannot be spawned.

    The stream moves to the FAILED state and no background work is started.
    """


class LogStreamStateError(LogStreamError):
    """Raised when a stream operation is not valid in the current state.

    Streams are not restartable: calling ``start()`` twice raises this.
    """


class LogStreamInternalError(LogStreamError):
    """Raised when the stream worker failed unexpectedly.

    The original exception is chained as ``__cause__``.
    """


class LogStreamTimeoutError(LogStreamError):
    """Raised when waiting on a stream exceeds the given timeout."""
