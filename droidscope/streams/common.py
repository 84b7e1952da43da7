"""Common utilities and types for log streams."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum, auto

from ..models import LogcatBuffer
from ..utils import build_adb_command


class StreamState(Enum):
    """State of a log stream.

    IDLE -> STARTING -> STREAMING -> DRAINING -> CLOSED, with FAILED reachable
    only from STARTING. CLOSED and FAILED are terminal.
    """

    IDLE = auto()
    STARTING = auto()
    STREAMING = auto()
    DRAINING = auto()
    CLOSED = auto()
    FAILED = auto()


class StreamCloseReason(Enum):
    """Why a stream left the STREAMING state."""

    CANCELLED = auto()
    CONSUMER_CLOSED = auto()
    END_OF_STREAM = auto()
    ERROR = auto()


TERMINAL_STATES = frozenset({StreamState.CLOSED, StreamState.FAILED})

StateCallback = Callable[[StreamState], None]

STDERR_TAIL_SIZE = 20

# Reader buffer limit for the asyncio pipes. Longer lines are read in chunks.
STREAM_READ_LIMIT = 1024 * 1024


def build_logcat_command(
    adb_path: str,
    device_id: str | None,
    buffer: LogcatBuffer = LogcatBuffer.DEFAULT,
    logcat_args: Sequence[str] | None = None,
) -> list[str]:
    """Build the ADB command that follows a logcat buffer.

    Args:
        adb_path: Path to ADB executable.
        device_id: Target device serial ID.
        buffer: Buffer to follow.
        logcat_args: Additional arguments appended after the buffer selector.

    Returns:
        List of command arguments.
    """
    return build_adb_command(
        adb_path,
        device_id,
        "logcat",
        "-v",
        "threadtime",
        "-b",
        buffer.selector,
        *(logcat_args or ()),
    )
