"""Data models for logcat entries."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LogLevel(IntEnum):
    """Logcat priority, ordered from least to most severe.

    Values follow Android's native priority numbers, so comparisons between
    levels are total: ``VERBOSE < DEBUG < INFO < WARNING < ERROR < FATAL < SILENT``.
    """

    VERBOSE = 2
    DEBUG = 3
    INFO = 4
    WARNING = 5
    ERROR = 6
    FATAL = 7
    SILENT = 8

    @classmethod
    def from_code(cls, code: str) -> LogLevel:
        """Map a single-letter logcat code to a level.

        Args:
            code: Level letter such as "I" or "E". Only the first character
                is considered.

        Returns:
            The matching level, or DEBUG for unknown codes.
        """
        return _LEVEL_BY_CODE.get(code[:1], cls.DEBUG)

    @property
    def code(self) -> str:
        """Single-letter logcat code for this level."""
        return self.name[0]

    def __str__(self) -> str:
        return self.code


_LEVEL_BY_CODE = {level.name[0]: level for level in LogLevel}


class LogFormat(str, Enum):
    """Line grammar that produced a LogcatEntry."""

    THREADTIME = "threadtime"
    BRIEF = "brief"
    TAGGED = "tagged"
    RAW = "raw"


class LogcatBuffer(str, Enum):
    """Logcat ring buffers that can be read or streamed."""

    MAIN = "main"
    SYSTEM = "system"
    RADIO = "radio"
    EVENTS = "events"
    CRASH = "crash"
    DEFAULT = "default"

    @property
    def selector(self) -> str:
        """Buffer name passed to ``logcat -b``.

        DEFAULT resolves to the main buffer.
        """
        if self is LogcatBuffer.DEFAULT:
            return LogcatBuffer.MAIN.value
        return self.value


class LogcatEntry(BaseModel):
    """A structured entry representing a single line of logcat output.

    Entries are immutable. One entry is produced for every input line; lines
    that match no grammar become a degenerate entry carrying the whole line as
    ``message`` so that nothing is lost.

    Attributes:
        timestamp: Timestamp as printed by the source. The format depends on
            the grammar matched (``"01-15 10:30:45.123"`` for threadtime) and
            is empty when the line carried none.
        pid: Process ID, 0 when unknown.
        tid: Thread ID, 0 when unknown.
        level: Log priority.
        tag: Component tag (e.g., "ActivityManager"), empty when unknown.
        message: The main content of the log message.
        raw: The original line, kept for diagnostics and fallback rendering.
        format: Grammar that recognised the line.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: str = ""
    pid: int = Field(default=0, ge=0)
    tid: int = Field(default=0, ge=0)
    level: LogLevel = LogLevel.DEBUG
    tag: str = ""
    message: str = ""
    raw: str = ""
    format: LogFormat = LogFormat.RAW

    def to_dict(self) -> dict[str, Any]:
        """Convert the entry to a dictionary.

        Returns:
            A dictionary representation of the entry.
        """
        return self.model_dump()

    def to_json(self, indent: int | None = None) -> str:
        """Convert the entry to a JSON string.

        Args:
            indent: If specified, formats the JSON with the given indentation.

        Returns:
            A JSON string representation of the entry.
        """
        return self.model_dump_json(indent=indent)
