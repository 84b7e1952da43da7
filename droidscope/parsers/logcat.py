"""Logcat line grammars and parser."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from ..models import LogcatEntry, LogFormat, LogLevel


class LineGrammar:
    """Base class for a single logcat line layout.

    A grammar recognises one layout and returns ``None`` for anything else; it
    never raises for malformed input. To support another layout, subclass this
    class, override `match`, and pass an instance to `LogcatParser`.

    Examples:
        class EpochGrammar(LineGrammar):
            def match(self, line: str) -> LogcatEntry | None:
                ...
    """

    format: LogFormat = LogFormat.RAW

    def match(self, line: str) -> LogcatEntry | None:
        """Parse a stripped, non-empty line.

        Args:
            line: The log line without surrounding whitespace.

        Returns:
            A LogcatEntry, or None if the line does not use this layout.
        """
        raise NotImplementedError


class ThreadTimeGrammar(LineGrammar):
    """Grammar for the threadtime format.

    Format: date time pid tid level tag: message
    Example: 01-15 10:30:45.123  1234  5678 I ActivityManager: Starting activity

    The tag is everything up to the first ": " so padded tags
    ("MyTag   : Hello") and tags containing spaces are handled.
    """

    format = LogFormat.THREADTIME

    # Group 1: Date
    # Group 2: Time
    # Group 3: PID
    # Group 4: TID
    # Group 5: Level (single character)
    # Group 6: Tag and message
    _PATTERN = re.compile(r"^(\S+)\s+(\S+)\s+(\d+)\s+(\d+)\s+(\S)\s+(.+)$")
    _MIN_TOKENS = 7

    def match(self, line: str) -> LogcatEntry | None:
        if len(line.split()) < self._MIN_TOKENS:
            return None
        match = self._PATTERN.match(line)
        if not match:
            return None

        date_str, time_str, pid_str, tid_str, level_str, rest = match.groups()
        tag, message = self._split_tag(rest)

        return LogcatEntry(
            timestamp=f"{date_str} {time_str}",
            pid=int(pid_str),
            tid=int(tid_str),
            level=LogLevel.from_code(level_str),
            tag=tag,
            message=message,
            raw=line,
            format=self.format,
        )

    @staticmethod
    def _split_tag(rest: str) -> tuple[str, str]:
        tag, sep, message = rest.partition(": ")
        if sep:
            return tag.strip(), message.strip()
        if rest.endswith(":"):
            return rest[:-1].strip(), ""
        # No separator at all: first token is the tag
        tag, _, message = rest.partition(" ")
        return tag.rstrip(":"), message.strip()


class BriefGrammar(LineGrammar):
    """Grammar for the bracketed brief format.

    Format: [tag] level message
    Example: [ActivityManager] I Process started
    """

    format = LogFormat.BRIEF

    # Group 1: Tag
    # Group 2: Level
    # Group 3: Message (optional)
    _PATTERN = re.compile(r"^\[\s*([^\]]*?)\s*\]\s*(\S)(?:\s+(.*))?$")

    def match(self, line: str) -> LogcatEntry | None:
        match = self._PATTERN.match(line)
        if not match:
            return None

        tag, level_str, message = match.groups()
        return LogcatEntry(
            level=LogLevel.from_code(level_str),
            tag=tag,
            message=(message or "").strip(),
            raw=line,
            format=self.format,
        )


class TaggedGrammar(LineGrammar):
    """Grammar for the native logcat brief format.

    Format: priority/tag(pid): message
    Example: D/HeadsetProfile( 2034): routeCall()
    """

    format = LogFormat.TAGGED

    # Group 1: Level
    # Group 2: Tag
    # Group 3: PID
    # Group 4: Message
    _PATTERN = re.compile(r"^([VDIWEFS])/([^(]+?)\s*\(\s*(\d+)\):\s*(.*)$")

    def match(self, line: str) -> LogcatEntry | None:
        match = self._PATTERN.match(line)
        if not match:
            return None

        level_str, tag, pid_str, message = match.groups()
        return LogcatEntry(
            pid=int(pid_str),
            level=LogLevel.from_code(level_str),
            tag=tag.strip(),
            message=message,
            raw=line,
            format=self.format,
        )


DEFAULT_GRAMMARS: tuple[LineGrammar, ...] = (
    ThreadTimeGrammar(),
    BriefGrammar(),
    TaggedGrammar(),
)


class LogcatParser:
    """Parses logcat lines by trying several grammars in order.

    Every line yields exactly one entry. If no grammar matches, the parser
    returns a degenerate entry with the whole line as ``message``, pid and tid
    0, level DEBUG and an empty tag, so a consumer never receives fewer
    entries than lines fed in.

    Examples:
        >>> parser = LogcatParser()
        >>> parser.parse("01-15 10:30:45.123  1234  5678 I AM: hi").pid
        1234
    """

    def __init__(self, grammars: Sequence[LineGrammar] | None = None) -> None:
        """Initialize the parser.

        Args:
            grammars: Grammars to attempt, in order. Defaults to threadtime,
                then brief, then tagged.
        """
        self.grammars = tuple(grammars) if grammars is not None else DEFAULT_GRAMMARS

    def parse(self, line: str) -> LogcatEntry:
        """Parse one line of logcat output.

        Args:
            line: The raw line, with or without its trailing newline.

        Returns:
            A LogcatEntry. Never raises for malformed input.
        """
        clean_line = line.strip()
        if clean_line:
            for grammar in self.grammars:
                entry = grammar.match(clean_line)
                if entry is not None:
                    return entry

        return LogcatEntry(
            level=LogLevel.DEBUG,
            message=clean_line,
            raw=clean_line,
            format=LogFormat.RAW,
        )

    def parse_lines(self, lines: Iterable[str]) -> list[LogcatEntry]:
        return [self.parse(line) for line in lines]


_DEFAULT_PARSER = LogcatParser()


def parse_logcat_line(line: str) -> LogcatEntry:
    """Parse one logcat line with the default grammars."""
    return _DEFAULT_PARSER.parse(line)


def parse_logcat_output(output: str, skip_blank: bool = False) -> list[LogcatEntry]:
    """Parse a full logcat dump.

    Args:
        output: Text of ``logcat -d`` or a saved log.
        skip_blank: Drop whitespace-only lines instead of turning them into
            empty entries.

    Returns:
        One entry per line (per non-blank line with ``skip_blank``).
    """
    lines = output.splitlines()
    if skip_blank:
        lines = [line for line in lines if line.strip()]
    return _DEFAULT_PARSER.parse_lines(lines)
