"""Logcat entry filtering."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .models import LogcatEntry, LogLevel

EntryPredicate = Callable[[LogcatEntry], bool]


class Condition(ABC):
    """Abstract base class for filter conditions."""

    @abstractmethod
    def check(self, entry: LogcatEntry) -> bool:
        """Check if the log entry satisfies the condition.

        Args:
            entry: The log entry to check.

        Returns:
            True if the condition is met, False otherwise.
        """
        ...

    def __call__(self, entry: LogcatEntry) -> bool:
        return self.check(entry)

    def __and__(self, other: Condition) -> Condition:
        return And(self, other)

    def __or__(self, other: Condition) -> Condition:
        return Or(self, other)

    def __invert__(self) -> Condition:
        return Not(self)


class And(Condition):
    """Logical AND combination of conditions. Empty means always true."""

    def __init__(self, *conditions: Condition) -> None:
        self.conditions = conditions

    def check(self, entry: LogcatEntry) -> bool:
        return all(c.check(entry) for c in self.conditions)


class Or(Condition):
    """Logical OR combination of conditions."""

    def __init__(self, *conditions: Condition) -> None:
        self.conditions = conditions

    def check(self, entry: LogcatEntry) -> bool:
        return any(c.check(entry) for c in self.conditions)


class Not(Condition):
    """Logical NOT of a condition."""

    def __init__(self, condition: Condition) -> None:
        self.condition = condition

    def check(self, entry: LogcatEntry) -> bool:
        return not self.condition.check(entry)


class TagContains(Condition):
    """Matches entries whose tag contains a substring (case-sensitive)."""

    def __init__(self, substring: str) -> None:
        self.substring = substring

    def check(self, entry: LogcatEntry) -> bool:
        return self.substring in entry.tag


class MinLevel(Condition):
    """Matches entries at or above a level."""

    def __init__(self, level: LogLevel) -> None:
        self.level = level

    def check(self, entry: LogcatEntry) -> bool:
        return entry.level >= self.level


class MessageContains(Condition):
    """Matches entries whose message contains a substring (case-sensitive)."""

    def __init__(self, substring: str) -> None:
        self.substring = substring

    def check(self, entry: LogcatEntry) -> bool:
        return self.substring in entry.message


class LogcatFilter(BaseModel):
    """A filter combining tag, minimum level and message criteria with AND.

    Every criterion is optional and an absent one always matches, so
    ``LogcatFilter()`` accepts every entry. Substring checks are
    case-sensitive. The level is inclusive and may be given as a LogLevel or
    a single-letter code.

    Examples:
        Errors and worse from any tag containing "Activity":
        >>> f = LogcatFilter(tag="Activity", level="E")

        Messages mentioning a crash:
        >>> f = LogcatFilter(message_contains="FATAL EXCEPTION")
    """

    model_config = ConfigDict(frozen=True)

    tag: str | None = None
    level: LogLevel | None = None
    message_contains: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _coerce_level(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.isdigit():
            return LogLevel.from_code(value)
        return value

    @property
    def condition(self) -> Condition:
        """The filter as a condition tree, for composing with other conditions."""
        conditions: list[Condition] = []
        if self.tag is not None:
            conditions.append(TagContains(self.tag))
        if self.level is not None:
            conditions.append(MinLevel(self.level))
        if self.message_contains is not None:
            conditions.append(MessageContains(self.message_contains))
        return And(*conditions)

    def matches(self, entry: LogcatEntry) -> bool:
        """Check if the entry satisfies every set criterion."""
        if self.tag is not None and self.tag not in entry.tag:
            return False
        if self.level is not None and entry.level < self.level:
            return False
        if (
            self.message_contains is not None
            and self.message_contains not in entry.message
        ):
            return False
        return True

    def __call__(self, entry: LogcatEntry) -> bool:
        return self.matches(entry)


def filter_entries(
    entries: Iterable[LogcatEntry], predicate: EntryPredicate | None
) -> list[LogcatEntry]:
    """Keep the entries accepted by a filter, preserving order.

    Args:
        entries: Parsed entries.
        predicate: A LogcatFilter, a Condition or any callable. None keeps
            everything.

    Returns:
        The accepted entries.
    """
    if predicate is None:
        return list(entries)
    return [entry for entry in entries if predicate(entry)]
