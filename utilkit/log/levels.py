"""
Log levels for the utilkit log router.
"""

import logging
from enum import Enum
from typing import Union

from ..errors import ValidationError

TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class LogLevel(Enum):
    """Severity levels, ordered by ``severity``."""

    TRACE = 100
    DEBUG = 200
    INFO = 300
    WARN = 400
    ERROR = 500
    FATAL = 600

    @property
    def severity(self) -> int:
        return self.value

    def is_at_least(self, other: "LogLevel") -> bool:
        return self.severity >= other.severity

    def to_logging_level(self) -> int:
        """Matching level number in the stdlib ``logging`` module."""
        return _LOGGING_LEVELS[self]

    @classmethod
    def parse(cls, value: Union[str, "LogLevel"]) -> "LogLevel":
        """Resolve a level from its name (case-insensitive); WARNING and CRITICAL are accepted."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Invalid log level: {value!r}", field="level")
        name = value.strip().upper()
        name = _ALIASES.get(name, name)
        try:
            return cls[name]
        except KeyError:
            raise ValidationError(f"Invalid log level: {value!r}", field="level")

    def __lt__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity >= other.severity


_ALIASES = {"WARNING": "WARN", "CRITICAL": "FATAL"}

_LOGGING_LEVELS = {
    LogLevel.TRACE: TRACE,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.FATAL: logging.CRITICAL,
}
