"""
Log event record and its builder.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..errors import ValidationError
from .levels import LogLevel


@dataclass(frozen=True)
class LogEvent:
    """
    A single log record.

    Events are immutable: the field map is copied on construction and
    ``fields`` hands out a fresh copy on every access.
    """

    message: str
    level: LogLevel
    logger_name: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _fields: Mapping[str, Any] = field(default_factory=dict, repr=False)
    error: Optional[BaseException] = None

    def __post_init__(self):
        object.__setattr__(self, '_fields', MappingProxyType(dict(self._fields)))

    @property
    def fields(self) -> Dict[str, Any]:
        return dict(self._fields)

    def get_field(self, name: str, default: Any = None) -> Any:
        return self._fields.get(name, default)

    def has_field(self, name: str) -> bool:
        return name in self._fields

    @staticmethod
    def builder() -> "LogEventBuilder":
        return LogEventBuilder()


class LogEventBuilder:
    """Chainable builder for ``LogEvent``."""

    def __init__(self):
        self._message = ""
        self._level = LogLevel.INFO
        self._logger_name = ""
        self._fields: Dict[str, Any] = {}
        self._error: Optional[BaseException] = None

    def message(self, message: str) -> "LogEventBuilder":
        self._message = message
        return self

    def level(self, level: LogLevel) -> "LogEventBuilder":
        self._level = LogLevel.parse(level)
        return self

    def logger(self, logger_name: str) -> "LogEventBuilder":
        self._logger_name = logger_name
        return self

    def field(self, key: str, value: Any) -> "LogEventBuilder":
        if key is None:
            raise ValidationError("Field key cannot be None", field="key")
        self._fields[key] = value
        return self

    def fields(self, values: Optional[Mapping[str, Any]]) -> "LogEventBuilder":
        if values:
            self._fields.update(values)
        return self

    def error(self, error: Optional[BaseException]) -> "LogEventBuilder":
        self._error = error
        return self

    def build(self) -> LogEvent:
        return LogEvent(
            message=self._message,
            level=self._level,
            logger_name=self._logger_name,
            _fields=self._fields,
            error=self._error,
        )
