"""
Log appenders: destinations for events accepted by the log router.
"""

import json
import logging
import sys
import threading
import traceback
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Dict, List, Optional, TextIO

from ..errors import ValidationError
from ..util.serialization import json_serializer
from .events import LogEvent
from .levels import LogLevel


class Appender(ABC):
    """Abstract base class for log appenders"""

    def __init__(self, threshold: LogLevel = LogLevel.INFO):
        self.threshold = LogLevel.parse(threshold)

    def is_enabled(self, level: LogLevel) -> bool:
        return level.severity >= self.threshold.severity

    def set_threshold(self, threshold: LogLevel) -> None:
        self.threshold = LogLevel.parse(threshold)

    @abstractmethod
    def append(self, event: LogEvent) -> None:
        """Write one event"""
        pass

    def close(self) -> None:
        """Release resources held by the appender"""
        pass


def format_fields(fields: Dict[str, Any]) -> str:
    return ", ".join(f"{key}={value}" for key, value in fields.items())


def event_to_dict(event: LogEvent) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "timestamp": event.timestamp.isoformat(),
        "level": event.level.name,
        "logger": event.logger_name,
        "message": event.message,
    }
    fields = event.fields
    if fields:
        data["fields"] = fields
    if event.error is not None:
        data["error"] = {
            "type": type(event.error).__name__,
            "message": str(event.error),
        }
    return data


def _safe_default(obj: Any) -> Any:
    try:
        return json_serializer(obj)
    except TypeError:
        return str(obj)


def event_to_json(event: LogEvent) -> str:
    return json.dumps(event_to_dict(event), default=_safe_default, ensure_ascii=False)


class ConsoleAppender(Appender):
    """Human readable single-line output."""

    def __init__(self, threshold: LogLevel = LogLevel.INFO, stream: Optional[TextIO] = None):
        super().__init__(threshold)
        self.stream = stream
        self._lock = threading.Lock()

    def format(self, event: LogEvent) -> str:
        line = f"{event.timestamp.isoformat()} [{event.level.name}] {event.logger_name}: {event.message}"
        fields = event.fields
        if fields:
            line += f" - {format_fields(fields)}"
        return line

    def append(self, event: LogEvent) -> None:
        stream = self.stream or sys.stdout
        text = self.format(event) + "\n"
        if event.error is not None:
            text += "".join(traceback.format_exception(
                type(event.error), event.error, event.error.__traceback__))
        with self._lock:
            stream.write(text)
            stream.flush()


class JsonAppender(Appender):
    """One JSON object per line."""

    def __init__(self, output: Optional[TextIO] = None, threshold: LogLevel = LogLevel.INFO):
        super().__init__(threshold)
        self.output = output
        self._lock = threading.Lock()

    def append(self, event: LogEvent) -> None:
        output = self.output or sys.stdout
        with self._lock:
            output.write(event_to_json(event) + "\n")
            output.flush()


class FileAppender(Appender):
    """JSON lines appended to a file."""

    def __init__(self, path: str, threshold: LogLevel = LogLevel.INFO, encoding: str = "utf-8"):
        super().__init__(threshold)
        if not path:
            raise ValidationError("File path is required", field="path")
        self.path = path
        self.encoding = encoding
        self._lock = threading.Lock()

    def append(self, event: LogEvent) -> None:
        line = event_to_json(event) + "\n"
        with self._lock:
            with open(self.path, "a", encoding=self.encoding) as f:
                f.write(line)


class MemoryAppender(Appender):
    """Bounded in-memory buffer, mostly for tests. Accepts every level."""

    def __init__(self, max_entries: int = 1000):
        super().__init__(LogLevel.TRACE)
        if max_entries <= 0:
            raise ValidationError("max_entries must be positive", field="max_entries")
        self.max_entries = max_entries
        self._entries: deque = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def is_enabled(self, level: LogLevel) -> bool:
        return True

    def append(self, event: LogEvent) -> None:
        with self._lock:
            self._entries.append(event)

    def get_entries(self) -> List[LogEvent]:
        """Snapshot of the buffered events, oldest first"""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class LoggingAppender(Appender):
    """Forwards events to the standard ``logging`` module."""

    def __init__(self, logger_name: Optional[str] = None, threshold: LogLevel = LogLevel.INFO):
        super().__init__(threshold)
        self.logger_name = logger_name

    def append(self, event: LogEvent) -> None:
        target = logging.getLogger(self.logger_name or event.logger_name)
        exc_info = None
        if event.error is not None:
            exc_info = (type(event.error), event.error, event.error.__traceback__)
        target.log(
            event.level.to_logging_level(),
            event.message,
            exc_info=exc_info,
            extra={"utilkit_logger": event.logger_name, "fields": event.fields},
        )
