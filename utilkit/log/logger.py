"""
Named loggers, structured logging and performance tracking.
"""

import threading
import time
from collections import OrderedDict
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, TypeVar

from ..errors import ValidationError
from .context import MDC, restore, snapshot
from .events import LogEventBuilder
from .levels import LogLevel

T = TypeVar('T')


class Logger:
    """
    Named logger bound to a ``LogManager``.

    Besides the MDC every logger keeps its own thread-local fields,
    overlaid with ``with_field``/``with_fields``/``field_context``.
    """

    def __init__(self, name: str, manager):
        self.name = name
        self.manager = manager
        self._local = threading.local()

    def _context(self) -> Dict[str, Any]:
        ctx = getattr(self._local, 'fields', None)
        if ctx is None:
            ctx = self._local.fields = {}
        return ctx

    def is_enabled(self, level: LogLevel) -> bool:
        return self.manager.is_enabled(self.name, level)

    def trace(self, message: str, error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.TRACE, message, error)

    def debug(self, message: str, error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.DEBUG, message, error)

    def info(self, message: str, error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.INFO, message, error)

    def warn(self, message: str, error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.WARN, message, error)

    warning = warn

    def error(self, message: str, error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.ERROR, message, error)

    def fatal(self, message: str, error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.FATAL, message, error)

    def log(self, level: LogLevel, message: str, error: Optional[BaseException] = None) -> None:
        level = LogLevel.parse(level)
        if not self.is_enabled(level):
            return

        event = (LogEventBuilder()
                 .message(message)
                 .level(level)
                 .logger(self.name)
                 .fields(MDC.get_copy_of_context_map())
                 .fields(self._context())
                 .error(error)
                 .build())
        self.manager.log(event)

    @contextmanager
    def field_context(self, fields: Optional[Mapping[str, Any]] = None, **kwargs) -> Iterator["Logger"]:
        """Overlay fields on this logger for the current thread inside a ``with`` block."""
        values = dict(fields or {}, **kwargs)
        ctx = self._context()
        previous = snapshot(ctx, values)
        ctx.update(values)
        try:
            yield self
        finally:
            restore(ctx, previous)

    def with_field(self, key: str, value: Any, callback: Callable[[], T]) -> T:
        if key is None:
            raise ValidationError("Field key cannot be None", field="key")
        with self.field_context({key: value}):
            return callback()

    def with_fields(self, fields: Mapping[str, Any], callback: Callable[[], T]) -> T:
        with self.field_context(fields):
            return callback()

    def structured(self) -> "StructuredLogger":
        return StructuredLogger(self)

    def timed(self, operation: str, callback: Callable[[], T]) -> T:
        """Run ``callback`` and log how long it took, whether or not it raised."""
        start = time.perf_counter()
        try:
            return callback()
        finally:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            self.info(f"Operation '{operation}' completed in {elapsed_ms} ms")

    def track_performance(self, operation: str) -> "PerformanceTracker":
        return PerformanceTracker(self, operation)

    def __repr__(self) -> str:
        return f"Logger(name={self.name!r})"


class StructuredLogger:
    """Accumulates fields and logs them with the next message."""

    def __init__(self, logger: Logger):
        self._logger = logger
        self._fields: Dict[str, Any] = {}

    def field(self, key: str, value: Any) -> "StructuredLogger":
        if key is None:
            raise ValidationError("Field key cannot be None", field="key")
        self._fields[key] = value
        return self

    def fields(self, values: Mapping[str, Any]) -> "StructuredLogger":
        self._fields.update(values)
        return self

    def log(self, level: LogLevel, message: str, error: Optional[BaseException] = None) -> None:
        with self._logger.field_context(self._fields):
            self._logger.log(level, message, error)

    def trace(self, message: str) -> None:
        self.log(LogLevel.TRACE, message)

    def debug(self, message: str) -> None:
        self.log(LogLevel.DEBUG, message)

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def warn(self, message: str) -> None:
        self.log(LogLevel.WARN, message)

    def error(self, message: str, error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.ERROR, message, error)

    def fatal(self, message: str, error: Optional[BaseException] = None) -> None:
        self.log(LogLevel.FATAL, message, error)


class PerformanceTracker:
    """
    Measures an operation with named checkpoints.

    Each checkpoint records the milliseconds elapsed since the previous
    checkpoint (or the start). ``stop`` logs one INFO summary and is
    idempotent; checkpoints after it are ignored.
    """

    def __init__(self, logger: Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.start_time = time.perf_counter()
        self._last_mark = self.start_time
        self.checkpoints: "OrderedDict[str, float]" = OrderedDict()
        self.stopped = False
        self.total_duration_ms: Optional[float] = None
        self._lock = threading.Lock()

    def checkpoint(self, name: str) -> "PerformanceTracker":
        with self._lock:
            if self.stopped:
                return self
            now = time.perf_counter()
            self.checkpoints[name] = (now - self._last_mark) * 1000
            self._last_mark = now
        return self

    def stop(self) -> None:
        with self._lock:
            if self.stopped:
                return
            self.stopped = True
            self.total_duration_ms = (time.perf_counter() - self.start_time) * 1000
            fields = {
                "operation": self.operation,
                "total_duration_ms": int(self.total_duration_ms),
            }
            for name, duration in self.checkpoints.items():
                fields[f"checkpoint.{name}.ms"] = int(duration)

        with self.logger.field_context(fields):
            self.logger.info(f"Performance tracking completed for operation: {self.operation}")

    def __enter__(self) -> "PerformanceTracker":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
