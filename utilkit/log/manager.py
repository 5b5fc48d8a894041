"""
Log router: level resolution, filters and appender dispatch.
"""

import inspect
import sys
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional, Union

from ..errors import ValidationError
from .appenders import Appender, ConsoleAppender
from .events import LogEvent
from .filters import LogFilter
from .levels import LogLevel
from .logger import Logger


class LogManager:
    """
    Routes events from named loggers to registered appenders.

    The effective level of a logger is its own entry in the level table,
    else the nearest dotted parent's entry, else the root level.
    """

    def __init__(self, root_level: LogLevel = LogLevel.INFO):
        self._root_level = LogLevel.parse(root_level)
        self._appenders: "OrderedDict[str, Appender]" = OrderedDict()
        self._levels: Dict[str, LogLevel] = {}
        self._filters: "OrderedDict[str, LogFilter]" = OrderedDict()
        self._loggers: Dict[str, Logger] = {}
        self._lock = threading.RLock()

    # Appenders

    def register_appender(self, name: str, appender: Appender) -> None:
        if not name:
            raise ValidationError("Appender name is required", field="name")
        if appender is None:
            raise ValidationError("Appender cannot be None", field="appender")
        with self._lock:
            self._appenders[name] = appender

    def remove_appender(self, name: str) -> Optional[Appender]:
        with self._lock:
            return self._appenders.pop(name, None)

    def get_appender(self, name: str) -> Optional[Appender]:
        with self._lock:
            return self._appenders.get(name)

    # Levels

    @property
    def root_level(self) -> LogLevel:
        return self._root_level

    def set_root_log_level(self, level: LogLevel) -> None:
        self._root_level = LogLevel.parse(level)

    def set_log_level(self, logger_name: str, level: LogLevel) -> None:
        level = LogLevel.parse(level)
        with self._lock:
            self._levels[logger_name] = level

    def clear_log_level(self, logger_name: str) -> None:
        with self._lock:
            self._levels.pop(logger_name, None)

    def get_effective_level(self, logger_name: str) -> LogLevel:
        with self._lock:
            name = logger_name or ""
            while name:
                level = self._levels.get(name)
                if level is not None:
                    return level
                if "." not in name:
                    break
                name = name.rsplit(".", 1)[0]
            return self._root_level

    def is_enabled(self, logger_name: str, level: LogLevel) -> bool:
        return level.severity >= self.get_effective_level(logger_name).severity

    # Filters

    def add_filter(self, name: str, predicate: LogFilter) -> None:
        if not callable(predicate):
            raise ValidationError("Filter must be callable", field="predicate")
        with self._lock:
            self._filters[name] = predicate

    def remove_filter(self, name: str) -> None:
        with self._lock:
            self._filters.pop(name, None)

    # Dispatch

    def _accepts(self, event: LogEvent, filters) -> bool:
        for name, predicate in filters:
            try:
                if not predicate(event):
                    return False
            except Exception as e:
                print(f"Log filter '{name}' failed: {e}", file=sys.stderr)
                return False
        return True

    def log(self, event: LogEvent) -> None:
        """Dispatch ``event`` when its logger's effective level and every filter accept it."""
        with self._lock:
            filters = list(self._filters.items())
            appenders = list(self._appenders.items())

        if not self.is_enabled(event.logger_name, event.level):
            return
        if not self._accepts(event, filters):
            return

        for name, appender in appenders:
            if not appender.is_enabled(event.level):
                continue
            try:
                appender.append(event)
            except Exception as e:
                print(f"Log appender '{name}' failed: {e}", file=sys.stderr)

    def get_logger(self, name: Union[str, type, Any]) -> Logger:
        logger_name = logger_name_for(name)
        with self._lock:
            logger = self._loggers.get(logger_name)
            if logger is None:
                logger = self._loggers[logger_name] = Logger(logger_name, self)
            return logger

    def close(self) -> None:
        with self._lock:
            appenders = list(self._appenders.values())
        for appender in appenders:
            appender.close()


def logger_name_for(source: Union[str, type, Any]) -> str:
    """Qualified name for a string, class or module."""
    if isinstance(source, str):
        return source
    if inspect.ismodule(source):
        return source.__name__
    if inspect.isclass(source):
        return f"{source.__module__}.{source.__qualname__}"
    raise ValidationError(f"Cannot derive a logger name from {source!r}", field="name")


_manager: Optional[LogManager] = None
_manager_lock = threading.Lock()


def get_log_manager() -> LogManager:
    """Return the process-wide log manager, creating it on first use."""
    global _manager
    if _manager is None:
        with _manager_lock:
            if _manager is None:
                _manager = LogManager()
    return _manager


def set_log_manager(manager: Optional[LogManager]) -> None:
    """Replace the process-wide log manager (None resets it)."""
    global _manager
    with _manager_lock:
        _manager = manager


def get_logger(name: Union[str, type, Any]) -> Logger:
    return get_log_manager().get_logger(name)


def initialize(manager: Optional[LogManager] = None) -> LogManager:
    """
    Configure a manager with a console appender.

    The root level and console threshold come from ``Config.log``.
    """
    from ..core.config import get_config

    manager = manager or get_log_manager()
    log_config = get_config().log
    manager.set_root_log_level(LogLevel.parse(log_config.root_level))
    manager.register_appender("console", ConsoleAppender(LogLevel.parse(log_config.console_threshold)))
    return manager
