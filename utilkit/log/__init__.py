"""
Structured log router for utilkit.

Named loggers hand events to a ``LogManager`` which applies level
thresholds and filters, then dispatches to appenders.
"""

from .levels import LogLevel
from .events import LogEvent, LogEventBuilder
from .context import MDC
from .logger import Logger, StructuredLogger, PerformanceTracker
from .appenders import (
    Appender, ConsoleAppender, JsonAppender, FileAppender,
    MemoryAppender, LoggingAppender
)
from .filters import LogFilters
from .manager import (
    LogManager, get_log_manager, set_log_manager, get_logger, initialize
)

__all__ = [
    'LogLevel', 'LogEvent', 'LogEventBuilder', 'MDC',
    'Logger', 'StructuredLogger', 'PerformanceTracker',
    'Appender', 'ConsoleAppender', 'JsonAppender', 'FileAppender',
    'MemoryAppender', 'LoggingAppender', 'LogFilters',
    'LogManager', 'get_log_manager', 'set_log_manager', 'get_logger', 'initialize',
]
