"""
Ready-made filter predicates for ``LogManager.add_filter``.
"""

from typing import Any, Callable

from .events import LogEvent
from .levels import LogLevel

LogFilter = Callable[[LogEvent], bool]


class LogFilters:
    """Factories for common event filters."""

    @staticmethod
    def by_level(*levels: LogLevel) -> LogFilter:
        """Accept only events at one of ``levels``."""
        allowed = {LogLevel.parse(level) for level in levels}
        return lambda event: event.level in allowed

    @staticmethod
    def by_logger(*prefixes: str) -> LogFilter:
        """Accept events whose logger name starts with one of ``prefixes``."""
        return lambda event: any(event.logger_name.startswith(p) for p in prefixes)

    @staticmethod
    def contains_text(text: str) -> LogFilter:
        return lambda event: event.message is not None and text in event.message

    @staticmethod
    def by_field(name: str, value: Any) -> LogFilter:
        return lambda event: event.has_field(name) and event.get_field(name) == value
