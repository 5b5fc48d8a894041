"""
Mapped diagnostic context: per-thread fields merged into every log event.
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

_local = threading.local()
_MISSING = object()


def _context() -> Dict[str, Any]:
    ctx = getattr(_local, 'fields', None)
    if ctx is None:
        ctx = _local.fields = {}
    return ctx


class MDC:
    """Thread-local diagnostic context."""

    @staticmethod
    def put(key: str, value: Any) -> None:
        _context()[key] = value

    @staticmethod
    def get(key: str, default: Any = None) -> Any:
        return _context().get(key, default)

    @staticmethod
    def remove(key: str) -> None:
        _context().pop(key, None)

    @staticmethod
    def clear() -> None:
        _context().clear()

    @staticmethod
    def get_copy_of_context_map() -> Dict[str, Any]:
        return dict(_context())

    @staticmethod
    @contextmanager
    def scoped(fields: Optional[Dict[str, Any]] = None, **kwargs) -> Iterator[None]:
        """
        Put fields for the duration of a ``with`` block.

        On exit each key gets its previous value back, or is removed when it
        was absent, even if the block raised.
        """
        values = dict(fields or {}, **kwargs)
        ctx = _context()
        previous = snapshot(ctx, values)
        ctx.update(values)
        try:
            yield
        finally:
            restore(ctx, previous)


def restore(target: Dict[str, Any], previous: Dict[str, Any]) -> None:
    """Put back values captured before an overlay; absent keys are deleted."""
    for key, value in previous.items():
        if value is _MISSING:
            target.pop(key, None)
        else:
            target[key] = value


def snapshot(target: Dict[str, Any], keys) -> Dict[str, Any]:
    return {key: target.get(key, _MISSING) for key in keys}
