"""
Error model shared by all utilkit helper modules.

Every failure raised by the library is a ``UtilError`` carrying an
``ErrorKind``, a human readable message and, where one exists, the
underlying library exception as ``cause``.
"""

import functools
from enum import Enum
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Callable
from dataclasses import dataclass, field


class ErrorKind(Enum):
    """Categories of failure reported by utilkit."""

    IO_FAILURE = "io_failure"
    PARSE_FAILURE = "parse_failure"
    VALIDATION_FAILURE = "validation_failure"
    NETWORK_FAILURE = "network_failure"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_MALFORMED = "token_malformed"


@dataclass
class ErrorContext:
    """Additional context for errors."""

    operation: Optional[str] = None
    target: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)


class UtilError(Exception):
    """
    Base exception class for all utilkit errors.

    Provides the error kind, the message, the wrapped cause and
    optional context describing the failing operation.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[ErrorContext] = None,
    ):
        self.kind = kind
        self.message = message
        self.cause = cause
        self.context = context or ErrorContext()

        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "kind": self.kind.value,
            "message": self.message,
            "timestamp": self.context.timestamp.isoformat(),
        }

        if self.context.operation:
            result["operation"] = self.context.operation

        if self.context.target:
            result["target"] = self.context.target

        if self.context.metadata:
            result["metadata"] = self.context.metadata

        if self.cause is not None:
            result["caused_by"] = f"{type(self.cause).__name__}: {self.cause}"

        return result

    def is_retryable(self) -> bool:
        """Check if this error might be resolved by retrying."""
        return self.kind in (ErrorKind.NETWORK_FAILURE, ErrorKind.IO_FAILURE)


class FileOperationError(UtilError):
    """Errors raised by filesystem operations."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", None) or ErrorContext()
        if path is not None:
            context.target = str(path)
        super().__init__(ErrorKind.IO_FAILURE, message, context=context, **kwargs)


class ParseError(UtilError):
    """Errors raised when text cannot be parsed (JSON, dates, numbers)."""

    def __init__(self, message: str, **kwargs):
        super().__init__(ErrorKind.PARSE_FAILURE, message, **kwargs)


class ValidationError(UtilError, ValueError):
    """Errors related to invalid arguments."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", None) or ErrorContext()
        if field:
            context.metadata["field"] = field
        super().__init__(ErrorKind.VALIDATION_FAILURE, message, context=context, **kwargs)


class NetworkError(UtilError):
    """Errors related to network operations."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", None) or ErrorContext()
        if url is not None:
            context.target = url
        super().__init__(ErrorKind.NETWORK_FAILURE, message, context=context, **kwargs)


class HttpError(NetworkError):
    """A request completed with a non-success status code."""

    def __init__(self, status_code: int, body: str = "", url: Optional[str] = None, **kwargs):
        self.status_code = status_code
        self.body = body
        message = kwargs.pop("message", None) or f"HTTP Error: {status_code} - {body}"
        super().__init__(message, url=url, **kwargs)
        self.context.metadata["status_code"] = status_code

    def is_retryable(self) -> bool:
        return self.status_code >= 500 or self.status_code == 429


class TokenError(UtilError):
    """Base class for token failures."""


class TokenExpiredError(TokenError):
    """Token signature is valid but the token has expired."""

    def __init__(self, message: str = "Token is expired", **kwargs):
        super().__init__(ErrorKind.TOKEN_EXPIRED, message, **kwargs)


class TokenMalformedError(TokenError):
    """Token cannot be decoded or its signature does not verify."""

    def __init__(self, message: str = "Malformed JWT token", **kwargs):
        super().__init__(ErrorKind.TOKEN_MALFORMED, message, **kwargs)


_ERROR_CLASSES = {
    ErrorKind.IO_FAILURE: FileOperationError,
    ErrorKind.PARSE_FAILURE: ParseError,
    ErrorKind.VALIDATION_FAILURE: ValidationError,
    ErrorKind.NETWORK_FAILURE: NetworkError,
    ErrorKind.TOKEN_EXPIRED: TokenExpiredError,
    ErrorKind.TOKEN_MALFORMED: TokenMalformedError,
}


def wrap_exception(exc: BaseException, kind: ErrorKind, message: str) -> UtilError:
    """Wrap a library exception as the utilkit error for ``kind``."""
    return _ERROR_CLASSES[kind](message, cause=exc)


def wrap_errors(kind: ErrorKind, message: str,
                catch: tuple = (Exception,)) -> Callable:
    """
    Decorator converting library exceptions into utilkit errors.

    ``UtilError`` instances pass through untouched; anything listed in
    ``catch`` is wrapped as ``kind`` with ``message`` plus the original text.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except UtilError:
                raise
            except catch as e:
                raise wrap_exception(e, kind, f"{message}: {e}") from e

        return wrapper
    return decorator


__all__ = [
    "ErrorKind",
    "ErrorContext",
    "UtilError",
    "FileOperationError",
    "ParseError",
    "ValidationError",
    "NetworkError",
    "HttpError",
    "TokenError",
    "TokenExpiredError",
    "TokenMalformedError",
    "wrap_exception",
    "wrap_errors",
]
