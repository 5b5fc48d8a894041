"""
utilkit Python Package

Helper modules for strings, dates, collections, files, JSON, JWT, HTTP,
network diagnostics and structured logging.
"""

__version__ = "0.1.0"

from .core.config import Config, get_config, set_config
from .errors import (
    ErrorKind,
    UtilError,
    FileOperationError,
    ParseError,
    ValidationError,
    NetworkError,
    HttpError,
    TokenError,
    TokenExpiredError,
    TokenMalformedError,
)

__all__ = [
    "Config",
    "get_config",
    "set_config",
    "ErrorKind",
    "UtilError",
    "FileOperationError",
    "ParseError",
    "ValidationError",
    "NetworkError",
    "HttpError",
    "TokenError",
    "TokenExpiredError",
    "TokenMalformedError",
]
