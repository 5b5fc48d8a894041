"""
String utilities for utilkit.
Predicates and transforms that treat None as a first-class input.
"""

import re
from typing import Optional
from urllib.parse import quote, unquote

from ..errors import ValidationError

_WHITESPACE_RUN = re.compile(r'\s+')
_WORD_BOUNDARY = re.compile(r'[\s_\-]+')
_CAMEL_HUMP = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')
_INTEGER = re.compile(r'[+-]?[0-9]+')


def is_valid_string(value: Optional[str]) -> bool:
    """
    Check if a string is valid.

    A string is valid when it is not None, not empty and not only
    whitespace.
    """
    return value is not None and bool(value.strip())


def is_blank(value: Optional[str]) -> bool:
    """Inverse of is_valid_string."""
    return not is_valid_string(value)


def default_if_blank(value: Optional[str], default: str) -> str:
    """Return ``value`` unless it is blank, else ``default``."""
    return value if is_valid_string(value) else default


def equals_ignore_case(first: Optional[str], second: Optional[str]) -> bool:
    """
    Compare two strings ignoring case and surrounding whitespace.
    Two None values are equal; None never equals a string.
    """
    if first is None and second is None:
        return True
    if first is None or second is None:
        return False
    return first.strip().casefold() == second.strip().casefold()


def capitalize(value: Optional[str]) -> Optional[str]:
    """Upper-case the first character, leaving the rest untouched."""
    if not value:
        return value
    return value[0].upper() + value[1:]


def is_numeric(value: Optional[str]) -> bool:
    """True for a non-empty string of ASCII digits."""
    if not value:
        return False
    return value.isascii() and value.isdigit()


def is_alpha_numeric(value: Optional[str]) -> bool:
    """True for a non-empty string of ASCII letters and digits."""
    if not value:
        return False
    return value.isascii() and value.isalnum()


def string_to_boolean(value: Optional[str]) -> Optional[bool]:
    """
    Convert a string to a boolean.
    None stays None; only "true" (any case) is True.
    """
    if value is None:
        return None
    return value.strip().lower() == "true"


def string_to_integer(value: Optional[str]) -> Optional[int]:
    """Parse a base-10 integer, returning None when it cannot be parsed."""
    if value is None or not _INTEGER.fullmatch(value):
        return None
    return int(value)


def join_string(delimiter: str, *parts: object) -> str:
    """Join the given parts with ``delimiter``; None parts are skipped."""
    return delimiter.join(str(part) for part in parts if part is not None)


def normalize_whitespace(value: Optional[str]) -> Optional[str]:
    """Collapse runs of whitespace into single spaces and trim the ends."""
    if value is None:
        return None
    return _WHITESPACE_RUN.sub(' ', value).strip()


def truncate(value: Optional[str], max_length: int) -> Optional[str]:
    """Cut the string down to at most ``max_length`` characters."""
    if max_length < 0:
        raise ValidationError("max_length must not be negative", field="max_length")
    if value is None:
        return None
    return value[:max_length]


def _words(value: str) -> list:
    spaced = _CAMEL_HUMP.sub(' ', value.strip())
    return [word for word in _WORD_BOUNDARY.split(spaced) if word]


def to_camel_case(value: Optional[str]) -> Optional[str]:
    """Convert 'hello world' / 'hello_world' to 'helloWorld'."""
    if value is None:
        return None
    words = _words(value)
    if not words:
        return ""
    head, *tail = words
    return head.lower() + ''.join(word[:1].upper() + word[1:].lower() for word in tail)


def to_snake_case(value: Optional[str]) -> Optional[str]:
    """Convert 'hello world' / 'helloWorld' to 'hello_world'."""
    if value is None:
        return None
    return '_'.join(word.lower() for word in _words(value))


def reverse(value: Optional[str]) -> Optional[str]:
    """Reverse a string."""
    if value is None:
        return None
    return value[::-1]


def url_encode(value: str, encoding: str = "utf-8") -> str:
    """Percent-encode a string for use in a URL; spaces become %20."""
    if value is None:
        raise ValidationError("value cannot be None", field="value")
    return quote(value, safe='', encoding=encoding)


def url_decode(value: str, encoding: str = "utf-8") -> str:
    """Decode a percent-encoded string."""
    if value is None:
        raise ValidationError("value cannot be None", field="value")
    return unquote(value, encoding=encoding, errors='strict')
