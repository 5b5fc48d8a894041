"""
JSON utilities for utilkit.

Encoding understands dataclasses, datetimes, enums, sets and objects
exposing ``to_dict`` or ``__dict__``. Decoding can target a dataclass,
in which case nested dataclass fields are built recursively.
"""

import dataclasses
import json
import logging
import typing
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, IO, List, Optional, Type, TypeVar, Union

import aiofiles

from ..errors import ParseError, ValidationError
from .files import PathLike, read_file, write_file, DEFAULT_ENCODING, _require_path, _wrap_io

logger = logging.getLogger(__name__)

T = TypeVar('T')

_PRIMITIVES = (str, int, float, bool)


def json_serializer(obj: Any) -> Any:
    """Fallback used by ``json.dumps`` for non-standard types."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    if isinstance(obj, bytes):
        return obj.decode('utf-8', errors='replace')
    if hasattr(obj, 'to_dict'):
        return obj.to_dict()
    if hasattr(obj, '_asdict'):
        return obj._asdict()
    if hasattr(obj, '__dict__'):
        return {k: v for k, v in vars(obj).items() if not k.startswith('_')}
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def to_json(obj: Any) -> str:
    """Serialize to compact JSON."""
    try:
        return json.dumps(obj, default=json_serializer, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Failed to encode JSON: {e}", cause=e)


def to_pretty_json(obj: Any) -> str:
    """Serialize to indented JSON."""
    try:
        return json.dumps(obj, default=json_serializer, ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Failed to encode JSON: {e}", cause=e)


def parse_json(text: str) -> Any:
    """Parse JSON text into a tree of dicts, lists and scalars."""
    if text is None:
        raise ValidationError("JSON text cannot be None", field="text")
    try:
        return json.loads(text)
    except RecursionError as e:
        raise ParseError("Invalid JSON: nesting too deep", cause=e)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Invalid JSON: {e}", cause=e)


def _convert(value: Any, target: Any) -> Any:
    if target is None or target is Any:
        return value

    origin = typing.get_origin(target)
    if origin is Union:
        args = [arg for arg in typing.get_args(target) if arg is not type(None)]
        if value is None:
            return None
        return _convert(value, args[0]) if len(args) == 1 else value
    if origin in (list, List):
        if not isinstance(value, list):
            raise TypeError(f"Expected a JSON array, got {type(value).__name__}")
        (item_type,) = typing.get_args(target) or (None,)
        return [_convert(item, item_type) for item in value]
    if origin in (dict, Dict):
        if not isinstance(value, dict):
            raise TypeError(f"Expected a JSON object, got {type(value).__name__}")
        args = typing.get_args(target)
        value_type = args[1] if len(args) == 2 else None
        return {key: _convert(item, value_type) for key, item in value.items()}

    if dataclasses.is_dataclass(target):
        if not isinstance(value, dict):
            raise TypeError(f"Expected a JSON object for {target.__name__}")
        hints = typing.get_type_hints(target)
        kwargs = {}
        for f in dataclasses.fields(target):
            if f.init and f.name in value:
                kwargs[f.name] = _convert(value[f.name], hints.get(f.name))
        return target(**kwargs)
    if isinstance(target, type) and issubclass(target, Enum):
        return target(value)
    if target is datetime:
        return datetime.fromisoformat(value)
    if target is date:
        return date.fromisoformat(value)
    if target is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if target in _PRIMITIVES:
        if not isinstance(value, target) or (target is int and isinstance(value, bool)):
            raise TypeError(f"Expected {target.__name__}, got {type(value).__name__}")
        return value
    if target in (list, dict):
        if not isinstance(value, target):
            raise TypeError(f"Expected {target.__name__}, got {type(value).__name__}")
        return value
    if isinstance(target, type) and isinstance(value, dict):
        return target(**value)
    return value


def convert_value(value: Any, cls: Type[T]) -> T:
    """Convert a parsed JSON tree into ``cls``; raises ParseError on mismatch."""
    try:
        return _convert(value, cls)
    except (TypeError, ValueError, KeyError) as e:
        raise ParseError(f"Cannot convert JSON value to {getattr(cls, '__name__', cls)}: {e}",
                         cause=e)


def from_json(text: str, cls: Optional[Type[T]] = None) -> Any:
    """
    Parse JSON text, optionally converting it to ``cls``.

    ``cls`` may be a dataclass, a primitive type, an Enum or a typing
    generic such as ``List[Item]``.
    """
    return convert_value(parse_json(text), cls)


def from_json_to_list(text: str, cls: Optional[Type[T]] = None) -> List[T]:
    data = parse_json(text)
    if not isinstance(data, list):
        raise ParseError("JSON value is not an array")
    return [convert_value(item, cls) for item in data]


def from_json_to_map(text: str, cls: Optional[Type[T]] = None) -> Dict[str, T]:
    data = parse_json(text)
    if not isinstance(data, dict):
        raise ParseError("JSON value is not an object")
    return {key: convert_value(item, cls) for key, item in data.items()}


def read_json_file(path: PathLike, cls: Optional[Type[T]] = None) -> Any:
    return from_json(read_file(path), cls)


def read_json_from_stream(stream: IO, cls: Optional[Type[T]] = None) -> Any:
    """Read a text or binary stream to the end and decode it."""
    content = stream.read()
    if isinstance(content, bytes):
        try:
            content = content.decode(DEFAULT_ENCODING)
        except UnicodeDecodeError as e:
            raise ParseError(f"Stream is not valid {DEFAULT_ENCODING}: {e}", cause=e)
    return from_json(content, cls)


def write_json_file(path: PathLike, obj: Any) -> None:
    write_file(path, to_json(obj))


def write_pretty_json_file(path: PathLike, obj: Any) -> None:
    write_file(path, to_pretty_json(obj))


def extract_value(node: Any, field: str, cls: Optional[Type[T]] = None) -> Optional[Any]:
    """
    Read ``field`` from a JSON object node.
    Returns None when the node is not an object, the field is missing or
    the value cannot be converted to ``cls``.
    """
    if not isinstance(node, dict) or field not in node:
        return None
    try:
        return _convert(node[field], cls)
    except (TypeError, ValueError, KeyError) as e:
        logger.debug(f"Cannot convert field '{field}': {e}")
        return None


def is_valid_json(text: Optional[str]) -> bool:
    if text is None:
        return False
    try:
        json.loads(text)
        return True
    except (ValueError, TypeError, RecursionError):
        return False


def merge_json_objects(first: str, second: str) -> str:
    """Shallow-merge two JSON objects; keys in ``second`` win."""
    a = parse_json(first)
    b = parse_json(second)
    if not isinstance(a, dict) or not isinstance(b, dict):
        raise ValidationError("Both JSON strings must represent JSON objects")
    merged = dict(a)
    merged.update(b)
    return to_json(merged)


async def read_json_file_async(path: PathLike, cls: Optional[Type[T]] = None) -> Any:
    file_path = _require_path(path)
    with _wrap_io("read", file_path):
        async with aiofiles.open(file_path, "r", encoding=DEFAULT_ENCODING) as f:
            content = await f.read()
    return from_json(content, cls)


async def write_json_file_async(path: PathLike, obj: Any, pretty: bool = False) -> None:
    content = to_pretty_json(obj) if pretty else to_json(obj)
    file_path = _require_path(path)
    with _wrap_io("write", file_path):
        async with aiofiles.open(file_path, "w", encoding=DEFAULT_ENCODING) as f:
            await f.write(content)
