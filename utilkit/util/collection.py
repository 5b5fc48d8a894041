"""
Collection utilities for utilkit.

All helpers accept None where a collection is expected and treat it as
empty. Results are new lists, dicts or sets; inputs are never mutated.
"""

from collections.abc import Mapping, Sequence, Sized
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Set, Tuple, TypeVar

from ..errors import ValidationError

T = TypeVar('T')
U = TypeVar('U')
K = TypeVar('K')
V = TypeVar('V')

_MISSING = object()


def is_empty(container: Optional[Sized]) -> bool:
    """True for None or an empty container."""
    return container is None or len(container) == 0


def is_not_empty(container: Optional[Sized]) -> bool:
    return not is_empty(container)


def size(container: Optional[Sized]) -> int:
    return 0 if container is None else len(container)


def empty_if_none(container: Optional[T], factory: Callable[[], T] = list) -> T:
    """Return ``container`` itself, or a new empty one built by ``factory``."""
    return factory() if container is None else container


def get_or_default(container: Any, key: Any, default: Any = None) -> Any:
    """
    Look up ``key`` in a mapping or an index in a sequence.

    A key present in a mapping returns its value even when that value is
    None; a missing key or an out-of-range index returns ``default``.
    """
    if container is None:
        return default
    if isinstance(container, Mapping):
        return container[key] if key in container else default
    if isinstance(container, Sequence) and isinstance(key, int):
        if 0 <= key < len(container):
            return container[key]
        return default
    raise ValidationError(f"Unsupported container type: {type(container).__name__}",
                          field="container")


def get_first_or_default(items: Optional[Iterable[T]], default: Optional[T] = None) -> Optional[T]:
    if items is None:
        return default
    return next(iter(items), default)


def get_last_or_default(items: Optional[Sequence[T]], default: Optional[T] = None) -> Optional[T]:
    if is_empty(items):
        return default
    return items[-1]


def filter_items(items: Optional[Iterable[T]], predicate: Callable[[T], bool]) -> List[T]:
    if items is None:
        return []
    return [item for item in items if predicate(item)]


def map_items(items: Optional[Iterable[T]], mapper: Callable[[T], U]) -> List[U]:
    if items is None:
        return []
    return [mapper(item) for item in items]


def flatten(nested: Optional[Iterable[Optional[Iterable[T]]]]) -> List[T]:
    """Concatenate inner collections, skipping None members."""
    if nested is None:
        return []
    return [item for inner in nested if inner is not None for item in inner]


def partition(items: Optional[Iterable[T]], chunk_size: int) -> List[List[T]]:
    """Split into consecutive chunks of ``chunk_size``; the last chunk may be shorter."""
    if chunk_size <= 0:
        raise ValidationError("Chunk size must be greater than 0", field="chunk_size")
    if items is None:
        return []

    result: List[List[T]] = []
    chunk: List[T] = []
    for item in items:
        chunk.append(item)
        if len(chunk) == chunk_size:
            result.append(chunk)
            chunk = []
    if chunk:
        result.append(chunk)
    return result


def merge(first: Optional[Mapping[K, V]], second: Optional[Mapping[K, V]],
          merge_fn: Optional[Callable[[V, V], V]] = None) -> Dict[K, V]:
    """
    Merge two mappings into a new dict.

    Without ``merge_fn`` the second mapping wins on conflicts; with it,
    conflicting values are combined as ``merge_fn(first_value, second_value)``.
    """
    result: Dict[K, V] = dict(first or {})
    for key, value in (second or {}).items():
        if merge_fn is not None and key in result:
            result[key] = merge_fn(result[key], value)
        else:
            result[key] = value
    return result


def to_map(items: Optional[Iterable[T]], key_fn: Callable[[T], K],
           value_fn: Callable[[T], V] = lambda item: item) -> Dict[K, V]:
    """Index items by ``key_fn``; later duplicates replace earlier ones."""
    if items is None:
        return {}
    return {key_fn(item): value_fn(item) for item in items}


def to_multimap(items: Optional[Iterable[T]], key_fn: Callable[[T], K],
                value_fn: Callable[[T], V] = lambda item: item) -> Dict[K, List[V]]:
    result: Dict[K, List[V]] = {}
    for item in items or ():
        result.setdefault(key_fn(item), []).append(value_fn(item))
    return result


def group_by(items: Optional[Iterable[T]], key_fn: Callable[[T], K]) -> Dict[K, List[T]]:
    return to_multimap(items, key_fn)


def distinct(items: Optional[Iterable[T]]) -> List[T]:
    """Remove duplicates keeping first occurrences in order."""
    return distinct_by(items, lambda item: item)


def distinct_by(items: Optional[Iterable[T]], key_fn: Callable[[T], Hashable]) -> List[T]:
    if items is None:
        return []
    seen = set()
    result = []
    for item in items:
        key = key_fn(item)
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


def join(items: Optional[Iterable[Any]], delimiter: str = ", ") -> str:
    if items is None:
        return ""
    return delimiter.join(str(item) for item in items)


def intersection(first: Optional[Iterable[T]], second: Optional[Iterable[T]]) -> Set[T]:
    if first is None or second is None:
        return set()
    return set(first) & set(second)


def union(first: Optional[Iterable[T]], second: Optional[Iterable[T]]) -> Set[T]:
    return set(first or ()) | set(second or ())


def difference(first: Optional[Iterable[T]], second: Optional[Iterable[T]]) -> Set[T]:
    """Elements of ``first`` that are not in ``second``."""
    return set(first or ()) - set(second or ())


def reverse(items: Optional[Iterable[T]]) -> List[T]:
    if items is None:
        return []
    return list(items)[::-1]


def all_match(items: Optional[Iterable[T]], predicate: Callable[[T], bool]) -> bool:
    return all(predicate(item) for item in items or ())


def any_match(items: Optional[Iterable[T]], predicate: Callable[[T], bool]) -> bool:
    return any(predicate(item) for item in items or ())


def none_match(items: Optional[Iterable[T]], predicate: Callable[[T], bool]) -> bool:
    return not any_match(items, predicate)


def take(items: Optional[Iterable[T]], n: int) -> List[T]:
    if n < 0:
        raise ValidationError("Number of elements to take must not be negative", field="n")
    if items is None:
        return []
    return list(items)[:n]


def skip(items: Optional[Iterable[T]], n: int) -> List[T]:
    if n < 0:
        raise ValidationError("Number of elements to skip must not be negative", field="n")
    if items is None:
        return []
    return list(items)[n:]


def zip_pairs(first: Optional[Iterable[T]], second: Optional[Iterable[U]]) -> List[Tuple[T, U]]:
    """Pair elements positionally, stopping at the shorter input."""
    if first is None or second is None:
        return []
    return list(zip(first, second))
