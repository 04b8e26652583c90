"""
Deep injection of batched lookups into nested method results.

An injection rewrites the result of a method in place. It locates a node with
a path, collects identifiers from it, fetches every value in one batched store
call and writes the values back in the same shape:

List of records::

    {'menu': [{'item_id': 1}, {'item_id': 2}]}
    -> {'menu': [{'item_id': 1, 'item_name': 'Idly'}, {'item_id': 2, 'item_name': 'Pongal'}]}

Columnar mapping::

    {'table': {'employee_id': [10, 20]}}
    -> {'table': {'employee_id': [10, 20], 'employee_name': ['emp 1', 'emp 2']}}

Paths are either a direct key of the root (``'table'``) or a ``$.``-prefixed
dotted path (``'$.table.menu'``). The last segment may carry a filter
predicate (``'$.table.menu[?(@.item_id=5)]'``) that narrows a list of records
to those whose field matches the literal.

Empty containers are left untouched and cost no store call. Injections never
consult the shared lookup cache: each invocation is exactly one batched fetch.
"""

import functools
import logging
import re
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, Type

from lookaside.config import get_config
from lookaside.errors import ConfigurationError, MalformedPath
from lookaside.key_builder import build_keys
from lookaside.registry import InjectionSpec, own_injections
from lookaside.store import fetch_many

logger = logging.getLogger(__name__)

ROOT = '$'
PATH_SEPARATOR = '.'

# Dots inside a filter predicate do not separate segments
_SEPARATOR_PATTERN = re.compile(r"\.(?![^\[]*\])")

_SEGMENT_PATTERN = re.compile(
    r"^(?P<key>[^\[\]]+)"
    r"(?:\[\?\(@\.(?P<field>[^=\s)]+)\s*==?\s*(?P<value>[^)]*?)\s*\)\])?$"
)

# Marks the wrapper installed on a class so it is not wrapped twice
WRAPPED_OWNER_ATTRIBUTE = '__lookaside_owner__'


# =============================================================================
# PATHS
# =============================================================================

@dataclass(frozen=True)
class PathSegment:
    key: str
    filter_field: Optional[str] = None
    filter_value: Optional[str] = None

    @property
    def has_filter(self) -> bool:
        return self.filter_field is not None

    def matches(self, record: Mapping) -> bool:
        return self.filter_field in record and str(record[self.filter_field]) == self.filter_value


def _strip_quotes(literal: str) -> str:
    if len(literal) >= 2 and literal[0] == literal[-1] and literal[0] in ('"', "'"):
        return literal[1:-1]
    return literal


@functools.lru_cache(maxsize=256)
def parse_path(path: str) -> Tuple[PathSegment, ...]:
    """
    Split ``path`` into segments.

    Args:
        path: ``'key'``, ``'$'`` or ``'$.a.b'`` with an optional trailing filter

    Returns:
        Tuple of segments; empty for the root itself

    Raises:
        MalformedPath: If the path or one of its segments cannot be parsed
    """
    if not path:
        raise MalformedPath(path, None, "empty path")
    if path == ROOT:
        return ()
    if path.startswith(ROOT + PATH_SEPARATOR):
        raw_segments = _SEPARATOR_PATTERN.split(path[len(ROOT) + 1:])
    elif path.startswith(ROOT):
        raise MalformedPath(path, None, f"expected '{ROOT}{PATH_SEPARATOR}' prefix")
    else:
        raw_segments = [path]

    segments = []
    for raw in raw_segments:
        match = _SEGMENT_PATTERN.match(raw)
        if not raw or match is None:
            raise MalformedPath(path, raw, "cannot parse segment")
        value = match.group('value')
        segments.append(PathSegment(
            key=match.group('key'),
            filter_field=match.group('field'),
            filter_value=_strip_quotes(value) if value is not None else None,
        ))

    if any(segment.has_filter for segment in segments[:-1]):
        raise MalformedPath(path, None, "filter predicates are only supported on the last segment")
    return tuple(segments)


def locate(document: Any, path: str) -> Any:
    """Return the node addressed by ``path`` inside ``document``."""
    node = document
    segments = parse_path(path)
    for segment in segments:
        if not isinstance(node, Mapping):
            raise MalformedPath(path, segment.key, f"cannot index into {type(node).__name__}")
        if segment.key not in node:
            raise MalformedPath(path, segment.key, "no such key")
        node = node[segment.key]

    if segments and segments[-1].has_filter:
        last = segments[-1]
        if not _is_sequence(node):
            raise MalformedPath(path, last.key, "filter predicate needs a list of records")
        node = [record for record in node if isinstance(record, Mapping) and last.matches(record)]
    return node


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


# =============================================================================
# INJECTION
# =============================================================================

def _fetch_aligned(spec: InjectionSpec, ids: List[Any]) -> List[Any]:
    """Fetch values for ``ids`` in one batch; None ids map to None without a fetch."""
    present = [id_value for id_value in ids if id_value is not None]
    if not present:
        return [None] * len(ids)

    store = get_config().require_store()
    fetched = iter(fetch_many(store, build_keys(spec.resolved_bucket, present)))
    return [next(fetched) if id_value is not None else None for id_value in ids]


def _inject_records(records: List[Any], spec: InjectionSpec) -> None:
    for record in records:
        if not isinstance(record, MutableMapping):
            raise MalformedPath(spec.at, None, f"expected records, found {type(record).__name__}")

    contributing = [record for record in records if record.get(spec.using) is not None]
    if not contributing:
        logger.debug("No %s in records at %s; nothing to inject", spec.using, spec.at)
        return

    values = _fetch_aligned(spec, [record[spec.using] for record in contributing])
    for record, value in zip(contributing, values):
        record[spec.populate] = value


def _inject_columnar(node: MutableMapping, spec: InjectionSpec) -> None:
    if spec.using not in node:
        raise MalformedPath(spec.at, spec.using, "no id column")
    ids = node[spec.using]
    if not _is_sequence(ids):
        raise MalformedPath(spec.at, spec.using, f"expected a list of ids, found {type(ids).__name__}")
    if not ids:
        return
    node[spec.populate] = _fetch_aligned(spec, list(ids))


def apply_injection(result: Any, spec: InjectionSpec) -> Any:
    """Apply one injection to ``result`` in place and return it."""
    node = locate(result, spec.at)

    if isinstance(node, MutableMapping):
        if node:
            _inject_columnar(node, spec)
    elif _is_sequence(node):
        if node:
            _inject_records(list(node), spec)
    else:
        raise MalformedPath(
            spec.at, None,
            f"expected a list of records or a columnar mapping, found {type(node).__name__}",
        )
    return result


def apply_injections(result: Any, specs) -> Any:
    """Apply ``specs`` in order; each sees the result of the previous one."""
    for spec in specs:
        logger.debug("Injecting %s -> %s at %s", spec.using, spec.populate, spec.at)
        result = apply_injection(result, spec)
    return result


# =============================================================================
# METHOD WRAPPING
# =============================================================================

def _make_wrapper(owner: Type, method_name: str, method: Callable) -> Callable:
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        result = method(self, *args, **kwargs)
        return apply_injections(result, own_injections(owner, method_name))

    setattr(wrapper, WRAPPED_OWNER_ATTRIBUTE, owner)
    return wrapper


def install_injections(cls: Type) -> None:
    """
    Wrap every method of ``cls`` that has injections registered on ``cls``.

    A wrapper applies the injections of the class it was installed on. A
    subclass adding injections to an inherited method wraps the inherited
    (already wrapped) method, so ancestors' injections run first.

    Raises:
        ConfigurationError: If an injection names a method ``cls`` does not have
    """
    method_names = []
    for spec in own_injections(cls):
        if spec.after not in method_names:
            method_names.append(spec.after)

    for method_name in method_names:
        current = cls.__dict__.get(method_name)
        if getattr(current, WRAPPED_OWNER_ATTRIBUTE, None) is cls:
            continue
        method = getattr(cls, method_name, None)
        if method is None or not callable(method):
            raise ConfigurationError(f"{cls.__name__} has no method {method_name!r} to inject after")
        if isinstance(cls.__dict__.get(method_name), (staticmethod, classmethod)):
            raise ConfigurationError(f"Injections need an instance method, {cls.__name__}.{method_name} is not")
        setattr(cls, method_name, _make_wrapper(cls, method_name, method))
