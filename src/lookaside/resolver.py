"""
Lazy resolution of registered lookups on individual instances.

Resolution happens on first access of an exposed attribute, never at
construction. For one spec on one instance:

1. Read the identifier; if it is missing, every exposed name resolves to None
   and neither the cache nor the store is touched.
2. Build ``bucket/id`` and consult the shared cache; on a miss fetch from the
   store and cache the raw payload (a None payload is cached as ``ABSENT``).
3. Pluck the declared source fields from the payload and apply aliases.

When the shared cache is enabled the resolved mapping is also memoized on the
instance, keyed by the spec and lookup key, so a changed identifier re-resolves.
A memo filled under an earlier configuration is discarded on the next access.
With the cache disabled nothing is memoized and each access is a store call.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Tuple

from lookaside.config import get_cache, get_config
from lookaside.errors import ShapeMismatch
from lookaside.key_builder import build_key
from lookaside.lookup_cache import ABSENT, MISS
from lookaside.registry import LookupSpec, effective_lookups
from lookaside.store import fetch_one

logger = logging.getLogger(__name__)

# Instance __dict__ slot for resolved lookups:
# (config, {(fields, exposed names, key): {exposed: value}})
MEMO_ATTRIBUTE = '_lookaside_resolved'


def read_identifier(instance: Any, id_field: str) -> Any:
    """Return the identifier on ``instance`` or None when it is not set."""
    if isinstance(instance, Mapping):
        return instance.get(id_field)
    return getattr(instance, id_field, None)


def has_identifier(instance: Any, spec: LookupSpec) -> bool:
    return read_identifier(instance, spec.id_field) is not None


def _empty_result(spec: LookupSpec) -> Dict[str, Any]:
    return {name: None for name in spec.exposed_names}


def _decode_record(raw: Any) -> Optional[Mapping]:
    """Return ``raw`` as a mapping if it is a record (or JSON object text)."""
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, (str, bytes)):
        opening = b'{' if isinstance(raw, bytes) else '{'
        if raw.lstrip().startswith(opening):
            try:
                decoded = json.loads(raw)
            except (UnicodeDecodeError, ValueError):
                return None
            if isinstance(decoded, Mapping):
                return decoded
    return None


def pluck(spec: LookupSpec, raw: Any) -> Dict[str, Any]:
    """Map a raw store payload to ``{exposed_name: value}`` for ``spec``."""
    if raw is None or raw is ABSENT:
        return _empty_result(spec)

    record = _decode_record(raw)
    if spec.is_composite:
        if record is None:
            raise ShapeMismatch(
                f"Lookup {list(spec.source_fields)} via {spec.id_field} expects a record, "
                f"got {type(raw).__name__}"
            )
        return {spec.exposed_name(name): record.get(name) for name in spec.source_fields}

    source_field = spec.source_fields[0]
    if record is not None:
        # A single field can be plucked out of a structured record
        return {spec.exposed_name(source_field): record.get(source_field)}
    return {spec.exposed_name(source_field): raw}


def fetch_raw(key: str) -> Any:
    """Cached raw payload for ``key``, fetching from the store on a miss."""
    cache = get_cache()
    cached = cache.get(key)
    if cached is not MISS:
        logger.debug("Lookup cache hit for %s", key)
        return cached

    store = get_config().require_store()
    raw = fetch_one(store, key)
    cache.put(key, raw)
    return raw


def resolve(instance: Any, spec: LookupSpec) -> Dict[str, Any]:
    """Resolve ``spec`` on ``instance`` to ``{exposed_name: value}``."""
    id_value = read_identifier(instance, spec.id_field)
    if id_value is None:
        return _empty_result(spec)

    key = build_key(spec.resolved_bucket, id_value)
    memo = _memo_for(instance) if get_config().cache_enabled else None
    memo_key = (spec.source_fields, spec.exposed_names, key)
    if memo is not None and memo_key in memo:
        return dict(memo[memo_key])

    resolved = pluck(spec, fetch_raw(key))
    if memo is not None:
        memo[memo_key] = resolved
    return dict(resolved)


def resolve_attribute(instance: Any, spec: LookupSpec, exposed_name: str) -> Any:
    return resolve(instance, spec)[exposed_name]


def lookup_values(instance: Any, include_missing: bool = False) -> Dict[str, Any]:
    """
    Resolve every effective lookup of ``instance``'s type.

    Args:
        instance: Object carrying the identifier fields
        include_missing: Also emit (as None) lookups whose identifier is unset

    Returns:
        Exposed name -> value, ancestors' lookups first
    """
    values: Dict[str, Any] = {}
    for spec in effective_lookups(type(instance)):
        if not include_missing and not has_identifier(instance, spec):
            continue
        values.update(resolve(instance, spec))
    return values


def _memo_for(instance: Any) -> Optional[Dict[Tuple, Dict[str, Any]]]:
    # Mappings and __slots__ objects get no memo; the shared cache still applies
    if isinstance(instance, Mapping):
        return None
    namespace = getattr(instance, '__dict__', None)
    if namespace is None:
        return None
    # A memo is only valid for the configuration it was filled under
    config = get_config()
    owner, entries = namespace.get(MEMO_ATTRIBUTE, (None, None))
    if owner is not config:
        entries = {}
        namespace[MEMO_ATTRIBUTE] = (config, entries)
    return entries


def forget(instance: Any) -> None:
    """Drop the resolved-lookup memo of ``instance``."""
    namespace = getattr(instance, '__dict__', None)
    if namespace is not None:
        namespace.pop(MEMO_ATTRIBUTE, None)


class LookupAttribute:
    """
    Read-only descriptor exposing one resolved lookup field.

    Accessing it on the class returns the descriptor; on an instance it
    resolves the owning spec (see ``resolve``) and returns this field.
    """

    def __init__(self, spec: LookupSpec, exposed_name: str):
        self.spec = spec
        self.exposed_name = exposed_name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return resolve_attribute(instance, self.spec, self.exposed_name)

    def __set__(self, instance, value):
        raise AttributeError(f"Lookup attribute {self.exposed_name!r} is read-only")

    def __repr__(self) -> str:
        return (
            f"<LookupAttribute {self.exposed_name!r} via "
            f"{self.spec.id_field} -> {self.spec.resolved_bucket}>"
        )
