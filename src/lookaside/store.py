"""
Lookup store client interface.

The store is an external key-value service. The engine only needs two
operations from it, both keyed by ``bucket/id`` strings:

- ``fetch_one(key)`` returns the value or None when there is no such entity.
- ``fetch_many(keys)`` returns a sequence aligned with ``keys``, using None
  for missing entities.

Any exception raised by a store is surfaced to callers as ``StoreUnavailable``.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from lookaside.errors import ShapeMismatch, StoreUnavailable

logger = logging.getLogger(__name__)


@runtime_checkable
class LookupStore(Protocol):
    """Structural type for store clients."""

    def fetch_one(self, key: str) -> Optional[Any]:
        ...

    def fetch_many(self, keys: Sequence[str]) -> Sequence[Optional[Any]]:
        ...


class DictStore:
    """In-memory store backed by a dict, useful for tests and local runs."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})

    def fetch_one(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def fetch_many(self, keys: Sequence[str]) -> List[Optional[Any]]:
        return [self.data.get(key) for key in keys]

    def __repr__(self) -> str:
        return f"DictStore({len(self.data)} keys)"


def fetch_one(store: LookupStore, key: str) -> Optional[Any]:
    """Call ``store.fetch_one`` and map store failures to ``StoreUnavailable``."""
    logger.debug("Fetching %s", key)
    try:
        return store.fetch_one(key)
    except Exception as exc:
        raise StoreUnavailable(f"Store failed fetching {key!r}: {exc}", (key,)) from exc


def fetch_many(store: LookupStore, keys: Sequence[str]) -> List[Optional[Any]]:
    """Batched fetch; the result is checked to be aligned with ``keys``."""
    keys = list(keys)
    logger.debug("Fetching %d keys in one batch", len(keys))
    try:
        values = store.fetch_many(keys)
    except Exception as exc:
        raise StoreUnavailable(f"Store failed fetching {len(keys)} keys: {exc}", tuple(keys)) from exc

    values = list(values) if values is not None else []
    if len(values) != len(keys):
        raise ShapeMismatch(
            f"Store returned {len(values)} values for {len(keys)} keys"
        )
    return values
