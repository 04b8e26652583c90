"""
Process-wide lookup configuration.

The configuration is set once at startup with ``configure()`` and read by the
resolver, the injection engine and the serializers. Each ``configure()`` call
installs a new immutable ``LookasideConfig`` together with a fresh shared cache
sized to it; nothing mutates a config in place.

Example:
    >>> from lookaside import configure, DictStore
    >>> configure(store=DictStore({'employees/1': 'Rajini'}), cache_capacity=100)
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Optional

from lookaside.errors import ConfigurationError
from lookaside.lookup_cache import LookupCache

logger = logging.getLogger(__name__)

DEFAULT_CACHE_CAPACITY = 1000


@dataclass(frozen=True)
class LookasideConfig:
    """Immutable configuration snapshot.

    Attributes:
        store: Lookup store client (see ``lookaside.store.LookupStore``)
        cache_capacity: Maximum entries in the shared cache
        cache_enabled: When False every resolution goes to the store
        driver: Serializer used by ``Lookaside.as_dict()``; None means the
            default attribute serializer
    """
    store: Any = None
    cache_capacity: int = DEFAULT_CACHE_CAPACITY
    cache_enabled: bool = True
    driver: Any = None

    def require_store(self) -> Any:
        if self.store is None:
            raise ConfigurationError("No lookup store configured; call lookaside.configure(store=...)")
        return self.store


_config_lock = threading.Lock()
_current_config = LookasideConfig()
_shared_cache = LookupCache(DEFAULT_CACHE_CAPACITY)
_config_used = False


def _validate(config: LookasideConfig) -> None:
    if isinstance(config.cache_capacity, bool) or not isinstance(config.cache_capacity, int):
        raise ConfigurationError(f"cache_capacity must be an int, got {config.cache_capacity!r}")
    if config.cache_capacity <= 0:
        raise ConfigurationError(f"cache_capacity must be positive, got {config.cache_capacity}")


def configure(
    store: Any = None,
    cache_capacity: int = DEFAULT_CACHE_CAPACITY,
    cache_enabled: bool = True,
    driver: Any = None,
) -> LookasideConfig:
    """Install a new process-wide configuration and an empty shared cache.

    Instances memoize resolved lookups per configuration, so values resolved
    before this call are fetched again on their next access.

    Args:
        store: Lookup store client
        cache_capacity: Positive bound on the shared cache
        cache_enabled: Enable or bypass the shared cache
        driver: Serialization driver instance

    Returns:
        The installed configuration
    """
    global _current_config, _shared_cache, _config_used

    config = LookasideConfig(
        store=store,
        cache_capacity=cache_capacity,
        cache_enabled=cache_enabled,
        driver=driver,
    )
    _validate(config)

    with _config_lock:
        if _config_used:
            logger.warning("Lookup configuration replaced after first use; shared cache discarded")
        _current_config = config
        _shared_cache = LookupCache(config.cache_capacity, enabled=config.cache_enabled)
        _config_used = False

    logger.debug("Configured lookups: %s", describe_config(config))
    return config


def reconfigure(**changes) -> LookasideConfig:
    """Install a copy of the current configuration with ``changes`` applied."""
    current = get_config()
    updated = replace(current, **changes)
    return configure(
        store=updated.store,
        cache_capacity=updated.cache_capacity,
        cache_enabled=updated.cache_enabled,
        driver=updated.driver,
    )


def get_config() -> LookasideConfig:
    global _config_used
    _config_used = True
    return _current_config


def get_cache() -> LookupCache:
    """Return the shared cache for the current configuration."""
    return _shared_cache


def clear_cache() -> None:
    _shared_cache.clear()


def reset_config() -> None:
    """Restore the default (store-less) configuration."""
    global _current_config, _shared_cache, _config_used
    with _config_lock:
        _current_config = LookasideConfig()
        _shared_cache = LookupCache(DEFAULT_CACHE_CAPACITY)
        _config_used = False


def describe_config(config: Optional[LookasideConfig] = None) -> str:
    config = config or _current_config
    state = "enabled" if config.cache_enabled else "disabled"
    return f"store={config.store!r}, cache {state} (capacity {config.cache_capacity})"
