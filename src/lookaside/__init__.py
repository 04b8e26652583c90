"""
Lazy, cached lookups of related entities from a key-value store.

Objects carrying foreign-key-like identifiers (``employee_id``) get the
referenced entity's data (``employee_name``) attached on demand, with a
bounded process-wide cache in front of the store. Nested method results can
be enriched in bulk with one batched fetch per injection.

Quick Start:
    >>> from lookaside import Lookaside, DictStore, configure, lookup, inject
    >>>
    >>> configure(store=DictStore({'employees/1': 'Rajini'}), cache_capacity=100)
    >>>
    >>> class Employee(Lookaside):
    ...     __lookups__ = [lookup('name', using='employee_id')]
    ...     def __init__(self, employee_id):
    ...         self.employee_id = employee_id
    >>>
    >>> Employee(1).name
    'Rajini'

Modules:
    - key_builder: ``bucket/id`` lookup keys and bucket derivation
    - lookup_cache: Bounded LRU cache shared across instances
    - store: Store client protocol and an in-memory store
    - config: Process-wide configuration
    - registry: Lookup and injection specs, per-type registry
    - resolver: Lazy per-instance resolution
    - injection: Batched deep injection into nested results
    - serializers: Serialization drivers including lookup attributes
    - model: ``Lookaside`` base class
"""

from lookaside.errors import (
    LookasideError,
    ConfigurationError,
    StoreUnavailable,
    MalformedPath,
    ShapeMismatch,
)

from lookaside.key_builder import bucket_name, build_key, build_keys

from lookaside.lookup_cache import LookupCache, CacheStats, MISS, ABSENT

from lookaside.store import LookupStore, DictStore

from lookaside.config import (
    LookasideConfig,
    configure,
    reconfigure,
    get_config,
    get_cache,
    clear_cache,
    reset_config,
)

from lookaside.registry import (
    LookupSpec,
    InjectionSpec,
    lookup,
    inject,
    register_lookup,
    register_injection,
    effective_lookups,
    effective_injections,
    lookup_names,
)

from lookaside.resolver import resolve, lookup_values, LookupAttribute

from lookaside.injection import apply_injection, apply_injections, locate, install_injections

from lookaside.serializers import (
    Serializer,
    AttributeSerializer,
    DataclassSerializer,
    MappingSerializer,
    serialize,
)

from lookaside.model import Lookaside, declare, expose_lookup

__all__ = [
    # Errors
    'LookasideError',
    'ConfigurationError',
    'StoreUnavailable',
    'MalformedPath',
    'ShapeMismatch',
    # Keys
    'bucket_name',
    'build_key',
    'build_keys',
    # Cache
    'LookupCache',
    'CacheStats',
    'MISS',
    'ABSENT',
    # Store
    'LookupStore',
    'DictStore',
    # Config
    'LookasideConfig',
    'configure',
    'reconfigure',
    'get_config',
    'get_cache',
    'clear_cache',
    'reset_config',
    # Registry
    'LookupSpec',
    'InjectionSpec',
    'lookup',
    'inject',
    'register_lookup',
    'register_injection',
    'effective_lookups',
    'effective_injections',
    'lookup_names',
    # Resolution
    'resolve',
    'lookup_values',
    'LookupAttribute',
    # Injection
    'apply_injection',
    'apply_injections',
    'locate',
    'install_injections',
    # Serialization
    'Serializer',
    'AttributeSerializer',
    'DataclassSerializer',
    'MappingSerializer',
    'serialize',
    # Model
    'Lookaside',
    'declare',
    'expose_lookup',
]

__version__ = '0.1.0'
__description__ = 'Lazy cached lookups and batched deep injection from a key-value store'
