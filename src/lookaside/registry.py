"""
Declarative lookup and injection registrations, keyed by type.

Each type owns a table of the specs registered directly on it. The effective
table of a type is the concatenation of its ancestors' tables and its own,
walking the MRO from the most-base class to the type itself. Subclasses can
only add specs; nothing registered on an ancestor can be removed or replaced.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Type, Union

from lookaside.errors import ConfigurationError
from lookaside.key_builder import bucket_name

logger = logging.getLogger(__name__)


# =============================================================================
# SPECS
# =============================================================================

@dataclass(frozen=True)
class LookupSpec:
    """Which fields to resolve from the store, and under which names.

    Attributes:
        source_fields: Field names read from the store payload, in order
        id_field: Instance attribute holding the identifier
        bucket: Explicit bucket; derived from ``id_field`` when None
        aliases: source field -> exposed attribute name
    """
    source_fields: Tuple[str, ...]
    id_field: str
    bucket: Optional[str] = None
    aliases: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if not self.source_fields:
            raise ConfigurationError("A lookup needs at least one source field")
        if not self.id_field:
            raise ConfigurationError("A lookup needs an id field")
        unknown = set(self.aliases) - set(self.source_fields)
        if unknown:
            raise ConfigurationError(
                f"Aliases {sorted(unknown)} do not name source fields of {list(self.source_fields)}"
            )
        object.__setattr__(self, 'aliases', MappingProxyType(dict(self.aliases)))

    @property
    def resolved_bucket(self) -> str:
        return bucket_name(self.id_field, self.bucket)

    @property
    def is_composite(self) -> bool:
        return len(self.source_fields) > 1

    def exposed_name(self, source_field: str) -> str:
        return self.aliases.get(source_field, source_field)

    @property
    def exposed_names(self) -> Tuple[str, ...]:
        return tuple(self.exposed_name(name) for name in self.source_fields)


@dataclass(frozen=True)
class InjectionSpec:
    """Post-processing of a method result with batched lookups.

    Attributes:
        after: Name of the method whose result is rewritten
        at: Direct key or ``$.``-prefixed dotted path into the result
        using: Field holding the identifier(s)
        populate: Field written with the looked-up value(s)
        bucket: Explicit bucket; derived from ``using`` when None
    """
    after: str
    at: str
    using: str
    populate: str
    bucket: Optional[str] = None

    def __post_init__(self):
        for name in ('after', 'at', 'using', 'populate'):
            if not getattr(self, name):
                raise ConfigurationError(f"Injection spec needs a non-empty {name!r}")

    @property
    def resolved_bucket(self) -> str:
        return bucket_name(self.using, self.bucket)


def lookup(
    fields: Union[str, List[str], Tuple[str, ...]],
    using: str,
    bucket: Optional[str] = None,
    aliases: Optional[Mapping[str, str]] = None,
) -> LookupSpec:
    """Build a ``LookupSpec`` for one field name or a list of them."""
    if isinstance(fields, str):
        fields = (fields,)
    return LookupSpec(
        source_fields=tuple(fields),
        id_field=using,
        bucket=bucket,
        aliases=dict(aliases or {}),
    )


def inject(after: str, at: str, using: str, populate: str, bucket: Optional[str] = None) -> InjectionSpec:
    return InjectionSpec(after=after, at=at, using=using, populate=populate, bucket=bucket)


# =============================================================================
# REGISTRY
# =============================================================================

# Own (non-inherited) specs per type, in registration order
_lookup_registry: Dict[Type, List[LookupSpec]] = {}
_injection_registry: Dict[Type, List[InjectionSpec]] = {}


def register_lookup(cls: Type, spec: LookupSpec) -> LookupSpec:
    """Append ``spec`` to the lookups declared directly on ``cls``."""
    _lookup_registry.setdefault(cls, []).append(spec)
    logger.debug(
        "Registered lookup %s on %s via %s -> %s",
        list(spec.source_fields), cls.__name__, spec.id_field, spec.resolved_bucket,
    )
    return spec


def register_injection(cls: Type, spec: InjectionSpec) -> InjectionSpec:
    """Append ``spec`` to the injections declared directly on ``cls``."""
    _injection_registry.setdefault(cls, []).append(spec)
    logger.debug("Registered injection after %s.%s at %s", cls.__name__, spec.after, spec.at)
    return spec


def own_lookups(cls: Type) -> Tuple[LookupSpec, ...]:
    return tuple(_lookup_registry.get(cls, ()))


def own_injections(cls: Type, method_name: Optional[str] = None) -> Tuple[InjectionSpec, ...]:
    specs = _injection_registry.get(cls, ())
    if method_name is not None:
        specs = [spec for spec in specs if spec.after == method_name]
    return tuple(specs)


def effective_lookups(cls: Type) -> Tuple[LookupSpec, ...]:
    """All lookups visible on ``cls``: ancestors first, declaration order within a type."""
    specs: List[LookupSpec] = []
    for klass in reversed(cls.__mro__):
        specs.extend(_lookup_registry.get(klass, ()))
    return tuple(specs)


def effective_injections(cls: Type, method_name: Optional[str] = None) -> Tuple[InjectionSpec, ...]:
    """
    Injections declared on ``cls`` and its ancestors, ancestors first.

    This lists declarations, not what a call will run: each class's wrapper
    applies that class's own injections, so an override of the trigger method
    that does not call ``super()`` skips the ancestors' injections.
    """
    specs: List[InjectionSpec] = []
    for klass in reversed(cls.__mro__):
        specs.extend(own_injections(klass, method_name))
    return tuple(specs)


def lookup_names(cls: Type) -> Tuple[str, ...]:
    """Exposed attribute names of every effective lookup on ``cls``, without repeats."""
    names: List[str] = []
    for spec in effective_lookups(cls):
        for name in spec.exposed_names:
            if name not in names:
                names.append(name)
    return tuple(names)
