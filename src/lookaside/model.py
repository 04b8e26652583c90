"""
Mixin wiring lookup and injection declarations into class creation.

Usage:
    from lookaside import Lookaside, lookup, inject

    class Employee(Lookaside):
        __lookups__ = [
            lookup('name', using='employee_id'),
            lookup(['name', 'age'], using='manager_id', aliases={'name': 'manager_name'}),
        ]

        def __init__(self, employee_id, manager_id=None):
            self.employee_id = employee_id
            self.manager_id = manager_id

    class Report(Lookaside):
        __injections__ = [
            inject(after='metrics', at='$.table.menu', using='item_id', populate='item_name'),
        ]

        def metrics(self):
            ...

Declarations are read from the class body only, so a subclass lists just its
own additions; everything declared on ancestors stays in effect.
"""

import json
import logging
from typing import Any, Dict, Type

from lookaside.config import get_config
from lookaside.injection import install_injections
from lookaside.registry import (
    InjectionSpec,
    LookupSpec,
    register_injection,
    register_lookup,
)
from lookaside.resolver import LookupAttribute, lookup_values
from lookaside.serializers import get_driver

logger = logging.getLogger(__name__)

LOOKUPS_ATTRIBUTE = '__lookups__'
INJECTIONS_ATTRIBUTE = '__injections__'

# Set on a class once its own declarations have been processed
DECLARED_ATTRIBUTE = '__lookaside_declared__'


def expose_lookup(cls: Type, spec: LookupSpec) -> None:
    """Register ``spec`` on ``cls`` and add one descriptor per exposed name."""
    register_lookup(cls, spec)
    for source_field in spec.source_fields:
        exposed_name = spec.exposed_name(source_field)
        setattr(cls, exposed_name, LookupAttribute(spec, exposed_name))


def declare(cls: Type) -> Type:
    """Process ``__lookups__`` and ``__injections__`` declared in ``cls``'s own body."""
    if cls.__dict__.get(DECLARED_ATTRIBUTE, False):
        return cls

    for spec in cls.__dict__.get(LOOKUPS_ATTRIBUTE, ()):
        if not isinstance(spec, LookupSpec):
            raise TypeError(f"{cls.__name__}.{LOOKUPS_ATTRIBUTE} entries must be lookup(...) specs, got {spec!r}")
        expose_lookup(cls, spec)

    for spec in cls.__dict__.get(INJECTIONS_ATTRIBUTE, ()):
        if not isinstance(spec, InjectionSpec):
            raise TypeError(f"{cls.__name__}.{INJECTIONS_ATTRIBUTE} entries must be inject(...) specs, got {spec!r}")
        register_injection(cls, spec)

    install_injections(cls)
    setattr(cls, DECLARED_ATTRIBUTE, True)
    logger.debug("Declared lookups on %s", cls.__qualname__)
    return cls


class Lookaside:
    """Base class for types with declarative lookups and injections."""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        declare(cls)

    def lookup_values(self) -> Dict[str, Any]:
        """Resolved lookup attributes whose identifier is set."""
        return lookup_values(self)

    def as_dict(self) -> Dict[str, Any]:
        """Serialize with the configured driver, lookup attributes included."""
        return get_driver(get_config()).serialize(self)

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.as_dict(), **kwargs)
