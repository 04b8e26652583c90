"""
Serialization drivers that add resolved lookups to an instance's own fields.

A driver decides which base fields an instance has; the lookup attributes are
appended after them, ancestors' lookups first. Lookups whose identifier is not
set are left out, so an instance without ids serializes to its plain fields.

The driver is chosen at configuration time:

    configure(store=store, driver=DataclassSerializer())
"""

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

from lookaside.config import get_config
from lookaside.resolver import lookup_values

logger = logging.getLogger(__name__)


class Serializer:
    """Base driver: subclasses implement ``base_fields``."""

    #: Emit lookups whose identifier is unset (as None)
    include_missing = False

    def base_fields(self, instance: Any) -> Dict[str, Any]:
        raise NotImplementedError

    def serialize(self, instance: Any) -> Dict[str, Any]:
        data = self.base_fields(instance)
        data.update(lookup_values(instance, include_missing=self.include_missing))
        return data


class AttributeSerializer(Serializer):
    """Public instance attributes from ``vars(instance)``."""

    def base_fields(self, instance: Any) -> Dict[str, Any]:
        return {
            name: value
            for name, value in vars(instance).items()
            if not name.startswith('_')
        }


class DataclassSerializer(Serializer):
    """Declared fields of a dataclass instance."""

    def base_fields(self, instance: Any) -> Dict[str, Any]:
        if not dataclasses.is_dataclass(instance):
            raise TypeError(f"DataclassSerializer needs a dataclass instance, got {type(instance).__name__}")
        return {f.name: getattr(instance, f.name) for f in dataclasses.fields(instance)}


class MappingSerializer(Serializer):
    """Mapping-backed models: the mapping's own items."""

    def base_fields(self, instance: Any) -> Dict[str, Any]:
        if not isinstance(instance, Mapping):
            raise TypeError(f"MappingSerializer needs a mapping, got {type(instance).__name__}")
        return dict(instance)


DEFAULT_DRIVER = AttributeSerializer()


def get_driver(config) -> Serializer:
    """Return the configured driver or the attribute serializer."""
    return config.driver if config.driver is not None else DEFAULT_DRIVER


def serialize(instance: Any, driver: Optional[Serializer] = None) -> Dict[str, Any]:
    """Serialize any registered instance, not only ``Lookaside`` subclasses."""
    return (driver or get_driver(get_config())).serialize(instance)
