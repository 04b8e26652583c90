"""
Lookup key construction.

Keys have the form ``<bucket>/<id>``. When no bucket is given explicitly it is
derived from the identifier field name: ``employee_id`` -> ``employees``,
``id`` -> ``ids``.
"""

from typing import Any, Optional

ID_SUFFIX = '_id'
KEY_SEPARATOR = '/'


def pluralize(name: str) -> str:
    """Trailing-'s' pluralization. Irregular plurals are not handled."""
    return f"{name}s"


def bucket_name(field_name: str, explicit_bucket: Optional[str] = None) -> str:
    """Return the bucket for ``field_name``, preferring ``explicit_bucket``."""
    if explicit_bucket:
        return explicit_bucket
    if field_name.endswith(ID_SUFFIX) and len(field_name) > len(ID_SUFFIX):
        return pluralize(field_name[:-len(ID_SUFFIX)])
    return pluralize(field_name)


def build_key(bucket: str, id_value: Any) -> str:
    return f"{bucket}{KEY_SEPARATOR}{id_value}"


def build_keys(bucket: str, id_values) -> list:
    return [build_key(bucket, id_value) for id_value in id_values]
