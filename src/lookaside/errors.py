"""
Error taxonomy for lookup resolution and deep injection.

A missing identifier is deliberately absent from this module: it resolves to
None without touching the cache or the store (tolerant lookup).
"""

from typing import Optional


class LookasideError(Exception):
    """Base class for every error raised by the lookup engine."""


class ConfigurationError(LookasideError, ValueError):
    """Invalid configuration or registration."""


class StoreUnavailable(LookasideError):
    """The lookup store failed while serving a fetch."""

    def __init__(self, message: str, keys: tuple = ()):
        super().__init__(message)
        self.keys = tuple(keys)


class MalformedPath(LookasideError):
    """An injection path does not address a node of a supported shape."""

    def __init__(self, path: str, segment: Optional[str], reason: str):
        self.path = path
        self.segment = segment
        self.reason = reason
        where = f" at segment {segment!r}" if segment is not None else ""
        super().__init__(f"Path {path!r}{where}: {reason}")


class ShapeMismatch(LookasideError):
    """The store returned a payload of the wrong shape for a spec."""
