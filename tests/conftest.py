"""Pytest configuration and shared fixtures."""
import pytest

import lookaside.config as config_module
from lookaside import configure


class RecordingStore:
    """In-memory store that records every call made to it."""

    def __init__(self, data=None, batches=None):
        self.data = dict(data or {})
        # Optional canned answers for fetch_many, consumed in order
        self.batches = list(batches or [])
        self.calls = []
        self.error = None

    def fetch_one(self, key):
        self.calls.append(('fetch_one', key))
        if self.error is not None:
            raise self.error
        return self.data.get(key)

    def fetch_many(self, keys):
        self.calls.append(('fetch_many', tuple(keys)))
        if self.error is not None:
            raise self.error
        if self.batches:
            return self.batches.pop(0)
        return [self.data.get(key) for key in keys]

    def count(self, method, key=None):
        return sum(
            1 for name, arg in self.calls
            if name == method and (key is None or arg == key)
        )


@pytest.fixture(autouse=True)
def reset_lookup_config():
    """Reset configuration and the shared cache around each test."""
    config_module.reset_config()
    yield
    config_module.reset_config()


@pytest.fixture
def store():
    """Recording store installed with the shared cache enabled."""
    recording = RecordingStore()
    configure(store=recording, cache_capacity=10)
    return recording


@pytest.fixture
def uncached_store():
    """Recording store installed with the shared cache disabled."""
    recording = RecordingStore()
    configure(store=recording, cache_capacity=10, cache_enabled=False)
    return recording
