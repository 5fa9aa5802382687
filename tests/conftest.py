import pytest

from docmodel import CacheLayer, MemoryCache, Persister, StructureRegistry

from sample_models import RecordingDatastore


@pytest.fixture
def registry():
    return StructureRegistry()


@pytest.fixture
def store():
    return RecordingDatastore()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def persister(store):
    """Persister without a cache, so every read reaches the store."""
    return Persister(store)


@pytest.fixture
def cached_persister(store, cache):
    return Persister(store, cache_layer=CacheLayer(cache))
