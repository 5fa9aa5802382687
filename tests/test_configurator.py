"""Tests for engine configuration and persister wiring."""

import logging

import pytest

from docmodel import (
    CacheLayer, EngineConfig, LoggingConfig, MemoryCache, MemoryDatastore, Persister, RedisCache, SQLDatastore,
    configure_logging, configure_persister, get_persister, set_persister,
)
from docmodel.app import configurator

ENV_VARS = (
    "DOCMODEL_STORE", "DOCMODEL_DATABASE_URL", "DOCMODEL_SQL_ECHO", "DOCMODEL_CACHE",
    "DOCMODEL_REDIS_URL", "DOCMODEL_CACHE_TTL", "DOCMODEL_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    set_persister(None)
    yield
    set_persister(None)


def test_defaults():
    config = EngineConfig()

    assert config.store.backend == "memory"
    assert config.cache.backend == "memory"
    assert config.cache.ttl is None
    config.validate()


def test_from_dict():
    config = EngineConfig.from_dict({
        "store": {"backend": "sql", "url": "sqlite://"},
        "cache": {"backend": "none"},
        "logging": {"level": "DEBUG"},
    })

    assert config.store.backend == "sql"
    assert config.store.url == "sqlite://"
    assert config.cache.backend == "none"
    assert config.logging.level == "DEBUG"


def test_from_dict_rejects_unknown_option():
    with pytest.raises(ValueError):
        EngineConfig.from_dict({"store": {"pool_size": 5}})


def test_from_dict_rejects_unknown_backend():
    with pytest.raises(ValueError):
        EngineConfig.from_dict({"cache": {"backend": "memcached"}})


def test_from_environment(monkeypatch):
    monkeypatch.setenv("DOCMODEL_STORE", "sql")
    monkeypatch.setenv("DOCMODEL_DATABASE_URL", "sqlite://")
    monkeypatch.setenv("DOCMODEL_SQL_ECHO", "True")
    monkeypatch.setenv("DOCMODEL_CACHE", "redis")
    monkeypatch.setenv("DOCMODEL_REDIS_URL", "redis://cache:6379/2")
    monkeypatch.setenv("DOCMODEL_CACHE_TTL", "120")
    monkeypatch.setenv("DOCMODEL_LOG_LEVEL", "debug")

    config = EngineConfig.from_environment()

    assert config.store.backend == "sql"
    assert config.store.url == "sqlite://"
    assert config.store.echo is True
    assert config.cache.backend == "redis"
    assert config.cache.url == "redis://cache:6379/2"
    assert config.cache.ttl == 120
    assert config.logging.level == "DEBUG"


def test_from_environment_validates(monkeypatch):
    monkeypatch.setenv("DOCMODEL_STORE", "mongo")

    with pytest.raises(ValueError):
        EngineConfig.from_environment()


def test_configure_default_persister():
    persister = configure_persister()

    assert isinstance(persister.store, MemoryDatastore)
    assert isinstance(persister.cache_layer, CacheLayer)
    assert isinstance(persister.cache_layer.cache, MemoryCache)


def test_configure_without_cache():
    persister = configure_persister(EngineConfig.from_dict({"cache": {"backend": "none"}}))

    assert persister.cache_layer is None


def test_configure_sql_and_redis():
    config = EngineConfig.from_dict({
        "store": {"backend": "sql", "url": "sqlite://"},
        "cache": {"backend": "redis", "url": "redis://localhost:6379/0", "ttl": 30},
    })

    persister = configure_persister(config)

    assert isinstance(persister.store, SQLDatastore)
    assert isinstance(persister.cache_layer.cache, RedisCache)
    assert persister.cache_layer.ttl == 30
    assert persister.cache_layer.cache.default_ttl == 30
    persister.store.close()


def test_get_persister_builds_once_from_environment():
    first = get_persister()

    assert isinstance(first, Persister)
    assert get_persister() is first


def test_set_persister_overrides_default():
    persister = Persister(MemoryDatastore())
    set_persister(persister)

    assert get_persister() is persister


@pytest.fixture
def package_logger():
    package = logging.getLogger("docmodel")
    handlers, level = package.handlers[:], package.level
    yield package
    if configurator._log_handler is not None and configurator._log_handler not in handlers:
        package.removeHandler(configurator._log_handler)
    configurator._log_handler = None
    package.setLevel(level)


def test_configure_persister_leaves_logging_to_the_application(package_logger):
    handlers = package_logger.handlers[:]

    configure_persister()
    configure_persister(EngineConfig.from_dict({"store": {"backend": "memory"}}))

    assert EngineConfig().logging is None
    assert package_logger.handlers == handlers


def test_explicit_logging_config_installs_one_handler(package_logger):
    before = len(package_logger.handlers)

    configure_persister(EngineConfig.from_dict({"logging": {"level": "DEBUG"}}))
    configure_logging(LoggingConfig(level="WARNING", format="%(message)s"))

    assert len(package_logger.handlers) == before + 1
    assert package_logger.level == logging.WARNING
    assert configurator._log_handler.formatter._fmt == "%(message)s"
