import pytest

from cdstore.definitions import service
from cdstore.definitions.dispatch_store import DispatchDefinitionStore
from cdstore.definitions.models import MongoStoreOptions
from cdstore.definitions.paged_mongo_store import PagedMongoDefinitionStore
from cdstore.definitions.trimmed_mongo_store import TrimmedMongoDefinitionStore


@pytest.fixture(autouse=True)
def mongo_env(monkeypatch):
    monkeypatch.setenv("DEFINITION_MONGO_CONNECTION_STRING", "mongodb://localhost:27017")
    monkeypatch.delenv("DEFINITION_STORE_PROVIDER", raising=False)
    monkeypatch.delenv("DEFINITION_STORE_DISPATCH_PROVIDERS", raising=False)
    monkeypatch.delenv("DEFINITION_MONGO_DB_NAME", raising=False)
    monkeypatch.delenv("DEFINITION_MONGO_COLLECTION_NAME", raising=False)
    monkeypatch.delenv("TRIMMED_DEFINITION_MONGO_COLLECTION_NAME", raising=False)
    monkeypatch.delenv("DEFINITION_MONGO_MAX_CONNECT_ATTEMPTS", raising=False)
    service.set_definition_store(None)
    yield
    service.set_definition_store(None)


def test_default_provider_is_paged_mongo():
    store = service.build_definition_store()
    assert isinstance(store, PagedMongoDefinitionStore)
    assert store.options.db_name == "clearlydefined"
    assert store.options.collection_name == "definitions-paged"
    assert store.options.max_connect_attempts is None


def test_trimmed_provider_uses_trimmed_collection(monkeypatch):
    monkeypatch.setenv("DEFINITION_STORE_PROVIDER", "mongoTrimmed")
    monkeypatch.setenv("TRIMMED_DEFINITION_MONGO_COLLECTION_NAME", "trimmed")
    monkeypatch.setenv("DEFINITION_MONGO_MAX_CONNECT_ATTEMPTS", "3")
    store = service.build_definition_store()
    assert isinstance(store, TrimmedMongoDefinitionStore)
    assert store.options.collection_name == "trimmed"
    assert store.options.max_connect_attempts == 3


def test_dispatch_builds_stores_in_configured_order(monkeypatch):
    monkeypatch.setenv("DEFINITION_STORE_PROVIDER", "dispatch")
    monkeypatch.setenv("DEFINITION_STORE_DISPATCH_PROVIDERS", "mongoTrimmed, mongo")
    store = service.build_definition_store()
    assert isinstance(store, DispatchDefinitionStore)
    assert [type(s) for s in store.stores] == [TrimmedMongoDefinitionStore, PagedMongoDefinitionStore]


def test_dispatch_defaults_to_paged_then_trimmed(monkeypatch):
    monkeypatch.setenv("DEFINITION_STORE_PROVIDER", "dispatch")
    store = service.build_definition_store()
    assert [type(s) for s in store.stores] == [PagedMongoDefinitionStore, TrimmedMongoDefinitionStore]


def test_dispatch_requires_factories():
    with pytest.raises(service.MissingStoreConfig):
        service.definition_dispatch([])


def test_unknown_provider_is_rejected(monkeypatch):
    monkeypatch.setenv("DEFINITION_STORE_PROVIDER", "azblob")
    with pytest.raises(service.MissingStoreConfig, match="azblob"):
        service.build_definition_store()


def test_missing_connection_string(monkeypatch):
    monkeypatch.delenv("DEFINITION_MONGO_CONNECTION_STRING")
    with pytest.raises(service.MissingStoreConfig):
        service.build_definition_store()


def test_explicit_options_skip_environment(monkeypatch):
    monkeypatch.delenv("DEFINITION_MONGO_CONNECTION_STRING")
    options = MongoStoreOptions(connection_string="mongodb://other", collection_name="custom")
    assert service.definition_paged(options).options is options


def test_store_singleton_can_be_overridden():
    first = service.get_definition_store()
    assert service.get_definition_store() is first

    replacement = DispatchDefinitionStore([])
    service.set_definition_store(replacement)
    assert service.get_definition_store() is replacement


def test_build_with_explicit_options(monkeypatch):
    monkeypatch.delenv("DEFINITION_MONGO_CONNECTION_STRING")
    options = MongoStoreOptions(connection_string="mongodb://other", collection_name="custom")
    store = service.build_definition_store("mongoTrimmed", options)
    assert isinstance(store, TrimmedMongoDefinitionStore)
    assert store.options.collection_name == "custom"
