"""Definition store resolution from runtime configuration.

DEFINITION_STORE_PROVIDER picks the backend: ``mongo`` (paged),
``mongoTrimmed`` or ``dispatch`` (each provider listed in
DEFINITION_STORE_DISPATCH_PROVIDERS, in read-preference order).
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Sequence

from cdstore.config import runtime_config
from cdstore.definitions.dispatch_store import DispatchDefinitionStore
from cdstore.definitions.models import DefinitionStore, MongoStoreOptions
from cdstore.definitions.paged_mongo_store import PagedMongoDefinitionStore
from cdstore.definitions.trimmed_mongo_store import TrimmedMongoDefinitionStore

logger = logging.getLogger(__name__)

StoreFactory = Callable[..., DefinitionStore]


class MissingStoreConfig(RuntimeError):
    """Raised when the configured definition store cannot be built."""
    pass


def mongo_options(collection_name: str) -> MongoStoreOptions:
    connection_string = runtime_config.get_definition_mongo_connection_string()
    if not connection_string:
        raise MissingStoreConfig(
            "DEFINITION_MONGO_CONNECTION_STRING is required for Mongo definition stores"
        )
    return MongoStoreOptions(
        connection_string=connection_string,
        db_name=runtime_config.get_definition_mongo_db_name(),
        collection_name=collection_name,
        max_connect_attempts=runtime_config.get_mongo_max_connect_attempts(),
    )


def definition_paged(options: Optional[MongoStoreOptions] = None) -> PagedMongoDefinitionStore:
    return PagedMongoDefinitionStore(
        options or mongo_options(runtime_config.get_definition_mongo_collection_name())
    )


def definition_trimmed(options: Optional[MongoStoreOptions] = None) -> TrimmedMongoDefinitionStore:
    return TrimmedMongoDefinitionStore(
        options or mongo_options(runtime_config.get_trimmed_definition_mongo_collection_name())
    )


def definition_dispatch(factories: Sequence[StoreFactory]) -> DispatchDefinitionStore:
    if not factories:
        raise MissingStoreConfig("no factories configured for the dispatch definition store")
    return DispatchDefinitionStore([factory() for factory in factories])


PROVIDERS: Dict[str, StoreFactory] = {
    "mongo": definition_paged,
    "mongoTrimmed": definition_trimmed,
}


def _factory(provider: str) -> StoreFactory:
    factory = PROVIDERS.get(provider)
    if factory is None:
        raise MissingStoreConfig(
            f"Unsupported definition store provider '{provider}'. "
            f"Use one of {sorted(PROVIDERS)} or 'dispatch'."
        )
    return factory


def build_definition_store(
    provider: Optional[str] = None,
    options: Optional[MongoStoreOptions] = None,
) -> DefinitionStore:
    """Build the configured store; ``options`` overrides the environment for a single Mongo store."""
    provider = provider or runtime_config.get_definition_store_provider()
    if provider == "dispatch":
        names = runtime_config.get_dispatch_providers()
        logger.info("Dispatching definition store operations to %s", ", ".join(names))
        return definition_dispatch([_factory(name) for name in names])
    return _factory(provider)(options)


_default_store: Optional[DefinitionStore] = None


def get_definition_store() -> DefinitionStore:
    global _default_store
    if _default_store is None:
        _default_store = build_definition_store()
    return _default_store


def set_definition_store(store: Optional[DefinitionStore]) -> None:
    """Override the process-wide store (tests, embedding applications)."""
    global _default_store
    _default_store = store
