"""Runtime configuration helpers for the definition stores."""
from __future__ import annotations

import os
from typing import List, Optional

DEFAULT_DB_NAME = "clearlydefined"
DEFAULT_PAGED_COLLECTION = "definitions-paged"
DEFAULT_TRIMMED_COLLECTION = "definitions-trimmed"


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def get_definition_store_provider() -> str:
    return (_get_env("DEFINITION_STORE_PROVIDER") or "mongo").strip()


def get_dispatch_providers() -> List[str]:
    raw = _get_env("DEFINITION_STORE_DISPATCH_PROVIDERS") or "mongo,mongoTrimmed"
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_definition_mongo_connection_string() -> Optional[str]:
    return _get_env("DEFINITION_MONGO_CONNECTION_STRING")


def get_definition_mongo_db_name() -> str:
    return _get_env("DEFINITION_MONGO_DB_NAME") or DEFAULT_DB_NAME


def get_definition_mongo_collection_name() -> str:
    return _get_env("DEFINITION_MONGO_COLLECTION_NAME") or DEFAULT_PAGED_COLLECTION


def get_trimmed_definition_mongo_collection_name() -> str:
    return _get_env("TRIMMED_DEFINITION_MONGO_COLLECTION_NAME") or DEFAULT_TRIMMED_COLLECTION


def get_mongo_max_connect_attempts() -> Optional[int]:
    """None means retry forever."""
    raw = _get_env("DEFINITION_MONGO_MAX_CONNECT_ATTEMPTS")
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None
