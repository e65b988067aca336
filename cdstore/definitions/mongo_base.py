"""Shared MongoDB plumbing for the paged and trimmed definition stores.

Connection, index creation and the sortable/paginated ``find`` live here;
subclasses decide how a definition maps onto documents.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from cdstore.common.coordinates import CoordinatesLike, canonical_key
from cdstore.definitions import query_builder
from cdstore.definitions.continuation import next_token
from cdstore.definitions.models import (
    Definition,
    FindResult,
    MongoStoreOptions,
    QueryLike,
    UnsupportedOperation,
)

logger = logging.getLogger(__name__)

IndexSpec = List[Tuple[str, int]]


class AbstractMongoDefinitionStore:
    """Base class; ``COORDINATES_KEY`` names the field that holds the canonical key."""

    COORDINATES_KEY = "_id"

    def __init__(self, options: MongoStoreOptions) -> None:
        self.options = options
        self.client: Optional[AsyncMongoClient] = None
        self.db: Any = None
        self.collection: Any = None

    async def initialize(self) -> None:
        """Connect (waiting for the database as long as the options allow) and create indexes."""
        attempt = 0
        delay = self.options.retry_initial_delay
        while True:
            attempt += 1
            try:
                await self._connect()
                break
            except PyMongoError as exc:
                limit = self.options.max_connect_attempts
                if limit is not None and attempt >= limit:
                    logger.error(
                        "Mongo connection to %s/%s failed after %s attempts: %s",
                        self.options.db_name,
                        self.options.collection_name,
                        attempt,
                        exc,
                    )
                    raise
                logger.warning(
                    "Mongo connection attempt %s for %s/%s failed: %s; retrying in %.1fs",
                    attempt,
                    self.options.db_name,
                    self.options.collection_name,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.options.retry_max_delay)
        await self._create_indexes()

    async def _connect(self) -> None:
        client: AsyncMongoClient = AsyncMongoClient(self.options.connection_string)
        try:
            await client.admin.command("ping")
        except PyMongoError:
            await client.close()
            raise
        self.client = client
        self.db = client[self.options.db_name]
        self.collection = self.db[self.options.collection_name]
        logger.debug("Connected to %s/%s", self.options.db_name, self.options.collection_name)

    def _index_specs(self) -> List[IndexSpec]:
        key = self.COORDINATES_KEY
        return [
            [("_meta.updated", 1)],
            [(key, 1)],
            [("coordinates.type", 1), (key, 1)],
            [("coordinates.provider", 1), (key, 1)],
            [("coordinates.name", 1), ("coordinates.revision", 1), (key, 1)],
            [("coordinates.namespace", 1), ("coordinates.name", 1), ("coordinates.revision", 1), (key, 1)],
            [("coordinates.revision", 1), (key, 1)],
            [("licensed.declared", 1), (key, 1)],
            [("described.releaseDate", 1), (key, 1)],
            [("licensed.score.total", 1), (key, 1)],
            [("described.score.total", 1), (key, 1)],
            [("scores.effective", 1), (key, 1)],
            [("scores.tool", 1), (key, 1)],
        ]

    async def _create_indexes(self) -> None:
        for spec in self._index_specs():
            await self.collection.create_index(spec)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None

    async def list(self, coordinates: CoordinatesLike) -> Optional[List[str]]:
        raise UnsupportedOperation("list is not supported by this store")

    async def get(self, coordinates: CoordinatesLike) -> Optional[Definition]:
        raise UnsupportedOperation("get is not supported by this store")

    async def store(self, definition: Definition) -> Any:
        raise UnsupportedOperation("store is not supported by this store")

    async def delete(self, coordinates: CoordinatesLike) -> None:
        raise UnsupportedOperation("delete is not supported by this store")

    def get_id(self, coordinates: CoordinatesLike) -> str:
        return canonical_key(coordinates)

    def definition_id(self, definition: Definition) -> str:
        key = self.get_id(definition.get("coordinates"))
        if not key:
            raise ValueError("definition has no coordinates")
        return key

    def build_filter(self, query: QueryLike) -> Dict[str, Any]:
        return query_builder.build_filter(query)

    async def find(
        self,
        query: QueryLike,
        continuation_token: str = "",
        page_size: int = 100,
        projection: Optional[Dict[str, Any]] = None,
    ) -> FindResult:
        """Run one page of a filtered, sorted query.

        The continuation token in the result is empty once a page comes back
        shorter than ``page_size``.
        """
        sort = query_builder.build_sort(query, self.COORDINATES_KEY)
        pagination = query_builder.build_pagination_predicate(continuation_token or "", sort)
        combined = query_builder.combine(self.build_filter(query), pagination)
        logger.debug("filter: %s sort: %s", combined, sort)
        cursor = self.collection.find(combined, projection=projection, sort=sort, limit=page_size)
        data = await cursor.to_list(length=None)
        return FindResult(data=data, continuation_token=next_token(data, page_size, sort))
