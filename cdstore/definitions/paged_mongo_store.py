"""Mongo definition store that shards large ``files`` lists across several documents.

Page 1 (``_id`` = canonical key) holds every top-level field plus the first
slice of files; page n (``_id`` = ``<key>/<n-1>``) holds only its slice. All
pages share ``_mongo.partitionKey`` and record ``_mongo.page`` /
``_mongo.totalPages``. Queries only ever look at page 1.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from cdstore.common.coordinates import CoordinatesLike, EntityCoordinates
from cdstore.definitions.mongo_base import AbstractMongoDefinitionStore, IndexSpec
from cdstore.definitions.models import Definition, FindResult, QueryLike

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000
PARTITION_KEY = "_mongo.partitionKey"
PAGE_FIELD = "_mongo.page"


def split_pages(definition: Definition, key: str, page_size: int = PAGE_SIZE) -> List[Dict[str, Any]]:
    """Shard a definition into page documents without touching the input."""
    files = list(definition.get("files") or [])
    chunks = [files[i:i + page_size] for i in range(0, len(files), page_size)] or [[]]
    total = len(chunks)
    pages: List[Dict[str, Any]] = []
    for index, chunk in enumerate(chunks):
        meta = {"partitionKey": key, "page": index + 1, "totalPages": total}
        if index == 0:
            page = {k: v for k, v in definition.items() if k not in ("files", "_id", "_mongo")}
            if isinstance(page.get("coordinates"), EntityCoordinates):
                page["coordinates"] = page["coordinates"].to_dict()
            page["_id"] = key
        else:
            page = {"_id": f"{key}/{index}"}
        page["files"] = chunk
        page["_mongo"] = meta
        pages.append(page)
    return pages


def merge_pages(pages: List[Dict[str, Any]]) -> Optional[Definition]:
    """Reassemble page documents (any order) into one definition; None without page 1."""
    ordered = sorted(pages, key=lambda doc: (doc.get("_mongo") or {}).get("page", 0))
    if not ordered or (ordered[0].get("_mongo") or {}).get("page") != 1:
        return None
    definition = {k: v for k, v in ordered[0].items() if k not in ("_id", "_mongo")}
    files = list(definition.get("files") or [])
    for page in ordered[1:]:
        files.extend(page.get("files") or [])
    definition["files"] = files
    return definition


class PagedMongoDefinitionStore(AbstractMongoDefinitionStore):
    COORDINATES_KEY = PARTITION_KEY

    def _index_specs(self) -> List[IndexSpec]:
        specs = super()._index_specs()
        # single-field indexes for planners that cannot use the compound ones
        for field in (
            "coordinates.name",
            "coordinates.revision",
            "coordinates.type",
            "described.releaseDate",
            "licensed.declared",
            "scores.effective",
        ):
            specs.append([(field, 1)])
        return specs

    async def list(self, coordinates: CoordinatesLike) -> List[str]:
        """Coordinates of every stored definition under a (possibly partial) coordinate prefix.

        Meant for browsing: the whole match set is materialized.
        """
        prefix = self.get_id(coordinates)
        cursor = self.collection.find(
            {PARTITION_KEY: {"$regex": "^" + re.escape(prefix)}, PAGE_FIELD: 1},
            projection={"_id": 0, "coordinates": 1},
        )
        records = await cursor.to_list(length=None)
        result = []
        for record in records:
            parsed = EntityCoordinates.from_object(record.get("coordinates"))
            if parsed is not None:
                result.append(parsed.to_string())
        return result

    async def get(self, coordinates: CoordinatesLike) -> Optional[Definition]:
        cursor = self.collection.find(
            {PARTITION_KEY: self.get_id(coordinates)},
            projection={"_id": 0},
            sort=[(PAGE_FIELD, 1)],
        )
        pages = await cursor.to_list(length=None)
        return merge_pages(pages)

    def build_filter(self, query: QueryLike) -> Dict[str, Any]:
        filter_ = super().build_filter(query)
        filter_[PAGE_FIELD] = 1
        return filter_

    async def find(
        self,
        query: QueryLike,
        continuation_token: str = "",
        page_size: int = 100,
        projection: Optional[Dict[str, Any]] = None,
    ) -> FindResult:
        result = await super().find(query, continuation_token, page_size, projection or {"files": 0})
        for definition in result.data:
            definition.pop("_id", None)
            definition.pop("_mongo", None)
        return result

    async def store(self, definition: Definition) -> Any:
        """Replace every page of the definition: drop the old page set, then insert the new one.

        A reader racing this call can see no pages for the key until the insert lands.
        """
        key = self.definition_id(definition)
        pages = split_pages(definition, key)
        await self.collection.delete_many({PARTITION_KEY: key})
        if len(pages) > 1:
            logger.debug("Storing %s as %s pages", key, len(pages))
        return await self.collection.insert_many(pages)

    async def delete(self, coordinates: CoordinatesLike) -> None:
        await self.collection.delete_many({PARTITION_KEY: self.get_id(coordinates)})
        return None
