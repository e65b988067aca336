"""Query-only Mongo store holding definitions without their file lists.

One flat document per definition keyed by the canonical key. Cheap to scan
and filter; it cannot serve ``get`` or ``list`` because the files are gone.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from cdstore.common.coordinates import CoordinatesLike, EntityCoordinates
from cdstore.definitions.mongo_base import AbstractMongoDefinitionStore
from cdstore.definitions.models import Definition, FindResult, QueryLike


class TrimmedMongoDefinitionStore(AbstractMongoDefinitionStore):
    COORDINATES_KEY = "_id"

    async def list(self, coordinates: CoordinatesLike) -> Optional[List[str]]:
        return None

    async def get(self, coordinates: CoordinatesLike) -> Optional[Definition]:
        return None

    async def find(
        self,
        query: QueryLike,
        continuation_token: str = "",
        page_size: int = 100,
        projection: Optional[Dict[str, Any]] = None,
    ) -> FindResult:
        result = await super().find(query, continuation_token, page_size, projection)
        for definition in result.data:
            definition.pop("_id", None)
        return result

    async def store(self, definition: Definition) -> Any:
        key = self.definition_id(definition)
        document = {k: v for k, v in definition.items() if k != "files"}
        if isinstance(document.get("coordinates"), EntityCoordinates):
            document["coordinates"] = document["coordinates"].to_dict()
        document["_id"] = key
        return await self.collection.replace_one({"_id": document["_id"]}, document, upsert=True)

    async def delete(self, coordinates: CoordinatesLike) -> None:
        await self.collection.delete_one({"_id": self.get_id(coordinates)})
        return None
