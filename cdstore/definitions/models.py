"""Shared models and the store contract for definition stores."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cdstore.common.coordinates import CoordinatesLike
from cdstore.config import runtime_config

Definition = Dict[str, Any]
ScoreFilter = Optional[Union[int, float, str]]


class UnsupportedOperation(NotImplementedError):
    """Raised by store operations a backend does not implement."""


class MongoStoreOptions(BaseModel):
    """Connection settings for a Mongo-backed definition store.

    retry_initial_delay/retry_max_delay: backoff bounds (seconds) while waiting for the database.
    max_connect_attempts: None retries forever.
    """
    connection_string: str
    db_name: str = runtime_config.DEFAULT_DB_NAME
    collection_name: str = "definitions"
    retry_initial_delay: float = 1.0
    retry_max_delay: float = 30.0
    max_connect_attempts: Optional[int] = None


class DefinitionQuery(BaseModel):
    """Filters and sort for ``find``; accepts the camelCase query-string names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Optional[str] = None
    provider: Optional[str] = None
    namespace: Optional[str] = None
    name: Optional[str] = None
    license: Optional[str] = None
    released_after: Optional[str] = Field(default=None, alias="releasedAfter")
    released_before: Optional[str] = Field(default=None, alias="releasedBefore")
    min_effective_score: ScoreFilter = Field(default=None, alias="minEffectiveScore")
    max_effective_score: ScoreFilter = Field(default=None, alias="maxEffectiveScore")
    min_tool_score: ScoreFilter = Field(default=None, alias="minToolScore")
    max_tool_score: ScoreFilter = Field(default=None, alias="maxToolScore")
    min_licensed_score: ScoreFilter = Field(default=None, alias="minLicensedScore")
    max_licensed_score: ScoreFilter = Field(default=None, alias="maxLicensedScore")
    min_described_score: ScoreFilter = Field(default=None, alias="minDescribedScore")
    max_described_score: ScoreFilter = Field(default=None, alias="maxDescribedScore")
    sort: Optional[str] = None
    sort_desc: bool = Field(default=False, alias="sortDesc")

    @field_validator("sort_desc", mode="before")
    @classmethod
    def _blank_is_false(cls, value: Any) -> Any:
        if value is None or value == "":
            return False
        return value

    @classmethod
    def from_params(cls, params: Union[DefinitionQuery, Mapping[str, Any], None]) -> DefinitionQuery:
        if isinstance(params, DefinitionQuery):
            return params
        return cls.model_validate(dict(params or {}))

    def explicitly_null(self, field_name: str) -> bool:
        """True when the caller passed the field with a null value (filter on missing)."""
        return field_name in self.model_fields_set and getattr(self, field_name) is None


class FindResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: List[Definition] = Field(default_factory=list)
    continuation_token: str = Field(default="", alias="continuationToken")


QueryLike = Union[DefinitionQuery, Mapping[str, Any], None]


class DefinitionStore(Protocol):
    """Contract shared by the paged, trimmed and dispatch stores."""

    async def initialize(self) -> None: ...

    async def get(self, coordinates: CoordinatesLike) -> Optional[Definition]: ...

    async def list(self, coordinates: CoordinatesLike) -> Optional[List[str]]: ...

    async def find(
        self,
        query: QueryLike,
        continuation_token: str = "",
        page_size: int = 100,
    ) -> FindResult: ...

    async def store(self, definition: Definition) -> Any: ...

    async def delete(self, coordinates: CoordinatesLike) -> None: ...

    async def close(self) -> None: ...
