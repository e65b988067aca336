"""Fan a definition store operation out over several stores.

Reads walk the stores in order and return the first truthy answer; a store
that raises is logged and skipped. Writes run on every store concurrently and
wait for all of them; each failure is logged and the first successful result
is returned. Neither path raises because of an individual store.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from cdstore.common.coordinates import CoordinatesLike
from cdstore.definitions.models import Definition, DefinitionStore, FindResult, QueryLike

logger = logging.getLogger(__name__)

Operation = Callable[[DefinitionStore], Awaitable[Any]]


class DispatchDefinitionStore:
    def __init__(self, stores: Sequence[DefinitionStore], log: Optional[logging.Logger] = None) -> None:
        self.stores: List[DefinitionStore] = list(stores)
        self._logger = log or logger

    async def initialize(self) -> None:
        return await self._perform_in_parallel("initialize", lambda store: store.initialize())

    async def close(self) -> None:
        return await self._perform_in_parallel("close", lambda store: store.close())

    async def get(self, coordinates: CoordinatesLike) -> Optional[Definition]:
        return await self._perform_in_sequence("get", lambda store: store.get(coordinates))

    async def list(self, coordinates: CoordinatesLike) -> Optional[List[str]]:
        return await self._perform_in_sequence("list", lambda store: store.list(coordinates))

    async def find(
        self,
        query: QueryLike,
        continuation_token: str = "",
        page_size: int = 100,
    ) -> Optional[FindResult]:
        return await self._perform_in_sequence(
            "find", lambda store: store.find(query, continuation_token, page_size)
        )

    async def store(self, definition: Definition) -> Any:
        return await self._perform_in_parallel("store", lambda store: store.store(definition))

    async def delete(self, coordinates: CoordinatesLike) -> None:
        return await self._perform_in_parallel("delete", lambda store: store.delete(coordinates))

    def _describe(self, index: int) -> str:
        return f"#{index} ({type(self.stores[index]).__name__})"

    async def _perform_in_sequence(self, name: str, operation: Operation) -> Any:
        result = None
        for index, store in enumerate(self.stores):
            try:
                result = await operation(store)
            except Exception as exc:
                self._logger.error(
                    "DispatchDefinitionStore %s failed on store %s: %s",
                    name,
                    self._describe(index),
                    exc,
                    exc_info=exc,
                )
                continue
            if result:
                return result
        return result

    async def _perform_in_parallel(self, name: str, operation: Operation) -> Any:
        results = await asyncio.gather(
            *(operation(store) for store in self.stores),
            return_exceptions=True,
        )
        fulfilled = []
        fatal: Optional[BaseException] = None
        for index, result in enumerate(results):
            if isinstance(result, Exception):
                self._logger.error(
                    "DispatchDefinitionStore %s failed on store %s: %s",
                    name,
                    self._describe(index),
                    result,
                    exc_info=result,
                )
            elif isinstance(result, BaseException):
                fatal = fatal or result
            else:
                fulfilled.append(result)
        # cancellation and interpreter exits still propagate once every failure is logged
        if fatal is not None:
            raise fatal
        return fulfilled[0] if fulfilled else None
