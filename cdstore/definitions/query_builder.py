"""Translate definition queries into Mongo filters, sorts and resumable pagination predicates.

Sorting always ends with the store's coordinate key so the order is total and
a continuation token (the sort values of the last record returned) pins an
exact resume point. Resuming after values ``(v1, ..., vN)`` matches any record
for which, for some ``k``, fields ``1..k-1`` equal ``v1..vk-1`` and field ``k``
sorts strictly after ``vk``. Mongo sorts null/missing before any value, so a
"less than" comparison against a value also has to admit nulls.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from cdstore.definitions.continuation import SortClause, decode_for_sort
from cdstore.definitions.models import DefinitionQuery, QueryLike

Filter = Dict[str, Any]

SORT_OPTIONS: Dict[str, List[str]] = {
    "type": ["coordinates.type"],
    "provider": ["coordinates.provider"],
    "name": ["coordinates.name", "coordinates.revision"],
    "namespace": ["coordinates.namespace", "coordinates.name", "coordinates.revision"],
    "revision": ["coordinates.revision"],
    "license": ["licensed.declared"],
    "releaseDate": ["described.releaseDate"],
    "licensedScore": ["licensed.score.total"],
    "describedScore": ["described.score.total"],
    "effectiveScore": ["scores.effective"],
    "toolScore": ["scores.tool"],
}

COORDINATE_FILTERS: Tuple[Tuple[str, str], ...] = (
    ("type", "coordinates.type"),
    ("provider", "coordinates.provider"),
    ("namespace", "coordinates.namespace"),
    ("name", "coordinates.name"),
)

# (query attribute, field path, operator)
RANGE_FILTERS: Tuple[Tuple[str, str, str], ...] = (
    ("min_effective_score", "scores.effective", "$gt"),
    ("max_effective_score", "scores.effective", "$lt"),
    ("min_tool_score", "scores.tool", "$gt"),
    ("max_tool_score", "scores.tool", "$lt"),
    ("min_licensed_score", "licensed.score.total", "$gt"),
    ("max_licensed_score", "licensed.score.total", "$lt"),
    ("min_described_score", "described.score.total", "$gt"),
    ("max_described_score", "described.score.total", "$lt"),
)


def _parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    # fractional input truncates toward zero
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return None


def _to_number(value: Optional[str]) -> Any:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


VALUE_TRANSFORMERS: Dict[str, Callable[[Optional[str]], Any]] = {
    "licensed.score.total": _to_number,
    "described.score.total": _to_number,
    "scores.effective": _to_number,
    "scores.tool": _to_number,
}


def _add_range(filter_: Filter, field: str, operator: str, value: Any) -> None:
    existing = filter_.get(field)
    if isinstance(existing, dict):
        existing[operator] = value
    else:
        filter_[field] = {operator: value}


def build_filter(params: QueryLike) -> Filter:
    query = DefinitionQuery.from_params(params)
    filter_: Filter = {}
    for attr, field in COORDINATE_FILTERS:
        value = getattr(query, attr)
        if value:
            filter_[field] = value
        elif query.explicitly_null(attr):
            filter_[field] = None
    if query.license:
        filter_["licensed.declared"] = query.license
    if query.released_after:
        _add_range(filter_, "described.releaseDate", "$gt", query.released_after)
    if query.released_before:
        _add_range(filter_, "described.releaseDate", "$lt", query.released_before)
    for attr, field, operator in RANGE_FILTERS:
        parsed = _parse_int(getattr(query, attr))
        if parsed is not None:
            _add_range(filter_, field, operator, parsed)
    return filter_


def build_sort(params: QueryLike, coordinates_key: str) -> List[Tuple[str, int]]:
    query = DefinitionQuery.from_params(params)
    fields = SORT_OPTIONS.get(query.sort or "", [])
    direction = -1 if query.sort_desc else 1
    clause = [(field, direction) for field in fields]
    clause.append((coordinates_key, direction))
    return clause


def _build_query_for_sort(is_tie_breaker: bool, field: str, value: Any, direction: int) -> Filter:
    operator = "$eq"
    if is_tie_breaker:
        if direction == 1:
            operator = "$ne" if value is None else "$gt"
        else:
            operator = "$lt"
    condition: Filter = {field: {operator: value}}
    if operator == "$lt" and value is not None:
        return {"$or": [condition, {field: None}]}
    return condition


def _build_query_expression(sort_conditions: SortClause, sort_values: List[Optional[str]]) -> Filter:
    expression: Filter = {}
    last = len(sort_conditions) - 1
    for index, (field, direction) in enumerate(sort_conditions):
        transform = VALUE_TRANSFORMERS.get(field)
        value: Any = sort_values[index]
        if transform:
            value = transform(value)
        expression.update(_build_query_for_sort(index == last, field, value, direction))
    return expression


def build_pagination_predicate(continuation_token: str, sort: SortClause) -> Optional[Filter]:
    if not continuation_token:
        return None
    sort_values = decode_for_sort(continuation_token, sort)
    expressions = [
        _build_query_expression(sort[:count], sort_values) for count in range(1, len(sort) + 1)
    ]
    if len(expressions) == 1:
        return expressions[0]
    return {"$or": expressions}


def combine(filter_: Filter, pagination: Optional[Filter]) -> Filter:
    if not pagination:
        return filter_
    return {"$and": [filter_, pagination]}


def build_query(params: QueryLike, continuation_token: str, sort: SortClause) -> Filter:
    return combine(build_filter(params), build_pagination_predicate(continuation_token, sort))
