"""Opaque continuation tokens: base64 of the last record's sort values.

Each present value is written as ``=<value>``; a null leaves its segment empty.
"""
from __future__ import annotations

import base64
import binascii
from typing import Any, List, Mapping, Optional, Sequence, Tuple

SEPARATOR = "&"
# marks a present value so an empty string stays distinct from null
VALUE_PREFIX = "="

SortClause = Sequence[Tuple[str, int]]


class ContinuationTokenError(ValueError):
    """Raised for tokens that cannot be decoded against the active sort."""


def get_path(record: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted field path (``licensed.score.total``) against a nested mapping."""
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _segment(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return VALUE_PREFIX + ("true" if value else "false")
    return VALUE_PREFIX + str(value)


def encode(last_record: Mapping[str, Any], sort: SortClause) -> str:
    values = [_segment(get_path(last_record, field)) for field, _ in sort]
    raw = SEPARATOR.join(values)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode(token: str) -> List[Optional[str]]:
    try:
        raw = base64.b64decode(token.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as exc:
        raise ContinuationTokenError(f"Malformed continuation token: {exc}") from exc
    values: List[Optional[str]] = []
    for segment in raw.split(SEPARATOR):
        if not segment:
            values.append(None)
        elif segment.startswith(VALUE_PREFIX):
            values.append(segment[len(VALUE_PREFIX):])
        else:
            raise ContinuationTokenError(f"Malformed continuation token segment: {segment!r}")
    return values


def decode_for_sort(token: str, sort: SortClause) -> List[Optional[str]]:
    """Decode and check there is exactly one value per sort field."""
    values = decode(token)
    if len(values) != len(sort):
        raise ContinuationTokenError(
            f"Continuation token carries {len(values)} values but the sort has {len(sort)} fields"
        )
    return values


def next_token(data: Sequence[Mapping[str, Any]], page_size: int, sort: SortClause) -> str:
    # a short page means the result set is exhausted
    if not data or len(data) != page_size:
        return ""
    return encode(data[-1], sort)
