import base64

import pytest

from cdstore.definitions.continuation import (
    ContinuationTokenError,
    decode,
    decode_for_sort,
    encode,
    get_path,
    next_token,
)

SORT = [("described.releaseDate", 1), ("licensed.score.total", 1), ("_mongo.partitionKey", 1)]


def _record(release_date=None, score=None, key="npm/npmjs/-/co/4.6.0"):
    described = {"releaseDate": release_date} if release_date is not None else {}
    return {
        "described": described,
        "licensed": {"score": {"total": score}},
        "_mongo": {"partitionKey": key},
    }


def test_encode_joins_sort_values_in_order():
    token = encode(_record("2018-01-01", 75), SORT)
    assert base64.b64decode(token).decode() == "=2018-01-01&=75&=npm/npmjs/-/co/4.6.0"


def test_decode_round_trips_values():
    token = encode(_record("2018-01-01", 75), SORT)
    assert decode(token) == ["2018-01-01", "75", "npm/npmjs/-/co/4.6.0"]


def test_missing_values_decode_to_none():
    token = encode(_record(), SORT)
    assert decode(token) == [None, None, "npm/npmjs/-/co/4.6.0"]


def test_zero_is_not_treated_as_missing():
    token = encode(_record("2018-01-01", 0), SORT)
    assert decode(token)[1] == "0"


def test_decode_rejects_bad_base64():
    with pytest.raises(ContinuationTokenError):
        decode("not base64!!")


def test_decode_for_sort_checks_segment_count():
    token = base64.b64encode(b"=only&=two").decode()
    with pytest.raises(ContinuationTokenError):
        decode_for_sort(token, SORT)


def test_next_token_only_for_full_pages():
    records = [_record("2018-01-01", 1, key=f"k{i}") for i in range(3)]
    assert next_token(records, 5, SORT) == ""
    assert next_token([], 5, SORT) == ""
    token = next_token(records, 3, SORT)
    assert decode(token)[-1] == "k2"


def test_get_path_handles_missing_levels():
    assert get_path({"a": {"b": 1}}, "a.b") == 1
    assert get_path({"a": None}, "a.b") is None
    assert get_path({}, "a.b.c") is None


def test_empty_string_is_distinct_from_missing():
    record = {"licensed": {"declared": ""}, "_mongo": {"partitionKey": "k"}}
    sort = [("licensed.declared", 1), ("described.releaseDate", 1), ("_mongo.partitionKey", 1)]
    assert decode(encode(record, sort)) == ["", None, "k"]


def test_decode_rejects_unmarked_segments():
    token = base64.b64encode(b"2018-01-01&=k").decode()
    with pytest.raises(ContinuationTokenError):
        decode(token)
