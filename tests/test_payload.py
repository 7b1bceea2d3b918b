"""Unit tests for request body canonicalization."""

import json

import pytest

from ingestgw.services.gateway.payload import (
    InvalidEncodingError,
    InvalidJSONError,
    PayloadError,
    canonicalize,
)


def test_object_is_compacted_with_sorted_keys():
    """Whitespace and key order may change; content may not."""

    out = canonicalize(b'{ "b": [1, 2, {"z": null, "y": true}],\n  "a": 1 }')

    assert out == b'{"a":1,"b":[1,2,{"y":true,"z":null}]}'


@pytest.mark.parametrize("body", [b"[1,2,3]", b'"text"', b"42", b"-1.5e3", b"null", b"true", b"{}"])
def test_any_json_value_is_accepted(body):
    """No schema: arrays, scalars and null all pass through."""

    assert json.loads(canonicalize(body)) == json.loads(body)


def test_non_ascii_text_is_kept_as_utf8():
    out = canonicalize('{"city": "Zürich", "emoji": "☃"}'.encode("utf-8"))

    assert out.decode("utf-8") == '{"city":"Zürich","emoji":"☃"}'


def test_invalid_utf8_is_rejected():
    with pytest.raises(InvalidEncodingError) as err:
        canonicalize(b'{"a": "\xff\xfe"}')

    assert str(err.value) == "Invalid UTF-8 data"
    assert err.value.reason == "invalid_utf8"


@pytest.mark.parametrize(
    "body",
    [b"not json", b"", b"   ", b'{"a": 1', b"{'a': 1}", b"[1,]", b'{"a": 1} trailing'],
)
def test_malformed_json_is_rejected(body):
    with pytest.raises(InvalidJSONError) as err:
        canonicalize(body)

    assert str(err.value).startswith("Invalid JSON data")
    assert err.value.reason == "invalid_json"


@pytest.mark.parametrize("literal", [b"NaN", b"Infinity", b"-Infinity", b'{"x": NaN}'])
def test_non_standard_number_literals_are_rejected(literal):
    """Python's parser accepts these by default; JSON does not."""

    with pytest.raises(InvalidJSONError):
        canonicalize(literal)


def test_unpaired_surrogate_escape_is_rejected():
    with pytest.raises(InvalidJSONError):
        canonicalize(b'{"a": "\\ud800"}')


def test_payload_errors_share_a_base_class():
    assert issubclass(InvalidEncodingError, PayloadError)
    assert issubclass(InvalidJSONError, PayloadError)


@pytest.mark.parametrize("body", [b'{"a": 1e400}', b"-1e400", b"[1, 2e999]"])
def test_numbers_overflowing_a_float_are_rejected(body):
    """They would otherwise be written back as the non-JSON token Infinity."""

    with pytest.raises(InvalidJSONError):
        canonicalize(body)
