import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from clouddoc.exceptions import DecodeError, UnsupportedValueError
from clouddoc.models import codec
from clouddoc.models.codec import INLINE_LIMIT, BlobRef, blob_path, classify, decode, encode


@pytest.mark.parametrize("value", [
    None,
    12345,
    -7,
    0,
    2 ** 40,
    Decimal("120.50"),
    Decimal("-0.0001"),
    3.14159,
    1e-300,
    datetime(2024, 5, 17, 8, 30, 15, 123456),
    datetime(2024, 5, 17, 8, 30, tzinfo=timezone(timedelta(hours=2))),
    "hello",
    "x" * (INLINE_LIMIT - 1),
])
def test_scalar_round_trip(value):
    decoded = decode(encode(value, "data/n/d1"))
    assert decoded == value
    assert type(decoded) is type(value)


def test_tagged_wire_format():
    assert encode(12345, "p") == "!@INT:12345"
    assert encode(Decimal("120.50"), "p") == "!@DCM:120.50"
    assert encode(2.5, "p") == "!@DBL:2.5"
    assert encode(datetime(2024, 1, 2, 3, 4, 5), "p") == "!@DTM:2024-01-02T03:04:05"
    assert encode(None, "p") == ""


def test_short_text_is_stored_raw():
    assert encode("plain text", "p") == "plain text"
    assert decode("plain text") == "plain text"


def test_text_at_limit_is_externalized():
    path = blob_path("d1", "body")
    assert classify("x" * INLINE_LIMIT) == "text/plain"
    assert encode("x" * INLINE_LIMIT, path) == "!@TXT:data/body/d1"


def test_text_below_limit_is_inline():
    text = "x" * (INLINE_LIMIT - 1)
    assert classify(text) == ""
    assert encode(text, "unused") == text


def test_structured_values_are_externalized():
    element = ET.fromstring("<order id='1'><line/></order>")
    assert classify(element) == "application/xml"
    assert classify({"a": 1}) == "application/json"
    assert classify([1, 2]) == "application/json"
    assert encode(element, "data/order/d1") == "!@XML:data/order/d1"
    assert encode([1, 2], "data/tags/d1") == "!@JSN:data/tags/d1"


def test_text_starting_with_marker_is_externalized():
    assert classify("!@INT:not really") == "text/plain"


def test_decode_reference():
    assert decode("!@JSN:data/tags/d1") == BlobRef("data/tags/d1", "application/json")
    assert decode("!@TXT:data/body/d1") == BlobRef("data/body/d1", "text/plain")
    assert decode("!@XML:data/x/d1").mime_type == "application/xml"


def test_blob_path_is_item_then_document():
    assert blob_path("d1", "body") == "data/body/d1"


@pytest.mark.parametrize("raw", [
    "!@ZZZ:1",
    "!@INT12",
    "!@INT:abc",
    "!@DCM:1.2.3",
    "!@DTM:yesterday",
    "y" * (INLINE_LIMIT + 1),
])
def test_decode_rejects_malformed_values(raw):
    with pytest.raises(DecodeError) as exc_info:
        decode(raw)
    assert exc_info.value.recoverable is False


@pytest.mark.parametrize("value", [True, {1, 2}, b"bytes", object()])
def test_unsupported_values(value):
    with pytest.raises(UnsupportedValueError):
        classify(value)


def test_payload_round_trip():
    body = codec.serialize_payload({"name": "Zoë", "tags": [1, 2]})
    assert codec.parse_payload(body, "application/json") == {"name": "Zoë", "tags": [1, 2]}

    element = codec.parse_payload("<a><b>1</b></a>", "application/xml")
    assert element.tag == "a"
    assert element.find("b").text == "1"
    assert codec.serialize_payload(element) == "<a><b>1</b></a>"

    assert codec.parse_payload("long text", "text/plain") == "long text"


def test_malformed_payload():
    with pytest.raises(DecodeError):
        codec.parse_payload("{not json", "application/json")
    with pytest.raises(DecodeError):
        codec.parse_payload("<open>", "application/xml")


def test_json_payload_must_be_serializable():
    with pytest.raises(UnsupportedValueError):
        codec.serialize_payload({"when": datetime(2024, 1, 1)})


def test_scalar_too_long_for_an_attribute():
    with pytest.raises(UnsupportedValueError):
        classify(10 ** 1100)


@pytest.mark.parametrize("value", [
    {"when": datetime(2024, 1, 1)},
    [Decimal("1.5")],
    {1: "a"},
    {"nested": {"ids": (1, 2)}},
])
def test_json_content_checked_on_classify(value):
    with pytest.raises(UnsupportedValueError):
        classify(value)


def test_plain_json_content_is_accepted():
    assert classify({"a": [1, 2.5, None, True, {"b": "c"}]}) == "application/json"
