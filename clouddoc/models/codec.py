"""
Wire codec for item values.

A value is stored either inline, as a SimpleDB attribute value, or
externalized, as an S3 object referenced from the attribute. Tagged
attribute values look like ``!@INT:42`` or ``!@JSN:data/tags/doc-1``;
anything without the ``!@`` marker is a literal string.

JSON values are limited to str-keyed dicts, lists, str, int, float, bool
and None, so a reloaded value always equals the saved one.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from ..exceptions import DecodeError, UnsupportedValueError

# Attribute values at or above this length go to the blob store
INLINE_LIMIT = 1024

MARKER = "!@"

TAG_DATETIME = "DTM"
TAG_INT = "INT"
TAG_DECIMAL = "DCM"
TAG_DOUBLE = "DBL"
TAG_TEXT = "TXT"
TAG_XML = "XML"
TAG_JSON = "JSN"

MIME_XML = "application/xml"
MIME_JSON = "application/json"
MIME_TEXT = "text/plain"

MIME_BY_TAG = {
    TAG_XML: MIME_XML,
    TAG_JSON: MIME_JSON,
    TAG_TEXT: MIME_TEXT,
}
TAG_BY_MIME = {mime: tag for tag, mime in MIME_BY_TAG.items()}


@dataclass(frozen=True)
class BlobRef:
    """Decoded form of an externalized value: where the payload lives and how to parse it."""
    path: str
    mime_type: str


def blob_path(document_name: str, item_name: str) -> str:
    """S3 key holding the payload of an externalized item."""
    return f"data/{item_name}/{document_name}"


def _tagged(tag: str, payload: str) -> str:
    return f"{MARKER}{tag}:{payload}"


def _check_json(value: Any) -> None:
    """
    Reject JSON content that would not read back unchanged.

    Raises:
        UnsupportedValueError: for the first offending key or value
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return
    if isinstance(value, list):
        for element in value:
            _check_json(element)
        return
    if isinstance(value, dict):
        for key, element in value.items():
            # json.dumps turns non-str keys into strings
            if not isinstance(key, str):
                raise UnsupportedValueError(key)
            _check_json(element)
        return
    raise UnsupportedValueError(value)


def classify(value: Any) -> str:
    """
    Decide where a value is stored.

    Returns:
        "" for inline values, otherwise the mime type of the blob

    Raises:
        UnsupportedValueError: value is not one of the storable kinds
    """
    if value is None:
        return ""
    # bool is an int subclass but has no tag of its own
    if isinstance(value, bool):
        raise UnsupportedValueError(value)
    if isinstance(value, (datetime, float)):
        return ""
    if isinstance(value, (int, Decimal)):
        # Tagged scalars always stay inline, so they must fit next to the tag
        if len(str(value)) > INLINE_LIMIT - len(_tagged(TAG_INT, "")):
            raise UnsupportedValueError(value)
        return ""
    if isinstance(value, ET.Element):
        return MIME_XML
    if isinstance(value, (dict, list)):
        _check_json(value)
        return MIME_JSON
    if isinstance(value, str):
        # Short text starting with the marker would read back as a tagged value
        if len(value) >= INLINE_LIMIT or value.startswith(MARKER):
            return MIME_TEXT
        return ""
    raise UnsupportedValueError(value)


def encode(value: Any, path: str) -> str:
    """
    Encode a value as a SimpleDB attribute value.

    Args:
        value: Item value
        path: Blob key used when the value is externalized

    Returns:
        Wire string, never longer than INLINE_LIMIT
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        raise UnsupportedValueError(value)
    if isinstance(value, datetime):
        return _tagged(TAG_DATETIME, value.isoformat())
    if isinstance(value, int):
        return _tagged(TAG_INT, str(value))
    if isinstance(value, Decimal):
        return _tagged(TAG_DECIMAL, str(value))
    if isinstance(value, float):
        return _tagged(TAG_DOUBLE, repr(value))

    mime_type = classify(value)
    if mime_type:
        return encode_reference(mime_type, path)
    return value


def encode_reference(mime_type: str, path: str) -> str:
    """Wire string pointing at an externalized payload."""
    return _tagged(TAG_BY_MIME[mime_type], path)


def decode(raw: str) -> Union[Any, BlobRef]:
    """
    Decode a SimpleDB attribute value.

    Scalars come back as Python values; externalized values come back as
    a BlobRef whose payload has not been fetched yet.

    Raises:
        DecodeError: unknown tag, malformed scalar, or oversized raw value
    """
    if raw == "":
        return None

    if not raw.startswith(MARKER):
        if len(raw) > INLINE_LIMIT:
            raise DecodeError(
                f"Inline value is {len(raw)} characters, limit is {INLINE_LIMIT}", raw
            )
        return raw

    tag = raw[2:5]
    if raw[5:6] != ":":
        raise DecodeError("Missing separator after type tag", raw)
    payload = raw[6:]

    if tag in MIME_BY_TAG:
        return BlobRef(payload, MIME_BY_TAG[tag])

    try:
        if tag == TAG_DATETIME:
            return datetime.fromisoformat(payload)
        if tag == TAG_INT:
            return int(payload)
        if tag == TAG_DECIMAL:
            return Decimal(payload)
        if tag == TAG_DOUBLE:
            return float(payload)
    except (ValueError, InvalidOperation) as e:
        raise DecodeError(f"Malformed {tag} value: {e}", raw)

    raise DecodeError(f"Unknown type tag '{tag}'", raw)


def serialize_payload(value: Any) -> str:
    """Render an externalized value as the text body of its blob."""
    if isinstance(value, ET.Element):
        return ET.tostring(value, encoding="unicode")
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            raise UnsupportedValueError(value)
    if isinstance(value, str):
        return value
    raise UnsupportedValueError(value)


def parse_payload(body: str, mime_type: str) -> Any:
    """
    Parse a blob body according to its mime type.

    Raises:
        DecodeError: body is not well-formed XML or JSON
    """
    try:
        if mime_type == MIME_XML:
            return ET.fromstring(body)
        if mime_type == MIME_JSON:
            return json.loads(body)
    except (ET.ParseError, json.JSONDecodeError) as e:
        raise DecodeError(f"Malformed {mime_type} payload: {e}", body)
    return body
