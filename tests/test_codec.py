import pytest

from conceptrepo.errors import MalformedPayload
from conceptrepo.index.codec import (
    decode_content,
    encode_content,
    extract_index_fields,
    index_fields_from_content,
    parse_object,
    serialize_object,
)


def test_decode_content_with_line_breaks():
    # GitHub wraps base64 content at 60 characters
    assert decode_content("eyJrZXkiOiAi\nMSJ9\n") == b'{"key": "1"}'
    assert decode_content(encode_content("café".encode("utf-8"))) == "café".encode("utf-8")


def test_decode_content_invalid():
    with pytest.raises(MalformedPayload):
        decode_content("abc")


def test_parse_object():
    assert parse_object(serialize_object({"key": "1", "label": "été"})) == {"key": "1", "label": "été"}
    with pytest.raises(MalformedPayload, match="bad.json is not valid JSON"):
        parse_object(b"{oops", "bad.json")
    with pytest.raises(MalformedPayload, match="not a JSON object"):
        parse_object(b"[1, 2, 3]")
    with pytest.raises(MalformedPayload):
        parse_object(b"\xff")


def test_extract_index_fields():
    assert extract_index_fields({"key": "k", "object_type": "concept", "label": "x"}) == ("k", "concept")
    assert extract_index_fields({"label": "x"}) == ("", "")
    assert extract_index_fields({"key": 123456789}) == ("123456789", "")
    assert extract_index_fields({"key": True, "object_type": ["a"]}) == ("", "")


def test_index_fields_from_malformed_content():
    assert index_fields_from_content(b'{"key": "k"}') == ("k", "")
    assert index_fields_from_content(b"not json", "x.json") == ("", "")
    assert index_fields_from_content(b'"a string"', "x.json") == ("", "")
