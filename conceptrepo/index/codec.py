"""
Transport encoding of blob content and (de)serialization of concept payloads.
"""

import base64
import binascii
import json
import logging
from typing import Any

from conceptrepo.errors import MalformedPayload


def decode_content(encoded: str) -> bytes:
    """Decode base64 content as returned by the host (line breaks are allowed)"""
    try:
        return base64.b64decode(encoded)
    except (binascii.Error, ValueError) as e:
        raise MalformedPayload(f"Content is not valid base64: {e}") from e


def encode_content(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def parse_object(content: bytes, path: str | None = None) -> dict[str, Any]:
    """
    Parse a concept blob. Raises MalformedPayload if it is not UTF-8 JSON or not a JSON object.
    """
    try:
        obj = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayload(f"{path or 'Content'} is not valid JSON: {e}", path) from e
    if not isinstance(obj, dict):
        raise MalformedPayload(f"{path or 'Content'} is not a JSON object", path)
    return obj


def serialize_object(obj: Any) -> bytes:
    return json.dumps(obj, indent=2, ensure_ascii=False).encode("utf-8")


def indexable(value: Any) -> str:
    if isinstance(value, str):
        return value
    # numeric identifiers are common, booleans are not identifiers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def extract_index_fields(obj: dict[str, Any]) -> tuple[str, str]:
    """Return the (key, object_type) pair the index keeps for a concept, empty strings when absent"""
    return indexable(obj.get("key")), indexable(obj.get("object_type"))


def index_fields_from_content(content: bytes, path: str | None = None) -> tuple[str, str]:
    """
    Like extract_index_fields, but tolerant of malformed content: a file that cannot be parsed
    is still indexed, with empty key and type.
    """
    try:
        return extract_index_fields(parse_object(content, path))
    except MalformedPayload as e:
        logging.warning(f"Indexing {path} without key and type: {e}")
        return "", ""
