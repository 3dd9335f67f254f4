"""
Decoding of JSON-encoded record fields.

The store keeps structured data (validators, rule sets, field schemas) as
JSON text in long-text fields. Values that are already decoded (lists,
objects) pass through untouched.
"""
from __future__ import annotations

import json
from typing import Any

from lanehub.assembly.errors import MalformedPayload


def decode_json_field(value: Any, field: str) -> Any:
    """
    Decode a stored JSON field.

    Args:
        value: Raw field value (usually a string)
        field: Logical field name, for error reporting

    Returns:
        Decoded value, or None for empty/absent input

    Raises:
        MalformedPayload: If the text is not valid JSON
    """
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return value
    if not isinstance(value, str):
        raise MalformedPayload(field, str(value), f"expected JSON text, got {type(value).__name__}")

    text = value.strip()
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedPayload(field, value, f"{e.msg} at position {e.pos}") from e


def decode_json_list(value: Any, field: str) -> list[Any] | None:
    """
    Decode a stored JSON field that must hold a list.

    Raises:
        MalformedPayload: If the text is not valid JSON or not a list
    """
    decoded = decode_json_field(value, field)
    if decoded is None:
        return None
    if not isinstance(decoded, list):
        raise MalformedPayload(field, str(value), f"expected a JSON array, got {type(decoded).__name__}")
    return decoded
