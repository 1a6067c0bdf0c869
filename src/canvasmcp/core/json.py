"""Fast JSON encoding and decoding for document files."""

from typing import Any

import msgspec
import orjson


class JSONParseError(Exception):
    """JSON parsing failed."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


_decoder = msgspec.json.Decoder()


def loads(text: str | bytes) -> Any:
    """
    Decode JSON text.

    Args:
        text: JSON document as str or UTF-8 bytes

    Returns:
        Decoded Python value

    Raises:
        JSONParseError: If the text is not valid JSON
    """
    data = text.encode("utf-8") if isinstance(text, str) else text
    try:
        return _decoder.decode(data)
    except msgspec.DecodeError as e:
        raise JSONParseError(f"Invalid JSON: {e}", e) from e


def loads_object(text: str | bytes) -> dict[str, Any]:
    """Decode JSON text that must hold an object."""
    result = loads(text)
    if not isinstance(result, dict):
        raise JSONParseError(f"Expected object, got {type(result).__name__}")
    return result


def dumps(obj: Any, indent: bool = False, sort_keys: bool = False) -> str:
    """
    Encode object to JSON string with orjson.

    Args:
        obj: Object to encode
        indent: Pretty-print with two-space indentation
        sort_keys: Emit object keys in sorted order (canonical form)

    Returns:
        JSON string
    """
    option = 0
    if indent:
        option |= orjson.OPT_INDENT_2
    if sort_keys:
        option |= orjson.OPT_SORT_KEYS
    try:
        return orjson.dumps(obj, option=option).decode("utf-8")
    except TypeError as e:
        raise JSONParseError(f"Value is not JSON serializable: {e}", e) from e
