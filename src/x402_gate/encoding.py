"""
Encoding utilities for x402 protocol headers
"""

import base64
import binascii
import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from x402_gate.exceptions import DecodeError

T = TypeVar("T", bound=BaseModel)


def encode_base64(data: str | bytes) -> str:
    """Encode data to base64"""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(data).decode("utf-8")


def decode_base64(data: str) -> str:
    """Decode base64 to string.

    Missing padding and the URL-safe alphabet are accepted.

    Raises:
        DecodeError: If the input is not valid base64 or not UTF-8
    """
    normalized = data.strip().replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.b64decode(normalized, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Malformed base64 header value: {e}") from e


def encode_payment_payload(payload: Any) -> str:
    """Encode a model or JSON-serializable object to base64 for an HTTP header"""
    if hasattr(payload, "model_dump"):
        data = payload.model_dump(by_alias=True, exclude_none=True)
    else:
        data = payload
    return encode_base64(json.dumps(data, separators=(",", ":")))


def decode_payment_payload(encoded: str, model_class: type[T] | None = None) -> T | Any:
    """Decode a base64 JSON header value, optionally validating it into *model_class*.

    Raises:
        DecodeError: On malformed base64, invalid JSON, or a payload that does not
            match *model_class*
    """
    json_str = decode_base64(encoded)
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Header value is not valid JSON: {e}") from e

    if model_class is None:
        return data
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object for {model_class.__name__}")
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Invalid {model_class.__name__}: {e.error_count()} error(s)") from e


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string to bytes"""
    if hex_str.startswith(("0x", "0X")):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)
