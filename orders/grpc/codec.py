"""
JSON message codec for gRPC calls.

Services exchange UTF-8 JSON bodies instead of generated protobuf messages;
these functions are plugged in as request/response (de)serializers.
"""
import json
from decimal import Decimal
from typing import Any


def _default(value: Any):
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize(message: Any) -> bytes:
    """Encode a JSON-compatible value to bytes"""
    return json.dumps(message, default=_default, separators=(",", ":")).encode("utf-8")


def deserialize(payload: bytes) -> Any:
    """Decode bytes to a JSON value; an empty body decodes to an empty dict"""
    if not payload:
        return {}
    return json.loads(payload.decode("utf-8"))
