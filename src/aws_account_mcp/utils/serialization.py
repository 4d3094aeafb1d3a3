"""JSON serialization utilities for AWS SDK responses."""

from __future__ import annotations

import base64
import datetime
import decimal
import json

_MAX_SERIALIZE_BYTES = 10 * 1024 * 1024


def json_default(obj: object) -> object:
    """Serialize the extra types boto3 responses carry (datetimes, Decimals, bytes, streams)."""
    if isinstance(obj, (datetime.date, datetime.datetime)):
        return obj.isoformat()
    if isinstance(obj, decimal.Decimal):
        # DynamoDB numbers: keep ints exact, fall back to str when float would lose precision.
        if obj == obj.to_integral_value():
            return int(obj)
        as_float = float(obj)
        if decimal.Decimal(str(as_float)) != obj:
            return str(obj)
        return as_float
    if isinstance(obj, (bytes, bytearray)):
        try:
            return bytes(obj).decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(bytes(obj)).decode("utf-8")
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if hasattr(obj, "read") and callable(obj.read):
        try:
            content = obj.read(_MAX_SERIALIZE_BYTES)
        except OSError:
            return ""
        if isinstance(content, bytes):
            return json_default(content)
        return content or ""
    return str(obj)


def to_json(payload: object, *, indent: int | None = 2) -> str:
    return json.dumps(payload, ensure_ascii=True, indent=indent, default=json_default)


def canonical_json(payload: object) -> str:
    """Stable compact encoding used for cache keys."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=json_default)
