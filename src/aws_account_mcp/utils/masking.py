"""Sensitive-field masking for log output and echoed payloads."""

from __future__ import annotations

_MAX_REDACT_DEPTH = 20

# Substring match, case-insensitive.
SENSITIVE_KEY_MARKERS: tuple[str, ...] = (
    "password",
    "secret",
    "token",
    "accesskey",
    "credential",
    "authorization",
)


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEY_MARKERS)


def redact_sensitive_fields(
    value: object,
    *,
    mask: str = "***",
    depth: int = 0,
    max_depth: int = _MAX_REDACT_DEPTH,
) -> object:
    """Recursively replace values whose keys look sensitive.

    Sub-trees deeper than ``max_depth`` collapse to ``mask``.
    """
    if depth >= max_depth:
        return mask
    if isinstance(value, dict):
        return {
            key: mask
            if isinstance(key, str) and is_sensitive_key(key)
            else redact_sensitive_fields(val, mask=mask, depth=depth + 1, max_depth=max_depth)
            for key, val in value.items()
        }
    if isinstance(value, list):
        return [
            redact_sensitive_fields(item, mask=mask, depth=depth + 1, max_depth=max_depth)
            for item in value
        ]
    return value


def mask_access_key(access_key_id: str) -> str:
    if len(access_key_id) <= 8:
        return "***"
    return f"{access_key_id[:4]}***{access_key_id[-4:]}"
