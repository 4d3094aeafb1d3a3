"""Tool helpers."""

from __future__ import annotations

import json

from aws_account_mcp.mcp_runtime import ToolResult
from aws_account_mcp.utils.serialization import to_json


def result_from_payload(payload: dict[str, object], *, is_error: bool = False) -> ToolResult:
    text = to_json(payload)
    # Round-trip so structured content carries the same JSON-safe values as the text.
    content = [{"type": "text", "text": text}]
    return ToolResult(content=content, structured_content=json.loads(text), is_error=is_error)


def text_result(text: str, *, is_error: bool = False) -> ToolResult:
    return ToolResult(content=[{"type": "text", "text": text}], is_error=is_error)


def error_result(error: dict[str, object]) -> ToolResult:
    return result_from_payload({"success": False, "error": error}, is_error=True)
