import asyncio
import inspect
import json
import sys
from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from fastmcp.exceptions import ToolError

from aws_account_mcp.mcp_runtime import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PROTOCOL_VERSION,
    MCPServer,
    ToolResult,
    ToolSpec,
    _is_awaitable,
    _SimpleMCPServer,
)


def _ok(text: str = "ok") -> ToolResult:
    return ToolResult(content=[{"type": "text", "text": text}])


def _run_simple(monkeypatch, server: _SimpleMCPServer, *requests: object) -> list[dict]:
    lines = "".join(
        (request if isinstance(request, str) else json.dumps(request)) + "\n" for request in requests
    )
    stdout = StringIO()
    monkeypatch.setattr(sys, "stdin", StringIO(lines))
    monkeypatch.setattr(sys, "stdout", stdout)
    server.run()
    return [json.loads(line) for line in stdout.getvalue().splitlines()]


def test_simple_server_initialize(monkeypatch):
    server = _SimpleMCPServer("test", "1.0", "inst")

    (msg,) = _run_simple(
        monkeypatch, server, {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}
    )

    assert msg["id"] == 1
    assert msg["result"]["serverInfo"] == {"name": "test", "version": "1.0"}
    assert msg["result"]["instructions"] == "inst"


def test_simple_server_tools_list(monkeypatch):
    server = _SimpleMCPServer("test", "1.0", "inst")
    server.add_tool(ToolSpec("t1", "desc", {"type": "object"}, lambda x: _ok()))

    (msg,) = _run_simple(monkeypatch, server, {"jsonrpc": "2.0", "id": 2, "method": "tools/list"})

    assert msg["result"]["tools"] == [
        {"name": "t1", "description": "desc", "inputSchema": {"type": "object"}}
    ]


def test_simple_server_tools_call_async_handler(monkeypatch):
    async def handler(arguments):
        return _ok(arguments["value"])

    server = _SimpleMCPServer("test", "1.0", "inst")
    server.add_tool(ToolSpec("t1", "desc", {}, handler))

    (msg,) = _run_simple(
        monkeypatch,
        server,
        {
            "jsonrpc": "2.0",
            "id": 3,
            "method": "tools/call",
            "params": {"name": "t1", "arguments": {"value": "hello"}},
        },
    )

    assert msg["result"]["content"] == [{"type": "text", "text": "hello"}]
    assert "isError" not in msg["result"]


def test_simple_server_marks_error_results(monkeypatch):
    server = _SimpleMCPServer("test", "1.0", "inst")
    server.add_tool(
        ToolSpec(
            "t1",
            "desc",
            {},
            lambda x: ToolResult(content=[{"type": "text", "text": "bad"}], is_error=True),
        )
    )

    (msg,) = _run_simple(monkeypatch, server, {"id": 4, "method": "tools/call", "params": {"name": "t1"}})

    assert msg["result"]["isError"] is True


def test_simple_server_call_unknown(monkeypatch):
    server = _SimpleMCPServer("test", "1.0", "inst")

    (msg,) = _run_simple(monkeypatch, server, {"method": "tools/call", "params": {"name": "uk"}})

    assert msg["error"]["code"] == INVALID_PARAMS
    assert "Unknown tool" in msg["error"]["message"]


def test_simple_server_call_error_is_masked(monkeypatch):
    def fail(x):
        raise ValueError("Fail")

    server = _SimpleMCPServer("test", "1.0", "inst")
    server.add_tool(ToolSpec("t1", "desc", {}, fail))

    (msg,) = _run_simple(monkeypatch, server, {"method": "tools/call", "params": {"name": "t1"}})

    assert msg["error"] == {"code": INTERNAL_ERROR, "message": "Internal tool error"}


def test_simple_server_invalid_json_and_unsupported_method(monkeypatch):
    server = _SimpleMCPServer("test", "1.0", "inst")

    invalid, unsupported = _run_simple(
        monkeypatch, server, "INVALID", {"id": 9, "method": "resources/list"}
    )

    assert invalid["error"] == {"code": PARSE_ERROR, "message": "Invalid JSON"}
    assert unsupported["error"] == {
        "code": METHOD_NOT_FOUND,
        "message": "Unsupported method: resources/list",
    }


def test_simple_server_ping_and_silent_notifications(monkeypatch):
    server = _SimpleMCPServer("test", "1.0", "inst")

    messages = _run_simple(
        monkeypatch,
        server,
        {"jsonrpc": "2.0", "method": "notifications/initialized"},
        {"jsonrpc": "2.0", "id": 10, "method": "ping"},
    )

    assert messages == [{"jsonrpc": "2.0", "id": 10, "result": {}}]


def test_simple_server_negotiates_protocol_version(monkeypatch):
    server = _SimpleMCPServer("test", "1.0", "inst")

    requested, default = _run_simple(
        monkeypatch,
        server,
        {"id": 1, "method": "initialize", "params": {"protocolVersion": "2025-03-26"}},
        {"id": 2, "method": "initialize"},
    )

    assert requested["result"]["protocolVersion"] == "2025-03-26"
    assert default["result"]["protocolVersion"] == PROTOCOL_VERSION


def test_mcp_server_simple_mode():
    server = MCPServer("name", "v1", "ins", runtime="simple")
    assert server.mode == "simple"
    server.add_tool(ToolSpec("t1", "d", {}, lambda x: _ok()))


def test_mcp_server_rejects_unknown_runtime():
    with pytest.raises(ValueError, match="Unknown MCP runtime"):
        MCPServer("name", "v1", "ins", runtime="grpc")


def test_mcp_server_run_delegates():
    server = MCPServer("name", "v1", "ins", runtime="simple")
    server._server = MagicMock()
    server.run()
    server._server.run.assert_called_once_with()


def _capture_fastmcp_handler(spec: ToolSpec):
    captured = {}

    class FakeFastToolResult:
        def __init__(self, content, structured_content):
            self.content = content
            self.structured_content = structured_content

    class FakeTool:
        model_fields = {"parameters": object()}

    fake_tool = FakeTool()

    def _from_function(handler, **kwargs):
        captured["handler"] = handler
        captured["kwargs"] = kwargs
        return fake_tool

    fake_server = MagicMock()
    with patch("aws_account_mcp.mcp_runtime.FastMCP", return_value=fake_server):
        with patch("aws_account_mcp.mcp_runtime.FunctionTool") as mock_function_tool:
            with patch("aws_account_mcp.mcp_runtime.FastToolResult", FakeFastToolResult):
                mock_function_tool.from_function.side_effect = _from_function
                server = MCPServer("name", "v1", "ins")
                server.add_tool(spec)
    return captured, fake_tool, fake_server, FakeFastToolResult


def test_add_fastmcp_tool_filters_none_and_sets_schema():
    schema = {"properties": {"a": {}, "b": {}}}

    async def _handler(payload):
        return ToolResult(
            content=[{"type": "text", "text": json.dumps(payload)}],
            structured_content={"ok": True},
        )

    captured, fake_tool, fake_server, result_type = _capture_fastmcp_handler(
        ToolSpec(name="aws-thing", description="desc", input_schema=schema, handler=_handler)
    )

    handler = captured["handler"]
    assert list(inspect.signature(handler).parameters) == ["a", "b"]
    assert captured["kwargs"]["name"] == "aws-thing"
    assert fake_tool.parameters == schema
    fake_server.add_tool.assert_called_once_with(fake_tool)

    with patch("aws_account_mcp.mcp_runtime.FastToolResult", result_type):
        result = asyncio.run(handler(a=1, b=None))
    assert json.loads(result.content[0]["text"]) == {"a": 1}
    assert result.structured_content == {"ok": True}


def test_add_fastmcp_tool_raises_tool_error_for_error_results():
    spec = ToolSpec(
        name="aws-thing",
        description="desc",
        input_schema={"properties": {"a": {}}},
        handler=lambda payload: ToolResult(
            content=[{"type": "text", "text": "Unsupported thing"}], is_error=True
        ),
    )
    captured, *_ = _capture_fastmcp_handler(spec)

    with pytest.raises(ToolError, match="Unsupported thing"):
        asyncio.run(captured["handler"](a=1))


def test_add_fastmcp_tool_handler_non_toolresult_raises():
    spec = ToolSpec(
        name="sync-tool",
        description="desc",
        input_schema={"properties": {"a": {}}},
        handler=lambda payload: {"not": "tool-result"},
    )
    captured, *_ = _capture_fastmcp_handler(spec)

    with pytest.raises(TypeError, match="Tool handler did not return ToolResult"):
        asyncio.run(captured["handler"](a=1))


def test_is_awaitable_exception_path(monkeypatch):
    def _raise(_value):
        raise TypeError("boom")

    monkeypatch.setattr(inspect, "isawaitable", _raise)
    assert _is_awaitable(object()) is False


def test_tool_result_protocol_shape():
    result = ToolResult(
        content=[{"type": "text", "text": "a"}, {"type": "text", "text": "b"}],
        structured_content={"x": 1},
        is_error=True,
    )

    assert result.text == "a\nb"
    assert result.to_protocol() == {
        "content": result.content,
        "structuredContent": {"x": 1},
        "isError": True,
    }
