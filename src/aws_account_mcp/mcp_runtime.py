"""MCP runtime adapter over FastMCP with a minimal stdio fallback mode."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, cast

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import FunctionTool
from fastmcp.tools.tool import ToolResult as FastToolResult
from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass
class ToolSpec:
    name: str
    description: str
    input_schema: dict[str, object]
    handler: Callable[[dict[str, object]], "ToolResult | Awaitable[ToolResult]"]


class ToolResult(BaseModel):
    content: list[dict[str, object]]
    structured_content: dict[str, object] | None = None
    is_error: bool = False

    @property
    def text(self) -> str:
        return "\n".join(
            str(item.get("text", "")) for item in self.content if item.get("type") == "text"
        )

    def to_protocol(self) -> dict[str, object]:
        payload: dict[str, object] = {"content": self.content}
        if self.structured_content is not None:
            payload["structuredContent"] = self.structured_content
        if self.is_error:
            payload["isError"] = True
        return payload


PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


_Method = Callable[[asyncio.AbstractEventLoop, dict[str, Any]], dict[str, object]]


class _RpcError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class _SimpleMCPServer:
    """Line-delimited JSON-RPC over stdio for clients that cannot host FastMCP.

    Handles ``initialize``, ``ping``, ``tools/list`` and ``tools/call``;
    ``notifications/*`` messages are accepted and never answered.
    """

    def __init__(self, name: str, version: str, instructions: str) -> None:
        self._name = name
        self._version = version
        self._instructions = instructions
        self._tools: dict[str, ToolSpec] = {}
        self._methods: dict[str, _Method] = {
            "initialize": self._initialize,
            "ping": lambda _loop, _params: {},
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    def add_tool(self, tool: ToolSpec) -> None:
        self._tools[tool.name] = tool

    def run(self) -> None:
        loop = asyncio.new_event_loop()
        try:
            for line in sys.stdin:
                line = line.strip()
                if not line:
                    continue
                try:
                    request = json.loads(line)
                except json.JSONDecodeError:
                    self._write_error(None, PARSE_ERROR, "Invalid JSON")
                    continue
                if not isinstance(request, dict):
                    self._write_error(None, INVALID_REQUEST, "Invalid JSON-RPC request")
                    continue
                self._handle(loop, request)
        finally:
            loop.close()

    def _handle(self, loop: asyncio.AbstractEventLoop, request: dict[str, Any]) -> None:
        request_id = request.get("id")
        method = request.get("method")
        if isinstance(method, str) and method.startswith("notifications/"):
            logger.debug("Received %s", method)
            return
        handler = self._methods.get(method) if isinstance(method, str) else None
        if handler is None:
            method_name = method if isinstance(method, str) else repr(method)
            self._write_error(request_id, METHOD_NOT_FOUND, f"Unsupported method: {method_name[:256]}")
            return
        raw_params = request.get("params", {})
        params = raw_params if isinstance(raw_params, dict) else {}
        try:
            result = handler(loop, params)
        except _RpcError as exc:
            self._write_error(request_id, exc.code, exc.message)
            return
        self._write({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _initialize(self, _loop: asyncio.AbstractEventLoop, params: dict[str, Any]) -> dict[str, object]:
        requested = params.get("protocolVersion")
        return {
            "protocolVersion": requested if isinstance(requested, str) else PROTOCOL_VERSION,
            "serverInfo": {"name": self._name, "version": self._version},
            "instructions": self._instructions,
            "capabilities": {"tools": {}},
        }

    def _list_tools(self, _loop: asyncio.AbstractEventLoop, _params: dict[str, Any]) -> dict[str, object]:
        return {
            "tools": [
                {"name": tool.name, "description": tool.description, "inputSchema": tool.input_schema}
                for tool in self._tools.values()
            ]
        }

    def _call_tool(self, loop: asyncio.AbstractEventLoop, params: dict[str, Any]) -> dict[str, object]:
        name = params.get("name")
        if not isinstance(name, str):
            raise _RpcError(INVALID_PARAMS, "Invalid tool name")
        tool = self._tools.get(name)
        if tool is None:
            raise _RpcError(INVALID_PARAMS, f"Unknown tool: {name}")
        raw_arguments = params.get("arguments", {})
        arguments = raw_arguments if isinstance(raw_arguments, dict) else {}
        try:
            raw_result = tool.handler(arguments)
            if _is_awaitable(raw_result):
                tool_result = loop.run_until_complete(cast(Awaitable[ToolResult], raw_result))
            else:
                tool_result = cast(ToolResult, raw_result)
            if not isinstance(tool_result, ToolResult):
                raise TypeError("Tool handler did not return ToolResult")
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception as exc:
            logger.exception("Tool %s crashed: %s", name, exc)
            raise _RpcError(INTERNAL_ERROR, "Internal tool error") from exc
        return tool_result.to_protocol()

    def _write_error(self, request_id: object, code: int, message: str) -> None:
        self._write({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})

    @staticmethod
    def _write(payload: dict[str, object]) -> None:
        sys.stdout.write(json.dumps(payload) + "\n")
        sys.stdout.flush()


class MCPServer:
    """Adapter over FastMCP or the built-in stdio server, chosen by ``runtime``."""

    def __init__(self, name: str, version: str, instructions: str, runtime: str = "fastmcp") -> None:
        self._server: Any
        self._mode = runtime
        if runtime == "fastmcp":
            self._server = FastMCP(name=name, version=version, instructions=instructions)
        elif runtime == "simple":
            self._server = _SimpleMCPServer(name=name, version=version, instructions=instructions)
        else:
            raise ValueError(f"Unknown MCP runtime: {runtime}")

    @property
    def mode(self) -> str:
        return self._mode

    def add_tool(self, tool: ToolSpec) -> None:
        if self._mode == "fastmcp":
            self._add_fastmcp_tool(tool)
        else:
            self._server.add_tool(tool)

    def run(self) -> None:
        self._server.run()

    def _add_fastmcp_tool(self, tool: ToolSpec) -> None:
        raw_properties = tool.input_schema.get("properties", {})
        properties = raw_properties if isinstance(raw_properties, dict) else {}
        prop_names = [name for name in properties.keys() if isinstance(name, str)]

        async def _handler(**kwargs: object) -> object:
            filtered = {k: v for k, v in kwargs.items() if v is not None}
            raw_result = tool.handler(filtered)
            if _is_awaitable(raw_result):
                result = await cast(Awaitable[ToolResult], raw_result)
            else:
                result = cast(ToolResult, raw_result)
            if not isinstance(result, ToolResult):
                raise TypeError("Tool handler did not return ToolResult")
            if result.is_error:
                # FastMCP marks the response isError only when the tool raises.
                raise ToolError(result.text)
            return FastToolResult(
                content=result.content,
                structured_content=result.structured_content,
            )

        # Synthetic keyword-only signature so FastMCP discovers the named parameters.
        params = [
            inspect.Parameter(name, inspect.Parameter.KEYWORD_ONLY, default=None, annotation=object)
            for name in prop_names
        ]
        _handler.__signature__ = inspect.Signature(params)  # type: ignore[attr-defined]
        _handler.__name__ = "_handler_" + tool.name.replace("-", "_")

        fast_tool = FunctionTool.from_function(
            _handler,
            name=tool.name,
            description=tool.description,
        )
        fields = getattr(fast_tool.__class__, "model_fields", None)
        if isinstance(fields, dict):
            for field_name in ("parameters", "input_schema"):
                if field_name in fields:
                    setattr(fast_tool, field_name, tool.input_schema)
        self._server.add_tool(fast_tool)


def _is_awaitable(value: object) -> bool:
    try:
        return inspect.isawaitable(value)
    except TypeError:
        return False
