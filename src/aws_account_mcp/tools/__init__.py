"""Tool registration helpers.

Each tool is a router: the payload's type/operation fields select a handler
in one of the modules below, and every handler shares the dispatcher in
``_dispatch`` for credentials, validation, caching and error shaping.
"""

from __future__ import annotations

from aws_account_mcp.logging_utils import get_logger
from aws_account_mcp.mcp_runtime import MCPServer, ToolSpec
from aws_account_mcp.tools.account import account_info_tool, get_costs_tool
from aws_account_mcp.tools.containers import container_operations_tool
from aws_account_mcp.tools.data import manage_secrets_tool, query_database_tool
from aws_account_mcp.tools.profiles import manage_profiles_tool
from aws_account_mcp.tools.resources import (
    describe_resource_tool,
    execute_action_tool,
    list_resources_tool,
    search_resources_tool,
)
from aws_account_mcp.tools.telemetry import get_metrics_tool, logs_operations_tool

__all__ = ["get_tool_registry", "get_tool_specs", "register_tools"]


def get_tool_specs() -> list[ToolSpec]:
    return [
        manage_profiles_tool,
        list_resources_tool,
        describe_resource_tool,
        execute_action_tool,
        query_database_tool,
        logs_operations_tool,
        get_metrics_tool,
        search_resources_tool,
        get_costs_tool,
        account_info_tool,
        manage_secrets_tool,
        container_operations_tool,
    ]


def get_tool_registry() -> dict[str, ToolSpec]:
    return {tool.name: tool for tool in get_tool_specs()}


def register_tools(server: MCPServer) -> None:
    """Register every AWS tool with the MCP server."""
    logger = get_logger(__name__)
    specs = get_tool_specs()
    logger.info("Registering %d AWS tools", len(specs))

    for tool in specs:
        server.add_tool(tool)

    logger.info("Registered tools: %s", ", ".join(tool.name for tool in specs))
