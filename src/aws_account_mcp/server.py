"""Entrypoint for the AWS account-management MCP server."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from aws_account_mcp import __version__
from aws_account_mcp.config import load_settings
from aws_account_mcp.logging_utils import configure_logging
from aws_account_mcp.mcp_runtime import MCPServer
from aws_account_mcp.tools import register_tools


def build_server() -> MCPServer:
    """Create and configure the MCP server instance."""

    settings = load_settings()

    server = MCPServer(
        name=settings.server.name,
        version=__version__,
        instructions=settings.server.instructions,
        runtime=settings.server.runtime,
    )

    # FastMCP installs its own handlers on init; ours must come after.
    configure_logging()

    logging.info("Initializing AWS account MCP server v%s (%s runtime)", __version__, server.mode)
    if settings.logging.file:
        logging.info("Log file configured at: %s", settings.logging.file)
    register_tools(server)
    return server


_server: MCPServer | None = None
_server_lock = threading.Lock()


def get_server() -> MCPServer:
    """Lazily initialise and return the module-level server instance."""
    global _server
    if _server is not None:
        return _server
    with _server_lock:
        if _server is None:
            _server = build_server()
        return _server


def run_entrypoint() -> None:
    """Serve MCP over stdio until stdin closes."""
    get_server().run()


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
