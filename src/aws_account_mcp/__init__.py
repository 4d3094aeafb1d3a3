"""MCP server exposing AWS account-management tools."""

__version__ = "2.0.0"
