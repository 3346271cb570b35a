"""Command-line MCP chat client backed by Claude."""

from mcp_client.client import InvalidServerScriptError, MCPClient, get_command

__all__ = ["InvalidServerScriptError", "MCPClient", "get_command"]
