"""MCP Client - JSON-RPC access to the Unified MCP Server.

Lists tools, calls them and caches discovery results. Retries only
connection failures; JSON-RPC errors are raised as MCPRPCError.
"""

from mcp_client.client import (
    MCPAuthError,
    MCPClient,
    MCPClientError,
    MCPConnectionError,
    MCPRPCError,
)
from mcp_client.discovery import ToolDiscovery

__all__ = [
    "MCPAuthError",
    "MCPClient",
    "MCPClientError",
    "MCPConnectionError",
    "MCPRPCError",
    "ToolDiscovery",
]
