"""MCP Server - JSON-RPC tool dispatch over HTTP.

Authenticates callers, lists the registered tools and invokes them on
request.
"""

from mcp_server.registry import ToolRegistry
from mcp_server.auth import AuthGate, ConfiguredCredentialValidator, CredentialValidator
from mcp_server.audit import AuditLogger
from mcp_server.dispatcher import Dispatcher, ServerInfo
from mcp_server.protocol import ErrorCode, JSONRPCRequest, JSONRPCResponse

__all__ = [
    "ToolRegistry",
    "AuthGate",
    "ConfiguredCredentialValidator",
    "CredentialValidator",
    "AuditLogger",
    "Dispatcher",
    "ServerInfo",
    "ErrorCode",
    "JSONRPCRequest",
    "JSONRPCResponse",
]
