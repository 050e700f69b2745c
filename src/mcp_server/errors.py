"""Error taxonomy for the MCP endpoint.

Every error carries a JSON-RPC code. Transport errors additionally carry the
HTTP status they are reported with; everything else is reported with 200.
"""

from typing import Any, Optional

from mcp_server.protocol import ErrorCode, JSONRPCError


class MCPError(Exception):
    """Base error reported to the caller as a JSON-RPC error object."""

    code: int = ErrorCode.SERVER_ERROR
    http_status: int = 200

    def __init__(self, message: str, data: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data

    def to_error(self) -> JSONRPCError:
        return JSONRPCError(code=int(self.code), message=self.message, data=self.data)


class TransportError(MCPError):
    """Rejected before JSON-RPC processing begins."""

    http_status = 400


class MethodNotAllowedError(TransportError):
    code = ErrorCode.INVALID_REQUEST
    http_status = 405

    def __init__(self, method: str) -> None:
        super().__init__("Method not allowed. Use POST for MCP requests")
        self.method = method


class AuthenticationError(TransportError):
    code = ErrorCode.AUTHENTICATION_ERROR
    http_status = 401


class InvalidRequestError(TransportError):
    """The body is not a JSON-RPC 2.0 request envelope."""

    code = ErrorCode.INVALID_REQUEST
    http_status = 400


class MethodNotFoundError(MCPError):
    code = ErrorCode.METHOD_NOT_FOUND


class ToolNotFoundError(MethodNotFoundError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' not found")
        self.name = name


class InvalidParamsError(MCPError):
    code = ErrorCode.INVALID_PARAMS


class ToolTimeoutError(MCPError):
    """A tool did not finish within its deadline."""

    code = ErrorCode.SERVER_ERROR

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(
            f"Tool '{name}' timed out after {timeout:g}s",
            data={"tool": name, "timeout_seconds": timeout}
        )
        self.name = name
        self.timeout = timeout


class RateLimitExceededError(MCPError):
    """Reserved; no built-in policy raises it."""

    code = ErrorCode.RATE_LIMIT_EXCEEDED


class ToolExecutionError(MCPError):
    """A tool handler failed; its message is passed through to the caller."""

    code = ErrorCode.INTERNAL_ERROR
