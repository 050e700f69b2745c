"""Request Dispatcher for the MCP Server.

Parses a JSON-RPC envelope, routes it by method and packages the outcome
into a JSON-RPC response. Once an envelope is accepted every failure is
returned as a JSON-RPC error object, never raised to the transport.
"""

import time
from typing import Any, Awaitable, Callable, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from shared.logging import get_logger
from shared.models import InvocationContext, InvocationStatus
from mcp_server.audit import AuditLogger
from mcp_server.errors import (
    InvalidParamsError,
    InvalidRequestError,
    MCPError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from mcp_server.protocol import (
    ErrorCode,
    JSONRPCRequest,
    JSONRPCResponse,
)
from mcp_server.registry import ToolRegistry

logger = get_logger(__name__)


MethodHandler = Callable[[Any, InvocationContext], Awaitable[Any]]


class ServerInfo:
    """Identity reported by ``initialize`` and ``server/capabilities``."""

    def __init__(
        self,
        name: str = "unified-mcp-server",
        version: str = "1.0.0",
        description: str = "",
        protocol_version: str = "2024-11-05"
    ) -> None:
        self.name = name
        self.version = version
        self.description = description
        self.protocol_version = protocol_version


class Dispatcher:
    """
    Routes JSON-RPC requests to the supported MCP operations.

    Supported methods: ``initialize``, ``tools/list``, ``tools/call`` and
    ``server/capabilities``.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        server_info: Optional[ServerInfo] = None,
        audit_logger: Optional[AuditLogger] = None,
        tool_timeout: Optional[float] = None,
        validate_arguments: bool = True
    ) -> None:
        self.registry = registry
        self.server_info = server_info or ServerInfo()
        self.audit_logger = audit_logger or AuditLogger(enabled=False)
        self.tool_timeout = tool_timeout or None
        self.validate_arguments = validate_arguments

        self._methods: dict[str, MethodHandler] = {
            "initialize": self._handle_initialize,
            "tools/list": self._handle_list_tools,
            "tools/call": self._handle_call_tool,
            "server/capabilities": self._handle_capabilities,
        }

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    def parse_envelope(self, payload: Any) -> JSONRPCRequest:
        """
        Validate a decoded request body as a JSON-RPC 2.0 envelope.

        Raises:
            InvalidRequestError: If the body is not a JSON-RPC 2.0 request
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Invalid JSON-RPC request")

        try:
            return JSONRPCRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidRequestError(
                "Invalid JSON-RPC request",
                data={"errors": [err["msg"] for err in e.errors()]}
            ) from None

    async def dispatch(self, payload: Any, context: InvocationContext) -> JSONRPCResponse:
        """
        Process a decoded request body.

        Raises:
            InvalidRequestError: If the body is not a JSON-RPC 2.0 request;
                every later failure is returned inside the response
        """
        request = self.parse_envelope(payload)
        return await self.handle(request, context)

    async def handle(self, request: JSONRPCRequest, context: InvocationContext) -> JSONRPCResponse:
        handler = self._methods.get(request.method)
        if handler is None:
            logger.info("Unknown method", method=request.method, request_id=context.request_id)
            return JSONRPCResponse.failure(
                request.id,
                ErrorCode.METHOD_NOT_FOUND,
                f"Method not found: {request.method}"
            )

        try:
            result = await handler(request.params, context)
        except MCPError as e:
            return JSONRPCResponse(id=request.id, error=e.to_error())
        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                request_id=context.request_id,
                error=str(e),
                exc_info=True
            )
            return JSONRPCResponse.failure(
                request.id,
                ErrorCode.INTERNAL_ERROR,
                str(e) or type(e).__name__
            )

        try:
            result = jsonable_encoder(result)
        except (TypeError, ValueError) as e:
            logger.error(
                "Result is not JSON serializable",
                method=request.method,
                request_id=context.request_id,
                result_type=type(result).__name__,
                error=str(e)
            )
            return JSONRPCResponse.failure(
                request.id,
                ErrorCode.INTERNAL_ERROR,
                "Result is not JSON serializable"
            )

        return JSONRPCResponse.success(request.id, result)

    async def _handle_initialize(self, params: Any, context: InvocationContext) -> dict[str, Any]:
        info = self.server_info
        return {
            "protocolVersion": info.protocol_version,
            "capabilities": {
                "tools": {},
                "resources": {},
                "prompts": {},
            },
            "serverInfo": {
                "name": info.name,
                "version": info.version,
                "description": info.description,
            },
        }

    async def _handle_list_tools(self, params: Any, context: InvocationContext) -> dict[str, Any]:
        return {"tools": [tool.to_wire() for tool in self.registry.list_tools()]}

    async def _handle_capabilities(self, params: Any, context: InvocationContext) -> dict[str, Any]:
        counts = self.registry.get_tool_count()
        return {
            "capabilities": ["tools", "resources"],
            "tools": {
                "total": sum(counts.values()),
                "categories": [
                    {"name": category, "count": count}
                    for category, count in counts.items()
                ],
            },
            "version": self.server_info.version,
        }

    async def _handle_call_tool(self, params: Any, context: InvocationContext) -> Any:
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise InvalidParamsError("params must be an object")

        name = params.get("name")
        if not name or not isinstance(name, str):
            raise InvalidParamsError("Tool name is required")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("arguments must be an object")

        tool = self.registry.get(name)
        start_time = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - start_time) * 1000

        async def audit(status: InvocationStatus, error: Optional[str] = None) -> None:
            entry = self.audit_logger.create_entry(
                name, arguments, context, status,
                tool=tool, error=error, execution_time_ms=elapsed_ms()
            )
            await self.audit_logger.log(entry)

        if tool is None:
            error = ToolNotFoundError(name)
            await audit(InvocationStatus.NOT_FOUND, error.message)
            raise error

        if self.validate_arguments:
            is_valid, errors = self.registry.validate_input(name, arguments)
            if not is_valid:
                await audit(InvocationStatus.INVALID_PARAMS, "; ".join(errors))
                raise InvalidParamsError(
                    f"Invalid arguments for tool '{name}'",
                    data={"errors": errors}
                )

        try:
            result = await self.registry.invoke(
                name, arguments, context, timeout=self.tool_timeout
            )
        except ToolTimeoutError as e:
            logger.warning("Tool timed out", tool=name, timeout=self.tool_timeout)
            await audit(InvocationStatus.TIMEOUT, e.message)
            raise
        except Exception as e:
            logger.error(
                "Tool execution failed",
                tool=name,
                request_id=context.request_id,
                error=str(e),
                exc_info=True
            )
            await audit(InvocationStatus.ERROR, str(e))
            raise ToolExecutionError(str(e) or type(e).__name__) from e

        await audit(InvocationStatus.SUCCESS)
        return result
