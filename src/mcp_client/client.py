"""MCP Client for the Unified MCP Server.

Speaks JSON-RPC 2.0 over HTTP POST. A JSON-RPC ``error`` in the response
body is authoritative whatever the HTTP status; only connection failures
are retried.
"""

import uuid
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from shared.logging import get_logger

logger = get_logger(__name__)


class MCPClientError(Exception):
    """Base exception for MCP Client errors."""
    pass


class MCPConnectionError(MCPClientError):
    """Connection to MCP Server failed."""
    pass


class MCPRPCError(MCPClientError):
    """The server answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data


class MCPAuthError(MCPRPCError):
    """Authentication failed."""
    pass


class MCPClient:
    """
    Client for the MCP JSON-RPC endpoint.

    Provides methods for:
    - Initializing a session
    - Listing tools and server capabilities
    - Calling tools

    The client is stateless apart from its HTTP connection pool.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:3000/api/server",
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize MCP Client.

        Args:
            server_url: Full URL of the MCP endpoint
            auth_token: API key or JWT sent as a Bearer token
            timeout: Request timeout in seconds
            transport: Custom httpx transport (e.g. for in-process testing)
        """
        self.server_url = server_url
        self.timeout = timeout
        self._auth_token = auth_token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def auth_token(self) -> Optional[str]:
        return self._auth_token

    @auth_token.setter
    def auth_token(self, token: Optional[str]) -> None:
        self._auth_token = token
        if self._client is not None:
            self._client.headers.update(self._get_headers())

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._get_headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "MCPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @retry(
        retry=retry_if_exception_type(MCPConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True
    )
    async def request(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> Any:
        """
        Send a JSON-RPC request and return its result.

        Raises:
            MCPConnectionError: If the server is unreachable
            MCPAuthError: If the server rejects the credential
            MCPRPCError: If the response carries a JSON-RPC error
            MCPClientError: If the response is not a JSON-RPC response
        """
        request_id = request_id or str(uuid.uuid4())
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params or {},
        }

        logger.debug("Sending MCP request", method=method, request_id=request_id)

        try:
            client = await self._get_client()
            response = await client.post(self.server_url, json=payload)
        except httpx.TransportError as e:
            raise MCPConnectionError(f"Cannot connect to MCP Server: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        error = body.get("error") if isinstance(body, dict) else None

        if error:
            code = error.get("code", 0)
            message = error.get("message", "Unknown error")
            if response.status_code == 401:
                raise MCPAuthError(code, message, error.get("data"))
            raise MCPRPCError(code, message, error.get("data"))

        if response.is_error or not isinstance(body, dict):
            raise MCPClientError(f"Unexpected response from MCP Server (HTTP {response.status_code})")

        if body.get("id") != request_id:
            logger.warning(
                "Response id mismatch",
                expected=request_id,
                received=body.get("id")
            )

        return body.get("result")

    async def initialize(self) -> dict[str, Any]:
        """Exchange protocol version and server identity."""
        return await self.request("initialize")

    async def list_tools(self) -> list[dict[str, Any]]:
        """List tool descriptors in the server's registration order."""
        result = await self.request("tools/list")
        return result.get("tools", []) if result else []

    async def get_capabilities(self) -> dict[str, Any]:
        """Get capabilities and per-category tool counts."""
        return await self.request("server/capabilities")

    async def call_tool(
        self,
        name: str,
        arguments: Optional[dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> Any:
        """
        Call a tool and return its result.

        Raises:
            MCPRPCError: With code -32601 for unknown tools, -32602 for
                invalid arguments and -32603 for tool failures
        """
        return await self.request(
            "tools/call",
            {"name": name, "arguments": arguments or {}},
            request_id=request_id,
        )
