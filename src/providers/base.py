"""Base classes for tool providers.

A provider owns a group of related tools and any state they need, such as
an HTTP client. Providers:
- Register descriptor/handler pairs with the registry at startup
- Keep no per-request state
- Raise ProviderError for downstream failures
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from shared.logging import get_logger
from shared.models import ToolDescriptor
from mcp_server.registry import ToolHandler, ToolRegistry

logger = get_logger(__name__)


class ProviderError(Exception):
    """A tool failed because of its provider or a downstream service."""


class ToolProvider(ABC):
    """
    Base class for tool providers.

    Subclasses declare their tools in :meth:`_define_tools` using
    :meth:`_add_tool`.
    """

    name: str = "provider"

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._handlers: dict[str, ToolHandler] = {}
        self._define_tools()

    @abstractmethod
    def _define_tools(self) -> None:
        """Declare all tools of this provider."""

    def _add_tool(self, descriptor: ToolDescriptor, handler: ToolHandler) -> None:
        self._tools[descriptor.name] = descriptor
        self._handlers[descriptor.name] = handler

    @property
    def tools(self) -> list[ToolDescriptor]:
        """Return all tool descriptors of this provider."""
        return list(self._tools.values())

    def get_tool(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def register_tools(self, registry: ToolRegistry) -> None:
        """Bind every tool of this provider in the registry."""
        for name, descriptor in self._tools.items():
            registry.register(descriptor, self._handlers[name])

        logger.info("Provider registered", provider=self.name, tool_count=len(self._tools))

    async def close(self) -> None:
        """Release provider resources."""


class RESTProvider(ToolProvider):
    """
    Base provider for REST backends.

    Provides a lazily created ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: Optional[str],
        timeout: float = 30.0,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        super().__init__()

    def _not_configured(self) -> ProviderError:
        return ProviderError(f"{self.name} is not configured")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if not self.base_url:
            raise self._not_configured()

        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any
    ) -> Any:
        """
        Make an HTTP request to the backend and decode its JSON body.

        Raises:
            ProviderError: On an error status from the backend
            httpx.HTTPError: On transport failures
        """
        client = await self._get_client()
        response = await client.request(method, path, **kwargs)

        if response.is_error:
            raise ProviderError(f"HTTP {response.status_code}: {self._error_detail(response)}")

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase

        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
