"""Tool Discovery for MCP Client.

Provides caching and filtering for tool discovery, and an optional result
cache for repeated tool calls.
"""

import asyncio
import json
import time
from typing import Any, Optional

from shared.logging import get_logger
from mcp_client.client import MCPClient

logger = get_logger(__name__)


class ToolDiscovery:
    """
    Cached tool discovery from the MCP Server.

    Provides:
    - Cached tool listings with a time-to-live
    - Filtering by category or name
    - Cached tool call results keyed by tool name and arguments
    """

    def __init__(
        self,
        client: MCPClient,
        cache_ttl_seconds: float = 300,
        result_cache_ttl_seconds: Optional[float] = None
    ) -> None:
        """
        Initialize tool discovery.

        Args:
            client: MCP Client instance
            cache_ttl_seconds: Tool list time-to-live in seconds
            result_cache_ttl_seconds: Tool result time-to-live; None disables
                result caching
        """
        self.client = client
        self.cache_ttl = cache_ttl_seconds
        self.result_cache_ttl = result_cache_ttl_seconds

        self._tools: list[dict[str, Any]] = []
        self._cache_time: Optional[float] = None
        self._results: dict[str, tuple[float, Any]] = {}
        self._lock = asyncio.Lock()

    def _is_cache_valid(self) -> bool:
        if self._cache_time is None:
            return False
        return time.monotonic() - self._cache_time < self.cache_ttl

    async def _refresh_cache(self) -> None:
        async with self._lock:
            if self._is_cache_valid():
                return

            logger.debug("Refreshing tool cache")
            self._tools = await self.client.list_tools()
            self._cache_time = time.monotonic()

            logger.info("Tool cache refreshed", tool_count=len(self._tools))

    def invalidate(self) -> None:
        """Drop cached tools and results."""
        self._tools = []
        self._cache_time = None
        self._results.clear()

    async def get_all_tools(self, force_refresh: bool = False) -> list[dict[str, Any]]:
        if force_refresh:
            self._cache_time = None
        if not self._is_cache_valid():
            await self._refresh_cache()
        return list(self._tools)

    async def get_tools_by_category(
        self,
        category: str,
        force_refresh: bool = False
    ) -> list[dict[str, Any]]:
        tools = await self.get_all_tools(force_refresh)
        return [t for t in tools if t.get("category") == category]

    async def get_categories(self) -> list[str]:
        """Categories in the order the server lists them."""
        categories: list[str] = []
        for tool in await self.get_all_tools():
            category = tool.get("category")
            if category and category not in categories:
                categories.append(category)
        return categories

    async def get_tool(self, name: str) -> Optional[dict[str, Any]]:
        for tool in await self.get_all_tools():
            if tool.get("name") == name:
                return tool
        return None

    def _prune_results(self, now: float) -> None:
        expired = [
            key for key, (stored_at, _) in self._results.items()
            if now - stored_at >= self.result_cache_ttl
        ]
        for key in expired:
            del self._results[key]

    @staticmethod
    def _result_key(name: str, arguments: dict[str, Any]) -> str:
        return f"{name}:{json.dumps(arguments, sort_keys=True, default=str)}"

    async def call_tool(
        self,
        name: str,
        arguments: Optional[dict[str, Any]] = None,
        use_cache: bool = True
    ) -> Any:
        """
        Call a tool, serving repeated calls from the result cache.

        Only successful results are cached.
        """
        arguments = arguments or {}
        caching = use_cache and self.result_cache_ttl is not None
        key = self._result_key(name, arguments)

        if caching:
            cached = self._results.get(key)
            if cached and time.monotonic() - cached[0] < self.result_cache_ttl:
                logger.debug("Tool result served from cache", tool=name)
                return cached[1]

        result = await self.client.call_tool(name, arguments)

        if caching:
            now = time.monotonic()
            self._prune_results(now)
            self._results[key] = (now, result)

        return result
