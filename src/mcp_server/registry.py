"""Tool Registry for the MCP Server.

Maps tool names to their descriptor and bound handler. Tools are registered
once at startup and only read while requests are being served.
"""

import asyncio
import functools
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from shared.logging import get_logger
from shared.models import InvocationContext, ToolDescriptor
from shared.schema import validate_schema
from mcp_server.errors import ToolNotFoundError, ToolTimeoutError

logger = get_logger(__name__)


ToolHandler = Callable[
    [dict[str, Any], InvocationContext],
    Union[Awaitable[Any], Any]
]


@dataclass(frozen=True)
class RegisteredTool:
    descriptor: ToolDescriptor
    handler: ToolHandler


class ToolRegistry:
    """
    In-memory catalog of tools and their handlers.

    Responsibilities:
    - Register tools (last registration of a name wins)
    - Look up and enumerate tools in registration order
    - Validate arguments against a tool's input schema
    - Invoke a tool's handler
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}

    def register(self, descriptor: ToolDescriptor, handler: ToolHandler) -> None:
        """
        Register a tool, replacing any previous binding for its name.

        The replaced tool keeps its position in the listing order.
        """
        name = descriptor.name

        if name in self._tools:
            logger.warning(
                "Tool overwritten",
                tool=name,
                previous_category=self._tools[name].descriptor.category,
                category=descriptor.category
            )

        self._tools[name] = RegisteredTool(descriptor=descriptor, handler=handler)

        logger.debug("Tool registered", tool=name, category=descriptor.category)

    def get(self, name: str) -> Optional[ToolDescriptor]:
        """Get a tool descriptor by name, or None if not registered."""
        entry = self._tools.get(name)
        return entry.descriptor if entry else None

    def list_tools(self) -> list[ToolDescriptor]:
        """List all descriptors in registration order."""
        return [entry.descriptor for entry in self._tools.values()]

    def list_by_category(self, category: str) -> list[ToolDescriptor]:
        """List descriptors whose category matches exactly."""
        return [t for t in self.list_tools() if t.category == category]

    def list_categories(self) -> list[str]:
        """List categories in the order they were first registered."""
        return list(self.get_tool_count())

    def get_tool_count(self) -> dict[str, int]:
        """Get count of tools per category."""
        counts: dict[str, int] = {}
        for tool in self.list_tools():
            counts[tool.category] = counts.get(tool.category, 0) + 1
        return counts

    def validate_input(
        self,
        name: str,
        arguments: dict[str, Any]
    ) -> tuple[bool, list[str]]:
        """
        Validate arguments against a tool's input schema.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        tool = self.get(name)
        if not tool:
            return False, [f"Tool '{name}' not found"]

        return validate_schema(arguments, tool.input_schema)

    async def invoke(
        self,
        name: str,
        arguments: dict[str, Any],
        context: InvocationContext,
        timeout: Optional[float] = None
    ) -> Any:
        """
        Invoke a tool's handler once.

        Coroutine handlers are awaited; plain functions run in the default
        executor. Handler failures propagate unchanged.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``
            ToolTimeoutError: If ``timeout`` is set and exceeded
        """
        entry = self._tools.get(name)
        if entry is None:
            raise ToolNotFoundError(name)

        call = self._call(entry.handler, arguments, context)

        if not timeout:
            return await call

        # Only the registry's own deadline maps to ToolTimeoutError; a
        # TimeoutError raised by the handler propagates unchanged.
        task = asyncio.ensure_future(call)
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            task.cancel()
            raise ToolTimeoutError(name, timeout)

        return task.result()

    @staticmethod
    async def _call(
        handler: ToolHandler,
        arguments: dict[str, Any],
        context: InvocationContext
    ) -> Any:
        if inspect.iscoroutinefunction(handler):
            return await handler(arguments, context)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None, functools.partial(handler, arguments, context)
        )
        if inspect.isawaitable(result):
            return await result
        return result

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
