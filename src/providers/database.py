"""Database tools backed by Supabase.

Talks to the Supabase PostgREST API. Free-form SQL goes through an
``execute_sql`` database function exposed under ``/rest/v1/rpc``.
"""

import re
from typing import Any, Optional

import httpx

from shared.config import SupabaseSettings
from shared.logging import get_logger
from shared.models import InvocationContext, ToolCategory, ToolDescriptor
from shared.schema import object_schema
from providers.base import ProviderError, RESTProvider

logger = get_logger(__name__)

REST_PREFIX = "/rest/v1"
IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class SupabaseToolsProvider(RESTProvider):
    """
    Supabase database provider.

    Provides tools for:
    - Free-form SQL through ``execute_sql``
    - Selecting, inserting and updating table rows
    """

    name = "Supabase"

    def __init__(
        self,
        settings: SupabaseSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        headers = {}
        if settings.anon_key:
            headers = {
                "apikey": settings.anon_key,
                "Authorization": f"Bearer {settings.anon_key}",
            }

        super().__init__(
            base_url=settings.url if settings.configured else None,
            timeout=settings.timeout_seconds,
            headers=headers,
            transport=transport,
        )

    def _define_tools(self) -> None:
        category = ToolCategory.DATABASE.value

        self._add_tool(ToolDescriptor(
            name="supabase_query",
            description="Execute a SQL query on Supabase database",
            input_schema=object_schema(
                {
                    "query": {"type": "string", "description": "SQL query to execute"},
                    "params": {"type": "array", "description": "Query parameters"},
                },
                required=["query"],
            ),
            category=category,
        ), self.execute_query)

        self._add_tool(ToolDescriptor(
            name="supabase_select",
            description="Select data from a Supabase table",
            input_schema=object_schema(
                {
                    "table": {"type": "string", "description": "Table name"},
                    "columns": {"type": "string", "description": "Columns to select", "default": "*"},
                    "where": {"type": "object", "description": "Where conditions"},
                    "limit": {"type": "number", "description": "Limit results"},
                },
                required=["table"],
            ),
            category=category,
        ), self.select_data)

        self._add_tool(ToolDescriptor(
            name="supabase_insert",
            description="Insert data into a Supabase table",
            input_schema=object_schema(
                {
                    "table": {"type": "string", "description": "Table name"},
                    "data": {"type": "object", "description": "Data to insert"},
                },
                required=["table", "data"],
            ),
            category=category,
        ), self.insert_data)

        self._add_tool(ToolDescriptor(
            name="supabase_update",
            description="Update data in a Supabase table",
            input_schema=object_schema(
                {
                    "table": {"type": "string", "description": "Table name"},
                    "data": {"type": "object", "description": "Data to update"},
                    "where": {"type": "object", "description": "Where conditions"},
                },
                required=["table", "data", "where"],
            ),
            category=category,
        ), self.update_data)

    @staticmethod
    def _table_path(table: Any) -> str:
        if not isinstance(table, str) or not IDENTIFIER_RE.match(table):
            raise ProviderError(f"Invalid table name: {table!r}")
        return f"{REST_PREFIX}/{table}"

    @staticmethod
    def _where_params(where: Optional[dict[str, Any]]) -> dict[str, str]:
        params: dict[str, str] = {}
        for column, value in (where or {}).items():
            if not IDENTIFIER_RE.match(str(column)):
                raise ProviderError(f"Invalid column name: {column!r}")
            params[str(column)] = _filter_value(value)
        return params

    async def execute_query(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        query = params.get("query")
        if not query:
            raise ValueError("query is required")

        try:
            data = await self._request(
                "POST",
                f"{REST_PREFIX}/rpc/execute_sql",
                json={"query": query, "params": params.get("params") or []},
            )
        except (ProviderError, httpx.HTTPError) as e:
            raise ProviderError(f"Failed to execute query: {e}") from e

        return {"success": True, "data": data}

    async def select_data(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        try:
            path = self._table_path(params.get("table"))
            query = {"select": params.get("columns") or "*"}
            query.update(self._where_params(params.get("where")))
            if params.get("limit"):
                query["limit"] = str(int(params["limit"]))

            data = await self._request("GET", path, params=query)
        except (ProviderError, httpx.HTTPError) as e:
            raise ProviderError(f"Failed to select data: {e}") from e

        return {"success": True, "data": data}

    async def insert_data(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        try:
            path = self._table_path(params.get("table"))
            if params.get("data") is None:
                raise ProviderError("data is required")

            data = await self._request(
                "POST",
                path,
                json=params["data"],
                headers={"Prefer": "return=representation"},
            )
        except (ProviderError, httpx.HTTPError) as e:
            raise ProviderError(f"Failed to insert data: {e}") from e

        return {"success": True, "data": data}

    async def update_data(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        try:
            path = self._table_path(params.get("table"))
            if params.get("data") is None:
                raise ProviderError("data is required")
            # An empty filter would update every row
            if not params.get("where"):
                raise ProviderError("where conditions are required")

            data = await self._request(
                "PATCH",
                path,
                params=self._where_params(params["where"]),
                json=params["data"],
                headers={"Prefer": "return=representation"},
            )
        except (ProviderError, httpx.HTTPError) as e:
            raise ProviderError(f"Failed to update data: {e}") from e

        return {"success": True, "data": data}
