"""Supabase management tools.

Talks to the Supabase Management API (``/v1``) with a personal access
token: SQL against a project, organizations, projects, storage buckets,
Edge Functions and service health.
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

API_PREFIX = "/v1"
REF_RE = re.compile(r"^[A-Za-z0-9_-]+$")
PROJECT_PLANS = ["free", "pro", "team", "enterprise"]
HEALTH_SERVICES = ["auth", "db", "rest", "storage", "functions"]

PROJECT_REF_PROPERTY = {"type": "string", "description": "Supabase project reference ID"}


class SupabaseManagementProvider(RESTProvider):
    """
    Supabase Management API provider.

    Every project-scoped tool accepts ``project_ref`` and falls back to the
    configured default project.
    """

    name = "Supabase Management"

    def __init__(
        self,
        settings: SupabaseSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        self.default_project_ref = settings.project_ref

        super().__init__(
            base_url=settings.management_url if settings.management_configured else None,
            timeout=settings.timeout_seconds,
            headers={"Authorization": f"Bearer {settings.access_token}"} if settings.access_token else {},
            transport=transport,
        )

    def _define_tools(self) -> None:
        category = ToolCategory.DATABASE.value

        self._add_tool(ToolDescriptor(
            name="supabase_run_sql_query",
            description="Execute SQL queries against your Supabase database",
            input_schema=object_schema(
                {
                    "query": {"type": "string", "description": "SQL query to execute"},
                    "project_ref": PROJECT_REF_PROPERTY,
                },
                required=["query"],
            ),
            category=category,
        ), self.run_sql_query)

        self._add_tool(ToolDescriptor(
            name="supabase_create_organization",
            description="Create a new Supabase organization",
            input_schema=object_schema(
                {
                    "name": {"type": "string", "description": "Organization name"},
                    "billing_email": {
                        "type": "string",
                        "format": "email",
                        "description": "Billing email address",
                    },
                },
                required=["name", "billing_email"],
            ),
            category=category,
        ), self.create_organization)

        self._add_tool(ToolDescriptor(
            name="supabase_list_organizations",
            description="List all organizations you have access to",
            category=category,
        ), self.list_organizations)

        self._add_tool(ToolDescriptor(
            name="supabase_create_project",
            description="Create a new Supabase project",
            input_schema=object_schema(
                {
                    "name": {"type": "string", "description": "Project name"},
                    "organization_id": {"type": "string", "description": "Organization ID"},
                    "plan": {
                        "type": "string",
                        "enum": PROJECT_PLANS,
                        "default": "free",
                        "description": "Subscription plan",
                    },
                    "region": {"type": "string", "default": "us-east-1", "description": "AWS region"},
                    "db_pass": {"type": "string", "description": "Database password"},
                },
                required=["name", "organization_id"],
            ),
            category=category,
        ), self.create_project)

        self._add_tool(ToolDescriptor(
            name="supabase_list_projects",
            description="List all projects you have access to",
            input_schema=object_schema(
                {"organization_id": {"type": "string", "description": "Filter by organization ID"}},
            ),
            category=category,
        ), self.list_projects)

        self._add_tool(ToolDescriptor(
            name="supabase_list_buckets",
            description="List all storage buckets in a project",
            input_schema=object_schema({"project_ref": PROJECT_REF_PROPERTY}),
            category=category,
        ), self.list_buckets)

        self._add_tool(ToolDescriptor(
            name="supabase_create_function",
            description="Create a new Edge Function",
            input_schema=object_schema(
                {
                    "project_ref": PROJECT_REF_PROPERTY,
                    "slug": {"type": "string", "description": "Function slug/identifier"},
                    "name": {"type": "string", "description": "Function display name"},
                    "source": {"type": "string", "description": "Function source code"},
                    "entrypoint": {
                        "type": "string",
                        "default": "index.ts",
                        "description": "Function entrypoint file",
                    },
                },
                required=["slug", "name", "source"],
            ),
            category=category,
        ), self.create_function)

        self._add_tool(ToolDescriptor(
            name="supabase_list_functions",
            description="List all Edge Functions in a project",
            input_schema=object_schema({"project_ref": PROJECT_REF_PROPERTY}),
            category=category,
        ), self.list_functions)

        self._add_tool(ToolDescriptor(
            name="supabase_system_health",
            description="Check Supabase system health and metrics",
            input_schema=object_schema({"project_ref": PROJECT_REF_PROPERTY}),
            category=category,
        ), self.system_health)

    def _project_path(self, params: dict[str, Any], *parts: str) -> str:
        ref = params.get("project_ref") or self.default_project_ref
        if not ref:
            raise ProviderError("project_ref is required")
        if not REF_RE.match(str(ref)):
            raise ProviderError(f"Invalid project_ref: {ref!r}")
        return "/".join([API_PREFIX, "projects", str(ref), *parts])

    async def _call(self, action: str, method: str, path: str, **kwargs: Any) -> Any:
        try:
            return await self._request(method, path, **kwargs)
        except (ProviderError, httpx.HTTPError) as e:
            raise ProviderError(f"Failed to {action}: {e}") from e

    @staticmethod
    def _success(data: Any, message: Optional[str] = None) -> dict[str, Any]:
        result = {"success": True, "data": data}
        if message:
            result["message"] = message
        return result

    async def run_sql_query(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        if not params.get("query"):
            raise ValueError("query is required")

        path = self._project_path(params, "database", "query")
        rows = await self._call("execute SQL query", "POST", path, json={"query": params["query"]})

        return self._success(rows, "SQL query executed successfully")

    async def create_organization(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        organization = await self._call(
            "create organization",
            "POST",
            f"{API_PREFIX}/organizations",
            json={"name": params.get("name"), "billing_email": params.get("billing_email")},
        )
        logger.info("Organization created", name=params.get("name"), request_id=context.request_id)

        return self._success({"organization": organization}, "Organization created successfully")

    async def list_organizations(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        organizations = await self._call("list organizations", "GET", f"{API_PREFIX}/organizations")
        return self._success({"organizations": organizations or []})

    async def create_project(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        body = {
            "name": params.get("name"),
            "organization_id": params.get("organization_id"),
            "plan": params.get("plan") or "free",
            "region": params.get("region") or "us-east-1",
        }
        if params.get("db_pass"):
            body["db_pass"] = params["db_pass"]

        project = await self._call("create project", "POST", f"{API_PREFIX}/projects", json=body)
        logger.info("Project created", name=body["name"], request_id=context.request_id)

        return self._success({"project": project}, "Project created successfully")

    async def list_projects(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        projects = await self._call("list projects", "GET", f"{API_PREFIX}/projects") or []

        organization_id = params.get("organization_id")
        if organization_id:
            projects = [p for p in projects if p.get("organization_id") == organization_id]

        return self._success({"projects": projects})

    async def list_buckets(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        path = self._project_path(params, "storage", "buckets")
        buckets = await self._call("list buckets", "GET", path)
        return self._success({"buckets": buckets or []})

    async def create_function(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        slug = params.get("slug")
        if not slug or not REF_RE.match(str(slug)):
            raise ProviderError(f"Invalid function slug: {slug!r}")

        path = self._project_path(params, "functions")
        function = await self._call(
            "create function",
            "POST",
            path,
            json={
                "slug": slug,
                "name": params.get("name"),
                "body": params.get("source"),
                "entrypoint_path": params.get("entrypoint") or "index.ts",
            },
        )

        return self._success({"function": function}, "Edge Function created successfully")

    async def list_functions(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        path = self._project_path(params, "functions")
        functions = await self._call("list functions", "GET", path)
        return self._success({"functions": functions or []})

    async def system_health(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        path = self._project_path(params, "health")
        services = await self._call(
            "get system health", "GET", path, params={"services": HEALTH_SERVICES}
        ) or []

        healthy = all(s.get("healthy", False) for s in services)
        return self._success({
            "status": "healthy" if healthy else "degraded",
            "services": {s.get("name"): s.get("status") for s in services},
        })
