"""Tests for tool providers."""

import json

import httpx
import pytest

from shared.config import SupabaseSettings
from shared.models import AuthResult, CredentialKind, InvocationContext


def make_context() -> InvocationContext:
    return InvocationContext(
        request_id="req-provider",
        auth=AuthResult(valid=True, kind=CredentialKind.API_KEY),
    )


class TestMoneyPrinterProvider:
    """Tests for the video and audio generation tools."""

    def setup_method(self):
        """Set up test fixtures."""
        from providers.video import MoneyPrinterToolsProvider

        self.provider = MoneyPrinterToolsProvider()
        self.context = make_context()

    def test_provider_tools(self):
        """Test that all tools are defined."""
        names = [t.name for t in self.provider.tools]

        assert names == [
            "generate_video_script",
            "generate_video_terms",
            "create_video",
            "synthesize_voice",
        ]
        assert self.provider.get_tool("create_video").category == "video_generation"
        assert self.provider.get_tool("synthesize_voice").category == "audio_generation"

    @pytest.mark.asyncio
    async def test_generate_script(self):
        result = await self.provider.generate_script(
            {"video_subject": "Ocean life", "paragraph_number": 3, "language": "French"},
            self.context
        )

        assert result["subject"] == "Ocean life"
        assert '"Ocean life"' in result["script"]
        assert "3 paragraphs in French" in result["script"]
        assert result["word_count"] == len(result["script"].split(" "))
        assert result["estimated_duration"] == result["word_count"] * 0.5

    @pytest.mark.asyncio
    async def test_generate_script_defaults(self):
        result = await self.provider.generate_script({"video_subject": "Bees"}, self.context)

        assert result["language"] == "English"
        assert "1 paragraphs" in result["script"]

    @pytest.mark.asyncio
    async def test_generate_script_requires_subject(self):
        with pytest.raises(ValueError, match="video_subject is required"):
            await self.provider.generate_script({}, self.context)

    @pytest.mark.asyncio
    async def test_generate_terms(self):
        result = await self.provider.generate_terms(
            {"video_subject": "Mountain Hiking", "video_script": "...", "amount": 3},
            self.context
        )

        assert result["terms"] == ["mountain_term_1", "mountain_term_2", "mountain_term_3"]
        assert result["amount"] == 3

    @pytest.mark.asyncio
    async def test_create_video(self):
        result = await self.provider.create_video(
            {"video_subject": "Space", "video_aspect": "16:9"},
            self.context
        )

        assert result["task_id"].startswith("video_")
        assert result["status"] == "initiated"
        assert result["aspect"] == "16:9"
        assert result["settings"]["subtitle_enabled"] is True

    @pytest.mark.asyncio
    async def test_create_video_task_ids_are_unique(self):
        first = await self.provider.create_video({"video_subject": "A"}, self.context)
        second = await self.provider.create_video({"video_subject": "A"}, self.context)

        assert first["task_id"] != second["task_id"]
        assert first["aspect"] == "9:16"

    @pytest.mark.asyncio
    async def test_synthesize_voice(self):
        result = await self.provider.synthesize_voice(
            {"text": "one two three four", "voice_name": "en-US-Jenny", "voice_rate": 2.0},
            self.context
        )

        assert result["format"] == "wav"
        assert result["voice_used"] == "en-US-Jenny"
        assert result["duration"] == 1.0
        assert result["audio_file"].endswith(".wav")


class TestSupabaseProvider:
    """Tests for the Supabase database tools."""

    def setup_method(self):
        """Set up test fixtures."""
        self.requests: list[httpx.Request] = []
        self.context = make_context()

    def _provider(self, handler=None, configured: bool = True):
        from providers.database import SupabaseToolsProvider

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if handler:
                return handler(request)
            return httpx.Response(200, json=[{"id": 1}])

        settings = SupabaseSettings(
            url="https://project.supabase.co" if configured else None,
            anon_key="anon-key" if configured else None,
        )
        return SupabaseToolsProvider(settings, transport=httpx.MockTransport(record))

    def test_provider_tools(self):
        provider = self._provider()

        assert [t.name for t in provider.tools] == [
            "supabase_query",
            "supabase_select",
            "supabase_insert",
            "supabase_update",
        ]
        assert all(t.category == "database" for t in provider.tools)

    @pytest.mark.asyncio
    async def test_select(self):
        provider = self._provider()

        result = await provider.select_data(
            {"table": "users", "columns": "id,name", "where": {"active": True}, "limit": 10},
            self.context
        )

        assert result == {"success": True, "data": [{"id": 1}]}
        request = self.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/users"
        assert request.url.params["select"] == "id,name"
        assert request.url.params["active"] == "eq.true"
        assert request.url.params["limit"] == "10"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_insert(self):
        provider = self._provider()

        await provider.insert_data({"table": "users", "data": {"name": "Ada"}}, self.context)

        request = self.requests[0]
        assert request.method == "POST"
        assert request.headers["prefer"] == "return=representation"
        assert json.loads(request.content) == {"name": "Ada"}

    @pytest.mark.asyncio
    async def test_update(self):
        provider = self._provider()

        await provider.update_data(
            {"table": "users", "data": {"name": "Grace"}, "where": {"id": 7, "deleted_at": None}},
            self.context
        )

        request = self.requests[0]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.7"
        assert request.url.params["deleted_at"] == "is.null"

    @pytest.mark.asyncio
    async def test_update_requires_where(self):
        from providers.base import ProviderError

        provider = self._provider()

        with pytest.raises(ProviderError, match="where conditions are required"):
            await provider.update_data({"table": "users", "data": {"x": 1}, "where": {}}, self.context)
        assert self.requests == []

    @pytest.mark.asyncio
    async def test_query(self):
        provider = self._provider(lambda request: httpx.Response(200, json=[{"count": 3}]))

        result = await provider.execute_query(
            {"query": "select count(*) from users where id > $1", "params": [0]},
            self.context
        )

        assert result["data"] == [{"count": 3}]
        request = self.requests[0]
        assert request.url.path == "/rest/v1/rpc/execute_sql"
        assert json.loads(request.content)["params"] == [0]

    @pytest.mark.asyncio
    async def test_invalid_table_name(self):
        from providers.base import ProviderError

        provider = self._provider()

        with pytest.raises(ProviderError, match="Invalid table name"):
            await provider.select_data({"table": "users; drop table users"}, self.context)

    @pytest.mark.asyncio
    async def test_backend_error(self):
        from providers.base import ProviderError

        provider = self._provider(
            lambda request: httpx.Response(404, json={"message": 'relation "nope" does not exist'})
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.select_data({"table": "nope"}, self.context)

        assert str(exc_info.value).startswith("Failed to select data: HTTP 404")
        assert "does not exist" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_not_configured(self):
        from providers.base import ProviderError

        provider = self._provider(configured=False)

        with pytest.raises(ProviderError, match="Supabase is not configured"):
            await provider.select_data({"table": "users"}, self.context)

    @pytest.mark.asyncio
    async def test_register_and_close(self):
        from mcp_server.registry import ToolRegistry

        provider = self._provider()
        registry = ToolRegistry()
        provider.register_tools(registry)

        result = await registry.invoke("supabase_select", {"table": "users"}, self.context)
        await provider.close()

        assert result["success"] is True
        assert registry.list_categories() == ["database"]


class TestSupabaseManagementProvider:
    """Tests for the Supabase Management API tools."""

    def setup_method(self):
        """Set up test fixtures."""
        self.requests: list[httpx.Request] = []
        self.context = make_context()

    def _provider(self, handler=None, configured: bool = True, project_ref="defaultref"):
        from providers.management import SupabaseManagementProvider

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if handler:
                return handler(request)
            return httpx.Response(200, json=[])

        settings = SupabaseSettings(
            access_token="sbp_token" if configured else None,
            project_ref=project_ref,
        )
        return SupabaseManagementProvider(settings, transport=httpx.MockTransport(record))

    def test_provider_tools(self):
        provider = self._provider()

        assert [t.name for t in provider.tools] == [
            "supabase_run_sql_query",
            "supabase_create_organization",
            "supabase_list_organizations",
            "supabase_create_project",
            "supabase_list_projects",
            "supabase_list_buckets",
            "supabase_create_function",
            "supabase_list_functions",
            "supabase_system_health",
        ]
        assert all(t.category == "database" for t in provider.tools)

    @pytest.mark.asyncio
    async def test_run_sql_query(self):
        provider = self._provider(lambda request: httpx.Response(201, json=[{"total": 2}]))

        result = await provider.run_sql_query(
            {"query": "select count(*) as total from users", "project_ref": "abc123"},
            self.context
        )

        assert result == {
            "success": True,
            "data": [{"total": 2}],
            "message": "SQL query executed successfully",
        }
        request = self.requests[0]
        assert request.method == "POST"
        assert request.url.host == "api.supabase.com"
        assert request.url.path == "/v1/projects/abc123/database/query"
        assert request.headers["authorization"] == "Bearer sbp_token"
        assert json.loads(request.content) == {"query": "select count(*) as total from users"}

    @pytest.mark.asyncio
    async def test_default_project_ref(self):
        provider = self._provider()

        await provider.list_buckets({}, self.context)
        await provider.list_functions({}, self.context)

        assert [r.url.path for r in self.requests] == [
            "/v1/projects/defaultref/storage/buckets",
            "/v1/projects/defaultref/functions",
        ]

    @pytest.mark.asyncio
    async def test_project_ref_required(self):
        from providers.base import ProviderError

        provider = self._provider(project_ref=None)

        with pytest.raises(ProviderError, match="project_ref is required"):
            await provider.list_buckets({}, self.context)
        with pytest.raises(ProviderError, match="Invalid project_ref"):
            await provider.list_functions({"project_ref": "../organizations"}, self.context)
        assert self.requests == []

    @pytest.mark.asyncio
    async def test_create_organization(self):
        provider = self._provider(
            lambda request: httpx.Response(201, json={"id": "org_1", "name": "Acme"})
        )

        result = await provider.create_organization(
            {"name": "Acme", "billing_email": "billing@acme.test"},
            self.context
        )

        assert result["data"]["organization"]["id"] == "org_1"
        assert result["message"] == "Organization created successfully"
        assert json.loads(self.requests[0].content)["billing_email"] == "billing@acme.test"

    @pytest.mark.asyncio
    async def test_create_project_defaults(self):
        provider = self._provider(lambda request: httpx.Response(201, json={"id": "proj_1"}))

        await provider.create_project({"name": "Videos", "organization_id": "org_1"}, self.context)

        body = json.loads(self.requests[0].content)
        assert self.requests[0].url.path == "/v1/projects"
        assert body == {
            "name": "Videos",
            "organization_id": "org_1",
            "plan": "free",
            "region": "us-east-1",
        }

    @pytest.mark.asyncio
    async def test_list_projects_filters_by_organization(self):
        projects = [
            {"id": "p1", "organization_id": "org_1"},
            {"id": "p2", "organization_id": "org_2"},
        ]
        provider = self._provider(lambda request: httpx.Response(200, json=projects))

        result = await provider.list_projects({"organization_id": "org_2"}, self.context)
        everything = await provider.list_projects({}, self.context)

        assert result["data"]["projects"] == [{"id": "p2", "organization_id": "org_2"}]
        assert len(everything["data"]["projects"]) == 2

    @pytest.mark.asyncio
    async def test_create_function(self):
        from providers.base import ProviderError

        provider = self._provider(lambda request: httpx.Response(201, json={"slug": "hello-world"}))

        result = await provider.create_function(
            {"slug": "hello-world", "name": "Hello", "source": "Deno.serve(() => new Response())"},
            self.context
        )

        body = json.loads(self.requests[0].content)
        assert body["entrypoint_path"] == "index.ts"
        assert body["body"].startswith("Deno.serve")
        assert result["message"] == "Edge Function created successfully"

        with pytest.raises(ProviderError, match="Invalid function slug"):
            await provider.create_function(
                {"slug": "a/b", "name": "x", "source": "x"},
                self.context
            )

    @pytest.mark.asyncio
    async def test_system_health(self):
        services = [
            {"name": "db", "healthy": True, "status": "ACTIVE_HEALTHY"},
            {"name": "auth", "healthy": False, "status": "UNHEALTHY"},
        ]
        provider = self._provider(lambda request: httpx.Response(200, json=services))

        result = await provider.system_health({}, self.context)

        assert result["data"]["status"] == "degraded"
        assert result["data"]["services"] == {"db": "ACTIVE_HEALTHY", "auth": "UNHEALTHY"}
        assert self.requests[0].url.params.get_list("services") == [
            "auth", "db", "rest", "storage", "functions"
        ]

    @pytest.mark.asyncio
    async def test_backend_error(self):
        from providers.base import ProviderError

        provider = self._provider(
            lambda request: httpx.Response(403, json={"message": "Forbidden resource"})
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.list_organizations({}, self.context)

        assert str(exc_info.value) == "Failed to list organizations: HTTP 403: Forbidden resource"

    @pytest.mark.asyncio
    async def test_not_configured(self):
        from providers.base import ProviderError

        provider = self._provider(configured=False)

        with pytest.raises(ProviderError, match="Supabase Management is not configured"):
            await provider.list_projects({}, self.context)
