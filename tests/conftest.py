"""Shared fixtures for the MCP Server tests."""

import pytest
from fastapi.testclient import TestClient

from shared.config import AuthSettings, MCPServerSettings, Settings, SupabaseSettings
from shared.models import AuthResult, CredentialKind, InvocationContext

MASTER_KEY = "test-master-key-0123456789"
JWT_SECRET = "test-jwt-signing-secret"
ENDPOINT = "/api/server"


def make_settings(**server_overrides) -> Settings:
    return Settings(
        environment="test",
        log_level="WARNING",
        auth=AuthSettings(
            master_api_key=MASTER_KEY,
            jwt_secret=JWT_SECRET,
            min_api_key_length=16,
        ),
        mcp_server=MCPServerSettings(**server_overrides),
        supabase=SupabaseSettings(url=None, anon_key=None, access_token=None, project_ref=None),
    )


def rpc(method: str, params=None, request_id="1") -> dict:
    envelope = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        envelope["params"] = params
    return envelope


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings):
    from mcp_server.main import create_app

    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {MASTER_KEY}"}


@pytest.fixture
def context() -> InvocationContext:
    return InvocationContext(
        request_id="req-001",
        auth=AuthResult(valid=True, kind=CredentialKind.API_KEY, subject="api_key"),
    )
