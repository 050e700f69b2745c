"""Unified MCP Server - FastAPI application.

``create_app`` is the composition root: it builds the registry, loads the
tool providers and wires Registry → Dispatcher → Transport. Nothing is kept
in module-level state.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response

from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging
from mcp_server.audit import AuditLogger
from mcp_server.auth import AuthConfig, AuthGate
from mcp_server.dispatcher import Dispatcher, ServerInfo
from mcp_server.registry import ToolRegistry
from mcp_server.transport import TransportAdapter, json_response
from providers import load_all_providers
from providers.base import ToolProvider

logger = get_logger(__name__)

ENDPOINT_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def build_auth_gate(settings: Settings) -> AuthGate:
    auth = settings.auth
    return AuthGate.from_config(AuthConfig(
        master_api_key=auth.master_api_key,
        jwt_secret=auth.jwt_secret,
        jwt_algorithm=auth.jwt_algorithm,
        min_api_key_length=auth.min_api_key_length,
        api_key_header=auth.api_key_header,
        token_expire_minutes=auth.token_expire_minutes,
    ))


def build_dispatcher(
    settings: Settings,
    registry: ToolRegistry,
    audit_logger: AuditLogger
) -> Dispatcher:
    server = settings.mcp_server
    return Dispatcher(
        registry=registry,
        server_info=ServerInfo(
            name=server.server_name,
            version=server.server_version,
            description=server.server_description,
            protocol_version=server.protocol_version,
        ),
        audit_logger=audit_logger,
        tool_timeout=server.tool_timeout_seconds,
        validate_arguments=server.validate_arguments,
    )


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ToolRegistry] = None,
    auth_gate: Optional[AuthGate] = None
) -> FastAPI:
    """
    Build the ASGI application.

    Args:
        settings: Application settings (defaults to ``get_settings()``)
        registry: Pre-populated registry; when omitted a new one is created
            and every provider is loaded into it
        auth_gate: Custom authentication gate, e.g. with another
            credential policy
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, json_output=settings.environment == "production")

    providers: list[ToolProvider] = []
    if registry is None:
        registry = ToolRegistry()
        providers = load_all_providers(registry, settings)

    audit_logger = AuditLogger(
        log_path=settings.mcp_server.audit_log_path,
        enabled=settings.mcp_server.enable_audit,
    )
    dispatcher = build_dispatcher(settings, registry, audit_logger)
    transport = TransportAdapter(dispatcher, auth_gate or build_auth_gate(settings))

    if not settings.auth.master_api_key and not settings.auth.jwt_secret:
        logger.warning("No credentials configured; every request will be rejected")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "MCP Server started",
            endpoint=settings.mcp_server.endpoint_path,
            methods=dispatcher.methods,
            categories=registry.list_categories(),
            tool_count=len(registry)
        )

        yield

        logger.info("Shutting down MCP Server")
        await audit_logger.flush()
        for provider in providers:
            await provider.close()

    app = FastAPI(
        title="Unified MCP Server",
        description="JSON-RPC 2.0 Model Context Protocol endpoint",
        version=settings.mcp_server.server_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.transport = transport

    @app.get("/health", tags=["System"])
    async def health_check() -> Response:
        """Liveness check; does not require authentication."""
        return json_response({
            "status": "healthy",
            "version": settings.mcp_server.server_version,
            "categories": registry.get_tool_count(),
            "tool_count": len(registry),
        })

    @app.api_route(settings.mcp_server.endpoint_path, methods=ENDPOINT_METHODS, tags=["MCP"])
    async def mcp_endpoint(request: Request) -> Response:
        """MCP JSON-RPC endpoint."""
        return await transport.handle(request)

    return app


def main() -> None:
    """Run the MCP Server."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "mcp_server.main:create_app",
        factory=True,
        host=settings.mcp_server.host,
        port=settings.mcp_server.port,
        reload=settings.environment == "development"
    )


if __name__ == "__main__":
    main()
