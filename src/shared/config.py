"""Configuration management for the Unified MCP Server.

Supports a YAML configuration file with environment variable overrides.
Configuration is loaded once and cached.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Credential policy configuration."""
    master_api_key: Optional[str] = Field(default=None, description="Accepted API key")
    jwt_secret: Optional[str] = Field(default=None, description="HMAC secret for JWTs")
    jwt_algorithm: str = Field(default="HS256")
    min_api_key_length: int = Field(default=16, ge=1)
    api_key_header: str = Field(default="X-API-Key", description="Alternate raw API key header")
    token_expire_minutes: int = Field(default=60, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="MCP_AUTH_",
        env_file=".env",
        extra="ignore"
    )


class MCPServerSettings(BaseSettings):
    """MCP Server configuration."""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    endpoint_path: str = Field(default="/api/server")

    server_name: str = Field(default="unified-mcp-server")
    server_version: str = Field(default="1.0.0")
    server_description: str = Field(
        default="Unified MCP server with Supabase and MoneyPrinterTurbo capabilities"
    )
    protocol_version: str = Field(default="2024-11-05")

    # Execution
    tool_timeout_seconds: Optional[float] = Field(default=30.0, ge=0)
    validate_arguments: bool = Field(default=True)

    # Audit
    enable_audit: bool = Field(default=True)
    audit_log_path: Optional[str] = Field(default=None)

    model_config = SettingsConfigDict(
        env_prefix="MCP_SERVER_",
        env_file=".env",
        extra="ignore"
    )


class SupabaseSettings(BaseSettings):
    """Supabase connections used by the database and management tools."""
    url: Optional[str] = Field(default=None)
    anon_key: Optional[str] = Field(default=None)
    timeout_seconds: float = Field(default=30.0, gt=0)

    # Management API
    access_token: Optional[str] = Field(default=None, description="Personal access token")
    project_ref: Optional[str] = Field(default=None, description="Default project reference")
    management_url: str = Field(default="https://api.supabase.com")

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        extra="ignore"
    )

    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key)

    @property
    def management_configured(self) -> bool:
        return bool(self.access_token)


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Component settings
    auth: AuthSettings = Field(default_factory=AuthSettings)
    mcp_server: MCPServerSettings = Field(default_factory=MCPServerSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file, falling back to defaults."""
        return cls(**load_yaml_config(path))


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("MCP_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
