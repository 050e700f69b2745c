"""Shared models, configuration and logging for the Unified MCP Server."""

from shared.models import (
    AuditEntry,
    AuthResult,
    Credential,
    CredentialKind,
    InvocationContext,
    InvocationStatus,
    ToolCategory,
    ToolDescriptor,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "AuditEntry",
    "AuthResult",
    "Credential",
    "CredentialKind",
    "InvocationContext",
    "InvocationStatus",
    "ToolCategory",
    "ToolDescriptor",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
