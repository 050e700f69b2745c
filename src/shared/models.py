"""Core data models for the Unified MCP Server.

Tool descriptors are registered once at startup and shared read-only by
every request. Invocation contexts live for a single request.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolCategory(str, Enum):
    """Well-known tool categories."""
    DATABASE = "database"
    VIDEO_GENERATION = "video_generation"
    AUDIO_GENERATION = "audio_generation"


class ToolDescriptor(BaseModel):
    """
    Immutable description of an MCP tool.

    The name is the routing key used by ``tools/call``; the input schema is
    a JSON Schema object describing the accepted arguments.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Unique tool name")
    description: str = Field(..., description="Human readable description")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
        description="JSON Schema for the tool arguments"
    )
    category: str = Field(..., description="Grouping label, e.g. database")
    output_schema: Optional[dict[str, Any]] = Field(
        default=None,
        alias="outputSchema",
        description="JSON Schema for the tool result"
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used on the wire."""
        return self.model_dump(by_alias=True, exclude_none=True)


class CredentialKind(str, Enum):
    """Classification of a caller credential."""
    API_KEY = "api_key"
    JWT = "jwt"


class Credential(BaseModel):
    """A credential extracted from an inbound request."""
    model_config = ConfigDict(frozen=True)

    kind: CredentialKind
    value: str = Field(..., repr=False)
    source: str = Field(default="authorization", description="Header it came from")


class AuthResult(BaseModel):
    """Outcome of validating a credential."""
    valid: bool
    kind: Optional[CredentialKind] = None
    subject: Optional[str] = None
    claims: dict[str, Any] = Field(default_factory=dict)
    reason: Optional[str] = None


class InvocationContext(BaseModel):
    """
    Per-request context handed to every tool handler.

    Carries the validated credential and the raw transport request.
    Created by the transport, discarded when the request completes.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    request_id: str = Field(..., description="Request correlation identifier")
    auth: AuthResult
    request: Any = Field(default=None, exclude=True, repr=False)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def credential_kind(self) -> Optional[CredentialKind]:
        return self.auth.kind


class InvocationStatus(str, Enum):
    """Outcome of a tool invocation, as recorded by the audit trail."""
    SUCCESS = "success"
    ERROR = "error"
    NOT_FOUND = "not_found"
    INVALID_PARAMS = "invalid_params"
    TIMEOUT = "timeout"


class AuditEntry(BaseModel):
    """
    Audit record for a single ``tools/call``.

    Arguments are redacted before the entry is built.
    """
    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str

    tool_name: str
    category: Optional[str] = None
    credential_kind: Optional[CredentialKind] = None
    subject: Optional[str] = None

    arguments: dict[str, Any] = Field(default_factory=dict)

    status: InvocationStatus
    error: Optional[str] = None
    execution_time_ms: float = 0
