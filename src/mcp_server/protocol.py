"""JSON-RPC 2.0 envelopes and error codes spoken by the MCP endpoint."""

from enum import IntEnum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator

JSONRPC_VERSION = "2.0"


class ErrorCode(IntEnum):
    """JSON-RPC error codes, including the server-defined range."""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server-defined (-32000 to -32099)
    SERVER_ERROR = -32000
    AUTHENTICATION_ERROR = -32001
    RATE_LIMIT_EXCEEDED = -32002


class JSONRPCRequest(BaseModel):
    """Inbound JSON-RPC request envelope."""
    jsonrpc: Literal["2.0"]
    method: str = Field(..., min_length=1)
    params: Optional[Any] = None
    id: Optional[Any] = None


class JSONRPCError(BaseModel):
    """Error member of a JSON-RPC response."""
    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCResponse(BaseModel):
    """
    Outbound JSON-RPC response envelope.

    Exactly one of ``result`` and ``error`` is meaningful; a response with
    an error never carries a result.
    """
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: Optional[Any] = None
    result: Optional[Any] = None
    error: Optional[JSONRPCError] = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "JSONRPCResponse":
        if self.error is not None and self.result is not None:
            raise ValueError("Response cannot have both result and error")
        return self

    @classmethod
    def success(cls, request_id: Any, result: Any) -> "JSONRPCResponse":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(
        cls,
        request_id: Any,
        code: int,
        message: str,
        data: Any = None
    ) -> "JSONRPCResponse":
        return cls(id=request_id, error=JSONRPCError(code=int(code), message=message, data=data))

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the HTTP body; ``result`` is kept even when null."""
        body: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            body["error"] = self.error.model_dump(exclude_none=True)
        else:
            body["result"] = self.result
        return body
