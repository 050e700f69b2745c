"""HTTP transport for the MCP endpoint.

Applies CORS headers, method whitelisting and authentication, then hands the
decoded body to the dispatcher and maps the outcome to an HTTP status.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from shared.logging import bind_request_context, clear_request_context, get_logger
from shared.models import InvocationContext
from mcp_server.auth import AuthGate
from mcp_server.dispatcher import Dispatcher
from mcp_server.errors import MethodNotAllowedError, TransportError
from mcp_server.protocol import ErrorCode, JSONRPCResponse

logger = get_logger(__name__)


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}

REQUEST_ID_HEADERS = ("x-request-id", "x-vercel-id")


def json_response(body: Any, status_code: int = 200) -> JSONResponse:
    """Build a JSON response carrying the CORS headers."""
    return JSONResponse(
        content=jsonable_encoder(body),
        status_code=status_code,
        headers=CORS_HEADERS,
    )


def get_request_id(request: Request) -> str:
    """Correlation id from the caller or the platform, else a new UUID."""
    for header in REQUEST_ID_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return str(uuid.uuid4())


def _envelope_id(payload: Any) -> Optional[Any]:
    if isinstance(payload, dict):
        return payload.get("id")
    return None


class TransportAdapter:
    """
    Serves MCP requests over HTTP.

    Status mapping:
    - OPTIONS preflight: 200 with an empty body
    - non-POST: 405
    - missing or invalid credential: 401
    - body that is not a JSON-RPC 2.0 request: 400
    - dispatched request, including JSON-RPC errors: 200
    - anything else, such as an undecodable body: 500
    """

    def __init__(self, dispatcher: Dispatcher, auth_gate: AuthGate) -> None:
        self.dispatcher = dispatcher
        self.auth_gate = auth_gate

    async def handle(self, request: Request) -> Response:
        request_id = get_request_id(request)
        bind_request_context(request_id=request_id)

        try:
            return await self._handle(request, request_id)
        except Exception as e:
            logger.error(
                "Unhandled error while serving request",
                method=request.method,
                error=str(e),
                exc_info=True
            )
            return self.critical_response(request_id)
        finally:
            clear_request_context()

    async def _handle(self, request: Request, request_id: str) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        payload: Any = None
        try:
            if request.method != "POST":
                raise MethodNotAllowedError(request.method)

            auth = self.auth_gate.authenticate(request.headers)

            payload = json.loads(await request.body())

            context = InvocationContext(
                request_id=request_id,
                auth=auth,
                request=request,
            )
            response = await self.dispatcher.dispatch(payload, context)

        except TransportError as e:
            logger.info(
                "Request rejected",
                method=request.method,
                status=e.http_status,
                reason=e.message
            )
            return self.error_response(e, request_id=_envelope_id(payload))

        if response.is_error:
            logger.info(
                "Request answered with error",
                rpc_method=payload.get("method"),
                code=response.error.code
            )

        return json_response(response.to_wire())

    @staticmethod
    def error_response(error: TransportError, request_id: Any = None) -> JSONResponse:
        body = JSONRPCResponse(id=request_id, error=error.to_error()).to_wire()
        return json_response(body, status_code=error.http_status)

    @staticmethod
    def critical_response(request_id: str) -> JSONResponse:
        body = JSONRPCResponse.failure(
            None,
            ErrorCode.INTERNAL_ERROR,
            "Internal server error",
            data={
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "requestId": request_id,
            },
        ).to_wire()
        return json_response(body, status_code=500)
