"""JSON-RPC error envelopes returned when a request never reaches a transport."""

from uuid import uuid4

from mcp.types import ErrorData, JSONRPCError
from starlette.responses import JSONResponse

# Implementation-defined server error in the JSON-RPC reserved range
SERVER_ERROR_CODE = -32000

BAD_REQUEST_MESSAGE = "Bad Request: invalid session ID or method."
INVALID_JSON_MESSAGE = "Bad Request: request body is not valid JSON."
INTERNAL_ERROR_MESSAGE = "Internal server error."


def create_error_envelope(message: str) -> dict:
    """Build the error payload; the id is random since no request id is known."""
    error = JSONRPCError(
        jsonrpc="2.0",
        id=str(uuid4()),
        error=ErrorData(code=SERVER_ERROR_CODE, message=message),
    )
    return error.model_dump(by_alias=True, mode="json", exclude_none=True)


def bad_request(message: str = BAD_REQUEST_MESSAGE) -> JSONResponse:
    return JSONResponse(create_error_envelope(message), status_code=400)


def internal_error() -> JSONResponse:
    return JSONResponse(create_error_envelope(INTERNAL_ERROR_MESSAGE), status_code=500)
