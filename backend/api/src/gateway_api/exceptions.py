"""FastAPI exception handlers for converting GatewayError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: malformed or missing request fields
- 401 Unauthorized: bearer token or webhook signature rejected
- 404 Not Found: mandate or merchant not found
- 409 Conflict: duplicate creation or double authorization
- 422 Unprocessable Entity: mandate not in a state that allows the call
- 502 Bad Gateway: Cashfree failed or was unreachable

Usage:
    from gateway_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from gateway.models.errors import ErrorCode, GatewayError

logger = logging.getLogger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: HTTP_401_UNAUTHORIZED,
    ErrorCode.NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE: HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.UPSTREAM_ERROR: HTTP_502_BAD_GATEWAY,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode (400 if not mapped)."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Convert a GatewayError to its JSON ErrorResponse and HTTP status."""
    status_code = get_http_status_for_error(exc.code)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.code.value, exc.details)
    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(GatewayError, gateway_error_handler)  # type: ignore[arg-type]
