"""Exception handlers rendering the error envelope."""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wallet_auth.core.errors import ApiError
from wallet_auth.core.logging import get_request_id

logger = logging.getLogger(__name__)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.envelope)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as a 400 envelope."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid {location}" if location else "Invalid request"
    logger.info("Request validation failed on %s: %s", request.url.path, exc.errors())
    error = ApiError(message, status.HTTP_400_BAD_REQUEST, get_request_id() or "Error")
    return JSONResponse(status_code=error.status_code, content=error.envelope)
