"""Main entry point for the wallet auth service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from wallet_auth.api.middleware import (
    REQUEST_ID_HEADER,
    RequestIDMiddleware,
    api_error_handler,
    request_validation_handler,
)
from wallet_auth.api.v1 import auth_router, protected_router
from wallet_auth.core.errors import ApiError
from wallet_auth.core.logging import configure_logging
from wallet_auth.core.settings import settings
from wallet_auth.services.tokens import get_token_service

logger = logging.getLogger(__name__)

DESCRIPTION = "Passwordless authentication with wallet signatures"

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description=DESCRIPTION,
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=[REQUEST_ID_HEADER],
)
app.add_middleware(RequestIDMiddleware)

app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(protected_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    # Resolve the signer up front so a bad key fails the boot, not the first login.
    get_token_service()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": DESCRIPTION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("wallet_auth.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
