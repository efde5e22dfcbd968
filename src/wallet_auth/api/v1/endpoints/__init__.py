"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .protected import router as protected_router

__all__ = ["auth_router", "protected_router"]
