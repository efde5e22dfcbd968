"""Version 1 API endpoints."""

from .endpoints import auth_router, protected_router

__all__ = ["auth_router", "protected_router"]
