"""SQLAlchemy models for the wallet auth service."""

from .user import User

__all__ = ["User"]
