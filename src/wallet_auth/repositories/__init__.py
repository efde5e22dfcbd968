"""Persistence adapters."""

from .user_repo import SqlUserStore, UserStore

__all__ = ["SqlUserStore", "UserStore"]
