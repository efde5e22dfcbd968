"""
Pydantic schemas for use case parameters, responses, and token claims.
"""

from .auth import (
    CookieParams,
    CreateUserParams,
    CreateUserRequest,
    CreateUserResponse,
    ErrorEnvelope,
    GetNonceParams,
    LoginParams,
    LogoutResponse,
    NonceResponse,
    ProtectedResponse,
    ProtectedWriteParams,
    RequestContext,
    TokenClaims,
    TokenResponse,
    UserResponse,
    WalletParams,
)

__all__ = [
    "CookieParams", "CreateUserParams", "CreateUserRequest", "CreateUserResponse",
    "ErrorEnvelope", "GetNonceParams", "LoginParams", "LogoutResponse",
    "NonceResponse", "ProtectedResponse", "ProtectedWriteParams", "RequestContext",
    "TokenClaims", "TokenResponse", "UserResponse", "WalletParams",
]
