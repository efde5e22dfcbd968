"""Authentication request, response, and claim schemas."""

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RequestContext(BaseModel):
    """Per-request metadata supplied by the gateway."""

    request_id: str = Field("", description="Correlation id echoed in every response")
    source_ip: str | None = Field(None, description="Client address as seen by the gateway")


# Use case parameters. Fields default to empty so that missing values are
# reported by the use case itself (and collapse to 401 on auth-sensitive paths).


class CreateUserParams(_CamelModel):
    wallet_id: str = Field("", alias="walletId")
    verify: bool = Field(False, description="Prove ownership with `signature`")
    signature: str = Field("", description="Signature over the sign-prefixed nonce")


class CreateUserRequest(BaseModel):
    """Body of the create/verify user call; the wallet comes from the path."""

    verify: bool = False
    signature: str = ""


class WalletParams(_CamelModel):
    wallet_id: str = Field("", alias="walletId")


class GetNonceParams(WalletParams):
    login: bool = Field(False, description="Prefix for login rather than signing")


class LoginParams(_CamelModel):
    """Wallet plus signature over the login-prefixed nonce."""

    wallet_id: str = Field("", alias="walletId")
    signature: str = ""


class CookieParams(BaseModel):
    cookie: str = Field("", description="Raw Cookie header value")


class ProtectedWriteParams(_CamelModel):
    """Signed write request; `principal_id` is filled from the verified token."""

    wallet_id: str = Field("", alias="walletId")
    signature: str = ""
    principal_id: str = Field("", alias="principalId")


# Responses


class UserResponse(_CamelModel):
    success: bool = True
    wallet_id: str = Field(..., alias="walletId")
    user_id: str = Field(..., alias="userId")
    verified: bool
    request_id: str = Field("", alias="requestId")


class CreateUserResponse(UserResponse):
    nonce: str = Field(..., description="Sign-prefixed nonce ready to be signed")


class NonceResponse(_CamelModel):
    success: bool = True
    is_login: bool = Field(..., alias="isLogin")
    nonce: str
    user_id: str = Field(..., alias="userId")
    verified: bool
    request_id: str = Field("", alias="requestId")


class TokenResponse(_CamelModel):
    """Tokens minted at login or refresh.

    The refresh cookie travels in a Set-Cookie header, never in the body.
    """

    success: bool = True
    user_id: str = Field(..., alias="userId")
    auth_token: str = Field(..., alias="authToken")
    request_id: str = Field("", alias="requestId")
    cookie: str = Field("", exclude=True)


class LogoutResponse(_CamelModel):
    success: bool = True
    user_id: str = Field(..., alias="userId")
    request_id: str = Field("", alias="requestId")
    cookie: str = Field("", exclude=True)


class ProtectedResponse(_CamelModel):
    success: bool = True
    message: str
    request_id: str = Field("", alias="requestId")


class ErrorEnvelope(_CamelModel):
    success: bool = False
    status_code: int = Field(..., alias="statusCode")
    message: str
    request_id: str = Field(..., alias="requestId")


class TokenClaims(BaseModel):
    """Decoded token payload."""

    iss: str
    sub: str
    admin: bool = False
    refresh: bool = False
    aud: list[str] = Field(default_factory=list)
    iat: int
    exp: int

    model_config = ConfigDict(extra="ignore")
