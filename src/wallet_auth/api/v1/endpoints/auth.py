"""Wallet authentication endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Header, Query, Response

from wallet_auth.api.v1.dependencies import AuthProtocolDep, ContextDep
from wallet_auth.schemas.auth import (
    CookieParams,
    CreateUserParams,
    CreateUserRequest,
    CreateUserResponse,
    ErrorEnvelope,
    GetNonceParams,
    LoginParams,
    LogoutResponse,
    NonceResponse,
    TokenResponse,
    UserResponse,
    WalletParams,
)

router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
    responses={
        400: {"model": ErrorEnvelope},
        401: {"model": ErrorEnvelope},
        500: {"model": ErrorEnvelope},
    },
)

CookieHeader = Annotated[str, Header(alias="Cookie")]


@router.post("/users/{wallet_id}", response_model=CreateUserResponse)
async def create_user(
    wallet_id: str,
    protocol: AuthProtocolDep,
    context: ContextDep,
    body: Annotated[CreateUserRequest | None, Body()] = None,
) -> CreateUserResponse:
    """Create an unverified user, or verify one with `{"verify": true, "signature": ...}`."""
    body = body or CreateUserRequest()
    params = CreateUserParams(wallet_id=wallet_id, verify=body.verify, signature=body.signature)
    return await protocol.create_user(params, context)


@router.get("/users/{wallet_id}", response_model=UserResponse)
async def get_user(wallet_id: str, protocol: AuthProtocolDep, context: ContextDep) -> UserResponse:
    return await protocol.get_user(WalletParams(wallet_id=wallet_id), context)


@router.get("/nonce/{wallet_id}", response_model=NonceResponse)
async def get_nonce(
    wallet_id: str,
    protocol: AuthProtocolDep,
    context: ContextDep,
    login: Annotated[str, Query()] = "false",
) -> NonceResponse:
    """Return the current nonce with the login or sign prefix."""
    params = GetNonceParams(wallet_id=wallet_id, login=login.lower() == "true")
    return await protocol.get_nonce(params, context)


@router.post("/login", response_model=TokenResponse)
async def login(
    params: LoginParams,
    response: Response,
    protocol: AuthProtocolDep,
    context: ContextDep,
) -> TokenResponse:
    result = await protocol.login(params, context)
    response.headers.append("Set-Cookie", result.cookie)
    return result


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    response: Response,
    protocol: AuthProtocolDep,
    context: ContextDep,
    cookie: CookieHeader = "",
) -> TokenResponse:
    result = await protocol.refresh(CookieParams(cookie=cookie), context)
    response.headers.append("Set-Cookie", result.cookie)
    return result


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    protocol: AuthProtocolDep,
    context: ContextDep,
    cookie: CookieHeader = "",
) -> LogoutResponse:
    result = await protocol.logout(CookieParams(cookie=cookie), context)
    response.headers.append("Set-Cookie", result.cookie)
    return result
