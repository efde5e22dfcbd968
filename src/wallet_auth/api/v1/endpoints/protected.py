"""Sample protected endpoints guarded by the bearer authorizer."""

from __future__ import annotations

from fastapi import APIRouter

from wallet_auth.api.v1.dependencies import AccessClaimsDep, AuthProtocolDep, ContextDep
from wallet_auth.schemas.auth import ErrorEnvelope, ProtectedResponse, ProtectedWriteParams

router = APIRouter(
    prefix="/protected",
    tags=["protected"],
    responses={
        401: {"model": ErrorEnvelope},
        403: {"model": ErrorEnvelope},
    },
)


@router.get("/read", response_model=ProtectedResponse)
async def protected_read(
    claims: AccessClaimsDep,
    protocol: AuthProtocolDep,
    context: ContextDep,
) -> ProtectedResponse:
    return await protocol.protected_read(claims, context)


@router.post("/write", response_model=ProtectedResponse)
async def protected_write(
    params: ProtectedWriteParams,
    claims: AccessClaimsDep,
    protocol: AuthProtocolDep,
    context: ContextDep,
) -> ProtectedResponse:
    """Write that also requires a fresh signature over the caller's sign nonce."""
    params = params.model_copy(update={"principal_id": claims.sub})
    return await protocol.protected_write(params, context)
