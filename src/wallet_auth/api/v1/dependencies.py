"""Shared API dependencies: request context, service wiring, and bearer authorization."""

from typing import Annotated

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from wallet_auth.core.errors import ApiError
from wallet_auth.core.logging import get_request_id, set_request_id
from wallet_auth.db.session import get_db
from wallet_auth.repositories import SqlUserStore
from wallet_auth.schemas.auth import RequestContext, TokenClaims
from wallet_auth.services.auth_protocol import AuthProtocol
from wallet_auth.services.authorizer import Authorizer
from wallet_auth.services.crypto import AddressValidator
from wallet_auth.services.secrets import SecretStore, get_secret_store
from wallet_auth.services.tokens import TokenService, get_token_service

# Missing credentials are reported by `require_access_claims` as an envelope, not by FastAPI.
bearer_scheme = HTTPBearer(auto_error=False)

SessionDep = Annotated[Session, Depends(get_db)]


def get_token_service_dep() -> TokenService:
    return get_token_service()


def get_secret_store_dep() -> SecretStore:
    return get_secret_store()


TokenServiceDep = Annotated[TokenService, Depends(get_token_service_dep)]
SecretStoreDep = Annotated[SecretStore, Depends(get_secret_store_dep)]


async def get_request_context(request: Request) -> RequestContext:
    """Build the use case context from the current request."""
    request_id = get_request_id() or set_request_id(request.headers.get("X-Request-ID"))
    return RequestContext(
        request_id=request_id,
        source_ip=request.client.host if request.client else None,
    )


ContextDep = Annotated[RequestContext, Depends(get_request_context)]


def get_auth_protocol(db: SessionDep, tokens: TokenServiceDep, secrets: SecretStoreDep) -> AuthProtocol:
    return AuthProtocol(SqlUserStore(db), tokens, address_validator=AddressValidator(secrets))


def get_authorizer(tokens: TokenServiceDep) -> Authorizer:
    return Authorizer(tokens)


AuthProtocolDep = Annotated[AuthProtocol, Depends(get_auth_protocol)]
AuthorizerDep = Annotated[Authorizer, Depends(get_authorizer)]


async def require_access_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    authorizer: AuthorizerDep,
    context: ContextDep,
) -> TokenClaims:
    """Run the authorizer before a protected handler.

    Raises:
        ApiError: 401 when no bearer token is presented, 403 when the
            authorizer denies it.
    """
    if credentials is None or not credentials.credentials:
        raise ApiError("Unauthorized", status.HTTP_401_UNAUTHORIZED, context.request_id)
    decision = await authorizer.decide(credentials.credentials)
    if not decision.allow or decision.claims is None:
        raise ApiError(
            "User is not authorized to access this resource",
            status.HTTP_403_FORBIDDEN,
            context.request_id,
        )
    return decision.claims


AccessClaimsDep = Annotated[TokenClaims, Depends(require_access_claims)]
