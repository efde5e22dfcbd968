"""Wallet authentication use cases.

Each use case takes `(params, context)` and either returns a response model or
raises `ApiError` carrying the error envelope. A user moves from unknown to
unverified (record created) to verified (signature over its own nonce proven);
only verified users can log in.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable

from wallet_auth.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidSignatureError,
    NotFoundError,
    ValidationError,
    api_boundary,
)
from wallet_auth.core.settings import settings
from wallet_auth.db.time import epoch_seconds, utcnow
from wallet_auth.models.user import User
from wallet_auth.repositories.user_repo import UserStore
from wallet_auth.schemas.auth import (
    CookieParams,
    CreateUserParams,
    CreateUserResponse,
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
from wallet_auth.services.crypto import AddressValidator, SignatureVerifier
from wallet_auth.services.nonce import NonceManager, NoncePurpose
from wallet_auth.services.tokens import TokenService

logger = logging.getLogger(__name__)

USER_ID_ALPHABET = "1234567890ABCDEF"
USER_ID_LENGTH = 14
SECONDS_PER_HOUR = 3_600
SECONDS_PER_DAY = 86_400


def generate_user_id() -> str:
    """Return a random opaque user id."""
    return "".join(secrets.choice(USER_ID_ALPHABET) for _ in range(USER_ID_LENGTH))


def _require(value: str, name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"Missing {name}")
    return value


class AuthProtocol:
    """Stateless orchestrator over the user store, nonces, signatures and tokens."""

    def __init__(
        self,
        store: UserStore,
        tokens: TokenService,
        *,
        nonces: NonceManager | None = None,
        verifier: SignatureVerifier | None = None,
        address_validator: AddressValidator | None = None,
        clock: Callable[[], int] = epoch_seconds,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.nonces = nonces or NonceManager(store)
        self.verifier = verifier or SignatureVerifier()
        self.address_validator = address_validator
        self._clock = clock

    def _live_user(self, wallet_id: str) -> User:
        user = self.store.get_by_wallet_id(wallet_id)
        if user is None:
            raise NotFoundError()
        return user

    @api_boundary()
    async def create_user(self, params: CreateUserParams, context: RequestContext) -> CreateUserResponse:
        """Create an unverified user, or verify an existing one with a signature."""
        raw_wallet = _require(params.wallet_id, "walletId")
        if self.address_validator is not None and not self.address_validator.is_valid_address(raw_wallet):
            raise ValidationError("Invalid wallet Id")
        wallet_id = raw_wallet.lower()

        existing = self.store.get_by_wallet_id(wallet_id)
        if params.verify:
            if existing is None:
                raise NotFoundError()
            signature = _require(params.signature, "signature")
            message = self.nonces.present(existing.nonce, NoncePurpose.SIGN)
            if not self.verifier.verify(wallet_id, message, signature):
                raise InvalidSignatureError()
            expiry = self._clock() + settings.expire_users_days * SECONDS_PER_DAY
            rotation = self.nonces.promote(existing, expiry_time=expiry)
            logger.info("Verified user %s for wallet %s", existing.user_id, wallet_id)
            user_id, verified, nonce = existing.user_id, True, rotation.nonce
        else:
            if existing is not None:
                raise ConflictError()
            user_id = generate_user_id()
            now = utcnow()
            user = self.store.put_if_absent(
                User(
                    user_id=user_id,
                    wallet_id=wallet_id,
                    nonce=self.nonces.issue(user_id),
                    verified=False,
                    created_time=now,
                    last_login=now,
                    expiry_time=self._clock() + settings.unverified_user_ttl_hours * SECONDS_PER_HOUR,
                )
            )
            logger.info("Created unverified user %s for wallet %s", user.user_id, wallet_id)
            verified, nonce = user.verified, user.nonce

        return CreateUserResponse(
            wallet_id=wallet_id,
            user_id=user_id,
            verified=verified,
            nonce=self.nonces.present(nonce, NoncePurpose.SIGN),
            request_id=context.request_id,
        )

    @api_boundary()
    async def get_nonce(self, params: GetNonceParams, context: RequestContext) -> NonceResponse:
        user = self._live_user(_require(params.wallet_id, "walletId"))
        purpose = NoncePurpose.LOGIN if params.login else NoncePurpose.SIGN
        return NonceResponse(
            is_login=params.login,
            nonce=self.nonces.present(user.nonce, purpose),
            user_id=user.user_id,
            verified=user.verified,
            request_id=context.request_id,
        )

    @api_boundary()
    async def get_user(self, params: WalletParams, context: RequestContext) -> UserResponse:
        user = self._live_user(_require(params.wallet_id, "walletId"))
        return UserResponse(
            wallet_id=user.wallet_id,
            user_id=user.user_id,
            verified=user.verified,
            request_id=context.request_id,
        )

    @api_boundary(auth_sensitive=True)
    async def login(self, params: LoginParams, context: RequestContext) -> TokenResponse:
        """Check a login signature, rotate the nonce, then mint both tokens."""
        wallet_id = _require(params.wallet_id, "walletId")
        signature = _require(params.signature, "signature")

        user = self._live_user(wallet_id)
        if not user.verified:
            raise ValidationError("User account is not verified")

        message = self.nonces.present(user.nonce, NoncePurpose.LOGIN)
        if not self.verifier.verify(wallet_id, message, signature):
            raise InvalidSignatureError("Invalid signature, access denied")

        # Rotate before minting so a failed mint still leaves a usable account.
        self.nonces.rotate(wallet_id, expected_nonce=user.nonce)
        auth_token, cookie = await asyncio.gather(
            self.tokens.create_access_token(user.user_id),
            self.tokens.create_refresh_cookie(user.user_id),
        )
        logger.info("User %s logged in", user.user_id)
        return TokenResponse(
            user_id=user.user_id,
            auth_token=auth_token,
            cookie=cookie,
            request_id=context.request_id,
        )

    @api_boundary(auth_sensitive=True)
    async def refresh(self, params: CookieParams, context: RequestContext) -> TokenResponse:
        """Exchange a valid refresh cookie for a new access token and refresh cookie."""
        claims = await self.tokens.validate_refresh_cookie(_require(params.cookie, "cookie"))
        if not claims.sub:
            raise InternalError("Error getting userId from token")
        auth_token, cookie = await asyncio.gather(
            self.tokens.create_access_token(claims.sub),
            self.tokens.create_refresh_cookie(claims.sub),
        )
        return TokenResponse(
            user_id=claims.sub,
            auth_token=auth_token,
            cookie=cookie,
            request_id=context.request_id,
        )

    @api_boundary(auth_sensitive=True)
    async def logout(self, params: CookieParams, context: RequestContext) -> LogoutResponse:
        """Return an expired cookie. Issued refresh tokens stay valid until they expire."""
        claims = await self.tokens.validate_refresh_cookie(_require(params.cookie, "cookie"))
        logger.info("User %s logged out", claims.sub)
        return LogoutResponse(
            user_id=claims.sub,
            cookie=self.tokens.create_logout_cookie(),
            request_id=context.request_id,
        )

    @api_boundary()
    async def protected_read(self, params: TokenClaims, context: RequestContext) -> ProtectedResponse:
        return ProtectedResponse(message="Successful read request", request_id=context.request_id)

    @api_boundary()
    async def protected_write(
        self, params: ProtectedWriteParams, context: RequestContext
    ) -> ProtectedResponse:
        """Accept a write only with a fresh sign-purpose signature from the caller's wallet."""
        wallet_id = _require(params.wallet_id, "walletId")
        signature = _require(params.signature, "signature")

        user = self._live_user(wallet_id)
        if params.principal_id and user.user_id != params.principal_id:
            raise ForbiddenError("walletId does not belong to the authenticated user")

        message = self.nonces.present(user.nonce, NoncePurpose.SIGN)
        if not self.verifier.verify(wallet_id, message, signature):
            raise InvalidSignatureError()
        self.nonces.rotate(wallet_id, expected_nonce=user.nonce)
        return ProtectedResponse(message="Successful write request", request_id=context.request_id)
