"""Creation and verification of signed access and refresh tokens."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from functools import lru_cache
from http.cookies import CookieError, SimpleCookie
from typing import Any, TypeVar

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode
from pydantic import ValidationError as PydanticValidationError

from wallet_auth.core.errors import (
    InternalError,
    InvalidTokenError,
    InvalidTokenKindError,
    TokenExpiredError,
)
from wallet_auth.core.settings import settings
from wallet_auth.schemas.auth import TokenClaims
from wallet_auth.services.signer import LocalRsaSigner, Signer, pss_padding

logger = logging.getLogger(__name__)

ALGORITHM = "PS256"
LOGOUT_COOKIE_VALUE = "logout"

T = TypeVar("T")


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


def _canonical_segment(data: dict[str, Any]) -> bytes:
    return base64url_encode(json.dumps(data, separators=(",", ":"), sort_keys=True).encode())


class TokenService:
    """Mints and checks compact `header.payload.signature` tokens.

    Signing is delegated to a `Signer`; verification uses its public key,
    fetched once and kept for the life of the service.
    """

    def __init__(
        self,
        signer: Signer,
        *,
        issuer: str | None = None,
        audience: list[str] | None = None,
        auth_minutes: int | None = None,
        refresh_minutes: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.signer = signer
        self.issuer = issuer or settings.token_issuer
        self.audience = list(audience or settings.token_audience)
        self.auth_minutes = auth_minutes or settings.auth_token_minutes
        self.refresh_minutes = refresh_minutes or settings.refresh_token_minutes
        self._clock = clock
        self._public_key: rsa.RSAPublicKey | None = None
        self._key_lock: asyncio.Lock | None = None
        self._key_lock_loop: asyncio.AbstractEventLoop | None = None

    async def _call_signer(self, call: Awaitable[T], operation: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=settings.signer_timeout_seconds)
        except TimeoutError as err:
            raise InternalError(f"Signer {operation} timed out for key {self.signer.key_id}") from err

    def _get_key_lock(self) -> asyncio.Lock:
        # asyncio locks are bound to the loop they are first used on.
        loop = asyncio.get_running_loop()
        if self._key_lock is None or self._key_lock_loop is not loop:
            self._key_lock = asyncio.Lock()
            self._key_lock_loop = loop
        return self._key_lock

    async def get_public_key(self) -> rsa.RSAPublicKey:
        """Return the signer's public key, fetching it on first use only."""
        if self._public_key is not None:
            return self._public_key
        async with self._get_key_lock():
            if self._public_key is None:
                pem = await self._call_signer(self.signer.get_public_key(), "get_public_key")
                try:
                    key = serialization.load_pem_public_key(pem)
                except ValueError as err:
                    raise InternalError("Signer returned an unreadable public key") from err
                if not isinstance(key, rsa.RSAPublicKey):
                    raise InternalError("Signer returned a non-RSA public key")
                logger.info("Loaded public key for signer %s", self.signer.key_id)
                self._public_key = key
        return self._public_key

    async def _create(self, user_id: str, *, is_admin: bool, refresh: bool) -> str:
        if not user_id:
            raise InternalError("Missing userId for token creation")
        issued_at = int(self._clock())
        minutes = self.refresh_minutes if refresh else self.auth_minutes
        header = {"alg": ALGORITHM, "typ": "JWT"}
        payload = {
            "iss": self.issuer,
            "sub": user_id,
            "admin": is_admin,
            "refresh": refresh,
            "aud": self.audience,
            "iat": issued_at,
            "exp": issued_at + minutes * 60,
        }
        signing_input = _canonical_segment(header) + b"." + _canonical_segment(payload)
        signature = await self._call_signer(self.signer.sign(signing_input), "sign")
        return (signing_input + b"." + base64url_encode(signature)).decode("ascii")

    async def create_access_token(self, user_id: str, is_admin: bool = False) -> str:
        return await self._create(user_id, is_admin=is_admin, refresh=False)

    async def create_refresh_token(self, user_id: str) -> str:
        return await self._create(user_id, is_admin=False, refresh=True)

    async def verify(self, token: str, expected_kind: TokenKind) -> TokenClaims:
        """Check signature, issuer, audience, expiry and kind; return the claims.

        Raises:
            InvalidTokenError: Missing, malformed, or badly signed token.
            TokenExpiredError: `exp` is in the past.
            InvalidTokenKindError: Access/refresh mismatch with `expected_kind`.
        """
        if not token:
            raise InvalidTokenError("Missing token")
        if not token.isascii():
            raise InvalidTokenError()
        try:
            header = jwt.get_unverified_header(token)
            raw_claims = jwt.get_unverified_claims(token)
        except JWTError as err:
            raise InvalidTokenError() from err
        if header.get("alg") != ALGORITHM:
            raise InvalidTokenError("Unsupported token algorithm")

        signing_input, _, encoded_signature = token.rpartition(".")
        try:
            signature = base64url_decode(encoded_signature.encode("ascii"))
        except ValueError as err:
            raise InvalidTokenError() from err

        public_key = await self.get_public_key()
        try:
            public_key.verify(signature, signing_input.encode("ascii"), pss_padding(), hashes.SHA256())
        except InvalidSignature as err:
            raise InvalidTokenError("Invalid token signature") from err

        try:
            claims = TokenClaims.model_validate(raw_claims)
        except PydanticValidationError as err:
            raise InvalidTokenError("Invalid token claims") from err
        if claims.iss != self.issuer:
            raise InvalidTokenError("Invalid token issuer")
        if not set(claims.aud) & set(self.audience):
            raise InvalidTokenError("Invalid token audience")
        if claims.exp <= self._clock():
            raise TokenExpiredError()

        if claims.refresh != (TokenKind(expected_kind) is TokenKind.REFRESH):
            raise InvalidTokenKindError(
                "Invalid Refresh token" if expected_kind is TokenKind.REFRESH else "Invalid Auth token"
            )
        return claims

    # Refresh cookie helpers

    def _serialize_cookie(self, value: str, max_age: int) -> str:
        jar: SimpleCookie = SimpleCookie()
        jar[settings.cookie_name] = value
        morsel = jar[settings.cookie_name]
        morsel["httponly"] = True
        morsel["secure"] = True
        morsel["samesite"] = "Strict"
        morsel["domain"] = settings.cookie_domain or self.issuer
        morsel["path"] = settings.cookie_path
        morsel["max-age"] = max_age
        return morsel.OutputString()

    async def create_refresh_cookie(self, user_id: str) -> str:
        """Mint a refresh token and wrap it in a Set-Cookie value."""
        token = await self.create_refresh_token(user_id)
        return self._serialize_cookie(token, self.refresh_minutes * 60)

    def create_logout_cookie(self) -> str:
        """Return an already-expired cookie that overwrites the refresh token."""
        return self._serialize_cookie(LOGOUT_COOKIE_VALUE, 0)

    @staticmethod
    def read_refresh_cookie(cookie_header: str) -> str | None:
        """Extract the refresh token from a raw Cookie header."""
        jar: SimpleCookie = SimpleCookie()
        try:
            jar.load(cookie_header or "")
        except CookieError:
            return None
        morsel = jar.get(settings.cookie_name)
        return morsel.value if morsel is not None else None

    async def validate_refresh_cookie(self, cookie_header: str) -> TokenClaims:
        """Verify the refresh token carried by a Cookie header."""
        token = self.read_refresh_cookie(cookie_header)
        if not token:
            raise InvalidTokenError("Missing refresh token")
        return await self.verify(token, TokenKind.REFRESH)


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    """Return the process-wide token service so the public key is fetched once."""
    return TokenService(LocalRsaSigner.from_settings())
