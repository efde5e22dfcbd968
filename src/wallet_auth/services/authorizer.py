"""Allow/deny decisions for bearer tokens at the request gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from wallet_auth.core.errors import AuthError
from wallet_auth.core.settings import settings
from wallet_auth.schemas.auth import TokenClaims
from wallet_auth.services.tokens import TokenKind, TokenService

logger = logging.getLogger(__name__)

UNKNOWN_PRINCIPAL = "Unknown"
POLICY_VERSION = "2012-10-17"
INVOKE_ACTION = "execute-api:Invoke"


@dataclass(frozen=True)
class AuthorizerDecision:
    allow: bool
    principal_id: str
    claims: TokenClaims | None = None

    @property
    def is_admin(self) -> bool:
        return bool(self.claims and self.claims.admin)


class Authorizer:
    """Verifies access tokens; never touches the user store and never caches decisions."""

    def __init__(self, tokens: TokenService) -> None:
        self.tokens = tokens

    async def decide(self, token: str | None) -> AuthorizerDecision:
        """Return Allow with the token's subject, or Deny for any failure."""
        raw = (token or "").strip()
        if raw[:7].lower() == "bearer ":
            raw = raw[7:].strip()
        try:
            claims = await self.tokens.verify(raw, TokenKind.ACCESS)
        except AuthError as err:
            logger.info("Token validation failed, returning Deny: %s", err.message)
            return AuthorizerDecision(allow=False, principal_id=UNKNOWN_PRINCIPAL)
        except Exception:
            logger.exception("Unexpected error during token validation, returning Deny")
            return AuthorizerDecision(allow=False, principal_id=UNKNOWN_PRINCIPAL)
        logger.debug("Token validation successful for %s", claims.sub)
        return AuthorizerDecision(allow=True, principal_id=claims.sub, claims=claims)

    async def policy(self, token: str | None, resource: str | None = None) -> dict[str, Any]:
        """Render the decision as a gateway policy document."""
        decision = await self.decide(token)
        return {
            "principalId": decision.principal_id,
            "policyDocument": {
                "Version": POLICY_VERSION,
                "Statement": [
                    {
                        "Action": INVOKE_ACTION,
                        "Effect": "Allow" if decision.allow else "Deny",
                        "Resource": resource or settings.api_resource,
                    }
                ],
            },
            "context": {"isAdmin": decision.is_admin},
        }
