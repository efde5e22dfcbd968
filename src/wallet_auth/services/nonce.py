"""Nonce issuance, rotation, and presentation."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from wallet_auth.core.errors import InternalError, NotFoundError
from wallet_auth.core.settings import settings
from wallet_auth.db.time import utcnow
from wallet_auth.models.user import User
from wallet_auth.repositories.user_repo import UserStore

logger = logging.getLogger(__name__)

NONCE_NUM_BYTES = 16  # 16 bytes = 32 hex characters


class NoncePurpose(str, Enum):
    """What a presented nonce is going to be signed for."""

    LOGIN = "login"
    SIGN = "sign"


@dataclass(frozen=True)
class NonceRotation:
    """Outcome of a successful nonce rotation."""

    nonce: str
    login_time: datetime


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """Return a cryptographically random hex nonce."""
    if num_bytes < NONCE_NUM_BYTES:
        num_bytes = NONCE_NUM_BYTES
    return secrets.token_hex(num_bytes)


class NonceManager:
    """Owns the single-use nonce stored on each user record.

    The stored value is never signed raw: it is always presented behind a
    purpose prefix so a login signature cannot be replayed as a verification
    signature or the other way round.
    """

    def __init__(
        self,
        store: UserStore,
        *,
        login_prefix: str | None = None,
        sign_prefix: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self._prefixes = {
            NoncePurpose.LOGIN: settings.login_prefix if login_prefix is None else login_prefix,
            NoncePurpose.SIGN: settings.sign_prefix if sign_prefix is None else sign_prefix,
        }
        self._clock = clock

    def issue(self, user_id: str) -> str:
        """Generate the initial nonce for a user record about to be created."""
        nonce = generate_nonce()
        logger.debug("Issued nonce for user %s", user_id)
        return nonce

    def prefix(self, purpose: NoncePurpose) -> str:
        """Return the presentation prefix for a purpose."""
        return self._prefixes[NoncePurpose(purpose)]

    def present(self, nonce: str, purpose: NoncePurpose) -> str:
        """Return the exact message a wallet must sign: `prefix || nonce`."""
        return f"{self.prefix(purpose)}{nonce}"

    def rotate(self, wallet_id: str, *, expected_nonce: str | None = None) -> NonceRotation:
        """Overwrite the stored nonce and record the event time.

        Raises:
            NotFoundError: If the wallet has no live record.
            InternalError: If the write did not land; the caller must abort.
        """
        user = self.store.get_by_wallet_id(wallet_id)
        if user is None:
            raise NotFoundError()

        nonce = generate_nonce()
        login_time = self._clock()
        updated = self.store.update_nonce(
            user.user_id,
            nonce=nonce,
            login_time=login_time,
            expected_nonce=expected_nonce,
        )
        if updated is None:
            raise InternalError(f"Nonce rotation failed for wallet {wallet_id.lower()}")
        return NonceRotation(nonce=nonce, login_time=login_time)

    def promote(self, user: User, *, expiry_time: int) -> NonceRotation:
        """Mark `user` verified, extend its TTL, and rotate its nonce in one write."""
        nonce = generate_nonce()
        verified_at = self._clock()
        updated = self.store.mark_verified(
            user.user_id,
            nonce=nonce,
            expiry_time=expiry_time,
            verified_at=verified_at,
            expected_nonce=user.nonce,
        )
        if updated is None:
            raise InternalError(f"Verification update failed for wallet {user.wallet_id}")
        return NonceRotation(nonce=nonce, login_time=verified_at)
