"""Wallet signature recovery and address checks."""

from __future__ import annotations

import logging

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_address

from wallet_auth.services.secrets import ADDRESS_VALIDATION_HANDLE, SecretStore

logger = logging.getLogger(__name__)


class SignatureVerifier:
    """Recover personal-message signatures and compare them to a claimed wallet."""

    @staticmethod
    def recover(message: str, signature: str) -> str | None:
        """Return the address that signed `message`, or None if undecodable."""
        try:
            return Account.recover_message(encode_defunct(text=message), signature=signature)
        except Exception as err:  # eth_account raises a mix of ValueError/TypeError/BadSignature
            logger.info("Unable to recover signer: %s", err)
            return None

    @classmethod
    def verify(cls, wallet_id: str, message: str, signature: str) -> bool:
        """Return True when `signature` over `message` was produced by `wallet_id`."""
        if not wallet_id or not signature:
            return False
        recovered = cls.recover(message, signature)
        if recovered is not None and recovered.lower() == wallet_id.lower():
            return True
        logger.info(
            "Signature mismatch: address=%s message=%r signature=%s recovered=%s",
            wallet_id,
            message,
            signature,
            recovered,
        )
        return False


class AddressValidator:
    """Best-effort wallet address format check.

    Runs only when a validation credential is configured; otherwise every
    address is accepted.
    """

    def __init__(self, secret_store: SecretStore) -> None:
        self.secret_store = secret_store

    def is_enabled(self) -> bool:
        credential = self.secret_store.get_secret(ADDRESS_VALIDATION_HANDLE)
        return credential is not None and not credential.skip

    def is_valid_address(self, wallet_id: str) -> bool:
        if not self.is_enabled():
            logger.debug("Address validation skipped for %s", wallet_id)
            return True
        return bool(is_address(wallet_id))
