"""Asymmetric signing service used to mint tokens."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from wallet_auth.core.settings import settings

logger = logging.getLogger(__name__)

RSASSA_PSS_SHA_256 = "RSASSA_PSS_SHA_256"
RSA_KEY_SIZE = 2048


def pss_padding() -> padding.PSS:
    """Padding shared by signing and verification (salt length = digest length)."""
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=hashes.SHA256.digest_size)


class Signer(ABC):
    """Holds a key pair behind an opaque handle; the private key never leaves it."""

    algorithm: str = RSASSA_PSS_SHA_256

    def __init__(self, key_id: str) -> None:
        self.key_id = key_id

    @abstractmethod
    async def get_public_key(self) -> bytes:
        """Return the PEM-encoded public key."""

    @abstractmethod
    async def sign(self, message: bytes) -> bytes:
        """Return the raw signature over `message`."""


class LocalRsaSigner(Signer):
    """Signer backed by an in-process RSA key."""

    def __init__(self, private_key: rsa.RSAPrivateKey, key_id: str = "local") -> None:
        super().__init__(key_id)
        self._private_key = private_key

    @classmethod
    def from_pem(cls, pem: bytes, key_id: str = "local") -> LocalRsaSigner:
        key = serialization.load_pem_private_key(pem, password=None)
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ValueError("Signing key must be an RSA private key")
        return cls(key, key_id)

    @classmethod
    def generate(cls, key_id: str = "local") -> LocalRsaSigner:
        return cls(rsa.generate_private_key(public_exponent=65537, key_size=RSA_KEY_SIZE), key_id)

    @classmethod
    def from_settings(cls) -> LocalRsaSigner:
        """Build a signer from SIGNING_KEY_PEM or SIGNING_KEY_PATH."""
        if settings.signing_key_pem:
            return cls.from_pem(settings.signing_key_pem.encode(), settings.signing_key_id)
        if settings.signing_key_path:
            return cls.from_pem(Path(settings.signing_key_path).read_bytes(), settings.signing_key_id)
        logger.warning(
            "No signing key configured; generated an ephemeral key. "
            "Tokens will not survive a restart."
        )
        return cls.generate(settings.signing_key_id)

    async def get_public_key(self) -> bytes:
        return self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    async def sign(self, message: bytes) -> bytes:
        # RSA signing is CPU bound; keep it off the event loop.
        return await asyncio.to_thread(
            self._private_key.sign, message, pss_padding(), hashes.SHA256()
        )
