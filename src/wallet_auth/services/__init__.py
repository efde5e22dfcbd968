"""Authentication services: nonces, signatures, tokens, and the use cases built on them."""

from .auth_protocol import AuthProtocol
from .authorizer import Authorizer, AuthorizerDecision
from .crypto import AddressValidator, SignatureVerifier
from .nonce import NonceManager, NoncePurpose
from .secrets import SecretStore, SettingsSecretStore, ValidationCredential
from .signer import LocalRsaSigner, Signer
from .tokens import TokenKind, TokenService

__all__ = [
    "AddressValidator",
    "AuthProtocol",
    "Authorizer",
    "AuthorizerDecision",
    "LocalRsaSigner",
    "NonceManager",
    "NoncePurpose",
    "SecretStore",
    "SettingsSecretStore",
    "SignatureVerifier",
    "Signer",
    "TokenKind",
    "TokenService",
    "ValidationCredential",
]
