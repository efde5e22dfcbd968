"""Access to the optional address-validation credential."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from wallet_auth.core.errors import InternalError
from wallet_auth.core.settings import settings

logger = logging.getLogger(__name__)

SKIP_VALIDATION = "SKIP_VALIDATION"
ADDRESS_VALIDATION_HANDLE = "address-validation"


@dataclass(frozen=True)
class ValidationCredential:
    """Project credential for the third-party address validation provider."""

    project_id: str
    project_secret: str

    @property
    def skip(self) -> bool:
        return SKIP_VALIDATION in (self.project_id, self.project_secret)


class SecretStore(ABC):
    """Read-only secret lookup by handle."""

    @abstractmethod
    def get_secret(self, handle: str) -> ValidationCredential | None:
        """Return the credential stored under `handle`, or None if absent."""


class SettingsSecretStore(SecretStore):
    """Secret store backed by environment configuration or a mounted file."""

    def __init__(self, raw: str | None = None, path: str | None = None) -> None:
        self._raw = raw if raw is not None else settings.address_validation_secret
        self._path = path if path is not None else settings.address_validation_secret_path

    def _load_raw(self) -> str | None:
        if self._raw:
            return self._raw
        if self._path:
            try:
                return Path(self._path).read_text(encoding="utf-8")
            except OSError as err:
                raise InternalError(f"Unable to read secret file {self._path}") from err
        return None

    def get_secret(self, handle: str) -> ValidationCredential | None:
        raw = self._load_raw()
        if raw is None:
            logger.info("No credential configured for %s", handle)
            return None
        if raw.strip() == SKIP_VALIDATION:
            return ValidationCredential(project_id=SKIP_VALIDATION, project_secret=SKIP_VALIDATION)

        try:
            data = json.loads(raw)
            return ValidationCredential(
                project_id=str(data["PROJECT_ID"]),
                project_secret=str(data["PROJECT_SECRET"]),
            )
        except (ValueError, KeyError, TypeError) as err:
            raise InternalError(f"Malformed secret for {handle}") from err


def get_secret_store() -> SecretStore:
    """Return a secret store reading the current configuration."""
    return SettingsSecretStore()
