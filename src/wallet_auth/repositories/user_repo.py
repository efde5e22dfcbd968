"""User store contract and its SQLAlchemy implementation."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import Select, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wallet_auth.core.errors import ConflictError, DataIntegrityError
from wallet_auth.db.time import epoch_seconds
from wallet_auth.models.user import User

__all__ = ["UserStore", "SqlUserStore"]

logger = logging.getLogger(__name__)


class UserStore(ABC):
    """Key-value store of `User` records.

    Records whose `expiry_time` has passed are invisible to every read, as if
    the store had already removed them.
    """

    @abstractmethod
    def get_by_user_id(self, user_id: str) -> User | None:
        """Return the live record with the given primary id."""

    @abstractmethod
    def get_by_wallet_id(self, wallet_id: str) -> User | None:
        """Return the live record for a wallet via the secondary index.

        Raises:
            DataIntegrityError: If more than one record shares the wallet.
        """

    @abstractmethod
    def put_if_absent(self, user: User) -> User:
        """Insert a new record, failing rather than overwriting.

        Raises:
            ConflictError: If the user id or wallet id is already taken.
        """

    @abstractmethod
    def update_nonce(
        self,
        user_id: str,
        *,
        nonce: str,
        login_time: datetime,
        expected_nonce: str | None = None,
    ) -> User | None:
        """Replace the nonce and last-login time.

        When `expected_nonce` is given the write only happens if the stored
        nonce still matches. Returns the updated record, or None if the
        condition failed or the record is gone.
        """

    @abstractmethod
    def mark_verified(
        self,
        user_id: str,
        *,
        nonce: str,
        expiry_time: int,
        verified_at: datetime,
        expected_nonce: str,
    ) -> User | None:
        """Flip the record to verified, extend its TTL, and rotate its nonce.

        Conditional on the stored nonce still matching `expected_nonce`.
        """

    @abstractmethod
    def purge_expired(self) -> int:
        """Physically delete expired records and return how many were removed."""


class SqlUserStore(UserStore):
    """`UserStore` backed by a SQLAlchemy session."""

    def __init__(self, session: Session, clock: Callable[[], int] = epoch_seconds) -> None:
        self.session = session
        self._clock = clock

    def _live(self) -> Select[tuple[User]]:
        return select(User).where(User.expiry_time > self._clock())

    def get_by_user_id(self, user_id: str) -> User | None:
        stmt = self._live().where(User.user_id == user_id)
        return self.session.execute(stmt).scalars().first()

    def get_by_wallet_id(self, wallet_id: str) -> User | None:
        stmt = self._live().where(User.wallet_id == wallet_id.lower())
        users = list(self.session.execute(stmt).scalars())
        if len(users) > 1:
            raise DataIntegrityError("More than one UserId exists for the walletId.")
        return users[0] if users else None

    def put_if_absent(self, user: User) -> User:
        user.wallet_id = user.wallet_id.lower()
        # Expired rows still occupy the unique index until purged.
        self.session.execute(
            delete(User).where(
                or_(User.wallet_id == user.wallet_id, User.user_id == user.user_id),
                User.expiry_time <= self._clock(),
            )
        )
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as err:
            self.session.rollback()
            logger.info("Conditional put rejected for wallet %s", user.wallet_id)
            raise ConflictError() from err
        self.session.refresh(user)
        return user

    def _conditional_update(self, user_id: str, expected_nonce: str | None, **values: object) -> User | None:
        stmt = update(User).where(User.user_id == user_id, User.expiry_time > self._clock())
        if expected_nonce is not None:
            stmt = stmt.where(User.nonce == expected_nonce)
        result = self.session.execute(stmt.values(**values).execution_options(synchronize_session=False))
        if result.rowcount != 1:
            self.session.rollback()
            return None
        self.session.commit()
        refreshed = select(User).where(User.user_id == user_id).execution_options(populate_existing=True)
        return self.session.execute(refreshed).scalars().first()

    def update_nonce(
        self,
        user_id: str,
        *,
        nonce: str,
        login_time: datetime,
        expected_nonce: str | None = None,
    ) -> User | None:
        return self._conditional_update(user_id, expected_nonce, nonce=nonce, last_login=login_time)

    def mark_verified(
        self,
        user_id: str,
        *,
        nonce: str,
        expiry_time: int,
        verified_at: datetime,
        expected_nonce: str,
    ) -> User | None:
        return self._conditional_update(
            user_id,
            expected_nonce,
            verified=True,
            nonce=nonce,
            expiry_time=expiry_time,
            last_login=verified_at,
        )

    def purge_expired(self) -> int:
        result = self.session.execute(delete(User).where(User.expiry_time <= self._clock()))
        self.session.commit()
        removed = int(result.rowcount or 0)
        logger.info("Purged %d expired user records", removed)
        return removed
