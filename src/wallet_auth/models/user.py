"""SQLAlchemy model for wallet-backed user identities."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from wallet_auth.db.session import Base
from wallet_auth.db.time import utcnow


class User(Base):
    """Identity keyed by a server-generated id and indexed by wallet address."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    wallet_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    nonce: Mapped[str] = mapped_column(String(64), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_login: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Absolute Unix time after which the record is treated as gone.
    expiry_time: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"User(user_id={self.user_id!r}, wallet_id={self.wallet_id!r}, "
            f"verified={self.verified!r})"
        )
