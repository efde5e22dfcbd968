"""create users

Revision ID: 5c1e2a9d7b40
Revises:
Create Date: 2026-10-19 09:12:44.512301

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a9d7b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the wallet-indexed users table."""
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(length=32), nullable=False),
        sa.Column("wallet_id", sa.String(length=64), nullable=False),
        sa.Column("nonce", sa.String(length=64), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiry_time", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index("ix_users_wallet_id", "users", ["wallet_id"], unique=True)
    op.create_index("ix_users_expiry_time", "users", ["expiry_time"], unique=False)


def downgrade() -> None:
    """Drop the users table."""
    op.drop_index("ix_users_expiry_time", table_name="users")
    op.drop_index("ix_users_wallet_id", table_name="users")
    op.drop_table("users")
