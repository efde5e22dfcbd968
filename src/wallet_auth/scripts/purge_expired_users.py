"""
Cron job removing user records whose TTL has elapsed.

Expired records are already invisible to every read; this reclaims the rows.
Run it as often as storage pressure requires (daily is plenty).
"""

from sqlalchemy.orm import Session

from wallet_auth.core.logging import configure_logging
from wallet_auth.db.session import SessionLocal
from wallet_auth.repositories import SqlUserStore


def purge_expired_users(db: Session) -> int:
    """Delete expired users and return how many rows were removed.

    Args:
        db: Database session
    """
    return SqlUserStore(db).purge_expired()


if __name__ == "__main__":
    configure_logging()
    db = SessionLocal()
    try:
        removed = purge_expired_users(db)
    finally:
        db.close()
    print(f"Purged {removed} expired users")
