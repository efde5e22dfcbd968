"""Create the wallet auth tables on the configured database."""

from wallet_auth.core.settings import settings
from wallet_auth.db.session import create_tables


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()


if __name__ == "__main__":
    init_db()
    print(f"Database initialized at {settings.effective_database_url}.")
