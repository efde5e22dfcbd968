"""Application settings and configuration.

This module defines all configuration options for the wallet auth service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Wallet Auth", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Database configuration
    database_url: str = Field(default="sqlite:///./wallet_auth.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Token settings
    token_issuer: str = Field(default="localhost", alias="TOKEN_ISSUER")
    token_audience: list[str] = Field(default=["nrg"], alias="TOKEN_AUDIENCE")
    auth_token_minutes: int = Field(default=5, ge=1, alias="AUTH_TOKEN_MINUTES")
    refresh_token_minutes: int = Field(default=60, ge=1, alias="REFRESH_TOKEN_MINUTES")

    # Nonce presentation and user lifetime
    login_prefix: str = Field(
        default="Login to My Demo by signing this one-time key: ",
        alias="LOGIN_PREFIX",
    )
    sign_prefix: str = Field(
        default="Sign the one-time key to continue: ",
        alias="SIGN_PREFIX",
    )
    expire_users_days: int = Field(default=36_500, ge=1, alias="EXPIRE_USERS_DAYS")
    unverified_user_ttl_hours: int = Field(default=24, ge=1, alias="UNVERIFIED_USER_TTL_HOURS")

    # Refresh cookie
    cookie_name: str = Field(default="token", alias="COOKIE_NAME")
    cookie_path: str = Field(default="/", alias="COOKIE_PATH")
    cookie_domain: str | None = Field(default=None, alias="COOKIE_DOMAIN")

    # Signing service
    signing_key_id: str = Field(default="local", alias="SIGNING_KEY_ID")
    signing_key_path: str | None = Field(default=None, alias="SIGNING_KEY_PATH")
    signing_key_pem: str | None = Field(default=None, alias="SIGNING_KEY_PEM")
    signer_timeout_seconds: float = Field(default=5.0, gt=0, alias="SIGNER_TIMEOUT_SECONDS")

    # Optional third-party credential for wallet address validation
    address_validation_secret: str | None = Field(
        default=None,
        alias="ADDRESS_VALIDATION_SECRET",
    )
    address_validation_secret_path: str | None = Field(
        default=None,
        alias="ADDRESS_VALIDATION_SECRET_PATH",
    )

    # Request gateway
    api_resource: str = Field(default="*", alias="API_RESOURCE")
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Invalid LOG_LEVEL. Must be one of: {allowed}")
        return v_upper

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


settings = Settings()
