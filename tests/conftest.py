# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator, Iterator

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wallet_auth.api.v1.dependencies import get_secret_store_dep, get_token_service_dep
from wallet_auth.db.session import Base
from wallet_auth.db.session import get_db as app_get_session
from wallet_auth.db.time import epoch_seconds, utcnow
from wallet_auth.main import app as fastapi_app
from wallet_auth.models import User
from wallet_auth.repositories import SqlUserStore
from wallet_auth.schemas.auth import RequestContext
from wallet_auth.services.auth_protocol import AuthProtocol, generate_user_id
from wallet_auth.services.crypto import AddressValidator
from wallet_auth.services.nonce import generate_nonce
from wallet_auth.services.secrets import SettingsSecretStore
from wallet_auth.services.signer import LocalRsaSigner
from wallet_auth.services.tokens import TokenService

TEST_DB_URL = "sqlite://"
TEST_ISSUER = "localhost"


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db_session: Session) -> SqlUserStore:
    return SqlUserStore(db_session)


@pytest.fixture(scope="session")
def signer() -> LocalRsaSigner:
    """One RSA key for the whole run; generating keys is slow."""
    return LocalRsaSigner.generate("test-key")


@pytest.fixture()
def token_service(signer: LocalRsaSigner) -> TokenService:
    return TokenService(signer, issuer=TEST_ISSUER, audience=["nrg"])


@pytest.fixture()
def skip_secret_store() -> SettingsSecretStore:
    """Secret store with nothing configured, so address validation is skipped."""
    return SettingsSecretStore(raw="", path="")


@pytest.fixture()
def protocol(
    store: SqlUserStore,
    token_service: TokenService,
    skip_secret_store: SettingsSecretStore,
) -> AuthProtocol:
    return AuthProtocol(
        store,
        token_service,
        address_validator=AddressValidator(skip_secret_store),
    )


@pytest.fixture()
def context() -> RequestContext:
    return RequestContext(request_id="req-test-1", source_ip="127.0.0.1")


@pytest.fixture()
def wallet() -> LocalAccount:
    return Account.create()


@pytest.fixture()
def other_wallet() -> LocalAccount:
    return Account.create()


def sign_text(account: LocalAccount, message: str) -> str:
    """Produce a personal-message signature as a 0x-prefixed hex string."""
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture()
def sign() -> Callable[[LocalAccount, str], str]:
    return sign_text


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    token_service: TokenService,
    skip_secret_store: SettingsSecretStore,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_token_service_dep] = lambda: token_service
    app.dependency_overrides[get_secret_store_dep] = lambda: skip_secret_store
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_user(store: SqlUserStore) -> Callable[..., User]:
    """Insert a user row directly, bypassing the use cases."""

    def _make_user(account: LocalAccount, *, verified: bool = True, ttl: int = 3_600) -> User:
        now = utcnow()
        user = User(
            user_id=generate_user_id(),
            wallet_id=account.address,
            nonce=generate_nonce(),
            verified=verified,
            created_time=now,
            last_login=now,
            expiry_time=epoch_seconds() + ttl,
        )
        return store.put_if_absent(user)

    return _make_user


@pytest.fixture()
def verified_user(make_user: Callable[..., User], wallet: LocalAccount) -> User:
    return make_user(wallet, verified=True)
