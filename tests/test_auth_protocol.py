# tests/test_auth_protocol.py
"""Tests for the wallet authentication use cases."""

import json
from http.cookies import SimpleCookie

import pytest

from wallet_auth.core.errors import ApiError
from wallet_auth.core.settings import settings
from wallet_auth.db.time import epoch_seconds
from wallet_auth.schemas.auth import (
    CookieParams,
    CreateUserParams,
    GetNonceParams,
    LoginParams,
    ProtectedWriteParams,
    TokenClaims,
    WalletParams,
)
from wallet_auth.services.auth_protocol import (
    USER_ID_ALPHABET,
    USER_ID_LENGTH,
    AuthProtocol,
    generate_user_id,
)
from wallet_auth.services.crypto import AddressValidator
from wallet_auth.services.secrets import SettingsSecretStore
from wallet_auth.services.tokens import TokenKind, TokenService


def _cookie_header(set_cookie: str) -> str:
    jar = SimpleCookie()
    jar.load(set_cookie)
    return f"{settings.cookie_name}={jar[settings.cookie_name].value}"


def test_generate_user_id() -> None:
    user_id = generate_user_id()
    assert len(user_id) == USER_ID_LENGTH
    assert set(user_id) <= set(USER_ID_ALPHABET)


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_creates_unverified_user(self, protocol, store, wallet, context) -> None:
        result = await protocol.create_user(CreateUserParams(wallet_id=wallet.address), context)

        assert result.success is True
        assert result.verified is False
        assert result.wallet_id == wallet.address.lower()
        assert result.request_id == "req-test-1"
        user = store.get_by_wallet_id(wallet.address)
        assert user.user_id == result.user_id
        assert result.nonce == f"{settings.sign_prefix}{user.nonce}"

    @pytest.mark.asyncio
    async def test_unverified_record_gets_short_ttl(self, protocol, store, wallet, context) -> None:
        await protocol.create_user(CreateUserParams(wallet_id=wallet.address), context)
        user = store.get_by_wallet_id(wallet.address)
        remaining = user.expiry_time - epoch_seconds()
        assert 0 < remaining <= settings.unverified_user_ttl_hours * 3_600

    @pytest.mark.asyncio
    async def test_existing_wallet_conflicts_without_verify(self, protocol, wallet, context) -> None:
        await protocol.create_user(CreateUserParams(wallet_id=wallet.address), context)
        with pytest.raises(ApiError) as exc_info:
            await protocol.create_user(CreateUserParams(wallet_id=wallet.address.lower()), context)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "WalletId belongs to an existing user"

    @pytest.mark.asyncio
    async def test_missing_wallet(self, protocol, context) -> None:
        with pytest.raises(ApiError) as exc_info:
            await protocol.create_user(CreateUserParams(wallet_id="  "), context)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Missing walletId"

    @pytest.mark.asyncio
    async def test_invalid_address_when_validation_enabled(self, store, token_service, context) -> None:
        raw = json.dumps({"PROJECT_ID": "pid", "PROJECT_SECRET": "secret"})
        protocol = AuthProtocol(
            store,
            token_service,
            address_validator=AddressValidator(SettingsSecretStore(raw=raw)),
        )
        with pytest.raises(ApiError) as exc_info:
            await protocol.create_user(CreateUserParams(wallet_id="0xnot-a-wallet"), context)
        assert exc_info.value.message == "Invalid wallet Id"
        assert store.get_by_wallet_id("0xnot-a-wallet") is None

    @pytest.mark.asyncio
    async def test_verify_with_valid_signature(self, protocol, store, wallet, sign, context) -> None:
        created = await protocol.create_user(CreateUserParams(wallet_id=wallet.address), context)

        result = await protocol.create_user(
            CreateUserParams(wallet_id=wallet.address, verify=True, signature=sign(wallet, created.nonce)),
            context,
        )

        assert result.verified is True
        assert result.user_id == created.user_id
        assert result.nonce != created.nonce
        user = store.get_by_wallet_id(wallet.address)
        assert user.verified is True
        assert result.nonce == f"{settings.sign_prefix}{user.nonce}"

    @pytest.mark.asyncio
    async def test_verify_extends_ttl(self, protocol, store, wallet, sign, context) -> None:
        created = await protocol.create_user(CreateUserParams(wallet_id=wallet.address), context)
        before = store.get_by_wallet_id(wallet.address).expiry_time
        await protocol.create_user(
            CreateUserParams(wallet_id=wallet.address, verify=True, signature=sign(wallet, created.nonce)),
            context,
        )
        assert store.get_by_wallet_id(wallet.address).expiry_time > before

    @pytest.mark.asyncio
    async def test_verify_with_wrong_signer_leaves_state(
        self, protocol, store, wallet, other_wallet, sign, context
    ) -> None:
        created = await protocol.create_user(CreateUserParams(wallet_id=wallet.address), context)
        nonce_before = store.get_by_wallet_id(wallet.address).nonce

        with pytest.raises(ApiError) as exc_info:
            await protocol.create_user(
                CreateUserParams(
                    wallet_id=wallet.address,
                    verify=True,
                    signature=sign(other_wallet, created.nonce),
                ),
                context,
            )
        assert exc_info.value.status_code == 400
        user = store.get_by_wallet_id(wallet.address)
        assert user.verified is False
        assert user.nonce == nonce_before

    @pytest.mark.asyncio
    async def test_verify_rejects_login_prefixed_signature(self, protocol, store, wallet, sign, context) -> None:
        await protocol.create_user(CreateUserParams(wallet_id=wallet.address), context)
        nonce = store.get_by_wallet_id(wallet.address).nonce
        with pytest.raises(ApiError):
            await protocol.create_user(
                CreateUserParams(
                    wallet_id=wallet.address,
                    verify=True,
                    signature=sign(wallet, f"{settings.login_prefix}{nonce}"),
                ),
                context,
            )

    @pytest.mark.asyncio
    async def test_verify_unknown_wallet(self, protocol, wallet, sign, context) -> None:
        with pytest.raises(ApiError) as exc_info:
            await protocol.create_user(
                CreateUserParams(wallet_id=wallet.address, verify=True, signature=sign(wallet, "x")),
                context,
            )
        assert exc_info.value.status_code == 400
        assert "could not find" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_verify_without_signature(self, protocol, wallet, context) -> None:
        await protocol.create_user(CreateUserParams(wallet_id=wallet.address), context)
        with pytest.raises(ApiError) as exc_info:
            await protocol.create_user(CreateUserParams(wallet_id=wallet.address, verify=True), context)
        assert exc_info.value.message == "Missing signature"


class TestGetNonceAndUser:
    @pytest.mark.asyncio
    async def test_get_nonce_before_creation(self, protocol, wallet, context) -> None:
        with pytest.raises(ApiError) as exc_info:
            await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address), context)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_prefix_depends_only_on_purpose(self, protocol, store, verified_user, wallet, context) -> None:
        sign = await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address), context)
        login = await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address, login=True), context)

        nonce = store.get_by_wallet_id(wallet.address).nonce
        assert sign.nonce == f"{settings.sign_prefix}{nonce}"
        assert login.nonce == f"{settings.login_prefix}{nonce}"
        assert login.is_login is True and sign.is_login is False
        assert sign.verified is True
        assert sign.user_id == verified_user.user_id

    @pytest.mark.asyncio
    async def test_get_nonce_is_read_only(self, protocol, store, verified_user, wallet, context) -> None:
        first = await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address), context)
        second = await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address), context)
        assert first.nonce == second.nonce

    @pytest.mark.asyncio
    async def test_get_user(self, protocol, verified_user, wallet, context) -> None:
        result = await protocol.get_user(WalletParams(wallet_id=wallet.address.upper().replace("0X", "0x")), context)
        assert result.user_id == verified_user.user_id
        assert result.wallet_id == wallet.address.lower()
        assert result.verified is True

    @pytest.mark.asyncio
    async def test_get_user_unknown(self, protocol, wallet, context) -> None:
        with pytest.raises(ApiError) as exc_info:
            await protocol.get_user(WalletParams(wallet_id=wallet.address), context)
        assert exc_info.value.status_code == 400


class TestLogin:
    async def _login_signature(self, protocol, wallet, sign, context) -> str:
        nonce = await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address, login=True), context)
        return sign(wallet, nonce.nonce)

    @pytest.mark.asyncio
    async def test_login_issues_tokens(self, protocol, token_service, verified_user, wallet, sign, context) -> None:
        signature = await self._login_signature(protocol, wallet, sign, context)

        result = await protocol.login(LoginParams(wallet_id=wallet.address, signature=signature), context)

        assert result.user_id == verified_user.user_id
        assert result.auth_token
        claims = await token_service.verify(result.auth_token, TokenKind.ACCESS)
        assert claims.sub == verified_user.user_id
        refresh_claims = await token_service.validate_refresh_cookie(_cookie_header(result.cookie))
        assert refresh_claims.sub == verified_user.user_id
        assert "HttpOnly" in result.cookie and "Secure" in result.cookie

    @pytest.mark.asyncio
    async def test_login_rotates_nonce_and_blocks_replay(
        self, protocol, store, verified_user, wallet, sign, context
    ) -> None:
        old_nonce = store.get_by_wallet_id(wallet.address).nonce
        signature = await self._login_signature(protocol, wallet, sign, context)
        await protocol.login(LoginParams(wallet_id=wallet.address, signature=signature), context)

        assert store.get_by_wallet_id(wallet.address).nonce != old_nonce
        with pytest.raises(ApiError) as exc_info:
            await protocol.login(LoginParams(wallet_id=wallet.address, signature=signature), context)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_login_never_succeeds_for_unverified(self, protocol, make_user, wallet, sign, context) -> None:
        make_user(wallet, verified=False)
        signature = await self._login_signature(protocol, wallet, sign, context)
        with pytest.raises(ApiError) as exc_info:
            await protocol.login(LoginParams(wallet_id=wallet.address, signature=signature), context)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "User account is not verified"

    @pytest.mark.asyncio
    async def test_sign_prefixed_signature_cannot_log_in(self, protocol, verified_user, wallet, sign, context) -> None:
        nonce = await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address), context)
        with pytest.raises(ApiError) as exc_info:
            await protocol.login(LoginParams(wallet_id=wallet.address, signature=sign(wallet, nonce.nonce)), context)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid signature, access denied"

    @pytest.mark.asyncio
    async def test_unknown_wallet_is_401(self, protocol, wallet, sign, context) -> None:
        with pytest.raises(ApiError) as exc_info:
            await protocol.login(LoginParams(wallet_id=wallet.address, signature=sign(wallet, "x")), context)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("wallet_id", "signature"), [("", "0xabc"), ("0xabc", "")])
    async def test_missing_fields_are_401(self, protocol, context, wallet_id, signature) -> None:
        with pytest.raises(ApiError) as exc_info:
            await protocol.login(LoginParams(wallet_id=wallet_id, signature=signature), context)
        assert exc_info.value.status_code == 401


class TestRefreshAndLogout:
    @pytest.mark.asyncio
    async def test_refresh_rotates_both_tokens(self, protocol, token_service, context) -> None:
        cookie = _cookie_header(await token_service.create_refresh_cookie("U1"))

        result = await protocol.refresh(CookieParams(cookie=cookie), context)

        assert result.user_id == "U1"
        access = await token_service.verify(result.auth_token, TokenKind.ACCESS)
        assert access.sub == "U1"
        assert _cookie_header(result.cookie) != cookie

    @pytest.mark.asyncio
    async def test_sequential_refreshes_extend_expiry(self, signer, store, context) -> None:
        class Clock:
            now = 1_700_000_000.0

            def __call__(self) -> float:
                return self.now

        clock = Clock()
        tokens = TokenService(signer, clock=clock)
        protocol = AuthProtocol(store, tokens)
        cookie = _cookie_header(await tokens.create_refresh_cookie("U1"))

        first = await protocol.refresh(CookieParams(cookie=cookie), context)
        clock.now += 30
        second = await protocol.refresh(CookieParams(cookie=cookie), context)

        first_claims = await tokens.validate_refresh_cookie(_cookie_header(first.cookie))
        second_claims = await tokens.validate_refresh_cookie(_cookie_header(second.cookie))
        assert second_claims.exp > first_claims.exp

    @pytest.mark.asyncio
    async def test_refresh_with_access_token_is_rejected(self, protocol, token_service, context) -> None:
        access = await token_service.create_access_token("U1")
        with pytest.raises(ApiError) as exc_info:
            await protocol.refresh(CookieParams(cookie=f"{settings.cookie_name}={access}"), context)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_without_cookie(self, protocol, context) -> None:
        with pytest.raises(ApiError) as exc_info:
            await protocol.refresh(CookieParams(), context)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Missing cookie"

    @pytest.mark.asyncio
    async def test_logout_returns_expired_cookie(self, protocol, token_service, context) -> None:
        cookie = _cookie_header(await token_service.create_refresh_cookie("U1"))

        result = await protocol.logout(CookieParams(cookie=cookie), context)

        assert result.user_id == "U1"
        assert "Max-Age=0" in result.cookie
        assert f"{settings.cookie_name}=logout" in result.cookie

    @pytest.mark.asyncio
    async def test_logout_keeps_existing_refresh_token_valid(self, protocol, token_service, context) -> None:
        cookie = _cookie_header(await token_service.create_refresh_cookie("U1"))
        await protocol.logout(CookieParams(cookie=cookie), context)
        # No server-side revocation: the old cookie still refreshes until it expires.
        result = await protocol.refresh(CookieParams(cookie=cookie), context)
        assert result.user_id == "U1"

    @pytest.mark.asyncio
    async def test_logout_with_invalid_cookie(self, protocol, context) -> None:
        with pytest.raises(ApiError) as exc_info:
            await protocol.logout(CookieParams(cookie=f"{settings.cookie_name}=garbage"), context)
        assert exc_info.value.status_code == 401


class TestProtectedHandlers:
    @pytest.mark.asyncio
    async def test_read(self, protocol, context) -> None:
        claims = TokenClaims(iss="localhost", sub="U1", iat=0, exp=1)
        result = await protocol.protected_read(claims, context)
        assert result.message == "Successful read request"

    @pytest.mark.asyncio
    async def test_signed_write_rotates_nonce(self, protocol, store, verified_user, wallet, sign, context) -> None:
        nonce = await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address), context)
        params = ProtectedWriteParams(
            wallet_id=wallet.address,
            signature=sign(wallet, nonce.nonce),
            principal_id=verified_user.user_id,
        )

        result = await protocol.protected_write(params, context)

        assert result.message == "Successful write request"
        with pytest.raises(ApiError) as exc_info:
            await protocol.protected_write(params, context)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_write_for_someone_elses_wallet(self, protocol, verified_user, wallet, sign, context) -> None:
        nonce = await protocol.get_nonce(GetNonceParams(wallet_id=wallet.address), context)
        params = ProtectedWriteParams(
            wallet_id=wallet.address,
            signature=sign(wallet, nonce.nonce),
            principal_id="SOMEONEELSE000",
        )
        with pytest.raises(ApiError) as exc_info:
            await protocol.protected_write(params, context)
        assert exc_info.value.status_code == 403
