"""Tests for the authentication service."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from postgrest.exceptions import APIError

from modules.auth.exceptions import (
    EmailAlreadyRegisteredError,
    EmailNotVerifiedError,
    ExpiredSessionError,
    InvalidCredentialsError,
    InvalidOtpError,
    InvalidResetTokenError,
    OtpCooldownError,
    SocialAuthError,
    UserNotFoundError,
)
from modules.auth.interfaces import IAuthService
from modules.auth.models import (
    AuthResult,
    OAuthProvider,
    OtpCode,
    OtpType,
    ResetTokenResult,
    SocialIdentity,
    TemporarySession,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    User,
)
from modules.auth.passwords import hash_password
from modules.auth.service import AuthService
from modules.auth.session_exchange import SessionExchange
from modules.auth.tokens import TokenIssuer
from shared.exceptions import AuthenticationError, ValidationError

from tests.conftest import TEST_JWT_SECRET


PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)


def make_user(**overrides) -> User:
    data = {
        "id": "user-1",
        "email": "ada@example.com",
        "password_hash": PASSWORD_HASH,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email_verified": True,
    }
    data.update(overrides)
    return User(**data)


def make_otp(otp_type: OtpType = OtpType.REGISTRATION) -> OtpCode:
    now = datetime.now(timezone.utc)
    return OtpCode(
        id="otp-1",
        user_id="user-1",
        code="123456",
        type=otp_type,
        expires_at=now + timedelta(minutes=10),
        verified=True,
        created_at=now,
    )


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.get_user_by_email.return_value = None
    repo.get_last_otp_sent_at.return_value = None
    repo.purge_expired_sessions.return_value = 0
    repo.purge_expired_reset_tokens.return_value = 0
    return repo


@pytest.fixture
def mailer():
    return AsyncMock()


@pytest.fixture
def google():
    return MagicMock(exchange_code=AsyncMock())


@pytest.fixture
def verifier():
    return AsyncMock()


@pytest.fixture
def tokens():
    return TokenIssuer(TEST_JWT_SECRET)


@pytest.fixture
def service(repository, tokens, mailer, google, verifier):
    return AuthService(
        repository=repository,
        tokens=tokens,
        sessions=SessionExchange(repository),
        mailer=mailer,
        google=google,
        verifier=verifier,
    )


def test_implements_interface(service):
    assert isinstance(service, IAuthService)


class TestRegister:
    @pytest.mark.asyncio
    async def test_creates_unverified_user_and_sends_code(self, service, repository, mailer):
        repository.create_user.return_value = make_user(email_verified=False)

        result = await service.register("Ada@Example.com", PASSWORD, "Ada", "Lovelace")

        data = repository.create_user.call_args[0][0]
        assert data["email"] == "ada@example.com"
        assert data["email_verified"] is False
        assert data["password_hash"] != PASSWORD
        assert result.user.email == "ada@example.com"
        repository.create_otp.assert_called_once()
        mailer.send_otp.assert_awaited_once()
        assert mailer.send_otp.call_args[0][2] == OtpType.REGISTRATION

    @pytest.mark.asyncio
    async def test_existing_email(self, service, repository):
        repository.get_user_by_email.return_value = make_user()

        with pytest.raises(EmailAlreadyRegisteredError):
            await service.register("ada@example.com", PASSWORD, "Ada")

        repository.create_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_pending_email_is_also_taken(self, service, repository):
        repository.get_user_by_email.return_value = make_user(email_verified=False)

        with pytest.raises(EmailAlreadyRegisteredError):
            await service.register("ada@example.com", PASSWORD, "Ada")

    @pytest.mark.asyncio
    async def test_concurrent_registration_loses_on_unique_index(self, service, repository):
        repository.create_user.side_effect = APIError({"code": "23505", "message": "duplicate key"})

        with pytest.raises(EmailAlreadyRegisteredError):
            await service.register("ada@example.com", PASSWORD, "Ada")


class TestLogin:
    @pytest.mark.asyncio
    async def test_success_returns_tokens(self, service, repository, tokens):
        repository.get_user_by_email.return_value = make_user()

        result = await service.login("ada@example.com", PASSWORD)

        assert isinstance(result, AuthResult)
        assert tokens.verify(result.tokens.access_token).user_id == "user-1"
        assert result.user.has_password is True

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_the_same(self, service, repository):
        with pytest.raises(InvalidCredentialsError) as unknown:
            await service.login("nobody@example.com", PASSWORD)

        repository.get_user_by_email.return_value = make_user()
        with pytest.raises(InvalidCredentialsError) as wrong:
            await service.login("ada@example.com", "wrong-password")

        assert unknown.value.message == wrong.value.message

    @pytest.mark.asyncio
    async def test_social_only_account_has_no_password(self, service, repository):
        repository.get_user_by_email.return_value = make_user(password_hash=None, google_id="g-1")

        with pytest.raises(InvalidCredentialsError):
            await service.login("ada@example.com", PASSWORD)

    @pytest.mark.asyncio
    async def test_unverified_account_gets_new_code(self, service, repository, mailer):
        repository.get_user_by_email.return_value = make_user(email_verified=False)

        with pytest.raises(EmailNotVerifiedError):
            await service.login("ada@example.com", PASSWORD)

        repository.invalidate_otps.assert_called_once_with("user-1")
        mailer.send_otp.assert_awaited_once()


class TestVerifyOtp:
    @pytest.mark.asyncio
    async def test_registration_code_verifies_and_signs_in(self, service, repository, mailer):
        repository.get_user_by_email.return_value = make_user(email_verified=False)
        repository.consume_otp.return_value = make_otp()
        repository.update_user.return_value = make_user()

        result = await service.verify_otp("ada@example.com", "123456")

        assert isinstance(result, AuthResult)
        repository.update_user.assert_called_once_with("user-1", {"email_verified": True})
        mailer.send_welcome.assert_awaited_once_with("ada@example.com", "Ada")

    @pytest.mark.asyncio
    async def test_reset_code_returns_reset_token(self, service, repository):
        repository.get_user_by_email.return_value = make_user()
        repository.consume_otp.return_value = make_otp(OtpType.PASSWORD_RESET)

        result = await service.verify_otp("ada@example.com", "123456")

        assert isinstance(result, ResetTokenResult)
        assert len(result.reset_token) == 64
        user_id, token, _ = repository.create_reset_token.call_args[0]
        assert user_id == "user-1"
        assert token == result.reset_token
        repository.purge_expired_reset_tokens.assert_called_once()

    @pytest.mark.asyncio
    async def test_wrong_or_used_code(self, service, repository):
        repository.get_user_by_email.return_value = make_user()
        repository.consume_otp.return_value = None

        with pytest.raises(InvalidOtpError):
            await service.verify_otp("ada@example.com", "000000")

    @pytest.mark.asyncio
    async def test_unknown_email(self, service):
        with pytest.raises(InvalidOtpError):
            await service.verify_otp("nobody@example.com", "123456")


class TestResendOtp:
    @pytest.mark.asyncio
    async def test_unknown_email_is_not_revealed(self, service, mailer):
        result = await service.resend_otp("nobody@example.com")
        assert "If the email exists" in result.message
        mailer.send_otp.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cooldown(self, service, repository):
        repository.get_user_by_email.return_value = make_user(email_verified=False)
        repository.get_last_otp_sent_at.return_value = datetime.now(timezone.utc) - timedelta(seconds=10)

        with pytest.raises(OtpCooldownError) as exc_info:
            await service.resend_otp("ada@example.com")

        assert 1 <= exc_info.value.retry_after <= 50

    @pytest.mark.asyncio
    async def test_sends_registration_code_to_pending_account(self, service, repository, mailer):
        repository.get_user_by_email.return_value = make_user(email_verified=False)

        await service.resend_otp("ada@example.com")

        assert mailer.send_otp.call_args[0][2] == OtpType.REGISTRATION


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_forgot_password_same_answer_for_unknown_email(self, service, repository, mailer):
        unknown = await service.forgot_password("nobody@example.com")
        repository.get_user_by_email.return_value = make_user()
        known = await service.forgot_password("ada@example.com")

        assert unknown.message == known.message
        mailer.send_otp.assert_awaited_once()
        assert mailer.send_otp.call_args[0][2] == OtpType.PASSWORD_RESET

    @pytest.mark.asyncio
    async def test_reset_password(self, service, repository):
        repository.consume_reset_token.return_value = "user-1"
        repository.update_user.return_value = make_user()

        await service.reset_password("token", "new-password")

        fields = repository.update_user.call_args[0][1]
        assert fields["password_hash"].startswith("$2")

    @pytest.mark.asyncio
    async def test_reset_with_used_token(self, service, repository):
        repository.consume_reset_token.return_value = None

        with pytest.raises(InvalidResetTokenError):
            await service.reset_password("token", "new-password")


class TestRefresh:
    @pytest.mark.asyncio
    async def test_issues_new_pair(self, service, repository, tokens):
        repository.get_user_by_id.return_value = make_user()
        pair = tokens.issue("user-1", "ada@example.com")

        result = await service.refresh(pair.refresh_token)

        assert tokens.verify(result.access_token).user_id == "user-1"

    @pytest.mark.asyncio
    async def test_invalid_token(self, service):
        with pytest.raises(AuthenticationError):
            await service.refresh("garbage")

    @pytest.mark.asyncio
    async def test_deleted_user(self, service, repository, tokens):
        repository.get_user_by_id.return_value = None
        pair = tokens.issue("user-1", "ada@example.com")

        with pytest.raises(AuthenticationError):
            await service.refresh(pair.refresh_token)


class TestProfile:
    @pytest.mark.asyncio
    async def test_get_current_user_hides_hash(self, service, repository):
        repository.get_user_by_id.return_value = make_user()

        user = await service.get_current_user("user-1")

        assert "password_hash" not in user.model_dump()
        assert user.has_password is True

    @pytest.mark.asyncio
    async def test_get_current_user_missing(self, service, repository):
        repository.get_user_by_id.return_value = None
        with pytest.raises(UserNotFoundError):
            await service.get_current_user("user-1")

    @pytest.mark.asyncio
    async def test_update_profile_writes_only_sent_fields(self, service, repository):
        repository.update_user.return_value = make_user(personal_context="I run a small team")

        await service.update_profile(
            "user-1", UpdateProfileRequest.model_validate({"personalContext": "I run a small team"})
        )

        repository.update_user.assert_called_once_with("user-1", {"personal_context": "I run a small team"})

    @pytest.mark.asyncio
    async def test_update_password_requires_current_password(self, service, repository):
        repository.get_user_by_id.return_value = make_user()

        with pytest.raises(ValidationError):
            await service.update_password("user-1", UpdatePasswordRequest(new_password="another1"))

    @pytest.mark.asyncio
    async def test_update_password_checks_current_password(self, service, repository):
        repository.get_user_by_id.return_value = make_user()

        with pytest.raises(InvalidCredentialsError):
            await service.update_password(
                "user-1", UpdatePasswordRequest(current_password="nope", new_password="another1")
            )

    @pytest.mark.asyncio
    async def test_social_account_can_set_first_password(self, service, repository):
        repository.get_user_by_id.return_value = make_user(password_hash=None)

        await service.update_password("user-1", UpdatePasswordRequest(new_password="another1"))

        repository.update_user.assert_called_once()


class TestSocialSignIn:
    @pytest.mark.asyncio
    async def test_google_id_token(self, service, repository, verifier):
        identity = SocialIdentity(
            provider=OAuthProvider.GOOGLE, subject="g-1", email="ada@example.com", email_verified=True
        )
        verifier.verify_google.return_value = identity
        repository.resolve_social_identity.return_value = make_user(google_id="g-1")

        result = await service.sign_in_with_google("id-token")

        repository.resolve_social_identity.assert_called_once_with(identity)
        assert result.user.google_id == "g-1"

    @pytest.mark.asyncio
    async def test_unverified_email_is_not_used_for_linking(self, service, repository, verifier):
        verifier.verify_google.return_value = SocialIdentity(
            provider=OAuthProvider.GOOGLE, subject="g-1", email="ada@example.com", email_verified=False
        )
        repository.resolve_social_identity.return_value = make_user(email=None, google_id="g-1")

        await service.sign_in_with_google("id-token")

        passed = repository.resolve_social_identity.call_args[0][0]
        assert passed.email is None

    @pytest.mark.asyncio
    async def test_apple_passes_device_name(self, service, repository, verifier):
        verifier.verify_apple.return_value = SocialIdentity(
            provider=OAuthProvider.APPLE, subject="a-1", email="ada@example.com", email_verified=True,
            first_name="Ada", last_name="Lovelace",
        )
        repository.resolve_social_identity.return_value = make_user(apple_id="a-1")

        await service.sign_in_with_apple("identity-token", "Ada", "Lovelace")

        verifier.verify_apple.assert_awaited_once_with("identity-token", "Ada", "Lovelace")

    @pytest.mark.asyncio
    async def test_identity_conflict(self, service, repository, verifier):
        verifier.verify_apple.return_value = SocialIdentity(
            provider=OAuthProvider.APPLE, subject="a-2", email="ada@example.com", email_verified=True
        )
        repository.resolve_social_identity.return_value = None

        with pytest.raises(SocialAuthError):
            await service.sign_in_with_apple("identity-token")


class TestGoogleServerFlow:
    @pytest.mark.asyncio
    async def test_callback_mints_session_and_redirects(self, service, repository, google):
        google.read_state.return_value = {"redirectUri": "mentormind://auth/google"}
        google.exchange_code.return_value = SocialIdentity(
            provider=OAuthProvider.GOOGLE, subject="g-1", email="ada@example.com", email_verified=True
        )
        repository.resolve_social_identity.return_value = make_user(google_id="g-1")

        target = await service.complete_google_callback("code", "state")

        session = repository.create_temporary_session.call_args[0][0]
        assert session.user_id == "user-1"
        assert target == f"mentormind://auth/google?sessionId={session.session_id}"

    @pytest.mark.asyncio
    async def test_exchange_session(self, service, repository, tokens):
        repository.consume_temporary_session.return_value = TemporarySession(
            session_id="abc",
            user_id="user-1",
            provider=OAuthProvider.GOOGLE,
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=5),
            used=True,
        )
        repository.get_user_by_id.return_value = make_user()

        result = await service.exchange_session("abc")

        assert tokens.verify(result.tokens.access_token).user_id == "user-1"

    @pytest.mark.asyncio
    async def test_exchange_session_twice(self, service, repository):
        repository.consume_temporary_session.return_value = None

        with pytest.raises(ExpiredSessionError):
            await service.exchange_session("abc")

    @pytest.mark.asyncio
    async def test_exchange_session_for_deleted_user(self, service, repository):
        repository.consume_temporary_session.return_value = TemporarySession(
            session_id="abc",
            user_id="user-1",
            provider=OAuthProvider.GOOGLE,
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=5),
            used=True,
        )
        repository.get_user_by_id.return_value = None

        with pytest.raises(ExpiredSessionError):
            await service.exchange_session("abc")


@pytest.mark.asyncio
async def test_logout_is_stateless(service, repository):
    result = await service.logout("user-1")
    assert result.message == "Logged out successfully"
    repository.update_user.assert_not_called()
