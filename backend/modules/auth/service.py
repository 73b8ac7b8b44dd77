"""
Authentication service implementation.

Owns the account lifecycle (registration, email verification, password
login and reset), token refresh, and sign-in with Google and Apple.
Persistence goes through AuthRepository; every single-use credential is
consumed with a conditional update there.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from postgrest.exceptions import APIError

from shared.config import Settings
from shared.database import is_unique_violation
from shared.exceptions import AuthenticationError, ValidationError

from .exceptions import (
    EmailAlreadyRegisteredError,
    EmailNotVerifiedError,
    ExpiredSessionError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidOtpError,
    InvalidResetTokenError,
    InvalidSignatureError,
    OtpCooldownError,
    SocialAuthError,
    UserNotFoundError,
)
from .interfaces import IAuthService
from .mailer import Mailer
from .models import (
    AccountState,
    AuthResult,
    AuthTokens,
    MessageResponse,
    OAuthProvider,
    OtpType,
    PendingVerification,
    ResetTokenResult,
    SocialIdentity,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    User,
    UserResponse,
)
from .oauth import GoogleOAuthClient, IdentityTokenVerifier
from .otp import cooldown_remaining, generate_otp, otp_expiry
from .passwords import hash_password, verify_password
from .repository import AuthRepository
from .session_exchange import SessionExchange
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)


RESET_TOKEN_BYTES = 32
RESET_TOKEN_TTL = timedelta(hours=1)

FORGOT_PASSWORD_MESSAGE = "If the email exists, an OTP has been sent."
RESEND_OTP_MESSAGE = "If the email exists, a new code has been sent."


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Collaborators are injected so each one can be replaced in tests.
    """

    def __init__(
        self,
        repository: AuthRepository,
        tokens: TokenIssuer,
        sessions: SessionExchange,
        mailer: Mailer,
        google: GoogleOAuthClient,
        verifier: IdentityTokenVerifier,
    ) -> None:
        self._repository = repository
        self._tokens = tokens
        self._sessions = sessions
        self._mailer = mailer
        self._google = google
        self._verifier = verifier

    @classmethod
    def from_settings(cls, settings: Settings, repository: AuthRepository) -> "AuthService":
        return cls(
            repository=repository,
            tokens=TokenIssuer.from_settings(settings),
            sessions=SessionExchange(repository),
            mailer=Mailer(settings),
            google=GoogleOAuthClient(settings),
            verifier=IdentityTokenVerifier.from_settings(settings),
        )

    # -------------------------------------------------------------------------
    # Password accounts
    # -------------------------------------------------------------------------

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str = "",
    ) -> PendingVerification:
        email = email.lower()
        if self._account_state(email) is not AccountState.UNREGISTERED:
            raise EmailAlreadyRegisteredError()

        try:
            user = self._repository.create_user({
                "email": email,
                "password_hash": hash_password(password),
                "first_name": first_name,
                "last_name": last_name,
                "email_verified": False,
            })
        except APIError as e:
            # Lost a race with a concurrent registration of the same email
            if is_unique_violation(e):
                raise EmailAlreadyRegisteredError()
            raise

        logger.info("Registered user %s, awaiting email verification", user.id)
        await self._issue_otp(user, OtpType.REGISTRATION)
        return PendingVerification(user=UserResponse.from_user(user))

    async def login(self, email: str, password: str) -> AuthResult:
        user = self._repository.get_user_by_email(email)
        if user is None or user.password_hash is None:
            raise InvalidCredentialsError()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if user.state is AccountState.PENDING_VERIFICATION:
            await self._issue_otp(user, OtpType.REGISTRATION)
            raise EmailNotVerifiedError()

        return self._create_session(user)

    async def verify_otp(
        self,
        email: str,
        code: str,
    ) -> Union[AuthResult, ResetTokenResult]:
        user = self._repository.get_user_by_email(email)
        if user is None:
            raise InvalidOtpError()

        now = datetime.now(timezone.utc)
        otp = self._repository.consume_otp(user.id, code, now)
        if otp is None:
            raise InvalidOtpError()

        if otp.type is OtpType.PASSWORD_RESET:
            return ResetTokenResult(reset_token=self._mint_reset_token(user.id, now))

        if not user.email_verified:
            user = self._repository.update_user(user.id, {"email_verified": True}) or user
            logger.info("Verified email for user %s", user.id)
            if user.email:
                await self._mailer.send_welcome(user.email, user.first_name)

        return self._create_session(user)

    async def resend_otp(self, email: str) -> MessageResponse:
        user = self._repository.get_user_by_email(email)
        if user is None:
            return MessageResponse(message=RESEND_OTP_MESSAGE)

        now = datetime.now(timezone.utc)
        retry_after = cooldown_remaining(self._repository.get_last_otp_sent_at(user.id), now)
        if retry_after:
            raise OtpCooldownError(retry_after)

        otp_type = OtpType.PASSWORD_RESET if user.email_verified else OtpType.REGISTRATION
        await self._issue_otp(user, otp_type)
        return MessageResponse(message=RESEND_OTP_MESSAGE)

    async def forgot_password(self, email: str) -> MessageResponse:
        user = self._repository.get_user_by_email(email)
        if user is not None:
            await self._issue_otp(user, OtpType.PASSWORD_RESET)
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    async def reset_password(self, reset_token: str, new_password: str) -> MessageResponse:
        now = datetime.now(timezone.utc)
        user_id = self._repository.consume_reset_token(reset_token, now)
        if user_id is None:
            raise InvalidResetTokenError()

        user = self._repository.update_user(user_id, {"password_hash": hash_password(new_password)})
        if user is None:
            raise UserNotFoundError(user_id)

        logger.info("Password reset for user %s", user_id)
        return MessageResponse(message="Password reset successfully")

    # -------------------------------------------------------------------------
    # Tokens and profile
    # -------------------------------------------------------------------------

    async def refresh(self, refresh_token: str) -> AuthTokens:
        try:
            claims = self._tokens.verify(refresh_token)
        except (ExpiredTokenError, InvalidSignatureError) as e:
            logger.debug("Refresh rejected: %s", e.code)
            raise AuthenticationError("Invalid or expired refresh token")

        user = self._repository.get_user_by_id(claims.user_id)
        if user is None:
            raise AuthenticationError("Invalid or expired refresh token")
        return self._tokens.issue(user.id, user.email)

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._repository.get_user_by_id(user_id)

    async def get_current_user(self, user_id: str) -> UserResponse:
        user = self._repository.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return UserResponse.from_user(user)

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> UserResponse:
        fields = request.model_dump(exclude_unset=True)
        if not fields:
            return await self.get_current_user(user_id)

        user = self._repository.update_user(user_id, fields)
        if user is None:
            raise UserNotFoundError(user_id)
        return UserResponse.from_user(user)

    async def update_password(self, user_id: str, request: UpdatePasswordRequest) -> MessageResponse:
        user = self._repository.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        # Social-only accounts may set a first password without a current one
        if user.password_hash is not None:
            if not request.current_password:
                raise ValidationError(
                    "Current password is required",
                    details={"currentPassword": ["Current password is required"]},
                )
            if not verify_password(request.current_password, user.password_hash):
                raise InvalidCredentialsError("Current password is incorrect")

        self._repository.update_user(user_id, {"password_hash": hash_password(request.new_password)})
        return MessageResponse(message="Password updated successfully")

    async def logout(self, user_id: str) -> MessageResponse:
        # Tokens are stateless; the client discards them.
        logger.info("User %s logged out", user_id)
        return MessageResponse(message="Logged out successfully")

    # -------------------------------------------------------------------------
    # Social sign-in
    # -------------------------------------------------------------------------

    def google_authorization_url(self, redirect_uri: str, platform: Optional[str] = None) -> str:
        return self._google.authorization_url(redirect_uri, platform)

    async def complete_google_callback(self, code: str, state: str) -> str:
        state_data = self._google.read_state(state)
        identity = await self._google.exchange_code(code)
        user = self._resolve_identity(identity)

        session = self._sessions.mint(user.id, OAuthProvider.GOOGLE)
        logger.info("Google sign-in for user %s, handing off via session exchange", user.id)
        return self._sessions.redirect_url(state_data["redirectUri"], session)

    async def exchange_session(self, session_id: str) -> AuthResult:
        user_id = self._sessions.exchange(session_id)
        user = self._repository.get_user_by_id(user_id)
        if user is None:
            logger.warning("Session exchanged for missing user %s", user_id)
            raise ExpiredSessionError()
        return self._create_session(user)

    async def sign_in_with_google(self, id_token: str) -> AuthResult:
        identity = await self._verifier.verify_google(id_token)
        return self._create_session(self._resolve_identity(identity))

    async def sign_in_with_apple(
        self,
        identity_token: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> AuthResult:
        identity = await self._verifier.verify_apple(identity_token, first_name, last_name)
        return self._create_session(self._resolve_identity(identity))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _account_state(self, email: str) -> AccountState:
        user = self._repository.get_user_by_email(email)
        if user is None:
            return AccountState.UNREGISTERED
        return user.state

    def _create_session(self, user: User) -> AuthResult:
        return AuthResult(
            user=UserResponse.from_user(user),
            tokens=self._tokens.issue(user.id, user.email),
        )

    def _resolve_identity(self, identity: SocialIdentity) -> User:
        if identity.email and not identity.email_verified:
            # An unverified email must not be used to link an existing account
            identity = identity.model_copy(update={"email": None})

        user = self._repository.resolve_social_identity(identity)
        if user is None:
            logger.warning(
                "%s identity %s conflicts with an account linked elsewhere",
                identity.provider.value,
                identity.subject,
            )
            raise SocialAuthError(identity.provider.value)
        return user

    async def _issue_otp(self, user: User, otp_type: OtpType) -> None:
        now = datetime.now(timezone.utc)
        code = generate_otp()
        self._repository.invalidate_otps(user.id)
        self._repository.create_otp(user.id, code, otp_type, otp_expiry(now))
        if user.email:
            await self._mailer.send_otp(user.email, code, otp_type)

    def _mint_reset_token(self, user_id: str, now: datetime) -> str:
        purged = self._repository.purge_expired_reset_tokens(now)
        if purged:
            logger.debug("Purged %d expired reset tokens", purged)

        token = secrets.token_hex(RESET_TOKEN_BYTES)
        self._repository.create_reset_token(user_id, token, now + RESET_TOKEN_TTL)
        return token

