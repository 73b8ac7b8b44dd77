"""
Authentication module interface.

Other modules should depend on IAuthService, not the concrete implementation.
This enables testing with mocks and future extraction to a microservice.
"""

from typing import Optional, Protocol, Union, runtime_checkable

from .models import (
    AuthResult,
    AuthTokens,
    MessageResponse,
    PendingVerification,
    ResetTokenResult,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    User,
    UserResponse,
)


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for authentication operations.

    An email address moves through unregistered -> pending verification ->
    active. Each operation raises a typed AppError subclass when its
    precondition does not hold.
    """

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str = "",
    ) -> PendingVerification:
        """
        Create an unverified account and email it a verification code.

        Raises:
            EmailAlreadyRegisteredError: If the email already has an account
        """
        ...

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Sign in with email and password.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            EmailNotVerifiedError: Account still pending verification
        """
        ...

    async def verify_otp(
        self,
        email: str,
        code: str,
    ) -> Union[AuthResult, ResetTokenResult]:
        """
        Redeem a verification code.

        Registration codes activate the account and sign the user in.
        Password-reset codes return a one-hour reset token.

        Raises:
            InvalidOtpError: Wrong, expired or already used code
        """
        ...

    async def resend_otp(self, email: str) -> MessageResponse:
        """
        Send a fresh code, replacing any outstanding one.

        Raises:
            OtpCooldownError: A code was sent less than a minute ago
        """
        ...

    async def forgot_password(self, email: str) -> MessageResponse:
        """Send a password-reset code. Never reveals whether the email exists."""
        ...

    async def reset_password(self, reset_token: str, new_password: str) -> MessageResponse:
        """
        Raises:
            InvalidResetTokenError: Unknown, expired or already used token
        """
        ...

    async def refresh(self, refresh_token: str) -> AuthTokens:
        """
        Raises:
            AuthenticationError: Invalid or expired refresh token
        """
        ...

    async def get_user(self, user_id: str) -> Optional[User]:
        """Load a user record, or None if it does not exist."""
        ...

    async def get_current_user(self, user_id: str) -> UserResponse:
        ...

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> UserResponse:
        ...

    async def update_password(self, user_id: str, request: UpdatePasswordRequest) -> MessageResponse:
        ...

    async def logout(self, user_id: str) -> MessageResponse:
        ...

    def google_authorization_url(self, redirect_uri: str, platform: Optional[str] = None) -> str:
        """Build the Google consent-screen URL for the server-side flow."""
        ...

    async def complete_google_callback(self, code: str, state: str) -> str:
        """
        Finish the server-side Google flow.

        Returns:
            The client redirect URL carrying a single-use session id.
        """
        ...

    async def exchange_session(self, session_id: str) -> AuthResult:
        """
        Raises:
            ExpiredSessionError: Unknown, expired or already used session id,
                or its user no longer exists
        """
        ...

    async def sign_in_with_google(self, id_token: str) -> AuthResult:
        ...

    async def sign_in_with_apple(
        self,
        identity_token: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> AuthResult:
        ...
