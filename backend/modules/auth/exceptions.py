"""
Authentication module exceptions.

These exceptions are raised by the auth module and are translated into the
standard error envelope by the API exception handlers. Messages for
credential and session failures are deliberately generic so a caller cannot
tell which precondition failed.
"""

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InternalError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)


class SigningError(InternalError):
    """Raised when tokens cannot be signed or verified (no secret configured)."""

    def __init__(self, message: str = "Token signing secret is not configured"):
        super().__init__(message, code="SIGNING_ERROR")


class InvalidSignatureError(AuthenticationError):
    """Raised when a token is malformed or its signature does not verify."""

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message, code="INVALID_TOKEN")


class ExpiredTokenError(AuthenticationError):
    """Raised when a token has expired."""

    def __init__(self, message: str = "Authentication token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class MissingTokenError(AuthenticationError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "No authentication token provided"):
        super().__init__(message, code="UNAUTHORIZED")


class ExpiredSessionError(AuthenticationError):
    """Raised when a session-exchange id is unknown, expired or already used."""

    def __init__(self):
        super().__init__("Invalid or expired session", code="INVALID_CREDENTIALS")


class InvalidCredentialsError(AuthenticationError):
    """Raised for an unknown email or a wrong password."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class EmailAlreadyRegisteredError(ConflictError):
    """Raised when registering an email that already has an account."""

    def __init__(self):
        super().__init__(
            "An account with this email already exists",
            code="USER_EXISTS",
        )


class EmailNotVerifiedError(AuthorizationError):
    """Raised when an unverified account tries to log in."""

    def __init__(self):
        super().__init__(
            "Please verify your email first",
            code="EMAIL_NOT_VERIFIED",
        )


class InvalidOtpError(ValidationError):
    """Raised when a verification code is wrong, expired or already used."""

    def __init__(self):
        super().__init__(
            "Invalid or expired verification code",
            code="INVALID_OTP",
        )


class OtpCooldownError(RateLimitError):
    """Raised when a new code is requested too soon after the last one."""

    def __init__(self, retry_after: int):
        super().__init__(
            f"Please wait {retry_after} seconds before requesting a new code",
            retry_after=retry_after,
            code="OTP_COOLDOWN",
        )


class InvalidResetTokenError(ValidationError):
    """Raised when a password reset token is unknown, expired or used."""

    def __init__(self):
        super().__init__(
            "Invalid or expired reset token",
            code="INVALID_TOKEN",
        )


class SocialAuthError(AuthenticationError):
    """Raised when a third-party identity token cannot be verified."""

    def __init__(self, provider: str):
        super().__init__(
            f"{provider.capitalize()} authentication failed",
            code="INVALID_CREDENTIALS",
            details={"provider": provider},
        )


class UserNotFoundError(NotFoundError):
    """Raised when the authenticated user no longer exists."""

    def __init__(self, user_id: str):
        super().__init__(
            "User not found",
            code="NOT_FOUND",
            details={"userId": user_id},
        )
