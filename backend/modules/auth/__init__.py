"""
Authentication module.

Handles password accounts with email verification, access/refresh tokens,
and Google/Apple sign-in with a single-use session exchange for the
browser-based Google flow.

Public API:
- IAuthService: Interface for auth operations
- TokenIssuer: Signs and verifies access/refresh token pairs
- SessionExchange: Single-use OAuth handoff ids
- Auth exceptions: InvalidCredentialsError, ExpiredSessionError, etc.
"""

from .interfaces import IAuthService
from .models import AuthResult, AuthTokens, User, UserResponse
from .session_exchange import SessionExchange
from .tokens import TokenIssuer
from .exceptions import (
    EmailAlreadyRegisteredError,
    EmailNotVerifiedError,
    ExpiredSessionError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidOtpError,
    InvalidResetTokenError,
    InvalidSignatureError,
    MissingTokenError,
    OtpCooldownError,
    SigningError,
    SocialAuthError,
    UserNotFoundError,
)

__all__ = [
    # Interface
    "IAuthService",
    # Components
    "TokenIssuer",
    "SessionExchange",
    # Models
    "AuthResult",
    "AuthTokens",
    "User",
    "UserResponse",
    # Exceptions
    "EmailAlreadyRegisteredError",
    "EmailNotVerifiedError",
    "ExpiredSessionError",
    "ExpiredTokenError",
    "InvalidCredentialsError",
    "InvalidOtpError",
    "InvalidResetTokenError",
    "InvalidSignatureError",
    "MissingTokenError",
    "OtpCooldownError",
    "SigningError",
    "SocialAuthError",
    "UserNotFoundError",
]
