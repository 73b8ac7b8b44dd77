"""
Authentication module data models.

Domain records (User, OtpCode, TemporarySession, PasswordResetToken) mirror
the database rows. Request and response models extend CamelModel because
they cross the HTTP boundary to the mobile client.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from shared.models import CamelModel


MAX_PERSONAL_CONTEXT_LENGTH = 5000


class OtpType(str, Enum):
    """What a one-time code unlocks once verified."""

    REGISTRATION = "registration"
    PASSWORD_RESET = "password-reset"


class OAuthProvider(str, Enum):
    """Third-party identity providers."""

    GOOGLE = "google"
    APPLE = "apple"


class AccountState(str, Enum):
    """Where an email address sits in the registration lifecycle."""

    UNREGISTERED = "unregistered"
    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"


# -----------------------------------------------------------------------------
# Domain records
# -----------------------------------------------------------------------------


class User(BaseModel):
    """A stored user account."""

    id: str = Field(..., description="User ID (UUID)")
    email: Optional[str] = Field(None, description="Lower-cased email address")
    password_hash: Optional[str] = Field(None, description="bcrypt hash, if a password is set")
    first_name: str = Field(default="", description="Given name")
    last_name: str = Field(default="", description="Family name")
    picture: Optional[str] = Field(None, description="Avatar URL")
    email_verified: bool = Field(default=False, description="Whether the email is verified")
    google_id: Optional[str] = Field(None, description="Google account subject")
    apple_id: Optional[str] = Field(None, description="Apple account subject")
    personal_context: Optional[str] = Field(
        None,
        max_length=MAX_PERSONAL_CONTEXT_LENGTH,
        description="Free-text context used to personalise coaching content",
    )
    language: str = Field(default="English", description="Content language")
    created_at: Optional[datetime] = Field(None, description="Account creation time")

    @property
    def state(self) -> AccountState:
        if self.email_verified:
            return AccountState.ACTIVE
        return AccountState.PENDING_VERIFICATION

    @property
    def display_name(self) -> Optional[str]:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or None


class OtpCode(BaseModel):
    """A six-digit verification code sent by email."""

    id: str
    user_id: str
    code: str
    type: OtpType
    expires_at: datetime
    verified: bool = False
    created_at: datetime


class TemporarySession(BaseModel):
    """Single-use handoff between an OAuth redirect and the mobile client."""

    session_id: str
    user_id: str
    provider: OAuthProvider
    expires_at: datetime
    used: bool = False


class SocialIdentity(BaseModel):
    """A verified identity returned by Google or Apple."""

    provider: OAuthProvider
    subject: str = Field(..., description="Provider's stable user id (sub)")
    email: Optional[str] = None
    email_verified: bool = False
    first_name: str = ""
    last_name: str = ""
    picture: Optional[str] = None


class TokenClaims(BaseModel):
    """Claims carried by access and refresh tokens."""

    user_id: str = Field(..., alias="userId")
    email: Optional[str] = None
    exp: int
    iat: int

    model_config = {"populate_by_name": True, "extra": "ignore"}


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------


class AuthTokens(CamelModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str


class UserResponse(CamelModel):
    """User as exposed to the client. Never contains the password hash."""

    id: str
    email: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    picture: Optional[str] = None
    email_verified: bool = False
    has_password: bool = False
    google_id: Optional[str] = None
    apple_id: Optional[str] = None
    personal_context: Optional[str] = None
    language: str = "English"

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            picture=user.picture,
            email_verified=user.email_verified,
            has_password=user.password_hash is not None,
            google_id=user.google_id,
            apple_id=user.apple_id,
            personal_context=user.personal_context,
            language=user.language,
        )


class AuthResult(CamelModel):
    """Successful sign-in: the user and a fresh token pair."""

    user: UserResponse
    tokens: AuthTokens


class PendingVerification(CamelModel):
    """Registration accepted; the account waits for its email code."""

    user: UserResponse
    message: str = "Verification code sent to your email"


class ResetTokenResult(CamelModel):
    """A password-reset code was verified."""

    reset_token: str


class MessageResponse(CamelModel):
    """Plain acknowledgement."""

    message: str


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class EmailRequest(CamelModel):
    email: EmailStr


class VerifyOtpRequest(CamelModel):
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$")


class ResetPasswordRequest(CamelModel):
    reset_token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class UpdateProfileRequest(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    picture: Optional[str] = None
    personal_context: Optional[str] = Field(None, max_length=MAX_PERSONAL_CONTEXT_LENGTH)
    language: Optional[str] = Field(None, min_length=1, max_length=50)


class UpdatePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: str = Field(..., min_length=6, max_length=128)


class ExchangeSessionRequest(CamelModel):
    session_id: str = Field(..., min_length=1)


class GoogleTokenRequest(CamelModel):
    token: str = Field(..., min_length=1)


class AppleFullName(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class AppleAuthRequest(CamelModel):
    identity_token: str = Field(..., min_length=1)
    full_name: Optional[AppleFullName] = None
