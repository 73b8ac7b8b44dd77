"""
Access and refresh token issuing.

Both tokens are HS256 JWTs signed with the same secret and carrying the same
claims ({userId, email}); they differ only in their expiry. Verification
reports expiry and bad signatures as distinct exceptions so callers can log
them, but HTTP callers collapse both into one 401.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from shared.config import Settings

from .exceptions import ExpiredTokenError, InvalidSignatureError, SigningError
from .models import AuthTokens, TokenClaims


ALGORITHM = "HS256"


class TokenIssuer:
    """Issues and verifies signed access/refresh token pairs."""

    def __init__(
        self,
        secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self._secret = secret
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            access_ttl=settings.jwt_expires_in,
            refresh_ttl=settings.jwt_refresh_expires_in,
        )

    @property
    def access_ttl(self) -> timedelta:
        return self._access_ttl

    @property
    def refresh_ttl(self) -> timedelta:
        return self._refresh_ttl

    def issue(self, user_id: str, email: Optional[str]) -> AuthTokens:
        """
        Issue a token pair for a verified identity.

        Raises:
            SigningError: If no signing secret is configured.
        """
        now = datetime.now(timezone.utc)
        return AuthTokens(
            access_token=self._sign(user_id, email, now, self._access_ttl),
            refresh_token=self._sign(user_id, email, now, self._refresh_ttl),
        )

    def verify(self, token: str) -> TokenClaims:
        """
        Verify a token's signature and expiry and return its claims.

        Raises:
            SigningError: If no signing secret is configured.
            ExpiredTokenError: If the token's exp is in the past.
            InvalidSignatureError: If the token is malformed or tampered with.
        """
        if not self._secret:
            raise SigningError()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError:
            raise InvalidSignatureError()

        if "userId" not in payload:
            raise InvalidSignatureError()
        return TokenClaims(**payload)

    def _sign(
        self,
        user_id: str,
        email: Optional[str],
        issued_at: datetime,
        ttl: timedelta,
    ) -> str:
        if not self._secret:
            raise SigningError()

        payload = {
            "userId": user_id,
            "email": email,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)
