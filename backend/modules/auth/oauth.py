"""
Google and Apple identity verification.

Two flows are supported:
- Server flow (Google only): the app opens the consent screen built by
  authorization_url(); Google redirects to the API callback with a code,
  which exchange_code() trades for the user's profile.
- Client flow (Google and Apple): the app signs in natively and posts the
  provider's ID token, which IdentityTokenVerifier checks against the
  provider's published signing keys.
"""

import asyncio
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
import jwt
from jwt import PyJWKClient

from shared.config import Settings
from shared.exceptions import ExternalServiceError

from .exceptions import SocialAuthError
from .models import OAuthProvider, SocialIdentity

logger = logging.getLogger(__name__)


GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ["https://accounts.google.com", "accounts.google.com"]

APPLE_JWKS_URL = "https://appleid.apple.com/auth/keys"
APPLE_ISSUER = "https://appleid.apple.com"

STATE_TTL = timedelta(minutes=10)


class OAuthState:
    """
    Round-trips the client's redirect target through Google's `state` param.

    The state is a short-lived JWT signed with the API secret, so the
    callback only ever redirects to a target this API handed out.
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret

    def encode(self, redirect_uri: str, platform: Optional[str]) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "state": secrets.token_hex(16),
            "redirectUri": redirect_uri,
            "platform": platform,
            "exp": int((now + STATE_TTL).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm="HS256")

    def decode(self, state: str) -> dict[str, Any]:
        """
        Raises:
            SocialAuthError: If the state was not issued by this API or expired.
        """
        try:
            return jwt.decode(state, self._secret, algorithms=["HS256"])
        except jwt.InvalidTokenError:
            raise SocialAuthError(OAuthProvider.GOOGLE.value)


class GoogleOAuthClient:
    """Server-side Google OAuth authorization-code flow."""

    def __init__(self, settings: Settings) -> None:
        self._client_id = settings.google_client_id
        self._client_secret = settings.google_client_secret
        self._callback_url = settings.google_callback_url
        self._enabled = settings.google_enabled
        self._timeout = settings.http_timeout
        self._state = OAuthState(settings.jwt_secret)

    def authorization_url(self, redirect_uri: str, platform: Optional[str] = None) -> str:
        """
        Raises:
            ExternalServiceError: If Google OAuth credentials are not configured.
        """
        if not self._enabled:
            raise ExternalServiceError(
                "Google sign-in is not configured",
                service="google",
                code="GOOGLE_NOT_CONFIGURED",
            )
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._callback_url,
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "offline",
            "prompt": "select_account",
            "state": self._state.encode(redirect_uri, platform),
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def read_state(self, state: str) -> dict[str, Any]:
        return self._state.decode(state)

    async def exchange_code(self, code: str) -> SocialIdentity:
        """
        Trade an authorization code for the signed-in user's profile.

        Raises:
            ExternalServiceError: If Google rejects the code or is unreachable.
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                token_response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "redirect_uri": self._callback_url,
                        "grant_type": "authorization_code",
                    },
                )
                token_response.raise_for_status()
                access_token = token_response.json()["access_token"]

                profile_response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                profile_response.raise_for_status()
                profile = profile_response.json()
            subject = profile["sub"]
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            raise ExternalServiceError(
                "Google code exchange failed",
                service="google",
                details={"reason": str(e)},
            )

        return SocialIdentity(
            provider=OAuthProvider.GOOGLE,
            subject=subject,
            email=profile.get("email"),
            email_verified=bool(profile.get("email_verified", False)),
            first_name=profile.get("given_name") or "",
            last_name=profile.get("family_name") or "",
            picture=profile.get("picture"),
        )


class IdentityTokenVerifier:
    """Verifies Google and Apple ID tokens against their published JWKS."""

    def __init__(
        self,
        google_client_id: str,
        apple_client_id: str,
        google_jwks: Optional[PyJWKClient] = None,
        apple_jwks: Optional[PyJWKClient] = None,
    ) -> None:
        self._google_client_id = google_client_id
        self._apple_client_id = apple_client_id
        self._google_jwks = google_jwks or PyJWKClient(GOOGLE_JWKS_URL)
        self._apple_jwks = apple_jwks or PyJWKClient(APPLE_JWKS_URL)

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityTokenVerifier":
        return cls(settings.google_client_id, settings.apple_client_id)

    async def verify_google(self, token: str) -> SocialIdentity:
        """
        Raises:
            ExternalServiceError: If no Google client id is configured.
            SocialAuthError: If the token is invalid or issued to another client.
        """
        if not self._google_client_id:
            raise ExternalServiceError(
                "Google sign-in is not configured",
                service="google",
                code="GOOGLE_NOT_CONFIGURED",
            )
        claims = await self._verify(
            OAuthProvider.GOOGLE,
            token,
            self._google_jwks,
            audience=self._google_client_id,
            issuer=GOOGLE_ISSUERS,
        )
        return SocialIdentity(
            provider=OAuthProvider.GOOGLE,
            subject=claims["sub"],
            email=claims.get("email"),
            email_verified=_as_bool(claims.get("email_verified")),
            first_name=claims.get("given_name") or "",
            last_name=claims.get("family_name") or "",
            picture=claims.get("picture"),
        )

    async def verify_apple(
        self,
        token: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> SocialIdentity:
        claims = await self._verify(
            OAuthProvider.APPLE,
            token,
            self._apple_jwks,
            audience=self._apple_client_id or None,
            issuer=APPLE_ISSUER,
        )
        # Apple only sends the name on the very first sign-in, from the
        # device rather than in the token.
        return SocialIdentity(
            provider=OAuthProvider.APPLE,
            subject=claims["sub"],
            email=claims.get("email"),
            email_verified=True,
            first_name=first_name or "",
            last_name=last_name or "",
        )

    async def _verify(
        self,
        provider: OAuthProvider,
        token: str,
        jwks: PyJWKClient,
        audience: Optional[str],
        issuer: Any,
    ) -> dict[str, Any]:
        try:
            signing_key = await asyncio.to_thread(jwks.get_signing_key_from_jwt, token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=audience,
                issuer=issuer,
                options={"verify_aud": audience is not None},
            )
        except jwt.PyJWTError as e:
            logger.warning("%s identity token rejected: %s", provider.value, e)
            raise SocialAuthError(provider.value)

        if not claims.get("sub"):
            raise SocialAuthError(provider.value)
        return claims


def _as_bool(value: Any) -> bool:
    # Google sends email_verified as a bool in ID tokens, as "true" elsewhere
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)
