"""Tests for Google OAuth and provider identity token verification."""

import time
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from modules.auth.exceptions import SocialAuthError
from modules.auth.models import OAuthProvider
from modules.auth.oauth import (
    APPLE_ISSUER,
    GOOGLE_AUTH_URL,
    GoogleOAuthClient,
    IdentityTokenVerifier,
    OAuthState,
)
from shared.config import Settings
from shared.exceptions import ExternalServiceError


GOOGLE_CLIENT_ID = "google-client.apps.googleusercontent.com"
APPLE_CLIENT_ID = "app.mentormind.ios"


def make_settings(**overrides) -> Settings:
    data = {
        "jwt_secret": "test-secret-key-for-testing-only",
        "supabase_url": "https://test-project.supabase.co",
        "supabase_service_role_key": "k",
        "openai_api_key": "sk-test",
        "google_client_id": GOOGLE_CLIENT_ID,
        "google_client_secret": "google-secret",
        "google_callback_url": "https://api.example.com/api/auth/google/callback",
    }
    data.update(overrides)
    return Settings(**data)


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def jwks_for(private_key) -> MagicMock:
    jwks = MagicMock()
    jwks.get_signing_key_from_jwt.return_value = MagicMock(key=private_key.public_key())
    return jwks


def id_token(private_key, **claims) -> str:
    now = int(time.time())
    payload = {"iat": now, "exp": now + 600}
    payload.update(claims)
    return jwt.encode(payload, private_key, algorithm="RS256")


class TestOAuthState:
    def test_round_trip(self):
        state = OAuthState("secret")

        decoded = state.decode(state.encode("mentormind://auth/google", "ios"))

        assert decoded["redirectUri"] == "mentormind://auth/google"
        assert decoded["platform"] == "ios"

    def test_rejects_foreign_state(self):
        forged = OAuthState("other-secret").encode("https://evil.example", None)

        with pytest.raises(SocialAuthError):
            OAuthState("secret").decode(forged)

    def test_rejects_garbage(self):
        with pytest.raises(SocialAuthError):
            OAuthState("secret").decode("not-a-state")


class TestGoogleOAuthClient:
    def test_authorization_url(self):
        client = GoogleOAuthClient(make_settings())

        url = client.authorization_url("mentormind://auth/google", "android")

        assert url.startswith(GOOGLE_AUTH_URL)
        params = parse_qs(urlparse(url).query)
        assert params["client_id"] == [GOOGLE_CLIENT_ID]
        assert params["redirect_uri"] == ["https://api.example.com/api/auth/google/callback"]
        assert params["scope"] == ["openid email profile"]
        assert client.read_state(params["state"][0])["redirectUri"] == "mentormind://auth/google"

    def test_not_configured(self):
        client = GoogleOAuthClient(make_settings(google_client_id="", google_client_secret=""))

        with pytest.raises(ExternalServiceError) as exc_info:
            client.authorization_url("mentormind://auth/google")

        assert exc_info.value.code == "GOOGLE_NOT_CONFIGURED"

    @pytest.mark.asyncio
    async def test_exchange_code(self):
        request = httpx.Request("POST", "https://oauth2.googleapis.com/token")
        http = MagicMock()
        http.post = AsyncMock(return_value=httpx.Response(200, json={"access_token": "at"}, request=request))
        http.get = AsyncMock(return_value=httpx.Response(200, json={
            "sub": "google-123",
            "email": "ada@example.com",
            "email_verified": True,
            "given_name": "Ada",
            "family_name": "Lovelace",
        }, request=request))
        http.__aenter__ = AsyncMock(return_value=http)
        http.__aexit__ = AsyncMock(return_value=False)

        with patch("modules.auth.oauth.httpx.AsyncClient", return_value=http):
            identity = await GoogleOAuthClient(make_settings()).exchange_code("code-1")

        assert identity.provider == OAuthProvider.GOOGLE
        assert identity.subject == "google-123"
        assert identity.email_verified is True
        assert identity.last_name == "Lovelace"
        assert http.post.call_args[1]["data"]["grant_type"] == "authorization_code"
        assert http.get.call_args[1]["headers"] == {"Authorization": "Bearer at"}

    @pytest.mark.asyncio
    async def test_exchange_code_rejected(self):
        request = httpx.Request("POST", "https://oauth2.googleapis.com/token")
        http = MagicMock()
        http.post = AsyncMock(return_value=httpx.Response(400, json={"error": "invalid_grant"}, request=request))
        http.__aenter__ = AsyncMock(return_value=http)
        http.__aexit__ = AsyncMock(return_value=False)

        with patch("modules.auth.oauth.httpx.AsyncClient", return_value=http):
            with pytest.raises(ExternalServiceError):
                await GoogleOAuthClient(make_settings()).exchange_code("bad-code")

    @pytest.mark.asyncio
    async def test_exchange_code_profile_without_subject(self):
        request = httpx.Request("POST", "https://oauth2.googleapis.com/token")
        http = MagicMock()
        http.post = AsyncMock(return_value=httpx.Response(200, json={"access_token": "at"}, request=request))
        http.get = AsyncMock(return_value=httpx.Response(200, json={"email": "ada@example.com"}, request=request))
        http.__aenter__ = AsyncMock(return_value=http)
        http.__aexit__ = AsyncMock(return_value=False)

        with patch("modules.auth.oauth.httpx.AsyncClient", return_value=http):
            with pytest.raises(ExternalServiceError):
                await GoogleOAuthClient(make_settings()).exchange_code("code-1")


class TestIdentityTokenVerifier:
    def make_verifier(self, private_key) -> IdentityTokenVerifier:
        return IdentityTokenVerifier(
            GOOGLE_CLIENT_ID,
            APPLE_CLIENT_ID,
            google_jwks=jwks_for(private_key),
            apple_jwks=jwks_for(private_key),
        )

    @pytest.mark.asyncio
    async def test_google_token(self, private_key):
        token = id_token(
            private_key,
            sub="google-123",
            aud=GOOGLE_CLIENT_ID,
            iss="https://accounts.google.com",
            email="ada@example.com",
            email_verified="true",
            given_name="Ada",
        )

        identity = await self.make_verifier(private_key).verify_google(token)

        assert identity.subject == "google-123"
        assert identity.email_verified is True
        assert identity.first_name == "Ada"

    @pytest.mark.asyncio
    async def test_google_wrong_audience(self, private_key):
        token = id_token(
            private_key,
            sub="google-123",
            aud="someone-elses-client",
            iss="https://accounts.google.com",
        )

        with pytest.raises(SocialAuthError):
            await self.make_verifier(private_key).verify_google(token)

    @pytest.mark.asyncio
    async def test_google_without_client_id(self, private_key):
        jwks = jwks_for(private_key)
        verifier = IdentityTokenVerifier("", APPLE_CLIENT_ID, google_jwks=jwks, apple_jwks=jwks)
        token = id_token(
            private_key,
            sub="google-123",
            aud="someone-elses-client",
            iss="https://accounts.google.com",
            email="ada@example.com",
        )

        with pytest.raises(ExternalServiceError) as exc_info:
            await verifier.verify_google(token)

        assert exc_info.value.code == "GOOGLE_NOT_CONFIGURED"
        jwks.get_signing_key_from_jwt.assert_not_called()

    @pytest.mark.asyncio
    async def test_apple_token_with_device_name(self, private_key):
        token = id_token(
            private_key,
            sub="apple-001",
            aud=APPLE_CLIENT_ID,
            iss=APPLE_ISSUER,
            email="relay@privaterelay.appleid.com",
        )

        identity = await self.make_verifier(private_key).verify_apple(
            token, first_name="Ada", last_name="Lovelace"
        )

        assert identity.provider == OAuthProvider.APPLE
        assert identity.subject == "apple-001"
        assert identity.email_verified is True
        assert identity.first_name == "Ada"

    @pytest.mark.asyncio
    async def test_expired_token(self, private_key):
        token = id_token(
            private_key,
            sub="apple-001",
            aud=APPLE_CLIENT_ID,
            iss=APPLE_ISSUER,
            exp=int(time.time()) - 60,
        )

        with pytest.raises(SocialAuthError):
            await self.make_verifier(private_key).verify_apple(token)

    @pytest.mark.asyncio
    async def test_token_signed_by_other_key(self, private_key):
        other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        token = id_token(other_key, sub="apple-001", aud=APPLE_CLIENT_ID, iss=APPLE_ISSUER)

        with pytest.raises(SocialAuthError):
            await self.make_verifier(private_key).verify_apple(token)
