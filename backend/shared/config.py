"""
Centralized configuration for the MentorMind backend.

All settings are loaded from environment variables (or a local .env file)
once at startup. The resulting Settings object is frozen and is handed to
each component through the service container, so nothing reads the
environment per request.

Required values (JWT_SECRET, SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY,
OPENAI_API_KEY) have no default: a missing one fails validation the first
time get_settings() is called, which happens in the app lifespan.
"""

import re
from datetime import timedelta
from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: Any) -> Any:
    """
    Parse short duration strings such as "15m" or "7d" into a timedelta.

    Plain integers are treated as seconds. Anything else is returned
    unchanged so pydantic can apply its own timedelta parsing.
    """
    if isinstance(value, int):
        return timedelta(seconds=value)
    if isinstance(value, str):
        match = _DURATION_PATTERN.match(value)
        if match:
            amount, unit = match.groups()
            return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])
    return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "MentorMind API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    workers: int = 1
    # Proxies trusted for X-Forwarded-* (the Google callback builds absolute URLs)
    forwarded_allow_ips: str = "127.0.0.1"

    # CORS settings
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Tokens
    jwt_secret: str
    jwt_expires_in: timedelta = timedelta(minutes=15)
    jwt_refresh_expires_in: timedelta = timedelta(days=7)

    # Supabase
    supabase_url: str
    supabase_service_role_key: str
    supabase_db_url: str = ""

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = "http://localhost:8000/api/auth/google/callback"

    # Sign in with Apple
    apple_client_id: str = ""

    # Mobile app deep link used when the OAuth callback fails
    mobile_auth_error_url: str = "mentormind://auth/google?error=authentication_failed"

    # Transactional email (Resend)
    resend_api_key: str = ""
    email_from: str = "MentorMind <noreply@mentormind.app>"

    # RevenueCat webhook shared secret
    revenuecat_webhook_auth_key: str = ""

    # LLM and realtime voice
    openai_api_key: str
    openai_module_model: str = "gpt-4o-mini"
    openai_realtime_model: str = "gpt-4o-realtime-preview"
    openai_realtime_voice: str = "alloy"

    # Outbound HTTP timeout (seconds) for OAuth, mail and voice providers
    http_timeout: float = 10.0

    @field_validator("jwt_expires_in", "jwt_refresh_expires_in", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        return parse_duration(value)

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once. Raises
    pydantic.ValidationError when a required variable is missing.
    """
    return Settings()
