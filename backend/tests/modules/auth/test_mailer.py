"""Tests for transactional email."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from modules.auth.mailer import RESEND_API_URL, Mailer, render_otp_email, render_welcome_email
from modules.auth.models import OtpType
from shared.config import Settings


def make_settings(resend_api_key: str = "re_test") -> Settings:
    return Settings(
        jwt_secret="s",
        supabase_url="https://test-project.supabase.co",
        supabase_service_role_key="k",
        openai_api_key="sk-test",
        resend_api_key=resend_api_key,
    )


def patched_client(response=None, error=None):
    http = MagicMock()
    http.post = AsyncMock(return_value=response, side_effect=error)
    http.__aenter__ = AsyncMock(return_value=http)
    http.__aexit__ = AsyncMock(return_value=False)
    return patch("modules.auth.mailer.httpx.AsyncClient", return_value=http), http


class TestTemplates:
    def test_otp_email_contains_code(self):
        html = render_otp_email("123456", OtpType.PASSWORD_RESET)

        assert "123456" in html
        assert "Reset your password" in html

    def test_welcome_escapes_name(self):
        assert "&lt;b&gt;" in render_welcome_email("<b>")
        assert "Welcome!" in render_welcome_email(None)


class TestMailer:
    @pytest.mark.asyncio
    async def test_sends_through_resend(self):
        response = httpx.Response(200, json={"id": "email-1"}, request=httpx.Request("POST", RESEND_API_URL))
        patcher, http = patched_client(response)

        with patcher:
            sent = await Mailer(make_settings()).send_otp("ada@example.com", "123456", OtpType.REGISTRATION)

        assert sent is True
        body = http.post.call_args[1]["json"]
        assert body["to"] == ["ada@example.com"]
        assert body["subject"] == "Verify your MentorMind account"
        assert http.post.call_args[1]["headers"]["Authorization"] == "Bearer re_test"

    @pytest.mark.asyncio
    async def test_failure_is_not_raised(self):
        patcher, _ = patched_client(error=httpx.ConnectError("down"))

        with patcher:
            sent = await Mailer(make_settings()).send_welcome("ada@example.com", "Ada")

        assert sent is False

    @pytest.mark.asyncio
    async def test_rejected_is_not_raised(self):
        response = httpx.Response(422, json={"message": "bad"}, request=httpx.Request("POST", RESEND_API_URL))
        patcher, _ = patched_client(response)

        with patcher:
            assert await Mailer(make_settings()).send("ada@example.com", "Hi", "<p>Hi</p>") is False

    @pytest.mark.asyncio
    async def test_disabled_logs_code(self, caplog):
        patcher, http = patched_client()

        with patcher, caplog.at_level("INFO", logger="modules.auth.mailer"):
            sent = await Mailer(make_settings(resend_api_key="")).send_otp(
                "ada@example.com", "654321", OtpType.REGISTRATION
            )

        assert sent is False
        assert "654321" in caplog.text
        http.post.assert_not_called()
