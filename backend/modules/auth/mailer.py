"""
Transactional email through the Resend HTTP API.

When no RESEND_API_KEY is configured (local development) messages are
written to the log instead, so verification codes can still be copied.
"""

import logging
from html import escape
from typing import Optional

import httpx

from shared.config import Settings

from .models import OtpType

logger = logging.getLogger(__name__)


RESEND_API_URL = "https://api.resend.com/emails"

OTP_SUBJECTS = {
    OtpType.REGISTRATION: "Verify your MentorMind account",
    OtpType.PASSWORD_RESET: "Reset your MentorMind password",
}

OTP_HEADINGS = {
    OtpType.REGISTRATION: (
        "Verify your email",
        "Use this code to verify your MentorMind account.",
    ),
    OtpType.PASSWORD_RESET: (
        "Reset your password",
        "Use this code to reset your password.",
    ),
}


def render_otp_email(code: str, otp_type: OtpType) -> str:
    heading, lead = OTP_HEADINGS[otp_type]
    return (
        '<div style="font-family: sans-serif; max-width: 400px; margin: 0 auto;">'
        f"<h1>{heading}</h1>"
        f"<p>{lead}</p>"
        '<p style="font-size: 32px; font-weight: bold; letter-spacing: 8px;">'
        f"{escape(code)}</p>"
        "<p>This code expires in 10 minutes.</p>"
        "</div>"
    )


def render_welcome_email(first_name: Optional[str]) -> str:
    greeting = f"Welcome, {escape(first_name)}!" if first_name else "Welcome!"
    return (
        '<div style="font-family: sans-serif; max-width: 400px; margin: 0 auto;">'
        f"<h1>{greeting}</h1>"
        "<p>Your MentorMind account is ready. Your first coaching module is "
        "waiting for you in the app.</p>"
        "</div>"
    )


class Mailer:
    """Sends email. Failures are logged and never raised to the caller."""

    def __init__(self, settings: Settings) -> None:
        self._enabled = settings.email_enabled
        self._api_key = settings.resend_api_key
        self._sender = settings.email_from
        self._timeout = settings.http_timeout

    async def send(self, to: str, subject: str, html: str) -> bool:
        if not self._enabled:
            logger.info("Email delivery disabled; would send %r to %s", subject, to)
            return False

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": self._sender,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to send %r to %s: %s", subject, to, e)
            return False
        return True

    async def send_otp(self, to: str, code: str, otp_type: OtpType) -> bool:
        if not self._enabled:
            logger.info("Verification code for %s (%s): %s", to, otp_type.value, code)
            return False
        return await self.send(to, OTP_SUBJECTS[otp_type], render_otp_email(code, otp_type))

    async def send_welcome(self, to: str, first_name: Optional[str]) -> bool:
        return await self.send(to, "Welcome to MentorMind", render_welcome_email(first_name))
