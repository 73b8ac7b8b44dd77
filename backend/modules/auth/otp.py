"""One-time verification codes."""

import math
import secrets
from datetime import datetime, timedelta
from typing import Optional


OTP_LENGTH = 6
OTP_TTL = timedelta(minutes=10)
OTP_RESEND_COOLDOWN = timedelta(seconds=60)


def generate_otp() -> str:
    """Return a random zero-padded six-digit code."""
    return str(secrets.randbelow(10**OTP_LENGTH)).zfill(OTP_LENGTH)


def otp_expiry(now: datetime) -> datetime:
    return now + OTP_TTL


def cooldown_remaining(last_sent_at: Optional[datetime], now: datetime) -> int:
    """
    Seconds the caller must still wait before another code may be sent.

    Returns 0 when no code was sent yet or the cooldown has elapsed.
    """
    if last_sent_at is None:
        return 0
    remaining = (last_sent_at + OTP_RESEND_COOLDOWN - now).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining)
