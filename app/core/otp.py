"""One-time email verification codes."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum

from app.core.config import settings


OTP_LENGTH = 6


class OtpPurpose(str, Enum):
    """What a verification code authorizes."""

    SIGNUP = "signup"
    PASSWORD_RESET = "password-reset"


class OtpState(str, Enum):
    """Lifecycle of a single code. EXPIRED is derived, never stored."""

    ISSUED = "issued"
    CONSUMED = "consumed"
    EXPIRED = "expired"


def generate_otp_code() -> str:
    """
    Generate a uniformly random 6-digit code.

    Covers 000000-999999; leading zeros are kept because the code is a string.
    """
    return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"


def compute_expiry(now: datetime | None = None) -> datetime:
    """Expiry timestamp for a code issued at ``now``."""
    now = now or datetime.now(timezone.utc)
    return now + timedelta(minutes=settings.otp_ttl_minutes)


def code_state(consumed: bool, expires_at: datetime, now: datetime) -> OtpState:
    """
    Classify a stored code at ``now``.

    Consumption wins over expiry: a code used before it expired stays CONSUMED.
    """
    if consumed:
        return OtpState.CONSUMED
    if now >= expires_at:
        return OtpState.EXPIRED
    return OtpState.ISSUED
