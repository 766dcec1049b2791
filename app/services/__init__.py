"""Business logic services."""

from . import billing, cryptobot, email_service, otp_service, registration, usage_reporting


__all__ = [
    "billing",
    "cryptobot",
    "email_service",
    "otp_service",
    "registration",
    "usage_reporting",
]
