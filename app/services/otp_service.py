"""Email verification codes gating signup and password reset.

The service holds no state of its own; every code lives in ``otp_codes``.

Flow:
    issue_code(email, purpose)   -> store code, email it
    verify_code(email, code, p)  -> True once for a live code, else False
"""

from __future__ import annotations

from datetime import UTC, datetime

from app.core.exceptions import ConflictError
from app.core.logging import get_logger
from app.core.otp import OtpPurpose, code_state, compute_expiry, generate_otp_code
from app.repositories import otp_codes_orm as otp_repo
from app.repositories import users_orm as users_repo
from app.services import email_service


logger = get_logger("services.otp")


async def issue_code(
    email: str,
    purpose: OtpPurpose,
    now: datetime | None = None,
) -> None:
    """
    Issue a verification code for ``email`` and send it.

    For SIGNUP the email must not belong to an account (ConflictError).
    For PASSWORD_RESET the call returns normally whether or not the account
    exists; a code is only stored and sent when it does.

    Raises:
        ConflictError: signup requested for an email that already has an account
        EmailDeliveryError: the code was stored but could not be delivered
    """
    email = email.lower()
    now = now or datetime.now(UTC)

    exists = await users_repo.email_exists(email)

    if purpose is OtpPurpose.SIGNUP and exists:
        raise ConflictError(
            message="An account with this email already exists",
            error_code="EMAIL_ALREADY_REGISTERED",
        )

    if purpose is OtpPurpose.PASSWORD_RESET and not exists:
        logger.info("Password reset requested for unknown email; nothing sent")
        return

    code = generate_otp_code()
    code_id = await otp_repo.create_code(email, code, purpose.value, compute_expiry(now))
    logger.info(
        "Verification code issued",
        extra={"otp_id": code_id, "purpose": purpose.value},
    )

    # A failed send leaves the stored row to expire on its own
    await email_service.send_otp_email(email, code, purpose)


async def verify_code(
    email: str,
    code: str,
    purpose: OtpPurpose,
    now: datetime | None = None,
) -> bool:
    """
    Validate and consume a code.

    Wrong, expired and already-used codes all return False; the reason is
    only logged.
    """
    email = email.lower()
    now = now or datetime.now(UTC)

    if await otp_repo.consume_code(email, code, purpose.value, now):
        logger.info("Verification code consumed", extra={"purpose": purpose.value})
        return True

    record = await otp_repo.find_latest_code(email, code, purpose.value)
    reason = "no_match" if record is None else code_state(record.consumed, record.expires_at, now).value
    logger.debug(
        "Verification code rejected",
        extra={"purpose": purpose.value, "reason": reason},
    )
    return False
