"""Account registration and password reset on top of verification codes.

Registration is two requests with nothing persisted in between:

    start_registration(payload)           -> code emailed
    complete_registration(payload + code) -> trading account provisioned,
                                             user row stored

A consumed code is never restored. If provisioning fails after the code was
accepted, the user requests a new code.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from app.core.encryption import encrypt_secret
from app.core.exceptions import (
    ConflictError,
    EmailDeliveryError,
    InvalidCodeError,
    NotFoundError,
)
from app.core.logging import get_logger
from app.core.otp import OtpPurpose
from app.core.security import hash_password
from app.repositories import users_orm as users_repo
from app.schemas.auth import RegisterRequest, RegistrationPayload
from app.services import cryptobot, otp_service


logger = get_logger("services.registration")


def _email_taken() -> ConflictError:
    return ConflictError(
        message="An account with this email already exists",
        error_code="EMAIL_ALREADY_REGISTERED",
    )


async def start_registration(payload: RegistrationPayload) -> None:
    """Validate the payload and email a signup code."""
    await otp_service.issue_code(payload.email, OtpPurpose.SIGNUP)


async def complete_registration(request: RegisterRequest) -> users_repo.Account:
    """
    Verify the signup code and create the account.

    Raises:
        InvalidCodeError: wrong, expired or already used code
        ConflictError: the email was registered meanwhile
        ExternalServiceError: the trading service rejected the signup
    """
    if not await otp_service.verify_code(request.email, request.code, OtpPurpose.SIGNUP):
        raise InvalidCodeError()

    if await users_repo.email_exists(request.email):
        raise _email_taken()

    await cryptobot.signup(
        email=request.email,
        api_key=request.exchange_api_key,
        api_secret=request.exchange_api_secret,
        fund=request.initial_funds,
    )

    try:
        account = await users_repo.create_user(
            email=request.email,
            password_hash=hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            exchange_api_key=encrypt_secret(request.exchange_api_key),
            exchange_api_secret=encrypt_secret(request.exchange_api_secret),
            initial_funds=request.initial_funds,
        )
    except IntegrityError as e:
        # Two registrations for one email raced past the existence check
        raise _email_taken() from e

    logger.info("Registration completed", extra={"user_id": account.id})
    return account


async def request_password_reset(email: str) -> None:
    """
    Email a reset code if the account exists. Silent otherwise.

    Delivery failures are logged, not raised: an error only for registered
    emails would reveal which addresses have accounts.
    """
    try:
        await otp_service.issue_code(email, OtpPurpose.PASSWORD_RESET)
    except EmailDeliveryError:
        logger.error("Password reset email could not be delivered")


async def reset_password(email: str, code: str, new_password: str) -> None:
    """
    Replace the password after verifying a reset code.

    Raises:
        InvalidCodeError: wrong, expired or already used code
        NotFoundError: the account was deleted after the code was issued
    """
    if not await otp_service.verify_code(email, code, OtpPurpose.PASSWORD_RESET):
        raise InvalidCodeError()

    if not await users_repo.update_password(email, hash_password(new_password)):
        raise NotFoundError(message="Account not found")

    logger.info("Password reset completed")
