"""Authentication routes: registration, sessions and password reset."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from app.api.dependencies import (
    get_current_account,
    rate_limit_auth,
    rate_limit_code,
)
from app.core.config import settings
from app.core.encryption import decrypt_secret, mask_secret
from app.core.exceptions import AuthenticationError
from app.core.security import create_access_token, verify_password
from app.repositories import users_orm as users_repo
from app.schemas.auth import (
    ForgotPasswordRequest,
    RegisterRequest,
    RegistrationPayload,
    ResetPasswordRequest,
    SignInRequest,
    SignInResponse,
    UserResponse,
)
from app.schemas.common import MessageResponse
from app.services import registration as registration_service


router = APIRouter()

RESET_CODE_MESSAGE = "If an account exists for this email, a reset code has been sent."


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key="session",
        value=token,
        httponly=True,
        secure=settings.https_enabled,
        samesite="lax",
        domain=settings.domain,
        max_age=settings.access_token_expire_minutes * 60,
    )


def _masked(ciphertext: str | None) -> str | None:
    if not ciphertext:
        return None
    return mask_secret(decrypt_secret(ciphertext))


def _user_response(account: users_repo.Account) -> UserResponse:
    return UserResponse(
        id=account.id,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        is_admin=account.is_admin,
        exchange_api_key=_masked(account.exchange_api_key),
        exchange_api_secret=_masked(account.exchange_api_secret),
        initial_funds=account.initial_funds,
        investment_active=account.investment_active,
        has_subscription=bool((account.stripe_subscription_id or "").strip()),
    )


@router.post(
    "/register/send-code",
    response_model=MessageResponse,
    summary="Request a signup code",
    description="Validate the registration form and email a 6-digit verification code.",
    dependencies=[Depends(rate_limit_auth)],
    responses={
        409: {"description": "Email already registered"},
        503: {"description": "Verification email could not be sent"},
    },
)
async def send_signup_code(payload: RegistrationPayload) -> MessageResponse:
    """Nothing is stored besides the code; the client resubmits the form with it."""
    await rate_limit_code(payload.email)
    await registration_service.start_registration(payload)
    return MessageResponse(message="Verification code sent to your email")


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    summary="Complete registration",
    description="Verify the emailed code and create the account.",
    dependencies=[Depends(rate_limit_auth)],
    responses={
        400: {"description": "Invalid or expired code"},
        409: {"description": "Email already registered"},
        503: {"description": "Trading service unavailable"},
    },
)
async def register(payload: RegisterRequest, response: Response) -> UserResponse:
    """Create the account and start a session."""
    account = await registration_service.complete_registration(payload)

    _set_session_cookie(
        response, create_access_token(email=account.email, is_admin=account.is_admin)
    )
    return _user_response(account)


@router.post(
    "/signin",
    response_model=SignInResponse,
    summary="Sign in",
    description="Sign in with email and password to receive an access token.",
    dependencies=[Depends(rate_limit_auth)],
    responses={
        401: {"description": "Invalid credentials"},
        429: {"description": "Too many sign-in attempts"},
    },
)
async def signin(payload: SignInRequest, response: Response) -> SignInResponse:
    """Authenticate and set the session cookie."""
    account = await users_repo.get_user_by_email(payload.email)
    if account is None or not verify_password(payload.password, account.password_hash):
        raise AuthenticationError(
            message="Invalid email or password",
            error_code="INVALID_CREDENTIALS",
        )

    access_token = create_access_token(email=account.email, is_admin=account.is_admin)
    _set_session_cookie(response, access_token)

    return SignInResponse(
        email=account.email,
        is_admin=account.is_admin,
        access_token=access_token,
        token_type="bearer",
    )


@router.post(
    "/signout",
    status_code=204,
    summary="Sign out",
    description="Clear the session cookie.",
)
async def signout(response: Response) -> None:
    response.delete_cookie(
        key="session",
        domain=settings.domain,
        path="/",
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Profile of the signed-in account with masked exchange credentials.",
    responses={
        401: {"description": "Not authenticated"},
    },
)
async def get_me(
    account: users_repo.Account = Depends(get_current_account),
) -> UserResponse:
    return _user_response(account)


@router.post(
    "/password/forgot",
    response_model=MessageResponse,
    summary="Request a password reset code",
    description="Always answers the same way, whether or not the email has an account.",
    dependencies=[Depends(rate_limit_auth)],
)
async def forgot_password(payload: ForgotPasswordRequest) -> MessageResponse:
    await rate_limit_code(payload.email)
    await registration_service.request_password_reset(payload.email)
    return MessageResponse(message=RESET_CODE_MESSAGE)


@router.post(
    "/password/reset",
    response_model=MessageResponse,
    summary="Reset password",
    description="Set a new password using an emailed reset code.",
    dependencies=[Depends(rate_limit_auth)],
    responses={
        400: {"description": "Invalid or expired code"},
    },
)
async def reset_password(payload: ResetPasswordRequest) -> MessageResponse:
    await registration_service.reset_password(
        payload.email, payload.code, payload.new_password
    )
    return MessageResponse(message="Password has been reset. You can now sign in.")
