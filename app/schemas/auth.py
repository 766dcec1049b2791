"""Auth and registration schemas."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.core.config import settings


OTP_PATTERN = r"^\d{6}$"


def _normalize_email(v: str) -> str:
    return v.strip().lower()


def _check_password_length(v: str) -> str:
    if len(v) < settings.password_min_length:
        raise ValueError(
            f"Password must be at least {settings.password_min_length} characters"
        )
    return v


class RegistrationPayload(BaseModel):
    """Everything needed to open an account, captured before the code is sent.

    The client holds on to this payload and submits it again with the code.
    """

    first_name: str = Field(..., min_length=1, max_length=100, description="First name")
    last_name: str = Field(..., min_length=1, max_length=100, description="Last name")
    email: EmailStr = Field(..., description="Account email", examples=["jane@example.com"])
    password: str = Field(..., min_length=1, max_length=128, description="Password")
    confirm_password: str = Field(..., min_length=1, max_length=128)
    exchange_api_key: str = Field(
        ..., min_length=1, max_length=256, description="Exchange API key"
    )
    exchange_api_secret: str = Field(
        ..., min_length=1, max_length=256, description="Exchange API secret"
    )
    initial_funds: Decimal = Field(
        ..., max_digits=12, decimal_places=2, description="Amount to invest (S$)"
    )

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("first_name", "last_name", "exchange_api_key", "exchange_api_secret")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_length(v)

    @field_validator("initial_funds")
    @classmethod
    def validate_initial_funds(cls, v: Decimal) -> Decimal:
        if v < settings.min_investment:
            raise ValueError(f"Minimum investment amount is S${settings.min_investment}")
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> RegistrationPayload:
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class RegisterRequest(RegistrationPayload):
    """Registration payload plus the emailed verification code."""

    code: str = Field(..., pattern=OTP_PATTERN, description="6-digit verification code")


class SignInRequest(BaseModel):
    """Sign-in request schema."""

    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class SignInResponse(BaseModel):
    """Sign-in response schema."""

    email: str = Field(..., description="Authenticated account email")
    is_admin: bool = Field(..., description="Whether the account is an admin")
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class ForgotPasswordRequest(BaseModel):
    """Password reset code request."""

    email: EmailStr = Field(..., description="Account email")

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class ResetPasswordRequest(BaseModel):
    """Password reset with an emailed code."""

    email: EmailStr = Field(..., description="Account email")
    code: str = Field(..., pattern=OTP_PATTERN, description="6-digit verification code")
    new_password: str = Field(..., min_length=1, max_length=128, description="New password")

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_length(v)


class UserResponse(BaseModel):
    """Current user profile. Exchange credentials are masked."""

    id: int
    email: str
    first_name: str
    last_name: str
    is_admin: bool = False
    exchange_api_key: str | None = Field(default=None, description="Masked API key")
    exchange_api_secret: str | None = Field(default=None, description="Masked API secret")
    initial_funds: Decimal | None = None
    investment_active: bool = True
    has_subscription: bool = False
