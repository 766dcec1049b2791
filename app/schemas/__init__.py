"""Pydantic schemas for API request/response validation."""

from .account import (
    FundResponse,
    FundUpdateRequest,
    HistoryPoint,
    ProfitPoint,
    ProfitResponse,
    TradingStateResponse,
    TradingStateUpdate,
)
from .auth import (
    ForgotPasswordRequest,
    RegisterRequest,
    RegistrationPayload,
    ResetPasswordRequest,
    SignInRequest,
    SignInResponse,
    UserResponse,
)
from .billing import SubscriptionStatusResponse
from .common import (
    ErrorResponse,
    HealthResponse,
    MessageResponse,
)
from .jobs import JobResponse, JobRunResponse


__all__ = [
    "ErrorResponse",
    "ForgotPasswordRequest",
    "FundResponse",
    "FundUpdateRequest",
    "HealthResponse",
    "HistoryPoint",
    "JobResponse",
    "JobRunResponse",
    "MessageResponse",
    "ProfitPoint",
    "ProfitResponse",
    "RegisterRequest",
    "RegistrationPayload",
    "ResetPasswordRequest",
    "SignInRequest",
    "SignInResponse",
    "SubscriptionStatusResponse",
    "TradingStateResponse",
    "TradingStateUpdate",
    "UserResponse",
]
