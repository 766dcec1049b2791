"""Error types raised by the CryptoInvest API and the handlers that render them.

Every error leaves the API as the same JSON body::

    {"error": "INVALID_CODE", "message": "...", "status": 400}

with an optional ``details`` object. Request validation errors keep FastAPI's
default 422 body.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


logger = logging.getLogger("cryptoinvest.error")


class AppException(Exception):
    """Base class: carries an HTTP status, a stable error code and a message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "Something went wrong on our side"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or type(self).message
        self.error_code = error_code or type(self).error_code
        self.status_code = status_code or type(self).status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
            "status": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Not found"


class AuthenticationError(AppException):
    """Missing, expired or invalid session, or wrong sign-in credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTHENTICATION_FAILED"
    message = "Sign in to continue"


class AuthorizationError(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    message = "This account cannot perform that action"


class RateLimitError(AppException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "RATE_LIMIT_EXCEEDED"
    message = "Too many attempts, wait a moment and retry"


class ExternalServiceError(AppException):
    """A dependency outside this service (trading service, mailer, Stripe) failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "A downstream service is unavailable"


class ConflictError(AppException):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    message = "Already exists"


class JobError(AppException):
    """A scheduled or manually triggered job failed or does not exist."""

    error_code = "JOB_ERROR"
    message = "Job failed"


class InvalidCodeError(AppException):
    """Verification code is wrong, expired or already used.

    The three cases share one response on purpose.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_CODE"
    message = "Invalid or expired code"


class EmailDeliveryError(ExternalServiceError):
    """Verification email could not be delivered; the request may be retried."""

    error_code = "EMAIL_DELIVERY_FAILED"
    message = "Failed to send verification email. Please try again."


class ProfitPayloadError(ExternalServiceError):
    """Trading service returned a profit payload that cannot be parsed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "MALFORMED_PROFIT_PAYLOAD"
    message = "Trading service returned malformed profit data"


class BillingError(ExternalServiceError):
    """Billing processor call failed."""

    error_code = "BILLING_ERROR"
    message = "Billing service temporarily unavailable"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def register_exception_handlers(app: FastAPI) -> None:
    """Render ``AppException`` subclasses and turn anything else into a 500."""

    @app.exception_handler(AppException)
    async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers={"X-Request-ID": _request_id(request)},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        from .config import settings

        logger.exception(
            f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
            extra={"request_id": _request_id(request)},
        )
        # Exception text can carry emails or upstream secrets
        error = AppException(message=str(exc) if settings.debug else None)
        return JSONResponse(
            status_code=error.status_code,
            content=error.to_dict(),
            headers={"X-Request-ID": _request_id(request)},
        )
