"""FastAPI application for the CryptoInvest API, mounted under ``/api``."""

from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import get_logger, request_id_var
from app.schemas.common import ErrorResponse

from .routes import account, admin_jobs, auth, billing, health


logger = get_logger("api")

# The API only returns JSON; nothing in a response may be framed or loaded
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Cache-Control": "no-store",
}

ERROR_RESPONSES = {
    code: {"model": ErrorResponse, "description": description}
    for code, description in [
        (400, "Invalid or expired code, or invalid request"),
        (401, "Not signed in"),
        (403, "Admin only"),
        (409, "Email already registered"),
        (429, "Rate limited"),
        (503, "Trading service, mailer or billing unavailable"),
    ]
}


async def request_context(request: Request, call_next) -> Response:
    """Tag the request with an id, add security headers and log the outcome."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    request_id_var.set(request_id)
    started = time.monotonic()

    response = await call_next(request)

    elapsed_ms = int((time.monotonic() - started) * 1000)
    response.headers.update(SECURITY_HEADERS)
    if settings.https_enabled:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["X-Request-ID"] = request_id

    # Path only, query strings can carry emails
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
        },
    )
    return response


def create_api_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Automated crypto investing: accounts, trading proxy and usage billing",
        root_path=settings.root_path,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
        responses=ERROR_RESPONSES,
    )

    # Added last, so CORS wraps the request context middleware
    app.middleware("http")(request_context)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(account.router, prefix="/account", tags=["Account"])
    app.include_router(billing.router, prefix="/billing", tags=["Billing"])
    app.include_router(admin_jobs.router, prefix="/admin/jobs", tags=["Admin Jobs"])

    return app
