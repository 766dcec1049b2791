"""Request dependencies: session authentication and rate limits.

A session token is read from ``Authorization: Bearer <jwt>`` first, then from
the ``session`` cookie that sign-in and registration set for the browser.
"""

from __future__ import annotations

from fastapi import Cookie, Depends, Header, Request

from app.cache.rate_limit import check_rate_limit
from app.core.client_identity import get_client_ip
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import TokenData, decode_access_token
from app.repositories import users_orm as users_repo


__all__ = [
    "get_client_ip",
    "get_current_account",
    "rate_limit_api",
    "rate_limit_auth",
    "rate_limit_code",
    "require_admin",
    "require_user",
]


def _account_gone() -> AuthenticationError:
    return AuthenticationError(message="Account no longer exists", error_code="USER_NOT_FOUND")


def _session_token(authorization: str | None, session: str | None) -> str | None:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and token:
        return token
    return session or None


async def require_user(
    authorization: str | None = Header(default=None),
    session: str | None = Cookie(default=None),
) -> TokenData:
    """Verified session of an account that still exists."""
    token = _session_token(authorization, session)
    if token is None:
        raise AuthenticationError(message="Authentication required", error_code="MISSING_CREDENTIALS")

    token_data = decode_access_token(token)
    if not await users_repo.email_exists(token_data.sub):
        raise _account_gone()
    return token_data


async def get_current_account(user: TokenData = Depends(require_user)) -> users_repo.Account:
    account = await users_repo.get_user_by_email(user.sub)
    if account is None:
        raise _account_gone()
    return account


async def require_admin(user: TokenData = Depends(require_user)) -> TokenData:
    if not user.is_admin:
        raise AuthorizationError(message="Admin privileges required", error_code="ADMIN_REQUIRED")
    return user


async def rate_limit_auth(request: Request) -> None:
    """Per client IP, on every unauthenticated auth endpoint."""
    await check_rate_limit(get_client_ip(request), key_prefix="auth")


async def rate_limit_code(email: str) -> None:
    """Per email, before a verification code is generated and sent."""
    await check_rate_limit(email.lower(), key_prefix="code")


async def rate_limit_api(user: TokenData = Depends(require_user)) -> None:
    """Per account on the authenticated API; admins are not limited."""
    if not user.is_admin:
        await check_rate_limit(user.sub, key_prefix="api")
