"""Passwords and session tokens.

Passwords are stored as bcrypt hashes. A session is a signed HS256 JWT whose
subject is the account email; it travels as a bearer token or the session
cookie set at sign-in.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from pydantic import BaseModel

from .config import settings
from .exceptions import AuthenticationError


JWT_ALGORITHM = "HS256"
JWT_ISSUER = "cryptoinvest"
JWT_AUDIENCE = "cryptoinvest-api"
BCRYPT_ROUNDS = 12

_REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss", "aud", "jti"]


class TokenData(BaseModel):
    """Claims of a verified session token; ``sub`` is the account email."""

    sub: str
    exp: datetime
    iat: datetime
    iss: str
    aud: str
    jti: str
    is_admin: bool = False


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password and for a stored value that is not a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def create_access_token(
    email: str,
    is_admin: bool = False,
    expires_delta: Optional[timedelta] = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": email,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "jti": secrets.token_urlsafe(16),
        "is_admin": is_admin,
    }
    return jwt.encode(claims, settings.auth_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    """Verify signature, issuer, audience and expiry; raise ``AuthenticationError`` otherwise."""
    try:
        claims = jwt.decode(
            token,
            settings.auth_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=JWT_ISSUER,
            audience=JWT_AUDIENCE,
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError(message="Session expired, sign in again", error_code="TOKEN_EXPIRED") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(message="Invalid session token", error_code="INVALID_TOKEN") from e

    return TokenData.model_validate(claims)
