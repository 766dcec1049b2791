"""PostgreSQL engine, sessions and the ORM models."""

from .connection import (
    close_sqlalchemy_engine,
    db_healthcheck,
    get_async_database_url,
    get_session,
    init_sqlalchemy_engine,
)
from .orm import Base, OtpCode, User


__all__ = [
    "Base",
    "OtpCode",
    "User",
    "close_sqlalchemy_engine",
    "db_healthcheck",
    "get_async_database_url",
    "get_session",
    "init_sqlalchemy_engine",
]
