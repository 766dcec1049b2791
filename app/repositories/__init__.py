"""Data access layer repositories.

Each repository module provides async functions for database operations.
All code uses SQLAlchemy ORM models from `app.database.orm` with the
`get_session()` context manager.

ORM-based repositories:
- otp_codes_orm: email verification codes
- users_orm: customer accounts
"""

from . import otp_codes_orm
from . import users_orm

__all__ = [
    "otp_codes_orm",
    "users_orm",
]
