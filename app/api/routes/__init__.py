"""API routes package."""

from . import (
    account,
    admin_jobs,
    auth,
    billing,
    health,
)


__all__ = [
    "account",
    "admin_jobs",
    "auth",
    "billing",
    "health",
]
