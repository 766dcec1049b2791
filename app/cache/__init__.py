"""Valkey (Redis-compatible) client, rate limiting and claims."""

from .client import (
    close_valkey_client,
    get_valkey_client,
    valkey_healthcheck,
)
from .claims import claim_once
from .rate_limit import (
    RateLimiter,
    check_rate_limit,
)


__all__ = [
    # Client
    "get_valkey_client",
    "close_valkey_client",
    "valkey_healthcheck",
    # Rate limiting
    "RateLimiter",
    "check_rate_limit",
    # Claims
    "claim_once",
]
