"""Sliding-window rate limits kept in Valkey sorted sets.

Three scopes exist, each configured as ``"<count>/<unit>"``:

- ``auth``: per client IP on the sign-in and signup endpoints
- ``code``: per email on endpoints that send a verification code
- ``api``: per account on the authenticated account and billing endpoints

A Valkey outage lets requests through; the limits protect the mailer and the
trading service, they are not an access control.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from app.core.config import settings
from app.core.exceptions import RateLimitError
from app.core.logging import get_logger

from .client import get_valkey_client

logger = get_logger("cache.rate_limit")

RATE_LIMIT_PREFIX = "cryptoinvest:rate_limit"

SCOPE_SETTINGS = {
    "auth": "rate_limit_auth",
    "code": "rate_limit_code_per_email",
    "api": "rate_limit_api",
}

UNIT_SECONDS = {
    "s": 1, "sec": 1, "second": 1,
    "m": 60, "min": 60, "minute": 60,
    "h": 3600, "hr": 3600, "hour": 3600,
    "d": 86400, "day": 86400,
}

_RATE_RE = re.compile(r"^\s*(\d+)\s*/\s*([a-z]+)\s*$")

# Returns {admitted, remaining, reset_at}. Members are unique per call so two
# requests in the same microsecond both count.
_ADMIT_LUA = """
local now, window, limit = tonumber(ARGV[1]), tonumber(ARGV[2]), tonumber(ARGV[3])
redis.call('ZREMRANGEBYSCORE', KEYS[1], '-inf', now - window)
local used = redis.call('ZCARD', KEYS[1])
if used >= limit then
    local first = redis.call('ZRANGE', KEYS[1], 0, 0, 'WITHSCORES')
    return {0, 0, tostring((tonumber(first[2]) or now) + window)}
end
redis.call('ZADD', KEYS[1], now, ARGV[4])
redis.call('EXPIRE', KEYS[1], window)
return {1, limit - used - 1, tostring(now + window)}
"""


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    limit: int

    @property
    def retry_after(self) -> int:
        return max(0, int(self.reset_at - time.time()))


def parse_rate_limit(rate: str) -> Tuple[int, int]:
    """``"5/hour"`` -> ``(5, 3600)``."""
    match = _RATE_RE.match(rate.lower())
    if not match or match.group(2) not in UNIT_SECONDS:
        raise ValueError(f"Invalid rate limit: {rate!r}")
    return int(match.group(1)), UNIT_SECONDS[match.group(2)]


class RateLimiter:
    """``limit`` requests per ``window`` seconds for each identifier within a scope."""

    def __init__(self, scope: str, limit: int, window: int):
        self.scope = scope
        self.limit = limit
        self.window = window

    @classmethod
    def for_scope(cls, scope: str) -> "RateLimiter":
        limit, window = parse_rate_limit(getattr(settings, SCOPE_SETTINGS[scope]))
        return cls(scope, limit, window)

    def key(self, identifier: str) -> str:
        return f"{RATE_LIMIT_PREFIX}:{self.scope}:{identifier}"

    async def check(self, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier``; never raises."""
        now = time.time()
        try:
            client = await get_valkey_client()
            admitted, remaining, reset_at = await client.eval(
                _ADMIT_LUA,
                1,
                self.key(identifier),
                now,
                self.window,
                self.limit,
                f"{now}:{time.perf_counter_ns()}",
            )
        except Exception as e:
            logger.error(f"Rate limit check for scope {self.scope} failed, allowing: {e}")
            return RateLimitResult(True, self.limit, now + self.window, self.limit)

        return RateLimitResult(bool(admitted), int(remaining), float(reset_at), self.limit)


async def check_rate_limit(
    identifier: str,
    limiter: Optional[RateLimiter] = None,
    key_prefix: str = "api",
) -> RateLimitResult:
    """Count a request and raise ``RateLimitError`` once the scope's limit is used up."""
    if not settings.rate_limit_enabled:
        return RateLimitResult(allowed=True, remaining=0, reset_at=0.0, limit=0)

    limiter = limiter or RateLimiter.for_scope(key_prefix)
    result = await limiter.check(identifier)
    if not result.allowed:
        raise RateLimitError(
            message=f"Rate limit exceeded. Try again in {result.retry_after} seconds.",
            details={"limit": result.limit, "reset_at": result.reset_at},
        )
    return result
