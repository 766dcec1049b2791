"""Tests for rate limiting, scheduler claims and the client IP used as a key."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import Request

from app.cache import claims, rate_limit
from app.cache.claims import claim_once
from app.cache.rate_limit import RateLimiter, check_rate_limit, parse_rate_limit
from app.core.client_identity import get_client_ip
from app.core.config import settings
from app.core.exceptions import RateLimitError


class TestParseRateLimit:
    @pytest.mark.parametrize(
        "value,expected",
        [("10/minute", (10, 60)), ("5/hour", (5, 3600)), ("300/m", (300, 60)), ("1/day", (1, 86400))],
    )
    def test_valid(self, value, expected):
        assert parse_rate_limit(value) == expected

    @pytest.mark.parametrize("value", ["10", "10/fortnight", "ten/minute"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_rate_limit(value)


@pytest.fixture
def valkey(monkeypatch) -> AsyncMock:
    client = AsyncMock()
    monkeypatch.setattr(rate_limit, "get_valkey_client", AsyncMock(return_value=client))
    monkeypatch.setattr(claims, "get_valkey_client", AsyncMock(return_value=client))
    return client


class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_allowed(self, valkey):
        valkey.eval.return_value = [1, 4, 1000.0]

        result = await RateLimiter("code", 5, 3600).check("jane@example.com")

        assert result.allowed is True
        assert result.remaining == 4
        key = valkey.eval.await_args.args[2]
        assert key == "cryptoinvest:rate_limit:code:jane@example.com"

    @pytest.mark.asyncio
    async def test_fails_open_when_valkey_is_down(self, monkeypatch):
        monkeypatch.setattr(
            rate_limit, "get_valkey_client", AsyncMock(side_effect=ConnectionError("down"))
        )

        result = await RateLimiter("auth", 10, 60).check("203.0.113.9")

        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_exceeded_raises(self, valkey, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_enabled", True)
        valkey.eval.return_value = [0, 0, 9999999999.0]

        with pytest.raises(RateLimitError):
            await check_rate_limit("jane@example.com", key_prefix="code")

    @pytest.mark.asyncio
    async def test_disabled_never_touches_valkey(self, valkey, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_enabled", False)

        result = await check_rate_limit("jane@example.com", key_prefix="api")

        assert result.allowed is True
        valkey.eval.assert_not_awaited()


class TestClaimOnce:
    @pytest.mark.asyncio
    async def test_first_claim_wins(self, valkey):
        valkey.set.return_value = True

        assert await claim_once("job:otp_cleanup:20250731T1930", 60) is True
        assert valkey.set.await_args.args[0] == "cryptoinvest:claim:job:otp_cleanup:20250731T1930"
        assert valkey.set.await_args.kwargs == {"ex": 60, "nx": True}

    @pytest.mark.asyncio
    async def test_existing_claim_is_refused(self, valkey):
        valkey.set.return_value = None

        assert await claim_once("job:otp_cleanup:20250731T1930", 60) is False

    @pytest.mark.asyncio
    async def test_valkey_errors_propagate(self, valkey):
        valkey.set.side_effect = ConnectionError("down")

        with pytest.raises(ConnectionError):
            await claim_once("job:x", 60)


def make_request(headers: dict[str, str], client=("198.51.100.7", 50000)) -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/api/auth/signin",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": client,
        }
    )


class TestClientIp:
    def test_direct_connection(self):
        assert get_client_ip(make_request({})) == "198.51.100.7"

    def test_first_forwarded_hop_is_the_caller(self):
        request = make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.9"

    def test_cloudflare_header_wins(self):
        request = make_request(
            {"CF-Connecting-IP": "203.0.113.1", "X-Forwarded-For": "203.0.113.9", "X-Real-IP": "10.0.0.3"}
        )
        assert get_client_ip(request) == "203.0.113.1"

    def test_blank_header_falls_through(self):
        request = make_request({"X-Forwarded-For": " ", "X-Real-IP": "203.0.113.4"})
        assert get_client_ip(request) == "203.0.113.4"

    def test_no_client_address(self):
        assert get_client_ip(make_request({}, client=None)) == "unknown"


class TestScopes:
    def test_scope_reads_its_setting(self, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_code_per_email", "3 / hour")

        limiter = RateLimiter.for_scope("code")

        assert (limiter.limit, limiter.window) == (3, 3600)
        assert limiter.key("jane@example.com") == "cryptoinvest:rate_limit:code:jane@example.com"

    def test_unknown_scope_is_rejected(self):
        with pytest.raises(KeyError):
            RateLimiter.for_scope("admin")
