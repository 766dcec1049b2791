"""Tests for the trading service client."""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from app.core.exceptions import ExternalServiceError, ProfitPayloadError
from app.services import cryptobot


@pytest.fixture
def upstream(monkeypatch):
    """Route client requests to a handler; returns the list of seen requests."""
    seen: list[httpx.Request] = []
    responses: dict[tuple[str, str], httpx.Response | Exception] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        result = responses[(request.method, request.url.path)]
        if isinstance(result, Exception):
            raise result
        return result

    def fake_client() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url="http://cryptobot.test",
            headers={"x-api-key": "test-key"},
            transport=httpx.MockTransport(handler),
        )

    monkeypatch.setattr(cryptobot, "_client", fake_client)
    return seen, responses


class TestProfit:
    @pytest.mark.asyncio
    async def test_get_profit_parses_and_sorts(self, upstream):
        seen, responses = upstream
        responses[("GET", "/profit")] = httpx.Response(
            200,
            json={"profit": [
                {"DATE": "2025-08-02", "PROFIT": "130"},
                {"DATE": "2025-08-01", "PROFIT": "100"},
            ]},
        )

        samples = await cryptobot.get_profit("jane@example.com")

        assert [s.date for s in samples] == [date(2025, 8, 1), date(2025, 8, 2)]
        assert samples[-1].cumulative_profit == Decimal("130")
        assert seen[0].url.params["email"] == "jane@example.com"
        assert seen[0].headers["x-api-key"] == "test-key"

    @pytest.mark.asyncio
    async def test_malformed_profit_raises(self, upstream):
        _, responses = upstream
        responses[("GET", "/profit")] = httpx.Response(
            200, json={"profit": [{"DATE": "2025-08-01", "PROFIT": "n/a"}]}
        )

        with pytest.raises(ProfitPayloadError):
            await cryptobot.get_profit("jane@example.com")

    @pytest.mark.asyncio
    async def test_upstream_error_status_raises(self, upstream):
        _, responses = upstream
        responses[("GET", "/profit")] = httpx.Response(500, text="oops")

        with pytest.raises(ExternalServiceError) as exc_info:
            await cryptobot.get_profit("jane@example.com")
        assert exc_info.value.details == {"upstream_status": 500}

    @pytest.mark.asyncio
    async def test_timeout_raises(self, upstream):
        _, responses = upstream
        responses[("GET", "/profit")] = httpx.ReadTimeout("slow")

        with pytest.raises(ExternalServiceError) as exc_info:
            await cryptobot.get_profit("jane@example.com")
        assert not isinstance(exc_info.value, ProfitPayloadError)

    @pytest.mark.asyncio
    async def test_connection_error_raises(self, upstream):
        _, responses = upstream
        responses[("GET", "/profit")] = httpx.ConnectError("refused")

        with pytest.raises(ExternalServiceError):
            await cryptobot.get_profit("jane@example.com")


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_is_mapped(self, upstream):
        _, responses = upstream
        responses[("GET", "/history")] = httpx.Response(
            200,
            json={"history": [{"DATE": "2025-08-01", "INVESTED": "1000", "CURRENT": "1042.5"}]},
        )

        snapshots = await cryptobot.get_history("jane@example.com")

        assert snapshots[0].invested == Decimal("1000")
        assert snapshots[0].current == Decimal("1042.5")

    @pytest.mark.asyncio
    async def test_missing_history_is_empty(self, upstream):
        _, responses = upstream
        responses[("GET", "/history")] = httpx.Response(200, json={})

        assert await cryptobot.get_history("jane@example.com") == []


class TestAccountCalls:
    @pytest.mark.asyncio
    async def test_signup_sends_credentials(self, upstream):
        seen, responses = upstream
        responses[("POST", "/signup")] = httpx.Response(200, json={"ok": True})

        await cryptobot.signup("jane@example.com", "key", "secret", Decimal("1500.00"))

        body = json.loads(seen[0].content)
        assert body == {
            "gemini_api_key": "key",
            "gemini_api_secret": "secret",
            "fund": "1500.00",
            "email": "jane@example.com",
        }

    @pytest.mark.asyncio
    async def test_signup_rejected_raises(self, upstream):
        _, responses = upstream
        responses[("POST", "/signup")] = httpx.Response(400, json={"detail": "bad key"})

        with pytest.raises(ExternalServiceError):
            await cryptobot.signup("jane@example.com", "key", "secret", Decimal("1500"))

    @pytest.mark.asyncio
    async def test_state_round_trip(self, upstream):
        seen, responses = upstream
        responses[("GET", "/state")] = httpx.Response(200, json={"state": "inactive"})
        responses[("PUT", "/state")] = httpx.Response(204)

        assert await cryptobot.get_state("jane@example.com") == "inactive"
        assert await cryptobot.set_state("jane@example.com", True) == "active"
        assert json.loads(seen[1].content) == {"email": "jane@example.com", "state": "active"}

    @pytest.mark.asyncio
    async def test_unknown_state_raises(self, upstream):
        _, responses = upstream
        responses[("GET", "/state")] = httpx.Response(200, json={"state": "paused"})

        with pytest.raises(ExternalServiceError):
            await cryptobot.get_state("jane@example.com")

    @pytest.mark.asyncio
    async def test_update_fund(self, upstream):
        seen, responses = upstream
        responses[("PUT", "/fund")] = httpx.Response(200, json={})

        await cryptobot.update_fund("jane@example.com", Decimal("750.50"))

        assert json.loads(seen[0].content) == {"email": "jane@example.com", "fund": "750.50"}
