"""Client for the external trading automation service (CryptoBot).

Every request carries the ``x-api-key`` header and the configured timeout.
Transport failures and non-2xx answers surface as ExternalServiceError;
malformed profit or history payloads as ProfitPayloadError.

Usage:
    from app.services import cryptobot

    samples = await cryptobot.get_profit("jane@example.com")
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import httpx

from app.core.config import settings
from app.core.exceptions import ExternalServiceError
from app.core.logging import get_logger
from app.domain.profit import (
    PortfolioSnapshot,
    ProfitSample,
    parse_history,
    parse_profit_series,
)


logger = get_logger("services.cryptobot")

STATE_ACTIVE = "active"
STATE_INACTIVE = "inactive"


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.cryptobot_api_url,
        headers={
            "accept": "application/json",
            "x-api-key": settings.cryptobot_api_key,
        },
        timeout=float(settings.external_api_timeout),
    )


async def _request(method: str, path: str, **kwargs: Any) -> Any:
    try:
        async with _client() as client:
            response = await client.request(method, path, **kwargs)
    except httpx.TimeoutException as e:
        logger.warning(f"Trading service timeout on {method} {path}")
        raise ExternalServiceError(message="Trading service timed out") from e
    except httpx.HTTPError as e:
        logger.warning(f"Trading service unreachable on {method} {path}: {e}")
        raise ExternalServiceError(message="Trading service unavailable") from e

    if response.is_error:
        logger.warning(
            f"Trading service returned {response.status_code} on {method} {path}",
            extra={"status_code": response.status_code},
        )
        raise ExternalServiceError(
            message="Trading service request failed",
            details={"upstream_status": response.status_code},
        )

    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise ExternalServiceError(message="Trading service returned invalid JSON") from e


async def signup(email: str, api_key: str, api_secret: str, fund: Decimal) -> None:
    """Provision a trading account with plaintext exchange credentials."""
    await _request(
        "POST",
        "/signup",
        json={
            "gemini_api_key": api_key,
            "gemini_api_secret": api_secret,
            "fund": str(fund),
            "email": email,
        },
    )
    logger.info("Provisioned trading account")


async def get_profit(email: str) -> list[ProfitSample]:
    """Cumulative profit series, sorted by date."""
    payload = await _request("GET", "/profit", params={"email": email})
    return parse_profit_series(payload)


async def get_history(email: str) -> list[PortfolioSnapshot]:
    """Invested vs. current portfolio value series, sorted by date."""
    payload = await _request("GET", "/history", params={"email": email})
    # Accounts without trades yet answer with no history list at all
    if not isinstance(payload, dict) or payload.get("history") is None:
        return []
    return parse_history(payload)


async def get_state(email: str) -> str:
    """Return ``active`` or ``inactive``."""
    payload = await _request("GET", "/state", params={"email": email})
    state = payload.get("state") if isinstance(payload, dict) else None
    if state not in (STATE_ACTIVE, STATE_INACTIVE):
        raise ExternalServiceError(message="Trading service returned an unknown state")
    return state


async def set_state(email: str, active: bool) -> str:
    """Switch automated trading on or off."""
    state = STATE_ACTIVE if active else STATE_INACTIVE
    await _request("PUT", "/state", json={"email": email, "state": state})
    logger.info(f"Trading state set to {state}")
    return state


async def update_fund(email: str, fund: Decimal) -> None:
    """Change the amount the trading account invests."""
    await _request("PUT", "/fund", json={"email": email, "fund": str(fund)})
    logger.info("Trading fund updated")
