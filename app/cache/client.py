"""Valkey client used for rate limits and scheduler claims.

The API and the TestClient run on different event loops, and a redis asyncio
connection cannot cross loops, so one client is kept per running loop.
"""

from __future__ import annotations

import asyncio

from redis.asyncio import Redis

from app.core.config import settings
from app.core.logging import get_logger


logger = get_logger("cache.client")

PING_TIMEOUT_SECONDS = 5.0

_clients: dict[int, Redis] = {}


def _loop_key() -> int:
    try:
        return id(asyncio.get_running_loop())
    except RuntimeError:
        return 0


async def get_valkey_client() -> Redis:
    """Client bound to the current event loop, created on first use."""
    key = _loop_key()
    client = _clients.get(key)
    if client is None:
        client = Redis.from_url(
            settings.valkey_url,
            max_connections=settings.valkey_max_connections,
            decode_responses=True,
            socket_timeout=PING_TIMEOUT_SECONDS,
            socket_connect_timeout=PING_TIMEOUT_SECONDS,
            health_check_interval=30,
        )
        _clients[key] = client
        logger.info("Valkey client created")
    return client


async def close_valkey_client() -> None:
    """Close this loop's client and its connection pool."""
    client = _clients.pop(_loop_key(), None)
    if client is not None:
        await client.aclose()
        logger.info("Valkey client closed")


async def valkey_healthcheck() -> bool:
    """True when Valkey answers PING in time."""
    try:
        client = await get_valkey_client()
        return bool(await asyncio.wait_for(client.ping(), timeout=PING_TIMEOUT_SECONDS))
    except Exception as e:
        logger.warning(f"Valkey healthcheck failed: {e}")
        return False
