"""One-shot claims stored in Valkey.

A claim is a ``SET NX EX`` on a named key. The first caller wins and the key
is left to expire; claims are never released.
"""

from __future__ import annotations

import os
import socket

from app.core.logging import get_logger

from .client import get_valkey_client


logger = get_logger("cache.claims")

CLAIM_PREFIX = "cryptoinvest:claim"

# Stored as the claim value so an operator can see which replica holds it
_OWNER = f"{socket.gethostname()}:{os.getpid()}"


async def claim_once(name: str, ttl: int) -> bool:
    """
    Claim ``name`` for ``ttl`` seconds.

    Returns True for the first caller and False while the claim exists.
    Valkey errors propagate.
    """
    client = await get_valkey_client()
    claimed = await client.set(f"{CLAIM_PREFIX}:{name}", _OWNER, ex=ttl, nx=True)
    if claimed:
        logger.debug(f"Claimed {name}")
    return bool(claimed)
