"""
Shared conversion and async helpers.

Usage:
    from app.core.data_helpers import run_in_executor, to_cents
"""

from __future__ import annotations

import asyncio
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable


def to_cents(amount: Decimal) -> int:
    """
    Convert a currency amount to integer cents, rounding half away from zero.

    Examples:
        >>> to_cents(Decimal("12.345"))
        1235
        >>> to_cents(Decimal("0.004"))
        0
    """
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def run_in_executor(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Run a blocking function in the default thread pool.

    Use this to wrap blocking SDK calls (like stripe) in async code.

    Args:
        func: Blocking function to run
        *args: Positional arguments for the function
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the function call
    """
    loop = asyncio.get_running_loop()
    if kwargs:
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))
    return await loop.run_in_executor(None, func, *args)


__all__ = [
    "run_in_executor",
    "to_cents",
]
