"""Domain models for strongly-typed data throughout the application.

This module provides Pydantic models that serve as the source of truth for
data passed between services, replacing raw dictionaries from upstream APIs.

Usage:
    from app.domain import ProfitSample, parse_profit_series

    samples = parse_profit_series(payload)
"""

from app.domain.profit import (
    PortfolioSnapshot,
    ProfitSample,
    UsageReport,
    parse_history,
    parse_profit_series,
)


__all__ = [
    "PortfolioSnapshot",
    "ProfitSample",
    "UsageReport",
    "parse_history",
    "parse_profit_series",
]
