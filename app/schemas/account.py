"""Account (trading proxy) schemas."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.core.config import settings


class HistoryPoint(BaseModel):
    """Portfolio value on one day."""

    date: date
    invested: Decimal = Field(..., description="Amount invested (S$)")
    current: Decimal = Field(..., description="Current portfolio value (S$)")


class ProfitPoint(BaseModel):
    """Cumulative realized profit on one day."""

    date: date
    cumulative_profit: Decimal


class ProfitResponse(BaseModel):
    """Profit series sorted by date, plus the latest daily increment."""

    series: list[ProfitPoint] = Field(default_factory=list)
    latest_delta_cents: int = Field(
        default=0, ge=0, description="Profit since the previous sample, in cents"
    )


class TradingStateResponse(BaseModel):
    """Automated trading switch."""

    state: Literal["active", "inactive"]


class TradingStateUpdate(BaseModel):
    """Turn automated trading on or off."""

    active: bool = Field(..., description="True to trade automatically")


class FundUpdateRequest(BaseModel):
    """Change the invested amount."""

    fund: Decimal = Field(..., max_digits=12, decimal_places=2, description="New amount (S$)")

    @field_validator("fund")
    @classmethod
    def validate_fund(cls, v: Decimal) -> Decimal:
        if v < settings.min_investment:
            raise ValueError(f"Minimum investment amount is S${settings.min_investment}")
        return v


class FundResponse(BaseModel):
    """Invested amount after an update."""

    fund: Decimal
