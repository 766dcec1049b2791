"""Profit and portfolio-history domain models.

The trading service sends loosely typed JSON (numbers as strings, upper-case
keys, arbitrary ordering). Everything is converted here, at the boundary,
into validated models so arithmetic never sees a missing or non-numeric
value.
"""

from __future__ import annotations

from datetime import date as DateType
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.core.exceptions import ProfitPayloadError


def _coerce_date(value: Any) -> Any:
    # "2025-08-01T00:00:00Z" and "2025-08-01 00:00:00" carry the day in the first 10 chars
    if isinstance(value, str) and len(value) > 10 and value[10] in ("T", " "):
        return value[:10]
    return value


def _coerce_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"not a decimal number: {value!r}") from e
    else:
        raise ValueError(f"not a decimal number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"non-finite number: {value!r}")
    return result


class ProfitSample(BaseModel):
    """Cumulative realized profit as of one calendar day."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: DateType = Field(..., alias="DATE")
    cumulative_profit: Decimal = Field(..., alias="PROFIT")

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    @field_validator("cumulative_profit", mode="before")
    @classmethod
    def parse_profit(cls, v: Any) -> Decimal:
        return _coerce_decimal(v)


class PortfolioSnapshot(BaseModel):
    """Invested vs. current portfolio value on one day."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date: DateType = Field(..., alias="DATE")
    invested: Decimal = Field(..., alias="INVESTED")
    current: Decimal = Field(..., alias="CURRENT")

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    @field_validator("invested", "current", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Decimal:
        return _coerce_decimal(v)


class UsageReport(BaseModel):
    """One metered usage event: profit in cents for a billing customer."""

    model_config = ConfigDict(frozen=True)

    customer_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    timestamp: int = Field(..., description="Unix seconds")


def _entries(payload: Any, key: str) -> list[Any]:
    if not isinstance(payload, dict):
        raise ProfitPayloadError(details={"reason": "payload is not an object"})
    if key not in payload:
        raise ProfitPayloadError(details={"reason": f"missing '{key}' field"})
    entries = payload[key]
    if not isinstance(entries, list):
        raise ProfitPayloadError(details={"reason": f"'{key}' is not a list"})
    return entries


def parse_profit_series(payload: Any) -> list[ProfitSample]:
    """
    Convert a ``/profit`` response into samples sorted by date.

    Raises:
        ProfitPayloadError: on any missing or malformed entry
    """
    entries = _entries(payload, "profit")
    try:
        samples = [ProfitSample.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise ProfitPayloadError(details={"reason": e.errors(include_url=False)[0]["msg"]}) from e
    return sorted(samples, key=lambda s: s.date)


def parse_history(payload: Any) -> list[PortfolioSnapshot]:
    """
    Convert a ``/history`` response into snapshots sorted by date.

    Raises:
        ProfitPayloadError: on any missing or malformed entry
    """
    entries = _entries(payload, "history")
    try:
        snapshots = [PortfolioSnapshot.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise ProfitPayloadError(details={"reason": e.errors(include_url=False)[0]["msg"]}) from e
    return sorted(snapshots, key=lambda s: s.date)
