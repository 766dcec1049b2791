"""Billing schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SubscriptionStatusResponse(BaseModel):
    """Billing subscription state of the current user."""

    status: str = Field(
        ...,
        description="Stripe subscription status, or 'none' without a subscription",
        examples=["active", "trialing", "canceled", "none"],
    )
    billable: bool = Field(..., description="Whether daily usage is being reported")
