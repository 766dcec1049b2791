"""Billing processor client (Stripe).

Only two calls are needed: subscription lookup and metered usage events.
The Stripe SDK is synchronous, so calls run in the default thread pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import stripe

from app.core.config import settings
from app.core.data_helpers import run_in_executor
from app.core.exceptions import BillingError
from app.core.logging import get_logger
from app.domain.profit import UsageReport


logger = get_logger("services.billing")

BILLABLE_STATUSES = frozenset({"active", "trialing"})


@dataclass(frozen=True)
class SubscriptionInfo:
    """Subset of a Stripe subscription used for usage billing."""

    id: str
    status: str
    customer_id: str | None

    @property
    def is_billable(self) -> bool:
        return self.status in BILLABLE_STATUSES


def _require_key() -> str:
    if not settings.stripe_secret_key:
        raise BillingError(message="Billing is not configured")
    return settings.stripe_secret_key


def _customer_id(customer: Any) -> str | None:
    if customer is None:
        return None
    if isinstance(customer, str):
        return customer
    # Expanded customer object
    return getattr(customer, "id", None)


async def get_subscription(subscription_id: str) -> SubscriptionInfo:
    """
    Look up a subscription.

    Raises:
        BillingError: billing not configured or the Stripe call failed
    """
    api_key = _require_key()
    try:
        sub = await run_in_executor(
            stripe.Subscription.retrieve, subscription_id, api_key=api_key
        )
    except stripe.StripeError as e:
        logger.warning(f"Subscription lookup failed: {e}")
        raise BillingError(details={"subscription_id": subscription_id}) from e

    return SubscriptionInfo(
        id=sub.id,
        status=sub.status,
        customer_id=_customer_id(sub.customer),
    )


async def create_meter_event(report: UsageReport) -> None:
    """
    Send one usage event to the configured billing meter.

    Raises:
        BillingError: billing not configured or the Stripe call failed
    """
    api_key = _require_key()
    try:
        await run_in_executor(
            stripe.billing.MeterEvent.create,
            event_name=settings.stripe_meter_event_name,
            payload={
                "stripe_customer_id": report.customer_id,
                "value": str(report.quantity),
            },
            timestamp=report.timestamp,
            api_key=api_key,
        )
    except stripe.StripeError as e:
        logger.warning(f"Meter event failed: {e}")
        raise BillingError(details={"customer_id": report.customer_id}) from e

    logger.info(
        "Meter event sent",
        extra={"customer_id": report.customer_id, "quantity": report.quantity},
    )
