"""Billing routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_current_account, rate_limit_api
from app.repositories import users_orm as users_repo
from app.schemas.billing import SubscriptionStatusResponse
from app.services import billing


router = APIRouter(dependencies=[Depends(rate_limit_api)])


@router.get(
    "/subscription-status",
    response_model=SubscriptionStatusResponse,
    summary="Subscription status",
    description="Billing subscription status of the signed-in account, or 'none'.",
    responses={503: {"description": "Billing service unavailable"}},
)
async def subscription_status(
    account: users_repo.Account = Depends(get_current_account),
) -> SubscriptionStatusResponse:
    subscription_id = (account.stripe_subscription_id or "").strip()
    if not subscription_id:
        return SubscriptionStatusResponse(status="none", billable=False)

    subscription = await billing.get_subscription(subscription_id)
    return SubscriptionStatusResponse(
        status=subscription.status,
        billable=subscription.is_billable,
    )
