"""Account routes proxying the trading service for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_current_account, rate_limit_api
from app.repositories import users_orm as users_repo
from app.schemas.account import (
    FundResponse,
    FundUpdateRequest,
    HistoryPoint,
    ProfitPoint,
    ProfitResponse,
    TradingStateResponse,
    TradingStateUpdate,
)
from app.services import cryptobot
from app.services.usage_reporting import compute_daily_delta


router = APIRouter(dependencies=[Depends(rate_limit_api)])


@router.get(
    "/history",
    response_model=list[HistoryPoint],
    summary="Portfolio history",
    description="Invested and current portfolio value per day, oldest first.",
    responses={503: {"description": "Trading service unavailable"}},
)
async def get_history(
    account: users_repo.Account = Depends(get_current_account),
) -> list[HistoryPoint]:
    snapshots = await cryptobot.get_history(account.email)
    return [
        HistoryPoint(date=s.date, invested=s.invested, current=s.current)
        for s in snapshots
    ]


@router.get(
    "/profit",
    response_model=ProfitResponse,
    summary="Profit series",
    description="Cumulative realized profit per day and the latest daily increment in cents.",
    responses={
        502: {"description": "Malformed profit data from the trading service"},
        503: {"description": "Trading service unavailable"},
    },
)
async def get_profit(
    account: users_repo.Account = Depends(get_current_account),
) -> ProfitResponse:
    samples = await cryptobot.get_profit(account.email)
    return ProfitResponse(
        series=[
            ProfitPoint(date=s.date, cumulative_profit=s.cumulative_profit)
            for s in samples
        ],
        latest_delta_cents=compute_daily_delta(samples),
    )


@router.get(
    "/state",
    response_model=TradingStateResponse,
    summary="Automated trading state",
)
async def get_state(
    account: users_repo.Account = Depends(get_current_account),
) -> TradingStateResponse:
    return TradingStateResponse(state=await cryptobot.get_state(account.email))


@router.put(
    "/state",
    response_model=TradingStateResponse,
    summary="Turn automated trading on or off",
)
async def update_state(
    payload: TradingStateUpdate,
    account: users_repo.Account = Depends(get_current_account),
) -> TradingStateResponse:
    state = await cryptobot.set_state(account.email, payload.active)
    await users_repo.set_investment_active(account.email, payload.active)
    return TradingStateResponse(state=state)


@router.put(
    "/fund",
    response_model=FundResponse,
    summary="Update invested funds",
    description="Forward the new amount to the trading service and store it.",
    responses={422: {"description": "Below the minimum investment"}},
)
async def update_fund(
    payload: FundUpdateRequest,
    account: users_repo.Account = Depends(get_current_account),
) -> FundResponse:
    await cryptobot.update_fund(account.email, payload.fund)
    await users_repo.update_initial_funds(account.email, payload.fund)
    return FundResponse(fund=payload.fund)
