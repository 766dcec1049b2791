"""Daily metered-usage reporting.

Once a day every user with a billing subscription is charged for the profit
their trading account realized since the previous sample of its cumulative
profit series:

    delta    = max(0, latest - previous)        previous = 0 for a single sample
    quantity = round_half_up(delta * 100)       integer cents

Users are processed one at a time and independently. A failure for one user
is logged and counted; it never stops the run. Failed or skipped users are
not retried; the next run computes a fresh delta from whatever the series
shows then.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Iterable

from app.core.data_helpers import to_cents
from app.core.logging import get_logger
from app.domain.profit import ProfitSample, UsageReport
from app.repositories import users_orm as users_repo
from app.services import billing, cryptobot


logger = get_logger("services.usage_reporting")

ZERO = Decimal("0")


@dataclass
class UsageRunSummary:
    """Counters for one reporting run."""

    reported: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def message(self) -> str:
        return f"Reported {self.reported}, skipped {self.skipped}, failed {self.failed}"


def compute_daily_delta(samples: Iterable[ProfitSample]) -> int:
    """Billable cents between the last two samples, clamped at zero."""
    ordered = sorted(samples, key=lambda s: s.date)
    if not ordered:
        return 0

    current = ordered[-1].cumulative_profit
    previous = ordered[-2].cumulative_profit if len(ordered) > 1 else ZERO
    return to_cents(max(ZERO, current - previous))


async def report_user(user: users_repo.Account, timestamp: int) -> bool:
    """
    Report one user's usage.

    Returns True when an event was sent and False when the user was skipped.
    Errors propagate to the caller.
    """
    samples = await cryptobot.get_profit(user.email)
    if not samples:
        logger.info(f"No profit data for user {user.id}; skipping")
        return False

    quantity = compute_daily_delta(samples)

    subscription = await billing.get_subscription(user.stripe_subscription_id.strip())
    if not subscription.is_billable:
        logger.info(
            f"Subscription for user {user.id} is {subscription.status}; skipping",
            extra={"subscription_status": subscription.status},
        )
        return False

    customer_id = subscription.customer_id or user.stripe_customer_id
    if not customer_id:
        logger.warning(f"No billing customer for user {user.id}; skipping")
        return False

    await billing.create_meter_event(
        UsageReport(customer_id=customer_id, quantity=quantity, timestamp=timestamp)
    )
    logger.info(f"Reported {quantity} cents of profit for user {user.id}")
    return True


async def run_daily_report(now: datetime | None = None) -> UsageRunSummary:
    """Report usage for every billed user. Never raises for per-user failures."""
    now = now or datetime.now(UTC)
    timestamp = int(now.timestamp())
    summary = UsageRunSummary()

    users = await users_repo.list_billed_users()
    logger.info(f"Starting usage report for {len(users)} billed users")

    for user in users:
        try:
            if await report_user(user, timestamp):
                summary.reported += 1
            else:
                summary.skipped += 1
        except Exception:
            summary.failed += 1
            logger.exception(f"Usage report failed for user {user.id}")

    logger.info(
        f"Usage report finished: {summary.message}",
        extra={
            "reported": summary.reported,
            "skipped": summary.skipped,
            "failed": summary.failed,
        },
    )
    return summary
