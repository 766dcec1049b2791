"""Built-in job definitions for scheduled tasks.

Jobs:
- usage_report_daily: Report yesterday's profit to billing (02:00 local)
- otp_cleanup: Delete expired verification codes (03:30 local)
"""

from __future__ import annotations

from datetime import UTC, datetime

from app.core.logging import get_logger
from app.repositories import otp_codes_orm as otp_repo
from app.services import usage_reporting

from .registry import register_job


logger = get_logger("jobs.definitions")


@register_job("usage_report_daily", cron_setting="usage_report_cron")
async def usage_report_daily_job() -> str:
    """Report each billed user's profit increment as metered usage.

    Per-user failures are counted in the result, not raised.
    """
    summary = await usage_reporting.run_daily_report()
    return summary.message


@register_job("otp_cleanup", cron_setting="otp_cleanup_cron")
async def otp_cleanup_job() -> str:
    """Delete verification codes past their expiry."""
    deleted = await otp_repo.delete_expired_codes(datetime.now(UTC))
    return f"Deleted {deleted} expired codes"
