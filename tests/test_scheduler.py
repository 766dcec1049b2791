"""Tests for cron triggers, the job registry and the scheduler loop."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from app.core.exceptions import JobError
from app.jobs import JobScheduler, ScheduleTrigger, execute_job, get_all_jobs, get_job
from app.jobs import scheduler as scheduler_module


SGT = ZoneInfo("Asia/Singapore")


def sgt(year, month, day, hour, minute=0, second=0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=SGT)


class TestScheduleTrigger:
    def test_first_tick_only_arms(self):
        trigger = ScheduleTrigger("0 2 * * *", "Asia/Singapore")

        assert trigger.next_fire is None
        assert trigger.tick(sgt(2025, 8, 1, 1, 0)) is False
        assert trigger.next_fire == sgt(2025, 8, 1, 2, 0)

    def test_first_tick_at_fire_time_does_not_fire(self):
        trigger = ScheduleTrigger("0 2 * * *", "Asia/Singapore")

        assert trigger.tick(sgt(2025, 8, 1, 2, 0)) is False
        assert trigger.next_fire == sgt(2025, 8, 2, 2, 0)

    def test_fires_once_at_armed_time(self):
        trigger = ScheduleTrigger("0 2 * * *", "Asia/Singapore")
        trigger.tick(sgt(2025, 8, 1, 1, 0))

        assert trigger.tick(sgt(2025, 8, 1, 1, 59)) is False
        assert trigger.tick(sgt(2025, 8, 1, 2, 0)) is True
        assert trigger.tick(sgt(2025, 8, 1, 2, 0, 30)) is False
        assert trigger.next_fire == sgt(2025, 8, 2, 2, 0)

    def test_missed_runs_are_skipped_not_backfilled(self):
        trigger = ScheduleTrigger("0 2 * * *", "Asia/Singapore")
        trigger.tick(sgt(2025, 8, 1, 1, 0))

        # Process stalled for three days
        late = sgt(2025, 8, 4, 9, 0)
        assert trigger.tick(late) is True
        assert trigger.tick(late + timedelta(minutes=1)) is False
        assert trigger.next_fire == sgt(2025, 8, 5, 2, 0)

    def test_timezone_is_respected(self):
        trigger = ScheduleTrigger("0 2 * * *", "Asia/Singapore")
        # 17:00 UTC is 01:00 in Singapore
        trigger.tick(datetime(2025, 8, 1, 17, 0, tzinfo=UTC))

        assert trigger.next_fire == datetime(2025, 8, 1, 18, 0, tzinfo=UTC)
        assert trigger.tick(datetime(2025, 8, 1, 18, 0, tzinfo=UTC)) is True

    def test_naive_datetime_is_rejected(self):
        trigger = ScheduleTrigger("0 2 * * *")
        with pytest.raises(ValueError):
            trigger.tick(datetime(2025, 8, 1, 2, 0))

    def test_invalid_cron_is_rejected(self):
        with pytest.raises(ValueError):
            ScheduleTrigger("not a cron")


class TestRegistry:
    def test_builtin_jobs_are_registered(self):
        jobs = get_all_jobs()
        assert {"usage_report_daily", "otp_cleanup"} <= set(jobs)

    def test_usage_report_runs_at_two_am(self):
        job = get_job("usage_report_daily")
        assert job.cron == "0 2 * * *"
        assert job.description

    @pytest.mark.asyncio
    async def test_unknown_job_raises(self):
        with pytest.raises(JobError) as exc_info:
            await execute_job("does_not_exist")
        assert exc_info.value.error_code == "UNKNOWN_JOB"

    @pytest.mark.asyncio
    async def test_otp_cleanup_job(self, otp_store):
        past = datetime.now(UTC) - timedelta(minutes=5)
        future = datetime.now(UTC) + timedelta(minutes=5)
        await otp_store.create_code("a@example.com", "111111", "signup", past)
        await otp_store.create_code("b@example.com", "222222", "signup", future)

        message = await execute_job("otp_cleanup")

        assert message == "Deleted 1 expired codes"
        assert [r.email for r in otp_store.rows] == ["b@example.com"]

    @pytest.mark.asyncio
    async def test_failing_job_is_wrapped(self, monkeypatch):
        from app.services import usage_reporting

        monkeypatch.setattr(
            usage_reporting, "run_daily_report", AsyncMock(side_effect=RuntimeError("db down"))
        )

        with pytest.raises(JobError) as exc_info:
            await execute_job("usage_report_daily")
        assert exc_info.value.error_code == "JOB_EXECUTION_FAILED"


class TestJobScheduler:
    @pytest.fixture
    def scheduler(self, monkeypatch) -> JobScheduler:
        monkeypatch.setattr(scheduler_module, "claim_once", AsyncMock(return_value=True))
        sched = JobScheduler(timezone="Asia/Singapore")
        sched.load_jobs()
        return sched

    @pytest.mark.asyncio
    async def test_runs_only_due_jobs(self, scheduler, monkeypatch):
        run = AsyncMock(return_value="ok")
        monkeypatch.setattr(scheduler_module, "execute_job", run)

        await scheduler.run_pending(sgt(2025, 8, 1, 1, 0))  # arms
        ran = await scheduler.run_pending(sgt(2025, 8, 1, 2, 0))

        assert ran == ["usage_report_daily"]
        run.assert_awaited_once_with("usage_report_daily")

    @pytest.mark.asyncio
    async def test_claim_is_keyed_by_fire_time(self, scheduler, monkeypatch):
        monkeypatch.setattr(scheduler_module, "execute_job", AsyncMock(return_value="ok"))

        await scheduler.run_pending(sgt(2025, 8, 1, 1, 0))
        # Ticked late; the claim still names the armed 02:00 SGT fire time
        await scheduler.run_pending(sgt(2025, 8, 1, 2, 7))

        scheduler_module.claim_once.assert_awaited_once_with(
            "job:usage_report_daily:20250731T1800", scheduler_module.CLAIM_TTL_SECONDS
        )

    @pytest.mark.asyncio
    async def test_job_claimed_elsewhere_is_skipped(self, scheduler, monkeypatch):
        run = AsyncMock(return_value="ok")
        monkeypatch.setattr(scheduler_module, "execute_job", run)
        monkeypatch.setattr(scheduler_module, "claim_once", AsyncMock(return_value=False))

        await scheduler.run_pending(sgt(2025, 8, 1, 1, 0))
        ran = await scheduler.run_pending(sgt(2025, 8, 1, 2, 0))

        assert ran == []
        run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_valkey_outage_does_not_block_jobs(self, scheduler, monkeypatch):
        run = AsyncMock(return_value="ok")
        monkeypatch.setattr(scheduler_module, "execute_job", run)
        monkeypatch.setattr(
            scheduler_module, "claim_once", AsyncMock(side_effect=ConnectionError("valkey down"))
        )

        await scheduler.run_pending(sgt(2025, 8, 1, 1, 0))
        ran = await scheduler.run_pending(sgt(2025, 8, 1, 2, 0))

        assert ran == ["usage_report_daily"]

    @pytest.mark.asyncio
    async def test_failed_job_does_not_stop_next(self, scheduler, monkeypatch):
        run = AsyncMock(side_effect=[JobError(), "ok"])
        monkeypatch.setattr(scheduler_module, "execute_job", run)

        await scheduler.run_pending(sgt(2025, 8, 1, 1, 0))
        # Both jobs overdue after a long stall
        ran = await scheduler.run_pending(sgt(2025, 8, 2, 4, 0))

        assert sorted(ran) == ["otp_cleanup", "usage_report_daily"]
        assert run.await_count == 2

    @pytest.mark.asyncio
    async def test_disabled_scheduler_does_not_start(self, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "scheduler_enabled", False)
        sched = JobScheduler()
        await sched.start()

        assert sched.running is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "scheduler_enabled", True)
        sched = JobScheduler(timezone="UTC")
        await sched.start()

        assert sched.running is True
        assert sched.get_next_run_time("usage_report_daily") is not None

        await sched.stop()
        assert sched.running is False
