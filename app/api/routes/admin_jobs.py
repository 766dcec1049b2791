"""Scheduled job administration routes."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import List

from fastapi import APIRouter, Depends, Path

from app.api.dependencies import require_admin
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.core.security import TokenData
from app.jobs import ScheduleTrigger, execute_job, get_all_jobs, get_job, get_scheduler
from app.schemas.jobs import JobResponse, JobRunResponse


router = APIRouter()

logger = get_logger("api.admin_jobs")


def _validate_job_name(name: str = Path(..., min_length=1, max_length=50)) -> str:
    """Validate and normalize job name from path parameter."""
    return name.strip().lower()


def _next_run(name: str, cron: str) -> datetime | None:
    scheduler = get_scheduler()
    if scheduler is not None and scheduler.running:
        return scheduler.get_next_run_time(name)
    try:
        return ScheduleTrigger(cron, settings.scheduler_timezone).next_after(datetime.now(UTC))
    except ValueError:
        return None


@router.get(
    "",
    response_model=List[JobResponse],
    summary="List scheduled jobs",
    description="All registered jobs with their schedule (admin only).",
)
async def list_jobs(
    admin: TokenData = Depends(require_admin),
) -> List[JobResponse]:
    return [
        JobResponse(
            name=job.name,
            cron=job.cron,
            timezone=settings.scheduler_timezone,
            description=job.description,
            next_run=_next_run(job.name, job.cron),
        )
        for job in sorted(get_all_jobs().values(), key=lambda j: j.name)
    ]


@router.post(
    "/{name}/run",
    response_model=JobRunResponse,
    summary="Run a job now",
    description="Execute a registered job immediately and wait for its result (admin only).",
    responses={
        404: {"description": "Job not found"},
        500: {"description": "Job failed"},
    },
)
async def run_job_now(
    name: str = Depends(_validate_job_name),
    admin: TokenData = Depends(require_admin),
) -> JobRunResponse:
    if get_job(name) is None:
        raise NotFoundError(message=f"Job '{name}' not found")

    logger.info(f"Manual run of job {name} requested by {admin.sub}")
    message = await execute_job(name)
    return JobRunResponse(name=name, message=message)
